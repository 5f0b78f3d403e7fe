"""
Student management router (admin-facing).
A student is a User (role STUDENT) plus a Student profile in one class.
Roll numbers are unique within a class.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from auth.security import hash_password
from database import crud, schemas
from database.database import get_db
from database.models import Student, User, UserRole

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/students", tags=["students"])

PROFILE_FIELDS = (
    "father_name", "mother_name", "date_of_birth", "parents_phone",
    "parents_email", "address", "whatsapp_number",
)


def _get_student_or_404(db: Session, admin_id: int, student_id: int) -> Student:
    student = crud.get_student(db, admin_id, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


def _require_active_class(db: Session, admin_id: int, class_id: int):
    school_class = crud.get_class(db, admin_id, class_id, active_only=True)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found or inactive")
    return school_class


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_student(
    payload: schemas.StudentCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _require_active_class(db, ctx.admin_id, payload.class_id)
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    if crud.roll_number_taken(db, payload.class_id, payload.roll_number):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Roll number {payload.roll_number} already exists in this class"
        )

    user = crud.create_user(db, payload.email, payload.password, payload.name, UserRole.STUDENT)
    student = Student(
        user_id=user.id,
        admin_id=ctx.admin_id,
        class_id=payload.class_id,
        roll_number=payload.roll_number,
        **{field: getattr(payload, field) for field in PROFILE_FIELDS},
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    log.info("Student %s (%s) created in class %s", user.email, student.roll_number, student.class_id)
    return {"success": True, "student": schemas.StudentResponse.model_validate(student)}


@router.get("/")
def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    class_id: Optional[int] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Student).join(User, Student.user_id == User.id).filter(Student.admin_id == ctx.admin_id)
    if class_id is not None:
        query = query.filter(Student.class_id == class_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.name.ilike(pattern), User.email.ilike(pattern), Student.roll_number.ilike(pattern)
        ))
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    students, pagination = crud.paginate(query.order_by(Student.class_id, Student.roll_number), page, limit)
    return {
        "success": True,
        "students": [schemas.StudentResponse.model_validate(s) for s in students],
        "pagination": pagination,
    }


@router.get("/class/{class_id}")
def list_students_by_class(
    class_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if not crud.get_class(db, ctx.admin_id, class_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    students = db.query(Student).join(User, Student.user_id == User.id).filter(
        Student.admin_id == ctx.admin_id,
        Student.class_id == class_id,
        User.is_active == True,
    ).order_by(Student.roll_number).all()
    return {"success": True, "students": [schemas.StudentResponse.model_validate(s) for s in students]}


@router.get("/{student_id}")
def get_student(
    student_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    student = _get_student_or_404(db, ctx.admin_id, student_id)
    return {"success": True, "student": schemas.StudentResponse.model_validate(student)}


@router.put("/{student_id}")
def update_student(
    student_id: int,
    payload: schemas.StudentUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    student = _get_student_or_404(db, ctx.admin_id, student_id)
    data = payload.model_dump(exclude_unset=True)
    user = student.user

    class_id = data.get("class_id") or student.class_id
    roll_number = data.get("roll_number") or student.roll_number
    if class_id != student.class_id:
        _require_active_class(db, ctx.admin_id, class_id)
    if (class_id, roll_number) != (student.class_id, student.roll_number):
        if crud.roll_number_taken(db, class_id, roll_number, exclude_id=student.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Roll number {roll_number} already exists in this class"
            )
    if "email" in data and data["email"].lower() != user.email:
        if crud.get_user_by_email(db, data["email"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        user.email = data["email"].lower()
    if data.get("password"):
        user.password_hash = hash_password(data["password"])
    if data.get("name"):
        user.name = data["name"]

    student.class_id = class_id
    student.roll_number = roll_number
    for field in PROFILE_FIELDS:
        if field in data:
            setattr(student, field, data[field])

    db.commit()
    db.refresh(student)
    return {"success": True, "student": schemas.StudentResponse.model_validate(student)}


@router.delete("/{student_id}")
def delete_student(
    student_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Deactivate the student's login; records are kept."""
    student = _get_student_or_404(db, ctx.admin_id, student_id)
    student.user.is_active = False
    db.commit()
    log.info("Student %s deactivated", student.user.email)
    return {"success": True, "message": "Student deactivated successfully"}


@router.patch("/{student_id}/activate")
def activate_student(
    student_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    student = _get_student_or_404(db, ctx.admin_id, student_id)
    student.user.is_active = True
    db.commit()
    db.refresh(student)
    return {"success": True, "student": schemas.StudentResponse.model_validate(student)}
