"""
Teacher management router (admin-facing).
A teacher is a User (role TEACHER) plus a Teacher profile holding the
subjects and classes the teacher is assigned to.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin
from auth.security import hash_password
from database import crud, schemas
from database.database import get_db
from database.models import Teacher, User, UserRole, Subject
from routers.subjects import resolve_classes

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/teachers", tags=["teachers"])


def resolve_subjects(db: Session, admin_id: int, subject_ids: List[int]) -> List[Subject]:
    """All ids must be active subjects of the tenant."""
    unique_ids = list(dict.fromkeys(subject_ids))
    subjects = crud.get_subjects_by_ids(db, admin_id, unique_ids)
    if len(subjects) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some subject IDs are invalid")
    return subjects


def _get_teacher_or_404(db: Session, admin_id: int, teacher_id: int) -> Teacher:
    teacher = crud.get_teacher(db, admin_id, teacher_id)
    if not teacher:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher


def _teacher_out(teacher: Teacher) -> schemas.TeacherResponse:
    return schemas.TeacherResponse.model_validate(teacher)


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: schemas.TeacherCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    subjects = resolve_subjects(db, ctx.admin_id, payload.subject_ids)
    classes = resolve_classes(db, ctx.admin_id, payload.class_ids)

    user = crud.create_user(db, payload.email, payload.password, payload.name, UserRole.TEACHER)
    teacher = Teacher(
        user_id=user.id,
        admin_id=ctx.admin_id,
        phone=payload.phone,
        address=payload.address,
        qualification=payload.qualification,
        experience=payload.experience,
    )
    teacher.subjects = subjects
    teacher.classes = classes
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    log.info("Teacher %s created (admin %s)", user.email, ctx.admin_id)
    return {"success": True, "teacher": _teacher_out(teacher)}


@router.get("/")
def list_teachers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    subject_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Teacher).join(User, Teacher.user_id == User.id).filter(Teacher.admin_id == ctx.admin_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if subject_id is not None:
        query = query.filter(Teacher.subjects.any(Subject.id == subject_id))
    teachers, pagination = crud.paginate(query.order_by(User.name), page, limit)
    return {"success": True, "teachers": [_teacher_out(t) for t in teachers], "pagination": pagination}


@router.get("/{teacher_id}")
def get_teacher(
    teacher_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"success": True, "teacher": _teacher_out(_get_teacher_or_404(db, ctx.admin_id, teacher_id))}


@router.put("/{teacher_id}")
def update_teacher(
    teacher_id: int,
    payload: schemas.TeacherUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    teacher = _get_teacher_or_404(db, ctx.admin_id, teacher_id)
    data = payload.model_dump(exclude_unset=True)
    user = teacher.user

    if "email" in data and data["email"].lower() != user.email:
        if crud.get_user_by_email(db, data["email"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        user.email = data["email"].lower()
    if data.get("password"):
        user.password_hash = hash_password(data["password"])
    if data.get("name"):
        user.name = data["name"]
    if "subject_ids" in data:
        teacher.subjects = resolve_subjects(db, ctx.admin_id, data["subject_ids"] or [])
    if "class_ids" in data:
        teacher.classes = resolve_classes(db, ctx.admin_id, data["class_ids"] or [])
    for field in ("phone", "address", "qualification", "experience"):
        if field in data:
            setattr(teacher, field, data[field])

    db.commit()
    db.refresh(teacher)
    return {"success": True, "teacher": _teacher_out(teacher)}


@router.put("/{teacher_id}/subjects")
def assign_teacher_subjects(
    teacher_id: int,
    payload: schemas.IdList,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    teacher = _get_teacher_or_404(db, ctx.admin_id, teacher_id)
    teacher.subjects = resolve_subjects(db, ctx.admin_id, payload.ids)
    db.commit()
    db.refresh(teacher)
    return {"success": True, "teacher": _teacher_out(teacher)}


@router.put("/{teacher_id}/classes")
def assign_teacher_classes(
    teacher_id: int,
    payload: schemas.IdList,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    teacher = _get_teacher_or_404(db, ctx.admin_id, teacher_id)
    teacher.classes = resolve_classes(db, ctx.admin_id, payload.ids)
    db.commit()
    db.refresh(teacher)
    return {"success": True, "teacher": _teacher_out(teacher)}


@router.delete("/{teacher_id}")
def delete_teacher(
    teacher_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Deactivate the teacher's login; assignments are kept."""
    teacher = _get_teacher_or_404(db, ctx.admin_id, teacher_id)
    teacher.user.is_active = False
    db.commit()
    log.info("Teacher %s deactivated", teacher.user.email)
    return {"success": True, "message": "Teacher deactivated successfully"}


@router.patch("/{teacher_id}/activate")
def activate_teacher(
    teacher_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    teacher = _get_teacher_or_404(db, ctx.admin_id, teacher_id)
    teacher.user.is_active = True
    db.commit()
    db.refresh(teacher)
    return {"success": True, "teacher": _teacher_out(teacher)}
