"""
Class API endpoints
CRUD for a tenant's classes (e.g. 10A = level 10, section A)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import SchoolClass, Student, User

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/classes", tags=["classes"])


def _get_class_or_404(db: Session, admin_id: int, class_id: int) -> SchoolClass:
    school_class = crud.get_class(db, admin_id, class_id)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return school_class


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_class(
    payload: schemas.ClassCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Class names are unique per school"""
    if crud.get_class_by_name(db, ctx.admin_id, payload.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Class with name '{payload.name}' already exists"
        )
    school_class = SchoolClass(admin_id=ctx.admin_id, **payload.model_dump())
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return {"success": True, "class": schemas.ClassResponse.model_validate(school_class)}


@router.get("/")
def list_classes(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = None,
    level: Optional[int] = Query(None, ge=1, le=12),
    is_active: Optional[bool] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(SchoolClass).filter(SchoolClass.admin_id == ctx.admin_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(SchoolClass.name.ilike(pattern), SchoolClass.display_name.ilike(pattern)))
    if level is not None:
        query = query.filter(SchoolClass.level == level)
    if is_active is not None:
        query = query.filter(SchoolClass.is_active == is_active)
    classes, pagination = crud.paginate(query.order_by(SchoolClass.level, SchoolClass.section), page, limit)
    return {
        "success": True,
        "classes": [schemas.ClassResponse.model_validate(c) for c in classes],
        "pagination": pagination,
    }


@router.get("/level/{level}")
def list_classes_by_level(
    level: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    classes = db.query(SchoolClass).filter(
        SchoolClass.admin_id == ctx.admin_id,
        SchoolClass.level == level,
        SchoolClass.is_active == True,
    ).order_by(SchoolClass.section).all()
    return {"success": True, "classes": [schemas.ClassResponse.model_validate(c) for c in classes]}


@router.get("/{class_id}")
def get_class(
    class_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    school_class = _get_class_or_404(db, ctx.admin_id, class_id)
    student_count = db.query(Student).join(User, Student.user_id == User.id).filter(
        Student.class_id == class_id, User.is_active == True
    ).count()
    return {
        "success": True,
        "class": schemas.ClassResponse.model_validate(school_class),
        "student_count": student_count,
        "subject_ids": [s.id for s in school_class.subjects if s.is_active],
    }


@router.put("/{class_id}")
def update_class(
    class_id: int,
    payload: schemas.ClassUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    school_class = _get_class_or_404(db, ctx.admin_id, class_id)
    data = payload.model_dump(exclude_unset=True)

    if "name" in data and data["name"] != school_class.name:
        if crud.get_class_by_name(db, ctx.admin_id, data["name"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Class with name '{data['name']}' already exists"
            )

    for field, value in data.items():
        setattr(school_class, field, value)
    db.commit()
    db.refresh(school_class)
    return {"success": True, "class": schemas.ClassResponse.model_validate(school_class)}


@router.delete("/{class_id}")
def delete_class(
    class_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Deactivate a class; refused while active students are enrolled"""
    school_class = _get_class_or_404(db, ctx.admin_id, class_id)
    enrolled = db.query(Student).join(User, Student.user_id == User.id).filter(
        Student.class_id == class_id, User.is_active == True
    ).count()
    if enrolled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete class with {enrolled} active student(s)"
        )
    school_class.is_active = False
    db.commit()
    log.info("Class %s deactivated (admin %s)", school_class.name, ctx.admin_id)
    return {"success": True, "message": "Class deleted successfully"}
