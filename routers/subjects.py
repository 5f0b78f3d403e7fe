"""
Subject API endpoints
CRUD for a tenant's subjects and their class mapping
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import Subject, SubjectCategory, SchoolClass

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/subjects", tags=["subjects"])


def _get_subject_or_404(db: Session, admin_id: int, subject_id: int) -> Subject:
    subject = crud.get_subject(db, admin_id, subject_id)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject with ID {subject_id} not found"
        )
    return subject


def resolve_classes(db: Session, admin_id: int, class_ids: List[int]) -> List[SchoolClass]:
    """All ids must be active classes of the tenant."""
    unique_ids = list(dict.fromkeys(class_ids))
    classes = crud.get_classes_by_ids(db, admin_id, unique_ids)
    if len(classes) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some class IDs are invalid")
    return classes


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: schemas.SubjectCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Create a new subject
    Subject codes must be unique per school
    """
    if crud.get_subject_by_code(db, ctx.admin_id, payload.code):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Subject with code '{payload.code}' already exists"
        )
    classes = resolve_classes(db, ctx.admin_id, payload.class_ids)
    subject = Subject(admin_id=ctx.admin_id, **payload.model_dump(exclude={"class_ids"}))
    subject.classes = classes
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return {"success": True, "subject": schemas.SubjectResponse.model_validate(subject)}


@router.get("/")
def list_subjects(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    category: Optional[SubjectCategory] = None,
    level: Optional[int] = Query(None, ge=1, le=12),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Subject).filter(Subject.admin_id == ctx.admin_id)
    if category is not None:
        query = query.filter(Subject.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Subject.name.ilike(pattern), Subject.code.ilike(pattern)))
    if is_active is not None:
        query = query.filter(Subject.is_active == is_active)
    query = query.order_by(Subject.name)
    if level is not None:
        # levels is a JSON list, matched in Python
        matching = [s for s in query.all() if level in (s.levels or [])]
        start = (page - 1) * limit
        subjects = matching[start:start + limit]
        pagination = {"page": page, "limit": limit, "total": len(matching),
                      "pages": -(-len(matching) // limit)}
    else:
        subjects, pagination = crud.paginate(query, page, limit)
    return {
        "success": True,
        "subjects": [schemas.SubjectResponse.model_validate(s) for s in subjects],
        "pagination": pagination,
    }


@router.get("/category/{category}")
def list_subjects_by_category(
    category: SubjectCategory,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    subjects = db.query(Subject).filter(
        Subject.admin_id == ctx.admin_id,
        Subject.category == category,
        Subject.is_active == True,
    ).order_by(Subject.name).all()
    return {"success": True, "subjects": [schemas.SubjectResponse.model_validate(s) for s in subjects]}


@router.get("/class/{class_id}")
def list_subjects_for_class(
    class_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Subjects available for a class"""
    school_class = crud.get_class(db, ctx.admin_id, class_id)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    subjects = [s for s in school_class.subjects if s.is_active]
    return {"success": True, "subjects": [schemas.SubjectResponse.model_validate(s) for s in subjects]}


@router.get("/{subject_id}")
def get_subject(
    subject_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    subject = _get_subject_or_404(db, ctx.admin_id, subject_id)
    return {"success": True, "subject": schemas.SubjectResponse.model_validate(subject)}


@router.put("/{subject_id}")
def update_subject(
    subject_id: int,
    payload: schemas.SubjectUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subject = _get_subject_or_404(db, ctx.admin_id, subject_id)
    data = payload.model_dump(exclude_unset=True)

    if "code" in data and data["code"] != subject.code:
        if crud.get_subject_by_code(db, ctx.admin_id, data["code"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Subject with code '{data['code']}' already exists"
            )
    if "class_ids" in data:
        subject.classes = resolve_classes(db, ctx.admin_id, data.pop("class_ids") or [])

    for field, value in data.items():
        setattr(subject, field, value)
    db.commit()
    db.refresh(subject)
    return {"success": True, "subject": schemas.SubjectResponse.model_validate(subject)}


@router.put("/{subject_id}/classes")
def assign_subject_classes(
    subject_id: int,
    payload: schemas.IdList,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Replace the classes in which the subject is taught"""
    subject = _get_subject_or_404(db, ctx.admin_id, subject_id)
    subject.classes = resolve_classes(db, ctx.admin_id, payload.ids)
    db.commit()
    db.refresh(subject)
    return {"success": True, "subject": schemas.SubjectResponse.model_validate(subject)}


@router.delete("/{subject_id}")
def delete_subject(
    subject_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subject = _get_subject_or_404(db, ctx.admin_id, subject_id)
    subject.is_active = False
    db.commit()
    log.info("Subject %s deactivated (admin %s)", subject.code, ctx.admin_id)
    return {"success": True, "message": "Subject deleted successfully"}
