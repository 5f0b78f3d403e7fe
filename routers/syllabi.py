"""
Syllabus API endpoints
One active syllabus per subject, class and academic year; units and topics
are stored as JSON on the row. An optional document can be attached.
"""

import logging
from collections import Counter
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import Language, Syllabus
from services import file_storage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/syllabi", tags=["syllabi"])


def _get_syllabus_or_404(db: Session, admin_id: int, syllabus_id: int) -> Syllabus:
    syllabus = crud.get_syllabus(db, admin_id, syllabus_id)
    if not syllabus:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Syllabus not found or not accessible")
    return syllabus


def _check_subject_and_class(db: Session, admin_id: int, subject_id: int, class_id: int) -> None:
    if not crud.get_subject(db, admin_id, subject_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found or not accessible")
    if not crud.get_class(db, admin_id, class_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found or not accessible")


def _check_unique(db: Session, admin_id: int, subject_id: int, class_id: int, academic_year: str,
                  exclude_id: Optional[int] = None) -> None:
    if crud.find_active_syllabus(db, admin_id, subject_id, class_id, academic_year, exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Syllabus already exists for this subject, class, and academic year"
        )


def units_total_hours(units: List[dict]) -> float:
    """A unit's own total wins; otherwise its topics' estimated hours are summed."""
    total = 0.0
    for unit in units:
        hours = unit.get("total_hours") or sum(t.get("estimated_hours") or 0 for t in unit.get("topics", []))
        total += hours
    return total


def _syllabus_out(syllabus: Syllabus) -> schemas.SyllabusResponse:
    return schemas.SyllabusResponse.model_validate(syllabus)


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_syllabus(
    payload: schemas.SyllabusCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _check_subject_and_class(db, ctx.admin_id, payload.subject_id, payload.class_id)
    _check_unique(db, ctx.admin_id, payload.subject_id, payload.class_id, payload.academic_year)

    data = payload.model_dump()
    if data["total_hours"] is None:
        data["total_hours"] = units_total_hours(data["units"])
    syllabus = Syllabus(admin_id=ctx.admin_id, uploaded_by=ctx.user.id, **data)
    db.add(syllabus)
    db.commit()
    db.refresh(syllabus)
    log.info("Syllabus %s created for subject %s class %s (%s)",
             syllabus.id, syllabus.subject_id, syllabus.class_id, syllabus.academic_year)
    return {"success": True, "syllabus": _syllabus_out(syllabus)}


@router.get("/")
def list_syllabi(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    subject_id: Optional[int] = None,
    class_id: Optional[int] = None,
    academic_year: Optional[str] = None,
    language: Optional[Language] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Syllabus).filter(Syllabus.admin_id == ctx.admin_id, Syllabus.is_active == True)
    if subject_id is not None:
        query = query.filter(Syllabus.subject_id == subject_id)
    if class_id is not None:
        query = query.filter(Syllabus.class_id == class_id)
    if academic_year:
        query = query.filter(Syllabus.academic_year == academic_year)
    if language is not None:
        query = query.filter(Syllabus.language == language)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Syllabus.title.ilike(pattern), Syllabus.description.ilike(pattern)))
    syllabi, pagination = crud.paginate(
        query.order_by(Syllabus.academic_year.desc(), Syllabus.created_at.desc(), Syllabus.id.desc()), page, limit
    )
    return {"success": True, "syllabi": [_syllabus_out(s) for s in syllabi], "pagination": pagination}


@router.get("/statistics")
def syllabus_statistics(
    academic_year: Optional[str] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Syllabus).filter(Syllabus.admin_id == ctx.admin_id, Syllabus.is_active == True)
    if academic_year:
        query = query.filter(Syllabus.academic_year == academic_year)
    syllabi = query.all()
    return {
        "success": True,
        "statistics": {
            "total_syllabi": len(syllabi),
            "total_subjects": len({s.subject_id for s in syllabi}),
            "total_classes": len({s.class_id for s in syllabi}),
            "total_hours": sum(s.total_hours or 0 for s in syllabi),
            "language_distribution": dict(Counter(s.language.value for s in syllabi)),
            "academic_year_distribution": dict(Counter(s.academic_year for s in syllabi)),
        },
    }


@router.get("/subject/{subject_id}/class/{class_id}")
def get_syllabus_for_subject_and_class(
    subject_id: int,
    class_id: int,
    academic_year: Optional[str] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Latest active syllabus, or the one for the given academic year"""
    query = db.query(Syllabus).filter(
        Syllabus.admin_id == ctx.admin_id,
        Syllabus.subject_id == subject_id,
        Syllabus.class_id == class_id,
        Syllabus.is_active == True,
    )
    if academic_year:
        query = query.filter(Syllabus.academic_year == academic_year)
    syllabus = query.order_by(Syllabus.academic_year.desc(), Syllabus.version.desc()).first()
    if not syllabus:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Syllabus not found for this subject and class")
    return {"success": True, "syllabus": _syllabus_out(syllabus)}


@router.get("/{syllabus_id}")
def get_syllabus(
    syllabus_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"success": True, "syllabus": _syllabus_out(_get_syllabus_or_404(db, ctx.admin_id, syllabus_id))}


@router.put("/{syllabus_id}")
def update_syllabus(
    syllabus_id: int,
    payload: schemas.SyllabusUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    syllabus = _get_syllabus_or_404(db, ctx.admin_id, syllabus_id)
    data = payload.model_dump(exclude_unset=True)

    subject_id = data.get("subject_id") or syllabus.subject_id
    class_id = data.get("class_id") or syllabus.class_id
    academic_year = data.get("academic_year") or syllabus.academic_year
    if "subject_id" in data or "class_id" in data:
        _check_subject_and_class(db, ctx.admin_id, subject_id, class_id)
    _check_unique(db, ctx.admin_id, subject_id, class_id, academic_year, exclude_id=syllabus.id)

    if "units" in data and data.get("total_hours") is None:
        data["total_hours"] = units_total_hours(data["units"])
    for field, value in data.items():
        setattr(syllabus, field, value)
    db.commit()
    db.refresh(syllabus)
    return {"success": True, "syllabus": _syllabus_out(syllabus)}


@router.delete("/{syllabus_id}")
def delete_syllabus(
    syllabus_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    syllabus = _get_syllabus_or_404(db, ctx.admin_id, syllabus_id)
    syllabus.is_active = False
    db.commit()
    log.info("Syllabus %s deactivated", syllabus.id)
    return {"success": True, "message": "Syllabus deleted successfully"}


@router.post("/{syllabus_id}/upload")
async def upload_syllabus_file(
    syllabus_id: int,
    file: UploadFile = File(..., description="Syllabus document (PDF or Word)"),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Attach the syllabus document, replacing any earlier one"""
    syllabus = _get_syllabus_or_404(db, ctx.admin_id, syllabus_id)
    _, extension = file_storage.validate_file(file, file_storage.DOCUMENT_EXTENSIONS)

    file_name = f"syllabus-{syllabus.id}-{file_storage.timestamp()}.{extension}"
    path, size = await file_storage.save_upload_file(file, file_storage.SYLLABI_DIR, file_name)
    previous = syllabus.file_path
    syllabus.file_name = file_name
    syllabus.file_path = str(path)
    syllabus.file_url = file_storage.public_url(file_storage.SYLLABI_DIR, file_name)
    try:
        db.commit()
    except Exception:
        db.rollback()
        file_storage.delete_file(path)
        raise
    file_storage.delete_file(previous)
    db.refresh(syllabus)
    log.info("Syllabus %s file uploaded (%d bytes)", syllabus.id, size)
    return {"success": True, "syllabus": _syllabus_out(syllabus), "message": "Syllabus file uploaded successfully"}
