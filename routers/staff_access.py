"""
Staff access API endpoints
Per-teacher grants on classes and subjects plus global permissions.
One active record per teacher.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_teacher
from database import crud, schemas
from database.database import get_db
from database.models import StaffAccess
from routers.subjects import resolve_classes
from routers.teachers import resolve_subjects

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/staff-access", tags=["staff-access"])
teacher_router = APIRouter(prefix="/teacher", tags=["teacher"])


def _validate_grants(db: Session, admin_id: int, class_access, subject_access) -> None:
    if class_access is not None:
        resolve_classes(db, admin_id, [grant.class_id for grant in class_access])
    if subject_access is not None:
        resolve_subjects(db, admin_id, [grant.subject_id for grant in subject_access])


def _get_access_or_404(db: Session, admin_id: int, access_id: int) -> StaffAccess:
    access = db.query(StaffAccess).filter(
        StaffAccess.id == access_id,
        StaffAccess.admin_id == admin_id,
        StaffAccess.is_active == True,
    ).first()
    if not access:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff access not found")
    return access


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_staff_access(
    payload: schemas.StaffAccessCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    teacher = crud.get_teacher_by_user(db, payload.staff_id)
    if not teacher or teacher.admin_id != ctx.admin_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
    if crud.get_active_staff_access(db, payload.staff_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Staff access already exists")
    _validate_grants(db, ctx.admin_id, payload.class_access, payload.subject_access)

    access = StaffAccess(
        admin_id=ctx.admin_id,
        staff_id=payload.staff_id,
        assigned_by=ctx.user.id,
        class_access=[grant.model_dump() for grant in payload.class_access],
        subject_access=[grant.model_dump() for grant in payload.subject_access],
        global_permissions=payload.global_permissions.model_dump(),
        expires_at=payload.expires_at,
        notes=payload.notes,
    )
    db.add(access)
    db.commit()
    db.refresh(access)
    log.info("Staff access %s granted to user %s", access.id, access.staff_id)
    return {"success": True, "staff_access": schemas.StaffAccessResponse.model_validate(access)}


@router.get("/")
def list_staff_access(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = True,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(StaffAccess).filter(StaffAccess.admin_id == ctx.admin_id)
    if is_active is not None:
        query = query.filter(StaffAccess.is_active == is_active)
    records, pagination = crud.paginate(query.order_by(StaffAccess.id.desc()), page, limit)
    return {
        "success": True,
        "staff_access": [schemas.StaffAccessResponse.model_validate(r) for r in records],
        "pagination": pagination,
    }


@router.get("/staff/{staff_id}")
def get_staff_access_by_staff(
    staff_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    access = crud.get_active_staff_access(db, staff_id)
    if not access or access.admin_id != ctx.admin_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff access not found")
    return {"success": True, "staff_access": schemas.StaffAccessResponse.model_validate(access)}


@router.put("/{access_id}")
def update_staff_access(
    access_id: int,
    payload: schemas.StaffAccessUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    access = _get_access_or_404(db, ctx.admin_id, access_id)
    _validate_grants(db, ctx.admin_id, payload.class_access, payload.subject_access)
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        setattr(access, field, value)
    db.commit()
    db.refresh(access)
    return {"success": True, "staff_access": schemas.StaffAccessResponse.model_validate(access)}


@router.delete("/{access_id}")
def delete_staff_access(
    access_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    access = _get_access_or_404(db, ctx.admin_id, access_id)
    access.is_active = False
    db.commit()
    log.info("Staff access %s revoked", access.id)
    return {"success": True, "message": "Staff access revoked successfully"}


# ─── Teacher view ──────────────────────────────────────────────────────────────

@teacher_router.get("/access")
def get_my_access(
    ctx: AuthContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """The caller's active, unexpired access record"""
    access = db.query(StaffAccess).filter(
        StaffAccess.staff_id == ctx.user.id,
        StaffAccess.is_active == True,
        or_(StaffAccess.expires_at == None, StaffAccess.expires_at > datetime.now(timezone.utc)),
    ).first()
    if not access:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active staff access found")
    return {"success": True, "staff_access": schemas.StaffAccessResponse.model_validate(access)}
