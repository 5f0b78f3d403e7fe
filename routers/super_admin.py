"""
Super admin API endpoints
Manage ADMIN (tenant) accounts
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_super_admin
from auth.security import hash_password
from database import crud, schemas
from database.database import get_db
from database.models import User, UserRole

log = logging.getLogger(__name__)

router = APIRouter(prefix="/super/admins", tags=["super-admin"])


def _get_admin_or_404(db: Session, admin_id: int) -> User:
    admin = db.query(User).filter(User.id == admin_id, User.role == UserRole.ADMIN).first()
    if not admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
    return admin


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: schemas.AdminCreate,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    admin = crud.create_user(db, payload.email, payload.password, payload.name, UserRole.ADMIN)
    db.commit()
    db.refresh(admin)
    log.info("Admin %s created", admin.email)
    return {"success": True, "admin": schemas.UserResponse.model_validate(admin)}


@router.get("/")
def list_admins(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    query = db.query(User).filter(User.role == UserRole.ADMIN)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    admins, pagination = crud.paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    return {
        "success": True,
        "admins": [schemas.UserResponse.model_validate(a) for a in admins],
        "pagination": pagination,
    }


@router.get("/{admin_id}")
def get_admin(
    admin_id: int,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return {"success": True, "admin": schemas.UserResponse.model_validate(_get_admin_or_404(db, admin_id))}


@router.put("/{admin_id}")
def update_admin(
    admin_id: int,
    payload: schemas.AdminUpdate,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    admin = _get_admin_or_404(db, admin_id)
    data = payload.model_dump(exclude_unset=True)

    if "email" in data and data["email"].lower() != admin.email:
        if crud.get_user_by_email(db, data["email"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        admin.email = data["email"].lower()
    if data.get("password"):
        admin.password_hash = hash_password(data["password"])
    if "name" in data:
        admin.name = data["name"]
    if data.get("is_active") is not None:
        admin.is_active = data["is_active"]

    db.commit()
    db.refresh(admin)
    return {"success": True, "admin": schemas.UserResponse.model_validate(admin)}


@router.delete("/{admin_id}")
def delete_admin(
    admin_id: int,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """Deactivate an admin; the tenant's data is kept."""
    admin = _get_admin_or_404(db, admin_id)
    admin.is_active = False
    db.commit()
    log.info("Admin %s deactivated", admin.email)
    return {"success": True, "message": "Admin deactivated successfully"}


@router.patch("/{admin_id}/activate")
def activate_admin(
    admin_id: int,
    _: AuthContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    admin = _get_admin_or_404(db, admin_id)
    admin.is_active = True
    db.commit()
    db.refresh(admin)
    return {"success": True, "admin": schemas.UserResponse.model_validate(admin)}
