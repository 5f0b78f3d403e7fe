"""
FastAPI auth dependencies.
Bearer JWT → active User → AuthContext (user, tenant admin_id, teacher profile).
Role gates are built with require_roles(...).
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from auth.security import decode_token
from database import crud
from database.database import get_db
from database.models import User, UserRole, Teacher

_bearer = HTTPBearer(auto_error=False)

ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)
STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.TEACHER)


@dataclass
class AuthContext:
    user: User
    admin_id: Optional[int]
    teacher: Optional[Teacher] = None

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.role in ADMIN_ROLES


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Your account is deactivated")
    return user


def get_auth_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AuthContext:
    teacher = crud.get_teacher_by_user(db, user.id) if user.role == UserRole.TEACHER else None
    return AuthContext(user=user, admin_id=crud.tenant_id_for(db, user), teacher=teacher)


def require_roles(*roles: UserRole):
    """Dependency factory: 403 unless the caller holds one of the roles."""
    def _check(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        if ctx.admin_id is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not attached to a school")
        return ctx
    return _check


require_super_admin = require_roles(UserRole.SUPER_ADMIN)
require_admin = require_roles(*ADMIN_ROLES)
require_staff = require_roles(*STAFF_ROLES)
require_teacher = require_roles(UserRole.TEACHER)
