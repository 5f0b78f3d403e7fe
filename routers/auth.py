"""
Authentication router.
Single login for every role; JWT returned in the body and sent back as Bearer token.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, get_auth_context
from auth.security import verify_password, create_user_token
from database import crud, schemas
from database.database import get_db

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=schemas.LoginResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        log.warning("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Your account is deactivated")

    token = create_user_token(user, crud.tenant_id_for(db, user))
    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return schemas.LoginResponse(token=token, user=schemas.TokenUser.model_validate(user))


@router.get("/me")
def get_me(ctx: AuthContext = Depends(get_auth_context)):
    return {
        "success": True,
        "user": schemas.UserResponse.model_validate(ctx.user),
        "admin_id": ctx.admin_id,
        "teacher": schemas.TeacherResponse.model_validate(ctx.teacher) if ctx.teacher else None,
    }
