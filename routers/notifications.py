"""
Notification inbox for the signed-in user.
UNREAD → READ → ACKNOWLEDGED; DISMISSED hides a notification from the default list.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import get_current_user
from database import crud, schemas
from database.database import get_db
from database.models import Notification, NotificationStatus, NotificationType, User

log = logging.getLogger(__name__)

router = APIRouter(prefix="/teacher/notifications", tags=["notifications"])


def _get_notification_or_404(db: Session, user: User, notification_id: int) -> Notification:
    notification = crud.get_notification(db, user.id, notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


def _unread_count(db: Session, user: User) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == user.id,
        Notification.is_active == True,
        Notification.status == NotificationStatus.UNREAD,
    ).count()


@router.get("/")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[NotificationStatus] = Query(None, alias="status"),
    type_filter: Optional[NotificationType] = Query(None, alias="type"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Notification).filter(Notification.recipient_id == user.id, Notification.is_active == True)
    if status_filter is not None:
        query = query.filter(Notification.status == status_filter)
    else:
        query = query.filter(Notification.status != NotificationStatus.DISMISSED)
    if type_filter is not None:
        query = query.filter(Notification.type == type_filter)
    notifications, pagination = crud.paginate(
        query.order_by(Notification.created_at.desc(), Notification.id.desc()), page, limit
    )
    return {
        "success": True,
        "notifications": [schemas.NotificationResponse.model_validate(n) for n in notifications],
        "unread_count": _unread_count(db, user),
        "pagination": pagination,
    }


@router.patch("/read-all")
def mark_all_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    unread = db.query(Notification).filter(
        Notification.recipient_id == user.id,
        Notification.is_active == True,
        Notification.status == NotificationStatus.UNREAD,
    ).all()
    for notification in unread:
        notification.status = NotificationStatus.READ
        notification.read_at = now
    db.commit()
    return {"success": True, "updated": len(unread)}


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = _get_notification_or_404(db, user, notification_id)
    if notification.status == NotificationStatus.UNREAD:
        notification.status = NotificationStatus.READ
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return {"success": True, "notification": schemas.NotificationResponse.model_validate(notification)}


@router.patch("/{notification_id}/acknowledge")
def acknowledge(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = _get_notification_or_404(db, user, notification_id)
    if notification.status == NotificationStatus.DISMISSED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Notification has been dismissed")
    now = datetime.now(timezone.utc)
    notification.status = NotificationStatus.ACKNOWLEDGED
    notification.acknowledged_at = now
    notification.read_at = notification.read_at or now
    db.commit()
    db.refresh(notification)
    return {"success": True, "notification": schemas.NotificationResponse.model_validate(notification)}


@router.patch("/{notification_id}/dismiss")
def dismiss(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = _get_notification_or_404(db, user, notification_id)
    notification.status = NotificationStatus.DISMISSED
    notification.dismissed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(notification)
    return {"success": True, "notification": schemas.NotificationResponse.model_validate(notification)}
