"""
In-app notifications raised by grading workflows.
Callers own the transaction: helpers add to the session and never commit.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from database.models import Notification, NotificationType, NotificationStatus, Priority

log = logging.getLogger(__name__)


def notify(
    db: Session,
    recipient_id: int,
    type: NotificationType,
    title: str,
    message: str,
    admin_id: Optional[int] = None,
    priority: Priority = Priority.MEDIUM,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
    metadata: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        admin_id=admin_id,
        recipient_id=recipient_id,
        type=type,
        priority=priority,
        status=NotificationStatus.UNREAD,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        notification_metadata=metadata or {},
    )
    db.add(notification)
    log.info("Notification %s → user %s (%s #%s)", type.value, recipient_id, related_entity_type, related_entity_id)
    return notification


def acknowledge_related(db: Session, related_entity_type: str, related_entity_id: int) -> int:
    """Mark every open notification about an entity as ACKNOWLEDGED; returns the count."""
    now = datetime.now(timezone.utc)
    notifications = db.query(Notification).filter(
        Notification.related_entity_type == related_entity_type,
        Notification.related_entity_id == related_entity_id,
        Notification.status.in_([NotificationStatus.UNREAD, NotificationStatus.READ]),
    ).all()
    for notification in notifications:
        notification.status = NotificationStatus.ACKNOWLEDGED
        notification.acknowledged_at = now
    return len(notifications)
