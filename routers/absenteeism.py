"""
Absenteeism reports
Teachers report absent students, missing sheets and late submissions;
admins acknowledge, resolve or escalate them.
PENDING → ACKNOWLEDGED → RESOLVED, or ESCALATED at any point before RESOLVED.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import Absenteeism, AbsenteeismStatus, AbsenteeismType, Priority, NotificationType
from services.notification_service import notify

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/absenteeism", tags=["absenteeism"])


def _get_report_or_404(db: Session, admin_id: int, report_id: int) -> Absenteeism:
    report = crud.get_absenteeism(db, admin_id, report_id)
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Absenteeism report not found")
    return report


def _report_out(report: Absenteeism) -> schemas.AbsenteeismResponse:
    return schemas.AbsenteeismResponse.model_validate(report)


@router.post("/", status_code=status.HTTP_201_CREATED)
def report_absenteeism(
    payload: schemas.AbsenteeismCreate,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    exam = crud.get_exam(db, ctx.admin_id, payload.exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    if not crud.get_student_by_user(db, ctx.admin_id, payload.student_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    duplicate = db.query(Absenteeism).filter(
        Absenteeism.exam_id == payload.exam_id,
        Absenteeism.student_id == payload.student_id,
        Absenteeism.is_active == True,
    ).first()
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Absenteeism already reported for this student and exam"
        )

    report = Absenteeism(admin_id=ctx.admin_id, reported_by=ctx.user.id, **payload.model_dump())
    db.add(report)
    db.flush()
    notify(
        db, ctx.admin_id, NotificationType.ABSENT_STUDENT,
        title=f"Absenteeism reported: {payload.type.value}",
        message=f"Student {payload.student_id} reported as {payload.type.value} for {exam.title}.",
        admin_id=ctx.admin_id,
        priority=payload.priority,
        related_entity_type="Absenteeism",
        related_entity_id=report.id,
    )
    db.commit()
    db.refresh(report)
    log.info("Absenteeism %s reported for exam %s student %s", report.id, report.exam_id, report.student_id)
    return {"success": True, "absenteeism": _report_out(report)}


@router.get("/")
def list_absenteeism(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[AbsenteeismStatus] = Query(None, alias="status"),
    type_filter: Optional[AbsenteeismType] = Query(None, alias="type"),
    priority: Optional[Priority] = None,
    exam_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Absenteeism).filter(Absenteeism.admin_id == ctx.admin_id, Absenteeism.is_active == True)
    if status_filter is not None:
        query = query.filter(Absenteeism.status == status_filter)
    if type_filter is not None:
        query = query.filter(Absenteeism.type == type_filter)
    if priority is not None:
        query = query.filter(Absenteeism.priority == priority)
    if exam_id is not None:
        query = query.filter(Absenteeism.exam_id == exam_id)
    reports, pagination = crud.paginate(query.order_by(Absenteeism.id.desc()), page, limit)
    return {"success": True, "absenteeism": [_report_out(r) for r in reports], "pagination": pagination}


@router.get("/statistics")
def absenteeism_statistics(
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    base = db.query(Absenteeism).filter(Absenteeism.admin_id == ctx.admin_id, Absenteeism.is_active == True)

    def _counts(column):
        return {value.value: n for value, n in base.with_entities(column, func.count(Absenteeism.id)).group_by(column).all()}

    return {
        "success": True,
        "statistics": {
            "total": base.count(),
            "by_status": _counts(Absenteeism.status),
            "by_type": _counts(Absenteeism.type),
            "by_priority": _counts(Absenteeism.priority),
        },
    }


@router.get("/{report_id}")
def get_absenteeism(
    report_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"success": True, "absenteeism": _report_out(_get_report_or_404(db, ctx.admin_id, report_id))}


@router.put("/{report_id}")
def update_absenteeism(
    report_id: int,
    payload: schemas.AbsenteeismUpdate,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    report = _get_report_or_404(db, ctx.admin_id, report_id)
    if report.status == AbsenteeismStatus.RESOLVED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update resolved absenteeism report")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(report, field, value)
    db.commit()
    db.refresh(report)
    return {"success": True, "absenteeism": _report_out(report)}


@router.delete("/{report_id}")
def delete_absenteeism(
    report_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = _get_report_or_404(db, ctx.admin_id, report_id)
    report.is_active = False
    db.commit()
    return {"success": True, "message": "Absenteeism report deleted successfully"}


@router.post("/{report_id}/acknowledge")
def acknowledge_absenteeism(
    report_id: int,
    payload: schemas.AbsenteeismAcknowledge,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = _get_report_or_404(db, ctx.admin_id, report_id)
    if report.status != AbsenteeismStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Absenteeism report is not in pending status")
    report.status = AbsenteeismStatus.ACKNOWLEDGED
    report.acknowledged_by = ctx.user.id
    report.acknowledged_at = datetime.now(timezone.utc)
    if payload.remarks:
        report.remarks = payload.remarks
    db.commit()
    db.refresh(report)
    return {"success": True, "absenteeism": _report_out(report)}


@router.post("/{report_id}/resolve")
def resolve_absenteeism(
    report_id: int,
    payload: schemas.AbsenteeismResolve,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = _get_report_or_404(db, ctx.admin_id, report_id)
    if report.status == AbsenteeismStatus.RESOLVED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Absenteeism report is already resolved")
    report.status = AbsenteeismStatus.RESOLVED
    report.resolution = payload.resolution
    report.resolved_by = ctx.user.id
    report.resolved_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(report)
    log.info("Absenteeism %s resolved", report.id)
    return {"success": True, "absenteeism": _report_out(report)}


@router.post("/{report_id}/escalate")
def escalate_absenteeism(
    report_id: int,
    payload: schemas.AbsenteeismEscalate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = _get_report_or_404(db, ctx.admin_id, report_id)
    if report.status == AbsenteeismStatus.RESOLVED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot escalate resolved absenteeism report")
    escalated_to = payload.escalated_to or ctx.admin_id
    recipient = crud.get_user(db, escalated_to)
    if recipient is None or crud.tenant_id_for(db, recipient) != ctx.admin_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Escalation recipient not found")

    report.status = AbsenteeismStatus.ESCALATED
    report.escalated_to = escalated_to
    report.escalated_at = datetime.now(timezone.utc)
    report.escalation_reason = payload.escalation_reason
    report.priority = Priority.URGENT
    notify(
        db, escalated_to, NotificationType.SYSTEM_ALERT,
        title="Absenteeism report escalated",
        message=payload.escalation_reason,
        admin_id=ctx.admin_id,
        priority=Priority.URGENT,
        related_entity_type="Absenteeism",
        related_entity_id=report.id,
    )
    db.commit()
    db.refresh(report)
    log.warning("Absenteeism %s escalated to user %s", report.id, escalated_to)
    return {"success": True, "absenteeism": _report_out(report)}
