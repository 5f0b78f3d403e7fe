"""
Exam API endpoints
Exams belong to one class and cover one or more subjects.
Status: SCHEDULED on creation → ONGOING (start) → COMPLETED (end).
Updates may only move an exam between DRAFT, SCHEDULED and CANCELLED.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import Absenteeism, AnswerSheet, Exam, ExamStatus, ExamType, Subject

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/exams", tags=["exams"])

PROGRESS_STATUSES = (ExamStatus.ONGOING, ExamStatus.COMPLETED)
PASS_PERCENTAGE = 40


def _get_exam_or_404(db: Session, admin_id: int, exam_id: int) -> Exam:
    exam = crud.get_exam(db, admin_id, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return exam


def _resolve_exam_scope(db: Session, admin_id: int, class_id: int, subject_ids: List[int]) -> List[Subject]:
    """Class and subjects must be the tenant's, and each subject taught in the class."""
    if not crud.get_class(db, admin_id, class_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found or not accessible")
    unique_ids = list(dict.fromkeys(subject_ids))
    subjects = crud.get_subjects_by_ids(db, admin_id, unique_ids)
    if len(subjects) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found or not accessible")
    for subject in subjects:
        if not crud.subject_available_for_class(subject, class_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Subject {subject.name} is not available for this class"
            )
    return subjects


def sheet_summary(sheet: AnswerSheet) -> dict:
    result = sheet.ai_correction_results or {}
    return {
        "answer_sheet_id": sheet.id,
        "student_id": sheet.student_id,
        "student_name": sheet.student.name if sheet.student else None,
        "status": sheet.status.value,
        "obtained_marks": result.get("obtained_marks"),
        "total_marks": result.get("total_marks"),
        "percentage": result.get("percentage"),
    }


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_exam(
    payload: schemas.ExamCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subjects = _resolve_exam_scope(db, ctx.admin_id, payload.class_id, payload.subject_ids)
    data = payload.model_dump(exclude={"subject_ids"})
    data["scheduled_date"] = data["scheduled_date"] or datetime.now(timezone.utc)
    exam = Exam(
        admin_id=ctx.admin_id,
        created_by=ctx.user.id,
        status=ExamStatus.SCHEDULED,
        **data,
    )
    exam.subjects = subjects
    db.add(exam)
    db.commit()
    db.refresh(exam)
    log.info("Exam %r created for class %s (admin %s)", exam.title, exam.class_id, ctx.admin_id)
    return {"success": True, "exam": schemas.ExamResponse.model_validate(exam)}


@router.get("/")
def list_exams(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[ExamStatus] = Query(None, alias="status"),
    class_id: Optional[int] = None,
    exam_type: Optional[ExamType] = None,
    subject_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Exam).filter(Exam.admin_id == ctx.admin_id, Exam.is_active == True)
    if status_filter is not None:
        query = query.filter(Exam.status == status_filter)
    if class_id is not None:
        query = query.filter(Exam.class_id == class_id)
    if exam_type is not None:
        query = query.filter(Exam.exam_type == exam_type)
    if subject_id is not None:
        query = query.filter(Exam.subjects.any(Subject.id == subject_id))
    exams, pagination = crud.paginate(query.order_by(Exam.created_at.desc(), Exam.id.desc()), page, limit)
    return {
        "success": True,
        "exams": [schemas.ExamResponse.model_validate(e) for e in exams],
        "pagination": pagination,
    }


@router.get("/statistics")
def exam_statistics(
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    base = db.query(Exam).filter(Exam.admin_id == ctx.admin_id, Exam.is_active == True)
    by_status = base.with_entities(Exam.status, func.count(Exam.id)).group_by(Exam.status).all()
    by_type = base.with_entities(Exam.exam_type, func.count(Exam.id)).group_by(Exam.exam_type).all()
    return {
        "success": True,
        "statistics": {
            "total": base.count(),
            "by_status": {s.value: n for s, n in by_status},
            "by_type": {t.value: n for t, n in by_type},
        },
    }


@router.get("/{exam_id}")
def get_exam(
    exam_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    return {"success": True, "exam": schemas.ExamResponse.model_validate(exam)}


@router.put("/{exam_id}")
def update_exam(
    exam_id: int,
    payload: schemas.ExamUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    if exam.status == ExamStatus.COMPLETED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update a completed exam")

    data = payload.model_dump(exclude_unset=True)
    if data.get("status") in PROGRESS_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use the start and end endpoints to change exam progress"
        )
    if "class_id" in data or "subject_ids" in data:
        class_id = data.get("class_id") or exam.class_id
        subject_ids = data.pop("subject_ids", None) or exam.subject_ids
        exam.subjects = _resolve_exam_scope(db, ctx.admin_id, class_id, subject_ids)

    for field, value in data.items():
        setattr(exam, field, value)
    db.commit()
    db.refresh(exam)
    return {"success": True, "exam": schemas.ExamResponse.model_validate(exam)}


@router.delete("/{exam_id}")
def delete_exam(
    exam_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    exam.is_active = False
    db.commit()
    log.info("Exam %s deactivated", exam.id)
    return {"success": True, "message": "Exam deleted successfully"}


@router.post("/{exam_id}/start")
def start_exam(
    exam_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    if exam.status != ExamStatus.SCHEDULED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Exam is not in scheduled status")
    exam.status = ExamStatus.ONGOING
    exam.end_date = datetime.now(timezone.utc) + timedelta(minutes=exam.duration)
    db.commit()
    db.refresh(exam)
    log.info("Exam %s started, ends at %s", exam.id, exam.end_date)
    return {"success": True, "exam": schemas.ExamResponse.model_validate(exam)}


@router.post("/{exam_id}/end")
def end_exam(
    exam_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    if exam.status != ExamStatus.ONGOING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Exam is not currently ongoing")
    exam.status = ExamStatus.COMPLETED
    exam.end_date = datetime.now(timezone.utc)
    db.commit()
    db.refresh(exam)
    log.info("Exam %s completed", exam.id)
    return {"success": True, "exam": schemas.ExamResponse.model_validate(exam)}


@router.get("/{exam_id}/results")
def exam_results(
    exam_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Per-student answer sheet summary plus aggregates over graded sheets"""
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    sheets = db.query(AnswerSheet).filter(
        AnswerSheet.exam_id == exam.id, AnswerSheet.is_active == True
    ).order_by(AnswerSheet.student_id).all()
    results = [sheet_summary(s) for s in sheets]
    scores = [r["percentage"] for r in results if r["percentage"] is not None]
    return {
        "success": True,
        "exam": schemas.ExamResponse.model_validate(exam),
        "results": results,
        "summary": {
            "total_sheets": len(results),
            "graded": len(scores),
            "average_percentage": round(sum(scores) / len(scores), 2) if scores else None,
            "highest_percentage": max(scores) if scores else None,
            "lowest_percentage": min(scores) if scores else None,
        },
    }


@router.get("/{exam_id}/statistics")
def exam_detail_statistics(
    exam_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Answer sheet and absenteeism aggregates for one exam"""
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    sheets = db.query(AnswerSheet).filter(AnswerSheet.exam_id == exam.id, AnswerSheet.is_active == True).all()
    by_status = Counter(s.status.value for s in sheets)
    scores = [
        s.ai_correction_results["percentage"] for s in sheets
        if s.ai_correction_results and s.ai_correction_results.get("percentage") is not None
    ]
    passed = sum(1 for p in scores if p >= PASS_PERCENTAGE)
    absences = db.query(Absenteeism.status, func.count(Absenteeism.id)).filter(
        Absenteeism.exam_id == exam.id, Absenteeism.is_active == True
    ).group_by(Absenteeism.status).all()
    return {
        "success": True,
        "statistics": {
            "exam_id": exam.id,
            "total_sheets": len(sheets),
            "by_status": dict(by_status),
            "graded": len(scores),
            "average_percentage": round(sum(scores) / len(scores), 2) if scores else None,
            "highest_percentage": max(scores) if scores else None,
            "lowest_percentage": min(scores) if scores else None,
            "passed": passed,
            "pass_percentage": round(passed * 100 / len(scores), 2) if scores else 0.0,
            "absent": sum(1 for s in sheets if s.is_absent),
            "missing": sum(1 for s in sheets if s.is_missing),
            "absenteeism_by_status": {s.value: n for s, n in absences},
        },
    }
