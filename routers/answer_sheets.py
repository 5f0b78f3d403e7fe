"""
Answer sheet API endpoints

Upload scanned sheets, flag missing / absent students, run the AI checker
against the exam's question paper and record manual overrides.
Status: UPLOADED → AI_CORRECTED → MANUALLY_REVIEWED → COMPLETED (or MISSING / ABSENT)
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import (
    AnswerSheet, AnswerSheetStatus, Exam, Language, NotificationType, Priority,
)
from generation.answer_checker import apply_override, check_answers
from generation.gpt_client import AI_ERRORS
from generation.schemas import CorrectionResult
from services import file_storage
from services.notification_service import acknowledge_related, notify

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/answer-sheets", tags=["answer-sheets"])

ENTITY = "AnswerSheet"
CHECKED_STATUSES = (
    AnswerSheetStatus.AI_CORRECTED, AnswerSheetStatus.MANUALLY_REVIEWED, AnswerSheetStatus.COMPLETED,
)
REVIEWABLE_STATUSES = (AnswerSheetStatus.AI_CORRECTED, AnswerSheetStatus.MANUALLY_REVIEWED)


# ─── Helpers ───────────────────────────────────────────────────────────────────

def _get_sheet_or_404(db: Session, admin_id: int, sheet_id: int) -> AnswerSheet:
    sheet = crud.get_answer_sheet(db, admin_id, sheet_id)
    if not sheet:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Answer sheet not found")
    return sheet


def _get_exam_or_404(db: Session, admin_id: int, exam_id: int) -> Exam:
    exam = crud.get_exam(db, admin_id, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return exam


def _check_teacher_class(ctx: AuthContext, exam: Exam) -> None:
    """Teachers may only handle sheets of classes they are assigned to."""
    if ctx.teacher is not None and exam.class_id not in ctx.teacher.class_ids:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not assigned to this class")


def _check_student_in_exam(db: Session, admin_id: int, exam: Exam, student_user_id: int) -> None:
    student = crud.get_student_by_user(db, admin_id, student_user_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    if student.class_id != exam.class_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Student is not in the exam's class")


def _sheet_out(sheet: AnswerSheet) -> schemas.AnswerSheetResponse:
    return schemas.AnswerSheetResponse.model_validate(sheet)


# ─── Upload / listing ──────────────────────────────────────────────────────────

@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_answer_sheet(
    exam_id: int = Form(..., description="Exam ID"),
    student_id: int = Form(..., description="Student user ID"),
    language: Language = Form(Language.ENGLISH),
    file: UploadFile = File(..., description="Scanned answer sheet (PDF or image)"),
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    _check_student_in_exam(db, ctx.admin_id, exam, student_id)
    _check_teacher_class(ctx, exam)
    if crud.get_answer_sheet_for(db, exam.id, student_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Answer sheet already exists for this student and exam"
        )

    original_name, extension = file_storage.validate_file(file, file_storage.SCAN_EXTENSIONS)
    file_name = f"answer-sheet-{exam.id}-{student_id}-{file_storage.timestamp()}.{extension}"
    path, size = await file_storage.save_upload_file(file, file_storage.ANSWER_SHEETS_DIR, file_name)

    sheet = AnswerSheet(
        admin_id=ctx.admin_id,
        exam_id=exam.id,
        student_id=student_id,
        uploaded_by=ctx.user.id,
        original_file_name=original_name,
        file_path=str(path),
        file_url=file_storage.public_url(file_storage.ANSWER_SHEETS_DIR, file_name),
        status=AnswerSheetStatus.UPLOADED,
        language=language,
        manual_overrides=[],
    )
    db.add(sheet)
    try:
        db.commit()
    except Exception:
        db.rollback()
        file_storage.delete_file(path)
        raise
    db.refresh(sheet)
    log.info("Answer sheet %s uploaded for exam %s student %s (%d bytes)", sheet.id, exam.id, student_id, size)
    return {"success": True, "answer_sheet": _sheet_out(sheet)}


@router.get("/exam/{exam_id}")
def list_answer_sheets_for_exam(
    exam_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status_filter: Optional[AnswerSheetStatus] = Query(None, alias="status"),
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    exam = _get_exam_or_404(db, ctx.admin_id, exam_id)
    query = db.query(AnswerSheet).filter(AnswerSheet.exam_id == exam.id, AnswerSheet.is_active == True)
    if status_filter is not None:
        query = query.filter(AnswerSheet.status == status_filter)
    sheets, pagination = crud.paginate(query.order_by(AnswerSheet.student_id), page, limit)
    return {"success": True, "answer_sheets": [_sheet_out(s) for s in sheets], "pagination": pagination}


@router.post("/absent", status_code=status.HTTP_201_CREATED)
def mark_student_absent(
    payload: schemas.MarkAbsentRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Record an absent student; creates the sheet row when none exists"""
    exam = _get_exam_or_404(db, ctx.admin_id, payload.exam_id)
    _check_student_in_exam(db, ctx.admin_id, exam, payload.student_id)
    _check_teacher_class(ctx, exam)

    sheet = crud.get_answer_sheet_for(db, exam.id, payload.student_id)
    if sheet is None:
        sheet = AnswerSheet(
            admin_id=ctx.admin_id,
            exam_id=exam.id,
            student_id=payload.student_id,
            uploaded_by=ctx.user.id,
            manual_overrides=[],
        )
        db.add(sheet)
    elif sheet.status in CHECKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has already been checked")
    sheet.status = AnswerSheetStatus.ABSENT
    sheet.is_absent = True
    sheet.absent_reason = payload.reason
    db.flush()

    notify(
        db, ctx.admin_id, NotificationType.ABSENT_STUDENT,
        title="Student marked absent",
        message=f"Student {payload.student_id} was marked absent for {exam.title}.",
        admin_id=ctx.admin_id,
        related_entity_type=ENTITY,
        related_entity_id=sheet.id,
        metadata={"exam_id": exam.id, "student_id": payload.student_id, "reason": payload.reason},
    )
    db.commit()
    db.refresh(sheet)
    log.info("Student %s marked absent for exam %s", payload.student_id, exam.id)
    return {"success": True, "answer_sheet": _sheet_out(sheet)}


@router.get("/{sheet_id}")
def get_answer_sheet(
    sheet_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"success": True, "answer_sheet": _sheet_out(_get_sheet_or_404(db, ctx.admin_id, sheet_id))}


# ─── Missing / acknowledge ─────────────────────────────────────────────────────

@router.post("/{sheet_id}/missing")
def mark_answer_sheet_missing(
    sheet_id: int,
    payload: schemas.ReasonRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    _check_teacher_class(ctx, sheet.exam)
    if sheet.status in CHECKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has already been checked")
    sheet.status = AnswerSheetStatus.MISSING
    sheet.is_missing = True
    sheet.missing_reason = payload.reason

    notify(
        db, ctx.admin_id, NotificationType.MISSING_ANSWER_SHEET,
        title="Answer sheet missing",
        message=f"The answer sheet of student {sheet.student_id} for {sheet.exam.title} is missing.",
        admin_id=ctx.admin_id,
        priority=Priority.HIGH,
        related_entity_type=ENTITY,
        related_entity_id=sheet.id,
        metadata={"exam_id": sheet.exam_id, "student_id": sheet.student_id, "reason": payload.reason},
    )
    db.commit()
    db.refresh(sheet)
    log.warning("Answer sheet %s marked missing", sheet.id)
    return {"success": True, "answer_sheet": _sheet_out(sheet)}


@router.post("/{sheet_id}/acknowledge")
def acknowledge_answer_sheet(
    sheet_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    sheet.acknowledged_by = ctx.user.id
    sheet.acknowledged_at = datetime.now(timezone.utc)
    acknowledged = acknowledge_related(db, ENTITY, sheet.id)
    db.commit()
    db.refresh(sheet)
    return {"success": True, "answer_sheet": _sheet_out(sheet), "notifications_acknowledged": acknowledged}


# ─── AI checking ───────────────────────────────────────────────────────────────

def _check_gradable(sheet: AnswerSheet) -> None:
    if sheet.status in (AnswerSheetStatus.MISSING, AnswerSheetStatus.ABSENT):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot check a missing or absent answer sheet")


async def _grade_sheet(
    db: Session, ctx: AuthContext, sheet: AnswerSheet, answers: Dict[int, str], language: Optional[Language],
) -> CorrectionResult:
    """Grade against the exam's question paper and store the results; the caller commits"""
    paper = None
    if sheet.exam.question_paper_id:
        paper = crud.get_question_paper(db, ctx.admin_id, sheet.exam.question_paper_id)
    if paper is None or not paper.question_links:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No question paper found for this exam")

    language = language or sheet.language
    try:
        result = await check_answers(paper.questions, answers, language.value)
    except AI_ERRORS as e:
        log.error("AI check failed for answer sheet %s: %s", sheet.id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI service error: {e}")

    sheet.ai_correction_results = result.model_dump()
    sheet.confidence = result.confidence
    sheet.status = AnswerSheetStatus.AI_CORRECTED
    sheet.language = language
    sheet.processed_at = datetime.now(timezone.utc)

    needs_review = result.status != "SUCCESS"
    notify(
        db, sheet.uploaded_by or ctx.user.id,
        NotificationType.MANUAL_REVIEW_REQUIRED if needs_review else NotificationType.AI_CORRECTION_COMPLETE,
        title="Manual review required" if needs_review else "AI correction complete",
        message=(
            f"Student {sheet.student_id} scored {result.obtained_marks:g}/{result.total_marks:g} "
            f"({result.percentage}%) in {sheet.exam.title}."
        ),
        admin_id=ctx.admin_id,
        priority=Priority.HIGH if needs_review else Priority.MEDIUM,
        related_entity_type=ENTITY,
        related_entity_id=sheet.id,
        metadata={"status": result.status, "confidence": result.confidence},
    )
    log.info("Answer sheet %s AI-checked: %s (%.2f%%)", sheet.id, result.status, result.percentage)
    return result


@router.post("/batch-ai-check")
async def batch_ai_check(
    payload: schemas.BatchAiCheckRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Grade several sheets in one request.

    Every sheet must exist and be accessible before any is graded; after that
    a sheet that cannot be graded is reported in `errors` and the rest go on.
    """
    ids = [item.answer_sheet_id for item in payload.sheets]
    if len(set(ids)) != len(ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate answer sheet IDs")
    sheets = {}
    for sheet_id in ids:
        sheet = crud.get_answer_sheet(db, ctx.admin_id, sheet_id)
        if not sheet:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Answer sheet {sheet_id} not found")
        _check_teacher_class(ctx, sheet.exam)
        sheets[sheet_id] = sheet

    results, errors = [], []
    for item in payload.sheets:
        sheet = sheets[item.answer_sheet_id]
        try:
            if sheet.status in CHECKED_STATUSES:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has already been checked")
            _check_gradable(sheet)
            result = await _grade_sheet(db, ctx, sheet, item.answers, item.language)
        except HTTPException as e:
            errors.append({"answer_sheet_id": sheet.id, "error": e.detail})
            continue
        results.append({
            "answer_sheet_id": sheet.id,
            "status": result.status,
            "obtained_marks": result.obtained_marks,
            "total_marks": result.total_marks,
            "percentage": result.percentage,
        })
    db.commit()
    log.info("Batch AI check: %d graded, %d failed", len(results), len(errors))
    return {"success": True, "processed": len(results), "results": results, "errors": errors}


@router.post("/{sheet_id}/ai-check")
async def ai_check_answer_sheet(
    sheet_id: int,
    payload: schemas.AiCheckRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Grade the sheet's answers against the exam's question paper"""
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    _check_teacher_class(ctx, sheet.exam)
    if sheet.status in CHECKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has already been checked")
    _check_gradable(sheet)

    result = await _grade_sheet(db, ctx, sheet, payload.answers, payload.language)
    db.commit()
    db.refresh(sheet)
    return {"success": True, "answer_sheet": _sheet_out(sheet), "results": result}


@router.post("/{sheet_id}/ai-recheck")
async def ai_recheck_answer_sheet(
    sheet_id: int,
    payload: schemas.AiCheckRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Grade a checked sheet again; earlier manual overrides are discarded"""
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    _check_teacher_class(ctx, sheet.exam)
    _check_gradable(sheet)
    if sheet.status == AnswerSheetStatus.COMPLETED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet is already completed")
    if sheet.status not in CHECKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has not been AI-checked yet")

    result = await _grade_sheet(db, ctx, sheet, payload.answers, payload.language)
    sheet.manual_overrides = []
    db.commit()
    db.refresh(sheet)
    return {"success": True, "answer_sheet": _sheet_out(sheet), "results": result}


@router.get("/{sheet_id}/ai-results")
def get_ai_results(
    sheet_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    if not sheet.ai_correction_results:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI results not available for this answer sheet")
    return {
        "success": True,
        "results": sheet.ai_correction_results,
        "manual_overrides": sheet.manual_overrides or [],
        "status": sheet.status.value,
    }


@router.post("/{sheet_id}/manual-override")
def manual_override(
    sheet_id: int,
    payload: schemas.ManualOverrideRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    _check_teacher_class(ctx, sheet.exam)
    if not sheet.ai_correction_results:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet has not been AI-checked yet")
    if sheet.status == AnswerSheetStatus.COMPLETED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer sheet is already completed")

    # JSON columns are not mutation-tracked
    results = copy.deepcopy(sheet.ai_correction_results)
    row = next(
        (r for r in results.get("question_wise_results", []) if r.get("question_number") == payload.question_number),
        None,
    )
    original_marks = row.get("marks_obtained") if row else None
    try:
        results = apply_override(results, payload.question_number, payload.corrected_marks)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Question {payload.question_number} not found in AI results"
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    sheet.ai_correction_results = results
    sheet.manual_overrides = [*(sheet.manual_overrides or []), {
        "question_number": payload.question_number,
        "original_marks": original_marks,
        "corrected_marks": payload.corrected_marks,
        "reason": payload.reason,
        "overridden_by": ctx.user.id,
        "overridden_at": datetime.now(timezone.utc).isoformat(),
    }]
    sheet.status = AnswerSheetStatus.MANUALLY_REVIEWED
    db.commit()
    db.refresh(sheet)
    log.info("Answer sheet %s Q%d overridden: %s → %s", sheet.id, payload.question_number, original_marks, payload.corrected_marks)
    return {"success": True, "answer_sheet": _sheet_out(sheet)}


@router.post("/{sheet_id}/complete")
def complete_answer_sheet(
    sheet_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sheet = _get_sheet_or_404(db, ctx.admin_id, sheet_id)
    _check_teacher_class(ctx, sheet.exam)
    if sheet.status not in REVIEWABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Answer sheet must be checked before completion"
        )
    sheet.status = AnswerSheetStatus.COMPLETED
    sheet.completed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(sheet)
    return {"success": True, "answer_sheet": _sheet_out(sheet)}
