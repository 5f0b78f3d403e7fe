"""
Question bank router.
Admins and teachers create, search and AI-generate questions for a
subject/class pair of their school. Deletion is admin only.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import Question, QuestionType, BloomsLevel, Difficulty
from generation.gpt_client import AI_ERRORS
from generation.question_generator import generate_bank_questions

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/questions", tags=["questions"])

CHOICE_TYPES = (QuestionType.CHOOSE_BEST_ANSWER, QuestionType.CHOOSE_MULTIPLE_ANSWERS)


def resolve_subject_and_class(db: Session, admin_id: int, subject_id: int, class_id: int):
    subject = crud.get_subject(db, admin_id, subject_id, active_only=True)
    if not subject:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found or not accessible")
    school_class = crud.get_class(db, admin_id, class_id, active_only=True)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found or not accessible")
    return subject, school_class


def check_options(question_type: QuestionType, options) -> None:
    if question_type in CHOICE_TYPES and len(options or []) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Choice questions need at least 2 options"
        )


def _get_question_or_404(db: Session, admin_id: int, question_id: int) -> Question:
    question = crud.get_question(db, admin_id, question_id)
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return question


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_question(
    payload: schemas.QuestionCreate,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    resolve_subject_and_class(db, ctx.admin_id, payload.subject_id, payload.class_id)
    check_options(payload.question_type, payload.options)
    question = crud.create_question(db, ctx.admin_id, ctx.user.id, payload.model_dump())
    db.commit()
    db.refresh(question)
    return {"success": True, "question": schemas.QuestionResponse.model_validate(question)}


@router.get("/")
def list_questions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject_id: Optional[int] = None,
    class_id: Optional[int] = None,
    question_type: Optional[QuestionType] = None,
    blooms_level: Optional[BloomsLevel] = None,
    difficulty: Optional[Difficulty] = None,
    unit: Optional[str] = None,
    search: Optional[str] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Question).filter(Question.admin_id == ctx.admin_id, Question.is_active == True)
    if subject_id is not None:
        query = query.filter(Question.subject_id == subject_id)
    if class_id is not None:
        query = query.filter(Question.class_id == class_id)
    if question_type is not None:
        query = query.filter(Question.question_type == question_type)
    if blooms_level is not None:
        query = query.filter(Question.blooms_level == blooms_level)
    if difficulty is not None:
        query = query.filter(Question.difficulty == difficulty)
    if unit:
        query = query.filter(Question.unit == unit)
    if search:
        query = query.filter(Question.question_text.ilike(f"%{search}%"))
    questions, pagination = crud.paginate(query.order_by(Question.id.desc()), page, limit)
    return {
        "success": True,
        "questions": [schemas.QuestionResponse.model_validate(q) for q in questions],
        "pagination": pagination,
    }


@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def generate_questions(
    payload: schemas.QuestionGenerateRequest,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """AI-generate `count` bank questions and store them."""
    subject, school_class = resolve_subject_and_class(db, ctx.admin_id, payload.subject_id, payload.class_id)
    try:
        generated = await generate_bank_questions(
            subject_name=subject.name,
            class_name=school_class.display_name,
            question_type=payload.question_type,
            blooms_level=payload.blooms_level,
            difficulty=payload.difficulty,
            marks=payload.marks,
            count=payload.count,
            unit=payload.unit,
            language=payload.language,
            custom_instructions=payload.custom_instructions,
        )
    except AI_ERRORS as e:
        log.error("Question generation failed for subject %s: %s", subject.id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI service error: {e}")

    questions = [
        crud.create_question(db, ctx.admin_id, ctx.user.id, {
            **g.model_dump(),
            "subject_id": subject.id,
            "class_id": school_class.id,
            "unit": payload.unit,
            "language": payload.language,
        })
        for g in generated
    ]
    db.commit()
    log.info("Generated %d question(s) for subject %s class %s", len(questions), subject.code, school_class.name)
    return {
        "success": True,
        "count": len(questions),
        "questions": [schemas.QuestionResponse.model_validate(q) for q in questions],
    }


@router.get("/statistics")
def question_statistics(
    subject_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Question counts by type, Bloom's level and difficulty"""
    base = db.query(Question).filter(Question.admin_id == ctx.admin_id, Question.is_active == True)
    if subject_id is not None:
        base = base.filter(Question.subject_id == subject_id)

    def _counts(column):
        rows = base.with_entities(column, func.count(Question.id)).group_by(column).all()
        return {value.value: count for value, count in rows}

    return {
        "success": True,
        "statistics": {
            "total": base.count(),
            "by_type": _counts(Question.question_type),
            "by_blooms_level": _counts(Question.blooms_level),
            "by_difficulty": _counts(Question.difficulty),
        },
    }


@router.get("/{question_id}")
def get_question(
    question_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    question = _get_question_or_404(db, ctx.admin_id, question_id)
    return {"success": True, "question": schemas.QuestionResponse.model_validate(question)}


@router.put("/{question_id}")
def update_question(
    question_id: int,
    payload: schemas.QuestionUpdate,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    question = _get_question_or_404(db, ctx.admin_id, question_id)
    data = payload.model_dump(exclude_unset=True)
    check_options(data.get("question_type") or question.question_type, data.get("options", question.options))
    for field, value in data.items():
        setattr(question, field, value)
    db.commit()
    db.refresh(question)
    return {"success": True, "question": schemas.QuestionResponse.model_validate(question)}


@router.delete("/{question_id}")
def delete_question(
    question_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    question = _get_question_or_404(db, ctx.admin_id, question_id)
    question.is_active = False
    db.commit()
    return {"success": True, "message": "Question deleted successfully"}
