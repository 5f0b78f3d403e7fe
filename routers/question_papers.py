"""
Question paper API endpoints

Lifecycle: DRAFT → GENERATED → PUBLISHED → ARCHIVED
  - create stores the blueprint (mark / Bloom's / question-type distributions)
  - generate-ai asks the generator for questions and renders the PDF
  - upload-pdf replaces generation with a teacher-supplied PDF
  - publish / archive are single status checks
"""

import logging
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import QuestionPaper, PaperStatus, PaperType, Question
from generation.gpt_client import AI_ERRORS
from generation.paper_exporter import export_question_paper
from generation.paper_generator import MARK_CATEGORIES, generate_questions
from generation.schemas import PaperContext
from routers.questions import check_options, resolve_subject_and_class
from services import file_storage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/question-papers", tags=["question-papers"])

PERCENT_TOLERANCE = 0.01
LOCKED_STATUSES = (PaperStatus.PUBLISHED, PaperStatus.ARCHIVED)


# ─── Validation ────────────────────────────────────────────────────────────────

def validate_blueprint(
    mark_distribution: schemas.MarkDistribution,
    blooms_distribution,
    question_type_distribution: schemas.QuestionTypeDistribution,
) -> dict:
    """Check the paper blueprint; returns the mark distribution with total_marks filled in."""
    blooms_total = sum(share.percentage for share in blooms_distribution)
    if abs(blooms_total - 100) > PERCENT_TOLERANCE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Blooms taxonomy percentages must add up to 100%"
        )

    for key, _, label in MARK_CATEGORIES:
        shares = getattr(question_type_distribution, key)
        if not shares:
            continue
        type_total = sum(share.percentage for share in shares)
        if abs(type_total - 100) > PERCENT_TOLERANCE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Question type percentages for {label} must add up to 100%. Current total: {type_total:g}%"
            )

    weighted = mark_distribution.weighted_marks
    if weighted == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one question is required")
    total = mark_distribution.total_marks or weighted
    if weighted > total:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Weighted marks ({weighted}) exceed total marks ({total})"
        )
    if total == 100 and weighted != 100:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Weighted marks must equal 100 for a 100-mark paper. Current: {weighted}"
        )
    return {**mark_distribution.model_dump(), "total_marks": total}


# ─── Helpers ───────────────────────────────────────────────────────────────────

def _get_paper_or_404(db: Session, admin_id: int, paper_id: int) -> QuestionPaper:
    paper = crud.get_question_paper(db, admin_id, paper_id)
    if not paper:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question paper not found")
    return paper


def _paper_out(paper: QuestionPaper, detail: bool = False):
    if detail:
        return schemas.QuestionPaperDetail.model_validate(paper)
    return schemas.QuestionPaperResponse.model_validate(paper)


def _ensure_questions_editable(paper: QuestionPaper) -> None:
    if paper.status in LOCKED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot modify questions of a {paper.status.value.lower()} question paper"
        )


def paper_context(paper: QuestionPaper) -> PaperContext:
    settings = paper.ai_settings or {}
    return PaperContext(
        paper_id=paper.id,
        title=paper.title,
        exam_title=paper.exam.title if paper.exam else paper.title,
        subject_name=paper.subject.name,
        class_name=paper.school_class.display_name,
        duration=paper.exam.duration if paper.exam else None,
        total_marks=int((paper.mark_distribution or {}).get("total_marks") or 0),
        mark_distribution=paper.mark_distribution or {},
        blooms_distribution=paper.blooms_distribution or [],
        question_type_distribution=paper.question_type_distribution or {},
        difficulty_level=settings.get("difficulty_level") or "MODERATE",
        twisted_questions_percentage=settings.get("twisted_questions_percentage") or 0,
        custom_instructions=settings.get("custom_instructions"),
        use_subject_book=bool(settings.get("use_subject_book")),
    )


def _render_pdf(paper: QuestionPaper) -> None:
    """Render the paper's questions and replace any previously stored PDF."""
    previous = paper.generated_pdf or {}
    paper.generated_pdf = export_question_paper(paper_context(paper), paper.questions)
    file_storage.delete_file(previous.get("file_path"))


def create_paper(db: Session, ctx: AuthContext, payload: schemas.QuestionPaperCreate) -> QuestionPaper:
    exam = crud.get_exam(db, ctx.admin_id, payload.exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    if crud.get_active_paper_for_exam(db, exam.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A question paper already exists for this exam"
        )
    subject, _ = resolve_subject_and_class(db, ctx.admin_id, payload.subject_id, payload.class_id)
    if not crud.subject_available_for_class(subject, payload.class_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Subject is not available for the selected class"
        )
    mark_distribution = validate_blueprint(
        payload.mark_distribution, payload.blooms_distribution, payload.question_type_distribution
    )

    paper = QuestionPaper(
        admin_id=ctx.admin_id,
        title=payload.title,
        description=payload.description,
        exam_id=exam.id,
        subject_id=payload.subject_id,
        class_id=payload.class_id,
        created_by=ctx.user.id,
        type=PaperType.AI_GENERATED,
        status=PaperStatus.DRAFT,
        mark_distribution=mark_distribution,
        blooms_distribution=[share.model_dump(mode="json") for share in payload.blooms_distribution],
        question_type_distribution=payload.question_type_distribution.model_dump(mode="json"),
        ai_settings=payload.ai_settings.model_dump(mode="json"),
    )
    db.add(paper)
    db.flush()
    exam.question_paper_id = paper.id
    return paper


async def generate_paper(db: Session, ctx: AuthContext, paper: QuestionPaper) -> None:
    """Generate questions with the AI, store them in order and render the PDF."""
    try:
        generated = await generate_questions(paper_context(paper))
    except AI_ERRORS as e:
        log.error("Question paper %s generation failed: %s", paper.id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI service error: {e}")

    questions = [
        crud.create_question(db, ctx.admin_id, ctx.user.id, {
            **g.model_dump(),
            "subject_id": paper.subject_id,
            "class_id": paper.class_id,
        })
        for g in generated
    ]
    crud.append_paper_questions(paper, questions)
    _render_pdf(paper)
    paper.status = PaperStatus.GENERATED
    paper.generated_at = datetime.now(timezone.utc)
    log.info("Question paper %s generated with %d question(s)", paper.id, len(questions))


# ─── CRUD ──────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_question_paper(
    payload: schemas.QuestionPaperCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = create_paper(db, ctx, payload)
    db.commit()
    db.refresh(paper)
    log.info("Question paper %s created for exam %s", paper.id, paper.exam_id)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.post("/generate-complete-ai", status_code=status.HTTP_201_CREATED)
async def create_and_generate_question_paper(
    payload: schemas.QuestionPaperCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create the paper and generate it in one call"""
    paper = create_paper(db, ctx, payload)
    await generate_paper(db, ctx, paper)
    db.commit()
    db.refresh(paper)
    return {"success": True, "question_paper": _paper_out(paper, detail=True)}


@router.get("/")
def list_question_papers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[PaperStatus] = Query(None, alias="status"),
    exam_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    class_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(QuestionPaper).filter(
        QuestionPaper.admin_id == ctx.admin_id, QuestionPaper.is_active == True
    )
    if status_filter is not None:
        query = query.filter(QuestionPaper.status == status_filter)
    if exam_id is not None:
        query = query.filter(QuestionPaper.exam_id == exam_id)
    if subject_id is not None:
        query = query.filter(QuestionPaper.subject_id == subject_id)
    if class_id is not None:
        query = query.filter(QuestionPaper.class_id == class_id)
    papers, pagination = crud.paginate(query.order_by(QuestionPaper.id.desc()), page, limit)
    return {
        "success": True,
        "question_papers": [_paper_out(p) for p in papers],
        "pagination": pagination,
    }


@router.get("/{paper_id}")
def get_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    return {"success": True, "question_paper": _paper_out(paper, detail=True)}


@router.put("/{paper_id}")
def update_question_paper(
    paper_id: int,
    payload: schemas.QuestionPaperUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status != PaperStatus.DRAFT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update generated question paper")

    current = schemas.QuestionPaperResponse.model_validate(paper)
    mark_distribution = payload.mark_distribution or current.mark_distribution
    blooms_distribution = payload.blooms_distribution or current.blooms_distribution
    type_distribution = payload.question_type_distribution or current.question_type_distribution
    paper.mark_distribution = validate_blueprint(mark_distribution, blooms_distribution, type_distribution)
    paper.blooms_distribution = [share.model_dump(mode="json") for share in blooms_distribution]
    paper.question_type_distribution = type_distribution.model_dump(mode="json")

    if payload.ai_settings is not None:
        paper.ai_settings = payload.ai_settings.model_dump(mode="json")
    if payload.title is not None:
        paper.title = payload.title
    if "description" in payload.model_fields_set:
        paper.description = payload.description

    db.commit()
    db.refresh(paper)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.delete("/{paper_id}")
def delete_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.generated_pdf:
        file_storage.delete_file(paper.generated_pdf.get("file_path"))
    paper.is_active = False
    if paper.exam and paper.exam.question_paper_id == paper.id:
        paper.exam.question_paper_id = None
    db.commit()
    log.info("Question paper %s deleted", paper.id)
    return {"success": True, "message": "Question paper deleted successfully"}


# ─── Generation / PDF ──────────────────────────────────────────────────────────

@router.post("/{paper_id}/generate-ai")
async def generate_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status != PaperStatus.DRAFT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question paper has already been generated")
    await generate_paper(db, ctx, paper)
    db.commit()
    db.refresh(paper)
    return {"success": True, "question_paper": _paper_out(paper, detail=True)}


@router.post("/{paper_id}/upload-pdf")
async def upload_question_paper_pdf(
    paper_id: int,
    file: UploadFile = File(..., description="Question paper PDF"),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status != PaperStatus.DRAFT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question paper has already been generated")
    file_storage.validate_file(file, file_storage.PDF_EXTENSIONS)

    file_name = f"question-paper-{paper.id}-{file_storage.timestamp()}.pdf"
    path, size = await file_storage.save_upload_file(file, file_storage.QUESTION_PAPERS_DIR, file_name)
    now = datetime.now(timezone.utc)
    paper.generated_pdf = {
        "file_name": file_name,
        "file_path": str(path),
        "file_size": size,
        "download_url": file_storage.public_url(file_storage.QUESTION_PAPERS_DIR, file_name),
        "generated_at": now.isoformat(),
    }
    paper.type = PaperType.PDF_UPLOADED
    paper.status = PaperStatus.GENERATED
    paper.generated_at = now
    try:
        db.commit()
    except Exception:
        db.rollback()
        file_storage.delete_file(path)
        raise
    db.refresh(paper)
    log.info("Question paper %s uploaded as PDF (%d bytes)", paper.id, size)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.post("/{paper_id}/regenerate-pdf")
def regenerate_question_paper_pdf(
    paper_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status not in (PaperStatus.GENERATED, PaperStatus.PUBLISHED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only generated or published question papers can be re-rendered"
        )
    if not paper.question_links:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question paper has no questions to render")
    _render_pdf(paper)
    db.commit()
    db.refresh(paper)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.post("/{paper_id}/publish")
def publish_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status != PaperStatus.GENERATED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Question paper must be generated before publishing"
        )
    paper.status = PaperStatus.PUBLISHED
    paper.published_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(paper)
    log.info("Question paper %s published", paper.id)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.post("/{paper_id}/archive")
def archive_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if paper.status != PaperStatus.PUBLISHED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only published question papers can be archived"
        )
    paper.status = PaperStatus.ARCHIVED
    db.commit()
    db.refresh(paper)
    log.info("Question paper %s archived", paper.id)
    return {"success": True, "question_paper": _paper_out(paper)}


@router.get("/{paper_id}/download")
def download_question_paper(
    paper_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    if not paper.generated_pdf:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="PDF has not been generated yet")
    path = Path(paper.generated_pdf.get("file_path") or "")
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PDF file not found")
    return StreamingResponse(
        BytesIO(path.read_bytes()),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename={paper.generated_pdf.get('file_name') or path.name}"
        }
    )


# ─── Paper questions ───────────────────────────────────────────────────────────

def _get_paper_question_or_404(paper: QuestionPaper, question_id: int) -> Question:
    question = next((q for q in paper.questions if q.id == question_id), None)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found in this paper")
    return question


@router.get("/{paper_id}/questions")
def list_paper_questions(
    paper_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    questions = [schemas.QuestionResponse.model_validate(q) for q in paper.questions]
    return {"success": True, "questions": questions, "total_marks": sum(q.marks for q in questions)}


@router.post("/{paper_id}/questions", status_code=status.HTTP_201_CREATED)
def add_paper_question(
    paper_id: int,
    payload: schemas.PaperQuestionCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    _ensure_questions_editable(paper)
    check_options(payload.question_type, payload.options)
    question = crud.create_question(db, ctx.admin_id, ctx.user.id, {
        **payload.model_dump(),
        "subject_id": paper.subject_id,
        "class_id": paper.class_id,
    })
    crud.append_paper_questions(paper, [question])
    db.commit()
    db.refresh(question)
    return {"success": True, "question": schemas.QuestionResponse.model_validate(question)}


@router.put("/{paper_id}/questions/{question_id}")
def update_paper_question(
    paper_id: int,
    question_id: int,
    payload: schemas.QuestionUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    _ensure_questions_editable(paper)
    question = _get_paper_question_or_404(paper, question_id)
    data = payload.model_dump(exclude_unset=True)
    check_options(data.get("question_type") or question.question_type, data.get("options", question.options))
    for field, value in data.items():
        setattr(question, field, value)
    db.commit()
    db.refresh(question)
    return {"success": True, "question": schemas.QuestionResponse.model_validate(question)}


@router.delete("/{paper_id}/questions/{question_id}")
def remove_paper_question(
    paper_id: int,
    question_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    paper = _get_paper_or_404(db, ctx.admin_id, paper_id)
    _ensure_questions_editable(paper)
    if not crud.remove_paper_question(paper, question_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found in this paper")
    db.commit()
    return {"success": True, "message": "Question removed from paper"}
