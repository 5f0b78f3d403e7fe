"""
Question paper template API endpoints

A template is an existing question paper PDF for a subject. Analysing it
extracts its mark pattern; generate builds a new AI question paper for an
exam that follows that pattern.
"""

import logging
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import ExamType, Language, QuestionPaperTemplate
from generation.gpt_client import AI_ERRORS
from generation.paper_generator import MARK_CATEGORIES
from generation.sample_analyzer import PdfExtractionError, analyze_sample_paper
from routers.question_papers import create_paper, generate_paper
from services import file_storage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/question-paper-templates", tags=["question-paper-templates"])

MAX_INSTRUCTIONS = 1000


def _get_template_or_404(db: Session, admin_id: int, template_id: int) -> QuestionPaperTemplate:
    template = crud.get_template(db, admin_id, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


def _stored_file(template: QuestionPaperTemplate) -> Path:
    path = Path(template.file_path)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template file not found")
    return path


def _template_out(template: QuestionPaperTemplate) -> schemas.TemplateResponse:
    return schemas.TemplateResponse.model_validate(template)


def template_mark_distribution(analysis: dict) -> schemas.MarkDistribution:
    """Question counts per supported mark value; other mark values are dropped."""
    counts = {}
    for marks, count in (analysis.get("mark_breakdown") or {}).items():
        try:
            counts[int(marks)] = counts.get(int(marks), 0) + int(count)
        except (TypeError, ValueError):
            continue
    return schemas.MarkDistribution(**{
        key: min(counts.get(marks, 0), 100) for key, marks, _ in MARK_CATEGORIES
    })


def template_instructions(template: QuestionPaperTemplate, extra: Optional[str] = None) -> Optional[str]:
    settings = template.ai_settings or {}
    parts = []
    if settings.get("follow_pattern", True):
        parts.append(f"Follow the pattern of the template paper '{template.title}'.")
        sections = (template.analysis or {}).get("sections") or []
        if settings.get("maintain_structure", True) and sections:
            parts.append(f"Keep its sections: {', '.join(sections)}.")
    if settings.get("custom_instructions"):
        parts.append(settings["custom_instructions"])
    if extra:
        parts.append(extra)
    return " ".join(parts)[:MAX_INSTRUCTIONS] or None


# ─── CRUD ──────────────────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_template(
    title: str = Form(..., min_length=1, max_length=200),
    subject_id: int = Form(..., description="Subject ID"),
    class_id: Optional[int] = Form(None, description="Class ID"),
    exam_type: Optional[ExamType] = Form(None),
    description: Optional[str] = Form(None, max_length=500),
    language: Language = Form(Language.ENGLISH),
    custom_instructions: Optional[str] = Form(None, max_length=MAX_INSTRUCTIONS),
    file: UploadFile = File(..., description="Template question paper PDF"),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not crud.get_subject(db, ctx.admin_id, subject_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found or not accessible")
    if class_id is not None and not crud.get_class(db, ctx.admin_id, class_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found or not accessible")
    original_name, _ = file_storage.validate_file(file, file_storage.PDF_EXTENSIONS)

    file_name = f"template-{subject_id}-{file_storage.timestamp()}.pdf"
    path, size = await file_storage.save_upload_file(file, file_storage.TEMPLATES_DIR, file_name)
    template = QuestionPaperTemplate(
        admin_id=ctx.admin_id,
        subject_id=subject_id,
        class_id=class_id,
        exam_type=exam_type,
        uploaded_by=ctx.user.id,
        title=title,
        description=description,
        file_name=file_name,
        original_file_name=original_name,
        file_path=str(path),
        file_size=size,
        download_url=file_storage.public_url(file_storage.TEMPLATES_DIR, file_name),
        ai_settings=schemas.TemplateAiSettings(custom_instructions=custom_instructions).model_dump(),
        language=language,
    )
    db.add(template)
    try:
        db.commit()
    except Exception:
        db.rollback()
        file_storage.delete_file(path)
        raise
    db.refresh(template)
    log.info("Template %s uploaded for subject %s (%d bytes)", template.id, subject_id, size)
    return {"success": True, "template": _template_out(template)}


@router.get("/")
def list_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject_id: Optional[int] = None,
    class_id: Optional[int] = None,
    exam_type: Optional[ExamType] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(QuestionPaperTemplate).filter(
        QuestionPaperTemplate.admin_id == ctx.admin_id, QuestionPaperTemplate.is_active == True
    )
    if subject_id is not None:
        query = query.filter(QuestionPaperTemplate.subject_id == subject_id)
    if class_id is not None:
        query = query.filter(QuestionPaperTemplate.class_id == class_id)
    if exam_type is not None:
        query = query.filter(QuestionPaperTemplate.exam_type == exam_type)
    templates, pagination = crud.paginate(
        query.order_by(QuestionPaperTemplate.created_at.desc(), QuestionPaperTemplate.id.desc()), page, limit
    )
    return {"success": True, "templates": [_template_out(t) for t in templates], "pagination": pagination}


@router.get("/available")
def templates_available_for_exam(
    exam_id: int = Query(..., gt=0),
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Templates for one of the exam's subjects, with its exam type or none"""
    exam = crud.get_exam(db, ctx.admin_id, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    count = db.query(QuestionPaperTemplate).filter(
        QuestionPaperTemplate.admin_id == ctx.admin_id,
        QuestionPaperTemplate.is_active == True,
        QuestionPaperTemplate.subject_id.in_(exam.subject_ids),
        or_(QuestionPaperTemplate.exam_type == exam.exam_type, QuestionPaperTemplate.exam_type.is_(None)),
    ).count()
    return {"success": True, "has_templates": count > 0, "template_count": count}


@router.get("/{template_id}")
def get_template(
    template_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"success": True, "template": _template_out(_get_template_or_404(db, ctx.admin_id, template_id))}


@router.put("/{template_id}")
def update_template(
    template_id: int,
    payload: schemas.TemplateUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    template = _get_template_or_404(db, ctx.admin_id, template_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("ai_settings") is None:
        data.pop("ai_settings", None)
    for field, value in data.items():
        setattr(template, field, value)
    db.commit()
    db.refresh(template)
    return {"success": True, "template": _template_out(template)}


@router.delete("/{template_id}")
def delete_template(
    template_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    template = _get_template_or_404(db, ctx.admin_id, template_id)
    file_storage.delete_file(template.file_path)
    template.is_active = False
    db.commit()
    log.info("Template %s deleted", template.id)
    return {"success": True, "message": "Template deleted successfully"}


@router.get("/{template_id}/download")
def download_template(
    template_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    template = _get_template_or_404(db, ctx.admin_id, template_id)
    path = _stored_file(template)
    return StreamingResponse(
        BytesIO(path.read_bytes()),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={template.original_file_name or template.file_name}"}
    )


# ─── Analysis / generation ─────────────────────────────────────────────────────

@router.post("/{template_id}/analyze")
async def analyze_template(
    template_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Extract the template's question and mark pattern"""
    template = _get_template_or_404(db, ctx.admin_id, template_id)
    path = _stored_file(template)
    try:
        analysis = await analyze_sample_paper(path.read_bytes())
    except PdfExtractionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AI_ERRORS as e:
        log.error("Template %s analysis failed: %s", template.id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI service error: {e}")

    template.analysis = analysis
    template.analyzed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(template)
    return {"success": True, "template": _template_out(template), "analysis": analysis}


@router.post("/{template_id}/generate", status_code=status.HTTP_201_CREATED)
async def generate_from_template(
    template_id: int,
    payload: schemas.TemplateGenerateRequest,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create and generate the exam's question paper following the template's pattern"""
    template = _get_template_or_404(db, ctx.admin_id, template_id)
    if not template.analysis:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template has not been analysed yet")
    exam = crud.get_exam(db, ctx.admin_id, payload.exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    ai_settings = payload.ai_settings.model_copy(update={
        "custom_instructions": template_instructions(template, payload.ai_settings.custom_instructions),
    })
    paper = create_paper(db, ctx, schemas.QuestionPaperCreate(
        title=payload.title or f"{exam.title} Paper",
        description=payload.description,
        exam_id=exam.id,
        subject_id=template.subject_id,
        class_id=exam.class_id,
        mark_distribution=template_mark_distribution(template.analysis),
        blooms_distribution=payload.blooms_distribution,
        ai_settings=ai_settings,
    ))
    paper.ai_settings = {**paper.ai_settings, "template_id": template.id}
    await generate_paper(db, ctx, paper)
    db.commit()
    db.refresh(paper)
    log.info("Question paper %s generated from template %s", paper.id, template.id)
    return {"success": True, "question_paper": schemas.QuestionPaperDetail.model_validate(paper)}
