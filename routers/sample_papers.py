"""
Sample paper API endpoints
Reference PDFs uploaded per subject, analysed for structure and reused as
templates for generated papers.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_admin, require_staff
from database import crud, schemas
from database.database import get_db
from database.models import SamplePaper
from generation.gpt_client import AI_ERRORS
from generation.sample_analyzer import PdfExtractionError, analyze_sample_paper
from services import file_storage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/sample-papers", tags=["sample-papers"])


def _get_sample_or_404(db: Session, admin_id: int, sample_id: int) -> SamplePaper:
    sample = crud.get_sample_paper(db, admin_id, sample_id)
    if not sample:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sample paper not found")
    return sample


def _stored_file(sample: SamplePaper) -> Path:
    path = Path(sample.file_path)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sample paper file not found")
    return path


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_sample_paper(
    title: str = Form(..., min_length=1, max_length=200),
    subject_id: int = Form(..., description="Subject ID"),
    description: Optional[str] = Form(None, max_length=500),
    file: UploadFile = File(..., description="Sample paper PDF"),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not crud.get_subject(db, ctx.admin_id, subject_id, active_only=True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found or not accessible")
    original_name, _ = file_storage.validate_file(file, file_storage.PDF_EXTENSIONS)

    file_name = f"sample-paper-{subject_id}-{file_storage.timestamp()}.pdf"
    path, size = await file_storage.save_upload_file(file, file_storage.SAMPLE_PAPERS_DIR, file_name)
    sample = SamplePaper(
        admin_id=ctx.admin_id,
        subject_id=subject_id,
        uploaded_by=ctx.user.id,
        title=title,
        description=description,
        file_name=file_name,
        original_file_name=original_name,
        file_path=str(path),
        file_size=size,
        template_settings={},
    )
    db.add(sample)
    db.commit()
    db.refresh(sample)
    log.info("Sample paper %s uploaded for subject %s (%d bytes)", sample.id, subject_id, size)
    return {"success": True, "sample_paper": schemas.SamplePaperResponse.model_validate(sample)}


@router.get("/")
def list_sample_papers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(SamplePaper).filter(SamplePaper.admin_id == ctx.admin_id, SamplePaper.is_active == True)
    if subject_id is not None:
        query = query.filter(SamplePaper.subject_id == subject_id)
    samples, pagination = crud.paginate(query.order_by(SamplePaper.id.desc()), page, limit)
    return {
        "success": True,
        "sample_papers": [schemas.SamplePaperResponse.model_validate(s) for s in samples],
        "pagination": pagination,
    }


@router.get("/{sample_id}")
def get_sample_paper(
    sample_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sample = _get_sample_or_404(db, ctx.admin_id, sample_id)
    return {"success": True, "sample_paper": schemas.SamplePaperResponse.model_validate(sample)}


@router.put("/{sample_id}")
def update_sample_paper(
    sample_id: int,
    payload: schemas.SamplePaperUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    sample = _get_sample_or_404(db, ctx.admin_id, sample_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(sample, field, value)
    db.commit()
    db.refresh(sample)
    return {"success": True, "sample_paper": schemas.SamplePaperResponse.model_validate(sample)}


@router.delete("/{sample_id}")
def delete_sample_paper(
    sample_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    sample = _get_sample_or_404(db, ctx.admin_id, sample_id)
    file_storage.delete_file(sample.file_path)
    sample.is_active = False
    db.commit()
    log.info("Sample paper %s deleted", sample.id)
    return {"success": True, "message": "Sample paper deleted successfully"}


@router.get("/{sample_id}/download")
def download_sample_paper(
    sample_id: int,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    sample = _get_sample_or_404(db, ctx.admin_id, sample_id)
    path = _stored_file(sample)
    return StreamingResponse(
        BytesIO(path.read_bytes()),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={sample.original_file_name or sample.file_name}"}
    )


@router.post("/{sample_id}/analyze")
async def analyze_sample(
    sample_id: int,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Extract the PDF text and store a structural analysis"""
    sample = _get_sample_or_404(db, ctx.admin_id, sample_id)
    path = _stored_file(sample)
    try:
        analysis = await analyze_sample_paper(path.read_bytes())
    except PdfExtractionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AI_ERRORS as e:
        log.error("Sample paper %s analysis failed: %s", sample.id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI service error: {e}")

    sample.analysis = analysis
    db.commit()
    db.refresh(sample)
    return {"success": True, "sample_paper": schemas.SamplePaperResponse.model_validate(sample)}
