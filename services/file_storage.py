"""
Local file storage for uploads and generated PDFs.

Layout under UPLOAD_ROOT (served at /public):
  question-papers/   generated + uploaded question paper PDFs
  answer-sheets/     scanned answer sheets
  sample-papers/     reference papers
  question-paper-templates/  template papers analysed for their pattern
  syllabi/           syllabus documents
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, Tuple

from fastapi import HTTPException, UploadFile, status

log = logging.getLogger(__name__)

# Configuration
UPLOAD_ROOT = Path(os.getenv("UPLOAD_ROOT", "public"))
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 10485760))  # 10MB
PUBLIC_URL_PREFIX = "/public"

QUESTION_PAPERS_DIR = "question-papers"
ANSWER_SHEETS_DIR = "answer-sheets"
SAMPLE_PAPERS_DIR = "sample-papers"
TEMPLATES_DIR = "question-paper-templates"
SYLLABI_DIR = "syllabi"

PDF_EXTENSIONS = {"pdf"}
SCAN_EXTENSIONS = {"pdf", "jpg", "jpeg", "png"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx"}


def ensure_dirs() -> None:
    for folder in (QUESTION_PAPERS_DIR, ANSWER_SHEETS_DIR, SAMPLE_PAPERS_DIR, TEMPLATES_DIR, SYLLABI_DIR):
        (UPLOAD_ROOT / folder).mkdir(parents=True, exist_ok=True)


def public_url(folder: str, file_name: str) -> str:
    return f"{PUBLIC_URL_PREFIX}/{folder}/{file_name}"


def timestamp() -> str:
    return datetime.now().strftime("%Y%m%d%H%M%S%f")


def validate_file(file: UploadFile, allowed: Iterable[str]) -> Tuple[str, str]:
    """Validate uploaded file; returns (filename, extension)"""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required"
        )

    filename = file.filename.strip()
    extension = Path(filename).suffix.lower().lstrip(".")

    if not extension:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must have an extension"
        )

    allowed = set(allowed)
    if extension not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: .{extension}. Allowed: {', '.join(sorted(allowed))}"
        )

    return filename, extension


async def save_upload_file(upload_file: UploadFile, folder: str, file_name: str) -> Tuple[Path, int]:
    """
    Save uploaded file under UPLOAD_ROOT/folder in 1MB chunks.

    Returns:
        Tuple of (file_path, file_size_bytes)
    """
    target_dir = UPLOAD_ROOT / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    file_path = target_dir / file_name

    file_size = 0
    chunk_size = 1024 * 1024

    with open(file_path, "wb") as f:
        while True:
            chunk = await upload_file.read(chunk_size)
            if not chunk:
                break

            file_size += len(chunk)

            if file_size > MAX_UPLOAD_SIZE:
                f.close()
                file_path.unlink(missing_ok=True)
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail=f"File too large. Maximum size: {MAX_UPLOAD_SIZE / 1024 / 1024:.0f}MB"
                )

            f.write(chunk)

    if file_size == 0:
        file_path.unlink(missing_ok=True)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    log.info("Stored upload %s (%d bytes)", file_path, file_size)
    return file_path, file_size


def save_bytes(folder: str, file_name: str, data: bytes) -> Path:
    target_dir = UPLOAD_ROOT / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    file_path = target_dir / file_name
    file_path.write_bytes(data)
    return file_path


def delete_file(file_path) -> None:
    """Remove a stored file; a missing file is not an error."""
    if not file_path:
        return
    try:
        Path(file_path).unlink(missing_ok=True)
    except OSError as e:
        log.warning("Could not delete %s: %s", file_path, e)
