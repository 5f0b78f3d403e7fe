"""
School Administration API - Main Application
FastAPI application for multi-tenant school administration.
Manages admins, academic structure, exams, AI question papers and answer sheet grading.
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database.database import engine, Base, SessionLocal
from database import crud
from database.models import User, UserRole
from services import file_storage

from routers import (
    auth, super_admin, classes, subjects, teachers, students,
    questions, exams, question_papers, answer_sheets, absenteeism,
    staff_access, sample_papers, notifications, syllabi,
    question_paper_templates, teacher_portal,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("school_api")

SEED_SUPER_ADMIN_EMAIL = os.getenv("SEED_SUPER_ADMIN_EMAIL", "superadmin@softworks.io")
SEED_SUPER_ADMIN_PASSWORD = os.getenv("SEED_SUPER_ADMIN_PASSWORD", "ChangeMe123!")
SEED_SUPER_ADMIN_NAME = os.getenv("SEED_SUPER_ADMIN_NAME", "Super Admin")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def _seed_defaults():
    """Create the first super admin if none exists."""
    db = SessionLocal()
    try:
        if db.query(User).filter(User.role == UserRole.SUPER_ADMIN).count() == 0:
            crud.create_user(
                db, SEED_SUPER_ADMIN_EMAIL, SEED_SUPER_ADMIN_PASSWORD, SEED_SUPER_ADMIN_NAME, UserRole.SUPER_ADMIN
            )
            db.commit()
            log.info("Default super admin created: %s", SEED_SUPER_ADMIN_EMAIL)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables + seed defaults."""
    Base.metadata.create_all(bind=engine)
    _seed_defaults()
    file_storage.ensure_dirs()
    yield


app = FastAPI(
    title="School Administration API",
    description="Multi-tenant school administration: structure, exams, AI question papers and answer sheet grading",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error envelope ────────────────────────────────────────────────────────────

def _error(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"message": message}},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    log.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    return _error(exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    message = "; ".join(messages) or "Invalid request"
    log.warning("%s %s -> 400 %s", request.method, request.url.path, message)
    return _error(400, message)


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    log.warning("%s %s -> 409 integrity error: %s", request.method, request.url.path, exc.orig)
    return _error(409, "Duplicate entry")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return _error(500, "Internal server error")


# ─── Routers ───────────────────────────────────────────────────────────────────

# Auth
app.include_router(auth.router)                   # /auth/*
app.include_router(super_admin.router)            # /super/admins/*

# Academic structure
app.include_router(classes.router)
app.include_router(subjects.router)
app.include_router(teachers.router)
app.include_router(students.router)

# Assessment
app.include_router(questions.router)
app.include_router(exams.router)
app.include_router(question_papers.router)
app.include_router(sample_papers.router)
app.include_router(syllabi.router)
app.include_router(question_paper_templates.router)

# Grading
app.include_router(answer_sheets.router)
app.include_router(absenteeism.router)
app.include_router(teacher_portal.router)          # /teacher/exams, /teacher/results

# Access + inbox
app.include_router(staff_access.router)
app.include_router(staff_access.teacher_router)   # /teacher/access
app.include_router(notifications.router)          # /teacher/notifications/*

# Static files - uploaded and generated PDFs
file_storage.ensure_dirs()
app.mount(file_storage.PUBLIC_URL_PREFIX, StaticFiles(directory=file_storage.UPLOAD_ROOT), name="public")


@app.get("/")
def root():
    return {
        "name": "School Administration API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "auth": "/auth",
            "super_admin": "/super/admins",
            "admin": "/admin",
            "teacher": "/teacher",
            "files": file_storage.PUBLIC_URL_PREFIX,
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "school-admin-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
