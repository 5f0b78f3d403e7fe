"""
Teacher views
Exams and answer sheet results limited to the classes the calling teacher
is assigned to.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import AuthContext, require_teacher
from database import crud, schemas
from database.database import get_db
from database.models import AnswerSheet, AnswerSheetStatus, Exam, ExamStatus
from routers.exams import sheet_summary

log = logging.getLogger(__name__)

router = APIRouter(prefix="/teacher", tags=["teacher"])


def _my_exams(db: Session, ctx: AuthContext):
    return db.query(Exam).filter(
        Exam.admin_id == ctx.admin_id,
        Exam.is_active == True,
        Exam.class_id.in_(ctx.teacher.class_ids),
    )


@router.get("/exams")
def list_my_exams(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[ExamStatus] = Query(None, alias="status"),
    class_id: Optional[int] = None,
    ctx: AuthContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    query = _my_exams(db, ctx)
    if status_filter is not None:
        query = query.filter(Exam.status == status_filter)
    if class_id is not None:
        query = query.filter(Exam.class_id == class_id)
    exams, pagination = crud.paginate(query.order_by(Exam.created_at.desc(), Exam.id.desc()), page, limit)
    return {
        "success": True,
        "exams": [schemas.ExamResponse.model_validate(e) for e in exams],
        "pagination": pagination,
    }


@router.get("/results")
def list_my_results(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    exam_id: Optional[int] = None,
    status_filter: Optional[AnswerSheetStatus] = Query(None, alias="status"),
    ctx: AuthContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Answer sheet summaries for exams of the teacher's classes"""
    query = db.query(AnswerSheet).join(Exam, AnswerSheet.exam_id == Exam.id).filter(
        AnswerSheet.is_active == True,
        Exam.admin_id == ctx.admin_id,
        Exam.is_active == True,
        Exam.class_id.in_(ctx.teacher.class_ids),
    )
    if exam_id is not None:
        exam = crud.get_exam(db, ctx.admin_id, exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
        if exam.class_id not in ctx.teacher.class_ids:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not assigned to this class")
        query = query.filter(AnswerSheet.exam_id == exam_id)
    if status_filter is not None:
        query = query.filter(AnswerSheet.status == status_filter)
    sheets, pagination = crud.paginate(query.order_by(AnswerSheet.exam_id, AnswerSheet.student_id), page, limit)
    return {
        "success": True,
        "results": [
            {**sheet_summary(s), "exam_id": s.exam_id, "exam_title": s.exam.title} for s in sheets
        ],
        "pagination": pagination,
    }
