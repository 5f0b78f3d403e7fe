"""
CRUD operations for database models
Tenant-scoped lookups: every getter takes the owning admin_id
"""

import math
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, Query

from database.models import (
    User, UserRole, Teacher, Student, SchoolClass, Subject, Exam, Question,
    QuestionPaper, QuestionPaperQuestion, AnswerSheet, Absenteeism, StaffAccess,
    SamplePaper, Syllabus, QuestionPaperTemplate, Notification,
)
from auth.security import hash_password


# ==========================================
# PAGINATION
# ==========================================

def paginate(query: Query, page: int = 1, limit: int = 10) -> Tuple[list, dict]:
    """Apply page/limit to a query; returns (items, pagination envelope)."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


# ==========================================
# USER OPERATIONS
# ==========================================

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def create_user(db: Session, email: str, password: str, name: str, role: UserRole) -> User:
    """Add a user to the session (not committed)."""
    user = User(
        email=email.lower(),
        password_hash=hash_password(password),
        name=name,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def tenant_id_for(db: Session, user: User) -> Optional[int]:
    """Owning admin id for a user: self for admins, profile admin for teachers/students."""
    if user.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN):
        return user.id
    if user.role == UserRole.TEACHER:
        teacher = get_teacher_by_user(db, user.id)
        return teacher.admin_id if teacher else None
    student = db.query(Student).filter(Student.user_id == user.id).first()
    return student.admin_id if student else None


# ==========================================
# CLASS / SUBJECT OPERATIONS
# ==========================================

def get_class(db: Session, admin_id: int, class_id: int, active_only: bool = False) -> Optional[SchoolClass]:
    query = db.query(SchoolClass).filter(SchoolClass.id == class_id, SchoolClass.admin_id == admin_id)
    if active_only:
        query = query.filter(SchoolClass.is_active == True)
    return query.first()


def get_class_by_name(db: Session, admin_id: int, name: str) -> Optional[SchoolClass]:
    return db.query(SchoolClass).filter(
        SchoolClass.admin_id == admin_id, SchoolClass.name == name
    ).first()


def get_classes_by_ids(db: Session, admin_id: int, ids: List[int]) -> List[SchoolClass]:
    """Active tenant classes for the given ids (missing ids are simply absent)."""
    if not ids:
        return []
    return db.query(SchoolClass).filter(
        SchoolClass.id.in_(ids),
        SchoolClass.admin_id == admin_id,
        SchoolClass.is_active == True,
    ).order_by(SchoolClass.id).all()


def get_subject(db: Session, admin_id: int, subject_id: int, active_only: bool = False) -> Optional[Subject]:
    query = db.query(Subject).filter(Subject.id == subject_id, Subject.admin_id == admin_id)
    if active_only:
        query = query.filter(Subject.is_active == True)
    return query.first()


def get_subject_by_code(db: Session, admin_id: int, code: str) -> Optional[Subject]:
    return db.query(Subject).filter(Subject.admin_id == admin_id, Subject.code == code).first()


def get_subjects_by_ids(db: Session, admin_id: int, ids: List[int]) -> List[Subject]:
    if not ids:
        return []
    return db.query(Subject).filter(
        Subject.id.in_(ids),
        Subject.admin_id == admin_id,
        Subject.is_active == True,
    ).order_by(Subject.id).all()


def subject_available_for_class(subject: Subject, class_id: int) -> bool:
    return class_id in subject.class_ids


# ==========================================
# TEACHER / STUDENT OPERATIONS
# ==========================================

def get_teacher(db: Session, admin_id: int, teacher_id: int) -> Optional[Teacher]:
    return db.query(Teacher).filter(Teacher.id == teacher_id, Teacher.admin_id == admin_id).first()


def get_teacher_by_user(db: Session, user_id: int) -> Optional[Teacher]:
    return db.query(Teacher).filter(Teacher.user_id == user_id).first()


def get_student(db: Session, admin_id: int, student_id: int) -> Optional[Student]:
    return db.query(Student).filter(Student.id == student_id, Student.admin_id == admin_id).first()


def get_student_by_user(db: Session, admin_id: int, user_id: int) -> Optional[Student]:
    return db.query(Student).filter(Student.user_id == user_id, Student.admin_id == admin_id).first()


def roll_number_taken(db: Session, class_id: int, roll_number: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Student).filter(Student.class_id == class_id, Student.roll_number == roll_number)
    if exclude_id is not None:
        query = query.filter(Student.id != exclude_id)
    return db.query(query.exists()).scalar()


# ==========================================
# EXAM / QUESTION / PAPER OPERATIONS
# ==========================================

def get_exam(db: Session, admin_id: int, exam_id: int, active_only: bool = True) -> Optional[Exam]:
    query = db.query(Exam).filter(Exam.id == exam_id, Exam.admin_id == admin_id)
    if active_only:
        query = query.filter(Exam.is_active == True)
    return query.first()


def get_question(db: Session, admin_id: int, question_id: int) -> Optional[Question]:
    return db.query(Question).filter(
        Question.id == question_id,
        Question.admin_id == admin_id,
        Question.is_active == True,
    ).first()


def create_question(db: Session, admin_id: int, created_by: Optional[int], data: dict) -> Question:
    """Add a question to the session (not committed)."""
    question = Question(admin_id=admin_id, created_by=created_by, **data)
    db.add(question)
    db.flush()
    return question


def get_question_paper(db: Session, admin_id: int, paper_id: int) -> Optional[QuestionPaper]:
    return db.query(QuestionPaper).filter(
        QuestionPaper.id == paper_id,
        QuestionPaper.admin_id == admin_id,
        QuestionPaper.is_active == True,
    ).first()


def get_active_paper_for_exam(db: Session, exam_id: int) -> Optional[QuestionPaper]:
    return db.query(QuestionPaper).filter(
        QuestionPaper.exam_id == exam_id, QuestionPaper.is_active == True
    ).first()


def append_paper_questions(paper: QuestionPaper, questions: List[Question]) -> None:
    """Append questions to a paper keeping positions contiguous."""
    start = len(paper.question_links)
    for offset, question in enumerate(questions):
        paper.question_links.append(
            QuestionPaperQuestion(question_id=question.id, position=start + offset, question=question)
        )


def remove_paper_question(paper: QuestionPaper, question_id: int) -> bool:
    links = [link for link in paper.question_links if link.question_id != question_id]
    if len(links) == len(paper.question_links):
        return False
    paper.question_links = links
    for position, link in enumerate(paper.question_links):
        link.position = position
    return True


# ==========================================
# GRADING / ACCESS OPERATIONS
# ==========================================

def get_answer_sheet(db: Session, admin_id: int, sheet_id: int) -> Optional[AnswerSheet]:
    return db.query(AnswerSheet).filter(
        AnswerSheet.id == sheet_id,
        AnswerSheet.admin_id == admin_id,
        AnswerSheet.is_active == True,
    ).first()


def get_answer_sheet_for(db: Session, exam_id: int, student_id: int) -> Optional[AnswerSheet]:
    return db.query(AnswerSheet).filter(
        AnswerSheet.exam_id == exam_id, AnswerSheet.student_id == student_id
    ).first()


def get_absenteeism(db: Session, admin_id: int, report_id: int) -> Optional[Absenteeism]:
    return db.query(Absenteeism).filter(
        Absenteeism.id == report_id,
        Absenteeism.admin_id == admin_id,
        Absenteeism.is_active == True,
    ).first()


def get_active_staff_access(db: Session, staff_id: int) -> Optional[StaffAccess]:
    return db.query(StaffAccess).filter(
        StaffAccess.staff_id == staff_id, StaffAccess.is_active == True
    ).first()


def get_sample_paper(db: Session, admin_id: int, paper_id: int) -> Optional[SamplePaper]:
    return db.query(SamplePaper).filter(
        SamplePaper.id == paper_id,
        SamplePaper.admin_id == admin_id,
        SamplePaper.is_active == True,
    ).first()


# ==========================================
# SYLLABUS / TEMPLATE OPERATIONS
# ==========================================

def get_syllabus(db: Session, admin_id: int, syllabus_id: int) -> Optional[Syllabus]:
    return db.query(Syllabus).filter(
        Syllabus.id == syllabus_id,
        Syllabus.admin_id == admin_id,
        Syllabus.is_active == True,
    ).first()


def find_active_syllabus(db: Session, admin_id: int, subject_id: int, class_id: int, academic_year: str,
                         exclude_id: Optional[int] = None) -> Optional[Syllabus]:
    query = db.query(Syllabus).filter(
        Syllabus.admin_id == admin_id,
        Syllabus.subject_id == subject_id,
        Syllabus.class_id == class_id,
        Syllabus.academic_year == academic_year,
        Syllabus.is_active == True,
    )
    if exclude_id is not None:
        query = query.filter(Syllabus.id != exclude_id)
    return query.first()


def get_template(db: Session, admin_id: int, template_id: int) -> Optional[QuestionPaperTemplate]:
    return db.query(QuestionPaperTemplate).filter(
        QuestionPaperTemplate.id == template_id,
        QuestionPaperTemplate.admin_id == admin_id,
        QuestionPaperTemplate.is_active == True,
    ).first()


def get_notification(db: Session, recipient_id: int, notification_id: int) -> Optional[Notification]:
    return db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == recipient_id,
        Notification.is_active == True,
    ).first()
