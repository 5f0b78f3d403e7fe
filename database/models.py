"""
SQLAlchemy models for the school administration layer
User → (Teacher | Student) profiles, academic structure, exams and papers

Every tenant-owned table carries admin_id: the id of the ADMIN user that owns
the row. Queries are always scoped by it.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, Text, Float, JSON,
    Table, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from database.database import Base


def _enum_column(enum_cls, **kwargs):
    """Enum column persisted by value."""
    return Column(
        SQLEnum(enum_cls, values_callable=lambda x: [e.value for e in x], native_enum=False, length=40),
        **kwargs,
    )


# ==========================================
# ENUMS
# ==========================================

class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class SubjectCategory(str, enum.Enum):
    SCIENCE = "SCIENCE"
    MATHEMATICS = "MATHEMATICS"
    LANGUAGES = "LANGUAGES"
    SOCIAL_SCIENCES = "SOCIAL_SCIENCES"
    COMMERCE = "COMMERCE"
    ARTS = "ARTS"
    PHYSICAL_EDUCATION = "PHYSICAL_EDUCATION"
    COMPUTER_SCIENCE = "COMPUTER_SCIENCE"
    OTHER = "OTHER"


class ExamType(str, enum.Enum):
    UNIT_TEST = "UNIT_TEST"
    MID_TERM = "MID_TERM"
    FINAL = "FINAL"
    QUIZ = "QUIZ"
    ASSIGNMENT = "ASSIGNMENT"
    PRACTICAL = "PRACTICAL"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    UNIT_WISE = "UNIT_WISE"
    PAGE_WISE = "PAGE_WISE"
    TERM_TEST = "TERM_TEST"
    ANNUAL_EXAM = "ANNUAL_EXAM"


class ExamStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class QuestionType(str, enum.Enum):
    """Question formats shared by the question bank and question papers"""
    CHOOSE_BEST_ANSWER = "CHOOSE_BEST_ANSWER"
    FILL_BLANKS = "FILL_BLANKS"
    ONE_WORD_ANSWER = "ONE_WORD_ANSWER"
    TRUE_FALSE = "TRUE_FALSE"
    CHOOSE_MULTIPLE_ANSWERS = "CHOOSE_MULTIPLE_ANSWERS"
    MATCHING_PAIRS = "MATCHING_PAIRS"
    DRAWING_DIAGRAM = "DRAWING_DIAGRAM"
    MARKING_PARTS = "MARKING_PARTS"
    SHORT_ANSWER = "SHORT_ANSWER"
    LONG_ANSWER = "LONG_ANSWER"


class BloomsLevel(str, enum.Enum):
    REMEMBER = "REMEMBER"
    UNDERSTAND = "UNDERSTAND"
    APPLY = "APPLY"
    ANALYZE = "ANALYZE"
    EVALUATE = "EVALUATE"
    CREATE = "CREATE"


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MODERATE = "MODERATE"
    TOUGHEST = "TOUGHEST"


class Language(str, enum.Enum):
    ENGLISH = "ENGLISH"
    TAMIL = "TAMIL"
    HINDI = "HINDI"
    MALAYALAM = "MALAYALAM"
    TELUGU = "TELUGU"
    KANNADA = "KANNADA"


class PaperType(str, enum.Enum):
    AI_GENERATED = "AI_GENERATED"
    PDF_UPLOADED = "PDF_UPLOADED"
    MANUAL = "MANUAL"


class PaperStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    GENERATED = "GENERATED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class AnswerSheetStatus(str, enum.Enum):
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    AI_CORRECTED = "AI_CORRECTED"
    MANUALLY_REVIEWED = "MANUALLY_REVIEWED"
    COMPLETED = "COMPLETED"
    MISSING = "MISSING"
    ABSENT = "ABSENT"


class ScanQuality(str, enum.Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    UNREADABLE = "UNREADABLE"


class AbsenteeismType(str, enum.Enum):
    ABSENT = "ABSENT"
    MISSING_SHEET = "MISSING_SHEET"
    LATE_SUBMISSION = "LATE_SUBMISSION"


class AbsenteeismStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    ESCALATED = "ESCALATED"


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(str, enum.Enum):
    MISSING_ANSWER_SHEET = "MISSING_ANSWER_SHEET"
    ABSENT_STUDENT = "ABSENT_STUDENT"
    AI_CORRECTION_COMPLETE = "AI_CORRECTION_COMPLETE"
    MANUAL_REVIEW_REQUIRED = "MANUAL_REVIEW_REQUIRED"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class NotificationStatus(str, enum.Enum):
    UNREAD = "UNREAD"
    READ = "READ"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DISMISSED = "DISMISSED"


# ==========================================
# ASSOCIATION TABLES
# ==========================================

subject_classes = Table(
    "subject_classes",
    Base.metadata,
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Integer, ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

teacher_subjects = Table(
    "teacher_subjects",
    Base.metadata,
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)

teacher_classes = Table(
    "teacher_classes",
    Base.metadata,
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Integer, ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

exam_subjects = Table(
    "exam_subjects",
    Base.metadata,
    Column("exam_id", Integer, ForeignKey("exams.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


# ==========================================
# AUTH: USERS
# ==========================================

class User(Base):
    """
    Login account for every role.
    SUPER_ADMIN manages ADMINs; an ADMIN is a tenant and owns everything it creates.
    TEACHER and STUDENT users hang off a Teacher / Student profile row.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = _enum_column(UserRole, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    teacher_profile = relationship("Teacher", back_populates="user", uselist=False, foreign_keys="Teacher.user_id")
    student_profile = relationship("Student", back_populates="user", uselist=False, foreign_keys="Student.user_id")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


class Teacher(Base):
    """Teacher profile; subjects and classes are the teacher's teaching assignments."""
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    qualification = Column(String(255), nullable=True)
    experience = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="teacher_profile", foreign_keys=[user_id])
    subjects = relationship("Subject", secondary=teacher_subjects, order_by="Subject.id")
    classes = relationship("SchoolClass", secondary=teacher_classes, order_by="SchoolClass.id")

    @property
    def subject_ids(self):
        return [s.id for s in self.subjects]

    @property
    def class_ids(self):
        return [c.id for c in self.classes]

    def __repr__(self):
        return f"<Teacher(id={self.id}, user_id={self.user_id}, admin_id={self.admin_id})>"


class Student(Base):
    """Student profile; roll numbers are unique within a class."""
    __tablename__ = "students"
    __table_args__ = (UniqueConstraint("class_id", "roll_number", name="uq_student_class_roll"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    roll_number = Column(String(50), nullable=False)
    father_name = Column(String(255), nullable=True)
    mother_name = Column(String(255), nullable=True)
    date_of_birth = Column(String(10), nullable=True)  # YYYY-MM-DD
    parents_phone = Column(String(20), nullable=True)
    parents_email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    whatsapp_number = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="student_profile", foreign_keys=[user_id])
    school_class = relationship("SchoolClass", back_populates="students")

    def __repr__(self):
        return f"<Student(id={self.id}, roll_number='{self.roll_number}', class_id={self.class_id})>"


# ==========================================
# STRUCTURE: CLASS, SUBJECT
# ==========================================

class SchoolClass(Base):
    """A class/section such as '10A' (level 10, section A)."""
    __tablename__ = "classes"
    __table_args__ = (UniqueConstraint("admin_id", "name", name="uq_class_admin_name"),)

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    display_name = Column(String(100), nullable=False)
    level = Column(Integer, nullable=False, index=True)
    section = Column(String(10), nullable=False)
    academic_year = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    students = relationship("Student", back_populates="school_class")
    subjects = relationship("Subject", secondary=subject_classes, back_populates="classes")

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name='{self.name}')>"


class Subject(Base):
    """
    Academic subject owned by a tenant.
    classes = the classes in which the subject is taught; exams and papers may
    only pair a subject with one of these classes.
    """
    __tablename__ = "subjects"
    __table_args__ = (UniqueConstraint("admin_id", "code", name="uq_subject_admin_code"),)

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(20), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    short_name = Column(String(20), nullable=True)
    category = _enum_column(SubjectCategory, nullable=False, default=SubjectCategory.OTHER)
    levels = Column(JSON, default=list, nullable=False)
    color = Column(String(7), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    classes = relationship("SchoolClass", secondary=subject_classes, back_populates="subjects", order_by="SchoolClass.id")

    @property
    def class_ids(self):
        return [c.id for c in self.classes]

    def __repr__(self):
        return f"<Subject(id={self.id}, code='{self.code}')>"


# ==========================================
# ASSESSMENT: EXAM, QUESTION, QUESTION PAPER
# ==========================================

class Exam(Base):
    """Exam for one class covering one or more subjects."""
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    exam_type = _enum_column(ExamType, nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    duration = Column(Integer, nullable=False)  # minutes
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    status = _enum_column(ExamStatus, nullable=False, default=ExamStatus.DRAFT, index=True)
    question_paper_id = Column(Integer, ForeignKey("question_papers.id", ondelete="SET NULL", use_alter=True, name="fk_exam_question_paper"), nullable=True)
    question_distribution = Column(JSON, nullable=True)
    instructions = Column(Text, nullable=True)
    allow_late_submission = Column(Boolean, default=False, nullable=False)
    late_submission_penalty = Column(Float, default=0, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    school_class = relationship("SchoolClass")
    subjects = relationship("Subject", secondary=exam_subjects, order_by="Subject.id")
    question_paper = relationship("QuestionPaper", foreign_keys=[question_paper_id], post_update=True)

    @property
    def subject_ids(self):
        return [s.id for s in self.subjects]

    def __repr__(self):
        return f"<Exam(id={self.id}, title='{self.title}', status={self.status})>"


class Question(Base):
    """Question bank entry; AI-generated paper questions are stored here too."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    unit = Column(String(200), nullable=True)
    question_text = Column(Text, nullable=False)
    question_type = _enum_column(QuestionType, nullable=False, index=True)
    marks = Column(Integer, nullable=False, default=1)
    blooms_level = _enum_column(BloomsLevel, nullable=False, default=BloomsLevel.REMEMBER, index=True)
    difficulty = _enum_column(Difficulty, nullable=False, default=Difficulty.MODERATE, index=True)
    is_twisted = Column(Boolean, default=False, nullable=False)
    options = Column(JSON, default=list, nullable=False)
    correct_answer = Column(Text, nullable=True)
    explanation = Column(Text, nullable=True)
    matching_pairs = Column(JSON, default=list, nullable=False)  # [{left, right}]
    multiple_correct_answers = Column(JSON, default=list, nullable=False)
    drawing_instructions = Column(Text, nullable=True)
    marking_instructions = Column(Text, nullable=True)
    time_limit = Column(Integer, nullable=True)  # minutes
    tags = Column(JSON, default=list, nullable=False)
    language = _enum_column(Language, nullable=False, default=Language.ENGLISH)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type}, marks={self.marks})>"


class QuestionPaperQuestion(Base):
    """Ordered membership of a question in a question paper."""
    __tablename__ = "question_paper_questions"

    paper_id = Column(Integer, ForeignKey("question_papers.id", ondelete="CASCADE"), primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    question = relationship("Question")


class QuestionPaper(Base):
    """
    Question paper for an exam.
    Lifecycle: DRAFT → GENERATED → PUBLISHED → ARCHIVED.
    generated_pdf = {file_name, file_path, file_size, download_url, generated_at}
    """
    __tablename__ = "question_papers"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = _enum_column(PaperType, nullable=False, default=PaperType.AI_GENERATED)
    status = _enum_column(PaperStatus, nullable=False, default=PaperStatus.DRAFT, index=True)
    mark_distribution = Column(JSON, nullable=False)
    blooms_distribution = Column(JSON, default=list, nullable=False)
    question_type_distribution = Column(JSON, default=dict, nullable=False)
    ai_settings = Column(JSON, default=dict, nullable=False)
    generated_pdf = Column(JSON, nullable=True)
    generated_at = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", foreign_keys=[exam_id])
    subject = relationship("Subject")
    school_class = relationship("SchoolClass")
    question_links = relationship(
        "QuestionPaperQuestion",
        order_by="QuestionPaperQuestion.position",
        cascade="all, delete-orphan",
    )

    @property
    def questions(self):
        return [link.question for link in self.question_links]

    def __repr__(self):
        return f"<QuestionPaper(id={self.id}, title='{self.title}', status={self.status})>"


# ==========================================
# GRADING: ANSWER SHEET, ABSENTEEISM
# ==========================================

class AnswerSheet(Base):
    """
    One uploaded answer sheet per (exam, student).
    student_id references the student's User row.
    ai_correction_results holds the AI checker output; manual_overrides is an
    append-only list of {question_number, original_marks, corrected_marks, reason, overridden_by, overridden_at}.
    """
    __tablename__ = "answer_sheets"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_answer_sheet_exam_student"),)

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    original_file_name = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=True)
    file_url = Column(String(500), nullable=True)
    status = _enum_column(AnswerSheetStatus, nullable=False, default=AnswerSheetStatus.UPLOADED, index=True)
    scan_quality = _enum_column(ScanQuality, nullable=True)
    is_aligned = Column(Boolean, default=True, nullable=False)
    roll_number_detected = Column(String(50), nullable=True)
    roll_number_confidence = Column(Float, nullable=True)
    confidence = Column(Float, nullable=True)
    ai_correction_results = Column(JSON, nullable=True)
    manual_overrides = Column(JSON, default=list, nullable=False)
    is_missing = Column(Boolean, default=False, nullable=False)
    missing_reason = Column(Text, nullable=True)
    is_absent = Column(Boolean, default=False, nullable=False)
    absent_reason = Column(Text, nullable=True)
    acknowledged_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    language = _enum_column(Language, nullable=False, default=Language.ENGLISH)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam")
    student = relationship("User", foreign_keys=[student_id])

    def __repr__(self):
        return f"<AnswerSheet(id={self.id}, exam_id={self.exam_id}, student_id={self.student_id}, status={self.status})>"


class Absenteeism(Base):
    """Absent / missing-sheet / late-submission report. PENDING → ACKNOWLEDGED → RESOLVED, or ESCALATED."""
    __tablename__ = "absenteeism"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reported_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = _enum_column(AbsenteeismType, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    status = _enum_column(AbsenteeismStatus, nullable=False, default=AbsenteeismStatus.PENDING, index=True)
    priority = _enum_column(Priority, nullable=False, default=Priority.MEDIUM)
    remarks = Column(Text, nullable=True)
    acknowledged_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution = Column(Text, nullable=True)
    escalated_to = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    escalated_at = Column(DateTime(timezone=True), nullable=True)
    escalation_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Absenteeism(id={self.id}, exam_id={self.exam_id}, type={self.type}, status={self.status})>"


# ==========================================
# ACCESS, SAMPLE PAPERS, NOTIFICATIONS
# ==========================================

class StaffAccess(Base):
    """
    Fine-grained access for a teacher.
    class_access   = [{class_id, can_upload_sheets, can_mark_absent, can_mark_missing}]
    subject_access = [{subject_id, can_create_questions, can_upload_sample_papers}]
    """
    __tablename__ = "staff_access"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    class_access = Column(JSON, default=list, nullable=False)
    subject_access = Column(JSON, default=list, nullable=False)
    global_permissions = Column(JSON, default=dict, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<StaffAccess(id={self.id}, staff_id={self.staff_id}, is_active={self.is_active})>"


class SamplePaper(Base):
    """Reference paper uploaded as a template; analysis is filled by the analyzer."""
    __tablename__ = "sample_papers"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    analysis = Column(JSON, nullable=True)
    template_settings = Column(JSON, default=dict, nullable=False)
    version = Column(String(20), default="1.0", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SamplePaper(id={self.id}, title='{self.title}')>"


class Syllabus(Base):
    """
    Curriculum for one subject in one class and academic year.

    units: [{unit_number, unit_name, topics: [{topic_name, subtopics,
    learning_objectives, estimated_hours}], total_hours}]
    """
    __tablename__ = "syllabi"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    academic_year = Column(String(20), nullable=False, index=True)
    units = Column(JSON, default=list, nullable=False)
    total_hours = Column(Float, default=0, nullable=False)
    file_name = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=True)
    file_url = Column(String(500), nullable=True)
    version = Column(String(20), default="1.0", nullable=False)
    language = _enum_column(Language, nullable=False, default=Language.ENGLISH)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    subject = relationship("Subject")
    school_class = relationship("SchoolClass")

    def __repr__(self):
        return f"<Syllabus(id={self.id}, subject_id={self.subject_id}, class_id={self.class_id}, year='{self.academic_year}')>"


class QuestionPaperTemplate(Base):
    """Uploaded question paper PDF whose analysed pattern seeds generated papers."""
    __tablename__ = "question_paper_templates"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True, index=True)
    exam_type = _enum_column(ExamType, nullable=True, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    download_url = Column(String(500), nullable=False)
    analysis = Column(JSON, nullable=True)
    analyzed_at = Column(DateTime(timezone=True), nullable=True)
    ai_settings = Column(JSON, default=dict, nullable=False)  # {follow_pattern, custom_instructions}
    version = Column(String(20), default="1.0", nullable=False)
    language = _enum_column(Language, nullable=False, default=Language.ENGLISH)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    subject = relationship("Subject")

    def __repr__(self):
        return f"<QuestionPaperTemplate(id={self.id}, title='{self.title}')>"


class Notification(Base):
    """In-app notification for a single recipient user."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = _enum_column(NotificationType, nullable=False)
    priority = _enum_column(Priority, nullable=False, default=Priority.MEDIUM)
    status = _enum_column(NotificationStatus, nullable=False, default=NotificationStatus.UNREAD, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True, index=True)
    notification_metadata = Column(JSON, default=dict, nullable=False)  # 'metadata' is reserved
    read_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type={self.type}, status={self.status})>"
