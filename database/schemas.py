"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts
"""

from pydantic import BaseModel, Field, ConfigDict, EmailStr, BeforeValidator
from typing import Optional, List, Dict, Any, Annotated
from datetime import datetime

from database.models import (
    UserRole, SubjectCategory, ExamType, ExamStatus, QuestionType, BloomsLevel,
    Difficulty, Language, PaperType, PaperStatus, AnswerSheetStatus, ScanQuality,
    AbsenteeismType, AbsenteeismStatus, Priority, NotificationType, NotificationStatus,
)


ClassLevel = Annotated[int, Field(ge=1, le=12)]


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


UpperStr = Annotated[str, BeforeValidator(_upper)]


# ==========================================
# AUTH / USER SCHEMAS
# ==========================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenUser(BaseModel):
    id: int
    email: str
    name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: TokenUser


# ==========================================
# ADMIN SCHEMAS (super admin)
# ==========================================

class AdminCreate(BaseModel):
    """Schema for creating an ADMIN (tenant) account"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)


class AdminUpdate(BaseModel):
    """Schema for updating an ADMIN - all fields optional"""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    is_active: Optional[bool] = None


# ==========================================
# CLASS SCHEMAS
# ==========================================

class ClassBase(BaseModel):
    """Base schema for Class - shared fields"""
    name: UpperStr = Field(..., min_length=1, max_length=50, description="Unique class code, e.g. 10A")
    display_name: str = Field(..., min_length=1, max_length=100)
    level: int = Field(..., ge=1, le=12)
    section: UpperStr = Field(..., min_length=1, max_length=10)
    academic_year: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=500)


class ClassCreate(ClassBase):
    pass


class ClassUpdate(BaseModel):
    """Schema for updating a Class - all fields optional"""
    name: Optional[UpperStr] = Field(None, min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    level: Optional[int] = Field(None, ge=1, le=12)
    section: Optional[UpperStr] = Field(None, min_length=1, max_length=10)
    academic_year: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class ClassResponse(ClassBase):
    id: int
    admin_id: int
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# SUBJECT SCHEMAS
# ==========================================

class SubjectBase(BaseModel):
    """Base schema for Subject - shared fields"""
    code: UpperStr = Field(..., min_length=1, max_length=20, pattern=r"^[A-Z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=100)
    short_name: Optional[str] = Field(None, max_length=20)
    category: SubjectCategory = SubjectCategory.OTHER
    levels: List[ClassLevel] = Field(default_factory=list)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = Field(None, max_length=500)


class SubjectCreate(SubjectBase):
    class_ids: List[int] = Field(default_factory=list, description="Classes in which the subject is taught")


class SubjectUpdate(BaseModel):
    """Schema for updating a Subject - all fields optional"""
    code: Optional[UpperStr] = Field(None, min_length=1, max_length=20, pattern=r"^[A-Z0-9_]+$")
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    short_name: Optional[str] = Field(None, max_length=20)
    category: Optional[SubjectCategory] = None
    levels: Optional[List[ClassLevel]] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    class_ids: Optional[List[int]] = None


class SubjectResponse(SubjectBase):
    id: int
    admin_id: int
    is_active: bool
    class_ids: List[int] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IdList(BaseModel):
    """Replace-all assignment of related ids"""
    ids: List[int] = Field(default_factory=list)


# ==========================================
# TEACHER SCHEMAS
# ==========================================

class TeacherCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=500)
    qualification: Optional[str] = Field(None, max_length=255)
    experience: int = Field(default=0, ge=0, le=50)
    subject_ids: List[int] = Field(default_factory=list)
    class_ids: List[int] = Field(default_factory=list)


class TeacherUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=500)
    qualification: Optional[str] = Field(None, max_length=255)
    experience: Optional[int] = Field(None, ge=0, le=50)
    subject_ids: Optional[List[int]] = None
    class_ids: Optional[List[int]] = None


class TeacherResponse(BaseModel):
    id: int
    admin_id: int
    user: UserResponse
    phone: Optional[str] = None
    address: Optional[str] = None
    qualification: Optional[str] = None
    experience: int
    subject_ids: List[int] = []
    class_ids: List[int] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# STUDENT SCHEMAS
# ==========================================

class StudentCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)
    roll_number: UpperStr = Field(..., min_length=1, max_length=50)
    class_id: int = Field(..., gt=0)
    father_name: Optional[str] = Field(None, max_length=255)
    mother_name: Optional[str] = Field(None, max_length=255)
    date_of_birth: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    parents_phone: Optional[str] = Field(None, max_length=20)
    parents_email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    whatsapp_number: Optional[str] = Field(None, max_length=20)


class StudentUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    roll_number: Optional[UpperStr] = Field(None, min_length=1, max_length=50)
    class_id: Optional[int] = Field(None, gt=0)
    father_name: Optional[str] = Field(None, max_length=255)
    mother_name: Optional[str] = Field(None, max_length=255)
    date_of_birth: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    parents_phone: Optional[str] = Field(None, max_length=20)
    parents_email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    whatsapp_number: Optional[str] = Field(None, max_length=20)


class StudentResponse(BaseModel):
    id: int
    admin_id: int
    user: UserResponse
    roll_number: str
    class_id: int
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    parents_phone: Optional[str] = None
    parents_email: Optional[str] = None
    address: Optional[str] = None
    whatsapp_number: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# QUESTION SCHEMAS
# ==========================================

class MatchingPair(BaseModel):
    left: str = Field(..., min_length=1)
    right: str = Field(..., min_length=1)


class QuestionBase(BaseModel):
    """Base schema for Question - shared fields"""
    subject_id: int = Field(..., gt=0)
    class_id: int = Field(..., gt=0)
    unit: Optional[str] = Field(None, max_length=200)
    question_text: str = Field(..., min_length=3, max_length=5000)
    question_type: QuestionType
    marks: int = Field(default=1, ge=1, le=100)
    blooms_level: BloomsLevel = BloomsLevel.REMEMBER
    difficulty: Difficulty = Difficulty.MODERATE
    is_twisted: bool = False
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    matching_pairs: List[MatchingPair] = Field(default_factory=list)
    multiple_correct_answers: List[str] = Field(default_factory=list)
    drawing_instructions: Optional[str] = None
    marking_instructions: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, le=180)
    tags: List[str] = Field(default_factory=list)
    language: Language = Language.ENGLISH


class QuestionCreate(QuestionBase):
    pass


class QuestionUpdate(BaseModel):
    """Schema for updating a Question - all fields optional"""
    unit: Optional[str] = Field(None, max_length=200)
    question_text: Optional[str] = Field(None, min_length=3, max_length=5000)
    question_type: Optional[QuestionType] = None
    marks: Optional[int] = Field(None, ge=1, le=100)
    blooms_level: Optional[BloomsLevel] = None
    difficulty: Optional[Difficulty] = None
    is_twisted: Optional[bool] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    matching_pairs: Optional[List[MatchingPair]] = None
    multiple_correct_answers: Optional[List[str]] = None
    drawing_instructions: Optional[str] = None
    marking_instructions: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, le=180)
    tags: Optional[List[str]] = None
    language: Optional[Language] = None


class QuestionResponse(QuestionBase):
    id: int
    admin_id: int
    created_by: Optional[int] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuestionGenerateRequest(BaseModel):
    """AI generation of question-bank entries"""
    subject_id: int = Field(..., gt=0)
    class_id: int = Field(..., gt=0)
    unit: Optional[str] = Field(None, max_length=200)
    question_type: QuestionType = QuestionType.SHORT_ANSWER
    blooms_level: BloomsLevel = BloomsLevel.UNDERSTAND
    difficulty: Difficulty = Difficulty.MODERATE
    marks: int = Field(default=2, ge=1, le=100)
    count: int = Field(default=5, ge=1, le=50)
    language: Language = Language.ENGLISH
    custom_instructions: Optional[str] = Field(None, max_length=1000)


# ==========================================
# EXAM SCHEMAS
# ==========================================

class ExamBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    exam_type: ExamType
    class_id: int = Field(..., gt=0)
    subject_ids: List[int] = Field(..., min_length=1)
    duration: int = Field(..., ge=15, le=480, description="Minutes")
    scheduled_date: Optional[datetime] = None
    question_distribution: Optional[List[Dict[str, Any]]] = None
    instructions: Optional[str] = Field(None, max_length=2000)
    allow_late_submission: bool = False
    late_submission_penalty: float = Field(default=0, ge=0, le=100)


class ExamCreate(ExamBase):
    """Status is not accepted; new exams start SCHEDULED."""


class ExamUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    exam_type: Optional[ExamType] = None
    class_id: Optional[int] = Field(None, gt=0)
    subject_ids: Optional[List[int]] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, ge=15, le=480)
    scheduled_date: Optional[datetime] = None
    status: Optional[ExamStatus] = None
    question_distribution: Optional[List[Dict[str, Any]]] = None
    instructions: Optional[str] = Field(None, max_length=2000)
    allow_late_submission: Optional[bool] = None
    late_submission_penalty: Optional[float] = Field(None, ge=0, le=100)


class ExamResponse(ExamBase):
    id: int
    admin_id: int
    status: ExamStatus
    end_date: Optional[datetime] = None
    question_paper_id: Optional[int] = None
    created_by: Optional[int] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# QUESTION PAPER SCHEMAS
# ==========================================

class MarkDistribution(BaseModel):
    """Number of questions per mark category"""
    one_mark: int = Field(default=0, ge=0, le=100)
    two_mark: int = Field(default=0, ge=0, le=100)
    three_mark: int = Field(default=0, ge=0, le=100)
    five_mark: int = Field(default=0, ge=0, le=100)
    total_marks: Optional[int] = Field(None, ge=1, le=1000)

    @property
    def weighted_marks(self) -> int:
        return self.one_mark + 2 * self.two_mark + 3 * self.three_mark + 5 * self.five_mark

    @property
    def total_questions(self) -> int:
        return self.one_mark + self.two_mark + self.three_mark + self.five_mark


class BloomsShare(BaseModel):
    level: BloomsLevel
    percentage: float = Field(..., ge=0, le=100)


class TypeShare(BaseModel):
    type: QuestionType
    percentage: float = Field(..., ge=0, le=100)


class QuestionTypeDistribution(BaseModel):
    """Question-type mix per mark category; each non-empty list must total 100%"""
    one_mark: List[TypeShare] = Field(default_factory=list)
    two_mark: List[TypeShare] = Field(default_factory=list)
    three_mark: List[TypeShare] = Field(default_factory=list)
    five_mark: List[TypeShare] = Field(default_factory=list)


class AiSettings(BaseModel):
    use_subject_book: bool = False
    custom_instructions: Optional[str] = Field(None, max_length=1000)
    difficulty_level: Difficulty = Difficulty.MODERATE
    twisted_questions_percentage: float = Field(default=0, ge=0, le=50)


class GeneratedPdf(BaseModel):
    file_name: str
    file_path: str
    file_size: int
    download_url: str
    generated_at: Optional[datetime] = None


class QuestionPaperCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    exam_id: int = Field(..., gt=0)
    subject_id: int = Field(..., gt=0)
    class_id: int = Field(..., gt=0)
    mark_distribution: MarkDistribution
    blooms_distribution: List[BloomsShare] = Field(..., min_length=1)
    question_type_distribution: QuestionTypeDistribution = Field(default_factory=QuestionTypeDistribution)
    ai_settings: AiSettings = Field(default_factory=AiSettings)


class QuestionPaperUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    mark_distribution: Optional[MarkDistribution] = None
    blooms_distribution: Optional[List[BloomsShare]] = Field(None, min_length=1)
    question_type_distribution: Optional[QuestionTypeDistribution] = None
    ai_settings: Optional[AiSettings] = None


class QuestionPaperResponse(BaseModel):
    id: int
    admin_id: int
    title: str
    description: Optional[str] = None
    exam_id: int
    subject_id: int
    class_id: int
    created_by: Optional[int] = None
    type: PaperType
    status: PaperStatus
    mark_distribution: MarkDistribution
    blooms_distribution: List[BloomsShare]
    question_type_distribution: QuestionTypeDistribution
    ai_settings: AiSettings
    generated_pdf: Optional[GeneratedPdf] = None
    generated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuestionPaperDetail(QuestionPaperResponse):
    questions: List[QuestionResponse] = []


class PaperQuestionCreate(BaseModel):
    """New question added directly to a paper (subject/class taken from the paper)"""
    question_text: str = Field(..., min_length=3, max_length=5000)
    question_type: QuestionType
    marks: int = Field(default=1, ge=1, le=100)
    blooms_level: BloomsLevel = BloomsLevel.REMEMBER
    difficulty: Difficulty = Difficulty.MODERATE
    is_twisted: bool = False
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    matching_pairs: List[MatchingPair] = Field(default_factory=list)
    multiple_correct_answers: List[str] = Field(default_factory=list)
    drawing_instructions: Optional[str] = None
    marking_instructions: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


# ==========================================
# ANSWER SHEET SCHEMAS
# ==========================================

class AnswerSheetResponse(BaseModel):
    id: int
    admin_id: int
    exam_id: int
    student_id: int
    uploaded_by: Optional[int] = None
    original_file_name: Optional[str] = None
    file_url: Optional[str] = None
    status: AnswerSheetStatus
    scan_quality: Optional[ScanQuality] = None
    is_aligned: bool
    roll_number_detected: Optional[str] = None
    confidence: Optional[float] = None
    ai_correction_results: Optional[Dict[str, Any]] = None
    manual_overrides: List[Dict[str, Any]] = []
    is_missing: bool
    missing_reason: Optional[str] = None
    is_absent: bool
    absent_reason: Optional[str] = None
    acknowledged_by: Optional[int] = None
    acknowledged_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    language: Language
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class MarkAbsentRequest(BaseModel):
    exam_id: int = Field(..., gt=0)
    student_id: int = Field(..., gt=0, description="Student user id")
    reason: Optional[str] = Field(None, max_length=500)


class AiCheckRequest(BaseModel):
    """Student answers keyed by question number (1-based), e.g. transcribed from the scan"""
    answers: Dict[int, str] = Field(default_factory=dict)
    language: Optional[Language] = None


class BatchAiCheckItem(AiCheckRequest):
    answer_sheet_id: int = Field(..., gt=0)


class BatchAiCheckRequest(BaseModel):
    sheets: List[BatchAiCheckItem] = Field(..., min_length=1, max_length=50)


class ManualOverrideRequest(BaseModel):
    question_number: int = Field(..., ge=1)
    corrected_marks: float = Field(..., ge=0)
    reason: str = Field(..., min_length=1, max_length=500)


# ==========================================
# ABSENTEEISM SCHEMAS
# ==========================================

class AbsenteeismCreate(BaseModel):
    exam_id: int = Field(..., gt=0)
    student_id: int = Field(..., gt=0, description="Student user id")
    type: AbsenteeismType
    reason: Optional[str] = Field(None, max_length=500)
    priority: Priority = Priority.MEDIUM


class AbsenteeismUpdate(BaseModel):
    type: Optional[AbsenteeismType] = None
    reason: Optional[str] = Field(None, max_length=500)
    priority: Optional[Priority] = None
    remarks: Optional[str] = Field(None, max_length=500)


class AbsenteeismAcknowledge(BaseModel):
    remarks: Optional[str] = Field(None, max_length=500)


class AbsenteeismResolve(BaseModel):
    resolution: str = Field(..., min_length=1, max_length=1000)


class AbsenteeismEscalate(BaseModel):
    escalation_reason: str = Field(..., min_length=1, max_length=1000)
    escalated_to: Optional[int] = Field(None, gt=0)


class AbsenteeismResponse(BaseModel):
    id: int
    admin_id: int
    exam_id: int
    student_id: int
    reported_by: Optional[int] = None
    type: AbsenteeismType
    reason: Optional[str] = None
    status: AbsenteeismStatus
    priority: Priority
    remarks: Optional[str] = None
    acknowledged_by: Optional[int] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None
    escalated_to: Optional[int] = None
    escalated_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# STAFF ACCESS SCHEMAS
# ==========================================

class ClassAccess(BaseModel):
    class_id: int = Field(..., gt=0)
    can_upload_sheets: bool = True
    can_mark_absent: bool = True
    can_mark_missing: bool = True


class SubjectAccess(BaseModel):
    subject_id: int = Field(..., gt=0)
    can_create_questions: bool = True
    can_upload_sample_papers: bool = False


class GlobalPermissions(BaseModel):
    can_view_all_classes: bool = False
    can_view_all_subjects: bool = False
    can_generate_papers: bool = False


class StaffAccessCreate(BaseModel):
    staff_id: int = Field(..., gt=0, description="Teacher user id")
    class_access: List[ClassAccess] = Field(default_factory=list)
    subject_access: List[SubjectAccess] = Field(default_factory=list)
    global_permissions: GlobalPermissions = Field(default_factory=GlobalPermissions)
    expires_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class StaffAccessUpdate(BaseModel):
    class_access: Optional[List[ClassAccess]] = None
    subject_access: Optional[List[SubjectAccess]] = None
    global_permissions: Optional[GlobalPermissions] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class StaffAccessResponse(BaseModel):
    id: int
    admin_id: int
    staff_id: int
    assigned_by: Optional[int] = None
    class_access: List[ClassAccess]
    subject_access: List[SubjectAccess]
    global_permissions: GlobalPermissions
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# SAMPLE PAPER SCHEMAS
# ==========================================

class SamplePaperUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    template_settings: Optional[Dict[str, Any]] = None


class SamplePaperResponse(BaseModel):
    id: int
    admin_id: int
    subject_id: int
    uploaded_by: Optional[int] = None
    title: str
    description: Optional[str] = None
    file_name: str
    original_file_name: Optional[str] = None
    file_size: int
    analysis: Optional[Dict[str, Any]] = None
    template_settings: Dict[str, Any] = {}
    version: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# SYLLABUS SCHEMAS
# ==========================================

class SyllabusTopic(BaseModel):
    topic_name: str = Field(..., min_length=1, max_length=200)
    subtopics: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    estimated_hours: float = Field(default=0, ge=0)


class SyllabusUnit(BaseModel):
    unit_number: int = Field(..., ge=1)
    unit_name: str = Field(..., min_length=1, max_length=200)
    topics: List[SyllabusTopic] = Field(default_factory=list)
    total_hours: float = Field(default=0, ge=0)


class SyllabusCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    subject_id: int = Field(..., gt=0)
    class_id: int = Field(..., gt=0)
    academic_year: str = Field(..., min_length=1, max_length=20, description="e.g. 2025-26")
    units: List[SyllabusUnit] = Field(default_factory=list)
    total_hours: Optional[float] = Field(None, ge=0, description="Summed from the units when omitted")
    version: str = Field(default="1.0", min_length=1, max_length=20)
    language: Language = Language.ENGLISH


class SyllabusUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    subject_id: Optional[int] = Field(None, gt=0)
    class_id: Optional[int] = Field(None, gt=0)
    academic_year: Optional[str] = Field(None, min_length=1, max_length=20)
    units: Optional[List[SyllabusUnit]] = None
    total_hours: Optional[float] = Field(None, ge=0)
    version: Optional[str] = Field(None, min_length=1, max_length=20)
    language: Optional[Language] = None


class SyllabusResponse(BaseModel):
    id: int
    admin_id: int
    subject_id: int
    class_id: int
    uploaded_by: Optional[int] = None
    title: str
    description: Optional[str] = None
    academic_year: str
    units: List[SyllabusUnit] = []
    total_hours: float
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    version: str
    language: Language
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# QUESTION PAPER TEMPLATE SCHEMAS
# ==========================================

class TemplateAiSettings(BaseModel):
    follow_pattern: bool = True
    maintain_structure: bool = True
    custom_instructions: Optional[str] = Field(None, max_length=1000)


class TemplateUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    exam_type: Optional[ExamType] = None
    language: Optional[Language] = None
    ai_settings: Optional[TemplateAiSettings] = None


class TemplateResponse(BaseModel):
    id: int
    admin_id: int
    subject_id: int
    class_id: Optional[int] = None
    exam_type: Optional[ExamType] = None
    uploaded_by: Optional[int] = None
    title: str
    description: Optional[str] = None
    file_name: str
    original_file_name: Optional[str] = None
    file_size: int
    download_url: str
    analysis: Optional[Dict[str, Any]] = None
    analyzed_at: Optional[datetime] = None
    ai_settings: TemplateAiSettings = Field(default_factory=TemplateAiSettings)
    version: str
    language: Language
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplateGenerateRequest(BaseModel):
    """Paper for an exam built from the template's analysed mark pattern"""
    exam_id: int = Field(..., gt=0)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    blooms_distribution: List[BloomsShare] = Field(
        default_factory=lambda: [
            BloomsShare(level=BloomsLevel.REMEMBER, percentage=40),
            BloomsShare(level=BloomsLevel.UNDERSTAND, percentage=40),
            BloomsShare(level=BloomsLevel.APPLY, percentage=20),
        ],
        min_length=1,
    )
    ai_settings: AiSettings = Field(default_factory=AiSettings)


# ==========================================
# NOTIFICATION SCHEMAS
# ==========================================

class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    type: NotificationType
    priority: Priority
    status: NotificationStatus
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    notification_metadata: Dict[str, Any] = {}
    read_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
