"""
Pydantic schemas for the AI services.

PaperContext       → paper_generator / paper_exporter input
GeneratedQuestion  → normalised question produced by the AI (or the mock)
QuestionResult     → per-question grading produced by answer_checker
CorrectionResult   → whole-sheet grading stored on AnswerSheet.ai_correction_results
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

from database.models import QuestionType, BloomsLevel, Difficulty


# ─── Question paper generation ────────────────────────────────────────────────

class PaperContext(BaseModel):
    """Everything the generator and the PDF renderer need to know about a paper."""
    paper_id: Optional[int] = None
    title: str
    exam_title: str
    subject_name: str
    class_name: str
    duration: Optional[int] = None            # minutes
    total_marks: int = 0
    mark_distribution: Dict[str, Any] = Field(default_factory=dict)
    blooms_distribution: List[Dict[str, Any]] = Field(default_factory=list)
    question_type_distribution: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    difficulty_level: Difficulty = Difficulty.MODERATE
    twisted_questions_percentage: float = 0
    custom_instructions: Optional[str] = None
    use_subject_book: bool = False


class GeneratedQuestion(BaseModel):
    """Output of the generator, ready to become a Question row."""
    question_text: str
    question_type: QuestionType = QuestionType.SHORT_ANSWER
    marks: int = Field(default=1, ge=1, le=100)
    blooms_level: BloomsLevel = BloomsLevel.REMEMBER
    difficulty: Difficulty = Difficulty.MODERATE
    is_twisted: bool = False
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    matching_pairs: List[Dict[str, str]] = Field(default_factory=list)
    multiple_correct_answers: List[str] = Field(default_factory=list)
    drawing_instructions: Optional[str] = None
    marking_instructions: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


# ─── Answer checking ───────────────────────────────────────────────────────────

class QuestionResult(BaseModel):
    question_number: int
    question_id: Optional[int] = None
    question_text: str = ""
    student_answer: str = ""
    correct_answer: Optional[str] = None
    max_marks: float
    marks_obtained: float = 0
    is_correct: bool = False
    feedback: str = ""
    confidence: float = Field(default=0.0, ge=0, le=1)


class CorrectionResult(BaseModel):
    status: str                                  # SUCCESS | PARTIAL | FAILED
    total_marks: float
    obtained_marks: float
    percentage: float
    confidence: float
    question_wise_results: List[QuestionResult]
    overall_feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    processing_time: float = 0                   # seconds
