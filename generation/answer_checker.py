"""
AI Answer Checker

Grades an answer sheet question by question against the exam's question paper.
Objective formats (choice, true/false, one word, fill in the blanks) are graded
by normalised comparison; descriptive formats go to the LLM, or with
AI_PROVIDER=MOCK to a keyword-overlap heuristic.

Result status: SUCCESS when overall confidence > 0.7, PARTIAL when > 0.4,
FAILED otherwise.
"""

import logging
import re
import time
from typing import Dict, List, Optional, Sequence

from database.models import QuestionType
from generation.gpt_client import call_gpt, is_mock
from generation.llm_json import extract_json_object
from generation.schemas import QuestionResult, CorrectionResult

log = logging.getLogger(__name__)

OBJECTIVE_TYPES = {
    QuestionType.CHOOSE_BEST_ANSWER,
    QuestionType.CHOOSE_MULTIPLE_ANSWERS,
    QuestionType.TRUE_FALSE,
    QuestionType.ONE_WORD_ANSWER,
    QuestionType.FILL_BLANKS,
}

SUCCESS_CONFIDENCE = 0.7
PARTIAL_CONFIDENCE = 0.4


# ─── Helpers ───────────────────────────────────────────────────────────────────

def _norm(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", " ", (text or "").lower())).strip()


def _answer_set(text: str) -> set:
    return {_norm(part) for part in re.split(r"[,;/]| and ", text or "") if _norm(part)}


def _round_half(value: float) -> float:
    return round(value * 2) / 2


def status_for_confidence(confidence: float) -> str:
    if confidence > SUCCESS_CONFIDENCE:
        return "SUCCESS"
    if confidence > PARTIAL_CONFIDENCE:
        return "PARTIAL"
    return "FAILED"


def _grade_objective(number: int, question, answer: str) -> QuestionResult:
    max_marks = float(question.marks)
    if question.question_type == QuestionType.CHOOSE_MULTIPLE_ANSWERS:
        expected = {_norm(a) for a in (question.multiple_correct_answers or []) if _norm(a)}
        is_correct = bool(expected) and _answer_set(answer) == expected
    else:
        is_correct = bool(answer.strip()) and _norm(answer) == _norm(question.correct_answer)
    return QuestionResult(
        question_number=number,
        question_id=question.id,
        question_text=question.question_text,
        student_answer=answer,
        correct_answer=question.correct_answer,
        max_marks=max_marks,
        marks_obtained=max_marks if is_correct else 0,
        is_correct=is_correct,
        feedback="Correct." if is_correct else ("Not answered." if not answer.strip() else "Incorrect answer."),
        confidence=0.95,
    )


def _grade_descriptive_locally(number: int, question, answer: str) -> QuestionResult:
    max_marks = float(question.marks)
    if not answer.strip():
        marks, confidence, feedback = 0.0, 0.9, "Not answered."
    elif question.correct_answer:
        expected = set(_norm(question.correct_answer).split())
        given = set(_norm(answer).split())
        overlap = len(expected & given) / len(expected) if expected else 0
        marks = _round_half(overlap * max_marks)
        confidence = 0.6
        feedback = "Covers the expected points." if overlap >= 0.8 else "Some expected points are missing."
    else:
        marks, confidence, feedback = _round_half(max_marks / 2), 0.5, "Answer needs manual review."
    return QuestionResult(
        question_number=number,
        question_id=question.id,
        question_text=question.question_text,
        student_answer=answer,
        correct_answer=question.correct_answer,
        max_marks=max_marks,
        marks_obtained=marks,
        is_correct=marks >= max_marks,
        feedback=feedback,
        confidence=confidence,
    )


# ─── LLM grading ───────────────────────────────────────────────────────────────

CHECK_PROMPT = """You are grading a student's written answers. Language: {language}.

For each item below, award marks between 0 and the maximum (half marks allowed),
give one sentence of feedback and your confidence (0 to 1).

{items}

Return ONLY a JSON object:
{{
  "results": [{{"questionNumber": 1, "marksObtained": 0, "feedback": "...", "confidence": 0.8}}],
  "overallFeedback": "...",
  "strengths": ["..."],
  "weaknesses": ["..."],
  "suggestions": ["..."]
}}
"""


def _format_items(pending: Sequence) -> str:
    blocks = []
    for number, question, answer in pending:
        blocks.append(
            f"Question {number} ({question.question_type.value}, max {question.marks} marks): {question.question_text}\n"
            f"Model answer: {question.correct_answer or 'not provided'}\n"
            f"Student answer: {answer or '(blank)'}"
        )
    return "\n\n".join(blocks)


async def _grade_with_llm(pending: Sequence, language: str) -> dict:
    raw = await call_gpt(CHECK_PROMPT.format(language=language, items=_format_items(pending)),
                         temperature=0.2, json_object=True)
    data = extract_json_object(raw)
    graded: Dict[int, QuestionResult] = {}
    by_number = {number: (question, answer) for number, question, answer in pending}
    for item in data.get("results") or []:
        try:
            number = int(item.get("questionNumber"))
        except (TypeError, ValueError):
            continue
        if number not in by_number:
            continue
        question, answer = by_number[number]
        max_marks = float(question.marks)
        try:
            marks = float(item.get("marksObtained") or 0)
            confidence = float(item.get("confidence") or 0)
        except (TypeError, ValueError):
            marks, confidence = 0.0, 0.0
        marks = min(max(marks, 0.0), max_marks)
        graded[number] = QuestionResult(
            question_number=number,
            question_id=question.id,
            question_text=question.question_text,
            student_answer=answer,
            correct_answer=question.correct_answer,
            max_marks=max_marks,
            marks_obtained=marks,
            is_correct=marks >= max_marks,
            feedback=str(item.get("feedback") or ""),
            confidence=min(max(confidence, 0.0), 1.0),
        )
    return {
        "graded": graded,
        "overall_feedback": str(data.get("overallFeedback") or ""),
        "strengths": [str(s) for s in data.get("strengths") or []],
        "weaknesses": [str(s) for s in data.get("weaknesses") or []],
        "suggestions": [str(s) for s in data.get("suggestions") or []],
    }


# ─── Aggregation ───────────────────────────────────────────────────────────────

def summarize(results: List[QuestionResult], processing_time: float = 0,
              overall_feedback: str = "", strengths=None, weaknesses=None, suggestions=None) -> CorrectionResult:
    total = sum(r.max_marks for r in results)
    obtained = sum(r.marks_obtained for r in results)
    percentage = round(obtained / total * 100, 2) if total else 0.0
    confidence = round(sum(r.confidence for r in results) / len(results), 2) if results else 0.0

    if not overall_feedback:
        if percentage >= 80:
            overall_feedback = "Excellent performance."
        elif percentage >= 50:
            overall_feedback = "Good attempt; revise the weaker questions."
        else:
            overall_feedback = "Needs improvement; revisit the basics."
    if strengths is None:
        strengths = [f"Question {r.question_number}" for r in results if r.is_correct]
    if weaknesses is None:
        weaknesses = [f"Question {r.question_number}" for r in results if r.marks_obtained == 0]
    if suggestions is None:
        suggestions = ["Practise the questions where marks were lost."] if weaknesses else []

    return CorrectionResult(
        status=status_for_confidence(confidence),
        total_marks=total,
        obtained_marks=obtained,
        percentage=percentage,
        confidence=confidence,
        question_wise_results=results,
        overall_feedback=overall_feedback,
        strengths=strengths,
        weaknesses=weaknesses,
        suggestions=suggestions,
        processing_time=round(processing_time, 3),
    )


async def check_answers(questions: Sequence, answers: Dict[int, str], language: str = "ENGLISH") -> CorrectionResult:
    """
    Grade `answers` (1-based question number → text) against ordered `questions`.
    `questions` are Question rows (or anything with the same attributes).
    """
    started = time.perf_counter()
    results: Dict[int, QuestionResult] = {}
    pending = []
    for number, question in enumerate(questions, start=1):
        answer = answers.get(number, "") or ""
        if question.question_type in OBJECTIVE_TYPES:
            results[number] = _grade_objective(number, question, answer)
        elif is_mock() or not answer.strip():
            results[number] = _grade_descriptive_locally(number, question, answer)
        else:
            pending.append((number, question, answer))

    extra = {}
    if pending:
        llm = await _grade_with_llm(pending, language)
        for number, question, answer in pending:
            # anything the model skipped falls back to the local heuristic
            results[number] = llm["graded"].get(number) or _grade_descriptive_locally(number, question, answer)
        extra = {k: llm[k] or None for k in ("strengths", "weaknesses", "suggestions")}
        extra["overall_feedback"] = llm["overall_feedback"]

    ordered = [results[n] for n in sorted(results)]
    summary = summarize(ordered, time.perf_counter() - started, **extra)
    log.info(
        "answer_checker: %.1f/%.1f (%.2f%%) confidence=%.2f status=%s",
        summary.obtained_marks, summary.total_marks, summary.percentage, summary.confidence, summary.status,
    )
    return summary


def apply_override(result: dict, question_number: int, corrected_marks: float) -> dict:
    """
    Replace the marks of one question in a stored correction result and recompute totals.
    Raises KeyError for an unknown question, ValueError when marks exceed the maximum.
    """
    rows = result.get("question_wise_results") or []
    row = next((r for r in rows if r.get("question_number") == question_number), None)
    if row is None:
        raise KeyError(question_number)
    if corrected_marks > float(row.get("max_marks", 0)):
        raise ValueError(f"Marks cannot exceed {row.get('max_marks')} for question {question_number}")
    row["marks_obtained"] = corrected_marks
    row["is_correct"] = corrected_marks >= float(row.get("max_marks", 0))
    total = sum(float(r.get("max_marks", 0)) for r in rows)
    obtained = sum(float(r.get("marks_obtained", 0)) for r in rows)
    result["obtained_marks"] = obtained
    result["percentage"] = round(obtained / total * 100, 2) if total else 0.0
    return result
