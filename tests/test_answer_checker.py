import asyncio
from types import SimpleNamespace

import pytest

from database.models import QuestionType
from generation import answer_checker
from generation.answer_checker import apply_override, check_answers, status_for_confidence, summarize
from generation.schemas import QuestionResult


def q(id, qtype, marks, correct=None, multiple=None, text="Question"):
    return SimpleNamespace(id=id, question_text=text, question_type=qtype, marks=marks,
                           correct_answer=correct, multiple_correct_answers=multiple or [])


PAPER = [
    q(1, QuestionType.CHOOSE_BEST_ANSWER, 1, "Option A"),
    q(2, QuestionType.CHOOSE_MULTIPLE_ANSWERS, 2, multiple=["Option A", "Option C"]),
    q(3, QuestionType.LONG_ANSWER, 4, "force equals mass times acceleration"),
    q(4, QuestionType.SHORT_ANSWER, 2, "inertia"),
]


@pytest.mark.parametrize("confidence, expected", [
    (0.95, "SUCCESS"), (0.71, "SUCCESS"), (0.7, "PARTIAL"), (0.41, "PARTIAL"), (0.4, "FAILED"), (0.0, "FAILED"),
])
def test_status_for_confidence(confidence, expected):
    assert status_for_confidence(confidence) == expected


def test_check_answers_with_local_grading(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "MOCK")
    answers = {
        1: "option a.",
        2: "Option C, Option A",
        3: "Force equals mass times acceleration",
    }
    result = asyncio.run(check_answers(PAPER, answers))

    assert [r.marks_obtained for r in result.question_wise_results] == [1, 2, 4, 0]
    assert [r.question_id for r in result.question_wise_results] == [1, 2, 3, 4]
    assert result.total_marks == 9
    assert result.obtained_marks == 7
    assert result.percentage == 77.78
    assert result.status == "SUCCESS"
    assert result.question_wise_results[3].feedback == "Not answered."
    assert result.weaknesses == ["Question 4"]


def test_wrong_objective_answer_scores_zero(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "MOCK")
    result = asyncio.run(check_answers(PAPER[:2], {1: "Option B", 2: "Option A"}))
    assert result.obtained_marks == 0
    assert result.question_wise_results[0].feedback == "Incorrect answer."
    assert result.overall_feedback == "Needs improvement; revisit the basics."


def test_descriptive_answers_go_to_llm(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "OPENAI")

    async def fake_call_gpt(prompt, **kwargs):
        assert "Question 1 (SHORT_ANSWER, max 3 marks)" in prompt
        return (
            '{"results": [{"questionNumber": 1, "marksObtained": 9, "feedback": "Well explained.", '
            '"confidence": 0.8}], "overallFeedback": "Good work."}'
        )

    monkeypatch.setattr(answer_checker, "call_gpt", fake_call_gpt)
    paper = [q(1, QuestionType.SHORT_ANSWER, 3), q(2, QuestionType.SHORT_ANSWER, 2)]
    result = asyncio.run(check_answers(paper, {1: "Because of gravity", 2: "Friction"}))

    first, second = result.question_wise_results
    assert (first.marks_obtained, first.feedback) == (3, "Well explained.")
    # skipped by the model, graded locally
    assert (second.marks_obtained, second.confidence) == (1, 0.5)
    assert result.overall_feedback == "Good work."
    assert result.status == "PARTIAL"


def test_summarize_empty():
    result = summarize([])
    assert (result.total_marks, result.percentage, result.status) == (0, 0.0, "FAILED")


def test_apply_override_recomputes_totals():
    stored = summarize([
        QuestionResult(question_number=1, max_marks=2, marks_obtained=2, is_correct=True, confidence=0.9),
        QuestionResult(question_number=2, max_marks=2, marks_obtained=0, confidence=0.9),
    ]).model_dump()

    updated = apply_override(stored, 2, 1.5)
    assert updated["obtained_marks"] == 3.5
    assert updated["percentage"] == 87.5
    assert updated["question_wise_results"][1]["is_correct"] is False


def test_apply_override_rejects_bad_input():
    stored = summarize([QuestionResult(question_number=1, max_marks=1, confidence=0.9)]).model_dump()
    with pytest.raises(KeyError):
        apply_override(stored, 5, 1)
    with pytest.raises(ValueError, match="Marks cannot exceed 1.0 for question 1"):
        apply_override(stored, 1, 2)
