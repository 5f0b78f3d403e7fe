import asyncio

import pytest

from database.models import BloomsLevel, Difficulty, QuestionType
from generation import paper_generator
from generation.llm_json import extract_json_object
from generation.paper_generator import (
    allocate, generate_questions, mock_questions, normalize_question, parse_questions, weighted_marks,
)
from generation.schemas import PaperContext


def paper_ctx(**overrides):
    data = dict(
        title="Science Paper",
        exam_title="Science Unit Test 1",
        subject_name="Science",
        class_name="10A",
        mark_distribution={"one_mark": 2, "two_mark": 1, "five_mark": 1},
        question_type_distribution={"one_mark": [{"type": "CHOOSE_BEST_ANSWER", "percentage": 100}]},
        twisted_questions_percentage=50,
    )
    data.update(overrides)
    return PaperContext(**data)


# ─── Distributions ─────────────────────────────────────────────────────────────

def test_allocate_largest_remainder():
    assert allocate(3, [("A", 50), ("B", 50)]) == ["A", "A", "B"]
    assert allocate(4, [("X", 25), ("Y", 0), ("Z", 75)]) == ["X", "Z", "Z", "Z"]
    assert allocate(5, [("A", 30), ("B", 30), ("C", 40)]) == ["A", "A", "B", "C", "C"]


def test_allocate_empty():
    assert allocate(0, [("A", 100)]) == []
    assert allocate(3, []) == []


def test_weighted_marks():
    assert weighted_marks({"one_mark": 10, "five_mark": 4, "total_marks": 25}) == 30
    assert weighted_marks({}) == 0


# ─── Parsing ───────────────────────────────────────────────────────────────────

def test_normalize_question_accepts_aliases():
    question = normalize_question({
        "question": "What is 2 + 2?",
        "questionType": "MCQ",
        "options": ["3", "4"],
        "correctAnswer": 4,
        "marks": "2",
        "bloomsLevel": "apply",
    })
    assert question.question_type == QuestionType.CHOOSE_BEST_ANSWER
    assert question.marks == 2
    assert question.correct_answer == "4"
    assert question.blooms_level == BloomsLevel.APPLY


def test_normalize_question_defaults():
    question = normalize_question({"question_text": "Describe friction.", "question_type": "essay", "marks": "many"})
    assert question.question_type == QuestionType.SHORT_ANSWER
    assert question.marks == 1
    assert question.difficulty == Difficulty.MODERATE

    fill = normalize_question({"questionText": "Water is ____.", "questionType": "fill in the blanks"})
    assert fill.question_type == QuestionType.FILL_BLANKS


def test_normalize_question_rejects_unusable():
    assert normalize_question({"question_text": "   "}) is None
    assert normalize_question("not a dict") is None


def test_parse_questions_strips_fences():
    raw = '```json\n[{"questionText": "Define force.", "marks": 2}, {"foo": 1}]\n```'
    questions = parse_questions(raw, Difficulty.TOUGHEST)
    assert [q.question_text for q in questions] == ["Define force."]
    assert questions[0].difficulty == Difficulty.TOUGHEST


def test_parse_questions_without_usable_items():
    with pytest.raises(ValueError):
        parse_questions('[{"foo": 1}]')
    with pytest.raises(ValueError):
        parse_questions("Sorry, I cannot help with that.")


def test_extract_json_object_repairs_trailing_comma():
    assert extract_json_object('Here you go: {"summary": "ok",}') == {"summary": "ok"}


# ─── Mock provider ─────────────────────────────────────────────────────────────

def test_mock_questions_follow_distributions():
    questions = mock_questions(paper_ctx())
    assert [q.marks for q in questions] == [1, 1, 2, 5]
    assert [q.question_type for q in questions] == [
        QuestionType.CHOOSE_BEST_ANSWER, QuestionType.CHOOSE_BEST_ANSWER,
        QuestionType.FILL_BLANKS, QuestionType.LONG_ANSWER,
    ]
    assert [q.blooms_level for q in questions] == [
        BloomsLevel.REMEMBER, BloomsLevel.REMEMBER, BloomsLevel.UNDERSTAND, BloomsLevel.ANALYZE,
    ]
    assert [q.is_twisted for q in questions] == [True, True, False, False]
    assert questions[0].correct_answer == "Option A"
    assert questions[2].correct_answer == "term3"


def test_mock_questions_use_blooms_distribution():
    ctx = paper_ctx(blooms_distribution=[{"level": "CREATE", "percentage": 100}])
    assert {q.blooms_level for q in mock_questions(ctx)} == {BloomsLevel.CREATE}


def test_generate_questions_uses_mock(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "MOCK")
    questions = asyncio.run(generate_questions(paper_ctx()))
    assert len(questions) == 4


def test_generate_questions_sorts_llm_output(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "OPENAI")

    async def fake_call_gpt(prompt, **kwargs):
        assert "Science" in prompt
        return '[{"questionText": "Explain osmosis.", "marks": 5}, {"questionText": "Define cell.", "marks": 1}]'

    monkeypatch.setattr(paper_generator, "call_gpt", fake_call_gpt)
    questions = asyncio.run(generate_questions(paper_ctx()))
    assert [q.marks for q in questions] == [1, 5]
