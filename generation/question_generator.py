"""
Question bank generator: N questions of one format for a subject/unit.
Shares parsing with paper_generator; the mock reuses its per-type templates.
"""

import logging
from typing import List, Optional

from database.models import QuestionType, BloomsLevel, Difficulty, Language
from generation.gpt_client import call_gpt, is_mock
from generation.paper_generator import parse_questions, mock_question
from generation.schemas import PaperContext, GeneratedQuestion

log = logging.getLogger(__name__)

BANK_PROMPT = """Write {count} {question_type} question(s) for a school question bank.

Subject: {subject}
Class: {class_name}
Unit / topic: {unit}
Marks per question: {marks}
Bloom's level: {blooms}
Difficulty: {difficulty}
Language: {language}
{custom_line}
Return ONLY a JSON array; each element has the keys
questionText, questionType, marks, bloomsLevel, difficulty, options, correctAnswer,
explanation, matchingPairs, multipleCorrectAnswers, drawingInstructions, markingInstructions, tags.
Choice questions need at least 4 options. No markdown fences.
"""


async def generate_bank_questions(
    subject_name: str,
    class_name: str,
    question_type: QuestionType,
    blooms_level: BloomsLevel,
    difficulty: Difficulty,
    marks: int,
    count: int,
    unit: Optional[str] = None,
    language: Language = Language.ENGLISH,
    custom_instructions: Optional[str] = None,
) -> List[GeneratedQuestion]:
    if is_mock():
        ctx = PaperContext(
            title=f"{subject_name} bank",
            exam_title=unit or subject_name,
            subject_name=subject_name,
            class_name=class_name,
            difficulty_level=difficulty,
        )
        return [mock_question(i + 1, marks, question_type, blooms_level, ctx, twisted=False) for i in range(count)]

    prompt = BANK_PROMPT.format(
        count=count,
        question_type=question_type.value,
        subject=subject_name,
        class_name=class_name,
        unit=unit or "any unit of the syllabus",
        marks=marks,
        blooms=blooms_level.value,
        difficulty=difficulty.value,
        language=language.value,
        custom_line=f"Additional instructions: {custom_instructions}\n" if custom_instructions else "",
    )
    raw = await call_gpt(prompt)
    questions = parse_questions(raw, difficulty)[:count]
    # The requested format/marks win over whatever the model echoed back
    for q in questions:
        q.question_type = question_type
        q.marks = marks
    log.info("question_generator: %d %s question(s) for %s", len(questions), question_type.value, subject_name)
    return questions
