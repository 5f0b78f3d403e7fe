"""
AI Question Paper Generator

Builds the generation prompt from a paper's mark / Bloom's / question-type
distributions, calls the LLM and normalises its JSON array answer into
GeneratedQuestion objects. With AI_PROVIDER=MOCK a deterministic paper is
assembled locally from the same distributions.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from database.models import QuestionType, BloomsLevel, Difficulty
from generation.gpt_client import call_gpt, is_mock
from generation.llm_json import extract_json_array
from generation.schemas import PaperContext, GeneratedQuestion

log = logging.getLogger(__name__)

# mark category key → (marks per question, label)
MARK_CATEGORIES: List[Tuple[str, int, str]] = [
    ("one_mark", 1, "One Mark"),
    ("two_mark", 2, "Two Mark"),
    ("three_mark", 3, "Three Mark"),
    ("five_mark", 5, "Five Mark"),
]

# Default format / cognitive level per mark value when no distribution is given
DEFAULT_TYPE_FOR_MARKS = {
    1: (QuestionType.CHOOSE_BEST_ANSWER, BloomsLevel.REMEMBER),
    2: (QuestionType.FILL_BLANKS, BloomsLevel.UNDERSTAND),
    3: (QuestionType.SHORT_ANSWER, BloomsLevel.APPLY),
    5: (QuestionType.LONG_ANSWER, BloomsLevel.ANALYZE),
}

TYPE_ALIASES = {
    "MULTIPLE_CHOICE": QuestionType.CHOOSE_BEST_ANSWER,
    "MCQ": QuestionType.CHOOSE_BEST_ANSWER,
    "CHOOSE_THE_BEST_ANSWER": QuestionType.CHOOSE_BEST_ANSWER,
    "MULTIPLE_ANSWERS": QuestionType.CHOOSE_MULTIPLE_ANSWERS,
    "FILL_IN_THE_BLANKS": QuestionType.FILL_BLANKS,
    "FILL_IN_THE_BLANK": QuestionType.FILL_BLANKS,
    "ONE_WORD": QuestionType.ONE_WORD_ANSWER,
    "MATCH_THE_FOLLOWING": QuestionType.MATCHING_PAIRS,
    "DRAWING": QuestionType.DRAWING_DIAGRAM,
    "DIAGRAM": QuestionType.DRAWING_DIAGRAM,
}


# ─── Distribution helpers ──────────────────────────────────────────────────────

def allocate(count: int, shares: Sequence[Tuple[str, float]]) -> List[str]:
    """
    Split `count` slots across keys by percentage (largest remainder).
    Returns a list of `count` keys in share order; [] when no shares given.
    """
    shares = [(key, float(pct)) for key, pct in shares if float(pct) > 0]
    if count <= 0 or not shares:
        return []
    total_pct = sum(pct for _, pct in shares)
    exact = [(key, count * pct / total_pct) for key, pct in shares]
    counts = {key: int(value) for key, value in exact}
    remaining = count - sum(counts.values())
    by_remainder = sorted(exact, key=lambda kv: kv[1] - int(kv[1]), reverse=True)
    for key, _ in by_remainder[:remaining]:
        counts[key] += 1
    result: List[str] = []
    for key, _ in shares:
        result.extend([key] * counts[key])
    return result


def weighted_marks(mark_distribution: Dict) -> int:
    return sum(int(mark_distribution.get(key) or 0) * marks for key, marks, _ in MARK_CATEGORIES)


def _enum_or(enum_cls, value, default, aliases: Optional[Dict] = None):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    key = value.strip().upper().replace(" ", "_").replace("-", "_")
    if aliases and key in aliases:
        return aliases[key]
    try:
        return enum_cls(key)
    except ValueError:
        return default


# ─── Prompt ────────────────────────────────────────────────────────────────────

PAPER_PROMPT = """Generate a school question paper as a JSON array.

Subject: {subject}
Class: {class_name}
Exam: {exam_title}
Total marks: {total_marks}

Number of questions per mark category:
{mark_lines}

Bloom's taxonomy distribution (percent of all questions):
{blooms_lines}

Question type distribution per mark category:
{type_lines}

Overall difficulty: {difficulty}
Twisted (tricky, application-oriented) questions: {twisted}% of the paper
{book_line}{custom_line}
Return ONLY a JSON array. Each element:
{{
  "questionText": "...",
  "questionType": "CHOOSE_BEST_ANSWER | FILL_BLANKS | ONE_WORD_ANSWER | TRUE_FALSE | CHOOSE_MULTIPLE_ANSWERS | MATCHING_PAIRS | DRAWING_DIAGRAM | MARKING_PARTS | SHORT_ANSWER | LONG_ANSWER",
  "marks": 1,
  "bloomsLevel": "REMEMBER | UNDERSTAND | APPLY | ANALYZE | EVALUATE | CREATE",
  "difficulty": "EASY | MODERATE | TOUGHEST",
  "isTwisted": false,
  "options": ["..."],
  "correctAnswer": "...",
  "explanation": "...",
  "matchingPairs": [{{"left": "...", "right": "..."}}],
  "multipleCorrectAnswers": ["..."],
  "drawingInstructions": "...",
  "markingInstructions": "...",
  "tags": ["..."]
}}
Order the questions from lowest to highest marks. No markdown fences.
"""


def build_prompt(ctx: PaperContext) -> str:
    mark_lines = "\n".join(
        f"- {label}: {int(ctx.mark_distribution.get(key) or 0)} question(s)"
        for key, _, label in MARK_CATEGORIES
    )
    blooms_lines = "\n".join(
        f"- {share['level']}: {share['percentage']}%" for share in ctx.blooms_distribution
    ) or "- any"
    type_lines = []
    for key, _, label in MARK_CATEGORIES:
        shares = ctx.question_type_distribution.get(key) or []
        if shares:
            mix = ", ".join(f"{s['type']} {s['percentage']}%" for s in shares)
            type_lines.append(f"- {label}: {mix}")
    return PAPER_PROMPT.format(
        subject=ctx.subject_name,
        class_name=ctx.class_name,
        exam_title=ctx.exam_title,
        total_marks=ctx.total_marks,
        mark_lines=mark_lines,
        blooms_lines=blooms_lines,
        type_lines="\n".join(type_lines) or "- choose suitable formats for the marks",
        difficulty=ctx.difficulty_level.value,
        twisted=ctx.twisted_questions_percentage,
        book_line="Base the questions on the prescribed subject textbook.\n" if ctx.use_subject_book else "",
        custom_line=f"Additional instructions: {ctx.custom_instructions}\n" if ctx.custom_instructions else "",
    )


# ─── Response parsing ──────────────────────────────────────────────────────────

def normalize_question(data: dict, default_difficulty: Difficulty = Difficulty.MODERATE) -> Optional[GeneratedQuestion]:
    """Map one raw AI item (camelCase or snake_case) to a GeneratedQuestion; None if unusable."""
    if not isinstance(data, dict):
        return None
    text = data.get("questionText") or data.get("question_text") or data.get("question")
    if not isinstance(text, str) or not text.strip():
        return None

    options = [str(o) for o in (data.get("options") or []) if str(o).strip()]
    default_type = QuestionType.CHOOSE_BEST_ANSWER if options else QuestionType.SHORT_ANSWER
    try:
        marks = max(1, int(data.get("marks") or 1))
    except (TypeError, ValueError):
        marks = 1

    pairs = []
    for pair in data.get("matchingPairs") or data.get("matching_pairs") or []:
        if isinstance(pair, dict) and pair.get("left") and pair.get("right"):
            pairs.append({"left": str(pair["left"]), "right": str(pair["right"])})

    correct = data.get("correctAnswer", data.get("correct_answer"))
    try:
        return GeneratedQuestion(
            question_text=text.strip(),
            question_type=_enum_or(QuestionType, data.get("questionType") or data.get("question_type"), default_type, TYPE_ALIASES),
            marks=min(marks, 100),
            blooms_level=_enum_or(BloomsLevel, data.get("bloomsLevel") or data.get("blooms_level"), BloomsLevel.REMEMBER),
            difficulty=_enum_or(Difficulty, data.get("difficulty"), default_difficulty),
            is_twisted=bool(data.get("isTwisted", data.get("is_twisted", False))),
            options=options,
            correct_answer=str(correct) if correct is not None else None,
            explanation=data.get("explanation"),
            matching_pairs=pairs,
            multiple_correct_answers=[str(a) for a in (data.get("multipleCorrectAnswers") or data.get("multiple_correct_answers") or [])],
            drawing_instructions=data.get("drawingInstructions") or data.get("drawing_instructions"),
            marking_instructions=data.get("markingInstructions") or data.get("marking_instructions"),
            tags=[str(t) for t in (data.get("tags") or [])],
        )
    except ValidationError as e:
        log.warning("paper_generator: dropping malformed question: %s", e)
        return None


def parse_questions(raw: str, default_difficulty: Difficulty = Difficulty.MODERATE) -> List[GeneratedQuestion]:
    """Parse the LLM answer; raises ValueError when nothing usable comes back."""
    items = extract_json_array(raw)
    questions = [q for q in (normalize_question(item, default_difficulty) for item in items) if q]
    if not questions:
        raise ValueError("AI response contained no valid questions")
    dropped = len(items) - len(questions)
    if dropped:
        log.warning("paper_generator: %d of %d AI questions were unusable", dropped, len(items))
    return questions


# ─── Mock provider ─────────────────────────────────────────────────────────────

def mock_question(n: int, marks: int, qtype: QuestionType, blooms: BloomsLevel,
                   ctx: PaperContext, twisted: bool) -> GeneratedQuestion:
    subject = ctx.subject_name
    q = GeneratedQuestion(
        question_text=f"Question {n} on {subject} for {ctx.class_name} ({marks} mark{'s' if marks != 1 else ''}).",
        question_type=qtype,
        marks=marks,
        blooms_level=blooms,
        difficulty=ctx.difficulty_level,
        is_twisted=twisted,
        explanation=f"Refer to the {subject} syllabus.",
        tags=[subject, "generated"],
    )
    if qtype in (QuestionType.CHOOSE_BEST_ANSWER, QuestionType.CHOOSE_MULTIPLE_ANSWERS):
        q.question_text = f"Which of the following is correct about {subject} topic {n}?"
        q.options = ["Option A", "Option B", "Option C", "Option D"]
        q.correct_answer = "Option A"
        if qtype == QuestionType.CHOOSE_MULTIPLE_ANSWERS:
            q.multiple_correct_answers = ["Option A", "Option C"]
    elif qtype == QuestionType.TRUE_FALSE:
        q.question_text = f"State true or false: statement {n} about {subject}."
        q.options = ["True", "False"]
        q.correct_answer = "True"
    elif qtype == QuestionType.FILL_BLANKS:
        q.question_text = f"The key term in {subject} topic {n} is ________."
        q.correct_answer = f"term{n}"
    elif qtype == QuestionType.ONE_WORD_ANSWER:
        q.question_text = f"Name the key term of {subject} topic {n}."
        q.correct_answer = f"term{n}"
    elif qtype == QuestionType.MATCHING_PAIRS:
        q.question_text = f"Match the {subject} terms with their meanings."
        q.matching_pairs = [{"left": f"Term {i}", "right": f"Meaning {i}"} for i in range(1, 5)]
    elif qtype == QuestionType.DRAWING_DIAGRAM:
        q.question_text = f"Draw a neat labelled diagram for {subject} topic {n}."
        q.drawing_instructions = "Label all the parts clearly."
    elif qtype == QuestionType.MARKING_PARTS:
        q.question_text = f"Mark the indicated parts in the given {subject} figure."
        q.marking_instructions = "Mark and name each indicated part."
    elif qtype == QuestionType.LONG_ANSWER:
        q.question_text = f"Explain {subject} topic {n} in detail with examples."
    else:
        q.question_text = f"Briefly describe {subject} topic {n}."
    return q


def mock_questions(ctx: PaperContext) -> List[GeneratedQuestion]:
    """One question per mark slot, honouring the type and Bloom's distributions."""
    slots: List[Tuple[int, QuestionType]] = []
    for key, marks, _ in MARK_CATEGORIES:
        count = int(ctx.mark_distribution.get(key) or 0)
        shares = [(s["type"], s["percentage"]) for s in (ctx.question_type_distribution.get(key) or [])]
        types = allocate(count, shares) or [DEFAULT_TYPE_FOR_MARKS[marks][0].value] * count
        slots.extend((marks, QuestionType(t)) for t in types)

    blooms = allocate(len(slots), [(s["level"], s["percentage"]) for s in ctx.blooms_distribution])
    twisted_count = round(len(slots) * ctx.twisted_questions_percentage / 100)

    questions = []
    for i, (marks, qtype) in enumerate(slots):
        level = BloomsLevel(blooms[i]) if blooms else DEFAULT_TYPE_FOR_MARKS[marks][1]
        questions.append(mock_question(i + 1, marks, qtype, level, ctx, twisted=i < twisted_count))
    return questions


# ─── Entry point ───────────────────────────────────────────────────────────────

async def generate_questions(ctx: PaperContext) -> List[GeneratedQuestion]:
    """Generate the questions for a paper (LLM, or the mock when AI_PROVIDER=MOCK)."""
    if is_mock():
        questions = mock_questions(ctx)
        log.info("paper_generator: mock paper with %d questions for %r", len(questions), ctx.title)
        return questions

    prompt = build_prompt(ctx)
    raw = await call_gpt(prompt)
    questions = parse_questions(raw, ctx.difficulty_level)
    questions.sort(key=lambda q: q.marks)
    log.info("paper_generator: AI returned %d questions for %r", len(questions), ctx.title)
    return questions
