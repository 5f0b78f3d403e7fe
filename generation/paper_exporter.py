"""
Paper Export Service - Question Paper PDF

Lays out a question paper on A4 pages with the ReportLab canvas:
- Header (title, subject, class, duration, total marks, candidate details)
- Instructions to candidates
- One block per question: number + text, right-aligned marks / Bloom's tag,
  format-specific content (options, true/false, matching pairs, drawing box)
  and ruled answer lines sized by the question's marks

A vertical cursor (points from the top edge) tracks the write position; any
line that would cross PAGE_BREAK_Y starts a new page. Pages are buffered by
FooterCanvas and stamped "Page X of Y" once the total is known.
"""

import logging
import math
from datetime import datetime, timezone
from io import BytesIO
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from generation.schemas import PaperContext
from services import file_storage

log = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
PAGE_BREAK_Y = 720          # cursor limit, points from the top edge
FOOTER_Y = 40               # footer baseline, points from the bottom edge
ANSWER_LINE_SPACING = 20
DRAWING_BOX_HEIGHT = 80
QUESTION_GAP = 12
MARKS_LABEL_WIDTH = 110

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
ITALIC_FONT = "Helvetica-Oblique"
TITLE_FONT = "Times-Bold"

INSTRUCTIONS = [
    "1. All questions are compulsory.",
    "2. Read all questions carefully before answering.",
    "3. Write your answers clearly and legibly.",
    "4. For multiple choice questions, choose the best answer.",
    "5. For fill in the blanks, write the complete word or phrase.",
    "6. For drawing questions, use a pencil and draw clearly.",
    "7. For matching questions, draw arrows to connect the pairs.",
    "8. Manage your time effectively.",
]

CHOICE_TYPES = {"CHOOSE_BEST_ANSWER", "CHOOSE_MULTIPLE_ANSWERS"}
NO_ANSWER_LINE_TYPES = CHOICE_TYPES | {"TRUE_FALSE", "MATCHING_PAIRS", "DRAWING_DIAGRAM"}
TYPE_HINTS = {
    "CHOOSE_BEST_ANSWER": "Choose the best answer:",
    "CHOOSE_MULTIPLE_ANSWERS": "Choose all correct answers:",
    "TRUE_FALSE": "State whether True or False:",
    "MATCHING_PAIRS": "Match the following:",
    "FILL_BLANKS": "Fill in the blanks with appropriate words:",
    "ONE_WORD_ANSWER": "Answer in one word:",
}


def answer_line_count(marks) -> int:
    """Ruled lines under a written answer: half a line per mark, at least two."""
    return max(2, math.ceil((marks or 0) / 2))


def _value(v) -> str:
    return getattr(v, "value", v) or ""


# ─── Canvas with deferred footers ───────────────────────────────────────────────

class FooterCanvas(canvas.Canvas):
    """Buffers finished pages so every footer can show the final page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self.footers: List[str] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        label = f"Page {self._pageNumber} of {total}"
        self.setFont(BODY_FONT, 9)
        self.drawCentredString(PAGE_WIDTH / 2, FOOTER_Y, label)
        self.footers.append(label)


# ─── Layout ─────────────────────────────────────────────────────────────────────

class QuestionPaperLayout:
    """Single-pass renderer; call build() once."""

    def __init__(self, ctx: PaperContext, questions: Sequence, compress: bool = True):
        self.ctx = ctx
        self.questions = list(questions)
        self.buffer = BytesIO()
        self.canvas = FooterCanvas(self.buffer, pagesize=A4, pageCompression=1 if compress else 0)
        self.canvas.setTitle(ctx.title)
        self.canvas.setSubject(f"{ctx.subject_name} - {ctx.class_name}")
        self.y = MARGIN
        self.page_count = 1
        self.answer_lines: dict = {}      # question number → ruled lines drawn

    # ── cursor ──

    def _baseline(self, size: float) -> float:
        return PAGE_HEIGHT - (self.y + size)

    def ensure_space(self, height: float):
        if self.y + height > PAGE_BREAK_Y:
            self.new_page()

    def new_page(self):
        self.canvas.showPage()
        self.page_count += 1
        self.y = MARGIN

    def gap(self, height: float):
        self.y += height

    # ── primitives ──

    def line(self, text: str, font: str = BODY_FONT, size: float = 11, indent: float = 0,
             align: str = "left", right_text: Optional[str] = None, right_font: str = ITALIC_FONT):
        leading = size * 1.4
        self.ensure_space(leading)
        c = self.canvas
        baseline = self._baseline(size)
        c.setFont(font, size)
        if align == "center":
            c.drawCentredString(PAGE_WIDTH / 2, baseline, text)
        else:
            c.drawString(MARGIN + indent, baseline, text)
        if right_text:
            c.setFont(right_font, size - 1)
            c.drawRightString(PAGE_WIDTH - MARGIN, baseline, right_text)
        self.y += leading

    def paragraph(self, text: str, font: str = BODY_FONT, size: float = 11, indent: float = 0,
                  reserve_right: float = 0, first_right_text: Optional[str] = None):
        width = CONTENT_WIDTH - indent - reserve_right
        lines = simpleSplit(text or "", font, size, width) or [""]
        for i, text_line in enumerate(lines):
            self.line(text_line, font, size, indent=indent, right_text=first_right_text if i == 0 else None)

    def pair(self, left: str, right: str, font: str = BODY_FONT, size: float = 11):
        leading = size * 1.4
        self.ensure_space(leading)
        baseline = self._baseline(size)
        self.canvas.setFont(font, size)
        self.canvas.drawString(MARGIN, baseline, left)
        self.canvas.drawRightString(PAGE_WIDTH - MARGIN, baseline, right)
        self.y += leading

    def rule(self, weight: float = 1):
        self.ensure_space(8)
        y = PAGE_HEIGHT - (self.y + 4)
        self.canvas.setLineWidth(weight)
        self.canvas.line(MARGIN, y, PAGE_WIDTH - MARGIN, y)
        self.y += 8

    # ── sections ──

    def header(self):
        ctx = self.ctx
        self.line(ctx.title.upper(), TITLE_FONT, 18, align="center")
        if ctx.exam_title and ctx.exam_title != ctx.title:
            self.line(ctx.exam_title, BODY_FONT, 12, align="center")
        self.gap(6)
        self.pair(f"Subject: {ctx.subject_name}", f"Class: {ctx.class_name}", BOLD_FONT, 11)
        duration = f"{ctx.duration} minutes" if ctx.duration else "-"
        self.pair(f"Time: {duration}", f"Total Marks: {ctx.total_marks}", BOLD_FONT, 11)
        self.gap(4)
        self.pair("Name: ______________________________", "Roll No: ____________", BODY_FONT, 10)
        self.rule(1.5)
        self.gap(4)

    def instructions(self):
        self.line("INSTRUCTIONS:", BOLD_FONT, 11)
        items = list(INSTRUCTIONS)
        if self.ctx.custom_instructions:
            items.append(f"{len(items) + 1}. {self.ctx.custom_instructions}")
        for item in items:
            self.paragraph(item, BODY_FONT, 10, indent=12)
        self.gap(4)
        self.rule()
        self.gap(8)

    def question(self, number: int, q):
        qtype = _value(getattr(q, "question_type", ""))
        marks = getattr(q, "marks", 1) or 1
        blooms = _value(getattr(q, "blooms_level", ""))
        label = f"[{marks} mark{'s' if marks != 1 else ''}]" + (f" [{blooms}]" if blooms else "")

        # keep the question number with at least one line of content
        self.ensure_space(11 * 1.4 * 2)
        self.paragraph(
            f"Q{number}. {q.question_text}", BOLD_FONT, 11,
            reserve_right=MARKS_LABEL_WIDTH, first_right_text=label,
        )

        hint = TYPE_HINTS.get(qtype)
        if hint:
            self.line(hint, ITALIC_FONT, 10, indent=20)

        options = list(getattr(q, "options", None) or [])
        if qtype == "TRUE_FALSE":
            options = ["True", "False"]
        if qtype in CHOICE_TYPES | {"TRUE_FALSE"}:
            for i, option in enumerate(options):
                self.paragraph(f"{chr(65 + i)}) {option}", BODY_FONT, 10, indent=30)

        if qtype == "MATCHING_PAIRS":
            for i, pair in enumerate(getattr(q, "matching_pairs", None) or [], start=1):
                left = pair.get("left") if isinstance(pair, dict) else getattr(pair, "left", "")
                self.paragraph(f"{i}. {left} -> _____________", BODY_FONT, 10, indent=30)

        if qtype == "DRAWING_DIAGRAM":
            if getattr(q, "drawing_instructions", None):
                self.paragraph(f"Instructions: {q.drawing_instructions}", ITALIC_FONT, 10, indent=20)
            self.drawing_box()

        if qtype == "MARKING_PARTS" and getattr(q, "marking_instructions", None):
            self.paragraph(f"Instructions: {q.marking_instructions}", ITALIC_FONT, 10, indent=20)

        if qtype not in NO_ANSWER_LINE_TYPES:
            self.answer_lines[number] = self.ruled_lines(answer_line_count(marks))

        self.gap(QUESTION_GAP)

    def ruled_lines(self, count: int) -> int:
        for _ in range(count):
            self.ensure_space(ANSWER_LINE_SPACING)
            self.canvas.setLineWidth(0.5)
            y = PAGE_HEIGHT - (self.y + ANSWER_LINE_SPACING - 4)
            self.canvas.line(MARGIN + 20, y, PAGE_WIDTH - MARGIN, y)
            self.y += ANSWER_LINE_SPACING
        return count

    def drawing_box(self):
        self.ensure_space(DRAWING_BOX_HEIGHT + 10)
        top = PAGE_HEIGHT - (self.y + 4)
        self.canvas.setLineWidth(0.8)
        self.canvas.rect(MARGIN + 20, top - DRAWING_BOX_HEIGHT, CONTENT_WIDTH - 20, DRAWING_BOX_HEIGHT)
        self.y += DRAWING_BOX_HEIGHT + 10

    # ── driver ──

    def build(self) -> bytes:
        self.header()
        self.instructions()
        for number, q in enumerate(self.questions, start=1):
            self.question(number, q)
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


# ─── Public API ─────────────────────────────────────────────────────────────────

def render_question_paper(ctx: PaperContext, questions: Sequence, compress: bool = True) -> bytes:
    """Render a question paper to PDF bytes."""
    layout = QuestionPaperLayout(ctx, questions, compress=compress)
    pdf = layout.build()
    log.info("paper_exporter: %r rendered, %d question(s), %d page(s)", ctx.title, len(layout.questions), layout.page_count)
    return pdf


def export_question_paper(ctx: PaperContext, questions: Sequence) -> dict:
    """
    Render and store a question paper PDF.

    Returns the generated_pdf dict:
        {file_name, file_path, file_size, download_url, generated_at}
    """
    pdf = render_question_paper(ctx, questions)
    file_name = f"question-paper-{ctx.paper_id}-{file_storage.timestamp()}.pdf"
    path = file_storage.save_bytes(file_storage.QUESTION_PAPERS_DIR, file_name, pdf)
    return {
        "file_name": file_name,
        "file_path": str(path),
        "file_size": len(pdf),
        "download_url": file_storage.public_url(file_storage.QUESTION_PAPERS_DIR, file_name),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
