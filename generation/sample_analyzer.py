"""
Sample paper analysis: pypdf text extraction + structural analysis.

The analysis dict stored on SamplePaper.analysis:
  {page_count, question_count, total_marks, mark_breakdown, sections,
   question_types, summary, analyzed_at}
"""

import io
import logging
import re
from collections import Counter
from datetime import datetime, timezone

from pypdf import PdfReader

from generation.gpt_client import call_gpt, is_mock
from generation.llm_json import extract_json_object

log = logging.getLogger(__name__)


class PdfExtractionError(Exception):
    """The uploaded file could not be read as a PDF."""


_QUESTION_RE = re.compile(r"^\s*(?:Q\s*)?(\d{1,3})[.)]\s+\S", re.MULTILINE | re.IGNORECASE)
_MARKS_RE = re.compile(r"\[\s*(\d{1,3})\s*marks?\s*\]|\(\s*(\d{1,3})\s*marks?\s*\)", re.IGNORECASE)
_SECTION_RE = re.compile(r"^\s*(?:SECTION|PART)\s+[A-Z0-9]+.*$", re.MULTILINE | re.IGNORECASE)


# ─── PDF text extraction ────────────────────────────────────────────────────────

def extract_pdf_text(pdf_bytes: bytes) -> tuple[str, int]:
    """Extract plain text from a PDF byte stream; returns (text, page_count)."""
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        texts = []
        for page in reader.pages:
            t = page.extract_text()
            if t:
                texts.append(t.strip())
        return "\n".join(texts), len(reader.pages)
    except Exception as e:
        raise PdfExtractionError(f"PDF extraction failed: {e}")


# ─── Heuristic analysis ─────────────────────────────────────────────────────────

def analyze_text(text: str, page_count: int) -> dict:
    """Count numbered questions, marks annotations and section headings."""
    numbers = {int(m) for m in _QUESTION_RE.findall(text)}
    marks = [int(a or b) for a, b in _MARKS_RE.findall(text)]
    breakdown = Counter(marks)
    lowered = text.lower()
    types = []
    if "choose the best answer" in lowered or re.search(r"^\s*[a-d]\)", text, re.MULTILINE | re.IGNORECASE):
        types.append("CHOOSE_BEST_ANSWER")
    if "fill in the blank" in lowered or "____" in text:
        types.append("FILL_BLANKS")
    if "true or false" in lowered:
        types.append("TRUE_FALSE")
    if "match the following" in lowered:
        types.append("MATCHING_PAIRS")
    if "draw" in lowered:
        types.append("DRAWING_DIAGRAM")
    return {
        "page_count": page_count,
        "question_count": len(numbers),
        "total_marks": sum(marks),
        "mark_breakdown": {str(k): v for k, v in sorted(breakdown.items())},
        "sections": [s.strip() for s in _SECTION_RE.findall(text)],
        "question_types": types,
        "summary": "",
    }


ANALYSIS_PROMPT = """Analyse the structure of this school question paper.

{text}

Return ONLY a JSON object with keys:
question_count (int), total_marks (int), mark_breakdown (object: marks → count),
sections (list of section titles), question_types (list), summary (2 sentences).
"""


async def analyze_sample_paper(pdf_bytes: bytes) -> dict:
    text, page_count = extract_pdf_text(pdf_bytes)
    analysis = analyze_text(text, page_count)
    if not is_mock() and text.strip():
        raw = await call_gpt(ANALYSIS_PROMPT.format(text=text[:12000]), temperature=0.1, max_tokens=1500,
                             json_object=True)
        ai = extract_json_object(raw)
        for key in ("question_count", "total_marks", "mark_breakdown", "sections", "question_types", "summary"):
            if ai.get(key):
                analysis[key] = ai[key]
    if not analysis["summary"]:
        analysis["summary"] = (
            f"{analysis['question_count']} question(s) over {page_count} page(s)"
            f" totalling {analysis['total_marks']} marks."
        )
    analysis["analyzed_at"] = datetime.now(timezone.utc).isoformat()
    log.info("sample_analyzer: %d pages, %d questions", page_count, analysis["question_count"])
    return analysis
