"""
OpenAI chat-completions wrapper shared by the AI services.

Callers:
  - paper_generator.py     question paper generation (JSON array answer)
  - question_generator.py  question bank generation (JSON array answer)
  - answer_checker.py      descriptive answer grading (JSON object answer)
  - sample_analyzer.py     sample paper analysis (JSON object answer)

AI_PROVIDER=MOCK makes every caller skip this module and use its
deterministic local fallback. GPT_MODEL picks the model (default gpt-4o-mini).
"""

import logging
import os
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

log = logging.getLogger(__name__)

GPT_MODEL = os.getenv("GPT_MODEL", "gpt-4o-mini")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.7"))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "4000"))

EXAMINER_SYSTEM_PROMPT = "You are an experienced school examiner. Output only what is asked."

# Failures a caller reports as 502: provider errors, missing key, unparseable output
AI_ERRORS = (OpenAIError, RuntimeError, ValueError)

_client: Optional[AsyncOpenAI] = None


def is_mock() -> bool:
    """Read per call so tests can switch providers with monkeypatch."""
    return os.getenv("AI_PROVIDER", "OPENAI").strip().upper() == "MOCK"


def _openai() -> AsyncOpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set; configure it or run with AI_PROVIDER=MOCK")
        _client = AsyncOpenAI(api_key=api_key)
    return _client


async def call_gpt(
    prompt: str,
    system: str = EXAMINER_SYSTEM_PROMPT,
    temperature: float = AI_TEMPERATURE,
    max_tokens: int = AI_MAX_TOKENS,
    json_object: bool = False,
) -> str:
    """
    Send one user prompt and return the raw reply text.

    json_object=True asks the API for a JSON object reply; array-shaped
    answers leave it off and rely on llm_json to cut the array out.
    """
    options = {"response_format": {"type": "json_object"}} if json_object else {}
    response = await _openai().chat.completions.create(
        model=GPT_MODEL,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
        **options,
    )
    usage = response.usage
    log.info(
        "call_gpt model=%s prompt_chars=%d tokens=%s",
        GPT_MODEL, len(prompt), usage.total_tokens if usage else "?",
    )
    return response.choices[0].message.content or ""
