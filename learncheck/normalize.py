# learncheck/normalize.py
"""
Cleaning tutorial text on the way into a prompt, and turning untrusted model
output into well-formed `Question` objects on the way out.
"""
import json
import logging
import re
from typing import Any, Dict, List, Tuple

from learncheck.errors import MalformedOutputError
from learncheck.schemas import OPTION_IDS, Question

logger = logging.getLogger(__name__)

PROMPT_CONTENT_LIMIT = 4000

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

# &amp; last so "&amp;lt;" decodes to the literal "&lt;"
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)

# question, option and explanation text for fields the model left out
PLACEHOLDERS: Dict[str, Tuple[str, str, str]] = {
    "id": ("Soal {n}", "Opsi {letter}", "Penjelasan belum tersedia."),
    "en": ("Question {n}", "Option {letter}", "No explanation available."),
}
DEFAULT_CORRECT_ANSWER = "A"


def clean_content(text: str) -> str:
    """Strip markup, decode the common entities and collapse whitespace."""
    if not text or not isinstance(text, str):
        return ""
    cleaned = _TAG_RE.sub(" ", text)
    for entity, char in _ENTITIES:
        cleaned = cleaned.replace(entity, char)
    return _WS_RE.sub(" ", cleaned).strip()


def prompt_excerpt(text: str, limit: int = PROMPT_CONTENT_LIMIT) -> str:
    return clean_content(text)[:limit]


def parse_question_array(text: str) -> List[Any]:
    """
    Pull the JSON array of questions out of a raw model answer.

    Code fences are dropped and the outermost [...] span is parsed. Anything
    that is not a non-empty JSON array raises MalformedOutputError.
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedOutputError("Empty response from model")

    cleaned = _FENCE_RE.sub("", text.strip())
    match = _ARRAY_RE.search(cleaned)
    if not match:
        raise MalformedOutputError("No JSON array found in model response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error("Failed to decode JSON from model response: %s", text[:500])
        raise MalformedOutputError(f"Invalid JSON output structure from model: {e}") from e

    if not isinstance(data, list):
        raise MalformedOutputError("Model response is not a JSON array")
    if not data:
        raise MalformedOutputError("Empty questions array")
    return data


def _normalize_options(raw_options: Any, placeholder: str) -> List[Dict[str, str]]:
    items = raw_options if isinstance(raw_options, list) else []
    options: List[Dict[str, str]] = []
    used = set()

    for opt in items[:4]:
        opt_id = None
        text = None
        if isinstance(opt, dict):
            candidate = str(opt.get("id") or "").strip().upper()
            if candidate in OPTION_IDS and candidate not in used:
                opt_id = candidate
            if isinstance(opt.get("text"), str) and opt["text"].strip():
                text = opt["text"].strip()
        elif isinstance(opt, str) and opt.strip():
            text = opt.strip()

        if opt_id is None:
            opt_id = next(letter for letter in OPTION_IDS if letter not in used)
        used.add(opt_id)
        options.append({"id": opt_id, "text": text or placeholder.format(letter=opt_id)})

    while len(options) < 4:
        letter = next(letter for letter in OPTION_IDS if letter not in used)
        used.add(letter)
        options.append({"id": letter, "text": placeholder.format(letter=letter)})

    return options


def _normalize_correct_answer(raw: Any) -> str:
    # Older prompts asked for a 0-based index instead of a letter
    if isinstance(raw, int) and not isinstance(raw, bool) and 0 <= raw < len(OPTION_IDS):
        return OPTION_IDS[raw]
    if isinstance(raw, str) and raw.strip().upper() in OPTION_IDS:
        return raw.strip().upper()
    return DEFAULT_CORRECT_ANSWER


def _text_or(value: Any, placeholder: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return placeholder


def normalize_questions(raw_questions: List[Any], count: int, language: str = "id") -> List[Question]:
    """
    Coerce up to `count` question-like objects into the Question shape.

    Never raises: bad or missing fields become placeholders, and questions are
    renumbered 1..N by position whatever ids the model gave them.
    """
    question_text, option_text, explanation_text = PLACEHOLDERS.get(language, PLACEHOLDERS["id"])
    questions: List[Question] = []
    for index, raw in enumerate(raw_questions[:count]):
        item = raw if isinstance(raw, dict) else {}
        n = index + 1
        questions.append(
            Question(
                id=n,
                question=_text_or(item.get("question"), question_text.format(n=n)),
                options=_normalize_options(item.get("options"), option_text),
                correct_answer=_normalize_correct_answer(item.get("correctAnswer")),
                explanation=_text_or(item.get("explanation"), explanation_text),
            )
        )
    return questions
