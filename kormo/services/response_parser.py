"""
Parsers for Gemini replies.

parse_analysis scrapes the bullet format the suitability prompt asks for:

    Score: 0.XX
    • Strengths:
    • item
    • Weaknesses:
    • item
    • Suggestions:
    • item

It never raises. Missing sections get a generic phrase; an unusable reply yields
the full fallback object with is_fallback=True.

parse_match_suggestion / parse_cv_extraction read the JSON object the other
prompts ask for and raise AIResponseError when it is missing or malformed.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from kormo.schemas.analysis import AnalysisResult
from kormo.schemas.cv import CvExtraction
from kormo.schemas.matches import MatchSuggestion
from kormo.services.errors import AIResponseError

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 0.5
MAX_ITEMS = 3
BULLET_MARKERS = ("•", "-")

SECTIONS = ("strengths", "weaknesses", "suggestions")
SECTION_KEYWORDS = {
    "strengths": "strength",
    "weaknesses": "weakness",
    "suggestions": "suggestion",
}
FALLBACK_ITEMS = {
    "strengths": "Profile shows potential for this role",
    "weaknesses": "Some areas for improvement identified",
    "suggestions": "Focus on developing key job requirements",
}

_SCORE_MARKER = "score:"
_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_LEADING_DECORATION = re.compile(r"^[•\-*#>\s]+")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParseResult:
    result: AnalysisResult
    is_fallback: bool = False


def fallback_result() -> AnalysisResult:
    return AnalysisResult(
        score=DEFAULT_SCORE,
        strengths=[FALLBACK_ITEMS["strengths"]],
        weaknesses=[FALLBACK_ITEMS["weaknesses"]],
        suggestions=[FALLBACK_ITEMS["suggestions"]],
    )


def _strip_bullet(line: str) -> str:
    return _LEADING_DECORATION.sub("", line).strip().strip("*").strip()


def _extract_score(line: str) -> float | None:
    idx = line.lower().find(_SCORE_MARKER)
    if idx < 0:
        return None
    match = _NUMBER.search(line[idx + len(_SCORE_MARKER):])
    if not match:
        return None
    try:
        value = float(match.group(0))
    except ValueError:
        return None
    return max(0.0, min(1.0, value))


def _section_header(line: str) -> tuple[str, str] | None:
    """(section, inline item) if the line introduces a section, else None.

    "• Strengths:", "**Weaknesses:** text" and a bare "Suggestions" are headers;
    "- strength in Python" is an item.
    """
    text = _strip_bullet(line)
    label, colon, rest = text.partition(":")
    label = label.strip().strip("*").strip()
    lowered = label.lower()
    for section in SECTIONS:
        if SECTION_KEYWORDS[section] not in lowered:
            continue
        if colon and len(label.split()) <= 3:
            return section, rest.strip().strip("*").strip()
        if not colon and not _is_bullet(line) and len(label.split()) <= 2:
            return section, ""
    return None


def _is_bullet(line: str) -> bool:
    return line.startswith(BULLET_MARKERS)


def _scrape(raw_text: str) -> ParseResult:
    lines = [line.strip() for line in raw_text.splitlines()]
    lines = [line for line in lines if line]

    score: float | None = None
    items: dict[str, list[str]] = {section: [] for section in SECTIONS}
    current: str | None = None

    for line in lines:
        in_section_item = current is not None and _is_bullet(line)
        if score is None and not in_section_item and _SCORE_MARKER in line.lower():
            score = _extract_score(line)
            current = None
            continue

        header = _section_header(line)
        if header:
            current, inline = header
            if inline and len(items[current]) < MAX_ITEMS:
                items[current].append(inline)
            continue

        if current and _is_bullet(line):
            item = _strip_bullet(line)
            if item and len(items[current]) < MAX_ITEMS:
                items[current].append(item)
            continue

        # Any other text closes the open section
        current = None

    if score is None and not any(items.values()):
        return ParseResult(fallback_result(), is_fallback=True)

    return ParseResult(
        AnalysisResult(
            score=DEFAULT_SCORE if score is None else score,
            strengths=items["strengths"] or [FALLBACK_ITEMS["strengths"]],
            weaknesses=items["weaknesses"] or [FALLBACK_ITEMS["weaknesses"]],
            suggestions=items["suggestions"] or [FALLBACK_ITEMS["suggestions"]],
        )
    )


def parse_analysis(raw_text: Any) -> ParseResult:
    """Best-effort parse of a suitability reply; always returns a complete result."""
    if not isinstance(raw_text, str) or not raw_text.strip():
        return ParseResult(fallback_result(), is_fallback=True)
    try:
        return _scrape(raw_text)
    except Exception as e:
        logger.warning("Suitability reply could not be parsed, using fallback: %s", e)
        return ParseResult(fallback_result(), is_fallback=True)


def _load_json_object(text: str) -> dict:
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise AIResponseError("No JSON object in model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AIResponseError(f"Invalid JSON in model response: {e.msg}") from e
    if not isinstance(data, dict):
        raise AIResponseError("Model response is not a JSON object")
    return data


def parse_match_suggestion(text: str) -> MatchSuggestion:
    data = _load_json_object(text)
    try:
        return MatchSuggestion.model_validate(data)
    except ValidationError as e:
        raise AIResponseError(f"Unexpected match suggestion: {e.error_count()} invalid field(s)") from e


def parse_cv_extraction(text: str) -> CvExtraction:
    data = _load_json_object(text)

    def _field(*keys: str) -> str:
        for key in keys:
            value = data.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
        return ""

    return CvExtraction(
        first_name=_field("first_name"),
        last_name=_field("last_name"),
        skills=_field("skills"),
        experience=_field("work_experience", "experience"),
        education=_field("education"),
        phone=_field("phone_number", "phone"),
    )
