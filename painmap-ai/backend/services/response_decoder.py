"""
Decoders for Gemini replies.

The model is asked for bare JSON but often wraps it in prose or code fences,
so each decoder pulls out the first object/array span, parses it and fills
missing fields with explicit fallbacks. Only a reply with no parseable span
is an error.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from schemas.assessment import AffectedStructure, AIGeneratedTest, GeminiPhysioResponse
from services.errors import InvalidResponseFormat

logger = logging.getLogger(__name__)

DEFAULT_ASSESSMENT = "Unable to generate assessment."
DEFAULT_NEXT_STEPS = ["Consult with a healthcare professional for proper evaluation."]
DEFAULT_DISCLAIMER = (
    "This is not medical advice. Please consult a qualified healthcare professional "
    "for proper diagnosis and treatment."
)

_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_SPAN = re.compile(r"\[.*\]", re.DOTALL)


def _extract(text: str | None, pattern: re.Pattern[str], expected: type) -> Any:
    match = pattern.search(text or "")
    if not match:
        raise InvalidResponseFormat("Invalid response format from Gemini")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise InvalidResponseFormat("Invalid response format from Gemini") from exc
    if not isinstance(parsed, expected):
        raise InvalidResponseFormat("Invalid response format from Gemini")
    return parsed


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value.strip() else default


def _str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _structures(value: Any) -> list[AffectedStructure]:
    structures: list[AffectedStructure] = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict):
            continue
        likelihood = str(item.get("likelihood", "")).strip().lower()
        try:
            structures.append(
                AffectedStructure(
                    structure=item.get("structure"),
                    likelihood=likelihood,
                    reasoning=item.get("reasoning") or "",
                )
            )
        except ValidationError:
            logger.debug("Dropping malformed affected structure: %r", item)
    return structures


def _suggested_tests(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    # Usually plain strings; tolerate catalog-style objects by keeping their name.
    names = []
    for item in value:
        if isinstance(item, str) and item.strip():
            names.append(item)
        elif isinstance(item, dict) and item.get("name"):
            names.append(str(item["name"]))
    return names


def decode_analysis(text: str | None) -> GeminiPhysioResponse:
    data = _extract(text, _OBJECT_SPAN, dict)
    return GeminiPhysioResponse(
        preliminary_assessment=_text(data.get("preliminaryAssessment"), DEFAULT_ASSESSMENT),
        affected_structures=_structures(data.get("affectedStructures")),
        recommended_next_steps=_str_list(data.get("recommendedNextSteps")) or list(DEFAULT_NEXT_STEPS),
        additional_tests_suggested=_suggested_tests(data.get("additionalTestsSuggested")),
        red_flags=_str_list(data.get("redFlags")) or [],
        disclaimer=_text(data.get("disclaimer"), DEFAULT_DISCLAIMER),
    )


def decode_generated_tests(text: str | None) -> list[AIGeneratedTest]:
    data = _extract(text, _ARRAY_SPAN, list)
    tests: list[AIGeneratedTest] = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict) or not item.get("name"):
            continue
        item = {k: v for k, v in item.items() if v is not None}
        item["id"] = str(item.get("id") or f"ai-test-{index}")
        try:
            tests.append(AIGeneratedTest.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed generated test: %r", item)
    return tests
