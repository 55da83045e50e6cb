"""
Analysis Gateway: the three Gemini operations.

    analyze        -> GeminiPhysioResponse (structured, decoded with defaults)
    generate_tests -> list[AIGeneratedTest] (structured)
    ask_follow_up  -> str (raw reply text)

The gateway never touches the session store; callers write results back.
No retries and no timeout policy: a failed call surfaces as a GeminiError.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time

from google import genai
from google.genai import types as genai_types

from core.config import settings
from schemas.analysis import InlineImage
from schemas.assessment import (
    AIGeneratedTest,
    GeminiPhysioResponse,
    MovementTestResult,
    PainMarker,
    UserContext,
)
from services.errors import GeminiConfigError, GeminiRequestError, GeminiTransportError
from services.prompt_service import (
    GeminiRequest,
    build_analysis_request,
    build_follow_up_request,
    build_tests_request,
)
from services.response_decoder import decode_analysis, decode_generated_tests

logger = logging.getLogger(__name__)


def _image_part(image: InlineImage) -> genai_types.Part:
    try:
        data = base64.b64decode(image.base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise GeminiRequestError(f"Image payload ({image.mime_type}) is not valid base64") from exc
    return genai_types.Part.from_bytes(data=data, mime_type=image.mime_type)


def _require_markers(markers: list[PainMarker]) -> None:
    if not markers:
        raise GeminiRequestError("Pain markers are required")


def to_contents(request: GeminiRequest) -> list[genai_types.Part]:
    """Images first, then the text prompt, as one user turn."""
    parts = [_image_part(img) for img in request.images]
    parts.append(genai_types.Part(text=request.prompt))
    return parts


class GeminiGateway:
    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        if client is None:
            if not api_key:
                raise GeminiConfigError("Gemini API key not configured")
            client = genai.Client(api_key=api_key)
        self.client = client
        self.model = model or settings.gemini_model

    def analyze(
        self,
        markers: list[PainMarker],
        test_results: list[MovementTestResult],
        context: UserContext | None = None,
        initial_story: str | None = None,
    ) -> GeminiPhysioResponse:
        _require_markers(markers)
        request = build_analysis_request(markers, test_results, context=context, initial_story=initial_story)
        return decode_analysis(self._generate(request, "analysis"))

    def generate_tests(self, markers: list[PainMarker], initial_story: str | None = None) -> list[AIGeneratedTest]:
        _require_markers(markers)
        request = build_tests_request(markers, initial_story=initial_story)
        return decode_generated_tests(self._generate(request, "test generation"))

    def ask_follow_up(
        self,
        question: str,
        previous_analysis: GeminiPhysioResponse,
        markers: list[PainMarker],
        test_results: list[MovementTestResult],
        images: list[InlineImage] | None = None,
    ) -> str:
        if not question.strip():
            raise GeminiRequestError("Question is required")
        request = build_follow_up_request(question, previous_analysis, markers, test_results, images=images)
        return self._generate(request, "follow-up")

    def _generate(self, request: GeminiRequest, purpose: str) -> str:
        contents = to_contents(request)
        start = time.monotonic()
        try:
            response = self.client.models.generate_content(model=self.model, contents=contents)
        except Exception as exc:
            raise GeminiTransportError(f"Gemini {purpose} call failed: {type(exc).__name__}") from exc

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Gemini %s call: model=%s images=%d latency_ms=%d", purpose, self.model, len(request.images), latency_ms
        )
        return response.text or ""
