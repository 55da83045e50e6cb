from pydantic import Field

from schemas.assessment import GeminiPhysioResponse, MovementTestResult, PainMarker, UserContext
from schemas.common import CamelModel


class InlineImage(CamelModel):
    base64: str
    mime_type: str


class AnalyzeRequest(CamelModel):
    pain_markers: list[PainMarker] = Field(default_factory=list)
    movement_test_results: list[MovementTestResult] = Field(default_factory=list)
    user_context: UserContext | None = None
    initial_story: str | None = None


class GenerateTestsRequest(CamelModel):
    pain_markers: list[PainMarker] = Field(default_factory=list)
    initial_story: str | None = None


class FollowUpRequest(CamelModel):
    question: str = ""
    previous_analysis: GeminiPhysioResponse
    pain_markers: list[PainMarker] = Field(default_factory=list)
    movement_test_results: list[MovementTestResult] = Field(default_factory=list)
    images: list[InlineImage] | None = None


class FollowUpResponse(CamelModel):
    response: str
