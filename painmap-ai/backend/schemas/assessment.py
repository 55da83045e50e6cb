from datetime import datetime
from typing import Literal

from pydantic import Field

from schemas.common import CamelModel

PainType = Literal["point", "radiating", "diffuse", "referred"]
BodyView = Literal["anterior", "posterior"]
SessionStatus = Literal["in-progress", "completed"]
Likelihood = Literal["high", "medium", "low"]

INTENSITY_MIN = 1
INTENSITY_MAX = 10


class Position(CamelModel):
    x: float
    y: float


class SpreadArea(CamelModel):
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    radius_x: float | None = None
    radius_y: float | None = None


class PainMarkerImage(CamelModel):
    base64: str
    mime_type: str
    preview_url: str | None = None  # client-side object URL, opaque here


class PainMarker(CamelModel):
    id: str
    position: Position
    region: str
    body_view: BodyView
    pain_type: PainType
    intensity: int = Field(..., ge=INTENSITY_MIN, le=INTENSITY_MAX)
    spread_area: SpreadArea | None = None
    timestamp: datetime
    images: list[PainMarkerImage] | None = None
    notes: str | None = None


class MovementTestResult(CamelModel):
    test_id: str
    test_name: str
    is_positive: bool  # did the test reproduce the pain
    notes: str | None = None
    images: list[PainMarkerImage] | None = None
    completed_at: datetime


class AIGeneratedTest(CamelModel):
    id: str
    name: str
    purpose: str = ""
    target_muscles: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    duration: int = 30  # seconds
    repetitions: int | None = None
    what_to_watch: str = ""
    positive_indicators: list[str] = Field(default_factory=list)
    negative_indicators: list[str] = Field(default_factory=list)


class AffectedStructure(CamelModel):
    structure: str
    likelihood: Likelihood
    reasoning: str = ""


class GeminiPhysioResponse(CamelModel):
    preliminary_assessment: str
    affected_structures: list[AffectedStructure] = Field(default_factory=list)
    recommended_next_steps: list[str] = Field(default_factory=list)
    additional_tests_suggested: list[str] | None = None
    red_flags: list[str] = Field(default_factory=list)
    disclaimer: str


class UserContext(CamelModel):
    age: int | None = None
    activity_level: str | None = None
    relevant_history: list[str] | None = None


class AffectedMuscle(CamelModel):
    muscle: str
    confidence: Likelihood
    pain_markers: list[str]


class AssessmentSession(CamelModel):
    id: str
    created_at: datetime
    updated_at: datetime
    status: SessionStatus = "in-progress"
    initial_story: str | None = None
    pain_markers: list[PainMarker] = Field(default_factory=list)
    suggested_tests: list[AIGeneratedTest] | None = None
    movement_tests: list[MovementTestResult] = Field(default_factory=list)
    gemini_analysis: GeminiPhysioResponse | None = None


class PainDefaults(CamelModel):
    pain_type: PainType = "point"
    intensity: int = 5


class PendingMarker(CamelModel):
    x: float
    y: float
    region: str
