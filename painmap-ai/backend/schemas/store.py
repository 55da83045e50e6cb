from datetime import datetime

from pydantic import Field

from schemas.assessment import (
    INTENSITY_MAX,
    INTENSITY_MIN,
    AIGeneratedTest,
    AssessmentSession,
    BodyView,
    GeminiPhysioResponse,
    PainDefaults,
    PainMarkerImage,
    PainType,
    PendingMarker,
    Position,
    SpreadArea,
)
from schemas.common import CamelModel


class StoryUpdate(CamelModel):
    story: str


class ViewUpdate(CamelModel):
    view: BodyView


class AnnotationStart(CamelModel):
    x: float
    y: float
    region: str = Field(..., min_length=1, max_length=100)


class MarkerSubmit(CamelModel):
    pain_type: PainType
    intensity: int = Field(..., ge=INTENSITY_MIN, le=INTENSITY_MAX)
    images: list[PainMarkerImage] | None = None
    notes: str | None = None


class MarkerPatch(CamelModel):
    position: Position | None = None
    region: str | None = None
    body_view: BodyView | None = None
    pain_type: PainType | None = None
    intensity: int | None = Field(None, ge=INTENSITY_MIN, le=INTENSITY_MAX)
    spread_area: SpreadArea | None = None
    images: list[PainMarkerImage] | None = None
    notes: str | None = None


class SuggestedTestsUpdate(CamelModel):
    tests: list[AIGeneratedTest]


class AnalysisUpdate(CamelModel):
    analysis: GeminiPhysioResponse


class MovementTestResultCreate(CamelModel):
    test_id: str = Field(..., min_length=1)
    test_name: str
    is_positive: bool
    notes: str | None = None
    images: list[PainMarkerImage] | None = None
    completed_at: datetime | None = None  # stamped server-side when omitted


class AssessmentStateResponse(CamelModel):
    current_session: AssessmentSession | None
    current_view: BodyView
    selected_marker_id: str | None
    is_annotating: bool
    pending_marker: PendingMarker | None
    editing_marker_id: str | None
    pain_defaults: PainDefaults
    affected_regions: list[str]


class StoreActionResponse(CamelModel):
    applied: bool
    state: AssessmentStateResponse


class SessionHistoryResponse(CamelModel):
    sessions: list[AssessmentSession]
