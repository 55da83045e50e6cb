from datetime import datetime, timezone

from fastapi import APIRouter

from api.deps import StoreDep
from schemas.assessment import MovementTestResult
from schemas.store import (
    AnalysisUpdate,
    AnnotationStart,
    AssessmentStateResponse,
    MarkerPatch,
    MarkerSubmit,
    MovementTestResultCreate,
    StoreActionResponse,
    StoryUpdate,
    SuggestedTestsUpdate,
    ViewUpdate,
)
from services.pain_store import PainStore

router = APIRouter()


def action(store: PainStore, applied: bool) -> StoreActionResponse:
    # Invalid transitions are not errors: the client reads `applied`.
    return StoreActionResponse(applied=applied, state=store.state())


@router.get("", response_model=AssessmentStateResponse)
def get_assessment(store: StoreDep):
    return store.state()


@router.post("", response_model=StoreActionResponse)
def start_new_session(store: StoreDep):
    store.start_new_session()
    return action(store, True)


@router.put("/story", response_model=StoreActionResponse)
def set_initial_story(payload: StoryUpdate, store: StoreDep):
    return action(store, store.set_initial_story(payload.story))


@router.put("/view", response_model=StoreActionResponse)
def set_current_view(payload: ViewUpdate, store: StoreDep):
    return action(store, store.set_current_view(payload.view))


@router.post("/annotation", response_model=StoreActionResponse)
def start_annotation(payload: AnnotationStart, store: StoreDep):
    return action(store, store.start_annotation(payload.x, payload.y, payload.region))


@router.delete("/annotation", response_model=StoreActionResponse)
def cancel_annotation(store: StoreDep):
    return action(store, store.cancel_annotation())


@router.post("/markers", response_model=StoreActionResponse)
def add_pain_marker(payload: MarkerSubmit, store: StoreDep):
    marker = store.add_pain_marker(payload.pain_type, payload.intensity, images=payload.images, notes=payload.notes)
    return action(store, marker is not None)


@router.put("/markers/edit", response_model=StoreActionResponse)
def save_edited_marker(payload: MarkerSubmit, store: StoreDep):
    applied = store.save_edited_marker(payload.pain_type, payload.intensity, images=payload.images, notes=payload.notes)
    return action(store, applied)


@router.patch("/markers/{marker_id}", response_model=StoreActionResponse)
def update_pain_marker(marker_id: str, payload: MarkerPatch, store: StoreDep):
    updates = payload.model_dump(exclude_unset=True)
    return action(store, store.update_pain_marker(marker_id, **updates))


@router.post("/markers/{marker_id}/select", response_model=StoreActionResponse)
def select_marker(marker_id: str, store: StoreDep):
    return action(store, store.select_marker(marker_id))


@router.delete("/selection", response_model=StoreActionResponse)
def clear_selection(store: StoreDep):
    return action(store, store.select_marker(None))


@router.post("/markers/{marker_id}/edit", response_model=StoreActionResponse)
def start_editing_marker(marker_id: str, store: StoreDep):
    return action(store, store.start_editing_marker(marker_id))


@router.delete("/markers/{marker_id}", response_model=StoreActionResponse)
def remove_pain_marker(marker_id: str, store: StoreDep):
    return action(store, store.remove_pain_marker(marker_id))


@router.post("/test-results", response_model=StoreActionResponse)
def add_movement_test_result(payload: MovementTestResultCreate, store: StoreDep):
    result = MovementTestResult(
        test_id=payload.test_id,
        test_name=payload.test_name,
        is_positive=payload.is_positive,
        notes=payload.notes,
        images=payload.images,
        completed_at=payload.completed_at or datetime.now(timezone.utc),
    )
    return action(store, store.add_movement_test_result(result))


@router.put("/suggested-tests", response_model=StoreActionResponse)
def set_suggested_tests(payload: SuggestedTestsUpdate, store: StoreDep):
    return action(store, store.set_suggested_tests(payload.tests))


@router.put("/analysis", response_model=StoreActionResponse)
def set_gemini_analysis(payload: AnalysisUpdate, store: StoreDep):
    return action(store, store.set_gemini_analysis(payload.analysis))


@router.post("/complete", response_model=StoreActionResponse)
def complete_session(store: StoreDep):
    return action(store, store.complete_session())
