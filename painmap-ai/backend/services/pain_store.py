"""
Assessment session store.

Holds the current assessment session, the marker annotation state, the
carried-over pain defaults and the history of completed sessions. Every
mutation goes through a method here; methods report whether they applied
instead of raising on invalid transitions.

Annotation sub-state:
    idle            no pending marker
    annotating/new  pending {x, y, region} waiting for add_pain_marker
    annotating/edit pending tuple sourced from an existing marker,
                    waiting for save_edited_marker

Only the history list is durable. It is written synchronously under
`storage_key` whenever it changes; the in-progress session is not.
"""

from __future__ import annotations

import functools
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from schemas.assessment import (
    INTENSITY_MAX,
    INTENSITY_MIN,
    AIGeneratedTest,
    AssessmentSession,
    BodyView,
    GeminiPhysioResponse,
    MovementTestResult,
    PainDefaults,
    PainMarker,
    PainMarkerImage,
    PainType,
    PendingMarker,
    Position,
)
from schemas.store import AssessmentStateResponse
from services.storage_service import KeyValueStorage

logger = logging.getLogger(__name__)

PERSIST_VERSION = 0

AnnotationMode = Literal["idle", "new", "edit"]

_sessions_adapter = TypeAdapter(list[AssessmentSession])

# Fields update_pain_marker may touch; id and timestamp stay fixed.
_UPDATABLE_MARKER_FIELDS = {
    "position",
    "region",
    "body_view",
    "pain_type",
    "intensity",
    "spread_area",
    "images",
    "notes",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _synchronized(method):
    @functools.wraps(method)
    def wrapper(self: PainStore, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _clean_images(images: list[PainMarkerImage] | None) -> list[PainMarkerImage] | None:
    return list(images) if images else None


def _clean_notes(notes: str | None) -> str | None:
    return (notes or "").strip() or None


def _valid_intensity(intensity: int) -> bool:
    return INTENSITY_MIN <= intensity <= INTENSITY_MAX


class PainStore:
    def __init__(self, storage: KeyValueStorage | None = None, storage_key: str = "physio-pain-storage"):
        self._storage = storage
        self._storage_key = storage_key
        self._lock = threading.RLock()

        self._current_session: AssessmentSession | None = None
        self._sessions: list[AssessmentSession] = []

        self._current_view: BodyView = "anterior"
        self._selected_marker_id: str | None = None
        self._pending_marker: PendingMarker | None = None
        self._editing_marker_id: str | None = None
        self._pain_defaults = PainDefaults()

    # ------------------------------------------------------------------
    # Read access (copies; callers never hold live session objects)
    # ------------------------------------------------------------------

    @property
    def current_session(self) -> AssessmentSession | None:
        with self._lock:
            return self._current_session.model_copy(deep=True) if self._current_session else None

    @property
    def sessions(self) -> list[AssessmentSession]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._sessions]

    @property
    def current_view(self) -> BodyView:
        return self._current_view

    @property
    def selected_marker_id(self) -> str | None:
        return self._selected_marker_id

    @property
    def pending_marker(self) -> PendingMarker | None:
        return self._pending_marker.model_copy() if self._pending_marker else None

    @property
    def editing_marker_id(self) -> str | None:
        return self._editing_marker_id

    @property
    def is_annotating(self) -> bool:
        return self._pending_marker is not None

    @property
    def annotation_mode(self) -> AnnotationMode:
        if self._pending_marker is None:
            return "idle"
        return "edit" if self._editing_marker_id else "new"

    def get_pain_defaults(self) -> PainDefaults:
        return self._pain_defaults.model_copy()

    @_synchronized
    def get_current_markers(self) -> list[PainMarker]:
        if not self._current_session:
            return []
        return [m.model_copy(deep=True) for m in self._current_session.pain_markers]

    @_synchronized
    def get_affected_regions(self) -> list[str]:
        if not self._current_session:
            return []
        # Unique, in first-marked order.
        return list(dict.fromkeys(m.region for m in self._current_session.pain_markers))

    @_synchronized
    def get_editing_marker(self) -> PainMarker | None:
        marker = self._find_marker(self._editing_marker_id) if self._editing_marker_id else None
        return marker.model_copy(deep=True) if marker else None

    @_synchronized
    def state(self) -> AssessmentStateResponse:
        """Consistent snapshot of everything the client renders, taken under one lock."""
        return AssessmentStateResponse(
            current_session=self.current_session,
            current_view=self._current_view,
            selected_marker_id=self._selected_marker_id,
            is_annotating=self.is_annotating,
            pending_marker=self.pending_marker,
            editing_marker_id=self._editing_marker_id,
            pain_defaults=self.get_pain_defaults(),
            affected_regions=self.get_affected_regions(),
        )

    @_synchronized
    def get_session(self, session_id: str) -> AssessmentSession | None:
        """Current session or history entry with this id (current wins)."""
        if self._current_session and self._current_session.id == session_id:
            return self._current_session.model_copy(deep=True)
        for s in self._sessions:
            if s.id == session_id:
                return s.model_copy(deep=True)
        return None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @_synchronized
    def start_new_session(self) -> AssessmentSession:
        now = _now()
        self._current_session = AssessmentSession(id=str(uuid4()), created_at=now, updated_at=now)
        self._selected_marker_id = None
        self._clear_annotation()
        logger.info("Started assessment session %s", self._current_session.id)
        return self._current_session.model_copy(deep=True)

    @_synchronized
    def set_initial_story(self, story: str) -> bool:
        session = self._editable_session()
        if not session:
            return False
        session.initial_story = story
        session.updated_at = _now()
        return True

    @_synchronized
    def set_current_view(self, view: BodyView) -> bool:
        self._current_view = view
        return True

    @_synchronized
    def complete_session(self) -> bool:
        session = self._current_session
        if not session:
            return False
        # One history snapshot per session id.
        if session.status == "completed":
            return False

        completed = session.model_copy(update={"status": "completed", "updated_at": _now()}, deep=True)
        history = [*self._sessions, completed]
        # Write first; a storage failure leaves the session in progress.
        self._persist(history)
        self._sessions = history
        self._current_session = completed.model_copy(deep=True)
        logger.info("Completed assessment session %s (%d markers)", session.id, len(session.pain_markers))
        return True

    @_synchronized
    def load_session(self, session_id: str) -> bool:
        for s in self._sessions:
            if s.id == session_id:
                self._current_session = s.model_copy(deep=True)
                self._selected_marker_id = None
                self._clear_annotation()
                return True
        return False

    @_synchronized
    def delete_session(self, session_id: str) -> bool:
        history = [s for s in self._sessions if s.id != session_id]
        removed = len(history) != len(self._sessions)
        if removed:
            self._persist(history)
            self._sessions = history

        cleared = False
        if self._current_session and self._current_session.id == session_id:
            self._current_session = None
            self._selected_marker_id = None
            self._clear_annotation()
            cleared = True
        return removed or cleared

    # ------------------------------------------------------------------
    # Annotation
    # ------------------------------------------------------------------

    @_synchronized
    def start_annotation(self, x: float, y: float, region: str) -> bool:
        # Last writer wins: any pending tuple, new or edit, is discarded.
        self._pending_marker = PendingMarker(x=x, y=y, region=region)
        self._editing_marker_id = None
        return True

    @_synchronized
    def cancel_annotation(self) -> bool:
        was_annotating = self._pending_marker is not None
        self._clear_annotation()
        return was_annotating

    @_synchronized
    def add_pain_marker(
        self,
        pain_type: PainType,
        intensity: int,
        images: list[PainMarkerImage] | None = None,
        notes: str | None = None,
    ) -> PainMarker | None:
        session = self._editable_session()
        if not session or self.annotation_mode != "new":
            return None
        if not _valid_intensity(intensity):
            return None

        pending = self._pending_marker
        marker = PainMarker(
            id=str(uuid4()),
            position=Position(x=pending.x, y=pending.y),
            region=pending.region,
            body_view=self._current_view,
            pain_type=pain_type,
            intensity=intensity,
            timestamp=_now(),
            images=_clean_images(images),
            notes=_clean_notes(notes),
        )
        session.pain_markers.append(marker)
        session.updated_at = _now()

        self._selected_marker_id = marker.id
        self._pain_defaults = PainDefaults(pain_type=pain_type, intensity=intensity)
        self._clear_annotation()
        return marker.model_copy(deep=True)

    @_synchronized
    def start_editing_marker(self, marker_id: str) -> bool:
        if not self._editable_session():
            return False
        marker = self._find_marker(marker_id)
        if not marker:
            return False
        self._pending_marker = PendingMarker(x=marker.position.x, y=marker.position.y, region=marker.region)
        self._editing_marker_id = marker_id
        self._selected_marker_id = None
        return True

    @_synchronized
    def save_edited_marker(
        self,
        pain_type: PainType,
        intensity: int,
        images: list[PainMarkerImage] | None = None,
        notes: str | None = None,
    ) -> bool:
        session = self._editable_session()
        if not session or self.annotation_mode != "edit":
            return False
        if not _valid_intensity(intensity):
            return False

        marker = self._find_marker(self._editing_marker_id)
        if not marker:
            # Target vanished since editing started; drop the stale edit.
            self._clear_annotation()
            return False

        marker.pain_type = pain_type
        marker.intensity = intensity
        marker.images = _clean_images(images)
        marker.notes = _clean_notes(notes)
        session.updated_at = _now()

        self._pain_defaults = PainDefaults(pain_type=pain_type, intensity=intensity)
        self._clear_annotation()
        return True

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    @_synchronized
    def update_pain_marker(self, marker_id: str, **updates: Any) -> bool:
        session = self._editable_session()
        if not session:
            return False
        unknown = set(updates) - _UPDATABLE_MARKER_FIELDS
        if unknown:
            raise TypeError(f"Cannot update marker field(s): {', '.join(sorted(unknown))}")

        for i, m in enumerate(session.pain_markers):
            if m.id != marker_id:
                continue
            try:
                merged = {**m.model_dump(), **updates}
                merged["notes"] = _clean_notes(merged.get("notes"))
                merged["images"] = _clean_images(merged.get("images"))
                updated = PainMarker.model_validate(merged)
            except ValidationError as exc:
                logger.info("Rejected update for marker %s: %s", marker_id, exc.errors())
                return False
            session.pain_markers[i] = updated
            session.updated_at = _now()
            return True
        return False

    @_synchronized
    def select_marker(self, marker_id: str | None) -> bool:
        if marker_id is not None and not self._find_marker(marker_id):
            return False
        self._selected_marker_id = marker_id
        return True

    @_synchronized
    def remove_pain_marker(self, marker_id: str) -> bool:
        session = self._editable_session()
        if not session or not self._find_marker(marker_id):
            return False

        session.pain_markers = [m for m in session.pain_markers if m.id != marker_id]
        session.updated_at = _now()
        if self._selected_marker_id == marker_id:
            self._selected_marker_id = None
        if self._editing_marker_id == marker_id:
            self._clear_annotation()
        return True

    # ------------------------------------------------------------------
    # Movement tests and analysis
    # ------------------------------------------------------------------

    @_synchronized
    def add_movement_test_result(self, result: MovementTestResult) -> bool:
        session = self._editable_session()
        if not session:
            return False
        # Repeat completions of the same test are kept as separate entries.
        session.movement_tests.append(result.model_copy(deep=True))
        session.updated_at = _now()
        return True

    @_synchronized
    def set_suggested_tests(self, tests: list[AIGeneratedTest]) -> bool:
        session = self._editable_session()
        if not session:
            return False
        session.suggested_tests = [t.model_copy(deep=True) for t in tests]
        session.updated_at = _now()
        return True

    @_synchronized
    def set_gemini_analysis(self, analysis: GeminiPhysioResponse) -> bool:
        session = self._editable_session()
        if not session:
            return False
        session.gemini_analysis = analysis.model_copy(deep=True)
        session.updated_at = _now()
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @_synchronized
    def hydrate(self) -> int:
        """Load the persisted history list. Returns the number of sessions loaded."""
        if not self._storage:
            return 0
        raw = self._storage.get_item(self._storage_key)
        if not raw:
            self._sessions = []
            return 0
        try:
            payload = json.loads(raw)
            self._sessions = _sessions_adapter.validate_python(payload["state"]["sessions"])
        except (ValueError, KeyError, TypeError) as exc:
            # ValidationError and JSONDecodeError are both ValueErrors.
            logger.warning("Discarding unreadable session history under %r: %s", self._storage_key, exc)
            self._sessions = []
        logger.info("Loaded %d assessment session(s) from storage", len(self._sessions))
        return len(self._sessions)

    def _persist(self, sessions: list[AssessmentSession]) -> None:
        if not self._storage:
            return
        payload = {
            "state": {"sessions": _sessions_adapter.dump_python(sessions, mode="json", by_alias=True)},
            "version": PERSIST_VERSION,
        }
        self._storage.set_item(self._storage_key, json.dumps(payload))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _editable_session(self) -> AssessmentSession | None:
        session = self._current_session
        if session and session.status == "in-progress":
            return session
        return None

    def _find_marker(self, marker_id: str) -> PainMarker | None:
        if not self._current_session:
            return None
        for m in self._current_session.pain_markers:
            if m.id == marker_id:
                return m
        return None

    def _clear_annotation(self) -> None:
        self._pending_marker = None
        self._editing_marker_id = None
