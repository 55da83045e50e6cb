import base64

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from api.deps import StoreDep
from api.routes.assessment import action
from schemas.store import SessionHistoryResponse, StoreActionResponse
from services.pain_store import PainStore
from services.report_service import build_session_export_json, build_session_pdf_bytes, format_analysis_for_display

router = APIRouter()


def _get_session_or_404(store: PainStore, session_id: str):
    session = store.get_session(session_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return session


@router.get("/sessions", response_model=SessionHistoryResponse)
def list_sessions(store: StoreDep):
    return SessionHistoryResponse(sessions=store.sessions)


@router.post("/sessions/{session_id}/load", response_model=StoreActionResponse)
def load_session(session_id: str, store: StoreDep):
    return action(store, store.load_session(session_id))


@router.delete("/sessions/{session_id}", response_model=StoreActionResponse)
def delete_session(session_id: str, store: StoreDep):
    return action(store, store.delete_session(session_id))


@router.get("/sessions/{session_id}/export.json")
def export_session_json(session_id: str, store: StoreDep):
    return build_session_export_json(_get_session_or_404(store, session_id))


@router.get("/sessions/{session_id}/export.pdf")
def export_session_pdf(session_id: str, store: StoreDep):
    pdf = build_session_pdf_bytes(_get_session_or_404(store, session_id))
    return {
        "filename": f"painmap_assessment_{session_id}.pdf",
        "content_type": "application/pdf",
        "base64": base64.b64encode(pdf).decode("utf-8"),
    }


@router.get("/sessions/{session_id}/analysis.md", response_class=PlainTextResponse)
def export_analysis_markdown(session_id: str, store: StoreDep):
    session = _get_session_or_404(store, session_id)
    if not session.gemini_analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session has no analysis yet.")
    return format_analysis_for_display(session.gemini_analysis)
