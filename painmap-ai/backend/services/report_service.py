from __future__ import annotations

from io import BytesIO

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from schemas.assessment import AssessmentSession, GeminiPhysioResponse
from services.muscle_map import get_muscles_for_region
from services.response_decoder import DEFAULT_DISCLAIMER


def format_analysis_for_display(analysis: GeminiPhysioResponse) -> str:
    output = f"## Preliminary Assessment\n{analysis.preliminary_assessment}\n\n"

    if analysis.affected_structures:
        output += "## Likely Affected Structures\n"
        for s in analysis.affected_structures:
            output += f"- **{s.structure}** ({s.likelihood} likelihood): {s.reasoning}\n"
        output += "\n"

    if analysis.red_flags:
        output += "## ⚠️ Red Flags\n"
        for flag in analysis.red_flags:
            output += f"- {flag}\n"
        output += "\n"

    if analysis.recommended_next_steps:
        output += "## Recommended Next Steps\n"
        for i, step in enumerate(analysis.recommended_next_steps, start=1):
            output += f"{i}. {step}\n"
        output += "\n"

    output += f"---\n*{analysis.disclaimer}*"
    return output


def build_session_export_json(session: AssessmentSession) -> dict:
    analysis = session.gemini_analysis
    return {
        "disclaimer": analysis.disclaimer if analysis else DEFAULT_DISCLAIMER,
        "session": session.model_dump(mode="json", by_alias=True),
        "muscleMapping": {
            m.id: list(mapping.primary + mapping.secondary)
            for m in session.pain_markers
            if (mapping := get_muscles_for_region(m.region))
        },
        "analysisMarkdown": format_analysis_for_display(analysis) if analysis else None,
    }


def build_session_pdf_bytes(session: AssessmentSession) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    w, h = letter
    y = h - 0.75 * inch

    def line(text: str, font: str = "Helvetica", size: int = 10, step: float = 0.2) -> None:
        nonlocal y
        for chunk in simpleSplit(text, font, size, w - 1.5 * inch) or [""]:
            c.setFont(font, size)
            c.drawString(0.75 * inch, y, chunk)
            y -= step * inch
            if y < 1.2 * inch:
                c.showPage()
                y = h - 0.75 * inch

    line("PainMap AI - Assessment Report", "Helvetica-Bold", 16, 0.3)
    c.setFillGray(0.25)
    line(session.gemini_analysis.disclaimer if session.gemini_analysis else DEFAULT_DISCLAIMER, size=9, step=0.45)
    c.setFillGray(0)

    line("Session Summary", "Helvetica-Bold", 11, 0.25)
    for text in [
        f"Session ID: {session.id}",
        f"Status: {session.status}",
        f"Created: {session.created_at.isoformat()}",
        f"Updated: {session.updated_at.isoformat()}",
        f"Pain markers: {len(session.pain_markers)}",
        f"Movement tests completed: {len(session.movement_tests)}",
    ]:
        line(text)
    if session.initial_story:
        line(f"Story: {session.initial_story}")

    y -= 0.1 * inch
    line("Pain Markers", "Helvetica-Bold", 11, 0.25)
    for m in session.pain_markers:
        mapping = get_muscles_for_region(m.region)
        muscles = ", ".join(mapping.primary) if mapping else "-"
        line(f"{m.region} ({m.body_view}) • {m.pain_type} • intensity {m.intensity}/10 • {muscles}", size=9, step=0.18)
        if m.notes:
            line(f"    {m.notes}", size=9, step=0.18)

    if session.movement_tests:
        y -= 0.1 * inch
        line("Movement Tests", "Helvetica-Bold", 11, 0.25)
        for t in session.movement_tests:
            outcome = "reproduced pain" if t.is_positive else "no pain"
            line(f"{t.completed_at.date().isoformat()} • {t.test_name} • {outcome}", size=9, step=0.18)

    analysis = session.gemini_analysis
    if analysis:
        y -= 0.1 * inch
        line("AI Preliminary Assessment", "Helvetica-Bold", 11, 0.25)
        line(analysis.preliminary_assessment, size=9, step=0.18)
        for s in analysis.affected_structures:
            line(f"- {s.structure} ({s.likelihood}): {s.reasoning}", size=9, step=0.18)
        for flag in analysis.red_flags:
            line(f"RED FLAG: {flag}", "Helvetica-Bold", 9, 0.18)
        for i, next_step in enumerate(analysis.recommended_next_steps, start=1):
            line(f"{i}. {next_step}", size=9, step=0.18)

    c.showPage()
    c.save()
    return buf.getvalue()
