"""
Markdown rendering and session exports.
"""
from datetime import datetime, timezone

from reportlab.pdfgen import canvas

from conftest import make_marker, make_result
from schemas.assessment import AffectedStructure, AssessmentSession, GeminiPhysioResponse
from services.report_service import build_session_export_json, build_session_pdf_bytes, format_analysis_for_display
from services.response_decoder import DEFAULT_DISCLAIMER


def analysis(**overrides):
    fields = dict(
        preliminary_assessment="Your lower back muscles are likely strained.",
        affected_structures=[AffectedStructure(structure="Erector spinae", likelihood="high", reasoning="Central ache")],
        recommended_next_steps=["Keep moving gently", "Use heat"],
        red_flags=["Loss of bladder control"],
        disclaimer="Guidance only.",
    )
    fields.update(overrides)
    return GeminiPhysioResponse(**fields)


def session(**overrides):
    now = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    fields = dict(id="s-1", created_at=now, updated_at=now)
    fields.update(overrides)
    return AssessmentSession(**fields)


class TestMarkdown:
    def test_full_analysis(self):
        text = format_analysis_for_display(analysis())
        assert text == (
            "## Preliminary Assessment\nYour lower back muscles are likely strained.\n\n"
            "## Likely Affected Structures\n- **Erector spinae** (high likelihood): Central ache\n\n"
            "## ⚠️ Red Flags\n- Loss of bladder control\n\n"
            "## Recommended Next Steps\n1. Keep moving gently\n2. Use heat\n\n"
            "---\n*Guidance only.*"
        )

    def test_empty_sections_are_omitted(self):
        text = format_analysis_for_display(
            analysis(affected_structures=[], red_flags=[], recommended_next_steps=[])
        )
        assert text == "## Preliminary Assessment\nYour lower back muscles are likely strained.\n\n---\n*Guidance only.*"


class TestExports:
    def test_json_export_with_analysis(self):
        marker = make_marker()
        exported = build_session_export_json(session(pain_markers=[marker], gemini_analysis=analysis()))
        assert exported["disclaimer"] == "Guidance only."
        assert exported["session"]["painMarkers"][0]["id"] == marker.id
        assert exported["muscleMapping"] == {marker.id: ["Erector spinae", "Multifidus", "Interspinales", "Rotatores"]}
        assert exported["analysisMarkdown"].startswith("## Preliminary Assessment")

    def test_json_export_without_analysis(self):
        exported = build_session_export_json(session(pain_markers=[make_marker(region="unknown-spot")]))
        assert exported["disclaimer"] == DEFAULT_DISCLAIMER
        assert exported["muscleMapping"] == {}
        assert exported["analysisMarkdown"] is None

    def test_pdf_export(self):
        pdf = build_session_pdf_bytes(
            session(
                initial_story="Started after a long drive",
                pain_markers=[make_marker(notes="burning")],
                movement_tests=[make_result()],
                gemini_analysis=analysis(),
            )
        )
        assert pdf.startswith(b"%PDF")

    def test_pdf_export_spans_pages(self):
        markers = [make_marker(notes="note") for _ in range(40)]
        pdf = build_session_pdf_bytes(session(pain_markers=markers))
        assert pdf.startswith(b"%PDF")
        assert pdf.rstrip().endswith(b"%%EOF")


def test_pdf_wraps_long_text(monkeypatch):
    drawn = []
    draw = canvas.Canvas.drawString

    def record(self, x, y, text, *args, **kwargs):
        drawn.append(text)
        return draw(self, x, y, text, *args, **kwargs)

    monkeypatch.setattr(canvas.Canvas, "drawString", record)
    long_assessment = " ".join(["Your lower back muscles look irritated after repeated bending."] * 6)
    build_session_pdf_bytes(session(gemini_analysis=analysis(preliminary_assessment=long_assessment)))

    assert len(long_assessment) > 120
    start = next(i for i, text in enumerate(drawn) if text.startswith("Your lower back muscles look"))
    wrapped = []
    for text in drawn[start:]:
        wrapped.append(text)
        if " ".join(wrapped) == long_assessment:
            break
    assert " ".join(wrapped) == long_assessment
    assert len(wrapped) > 1
