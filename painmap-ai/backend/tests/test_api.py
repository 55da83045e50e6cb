"""
HTTP surface tests through FastAPI's TestClient. The store is the fixture
store backed by a temp SQLite file; Gemini is the MagicMock gateway.
"""
import base64
import json

import pytest

from api.deps import _gateway_for, get_gemini_gateway
from conftest import TEST_STORAGE_KEY, gemini_reply, make_image, make_marker, make_result, marker_json
from core.config import settings

ANALYSIS_REPLY = {
    "preliminaryAssessment": "It sounds like your lower back muscles are tight.",
    "affectedStructures": [{"structure": "Lower back muscles", "likelihood": "high", "reasoning": "Central pain"}],
    "recommendedNextSteps": ["Gentle walks"],
    "redFlags": [],
    "disclaimer": "Guidance only.",
}

PREVIOUS_ANALYSIS = {
    "preliminaryAssessment": "Tight lower back.",
    "affectedStructures": [],
    "recommendedNextSteps": [],
    "redFlags": [],
    "disclaimer": "Guidance only.",
}


@pytest.fixture
def unconfigured(app, monkeypatch):
    """App with the real gateway dependency and no API key."""
    app.dependency_overrides.pop(get_gemini_gateway, None)
    monkeypatch.setattr(settings, "gemini_api_key", None)
    _gateway_for.cache_clear()
    return app


def start(client):
    return client.post("/api/assessment").json()["state"]


def add_marker(client, region="lower-back-center", intensity=7, pain_type="point", **extra):
    client.post("/api/assessment/annotation", json={"x": 10, "y": 20, "region": region})
    return client.post("/api/assessment/markers", json={"painType": pain_type, "intensity": intensity, **extra}).json()


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestAnalyzeEndpoint:
    def test_analyze(self, client, mock_gemini):
        gemini_reply(mock_gemini, json.dumps(ANALYSIS_REPLY))
        response = client.post(
            "/api/analyze",
            json={"painMarkers": [marker_json(make_marker())], "initialStory": "Hurt while lifting"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["preliminaryAssessment"] == "It sounds like your lower back muscles are tight."
        assert body["affectedStructures"][0]["likelihood"] == "high"
        assert body["disclaimer"] == "Guidance only."

    def test_empty_markers(self, client, mock_gemini):
        response = client.post("/api/analyze", json={"painMarkers": []})
        assert response.status_code == 400
        assert response.json() == {"detail": "Pain markers are required"}
        mock_gemini.models.generate_content.assert_not_called()

    def test_missing_markers_field(self, client):
        assert client.post("/api/analyze", json={}).status_code == 400

    def test_invalid_marker_intensity(self, client):
        marker = marker_json(make_marker())
        marker["intensity"] = 11
        assert client.post("/api/analyze", json={"painMarkers": [marker]}).status_code == 422

    def test_unparseable_reply(self, client, mock_gemini):
        gemini_reply(mock_gemini, "Sorry, I can't do that.")
        response = client.post("/api/analyze", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to analyze symptoms"}

    def test_transport_failure(self, client, mock_gemini):
        mock_gemini.models.generate_content.side_effect = ConnectionError("down")
        response = client.post("/api/analyze", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to analyze symptoms"}

    def test_bad_marker_image(self, client, mock_gemini):
        marker = marker_json(make_marker())
        marker["images"] = [{"base64": "%%%", "mimeType": "image/jpeg"}]
        response = client.post("/api/analyze", json={"painMarkers": [marker]})
        assert response.status_code == 400
        assert response.json() == {"detail": "Image payload (image/jpeg) is not valid base64"}
        mock_gemini.models.generate_content.assert_not_called()

    def test_missing_api_key(self, unconfigured, client, mock_gemini):
        response = client.post("/api/analyze", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 500
        assert response.json() == {"detail": "Gemini API key not configured"}

    def test_missing_api_key_wins_over_bad_payload(self, unconfigured, client):
        response = client.post("/api/analyze", json={"painMarkers": []})
        assert response.status_code == 500
        assert response.json() == {"detail": "Gemini API key not configured"}


class TestGenerateTestsEndpoint:
    def test_generate_tests(self, client, mock_gemini):
        gemini_reply(mock_gemini, '[{"name": "Cat-cow", "instructions": ["On hands and knees"]}, {"purpose": "x"}]')
        response = client.post("/api/generate-tests", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 200
        assert response.json() == [
            {
                "id": "ai-test-1",
                "name": "Cat-cow",
                "purpose": "",
                "targetMuscles": [],
                "instructions": ["On hands and knees"],
                "duration": 30,
                "repetitions": None,
                "whatToWatch": "",
                "positiveIndicators": [],
                "negativeIndicators": [],
            }
        ]

    def test_empty_markers(self, client, mock_gemini):
        response = client.post("/api/generate-tests", json={"painMarkers": []})
        assert response.status_code == 400
        assert response.json() == {"detail": "Pain markers are required"}
        mock_gemini.models.generate_content.assert_not_called()

    def test_failure(self, client, mock_gemini):
        gemini_reply(mock_gemini, "no array here")
        response = client.post("/api/generate-tests", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate tests"}

    def test_bad_marker_image(self, client, mock_gemini):
        marker = marker_json(make_marker())
        marker["images"] = [{"base64": "not base64!", "mimeType": "image/png"}]
        response = client.post("/api/generate-tests", json={"painMarkers": [marker]})
        assert response.status_code == 400
        mock_gemini.models.generate_content.assert_not_called()

    def test_missing_api_key(self, unconfigured, client):
        response = client.post("/api/generate-tests", json={"painMarkers": [marker_json(make_marker())]})
        assert response.status_code == 500
        assert response.json() == {"detail": "Gemini API key not configured"}


class TestFollowUpEndpoint:
    def test_follow_up(self, client, mock_gemini):
        gemini_reply(mock_gemini, "Yes, gentle stretching is fine.")
        response = client.post(
            "/api/follow-up",
            json={
                "question": "Can I stretch?",
                "previousAnalysis": PREVIOUS_ANALYSIS,
                "painMarkers": [marker_json(make_marker())],
                "movementTestResults": [make_result().model_dump(mode="json", by_alias=True)],
                "images": [{"base64": "aGVsbG8=", "mimeType": "image/png"}],
            },
        )
        assert response.status_code == 200
        assert response.json() == {"response": "Yes, gentle stretching is fine."}
        contents = mock_gemini.models.generate_content.call_args.kwargs["contents"]
        assert contents[0].inline_data.mime_type == "image/png"

    @pytest.mark.parametrize("question", ["", "   "])
    def test_question_required(self, client, mock_gemini, question):
        response = client.post("/api/follow-up", json={"question": question, "previousAnalysis": PREVIOUS_ANALYSIS})
        assert response.status_code == 400
        assert response.json() == {"detail": "Question is required"}
        mock_gemini.models.generate_content.assert_not_called()

    def test_failure(self, client, mock_gemini):
        mock_gemini.models.generate_content.side_effect = TimeoutError()
        response = client.post("/api/follow-up", json={"question": "Why?", "previousAnalysis": PREVIOUS_ANALYSIS})
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to process follow-up question"}

    def test_bad_image_payload(self, client, mock_gemini):
        response = client.post(
            "/api/follow-up",
            json={
                "question": "Why?",
                "previousAnalysis": PREVIOUS_ANALYSIS,
                "images": [{"base64": "***", "mimeType": "image/png"}],
            },
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Image payload (image/png) is not valid base64"}
        mock_gemini.models.generate_content.assert_not_called()


class TestAssessmentEndpoints:
    def test_initial_state(self, client):
        state = client.get("/api/assessment").json()
        assert state["currentSession"] is None
        assert state["currentView"] == "anterior"
        assert state["isAnnotating"] is False
        assert state["painDefaults"] == {"painType": "point", "intensity": 5}
        assert state["affectedRegions"] == []

    def test_start_session(self, client):
        state = start(client)
        assert state["currentSession"]["status"] == "in-progress"
        assert state["currentSession"]["painMarkers"] == []

    def test_annotate_and_add_marker(self, client):
        start(client)
        client.put("/api/assessment/view", json={"view": "posterior"})
        pending = client.post("/api/assessment/annotation", json={"x": 1.5, "y": 2.5, "region": "glute-right"}).json()
        assert pending["state"]["isAnnotating"] is True
        assert pending["state"]["pendingMarker"] == {"x": 1.5, "y": 2.5, "region": "glute-right"}

        result = client.post(
            "/api/assessment/markers",
            json={"painType": "radiating", "intensity": 6, "notes": " shoots down ", "images": [make_image().model_dump(by_alias=True)]},
        ).json()
        assert result["applied"] is True
        state = result["state"]
        [marker] = state["currentSession"]["painMarkers"]
        assert marker["bodyView"] == "posterior"
        assert marker["notes"] == "shoots down"
        assert marker["images"][0]["mimeType"] == "image/png"
        assert state["selectedMarkerId"] == marker["id"]
        assert state["painDefaults"] == {"painType": "radiating", "intensity": 6}
        assert state["affectedRegions"] == ["glute-right"]
        assert state["isAnnotating"] is False

    def test_add_marker_while_idle(self, client):
        start(client)
        result = client.post("/api/assessment/markers", json={"painType": "point", "intensity": 5}).json()
        assert result["applied"] is False
        assert result["state"]["currentSession"]["painMarkers"] == []

    def test_add_marker_rejects_intensity(self, client):
        start(client)
        client.post("/api/assessment/annotation", json={"x": 1, "y": 1, "region": "head"})
        response = client.post("/api/assessment/markers", json={"painType": "point", "intensity": 0})
        assert response.status_code == 422

    def test_cancel_annotation(self, client):
        start(client)
        client.post("/api/assessment/annotation", json={"x": 1, "y": 1, "region": "head"})
        result = client.delete("/api/assessment/annotation").json()
        assert result["applied"] is True
        assert result["state"]["pendingMarker"] is None

    def test_edit_marker_flow(self, client):
        start(client)
        marker = add_marker(client, intensity=4)["state"]["currentSession"]["painMarkers"][0]

        editing = client.post(f"/api/assessment/markers/{marker['id']}/edit").json()
        assert editing["applied"] is True
        assert editing["state"]["editingMarkerId"] == marker["id"]
        assert editing["state"]["selectedMarkerId"] is None

        saved = client.put("/api/assessment/markers/edit", json={"painType": "diffuse", "intensity": 9}).json()
        assert saved["applied"] is True
        [updated] = saved["state"]["currentSession"]["painMarkers"]
        assert updated["id"] == marker["id"]
        assert updated["intensity"] == 9
        assert updated["painType"] == "diffuse"
        assert saved["state"]["editingMarkerId"] is None

    def test_patch_marker(self, client):
        start(client)
        marker = add_marker(client)["state"]["currentSession"]["painMarkers"][0]
        result = client.patch(
            f"/api/assessment/markers/{marker['id']}", json={"intensity": 2, "position": {"x": 5, "y": 6}}
        ).json()
        assert result["applied"] is True
        [patched] = result["state"]["currentSession"]["painMarkers"]
        assert patched["intensity"] == 2
        assert patched["position"] == {"x": 5.0, "y": 6.0}
        assert patched["painType"] == marker["painType"]

    def test_patch_missing_marker(self, client):
        start(client)
        assert client.patch("/api/assessment/markers/nope", json={"intensity": 2}).json()["applied"] is False

    def test_select_and_remove_marker(self, client):
        start(client)
        marker = add_marker(client)["state"]["currentSession"]["painMarkers"][0]

        assert client.delete("/api/assessment/selection").json()["state"]["selectedMarkerId"] is None
        selected = client.post(f"/api/assessment/markers/{marker['id']}/select").json()
        assert selected["state"]["selectedMarkerId"] == marker["id"]
        assert client.post("/api/assessment/markers/nope/select").json()["applied"] is False

        removed = client.delete(f"/api/assessment/markers/{marker['id']}").json()
        assert removed["applied"] is True
        assert removed["state"]["currentSession"]["painMarkers"] == []
        assert removed["state"]["selectedMarkerId"] is None

    def test_story_tests_and_analysis(self, client):
        start(client)
        assert client.put("/api/assessment/story", json={"story": "Ache after cycling"}).json()["applied"] is True

        recorded = client.post(
            "/api/assessment/test-results",
            json={"testId": "thomas-test", "testName": "Thomas Test", "isPositive": False},
        ).json()
        assert recorded["applied"] is True
        [result] = recorded["state"]["currentSession"]["movementTests"]
        assert result["testId"] == "thomas-test"
        assert result["completedAt"]

        suggested = client.put(
            "/api/assessment/suggested-tests", json={"tests": [{"id": "ai-test-1", "name": "Bridge"}]}
        ).json()
        assert suggested["state"]["currentSession"]["suggestedTests"][0]["name"] == "Bridge"

        analysed = client.put("/api/assessment/analysis", json={"analysis": ANALYSIS_REPLY}).json()
        session = analysed["state"]["currentSession"]
        assert session["initialStory"] == "Ache after cycling"
        assert session["geminiAnalysis"]["disclaimer"] == "Guidance only."

    def test_actions_without_session(self, client):
        assert client.put("/api/assessment/story", json={"story": "x"}).json()["applied"] is False
        assert client.post("/api/assessment/complete").json()["applied"] is False

    def test_complete_twice(self, client):
        start(client)
        add_marker(client)
        first = client.post("/api/assessment/complete").json()
        assert first["applied"] is True
        assert first["state"]["currentSession"]["status"] == "completed"
        assert client.post("/api/assessment/complete").json()["applied"] is False
        assert len(client.get("/api/sessions").json()["sessions"]) == 1


class TestSessionEndpoints:
    def complete(self, client, with_analysis=True):
        start(client)
        add_marker(client)
        if with_analysis:
            client.put("/api/assessment/analysis", json={"analysis": ANALYSIS_REPLY})
        return client.post("/api/assessment/complete").json()["state"]["currentSession"]["id"]

    def test_history_and_load(self, client):
        done = self.complete(client)
        start(client)

        history = client.get("/api/sessions").json()["sessions"]
        assert [s["id"] for s in history] == [done]

        loaded = client.post(f"/api/sessions/{done}/load").json()
        assert loaded["applied"] is True
        assert loaded["state"]["currentSession"]["id"] == done
        assert client.post("/api/sessions/nope/load").json()["applied"] is False

    def test_history_is_persisted(self, client, store, storage):
        done = self.complete(client)
        payload = json.loads(storage.get_item(TEST_STORAGE_KEY))
        assert [s["id"] for s in payload["state"]["sessions"]] == [done]

    def test_delete(self, client):
        done = self.complete(client)
        deleted = client.delete(f"/api/sessions/{done}").json()
        assert deleted["applied"] is True
        assert deleted["state"]["currentSession"] is None
        assert client.get("/api/sessions").json() == {"sessions": []}
        assert client.delete(f"/api/sessions/{done}").json()["applied"] is False

    def test_export_json(self, client):
        done = self.complete(client)
        exported = client.get(f"/api/sessions/{done}/export.json").json()
        assert exported["session"]["id"] == done
        assert exported["disclaimer"] == "Guidance only."
        assert list(exported["muscleMapping"].values()) == [
            ["Erector spinae", "Multifidus", "Interspinales", "Rotatores"]
        ]

    def test_export_pdf(self, client):
        done = self.complete(client)
        exported = client.get(f"/api/sessions/{done}/export.pdf").json()
        assert exported["filename"] == f"painmap_assessment_{done}.pdf"
        assert exported["content_type"] == "application/pdf"
        assert base64.b64decode(exported["base64"]).startswith(b"%PDF")

    def test_analysis_markdown(self, client):
        done = self.complete(client)
        response = client.get(f"/api/sessions/{done}/analysis.md")
        assert response.status_code == 200
        assert response.text.startswith("## Preliminary Assessment\nIt sounds like")
        assert response.text.endswith("*Guidance only.*")

    def test_analysis_markdown_without_analysis(self, client):
        done = self.complete(client, with_analysis=False)
        assert client.get(f"/api/sessions/{done}/analysis.md").status_code == 404

    def test_export_in_progress_session(self, client):
        session_id = start(client)["currentSession"]["id"]
        assert client.get(f"/api/sessions/{session_id}/export.json").status_code == 200

    @pytest.mark.parametrize("suffix", ["export.json", "export.pdf", "analysis.md"])
    def test_unknown_session(self, client, suffix):
        response = client.get(f"/api/sessions/nope/{suffix}")
        assert response.status_code == 404
        assert response.json() == {"detail": "Session not found."}


class TestCatalogEndpoints:
    def test_regions(self, client):
        regions = client.get("/api/regions").json()["regions"]
        assert len(regions) == 52
        assert "lower-back-center" in regions

    def test_region(self, client):
        body = client.get("/api/regions/lower-back-center").json()
        assert body == {
            "id": "lower-back-center",
            "muscles": {
                "primary": ["Erector spinae", "Multifidus"],
                "secondary": ["Interspinales", "Rotatores"],
                "nerves": ["Lumbar spinal nerves"],
            },
        }

    def test_unknown_region(self, client):
        assert client.get("/api/regions/tail").status_code == 404

    def test_muscle_union(self, client):
        body = client.get("/api/regions/muscles", params=[("regions", "calf-left"), ("regions", "nowhere")]).json()
        assert body == {
            "regions": ["calf-left", "nowhere"],
            "muscles": ["Gastrocnemius", "Plantaris", "Soleus", "Tibialis posterior"],
        }

    def test_muscle_union_empty(self, client):
        assert client.get("/api/regions/muscles").json() == {"regions": [], "muscles": []}

    def test_all_movement_tests(self, client):
        tests = client.get("/api/movement-tests").json()
        assert len(tests) == 12
        assert tests[0]["id"] == "neers-test"
        assert "expectedFindings" in tests[0]
        assert "targetArea" in tests[0]

    def test_movement_tests_by_region(self, client):
        tests = client.get("/api/movement-tests", params={"regions": "knee-left-anterior"}).json()
        assert [t["id"] for t in tests] == ["mcmurray-test", "anterior-drawer"]

    def test_movement_test_by_id(self, client):
        assert client.get("/api/movement-tests/faber-test").json()["name"] == "FABER Test (Patrick Test)"
        assert client.get("/api/movement-tests/nope").status_code == 404
