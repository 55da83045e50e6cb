"""
Pytest configuration and fixtures

Every test gets its own SQLite file under tmp_path, so persisted session
history never leaks between tests. Gemini is always a MagicMock client;
no test talks to the network.
"""
import os
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add the backend directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.deps import get_gemini_gateway  # noqa: E402
from main import create_app  # noqa: E402
from models.base import Base  # noqa: E402
from schemas.assessment import MovementTestResult, PainMarker, PainMarkerImage, Position  # noqa: E402
from services.gemini_service import GeminiGateway  # noqa: E402
from services.pain_store import PainStore  # noqa: E402
from services.storage_service import SqlKeyValueStorage  # noqa: E402

TEST_STORAGE_KEY = "test-pain-storage"

# "hello" as base64, enough to stand in for an image payload.
PNG_B64 = "aGVsbG8="


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'painmap-test.db'}", future=True)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    engine.dispose()


@pytest.fixture
def storage(session_factory):
    return SqlKeyValueStorage(session_factory)


@pytest.fixture
def store(storage):
    return PainStore(storage=storage, storage_key=TEST_STORAGE_KEY)


@pytest.fixture
def mock_gemini():
    """MagicMock standing in for genai.Client; set .models.generate_content.return_value.text per test."""
    return MagicMock()


@pytest.fixture
def gateway(mock_gemini):
    return GeminiGateway(client=mock_gemini, model="gemini-test")


@pytest.fixture
def app(store, gateway):
    app = create_app(store=store)
    app.dependency_overrides[get_gemini_gateway] = lambda: gateway
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def gemini_reply(mock_gemini, text):
    response = MagicMock()
    response.text = text
    mock_gemini.models.generate_content.return_value = response
    return response


def make_marker(
    region="lower-back-center",
    intensity=8,
    pain_type="point",
    body_view="posterior",
    images=None,
    notes=None,
):
    return PainMarker(
        id=str(uuid4()),
        position=Position(x=120.0, y=340.0),
        region=region,
        body_view=body_view,
        pain_type=pain_type,
        intensity=intensity,
        timestamp=datetime.now(timezone.utc),
        images=images,
        notes=notes,
    )


def make_image(mime_type="image/png"):
    return PainMarkerImage(base64=PNG_B64, mime_type=mime_type, preview_url="blob:preview")


def make_result(test_id="straight-leg-raise", test_name="Straight Leg Raise (Lasègue Test)", is_positive=True):
    return MovementTestResult(
        test_id=test_id,
        test_name=test_name,
        is_positive=is_positive,
        completed_at=datetime.now(timezone.utc),
    )


def marker_json(marker: PainMarker) -> dict:
    return marker.model_dump(mode="json", by_alias=True)
