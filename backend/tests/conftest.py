"""
Pytest fixtures for backend tests.

Provides a test client wired to an in-memory rate card and mock model
providers, so no files are written and no network calls are made.
"""

import json
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from ml.audit.rate_card import InMemoryRateCardStore
from ml.llm.llm_wrapper import MockProvider

from app.main import app
from app.api.deps import (
    get_complaint_provider,
    get_rate_card_store,
    get_transcription_client,
    get_vision_provider,
)
from app.core.rate_limiter import limiter


EXTRACTED_BILL = {
    "hospital_name": "City Care Hospital",
    "patient_name": "Rajesh Sharma",
    "bill_date": "2024-03-20",
    "city": "Mumbai",
    "line_items": [
        {"service": "Room Rent", "price": 7500, "quantity": 3},
        {"service": "Consultation", "price": 700},
    ],
}


@pytest.fixture
def store() -> InMemoryRateCardStore:
    return InMemoryRateCardStore()


@pytest.fixture
def vision_provider() -> MockProvider:
    return MockProvider(response=json.dumps(EXTRACTED_BILL))


@pytest.fixture
def complaint_provider() -> MockProvider:
    return MockProvider(
        response="Dear Sir/Madam,\n\nI was overcharged for the room.\n\nYours faithfully,\nX"
    )


@pytest.fixture
def transcription_client() -> MagicMock:
    client = MagicMock()
    client.audio.transcriptions.create.return_value = MagicMock(text="They charged me for two rooms.")
    return client


@pytest.fixture
def client(
    store: InMemoryRateCardStore,
    vision_provider: MockProvider,
    complaint_provider: MockProvider,
    transcription_client: MagicMock,
) -> Generator[TestClient, None, None]:
    """
    Create a test client with dependency overrides.

    Yields:
        TestClient: FastAPI test client.
    """
    app.dependency_overrides[get_rate_card_store] = lambda: store
    app.dependency_overrides[get_vision_provider] = lambda: vision_provider
    app.dependency_overrides[get_complaint_provider] = lambda: complaint_provider
    app.dependency_overrides[get_transcription_client] = lambda: transcription_client
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def extracted_bill() -> dict:
    return json.loads(json.dumps(EXTRACTED_BILL))
