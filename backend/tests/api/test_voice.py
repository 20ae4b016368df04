"""
Tests for voice transcription endpoints.
"""

from fastapi.testclient import TestClient

from app.api.deps import get_transcription_client
from app.main import app


AUDIO_UPLOAD = {"audio": ("note.webm", b"\x1aE\xdf\xa3", "audio/webm")}


class TestTranscribe:
    """Tests for POST /api/transcribe and /api/voice-complaint."""

    def test_transcribe(self, client: TestClient, transcription_client):
        response = client.post("/api/transcribe", files=AUDIO_UPLOAD)

        assert response.status_code == 200
        assert response.json() == {"transcription": "They charged me for two rooms."}
        kwargs = transcription_client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"][0] == "note.webm"
        assert kwargs["model"] == "whisper-large-v3"

    def test_voice_complaint(self, client: TestClient):
        response = client.post("/api/voice-complaint", files=AUDIO_UPLOAD)

        assert response.json() == {"transcript": "They charged me for two rooms."}

    def test_not_configured(self, client: TestClient):
        app.dependency_overrides[get_transcription_client] = lambda: None

        response = client.post("/api/transcribe", files=AUDIO_UPLOAD)

        assert response.status_code == 503

    def test_empty_audio(self, client: TestClient):
        response = client.post(
            "/api/transcribe", files={"audio": ("note.webm", b"", "audio/webm")}
        )

        assert response.status_code == 400

    def test_non_audio_upload(self, client: TestClient):
        response = client.post(
            "/api/transcribe", files={"audio": ("bill.pdf", b"%PDF", "application/pdf")}
        )

        assert response.status_code == 400

    def test_api_failure(self, client: TestClient, transcription_client):
        transcription_client.audio.transcriptions.create.side_effect = Exception("upstream 500")

        response = client.post("/api/transcribe", files=AUDIO_UPLOAD)

        assert response.status_code == 502
        assert "upstream 500" in response.json()["detail"]["details"]
