"""
Speech-to-text for patient voice notes.

Uses Whisper through Groq's OpenAI-compatible audio API.
"""

import io
import logging
import os
from typing import Optional

from ml.llm.llm_wrapper import GROQ_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIPTION_MODEL = "whisper-large-v3"


class TranscriptionError(Exception):
    """Raised when audio cannot be transcribed."""


def _get_client(api_key: Optional[str] = None, base_url: str = GROQ_BASE_URL):
    from openai import OpenAI

    key = api_key or os.getenv("GROQ_API_KEY")
    if not key:
        raise TranscriptionError("GROQ_API_KEY is not configured")
    return OpenAI(api_key=key, base_url=base_url)


def transcribe_audio(
    audio_bytes: bytes,
    filename: str = "audio.mp3",
    client=None,
    model: str = DEFAULT_TRANSCRIPTION_MODEL,
    language: Optional[str] = None,
) -> str:
    """
    Transcribe an audio clip to text.

    Args:
        audio_bytes: Raw audio file contents.
        filename: Original file name; its extension tells the API the format.
        client: OpenAI-compatible client. Created from GROQ_API_KEY if None.
        model: Whisper model name.
        language: ISO-639-1 hint ("hi", "en"); auto-detected if None.

    Returns:
        str: Transcribed text (may be empty for silent audio).

    Raises:
        TranscriptionError: If no audio was given or the API call fails.
    """
    if not audio_bytes:
        raise TranscriptionError("No audio provided")

    if client is None:
        client = _get_client()

    params = {"file": (filename, io.BytesIO(audio_bytes)), "model": model}
    if language:
        params["language"] = language

    try:
        transcription = client.audio.transcriptions.create(**params)
    except Exception as e:
        logger.error(f"Transcription API error: {e}")
        raise TranscriptionError(f"Failed to transcribe audio: {e}") from e

    text = getattr(transcription, "text", transcription)
    if not isinstance(text, str):
        text = str(text or "")

    logger.info(f"Transcribed {len(audio_bytes)} bytes of audio into {len(text)} characters")
    return text.strip()
