"""
Voice API Endpoints.

Transcribes the patient's spoken account of the bill so it can be
quoted in the complaint letter.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from ml.llm.transcription import TranscriptionError, transcribe_audio

from app.api.deps import get_transcription_client
from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    PayloadTooLargeException,
    ServiceNotConfiguredException,
)
from app.core.rate_limiter import limiter, RATE_LIMITS
from app.schemas.bill import TranscriptionResponse, VoiceComplaintResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_MEDIA_PREFIXES = ("audio/", "video/")


async def _transcribe_upload(audio: UploadFile, client) -> str:
    if client is None:
        raise ServiceNotConfiguredException("GROQ_API_KEY not configured")

    if audio.content_type and not audio.content_type.startswith(ALLOWED_MEDIA_PREFIXES):
        raise BadRequestException(f"Unsupported audio type: {audio.content_type}")

    content = await audio.read()
    if not content:
        raise BadRequestException("No audio file uploaded")

    max_bytes = settings.MAX_AUDIO_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise PayloadTooLargeException(
            f"Audio too large. Maximum size: {settings.MAX_AUDIO_SIZE_MB}MB"
        )

    try:
        return await run_in_threadpool(
            transcribe_audio,
            content,
            audio.filename or "audio.webm",
            client,
            settings.TRANSCRIPTION_MODEL,
        )
    except TranscriptionError as e:
        logger.error(f"Transcription failed for {audio.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to transcribe audio", "details": str(e)},
        )


@router.post("/transcribe", response_model=TranscriptionResponse)
@limiter.limit(RATE_LIMITS["transcribe"])
async def transcribe(
    request: Request,
    audio: UploadFile = File(...),
    client=Depends(get_transcription_client),
):
    """Transcribe a voice note."""
    text = await _transcribe_upload(audio, client)
    return {"transcription": text}


@router.post("/voice-complaint", response_model=VoiceComplaintResponse)
@limiter.limit(RATE_LIMITS["transcribe"])
async def voice_complaint(
    request: Request,
    audio: UploadFile = File(...),
    client=Depends(get_transcription_client),
):
    """Transcribe the patient's spoken complaint for the letter generator."""
    text = await _transcribe_upload(audio, client)
    logger.info(f"Voice complaint transcribed ({len(text)} characters)")
    return {"transcript": text}
