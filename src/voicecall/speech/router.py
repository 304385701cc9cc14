"""
FastAPI router for speech synthesis endpoints.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from voicecall.config import get_settings
from voicecall.shared.logging import get_logger, preview
from voicecall.speech.elevenlabs_adapter import ElevenLabsAdapter
from voicecall.speech.factory import get_speech_adapter
from voicecall.speech.interface import VoiceSettings
from voicecall.speech.schemas import (
    DEFAULT_TEST_TEXT,
    DEFAULT_TEST_VOICE_ID,
    GenerateSpeechRequest,
    VoiceTestRequest,
    require_field,
    require_text,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/voice", tags=["voice"])

SpeechAdapter = Annotated[ElevenLabsAdapter, Depends(get_speech_adapter)]


@router.get("/voices", summary="List available voices")
async def list_voices(speech: SpeechAdapter) -> dict[str, Any]:
    voices = await speech.list_voices()
    return {
        "success": True,
        "voices": [voice.to_dict() for voice in voices],
        "count": len(voices),
    }


@router.post("/generate", summary="Generate speech from text")
async def generate_speech(request: GenerateSpeechRequest, speech: SpeechAdapter) -> Any:
    text = require_text(request.text)
    voice_id = require_field(request.voice_id, "voice_id")

    logger.info(
        "Generating speech",
        extra={"voice_id": voice_id, "text_preview": preview(text)},
    )

    settings = request.voice_settings.to_domain() if request.voice_settings else None
    result = await speech.synthesize(text, voice_id, voice_settings=settings)

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "SPEECH_GENERATION_FAILED",
                "message": result.error or "Failed to generate speech",
            },
        )

    return {
        "success": True,
        "audio_url": result.audio_url,
        "filename": result.filename,
        "mock": result.mock,
        "message": "Speech generated successfully",
    }


@router.post("/test", summary="Smoke test speech generation")
async def test_voice(speech: SpeechAdapter, request: VoiceTestRequest | None = None) -> dict[str, Any]:
    text = (request.text if request else None) or DEFAULT_TEST_TEXT
    voice_id = (request.voice_id if request else None) or DEFAULT_TEST_VOICE_ID
    settings = VoiceSettings(stability=0.5, similarity_boost=0.8)

    logger.info("Testing voice generation", extra={"voice_id": voice_id})
    result = await speech.synthesize(text, voice_id, voice_settings=settings)

    return {
        "success": True,
        "test": True,
        "result": result.to_dict(),
        "request": {
            "text": text,
            "voice_id": voice_id,
            "voice_settings": settings.to_dict(),
        },
    }


@router.get("/cleanup", summary="Delete old audio files")
async def cleanup_audio(
    speech: SpeechAdapter,
    hours: Annotated[float | None, Query(ge=0, description="Maximum file age in hours")] = None,
) -> dict[str, Any]:
    if hours is None:
        hours = float(get_settings().cleanup_default_hours)
    logger.info("Cleaning up audio files", extra={"max_age_hours": hours})
    deleted = await speech.cleanup_old_files(hours)
    return {
        "success": True,
        "deleted": deleted,
        "message": f"Cleaned up audio files older than {hours:g} hours",
    }
