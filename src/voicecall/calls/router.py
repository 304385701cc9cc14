"""
FastAPI router for call placement, status and provider call-flow documents.

The flow/twiml endpoints are fetched by the telephony providers themselves
and must answer with XML even on error.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import PlainTextResponse

from voicecall.calls.orchestrator import CallOrchestrator
from voicecall.calls.schemas import (
    CompleteCallRequest,
    CompleteCallResponse,
    PlaceCallRequest,
    PlaceCallResponse,
    VerifyAccountResponse,
)
from voicecall.shared.exceptions import AppError, NotFoundError
from voicecall.shared.logging import get_logger, preview
from voicecall.speech.elevenlabs_adapter import ElevenLabsAdapter
from voicecall.speech.factory import get_speech_adapter
from voicecall.speech.interface import VoiceSettings
from voicecall.speech.schemas import require_text
from voicecall.telephony import callflow
from voicecall.telephony.exotel_adapter import ExotelAdapter
from voicecall.telephony.factory import get_exotel_adapter, get_twilio_adapter
from voicecall.telephony.interface import WebhookParseError
from voicecall.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)

router = APIRouter(prefix="/api/call", tags=["calls"])

XML_MEDIA_TYPE = "text/xml"


def get_call_orchestrator(
    primary: Annotated[TwilioAdapter, Depends(get_twilio_adapter)],
    secondary: Annotated[ExotelAdapter, Depends(get_exotel_adapter)],
) -> CallOrchestrator:
    return CallOrchestrator(primary=primary, secondary=secondary)


Orchestrator = Annotated[CallOrchestrator, Depends(get_call_orchestrator)]


@router.post("/place", response_model=PlaceCallResponse)
async def place_call(request: PlaceCallRequest, orchestrator: Orchestrator) -> PlaceCallResponse:
    """Place a call that plays an already generated audio file."""
    to_number, audio_url = request.validated()

    logger.info("Initiating call", extra={"to": to_number, "audio_url": audio_url})
    outcome = await orchestrator.place_call(to_number, audio_url=audio_url, caller_id=request.caller_id)

    if not outcome.success or not outcome.result.call_id:
        raise AppError(
            message=outcome.result.error or "Failed to place call",
            code="CALL_PLACEMENT_FAILED",
        )

    return PlaceCallResponse(
        call_id=outcome.result.call_id,
        message=outcome.result.message,
        provider=outcome.provider,
        simulation=outcome.result.simulation,
    )


@router.get("/status/{call_id}")
async def get_call_status(call_id: str, orchestrator: Orchestrator) -> dict[str, Any]:
    logger.info("Getting call status", extra={"call_id": call_id})
    call_status = await orchestrator.get_status(call_id)
    if call_status is None:
        raise NotFoundError(message="Call not found", code="CALL_NOT_FOUND")
    return {"success": True, "call_status": call_status.to_dict()}


@router.get("/flow", response_class=Response)
async def exotel_call_flow(audio: Annotated[str | None, Query()] = None) -> Response:
    """ExoML call flow fetched by Exotel during a call."""
    if not audio or not audio.strip():
        return Response(
            content=callflow.exoml_error(callflow.MISSING_AUDIO_MESSAGE),
            media_type=XML_MEDIA_TYPE,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    logger.info("Generating call flow", extra={"audio_url": audio})
    return Response(content=callflow.exoml_for_audio(audio), media_type=XML_MEDIA_TYPE)


@router.get("/twiml", response_class=Response)
async def twilio_call_flow(audio: Annotated[str | None, Query()] = None) -> Response:
    """TwiML fetched by Twilio when a call uses a webhook URL."""
    if not audio or not audio.strip():
        return Response(
            content=callflow.twiml_error(callflow.MISSING_AUDIO_MESSAGE),
            media_type=XML_MEDIA_TYPE,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    return Response(content=callflow.twiml_for_audio(audio), media_type=XML_MEDIA_TYPE)


@router.post("/complete", response_model=CompleteCallResponse)
async def complete_call(
    request: CompleteCallRequest,
    orchestrator: Orchestrator,
    speech: Annotated[ElevenLabsAdapter, Depends(get_speech_adapter)],
) -> CompleteCallResponse:
    """Synthesize the text, then call the number and read it out."""
    text, voice_id, to_number = request.validated()
    require_text(text)

    logger.info(
        "Starting complete call flow",
        extra={"to": to_number, "voice_id": voice_id, "text_preview": preview(text)},
    )

    tts = await speech.synthesize(
        text,
        voice_id,
        voice_settings=VoiceSettings(stability=0.5, similarity_boost=0.8),
    )
    if not tts.success or not tts.audio_url:
        raise AppError(
            message=tts.error or "Failed to generate speech",
            code="SPEECH_GENERATION_FAILED",
        )

    outcome = await orchestrator.place_call(
        to_number,
        audio_url=tts.audio_url,
        caller_id=request.caller_id,
        text=text,
    )
    if not outcome.success or not outcome.result.call_id:
        raise AppError(
            message=outcome.result.error or "Failed to place call",
            code="CALL_PLACEMENT_FAILED",
            details={"audio_url": tts.audio_url},
        )

    return CompleteCallResponse(
        message=outcome.result.message or "Call initiated successfully",
        call_id=outcome.result.call_id,
        audio_url=tts.audio_url,
        simulation=outcome.result.simulation,
        provider=outcome.provider,
    )


@router.get("/verify", response_model=VerifyAccountResponse)
async def verify_account(orchestrator: Orchestrator) -> VerifyAccountResponse:
    verification = await orchestrator.verify_secondary()
    return VerifyAccountResponse(
        account_verified=verification.valid,
        message=verification.message,
    )


@router.post("/webhook/status", response_class=PlainTextResponse)
async def twilio_status_webhook(
    request: Request,
    twilio: Annotated[TwilioAdapter, Depends(get_twilio_adapter)],
) -> PlainTextResponse:
    """Twilio status callback. Always acknowledged so Twilio does not retry."""
    form = await request.form()
    payload = {key: value for key, value in form.items() if isinstance(value, str)}

    try:
        update = twilio.parse_status_callback(payload)
    except WebhookParseError as e:
        logger.warning(
            "Ignoring malformed Twilio status callback",
            extra={"error_code": e.error_code},
        )
        return PlainTextResponse("OK")

    logger.info(
        "Twilio status update",
        extra={
            "call_id": update.call_id,
            "call_status": update.status,
            "from": update.from_number,
            "to": update.to_number,
            "duration": update.duration,
        },
    )
    return PlainTextResponse("OK")
