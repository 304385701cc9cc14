"""
Twilio telephony provider adapter (primary, text-driven).

Talks to the Twilio REST API with httpx. Calls either read the user's text
with Twilio's own speech engine or play a pre-rendered audio file. Without
credentials, or when Twilio rejects a request, calls are simulated.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable

import httpx

from voicecall.shared.logging import get_logger, mask, preview
from voicecall.telephony import callflow, identifiers
from voicecall.telephony.config import TelephonyConfig, get_telephony_config
from voicecall.telephony.identifiers import CallIdKind, Provider
from voicecall.telephony.interface import (
    CallInitiationError,
    CallResult,
    CallState,
    CallStatus,
    TelephonyProvider,
    WebhookParseError,
)
from voicecall.telephony.phone_numbers import format_for_twilio
from voicecall.telephony.simulation import SimulationNarrator, stage_for

logger = get_logger(__name__)

SIMULATION_TIMELINE = (
    (2.0, CallState.QUEUED.value),
    (4.0, CallState.RINGING.value),
    (6.0, CallState.IN_PROGRESS.value),
    (8.0, CallState.COMPLETED.value),
)

SIMULATION_THRESHOLDS = (
    (2.0, CallState.QUEUED),
    (6.0, CallState.RINGING),
    (8.0, CallState.IN_PROGRESS),
)


class TwilioAdapter(TelephonyProvider):
    """Twilio telephony provider adapter."""

    def __init__(
        self,
        config: TelephonyConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        narrator: SimulationNarrator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or get_telephony_config()
        self._client = http_client
        self._owns_client = http_client is None
        self._narrator = narrator or SimulationNarrator()
        self._clock = clock

        if not self.is_configured:
            logger.warning("Twilio credentials not configured; using simulation mode")
        else:
            logger.info(
                "Twilio adapter configured",
                extra={
                    "account_sid": mask(self._config.twilio_account_sid),
                    "phone_number": self._config.twilio_phone_number,
                },
            )

    @property
    def is_configured(self) -> bool:
        return self._config.twilio_configured

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=(self._config.twilio_account_sid, self._config.twilio_auth_token),
                timeout=self._config.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        await self._narrator.aclose()
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _api_url(self, endpoint: str) -> str:
        base = self._config.twilio_base_url.rstrip("/")
        return f"{base}/2010-04-01/Accounts/{self._config.twilio_account_sid}{endpoint}"

    def format_phone_number(self, phone_number: str) -> str:
        return format_for_twilio(phone_number)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _create_call(self, form_data: dict[str, Any]) -> dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.post(self._api_url("/Calls.json"), data=form_data)
        except httpx.HTTPError as e:
            raise CallInitiationError(
                message=f"HTTP error: {e!s}",
                error_code="HTTP_ERROR",
            ) from e

        if response.status_code >= 400:
            error_data: dict[str, Any] = {}
            try:
                error_data = response.json()
            except ValueError:
                pass
            raise CallInitiationError(
                message=error_data.get("message", "Call initiation failed"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CallInitiationError(
                message="Twilio returned a non-JSON call resource",
                error_code="INVALID_RESPONSE",
            ) from e

        if not isinstance(data, dict) or not data.get("sid"):
            raise CallInitiationError(
                message="Twilio response did not include a call sid",
                error_code="MISSING_CALL_SID",
                provider_response=data if isinstance(data, dict) else {},
            )
        return data

    def _base_form(self, to_number: str, caller_id: str | None) -> dict[str, Any]:
        form: dict[str, Any] = {
            "To": self.format_phone_number(to_number),
            "From": caller_id or self._config.twilio_phone_number,
            "Timeout": str(self._config.call_timeout_seconds),
            "Record": "false",
        }
        if self._config.twilio_webhook_url:
            form["StatusCallback"] = self._config.status_callback_url()
            form["StatusCallbackMethod"] = "POST"
        return form

    async def place_call_with_text(
        self,
        text: str,
        to_number: str,
        caller_id: str | None = None,
    ) -> CallResult:
        """Place a call that reads ``text`` aloud."""
        if not self.is_configured:
            logger.warning("Twilio not configured, falling back to simulation")
            return self._simulate_call(to_number, text=text)

        form = self._base_form(to_number, caller_id)
        form["Twiml"] = callflow.twiml_for_text(text)

        logger.info(
            "Placing Twilio call with custom text",
            extra={"to": form["To"], "from": form["From"], "text_preview": preview(text)},
        )

        try:
            data = await self._create_call(form)
        except Exception:
            logger.exception("Error placing Twilio call with text; falling back to simulation")
            return self._simulate_call(to_number, text=text)

        logger.info("Twilio call with custom text initiated", extra={"call_sid": data["sid"]})
        return CallResult(
            success=True,
            call_id=data["sid"],
            message=f"Call placed successfully to {form['To']} with custom message",
            status=data.get("status"),
        )

    async def place_call(
        self,
        to_number: str,
        audio_url: str,
        caller_id: str | None = None,
    ) -> CallResult:
        """Place a call that plays a pre-rendered audio file."""
        if not self.is_configured:
            logger.warning("Twilio not configured, falling back to simulation")
            return self._simulate_call(to_number, audio_url=audio_url)

        form = self._base_form(to_number, caller_id)
        if self._config.twilio_webhook_url:
            form["Url"] = self._config.twiml_url(audio_url)
            form["Method"] = "GET"
        else:
            form["Twiml"] = callflow.twiml_for_audio(self._config.absolute_url(audio_url))

        logger.info(
            "Placing Twilio call",
            extra={"to": form["To"], "from": form["From"], "audio_url": audio_url},
        )

        try:
            data = await self._create_call(form)
        except Exception:
            logger.exception("Error placing Twilio call; falling back to simulation")
            return self._simulate_call(to_number, audio_url=audio_url)

        logger.info("Twilio call initiated", extra={"call_sid": data["sid"]})
        return CallResult(
            success=True,
            call_id=data["sid"],
            message=f"Call placed successfully to {form['To']}",
            status=data.get("status"),
        )

    def _simulate_call(
        self,
        to_number: str,
        text: str | None = None,
        audio_url: str | None = None,
    ) -> CallResult:
        call_id = identifiers.new_simulated_id(Provider.TWILIO, self._now_ms())

        logger.info(
            "Simulating Twilio call",
            extra={
                "call_id": call_id,
                "to": to_number,
                "text_preview": preview(text) if text else None,
                "audio_url": audio_url,
            },
        )
        self._narrator.start(call_id, SIMULATION_TIMELINE)

        if text:
            message = (
                f"Simulated call with custom text placed to {to_number}. "
                f'In a real scenario, this would read: "{preview(text, 50)}"'
            )
        else:
            message = f"Simulated call to {to_number}"

        return CallResult(
            success=True,
            call_id=call_id,
            message=message,
            simulation=True,
            status=CallState.QUEUED.value,
        )

    async def get_status(self, call_id: str) -> CallStatus | None:
        identifier = identifiers.parse(call_id)
        if identifier.kind is CallIdKind.TWILIO_SIMULATED:
            return self._simulated_status(identifier)
        if identifier.kind is not CallIdKind.TWILIO or not self.is_configured:
            return None

        client = self._get_client()
        try:
            response = await client.get(self._api_url(f"/Calls/{call_id}.json"))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Error getting Twilio call status", extra={"call_id": call_id})
            return None

        if not isinstance(data, dict):
            logger.error("Unexpected Twilio call resource", extra={"call_id": call_id})
            return None

        return CallStatus(
            call_id=data.get("sid", call_id),
            status=data.get("status", ""),
            duration=_as_int(data.get("duration")),
            direction=data.get("direction"),
            from_number=data.get("from"),
            to_number=data.get("to"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
        )

    def _simulated_status(self, identifier: identifiers.CallIdentifier) -> CallStatus | None:
        if identifier.created_at_ms is None:
            return None

        elapsed = max(0, self._now_ms() - identifier.created_at_ms) / 1000
        state = stage_for(elapsed, SIMULATION_THRESHOLDS, CallState.COMPLETED)

        return CallStatus(
            call_id=identifier.value,
            status=state.value,
            duration=math.floor(elapsed) if state is CallState.COMPLETED else None,
            direction="outbound-api",
            from_number=self._config.twilio_phone_number or None,
        )

    async def verify_credentials(self) -> bool:
        """Check the configured credentials with a lightweight account read."""
        if not self.is_configured:
            return False

        client = self._get_client()
        try:
            response = await client.get(self._api_url(".json"))
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Twilio credentials verification failed")
            return False

        logger.info("Twilio credentials verified successfully")
        return True

    def parse_status_callback(self, payload: dict[str, Any]) -> CallStatus:
        """Parse a Twilio status callback form into a CallStatus."""
        call_sid = payload.get("CallSid")
        if not call_sid:
            raise WebhookParseError(
                message="Missing CallSid in webhook payload",
                error_code="MISSING_CALL_SID",
                provider_response=payload,
            )

        call_status = str(payload.get("CallStatus") or "").lower()
        if not call_status:
            raise WebhookParseError(
                message="Missing CallStatus in webhook payload",
                error_code="MISSING_CALL_STATUS",
                provider_response=payload,
            )

        return CallStatus(
            call_id=call_sid,
            status=call_status,
            duration=_as_int(payload.get("Duration") or payload.get("CallDuration")),
            direction=payload.get("Direction"),
            from_number=payload.get("From"),
            to_number=payload.get("To"),
        )


def _as_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
