"""
Exotel telephony provider adapter (secondary, audio-driven).

Exotel fetches an ExoML call flow from ``/api/call/flow`` which plays the
pre-rendered audio. Missing credentials, an invalid destination or a provider
error all degrade to a simulated call.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from voicecall.shared.logging import get_logger
from voicecall.telephony import identifiers
from voicecall.telephony.config import TelephonyConfig, get_telephony_config
from voicecall.telephony.identifiers import CallIdKind, Provider
from voicecall.telephony.interface import (
    AccountVerification,
    CallInitiationError,
    CallResult,
    CallState,
    CallStatus,
    TelephonyProvider,
)
from voicecall.telephony.phone_numbers import (
    DOMESTIC_COUNTRY_CODE,
    format_for_exotel,
    is_valid_phone_number,
)
from voicecall.telephony.simulation import SimulationNarrator, stage_for

logger = get_logger(__name__)

SIMULATION_TIMELINE = (
    (1.0, "ringing"),
    (3.0, "answered"),
    (5.0, "playing audio"),
    (15.0, "completed"),
)

SIMULATION_THRESHOLDS = (
    (1.0, CallState.INITIATED),
    (3.0, CallState.RINGING),
    (5.0, CallState.ANSWERED),
    (15.0, CallState.IN_PROGRESS),
)

# Simulated calls are "answered" 5s after placement and end at 15s.
SIMULATED_ANSWER_OFFSET_MS = 5_000
SIMULATED_END_OFFSET_MS = 15_000


class ExotelAdapter(TelephonyProvider):
    """Exotel telephony provider adapter."""

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
            logger.warning("Exotel credentials not fully configured; using simulation mode")

    @property
    def is_configured(self) -> bool:
        return self._config.exotel_configured

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=(self._config.exotel_api_key, self._config.exotel_api_token),
                timeout=self._config.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        await self._narrator.aclose()
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _account_url(self, endpoint: str = "") -> str:
        base = self._config.exotel_base_url.rstrip("/")
        return f"{base}/{self._config.exotel_sid}{endpoint}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def format_phone_number(self, phone_number: str) -> str:
        return format_for_exotel(phone_number)

    def _caller_id(self, caller_id: str | None) -> str:
        number = caller_id or self._config.exotel_virtual_number
        return number if number.startswith("+") else f"+{DOMESTIC_COUNTRY_CODE}{number}"

    async def place_call(
        self,
        to_number: str,
        audio_url: str,
        caller_id: str | None = None,
    ) -> CallResult:
        """Place a call through Exotel Connect that plays ``audio_url``."""
        if not self.is_configured:
            logger.info("Simulating call due to missing Exotel configuration")
            return self._simulate_call(to_number, audio_url)

        try:
            return await self._connect(to_number, audio_url, caller_id)
        except Exception:
            logger.exception("Error placing Exotel call; falling back to simulation")
            return self._simulate_call(to_number, audio_url)

    async def _connect(
        self,
        to_number: str,
        audio_url: str,
        caller_id: str | None,
    ) -> CallResult:
        if not is_valid_phone_number(to_number):
            raise CallInitiationError(
                message="Invalid phone number format",
                error_code="INVALID_NUMBER",
            )

        from_number = self._caller_id(caller_id)
        form_data = {
            "From": from_number,
            "To": to_number,
            "Url": self._config.exotel_flow_url(audio_url),
            "Method": "GET",
            "CallType": "trans",
            "CallerId": from_number,
        }

        logger.info(
            "Placing Exotel call",
            extra={"to": to_number, "from": from_number, "audio_url": audio_url},
        )

        client = self._get_client()
        try:
            response = await client.post(self._account_url("/Calls/connect.json"), data=form_data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_data: dict[str, Any] = {}
            try:
                error_data = e.response.json()
            except ValueError:
                pass
            raise CallInitiationError(
                message=f"Exotel API error: {e.response.status_code}",
                error_code=str(e.response.status_code),
                provider_response=error_data,
            ) from e
        except httpx.RequestError as e:
            raise CallInitiationError(
                message=f"Exotel request failed: {e}",
                error_code="HTTP_ERROR",
            ) from e

        call = (response.json() or {}).get("Call") or {}
        call_sid = call.get("Sid")
        if not call_sid:
            raise CallInitiationError(
                message="Exotel response did not include a call Sid",
                error_code="MISSING_CALL_SID",
                provider_response=call,
            )

        logger.info("Exotel call placed", extra={"call_id": call_sid})
        return CallResult(
            success=True,
            call_id=call_sid,
            status=call.get("Status"),
            message="Call initiated successfully",
        )

    def _simulate_call(self, to_number: str, audio_url: str) -> CallResult:
        call_id = identifiers.new_simulated_id(Provider.EXOTEL, self._now_ms())

        logger.info(
            "Simulating Exotel call",
            extra={"call_id": call_id, "to": to_number, "audio_url": audio_url},
        )
        self._narrator.start(call_id, SIMULATION_TIMELINE)

        return CallResult(
            success=True,
            call_id=call_id,
            status=CallState.INITIATED.value,
            message="Call simulation started successfully",
            simulation=True,
        )

    async def get_status(self, call_id: str) -> CallStatus | None:
        identifier = identifiers.parse(call_id)
        if identifier.kind is CallIdKind.EXOTEL_SIMULATED:
            return self._simulated_status(identifier)
        if identifier.kind is not CallIdKind.EXOTEL or not self.is_configured:
            return None

        client = self._get_client()
        try:
            response = await client.get(self._account_url(f"/Calls/{call_id}.json"))
            response.raise_for_status()
            call = response.json()["Call"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError):
            logger.exception("Error getting Exotel call status", extra={"call_id": call_id})
            return None

        duration = call.get("Duration")
        return CallStatus(
            call_id=call.get("Sid", call_id),
            status=call.get("Status", ""),
            duration=_as_int(duration),
            start_time=call.get("StartTime"),
            end_time=call.get("EndTime"),
        )

    def _simulated_status(self, identifier: identifiers.CallIdentifier) -> CallStatus | None:
        created_ms = identifier.created_at_ms
        if created_ms is None:
            return None

        elapsed_ms = max(0, self._now_ms() - created_ms)
        state = stage_for(elapsed_ms / 1000, SIMULATION_THRESHOLDS, CallState.COMPLETED)
        completed = state is CallState.COMPLETED

        try:
            start_time = _iso(created_ms + SIMULATED_ANSWER_OFFSET_MS)
            end_time = _iso(created_ms + SIMULATED_END_OFFSET_MS) if completed else None
        except (ValueError, OverflowError, OSError):
            logger.warning("Unusable simulated call timestamp", extra={"call_id": identifier.value})
            return None

        return CallStatus(
            call_id=identifier.value,
            status=state.value,
            duration=(
                math.floor((elapsed_ms - SIMULATED_ANSWER_OFFSET_MS) / 1000) if completed else None
            ),
            start_time=start_time,
            end_time=end_time,
        )

    async def verify_account(self) -> AccountVerification:
        """Authenticated account read; never raises."""
        if not self.is_configured:
            return AccountVerification(
                valid=False,
                message="Exotel credentials not configured. Using simulation mode.",
            )

        client = self._get_client()
        try:
            response = await client.get(self._account_url(".json"))
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Exotel account verification failed")
            return AccountVerification(
                valid=False,
                message="Exotel account verification failed. Using simulation mode.",
            )

        logger.info("Exotel account verified successfully")
        return AccountVerification(valid=True, message="Exotel account verified successfully")


def _iso(epoch_ms: int) -> str:
    return (
        datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _as_int(value: Any) -> int | None:
    text = str(value or "")
    return int(text) if text.isascii() and text.isdigit() else None
