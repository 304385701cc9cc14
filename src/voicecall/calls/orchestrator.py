"""
Call orchestrator.

Places a call through the primary (Twilio) provider and falls back to the
secondary (Exotel) one when the primary reports failure. Status lookups are
routed by the shape of the call identifier alone.

Placement state machine:
    NEW -> TRYING_PRIMARY -> PLACED
                          -> TRYING_SECONDARY -> PLACED
                                              -> FAILED
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from voicecall.shared.logging import get_logger
from voicecall.telephony import identifiers
from voicecall.telephony.exotel_adapter import ExotelAdapter
from voicecall.telephony.identifiers import CallIdKind, Provider
from voicecall.telephony.interface import AccountVerification, CallResult, CallStatus
from voicecall.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)


class PlacementState(str, Enum):
    NEW = "new"
    TRYING_PRIMARY = "trying_primary"
    TRYING_SECONDARY = "trying_secondary"
    PLACED = "placed"
    FAILED = "failed"


@dataclass(frozen=True)
class PlacementOutcome:
    """Result of a placement plus the identifier kind that produced it."""

    result: CallResult
    state: PlacementState
    kind: CallIdKind | None = None

    @property
    def success(self) -> bool:
        return self.state is PlacementState.PLACED

    @property
    def provider(self) -> str | None:
        return self.kind.value if self.kind else None


def provider_label(call_id: str | None) -> str | None:
    """Provider label for a call id: twilio, twilio_sim, exotel_sim or exotel."""
    if not call_id:
        return None
    return identifiers.classify(call_id).value


class CallOrchestrator:
    """Primary-then-secondary call placement with identifier-based routing."""

    def __init__(self, primary: TwilioAdapter, secondary: ExotelAdapter) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def primary(self) -> TwilioAdapter:
        return self._primary

    @property
    def secondary(self) -> ExotelAdapter:
        return self._secondary

    def _transition(self, state: PlacementState, to_number: str) -> PlacementState:
        logger.debug(
            "Call placement state changed",
            extra={"placement_state": state.value, "to": to_number},
        )
        return state

    async def place_call(
        self,
        to_number: str,
        audio_url: str | None = None,
        caller_id: str | None = None,
        text: str | None = None,
    ) -> PlacementOutcome:
        """Place a call, reading ``text`` when given, otherwise playing ``audio_url``."""
        state = self._transition(PlacementState.NEW, to_number)

        state = self._transition(PlacementState.TRYING_PRIMARY, to_number)
        if text:
            primary = await self._primary.place_call_with_text(text, to_number, caller_id)
        else:
            primary = await self._primary.place_call(to_number, audio_url or "", caller_id)

        if primary.success:
            return self._placed(primary, to_number)

        logger.warning(
            "Primary provider failed, trying secondary",
            extra={"to": to_number, "error": primary.error},
        )
        state = self._transition(PlacementState.TRYING_SECONDARY, to_number)
        secondary = await self._secondary.place_call(
            self._secondary.format_phone_number(to_number),
            audio_url or "",
            caller_id,
        )
        if secondary.success:
            return self._placed(secondary, to_number)

        state = self._transition(PlacementState.FAILED, to_number)
        error = (
            f"Primary provider: {primary.error or 'unknown error'}; "
            f"secondary provider: {secondary.error or 'unknown error'}"
        )
        logger.error("All telephony providers failed", extra={"to": to_number, "error": error})
        return PlacementOutcome(
            result=CallResult(success=False, message="Failed to place call", error=error),
            state=state,
        )

    def _placed(self, result: CallResult, to_number: str) -> PlacementOutcome:
        state = self._transition(PlacementState.PLACED, to_number)
        kind = identifiers.classify(result.call_id) if result.call_id else None
        logger.info(
            "Call placed",
            extra={
                "call_id": result.call_id,
                "provider": provider_label(result.call_id),
                "simulation": result.simulation,
            },
        )
        return PlacementOutcome(result=result, state=state, kind=kind)

    async def get_status(self, call_id: str) -> CallStatus | None:
        """Status from whichever provider owns ``call_id``; None when unknown."""
        if not call_id:
            return None
        identifier = identifiers.parse(call_id)
        if identifier.owner is Provider.TWILIO:
            return await self._primary.get_status(call_id)
        return await self._secondary.get_status(call_id)

    async def verify_secondary(self) -> AccountVerification:
        return await self._secondary.verify_account()
