"""
Telephony provider interface definition.

Adapters place outbound calls and look up call status. They never raise on
provider trouble: the real path degrades to a simulated call instead.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class CallState(str, Enum):
    """Call lifecycle states as reported by the providers."""

    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    ANSWERED = "answered"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class CallResult:
    """Outcome of one placement attempt."""

    success: bool
    call_id: str | None = None
    message: str | None = None
    error: str | None = None
    simulation: bool = False
    status: str | None = None


_WIRE_KEYS = {"from_number": "from", "to_number": "to"}


@dataclass(frozen=True)
class CallStatus:
    """Snapshot of a call's lifecycle state.

    ``status`` is kept as a plain string: real providers may report values
    outside :class:`CallState` and those are passed through verbatim.
    """

    call_id: str
    status: str
    duration: int | None = None
    direction: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Response body form; unset fields are omitted and numbers use the provider keys."""
        return {
            _WIRE_KEYS.get(key, key): value
            for key, value in asdict(self).items()
            if value is not None
        }


@dataclass(frozen=True)
class AccountVerification:
    valid: bool
    message: str


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class CallInitiationError(TelephonyProviderError):
    """Error during call initiation."""


class WebhookParseError(TelephonyProviderError):
    """Error parsing a provider status callback."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials allow real calls."""
        ...

    @abstractmethod
    async def place_call(
        self,
        to_number: str,
        audio_url: str,
        caller_id: str | None = None,
    ) -> CallResult:
        """Place a call that plays a pre-rendered audio URL."""
        ...

    @abstractmethod
    async def get_status(self, call_id: str) -> CallStatus | None:
        """Return the call status, or None when the call is unknown."""
        ...

    @abstractmethod
    def format_phone_number(self, phone_number: str) -> str:
        """Normalize a destination number for this provider."""
        ...

    async def aclose(self) -> None:
        """Release provider resources (HTTP clients, background tasks)."""
        return None
