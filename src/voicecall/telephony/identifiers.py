"""
Call identifier format (version 1).

A call identifier is a tagged union encoded as a string. The tag tells which
telephony provider owns the call and, for simulated calls, the id carries the
creation time in epoch milliseconds. Status lookups route on the identifier
alone, so there is no call-id -> provider table anywhere.

    twilio       CA<sid>
    twilio_sim   sim_twilio_<epoch-ms>_<random>
    exotel_sim   sim_<epoch-ms>_<random>
    exotel       any other non-empty string

The ``sim_twilio_`` check must stay ahead of the ``sim_`` check.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from enum import Enum

FORMAT_VERSION = 1

TWILIO_SID_PREFIX = "CA"
TWILIO_SIM_PREFIX = "sim_twilio_"
EXOTEL_SIM_PREFIX = "sim_"

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_RANDOM_LENGTH = 9

# 9999-12-31T00:00:00Z; leaves room for the fixed simulated end-time offsets.
MAX_TIMESTAMP_MS = 253_402_214_400_000


class Provider(str, Enum):
    """Telephony providers that can own a call."""

    TWILIO = "twilio"
    EXOTEL = "exotel"


class CallIdKind(str, Enum):
    """Identifier shapes; the value is the provider label reported to clients."""

    TWILIO = "twilio"
    TWILIO_SIMULATED = "twilio_sim"
    EXOTEL_SIMULATED = "exotel_sim"
    EXOTEL = "exotel"

    @property
    def owner(self) -> Provider:
        if self in (CallIdKind.TWILIO, CallIdKind.TWILIO_SIMULATED):
            return Provider.TWILIO
        return Provider.EXOTEL

    @property
    def simulated(self) -> bool:
        return self in (CallIdKind.TWILIO_SIMULATED, CallIdKind.EXOTEL_SIMULATED)


@dataclass(frozen=True)
class CallIdentifier:
    """A parsed call identifier."""

    value: str
    kind: CallIdKind
    created_at_ms: int | None = None

    @property
    def owner(self) -> Provider:
        return self.kind.owner

    @property
    def simulated(self) -> bool:
        return self.kind.simulated


def classify(call_id: str) -> CallIdKind:
    """Return the identifier kind from its prefix."""
    if call_id.startswith(TWILIO_SIM_PREFIX):
        return CallIdKind.TWILIO_SIMULATED
    if call_id.startswith(TWILIO_SID_PREFIX):
        return CallIdKind.TWILIO
    if call_id.startswith(EXOTEL_SIM_PREFIX):
        return CallIdKind.EXOTEL_SIMULATED
    return CallIdKind.EXOTEL


def _embedded_timestamp(rest: str) -> int | None:
    head = rest.split("_", 1)[0]
    if not (head.isascii() and head.isdigit()):
        return None
    value = int(head)
    return value if value <= MAX_TIMESTAMP_MS else None


def parse(call_id: str) -> CallIdentifier:
    """Parse a call identifier.

    Raises:
        ValueError: If the identifier is empty.
    """
    if not call_id:
        raise ValueError("Call identifier must not be empty")

    kind = classify(call_id)
    created_at_ms = None
    if kind is CallIdKind.TWILIO_SIMULATED:
        created_at_ms = _embedded_timestamp(call_id[len(TWILIO_SIM_PREFIX):])
    elif kind is CallIdKind.EXOTEL_SIMULATED:
        created_at_ms = _embedded_timestamp(call_id[len(EXOTEL_SIM_PREFIX):])

    return CallIdentifier(value=call_id, kind=kind, created_at_ms=created_at_ms)


def _random_suffix() -> str:
    return "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(_RANDOM_LENGTH))


def new_simulated_id(owner: Provider, now_ms: int) -> str:
    """Build a fresh simulated call identifier for ``owner``."""
    prefix = TWILIO_SIM_PREFIX if owner is Provider.TWILIO else EXOTEL_SIM_PREFIX
    return f"{prefix}{now_ms}_{_random_suffix()}"
