"""
Phone number normalization helpers.

Both formatters are idempotent on numbers that already start with ``+``.
"""

import re

DOMESTIC_COUNTRY_CODE = "91"
FALLBACK_COUNTRY_CODE = "1"

_FORMATTING_CHARS = re.compile(r"[\s\-()]")
_NON_DIGITS = re.compile(r"\D")
_DOMESTIC_MOBILE = re.compile(r"^[6-9]\d{9}$")


def digits_only(phone_number: str) -> str:
    return _NON_DIGITS.sub("", phone_number)


def format_for_twilio(phone_number: str) -> str:
    """Normalize a number to E.164 for Twilio.

    10 digits starting 6-9 are domestic mobile numbers, 11 digits starting
    with 1 already carry their country code, anything else gets ``+1``.
    """
    cleaned = _FORMATTING_CHARS.sub("", phone_number)
    if cleaned.startswith("+"):
        return cleaned

    if _DOMESTIC_MOBILE.match(cleaned):
        return f"+{DOMESTIC_COUNTRY_CODE}{cleaned}"
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+{cleaned}"
    return f"+{FALLBACK_COUNTRY_CODE}{cleaned}"


def format_for_exotel(phone_number: str) -> str:
    """Strip formatting, prefix bare 10-digit numbers with the domestic code."""
    cleaned = digits_only(phone_number)
    if phone_number.strip().startswith("+"):
        return f"+{cleaned}"
    if len(cleaned) == 10:
        cleaned = DOMESTIC_COUNTRY_CODE + cleaned
    return f"+{cleaned}"


def is_valid_phone_number(phone_number: str) -> bool:
    """True when the number has 10 to 15 digits, ignoring formatting."""
    return 10 <= len(digits_only(phone_number)) <= 15
