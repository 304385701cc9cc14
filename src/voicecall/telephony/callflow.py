"""
Call-flow documents fetched by the telephony providers.

Twilio reads TwiML, Exotel reads ExoML. Both follow the same structure:
greeting, (pause,) play or say, farewell. A missing audio URL or text yields
an error document so the callee hears a diagnosable message, not silence.
"""

from __future__ import annotations

import re

TWILIO_VOICE = "alice"
EXOTEL_VOICE = "woman"

MISSING_AUDIO_MESSAGE = "Error: No audio URL provided."
MISSING_TEXT_MESSAGE = "Error: No message text provided."

_UNSAFE_CHARS = re.compile(r"[<>&]")
_WHITESPACE = re.compile(r"\s+")


def _document(body: str) -> str:
    return '<?xml version="1.0" encoding="UTF-8"?>\n<Response>\n' + body + "\n</Response>"


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def clean_text(text: str) -> str:
    """Drop markup-unsafe characters and collapse whitespace to single spaces."""
    return _WHITESPACE.sub(" ", _UNSAFE_CHARS.sub("", text)).strip()


def twiml_error(message: str) -> str:
    return _document(f'    <Say voice="{TWILIO_VOICE}">{clean_text(message)}</Say>')


def exoml_error(message: str) -> str:
    return _document(f'    <Say voice="{EXOTEL_VOICE}">{clean_text(message)}</Say>')


def twiml_for_audio(audio_url: str | None) -> str:
    """TwiML that plays a pre-rendered audio file between two prompts."""
    if not audio_url or not audio_url.strip():
        return twiml_error(MISSING_AUDIO_MESSAGE)

    return _document(
        f'    <Say voice="{TWILIO_VOICE}">Hello! Please listen to this AI-generated message.</Say>\n'
        f"    <Play>{_xml_escape(audio_url.strip())}</Play>\n"
        f'    <Say voice="{TWILIO_VOICE}">Thank you for listening. This call will now end.</Say>'
    )


def twiml_for_text(text: str | None) -> str:
    """TwiML that reads the caller's text with Twilio's own speech engine."""
    cleaned = clean_text(text or "")
    if not cleaned:
        return twiml_error(MISSING_TEXT_MESSAGE)

    return _document(
        f'    <Say voice="{TWILIO_VOICE}" rate="medium">\n'
        f"        Hello! This is your Voice Over AI Agent. Here is your message: {cleaned}.\n"
        '        <break time="1s"/>\n'
        "        Thank you for using our service. Goodbye!\n"
        "    </Say>"
    )


def exoml_for_audio(audio_url: str | None) -> str:
    """ExoML that plays a pre-rendered audio file after a one second pause."""
    if not audio_url or not audio_url.strip():
        return exoml_error(MISSING_AUDIO_MESSAGE)

    return _document(
        f'    <Say voice="{EXOTEL_VOICE}">Hello! I will now play your AI generated message.</Say>\n'
        '    <Pause length="1"/>\n'
        f"    <Play>{_xml_escape(audio_url.strip())}</Play>\n"
        f'    <Say voice="{EXOTEL_VOICE}">Thank you for using Voice Over AI Agent. Goodbye!</Say>'
    )
