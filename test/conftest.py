"""
Shared fixtures.

Configs are built explicitly (no .env file, empty credentials) so a developer's
environment never turns a test into a real provider call.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from voicecall.speech.config import SpeechConfig
from voicecall.telephony.config import TelephonyConfig

SERVER_URL = "https://voice.example.com"


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_telephony_config(**overrides) -> TelephonyConfig:
    values = {
        "twilio_account_sid": "",
        "twilio_auth_token": "",
        "twilio_phone_number": "",
        "twilio_webhook_url": "",
        "exotel_api_key": "",
        "exotel_api_token": "",
        "exotel_sid": "",
        "exotel_virtual_number": "",
        "server_url": SERVER_URL,
    }
    values.update(overrides)
    return TelephonyConfig(_env_file=None, **values)


def make_speech_config(**overrides) -> SpeechConfig:
    values = {"elevenlabs_api_key": ""}
    values.update(overrides)
    return SpeechConfig(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def unconfigured_telephony() -> TelephonyConfig:
    return make_telephony_config()


@pytest.fixture
def twilio_config() -> TelephonyConfig:
    return make_telephony_config(
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token="test_auth_token_12345",
        twilio_phone_number="+14155550000",
    )


@pytest.fixture
def exotel_config() -> TelephonyConfig:
    return make_telephony_config(
        exotel_api_key="exotel_key",
        exotel_api_token="exotel_token",
        exotel_sid="exotel_sid",
        exotel_virtual_number="08012345678",
    )


@pytest.fixture
def unconfigured_speech() -> SpeechConfig:
    return make_speech_config()


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    return tmp_path / "audio"
