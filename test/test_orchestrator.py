"""Tests for the call orchestrator (fallback and routing)."""

from __future__ import annotations

import pytest

from voicecall.calls.orchestrator import CallOrchestrator, PlacementState, provider_label
from voicecall.telephony.interface import AccountVerification, CallResult, CallStatus
from voicecall.telephony.phone_numbers import format_for_exotel


class FakePrimary:
    def __init__(self, result: CallResult) -> None:
        self.result = result
        self.text_calls: list[tuple] = []
        self.audio_calls: list[tuple] = []
        self.status_calls: list[str] = []

    async def place_call_with_text(self, text, to_number, caller_id=None) -> CallResult:
        self.text_calls.append((text, to_number, caller_id))
        return self.result

    async def place_call(self, to_number, audio_url, caller_id=None) -> CallResult:
        self.audio_calls.append((to_number, audio_url, caller_id))
        return self.result

    async def get_status(self, call_id) -> CallStatus | None:
        self.status_calls.append(call_id)
        return CallStatus(call_id=call_id, status="queued")


class FakeSecondary:
    def __init__(self, result: CallResult) -> None:
        self.result = result
        self.calls: list[tuple] = []
        self.status_calls: list[str] = []

    def format_phone_number(self, phone_number: str) -> str:
        return format_for_exotel(phone_number)

    async def place_call(self, to_number, audio_url, caller_id=None) -> CallResult:
        self.calls.append((to_number, audio_url, caller_id))
        return self.result

    async def get_status(self, call_id) -> CallStatus | None:
        self.status_calls.append(call_id)
        return None

    async def verify_account(self) -> AccountVerification:
        return AccountVerification(valid=False, message="not configured")


PRIMARY_OK = CallResult(success=True, call_id="CA0001", message="ok")
PRIMARY_SIM = CallResult(success=True, call_id="sim_twilio_1_abc", simulation=True)
PRIMARY_FAIL = CallResult(success=False, error="twilio down")
SECONDARY_OK = CallResult(success=True, call_id="sim_2_def", simulation=True)
SECONDARY_FAIL = CallResult(success=False, error="exotel down")


class TestPlaceCall:
    @pytest.mark.asyncio
    async def test_primary_text_placement(self) -> None:
        primary, secondary = FakePrimary(PRIMARY_OK), FakeSecondary(SECONDARY_OK)
        orchestrator = CallOrchestrator(primary, secondary)

        outcome = await orchestrator.place_call(
            "9876543210",
            audio_url="/audio/a.mp3",
            caller_id="+1555",
            text="Hello",
        )

        assert outcome.success is True
        assert outcome.state is PlacementState.PLACED
        assert outcome.provider == "twilio"
        assert primary.text_calls == [("Hello", "9876543210", "+1555")]
        assert primary.audio_calls == []
        assert secondary.calls == []

    @pytest.mark.asyncio
    async def test_primary_audio_placement_without_text(self) -> None:
        primary, secondary = FakePrimary(PRIMARY_SIM), FakeSecondary(SECONDARY_OK)
        orchestrator = CallOrchestrator(primary, secondary)

        outcome = await orchestrator.place_call("9876543210", audio_url="/audio/a.mp3")

        assert outcome.provider == "twilio_sim"
        assert outcome.result.simulation is True
        assert primary.audio_calls == [("9876543210", "/audio/a.mp3", None)]

    @pytest.mark.asyncio
    async def test_falls_back_to_secondary(self) -> None:
        primary, secondary = FakePrimary(PRIMARY_FAIL), FakeSecondary(SECONDARY_OK)
        orchestrator = CallOrchestrator(primary, secondary)

        outcome = await orchestrator.place_call("9876543210", audio_url="/audio/a.mp3", text="Hi")

        assert outcome.success is True
        assert outcome.provider == "exotel_sim"
        assert outcome.result.call_id == "sim_2_def"
        assert secondary.calls == [("+919876543210", "/audio/a.mp3", None)]

    @pytest.mark.asyncio
    async def test_both_fail_aggregates_errors(self) -> None:
        orchestrator = CallOrchestrator(FakePrimary(PRIMARY_FAIL), FakeSecondary(SECONDARY_FAIL))

        outcome = await orchestrator.place_call("9876543210", audio_url="/audio/a.mp3")

        assert outcome.success is False
        assert outcome.state is PlacementState.FAILED
        assert outcome.provider is None
        assert "twilio down" in outcome.result.error
        assert "exotel down" in outcome.result.error


class TestGetStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("call_id", ["CA0001", "sim_twilio_1_abc"])
    async def test_routes_to_primary(self, call_id: str) -> None:
        primary, secondary = FakePrimary(PRIMARY_OK), FakeSecondary(SECONDARY_OK)
        orchestrator = CallOrchestrator(primary, secondary)

        status = await orchestrator.get_status(call_id)

        assert status.status == "queued"
        assert primary.status_calls == [call_id]
        assert secondary.status_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("call_id", ["sim_1_abc", "exo123"])
    async def test_routes_to_secondary(self, call_id: str) -> None:
        primary, secondary = FakePrimary(PRIMARY_OK), FakeSecondary(SECONDARY_OK)
        orchestrator = CallOrchestrator(primary, secondary)

        assert await orchestrator.get_status(call_id) is None
        assert secondary.status_calls == [call_id]
        assert primary.status_calls == []

    @pytest.mark.asyncio
    async def test_empty_id(self) -> None:
        orchestrator = CallOrchestrator(FakePrimary(PRIMARY_OK), FakeSecondary(SECONDARY_OK))
        assert await orchestrator.get_status("") is None


class TestVerifySecondary:
    @pytest.mark.asyncio
    async def test_delegates(self) -> None:
        orchestrator = CallOrchestrator(FakePrimary(PRIMARY_OK), FakeSecondary(SECONDARY_OK))

        verification = await orchestrator.verify_secondary()

        assert verification.valid is False


def test_provider_label() -> None:
    assert provider_label("CA1") == "twilio"
    assert provider_label("sim_twilio_1_x") == "twilio_sim"
    assert provider_label("sim_1_x") == "exotel_sim"
    assert provider_label("abc") == "exotel"
    assert provider_label(None) is None
