"""Tests for the ElevenLabs speech adapter."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import anyio
import httpx
import pytest

from conftest import FakeClock, make_speech_config
from voicecall.speech.config import SpeechConfig
from voicecall.speech.elevenlabs_adapter import MOCK_VOICES, PLACEHOLDER_MP3, ElevenLabsAdapter
from voicecall.speech.interface import VoiceSettings

AUDIO_BYTES = b"ID3\x03fake-mp3-payload"


@pytest.fixture
def configured_speech() -> SpeechConfig:
    return make_speech_config(elevenlabs_api_key="xi_test_key")


def client_for(handler, requests: list[httpx.Request] | None = None) -> httpx.AsyncClient:
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(recording))


class TestPlaceholderSynthesis:
    @pytest.mark.asyncio
    async def test_unconfigured_writes_placeholder(
        self,
        unconfigured_speech: SpeechConfig,
        audio_dir: Path,
    ) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)

        result = await adapter.synthesize("Hello World", "mock-voice-1")

        assert result.success is True
        assert result.mock is True
        assert result.audio_url == f"/audio/{result.filename}"
        assert result.filename.startswith("mock_tts_")
        assert result.filename.endswith(".mp3")
        assert (audio_dir / result.filename).read_bytes() == PLACEHOLDER_MP3

    @pytest.mark.asyncio
    async def test_filenames_are_unique(self, unconfigured_speech: SpeechConfig, audio_dir: Path) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech, clock=lambda: 1.0)

        first = await adapter.synthesize("a", "mock-voice-1")
        second = await adapter.synthesize("a", "mock-voice-1")

        assert first.filename != second.filename
        assert len(list(audio_dir.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_unwritable_directory_is_a_real_failure(
        self,
        unconfigured_speech: SpeechConfig,
        audio_dir: Path,
    ) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)
        audio_dir.rmdir()
        audio_dir.write_text("not a directory")

        result = await adapter.synthesize("Hello", "mock-voice-1")

        assert result.success is False
        assert result.error == "Failed to generate mock audio"


class TestProviderSynthesis:
    @pytest.mark.asyncio
    async def test_success(self, configured_speech: SpeechConfig, audio_dir: Path) -> None:
        requests: list[httpx.Request] = []
        adapter = ElevenLabsAdapter(
            audio_dir,
            config=configured_speech,
            http_client=client_for(lambda r: httpx.Response(200, content=AUDIO_BYTES), requests),
        )

        result = await adapter.synthesize(
            "Hello",
            "voice-abc",
            voice_settings=VoiceSettings(stability=0.3, similarity_boost=0.9),
        )

        assert result.success is True
        assert result.mock is False
        assert result.filename.startswith("tts_")
        assert (audio_dir / result.filename).read_bytes() == AUDIO_BYTES

        request = requests[0]
        assert request.url.path == "/v1/text-to-speech/voice-abc"
        assert request.headers["xi-api-key"] == "xi_test_key"
        assert request.headers["accept"] == "audio/mpeg"
        body = json.loads(request.content)
        assert body["text"] == "Hello"
        assert body["model_id"] == "eleven_monolingual_v1"
        assert body["voice_settings"] == {"stability": 0.3, "similarity_boost": 0.9}

    @pytest.mark.asyncio
    async def test_mock_voice_maps_to_default(self, configured_speech: SpeechConfig, audio_dir: Path) -> None:
        requests: list[httpx.Request] = []
        adapter = ElevenLabsAdapter(
            audio_dir,
            config=configured_speech,
            http_client=client_for(lambda r: httpx.Response(200, content=AUDIO_BYTES), requests),
        )

        await adapter.synthesize("Hello", "mock-voice-2")

        assert requests[0].url.path == "/v1/text-to-speech/pNInz6obpgDQGcFmaJgB"
        body = json.loads(requests[0].content)
        assert body["voice_settings"]["use_speaker_boost"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 429, 500])
    async def test_provider_error_degrades_to_placeholder(
        self,
        configured_speech: SpeechConfig,
        audio_dir: Path,
        status_code: int,
    ) -> None:
        adapter = ElevenLabsAdapter(
            audio_dir,
            config=configured_speech,
            http_client=client_for(lambda r: httpx.Response(status_code, json={"detail": "nope"})),
        )

        result = await adapter.synthesize("Hello", "voice-abc")

        assert result.success is True
        assert result.mock is True
        assert (audio_dir / result.filename).read_bytes() == PLACEHOLDER_MP3

    @pytest.mark.asyncio
    async def test_network_error_degrades_to_placeholder(
        self,
        configured_speech: SpeechConfig,
        audio_dir: Path,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        adapter = ElevenLabsAdapter(audio_dir, config=configured_speech, http_client=client_for(handler))

        result = await adapter.synthesize("Hello", "voice-abc")

        assert result.success is True
        assert result.mock is True


class TestListVoices:
    @pytest.mark.asyncio
    async def test_mock_catalog(self, unconfigured_speech: SpeechConfig, audio_dir: Path) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)

        voices = await adapter.list_voices()

        assert [v.voice_id for v in voices] == [
            "mock-voice-1",
            "mock-voice-2",
            "mock-voice-3",
            "mock-voice-4",
        ]
        assert voices[0].name == "Rachel (Demo)"

    @pytest.mark.asyncio
    async def test_provider_voices(self, configured_speech: SpeechConfig, audio_dir: Path) -> None:
        payload = {
            "voices": [
                {"voice_id": "v1", "name": "Aria", "category": "premade", "preview_url": "https://p/1"},
            ]
        }
        adapter = ElevenLabsAdapter(
            audio_dir,
            config=configured_speech,
            http_client=client_for(lambda r: httpx.Response(200, json=payload)),
        )

        voices = await adapter.list_voices()

        assert len(voices) == 1
        assert voices[0].to_dict() == {
            "voice_id": "v1",
            "name": "Aria",
            "category": "premade",
            "preview_url": "https://p/1",
        }

    @pytest.mark.asyncio
    async def test_provider_error_falls_back_to_mock(
        self,
        configured_speech: SpeechConfig,
        audio_dir: Path,
    ) -> None:
        adapter = ElevenLabsAdapter(
            audio_dir,
            config=configured_speech,
            http_client=client_for(lambda r: httpx.Response(500)),
        )

        assert await adapter.list_voices() == list(MOCK_VOICES)


class TestCleanup:
    @pytest.mark.asyncio
    async def test_zero_hours_removes_everything(
        self,
        unconfigured_speech: SpeechConfig,
        audio_dir: Path,
    ) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)
        for _ in range(3):
            await adapter.synthesize("x", "mock-voice-1")
        (audio_dir / "nested").mkdir()

        deleted = await adapter.cleanup_old_files(0)

        assert deleted == 3
        assert [p.name for p in audio_dir.iterdir()] == ["nested"]

    @pytest.mark.asyncio
    async def test_keeps_recent_files(self, unconfigured_speech: SpeechConfig, audio_dir: Path) -> None:
        clock = FakeClock(now=1_700_000_000.0)
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech, clock=clock)
        old = audio_dir / "old.mp3"
        new = audio_dir / "new.mp3"
        old.write_bytes(PLACEHOLDER_MP3)
        new.write_bytes(PLACEHOLDER_MP3)
        os.utime(old, (clock.now - 25 * 3600, clock.now - 25 * 3600))
        os.utime(new, (clock.now - 3600, clock.now - 3600))

        deleted = await adapter.cleanup_old_files(24)

        assert deleted == 1
        assert not old.exists()
        assert new.exists()

    @pytest.mark.asyncio
    async def test_missing_directory(self, unconfigured_speech: SpeechConfig, audio_dir: Path) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)
        audio_dir.rmdir()

        assert await adapter.cleanup_old_files(0) == 0

    @pytest.mark.asyncio
    async def test_unlink_errors_are_logged_and_skipped(
        self,
        unconfigured_speech: SpeechConfig,
        audio_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        adapter = ElevenLabsAdapter(audio_dir, config=unconfigured_speech)
        for name in ("locked.mp3", "gone.mp3", "stale.mp3"):
            (audio_dir / name).write_bytes(PLACEHOLDER_MP3)

        original_unlink = anyio.Path.unlink

        async def flaky_unlink(self: anyio.Path, *args, **kwargs) -> None:
            if self.name == "locked.mp3":
                raise PermissionError(13, "Permission denied", str(self))
            if self.name == "gone.mp3":
                raise FileNotFoundError(2, "No such file or directory", str(self))
            await original_unlink(self, *args, **kwargs)

        monkeypatch.setattr(anyio.Path, "unlink", flaky_unlink)
        caplog.set_level(logging.INFO, logger="voicecall.speech.elevenlabs_adapter")

        deleted = await adapter.cleanup_old_files(0)

        assert deleted == 1
        assert sorted(p.name for p in audio_dir.iterdir()) == ["gone.mp3", "locked.mp3"]
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert [r.getMessage() for r in errors] == ["Error cleaning up audio file"]
        assert errors[0].audio_filename == "locked.mp3"
        assert errors[0].exc_info[0] is PermissionError
