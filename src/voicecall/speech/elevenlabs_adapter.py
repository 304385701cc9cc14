"""
ElevenLabs text-to-speech adapter.

Synthesis degrades instead of failing: with no API key, or when ElevenLabs
errors out, a tiny placeholder MP3 is written so the rest of the flow still
completes. Only a failure to write that placeholder is reported as a failure.

The adapter is the only writer of the audio directory. Every file gets a
unique name, so concurrent synthesis calls never collide; the cleanup sweep is
the only thing that deletes.
"""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import Any, Callable

import anyio
import httpx

from voicecall.shared.logging import get_logger, preview
from voicecall.speech.config import SpeechConfig, get_speech_config
from voicecall.speech.interface import (
    DEFAULT_VOICE_SETTINGS,
    MOCK_VOICE_PREFIX,
    AudioArtifact,
    SpeechProviderError,
    SynthesisResult,
    Voice,
    VoiceSettings,
)

logger = get_logger(__name__)

# ID3v2 header followed by a bare MPEG frame header
PLACEHOLDER_MP3 = bytes(
    [
        0x49, 0x44, 0x33, 0x03, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00,
        0xFF, 0xFB, 0x90, 0x00,
    ]
)

MOCK_VOICES: tuple[Voice, ...] = (
    Voice(
        voice_id="mock-voice-1",
        name="Rachel (Demo)",
        category="premade",
        description="American Female - Mock voice for demonstration",
    ),
    Voice(
        voice_id="mock-voice-2",
        name="Adam (Demo)",
        category="premade",
        description="American Male - Mock voice for demonstration",
    ),
    Voice(
        voice_id="mock-voice-3",
        name="Domi (Demo)",
        category="premade",
        description="American Female - Mock voice for demonstration",
    ),
    Voice(
        voice_id="mock-voice-4",
        name="Fin (Demo)",
        category="premade",
        description="Irish Male - Mock voice for demonstration",
    ),
)


class ElevenLabsAdapter:
    """ElevenLabs speech synthesis with a local placeholder fallback."""

    def __init__(
        self,
        audio_dir: Path,
        config: SpeechConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or get_speech_config()
        self._audio_dir = Path(audio_dir)
        self._client = http_client
        self._owns_client = http_client is None
        self._clock = clock

        self._audio_dir.mkdir(parents=True, exist_ok=True)

        if not self._config.configured:
            logger.warning("ElevenLabs API key not found; using mock audio generation")

    @property
    def audio_dir(self) -> Path:
        return self._audio_dir

    @property
    def is_configured(self) -> bool:
        return self._config.configured

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.elevenlabs_base_url,
                timeout=self._config.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self, accept: str) -> dict[str, str]:
        return {"Accept": accept, "xi-api-key": self._config.elevenlabs_api_key}

    def _url(self, path: str) -> str:
        return f"{self._config.elevenlabs_base_url.rstrip('/')}{path}"

    def _new_filename(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4()}_{int(self._clock() * 1000)}.mp3"

    async def list_voices(self) -> list[Voice]:
        """Voices from ElevenLabs, or the built-in demo catalog."""
        if not self.is_configured:
            return list(MOCK_VOICES)

        try:
            response = await self._get_client().get(
                self._url("/voices"),
                headers=self._headers("application/json"),
            )
            response.raise_for_status()
            voices = [
                Voice(
                    voice_id=item["voice_id"],
                    name=item.get("name", item["voice_id"]),
                    category=item.get("category") or "unknown",
                    description=item.get("description"),
                    preview_url=item.get("preview_url"),
                )
                for item in response.json().get("voices", [])
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError):
            logger.exception("Error fetching voices from ElevenLabs; using mock voices")
            return list(MOCK_VOICES)

        logger.info("Retrieved voices from ElevenLabs", extra={"count": len(voices)})
        return voices

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        voice_settings: VoiceSettings | None = None,
        model_id: str | None = None,
    ) -> SynthesisResult:
        """Render ``text`` to an MP3 in the audio directory."""
        if not self.is_configured:
            return await self._synthesize_placeholder(text)

        try:
            audio = await self._request_speech(text, voice_id, voice_settings, model_id)
            artifact = AudioArtifact(filename=self._new_filename("tts"))
            await anyio.Path(self._audio_dir / artifact.filename).write_bytes(audio)
        except Exception:
            logger.exception("Error generating speech; using mock audio")
            return await self._synthesize_placeholder(text)

        logger.info("Speech generated successfully", extra={"audio_filename": artifact.filename})
        return SynthesisResult.from_artifact(artifact)

    async def _request_speech(
        self,
        text: str,
        voice_id: str,
        voice_settings: VoiceSettings | None,
        model_id: str | None,
    ) -> bytes:
        real_voice_id = (
            self._config.elevenlabs_default_voice_id
            if voice_id.startswith(MOCK_VOICE_PREFIX)
            else voice_id
        )
        payload: dict[str, Any] = {
            "text": text,
            "model_id": model_id or self._config.elevenlabs_model_id,
            "voice_settings": (voice_settings or DEFAULT_VOICE_SETTINGS).to_dict(),
        }

        logger.info(
            "Generating speech",
            extra={"voice_id": voice_id, "provider_voice_id": real_voice_id},
        )

        response = await self._get_client().post(
            self._url(f"/text-to-speech/{real_voice_id}"),
            json=payload,
            headers=self._headers("audio/mpeg"),
        )
        if response.status_code >= 400:
            raise SpeechProviderError(
                f"ElevenLabs API error: {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise SpeechProviderError("ElevenLabs returned empty audio")
        return response.content

    async def _synthesize_placeholder(self, text: str) -> SynthesisResult:
        artifact = AudioArtifact(filename=self._new_filename("mock_tts"))
        try:
            await anyio.Path(self._audio_dir / artifact.filename).write_bytes(PLACEHOLDER_MP3)
        except OSError:
            logger.exception("Error generating mock audio")
            return SynthesisResult(success=False, error="Failed to generate mock audio")

        logger.info(
            "Mock speech generated",
            extra={"audio_filename": artifact.filename, "text_preview": preview(text, 50)},
        )
        return SynthesisResult.from_artifact(artifact, mock=True)

    async def cleanup_old_files(self, max_age_hours: float = 24) -> int:
        """Delete stored audio at least ``max_age_hours`` old; returns the count.

        Per-file errors are logged and skipped. A file that disappears between
        listing and deletion is not an error.
        """
        max_age_seconds = max_age_hours * 3600
        now = self._clock()
        deleted = 0

        directory = anyio.Path(self._audio_dir)
        if not await directory.exists():
            return 0

        async for path in directory.iterdir():
            try:
                if not await path.is_file():
                    continue
                stats = await path.stat()
                if max_age_seconds <= 0 or now - stats.st_mtime >= max_age_seconds:
                    await path.unlink()
                    deleted += 1
                    logger.info("Cleaned up old audio file", extra={"audio_filename": path.name})
            except FileNotFoundError:
                continue
            except OSError:
                logger.exception("Error cleaning up audio file", extra={"audio_filename": path.name})

        return deleted
