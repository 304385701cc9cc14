"""
Speech synthesis types.
"""

from dataclasses import asdict, dataclass
from typing import Any

MAX_TEXT_LENGTH = 5000
MOCK_VOICE_PREFIX = "mock-"
AUDIO_URL_PREFIX = "/audio/"


@dataclass(frozen=True)
class Voice:
    voice_id: str
    name: str
    category: str
    description: str | None = None
    preview_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class VoiceSettings:
    stability: float = 0.5
    similarity_boost: float = 0.8
    style: float | None = None
    use_speaker_boost: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


DEFAULT_VOICE_SETTINGS = VoiceSettings(
    stability=0.5,
    similarity_boost=0.8,
    style=0.0,
    use_speaker_boost=True,
)


@dataclass(frozen=True)
class AudioArtifact:
    """A stored audio file and the URL it is served under."""

    filename: str

    @property
    def audio_url(self) -> str:
        return f"{AUDIO_URL_PREFIX}{self.filename}"


@dataclass(frozen=True)
class SynthesisResult:
    success: bool
    audio_url: str | None = None
    filename: str | None = None
    error: str | None = None
    mock: bool = False

    @classmethod
    def from_artifact(cls, artifact: AudioArtifact, mock: bool = False) -> "SynthesisResult":
        return cls(
            success=True,
            audio_url=artifact.audio_url,
            filename=artifact.filename,
            mock=mock,
        )

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class SpeechProviderError(Exception):
    """Error returned by the text-to-speech provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
