"""
Pydantic schemas for the voice API.

Required fields are optional at the schema level and checked in
``require_text``/``require_field`` so that missing input maps to a 400 with an
error code rather than FastAPI's generic 422.
"""

from pydantic import BaseModel, Field

from voicecall.shared.exceptions import ValidationError
from voicecall.speech.interface import MAX_TEXT_LENGTH, VoiceSettings

DEFAULT_TEST_TEXT = (
    "Hello! This is a test of the Voice Over AI Agent. The system is working correctly."
)
DEFAULT_TEST_VOICE_ID = "mock-voice-1"


class VoiceSettingsSchema(BaseModel):
    """Voice tuning parameters passed through to the TTS provider."""

    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.8, ge=0.0, le=1.0)
    style: float | None = Field(default=None, ge=0.0, le=1.0)
    use_speaker_boost: bool | None = None

    def to_domain(self) -> VoiceSettings:
        return VoiceSettings(
            stability=self.stability,
            similarity_boost=self.similarity_boost,
            style=self.style,
            use_speaker_boost=self.use_speaker_boost,
        )


class GenerateSpeechRequest(BaseModel):
    text: str | None = Field(None, description="Text to synthesize (max 5000 characters)")
    voice_id: str | None = Field(None, description="Provider voice id or mock-* id")
    voice_settings: VoiceSettingsSchema | None = None


class VoiceTestRequest(BaseModel):
    text: str | None = None
    voice_id: str | None = None


def require_field(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(
            message=f"{name} is required",
            code="MISSING_REQUIRED_FIELDS",
        )
    return value


def require_text(text: str | None) -> str:
    """Validate user text: present, non-blank, at most MAX_TEXT_LENGTH characters."""
    text = require_field(text, "text")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            message=f"Text must be at most {MAX_TEXT_LENGTH} characters",
            code="TEXT_TOO_LONG",
        )
    return text
