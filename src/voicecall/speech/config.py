"""
Speech synthesis provider configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpeechConfig(BaseSettings):
    """ElevenLabs configuration from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    elevenlabs_api_key: str = Field(default="")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")
    elevenlabs_model_id: str = Field(default="eleven_monolingual_v1")
    # Real voice used when a mock-* voice id reaches the provider (Adam)
    elevenlabs_default_voice_id: str = Field(default="pNInz6obpgDQGcFmaJgB")
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def configured(self) -> bool:
        return bool(self.elevenlabs_api_key)


def get_speech_config() -> SpeechConfig:
    return SpeechConfig()
