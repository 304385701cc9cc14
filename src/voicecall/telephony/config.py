"""
Telephony provider configuration.

Presence or absence of credentials decides whether an adapter places real
calls or simulates them; there is no explicit mode switch.
"""

from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

TWILIO_WEBHOOK_SUFFIX = "/api/call/webhook"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Twilio (primary)
    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")
    twilio_phone_number: str = Field(default="")
    twilio_webhook_url: str = Field(
        default="",
        description="Public webhook URL, e.g. https://host/api/call/webhook",
    )
    twilio_base_url: str = Field(default="https://api.twilio.com")

    # Exotel (secondary)
    exotel_api_key: str = Field(default="")
    exotel_api_token: str = Field(default="")
    exotel_sid: str = Field(default="")
    exotel_base_url: str = Field(default="https://api.exotel.com/v1/Accounts")
    exotel_virtual_number: str = Field(default="")

    # Public base URL of this server (Exotel flow callback, absolute audio URLs)
    server_url: str = Field(default="http://localhost:3001")

    # Timeouts
    call_timeout_seconds: int = Field(default=30, ge=5, le=600)
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number
        )

    @property
    def exotel_configured(self) -> bool:
        return bool(self.exotel_api_key and self.exotel_api_token and self.exotel_sid)

    @property
    def twilio_webhook_base(self) -> str:
        """Webhook URL with the ``/api/call/webhook`` suffix removed."""
        url = self.twilio_webhook_url.rstrip("/")
        if url.endswith(TWILIO_WEBHOOK_SUFFIX):
            url = url[: -len(TWILIO_WEBHOOK_SUFFIX)]
        return url

    def absolute_url(self, url: str) -> str:
        """Turn a server-relative path (``/audio/x.mp3``) into an absolute URL."""
        if url.startswith("/"):
            return f"{self.server_url.rstrip('/')}{url}"
        return url

    def twiml_url(self, audio_url: str) -> str:
        audio = quote(self.absolute_url(audio_url), safe="")
        return f"{self.twilio_webhook_base}/api/call/twiml?audio={audio}"

    def status_callback_url(self) -> str:
        return f"{self.twilio_webhook_base}/api/call/webhook/status"

    def exotel_flow_url(self, audio_url: str) -> str:
        audio = quote(self.absolute_url(audio_url), safe="")
        return f"{self.server_url.rstrip('/')}/api/call/flow?audio={audio}"


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
