"""
Pydantic schemas for the call API.
"""

from pydantic import BaseModel, Field

from voicecall.shared.exceptions import ValidationError


class PlaceCallRequest(BaseModel):
    to_number: str | None = Field(None, description="Destination phone number")
    audio_url: str | None = Field(None, description="Audio URL returned by /api/voice/generate")
    caller_id: str | None = None

    def validated(self) -> tuple[str, str]:
        if not self.to_number or not self.audio_url:
            raise ValidationError(
                message="Both to_number and audio_url are required",
                code="MISSING_REQUIRED_FIELDS",
            )
        return self.to_number, self.audio_url


class CompleteCallRequest(BaseModel):
    text: str | None = None
    voice_id: str | None = None
    to_number: str | None = None
    caller_id: str | None = None

    def validated(self) -> tuple[str, str, str]:
        if not self.text or not self.text.strip() or not self.voice_id or not self.to_number:
            raise ValidationError(
                message="text, voice_id, and to_number are required",
                code="MISSING_REQUIRED_FIELDS",
            )
        return self.text, self.voice_id, self.to_number


class PlaceCallResponse(BaseModel):
    success: bool = True
    call_id: str
    message: str | None = None
    provider: str | None = None
    simulation: bool = False


class CompleteCallResponse(BaseModel):
    success: bool = True
    message: str
    call_id: str
    audio_url: str
    call_status: str = "initiated"
    simulation: bool = False
    provider: str | None = None


class VerifyAccountResponse(BaseModel):
    success: bool = True
    account_verified: bool
    message: str
