"""
Telephony adapter factory.

Single source of truth for configuration: TelephonyConfig (pydantic settings,
OS env + .env). Adapters are process-wide singletons; tests override the
FastAPI dependencies instead of touching these.
"""

from __future__ import annotations

from functools import lru_cache

from voicecall.shared.logging import get_logger, mask
from voicecall.telephony.config import TelephonyConfig
from voicecall.telephony.config import get_telephony_config as _get_settings_telephony_config
from voicecall.telephony.exotel_adapter import ExotelAdapter
from voicecall.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_telephony_config() -> TelephonyConfig:
    cfg = _get_settings_telephony_config()
    logger.info(
        "Telephony config resolved",
        extra={
            "twilio_account_sid": mask(cfg.twilio_account_sid),
            "twilio_phone_number": cfg.twilio_phone_number,
            "twilio_configured": cfg.twilio_configured,
            "exotel_sid": mask(cfg.exotel_sid),
            "exotel_configured": cfg.exotel_configured,
            "server_url": cfg.server_url,
        },
    )
    return cfg


@lru_cache(maxsize=1)
def get_twilio_adapter() -> TwilioAdapter:
    return TwilioAdapter(get_telephony_config())


@lru_cache(maxsize=1)
def get_exotel_adapter() -> ExotelAdapter:
    return ExotelAdapter(get_telephony_config())


async def close_adapters() -> None:
    """Close cached adapters (HTTP clients and narration tasks) and reset the cache."""
    if get_twilio_adapter.cache_info().currsize:
        await get_twilio_adapter().aclose()
    if get_exotel_adapter.cache_info().currsize:
        await get_exotel_adapter().aclose()
    get_twilio_adapter.cache_clear()
    get_exotel_adapter.cache_clear()
