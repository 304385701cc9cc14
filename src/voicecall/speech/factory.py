"""
Speech adapter factory.
"""

from __future__ import annotations

from functools import lru_cache

from voicecall.config import get_settings
from voicecall.speech.config import get_speech_config
from voicecall.speech.elevenlabs_adapter import ElevenLabsAdapter


@lru_cache(maxsize=1)
def get_speech_adapter() -> ElevenLabsAdapter:
    return ElevenLabsAdapter(audio_dir=get_settings().audio_dir, config=get_speech_config())


async def close_speech_adapter() -> None:
    if get_speech_adapter.cache_info().currsize:
        await get_speech_adapter().aclose()
    get_speech_adapter.cache_clear()
