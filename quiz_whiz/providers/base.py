from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quiz_whiz.config import Settings


class TTSProvider(ABC):
    @abstractmethod
    async def synthesize(self, text: str) -> str:
        """Return base64 16-bit little-endian mono PCM at 24 kHz."""
        ...

    @abstractmethod
    def name(self) -> str:
        ...


def create_tts_provider(settings: Settings) -> TTSProvider:
    if settings.tts_provider == "gemini":
        from quiz_whiz.providers.tts_gemini import GeminiTTSProvider
        return GeminiTTSProvider(model=settings.gemini_model, voice=settings.gemini_voice)
    elif settings.tts_provider == "elevenlabs":
        from quiz_whiz.providers.tts_elevenlabs import ElevenLabsProvider
        return ElevenLabsProvider(voice_id=settings.elevenlabs_voice, model_id=settings.elevenlabs_model)
    elif settings.tts_provider == "edge-tts":
        from quiz_whiz.providers.tts_edge import EdgeTTSProvider
        return EdgeTTSProvider(voice=settings.edge_voice)
    raise ValueError(f"Unknown TTS provider: {settings.tts_provider}")
