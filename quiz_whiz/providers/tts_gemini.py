from __future__ import annotations

import logging
import os
import time

import httpx

from quiz_whiz.providers.base import TTSProvider

log = logging.getLogger("quiz_whiz.tts")

API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiTTSProvider(TTSProvider):
    """Gemini speech generation; the API already returns 24 kHz mono 16-bit PCM."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash-preview-tts",
        voice: str = "Kore",
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.voice = voice
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", "")
        self._transport = transport

    async def synthesize(self, text: str) -> str:
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY environment variable not set for TTS")
        body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice}},
                },
            },
        }
        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
            resp = await client.post(
                f"{API_BASE}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()
        try:
            audio = data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
        except (KeyError, IndexError, TypeError):
            audio = None
        if not audio:
            raise RuntimeError("No audio data received from the API")
        log.debug("Synthesized %d chars in %.1fs", len(text), time.monotonic() - t0)
        return audio

    def name(self) -> str:
        return f"gemini/{self.model}/{self.voice}"
