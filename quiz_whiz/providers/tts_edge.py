from __future__ import annotations

import asyncio
import base64
import io

from quiz_whiz.pcm import SAMPLE_RATE, SAMPLE_WIDTH
from quiz_whiz.providers.base import TTSProvider


def mp3_to_pcm(mp3: bytes) -> bytes:
    from pydub import AudioSegment

    segment = (
        AudioSegment.from_file(io.BytesIO(mp3), format="mp3")
        .set_frame_rate(SAMPLE_RATE)
        .set_channels(1)
        .set_sample_width(SAMPLE_WIDTH)
    )
    return segment.raw_data


class EdgeTTSProvider(TTSProvider):
    """Edge neural voices. The service speaks mp3, transcoded here to raw PCM."""

    def __init__(self, voice: str = "en-IN-NeerjaNeural"):
        self.voice = voice

    async def synthesize(self, text: str) -> str:
        import edge_tts

        communicate = edge_tts.Communicate(text, self.voice)
        mp3 = bytearray()
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                mp3.extend(chunk["data"])
        if not mp3:
            raise RuntimeError(f"edge-tts returned no audio for voice {self.voice}")

        # ffmpeg decode blocks
        pcm = await asyncio.get_running_loop().run_in_executor(None, mp3_to_pcm, bytes(mp3))
        return base64.b64encode(pcm).decode("ascii")

    def name(self) -> str:
        return f"edge-tts/{self.voice}"
