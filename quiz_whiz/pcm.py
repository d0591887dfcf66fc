"""Decode base64 16-bit linear PCM into float sample buffers.

Synthesis backends hand back speech as base64-encoded signed 16-bit
little-endian PCM, channel-interleaved, at a fixed 24 kHz. Playback wants
float samples in [-1.0, 1.0), one column per channel.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

import numpy as np

SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2  # bytes per 16-bit sample
_SCALE = 32768.0


class PcmDecodeError(ValueError):
    """Audio payload is not valid base64 or not whole frames of 16-bit PCM."""


@dataclass
class AudioBuffer:
    samples: np.ndarray  # float32, shape (frames, channels)
    sample_rate: int = SAMPLE_RATE

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def frames(self) -> int:
        return self.samples.shape[0]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def channel_data(self, channel: int) -> np.ndarray:
        return self.samples[:, channel]


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PcmDecodeError(f"Malformed base64 audio payload: {e}") from e


def to_audio_buffer(data: bytes, sample_rate: int = SAMPLE_RATE, channels: int = 1) -> AudioBuffer:
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels}")
    frame_bytes = SAMPLE_WIDTH * channels
    if len(data) % frame_bytes:
        raise PcmDecodeError(
            f"PCM payload of {len(data)} bytes is not a whole number of "
            f"{channels}-channel 16-bit frames"
        )
    ints = np.frombuffer(data, dtype="<i2")
    samples = (ints.astype(np.float32) / _SCALE).reshape(-1, channels)
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


def decode_pcm(payload: str, sample_rate: int = SAMPLE_RATE, channels: int = 1) -> AudioBuffer:
    return to_audio_buffer(decode_base64(payload), sample_rate, channels)


def encode_pcm(samples: np.ndarray) -> str:
    """Inverse of decode_pcm: float samples (frames[, channels]) to base64 PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    ints = np.clip(np.round(clipped * _SCALE), -32768, 32767).astype("<i2")
    return base64.b64encode(ints.tobytes()).decode("ascii")
