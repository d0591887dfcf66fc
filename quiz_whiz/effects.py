"""Short synthesized UI sounds played on the effects output context."""
from __future__ import annotations

import asyncio

import numpy as np

from quiz_whiz.pcm import AudioBuffer
from quiz_whiz.player import AudioPlayer, AudioResources

_FLOOR = 0.0001


def tone(wave: str, frequency: float, duration: float, volume: float = 0.5,
         sample_rate: int = 44100) -> AudioBuffer:
    """One oscillator note with an exponential decay envelope."""
    t = np.arange(int(sample_rate * duration), dtype=np.float32) / sample_rate
    phase = frequency * t
    if wave == "sine":
        signal = np.sin(2 * np.pi * phase)
    elif wave == "sawtooth":
        signal = 2.0 * (phase - np.floor(phase + 0.5))
    elif wave == "triangle":
        signal = 2.0 * np.abs(2.0 * (phase - np.floor(phase + 0.5))) - 1.0
    else:
        raise ValueError(f"Unknown waveform: {wave}")
    start = volume * 0.3
    envelope = start * (_FLOOR / start) ** (t / duration)
    samples = (signal * envelope).astype(np.float32).reshape(-1, 1)
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


class SoundEffects:
    def __init__(self, resources: AudioResources):
        self.resources = resources
        self.player = AudioPlayer(resources, resources.effects)
        self._tasks: set[asyncio.Task] = set()

    def _tone(self, wave: str, frequency: float, duration: float, volume: float = 0.5) -> AudioBuffer:
        return tone(wave, frequency, duration, volume, self.resources.effects.sample_rate)

    def _fire(self, buffer: AudioBuffer, delay: float = 0.0) -> None:
        async def run():
            if delay:
                await asyncio.sleep(delay)
            await self.player.play(buffer)

        task = asyncio.create_task(run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def play_select(self) -> None:
        if not self.resources.muted:
            self._fire(self._tone("sine", 440, 0.1, 0.3))

    def play_correct(self) -> None:
        if self.resources.muted:
            return
        note = 0.12
        for i, freq in enumerate((523.25, 659.25, 783.99)):
            self._fire(self._tone("sine", freq, note), delay=i * note * 0.8)

    def play_incorrect(self) -> None:
        if self.resources.muted:
            return
        self._fire(self._tone("sawtooth", 150, 0.2, 0.4))
        self._fire(self._tone("sawtooth", 140, 0.2, 0.4), delay=0.1)

    def play_tick(self) -> None:
        if not self.resources.muted:
            self._fire(self._tone("triangle", 1200, 0.05, 0.2))

    async def drain(self) -> None:
        """Wait for every scheduled effect to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks)
