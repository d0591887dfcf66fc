"""Cancellable playback of decoded speech and effect buffers.

The output device is modelled as an explicit resource (``AudioContext``)
that is created lazily on first playback and can be reset. ``AudioResources``
owns the two contexts the application needs (narration at 24 kHz, effects at
44.1 kHz) plus the process-wide mute flag, and is handed to players as a
dependency so tests can substitute a fake device.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from quiz_whiz.models import FragmentKind, NarrationRecord
from quiz_whiz.pcm import SAMPLE_RATE, AudioBuffer, PcmDecodeError, decode_pcm

log = logging.getLogger("quiz_whiz.player")

EFFECTS_SAMPLE_RATE = 44100


class AudioOutput(ABC):
    """One opened output device. Handles are opaque to callers."""

    @abstractmethod
    def start(self, buffer: AudioBuffer, on_done: Callable[[], None]) -> Any:
        """Begin playing; ``on_done`` fires (from any thread) when playback ends."""
        ...

    @abstractmethod
    def stop(self, handle: Any) -> None:
        ...

    def release(self, handle: Any) -> None:
        """Free a handle whose playback already ended on its own."""

    def close(self) -> None:
        pass


class SoundDeviceOutput(AudioOutput):
    def __init__(self, sample_rate: int):
        import sounddevice as sd

        sd.check_output_settings(samplerate=sample_rate, channels=1)
        self._sd = sd
        self.sample_rate = sample_rate

    def start(self, buffer: AudioBuffer, on_done: Callable[[], None]):
        sd = self._sd
        samples = buffer.samples
        pos = 0

        def callback(outdata, frames, time_info, status):
            nonlocal pos
            chunk = samples[pos:pos + frames]
            outdata[:len(chunk)] = chunk
            pos += len(chunk)
            if len(chunk) < frames:
                outdata[len(chunk):] = 0
                raise sd.CallbackStop

        stream = sd.OutputStream(
            samplerate=buffer.sample_rate,
            channels=buffer.channels,
            dtype="float32",
            callback=callback,
            finished_callback=on_done,
        )
        stream.start()
        return stream

    def stop(self, handle) -> None:
        handle.abort()
        handle.close()

    def release(self, handle) -> None:
        handle.close()


OutputFactory = Callable[[int], AudioOutput]


class AudioContext:
    """Lazily opened output device at a fixed sample rate.

    ``get()`` returns None when the device cannot be opened, or after a
    playback on it failed to start; callers treat that as "play nothing".
    The failure is cached until ``reset()``.
    """

    def __init__(self, sample_rate: int, factory: OutputFactory = SoundDeviceOutput):
        self.sample_rate = sample_rate
        self._factory = factory
        self._output: AudioOutput | None = None
        self._unavailable = False

    @property
    def is_open(self) -> bool:
        return self._output is not None

    def get(self) -> AudioOutput | None:
        if self._output is None and not self._unavailable:
            try:
                self._output = self._factory(self.sample_rate)
            except Exception as e:
                log.warning("Audio output unavailable at %d Hz: %s", self.sample_rate, e)
                self._unavailable = True
        return self._output

    def mark_unavailable(self, error: Exception) -> None:
        """Give up on an output that failed mid-use, until the next reset()."""
        log.warning("Audio output at %d Hz failed, playback disabled: %s", self.sample_rate, error)
        output, self._output = self._output, None
        self._unavailable = True
        if output is not None:
            try:
                output.close()
            except Exception as e:
                log.debug("Ignoring error closing failed output: %s", e)

    def reset(self) -> None:
        if self._output is not None:
            self._output.close()
        self._output = None
        self._unavailable = False


class AudioResources:
    def __init__(self, factory: OutputFactory = SoundDeviceOutput, muted: bool = False):
        self.narration = AudioContext(SAMPLE_RATE, factory)
        self.effects = AudioContext(EFFECTS_SAMPLE_RATE, factory)
        self._muted = muted
        self._players: list[AudioPlayer] = []

    @property
    def muted(self) -> bool:
        return self._muted

    def set_muted(self, muted: bool) -> None:
        self._muted = muted
        if muted:
            for player in self._players:
                player.stop_all()

    def toggle_mute(self) -> bool:
        self.set_muted(not self._muted)
        return self._muted

    def register(self, player: AudioPlayer) -> None:
        self._players.append(player)

    def reset(self) -> None:
        for player in self._players:
            player.stop_all()
        self.narration.reset()
        self.effects.reset()


class CancellationToken:
    """Cooperative cancellation flag checked between sequential playback steps."""

    def __init__(self, on_cancel: Callable[[], None] | None = None):
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel:
            self._on_cancel()


class AudioPlayer:
    """Plays buffers on one context and tracks in-flight playbacks for stop_all()."""

    def __init__(self, resources: AudioResources, context: AudioContext | None = None):
        self.resources = resources
        self.context = context or resources.narration
        self._active: dict[int, tuple[AudioOutput, Any, asyncio.Future]] = {}
        self._next_id = 0
        resources.register(self)

    @property
    def active_count(self) -> int:
        return len(self._active)

    async def play(self, buffer: AudioBuffer) -> bool:
        """Play ``buffer``. True when it finished naturally, False otherwise."""
        if self.resources.muted:
            return False
        output = self.context.get()
        if output is None:
            return False

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        play_id = self._next_id
        self._next_id += 1

        def on_done():
            loop.call_soon_threadsafe(self._settle, play_id, True)

        try:
            handle = output.start(buffer, on_done)
        except Exception as e:
            self.context.mark_unavailable(e)
            return False
        self._active[play_id] = (output, handle, future)
        return await future

    def _settle(self, play_id: int, finished: bool) -> None:
        entry = self._active.pop(play_id, None)
        if entry is None:
            return  # already stopped
        output, handle, future = entry
        try:
            output.release(handle)
        except Exception as e:
            log.debug("Ignoring error releasing playback: %s", e)
        if not future.done():
            future.set_result(finished)

    def stop_all(self) -> None:
        if not self._active:
            return
        entries, self._active = self._active, {}
        for output, handle, future in entries.values():
            try:
                output.stop(handle)
            except Exception as e:
                log.debug("Ignoring error stopping playback: %s", e)
            if not future.done():
                future.set_result(False)

    def cancellation_token(self) -> CancellationToken:
        return CancellationToken(on_cancel=self.stop_all)


FragmentListener = Callable[[FragmentKind, "int | None", bool], None]


async def narrate(
    player: AudioPlayer,
    record: NarrationRecord,
    token: CancellationToken,
    on_fragment: FragmentListener | None = None,
) -> bool:
    """Play a question's narration fragment by fragment.

    Empty fragments are skipped, undecodable ones are logged and skipped.
    Returns False if the token was cancelled before the sequence finished.
    """
    for kind, position, payload in record.fragments():
        if token.cancelled:
            return False
        if not payload:
            continue
        try:
            buffer = decode_pcm(payload, player.context.sample_rate)
        except PcmDecodeError as e:
            log.warning("Skipping %s fragment%s: %s", kind.value,
                        "" if position is None else f" #{position}", e)
            continue
        if on_fragment:
            on_fragment(kind, position, True)
        try:
            await player.play(buffer)
        finally:
            if on_fragment:
                on_fragment(kind, position, False)
    return not token.cancelled
