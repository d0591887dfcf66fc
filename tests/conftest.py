"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import base64

import pytest

from quiz_whiz.models import QuizQuestion
from quiz_whiz.player import AudioOutput, AudioResources


class FakeTTS:
    """Returns a deterministic payload per text, optionally failing or delaying.

    ``fail`` holds texts that raise; ``delays`` maps text to seconds slept
    before answering, used to scramble completion order.
    """

    def __init__(self, fail=(), delays=None):
        self.fail = set(fail)
        self.delays = delays or {}
        self.synthesize_called = 0
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> str:
        self.synthesize_called += 1
        self.texts.append(text)
        delay = self.delays.get(text)
        if delay:
            await asyncio.sleep(delay)
        if text in self.fail:
            raise RuntimeError(f"synthesis failed for {text!r}")
        return payload_for(text)

    def name(self) -> str:
        return "fake-tts"


def payload_for(text: str) -> str:
    # two bytes per character keeps the payload whole 16-bit frames
    return base64.b64encode(text.encode("utf-16-le")).decode("ascii")


class FakeOutput(AudioOutput):
    """Output device that never touches hardware.

    With ``autoplay`` every buffer completes as soon as it starts; otherwise
    the test finishes playbacks explicitly. With ``fail_start`` every
    ``start`` raises like a device that vanished mid-session.
    """

    def __init__(self, sample_rate: int, autoplay: bool = False, fail_start: bool = False):
        self.sample_rate = sample_rate
        self.autoplay = autoplay
        self.fail_start = fail_start
        self.started: list = []
        self.stopped: list = []
        self.released: list = []
        self._pending: dict[int, object] = {}
        self.closed = False

    def start(self, buffer, on_done):
        if self.fail_start:
            raise OSError("device disconnected")
        handle = len(self.started)
        self.started.append(buffer)
        if self.autoplay:
            on_done()
        else:
            self._pending[handle] = on_done
        return handle

    def stop(self, handle) -> None:
        self.stopped.append(handle)
        self._pending.pop(handle, None)

    def release(self, handle) -> None:
        self.released.append(handle)

    def finish(self, handle) -> None:
        on_done = self._pending.pop(handle)
        on_done()

    def finish_all(self) -> None:
        for handle in list(self._pending):
            self.finish(handle)

    def close(self) -> None:
        self.closed = True


class OutputFactory:
    """Callable factory that remembers the outputs it opened, per sample rate."""

    def __init__(self, autoplay: bool = False, broken: bool = False, fail_start: bool = False):
        self.autoplay = autoplay
        self.broken = broken
        self.fail_start = fail_start
        self.opened: dict[int, FakeOutput] = {}
        self.calls = 0

    def __call__(self, sample_rate: int) -> FakeOutput:
        self.calls += 1
        if self.broken:
            raise OSError("no output device")
        out = FakeOutput(sample_rate, autoplay=self.autoplay, fail_start=self.fail_start)
        self.opened[sample_rate] = out
        return out


@pytest.fixture
def sample_questions():
    """Three well-formed questions; the second uses inline markup."""
    return [
        QuizQuestion(
            question="Which planet is known as the Red Planet?",
            options=["Venus", "Mars", "Jupiter", "Saturn"],
            correct_answer="Mars",
            explanation="Iron oxide gives Mars its colour.",
        ),
        QuizQuestion(
            question="H<sub>2</sub>O is the formula for <b>what</b>?",
            options=["Salt", "Water", "Sugar"],
            correct_answer="Water",
            explanation="Two hydrogen atoms, one <i>oxygen</i>.",
        ),
        QuizQuestion(
            question="How many sides does a hexagon have?",
            options=["5", "6", "7", "8"],
            correct_answer="6",
            explanation="Hexa means six.",
        ),
    ]


@pytest.fixture
def factory():
    return OutputFactory()


@pytest.fixture
def resources(factory):
    return AudioResources(factory=factory)
