"""Fan out speech synthesis for a whole quiz and regroup it per question."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quiz_whiz.markup import strip_markup
from quiz_whiz.models import FragmentKind, Language, NarrationRecord, QuizQuestion

if TYPE_CHECKING:
    from quiz_whiz.providers.base import TTSProvider

log = logging.getLogger("quiz_whiz.narration")

OPTIONS_INTRO = {
    Language.ENGLISH: "Aapke options hain:",
    Language.HINDI: "आपके विकल्प यहाँ हैं:",
}

SPEECH_LANG = {
    Language.ENGLISH: "en-US",
    Language.HINDI: "hi-IN",
}

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class Fragment:
    question_index: int
    kind: FragmentKind
    text: str
    position: int | None = None  # option position for OPTION fragments

    def label(self) -> str:
        suffix = f"[{self.position}]" if self.position is not None else ""
        return f"q{self.question_index}/{self.kind.value}{suffix}"


def options_intro(language: Language | str) -> str:
    return OPTIONS_INTRO[Language(language)]


def flatten_fragments(questions: Sequence[QuizQuestion], language: Language | str) -> list[Fragment]:
    """Question text, lead-in phrase, then each option, for every question in order."""
    intro = options_intro(language)
    fragments: list[Fragment] = []
    for qi, q in enumerate(questions):
        fragments.append(Fragment(qi, FragmentKind.QUESTION, strip_markup(q.question)))
        fragments.append(Fragment(qi, FragmentKind.INTRO, intro))
        for pos, option in enumerate(q.options):
            fragments.append(Fragment(qi, FragmentKind.OPTION, strip_markup(option), pos))
    return fragments


def assemble_records(
    questions: Sequence[QuizQuestion],
    results: Sequence[tuple[Fragment, str]],
) -> list[NarrationRecord]:
    """Regroup (fragment, audio) pairs by question index and kind.

    Independent of the order of ``results``; anything missing stays empty.
    """
    records = [
        NarrationRecord(options_audio=[""] * len(q.options))
        for q in questions
    ]
    for fragment, audio in results:
        record = records[fragment.question_index]
        if fragment.kind is FragmentKind.QUESTION:
            record.question_audio = audio
        elif fragment.kind is FragmentKind.INTRO:
            record.options_intro_audio = audio
        else:
            record.options_audio[fragment.position] = audio
    return records


async def synthesize_all(
    questions: Sequence[QuizQuestion],
    language: Language | str,
    tts: TTSProvider,
    on_progress: ProgressCallback | None = None,
) -> list[NarrationRecord]:
    """Synthesize every fragment of every question concurrently.

    A failed fragment becomes an empty payload; it never aborts the batch.
    ``on_progress`` receives completed/total after each request settles,
    success or failure, reaching exactly 1.0 at the end.
    """
    fragments = flatten_fragments(questions, language)
    total = len(fragments)
    completed = 0
    failed = 0

    def report(value: float) -> None:
        if on_progress is None:
            return
        try:
            on_progress(value)
        except Exception as e:
            log.warning("Progress callback raised: %s", e)

    report(0.0)
    if total == 0:
        report(1.0)
        return []

    async def run(fragment: Fragment) -> tuple[Fragment, str]:
        nonlocal completed, failed
        audio = ""
        if fragment.text.strip():
            try:
                audio = await tts.synthesize(fragment.text) or ""
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("TTS failed for %s (%.40r): %s", fragment.label(), fragment.text, e)
        if not audio:
            failed += 1
        completed += 1
        report(completed / total)
        return fragment, audio

    log.info("Synthesizing %d fragments for %d questions with %s",
             total, len(questions), tts.name())
    results = await asyncio.gather(*(run(f) for f in fragments))
    if failed:
        log.warning("%d/%d fragments have no audio", failed, total)
    return assemble_records(questions, results)
