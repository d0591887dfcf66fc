"""End-to-end download pipeline: optional narration, compile, name the file."""
from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quiz_whiz.compiler import (
    DEFAULT_PREFIX,
    DEFAULT_TOPIC,
    CompileError,
    artifact_filename,
    compile_artifact,
)
from quiz_whiz.models import ArtifactConfig, AudioMode, Language, NarrationRecord, QuizQuestion
from quiz_whiz.narration import synthesize_all
from quiz_whiz.themes import THEMES

if TYPE_CHECKING:
    from quiz_whiz.config import Settings
    from quiz_whiz.providers.base import TTSProvider

log = logging.getLogger("quiz_whiz.export")

# on_progress(percent 0..100, message)
ProgressReporter = Callable[[int, str], None]

PACKAGING_PROGRESS = 95


@dataclass
class ExportResult:
    filename: str
    artifact: bytes
    narration: list[NarrationRecord] | None = None


async def export_quiz(
    questions: Sequence[QuizQuestion],
    config: ArtifactConfig,
    tts: TTSProvider | None = None,
    on_progress: ProgressReporter | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
    narration_band: tuple[int, int] = (60, 90),
) -> ExportResult:
    """Build the downloadable artifact for a finished quiz.

    Narration synthesis (high audio mode only) is reported inside
    ``narration_band`` of the overall 0..100 progress; other modes jump
    straight to the end of the band.
    """
    last = -1

    def report(percent: int, message: str) -> None:
        nonlocal last
        percent = max(last, percent)
        last = percent
        if on_progress is not None:
            on_progress(percent, message)

    if not questions:
        raise CompileError("No questions were generated for the download")

    topic = config.topic or DEFAULT_TOPIC
    mode = AudioMode(config.audio_mode)
    band_start, band_end = narration_band
    report(0, "Preparing your offline quiz...")

    narration = None
    if mode is AudioMode.HIGH:
        if tts is None:
            raise CompileError("High-quality audio needs a speech provider")
        report(band_start, "Preparing high-quality audio narration...")

        def on_fraction(p: float) -> None:
            report(
                band_start + math.floor(p * (band_end - band_start)),
                f"Generating audio... ({math.floor(p * 100)}%)",
            )

        narration = await synthesize_all(questions, config.language, tts, on_fraction)
    else:
        report(band_end, "Skipping narration")

    report(PACKAGING_PROGRESS, "Packaging your offline file...")
    artifact = compile_artifact(
        questions,
        topic,
        config.language,
        config.difficulty,
        config.background_image,
        config.theme,
        narration,
        mode,
    )
    filename = artifact_filename(topic, prefix)
    report(100, "Download complete!")
    log.info("Exported %s (%d questions, %s audio)", filename, len(questions), mode.value)
    return ExportResult(filename=filename, artifact=artifact, narration=narration)


def parse_export_request(body: dict, settings: Settings) -> tuple[list[QuizQuestion], ArtifactConfig]:
    """Read questions and artifact options from a JSON body, filling in defaults.

    Raises ValueError on malformed questions or unknown language/theme/audio mode.
    """
    raw_questions = body.get("questions") or []
    if not isinstance(raw_questions, list):
        raise ValueError("questions must be a list")
    questions = [QuizQuestion.from_dict(q) for q in raw_questions]

    theme = body.get("theme") or settings.default_theme
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme!r}")
    config = ArtifactConfig(
        topic=str(body.get("topic") or ""),
        language=Language(body.get("language") or settings.default_language),
        difficulty=str(body.get("difficulty") or settings.default_difficulty),
        background_image=body.get("background_image") or body.get("backgroundImage") or None,
        theme=theme,
        audio_mode=AudioMode(body.get("audio_mode") or body.get("audioMode") or settings.default_audio_mode),
    )
    return questions, config
