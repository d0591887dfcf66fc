"""Compile a finished quiz into one self-contained, offline-playable HTML file.

The artifact is modelled as a small document tree (style, data and logic
sections) and only rendered to text at the end through a Jinja2 template
with autoescaping on. Quiz data travels as a JSON data block, never spliced
into script source. The narration driver is a strategy picked once here
from the audio mode; the emitted program contains only that driver.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from quiz_whiz.markup import clean_markup
from quiz_whiz.models import (
    ArtifactConfig,
    AudioMode,
    FragmentKind,
    Language,
    NarrationRecord,
    QuizQuestion,
)
from quiz_whiz.narration import SPEECH_LANG, flatten_fragments, options_intro
from quiz_whiz.pcm import SAMPLE_RATE
from quiz_whiz.session import FEEDBACK_BANDS
from quiz_whiz.themes import PLAIN_THEMES, THEMES, all_themes_css

log = logging.getLogger("quiz_whiz.compiler")

RUNTIME_DIR = Path(__file__).parent / "runtime"
TEMPLATE_NAME = "artifact.html.j2"
FONT_HREF = "https://fonts.googleapis.com/css2?family=Poppins:wght@400;500;600;700&display=swap"

DEFAULT_PREFIX = "khelega_quiz"
DEFAULT_TOPIC = "image_based_quiz"
_UNSAFE_FILENAME_RE = re.compile(r'[\s/\\?%*:|"<>]')

# User-facing text inside the artifact
ARTIFACT_COPY = {
    "titlePrefix": "Quiz: ",
    "meta": "Bhasha: {language} | Kathinai: {difficulty}",
    "offlineNote": "Yeh ek offline quiz hai. Jab taiyyar ho, start dabayein.",
    "start": "Quiz Shuru Karein",
    "questionLabel": "Sawal",
    "score": "Score",
    "back": "Peeche",
    "next": "Agla Sawal",
    "finish": "Quiz Khatm Karein",
    "explanation": "Vyakaran:",
    "done": "Quiz Pura Hua!",
    "yourScore": "Aapka score hai",
    "playAgain": "Phir Se Khelein",
    "reviewShow": "Jawab Review Karein",
    "reviewHide": "Review Chhupayein",
    "reviewTitle": "Jawabon Ka Review",
    "reviewPrefix": "S",
    "answer": "Jawab:",
    "endQuizLabel": "Quiz band karein",
    "speakLabel": "Sawal padhkar sunayein",
    "themeLabel": "Theme badlein",
    "themeTitle": "Ek Theme Chunein",
    "themeClose": "Theme selection band karein",
}


class CompileError(ValueError):
    """The inputs cannot produce a working artifact."""


@dataclass(frozen=True)
class NarrationDriver:
    mode: AudioMode
    script_name: str | None

    def script(self) -> str | None:
        if self.script_name is None:
            return None
        return _read_runtime(self.script_name)


DRIVERS = {
    AudioMode.NONE: NarrationDriver(AudioMode.NONE, None),
    AudioMode.STANDARD: NarrationDriver(AudioMode.STANDARD, "narration_standard.js"),
    AudioMode.HIGH: NarrationDriver(AudioMode.HIGH, "narration_high.js"),
}


@dataclass
class StyleSection:
    blocks: list[str]
    font_href: str | None = FONT_HREF


@dataclass
class DataSection:
    payload: dict


@dataclass
class LogicSection:
    driver: NarrationDriver
    runtime_script: str

    @property
    def driver_script(self) -> str | None:
        return self.driver.script()


@dataclass
class ArtifactDocument:
    title: str
    html_lang: str
    theme: str
    style: StyleSection
    data: DataSection
    logic: LogicSection
    themes: list[dict] = field(default_factory=list)

    @property
    def has_background(self) -> bool:
        return bool(self.data.payload["meta"].get("backgroundImage"))

    def render(self) -> str:
        template = _environment().get_template(TEMPLATE_NAME)
        return template.render(
            title=self.title,
            html_lang=self.html_lang,
            theme=self.theme,
            style=self.style,
            data=self.data,
            logic=self.logic,
            themes=self.themes,
            copy=ARTIFACT_COPY,
            has_background=self.has_background,
        )


@lru_cache(maxsize=None)
def _read_runtime(name: str) -> str:
    return (RUNTIME_DIR / name).read_text(encoding="utf-8")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(loader=FileSystemLoader(str(RUNTIME_DIR)), autoescape=True)


def _validate(
    questions: Sequence[QuizQuestion] | None,
    config: ArtifactConfig,
    narration: Sequence[NarrationRecord] | None,
) -> None:
    if not questions:
        raise CompileError("No questions to package; refusing to build an empty quiz")
    if config.theme not in THEMES:
        raise CompileError(f"Unknown theme: {config.theme!r}")
    if AudioMode(config.audio_mode) is AudioMode.HIGH:
        if narration is None:
            raise CompileError("High-quality audio needs narration records")
        if len(narration) != len(questions):
            raise CompileError(
                f"Got {len(narration)} narration records for {len(questions)} questions"
            )


def build_payload(
    questions: Sequence[QuizQuestion],
    config: ArtifactConfig,
    narration: Sequence[NarrationRecord] | None,
) -> dict:
    """Everything the embedded program reads at replay time, as plain JSON data."""
    language = Language(config.language)
    mode = AudioMode(config.audio_mode)
    payload: dict = {
        "meta": {
            "topic": config.topic,
            "language": language.value,
            "difficulty": str(config.difficulty),
            "theme": config.theme,
            "audioMode": mode.value,
            "backgroundImage": config.background_image or None,
        },
        "questions": [
            {
                # options and correctAnswer stay byte-identical; they are compared as strings
                "question": clean_markup(q.question),
                "options": list(q.options),
                "correctAnswer": q.correct_answer,
                "explanation": clean_markup(q.explanation),
            }
            for q in questions
        ],
        "themes": [{"key": t.key, "name": t.name} for t in THEMES.values()],
        "plainThemes": sorted(PLAIN_THEMES),
        "copy": ARTIFACT_COPY,
        "feedbackBands": [{"min": m, "message": msg} for m, msg in FEEDBACK_BANDS],
    }
    if mode is AudioMode.STANDARD:
        payload["speech"] = {
            "introText": options_intro(language),
            "lang": SPEECH_LANG[language],
            "questions": _spoken_texts(questions, language),
        }
    elif mode is AudioMode.HIGH:
        payload["narration"] = {
            "sampleRate": SAMPLE_RATE,
            "channels": 1,
            "records": [r.to_dict() for r in narration],
        }
    return payload


def _spoken_texts(questions: Sequence[QuizQuestion], language: Language) -> list[dict]:
    # tags removed from the raw text, not the escaped display markup
    spoken = [{"question": "", "options": [""] * len(q.options)} for q in questions]
    for fragment in flatten_fragments(questions, language):
        entry = spoken[fragment.question_index]
        if fragment.kind is FragmentKind.QUESTION:
            entry["question"] = fragment.text
        elif fragment.kind is FragmentKind.OPTION:
            entry["options"][fragment.position] = fragment.text
    return spoken


def build_document(
    questions: Sequence[QuizQuestion],
    config: ArtifactConfig,
    narration: Sequence[NarrationRecord] | None = None,
) -> ArtifactDocument:
    _validate(questions, config, narration)
    language = Language(config.language)
    return ArtifactDocument(
        title=f"{ARTIFACT_COPY['titlePrefix']}{config.topic}",
        html_lang="hi" if language is Language.HINDI else "en",
        theme=config.theme,
        style=StyleSection(blocks=[all_themes_css(), _read_runtime("base.css")]),
        data=DataSection(payload=build_payload(questions, config, narration)),
        logic=LogicSection(
            driver=DRIVERS[AudioMode(config.audio_mode)],
            runtime_script=_read_runtime("quiz.js"),
        ),
        themes=[{"key": t.key, "name": t.name} for t in THEMES.values()],
    )


def compile_artifact(
    questions: Sequence[QuizQuestion],
    topic: str,
    language: Language | str,
    difficulty: str,
    background_image: str | None,
    theme: str,
    narration: Sequence[NarrationRecord] | None = None,
    audio_mode: AudioMode | str = AudioMode.NONE,
) -> bytes:
    """Render the artifact as UTF-8 bytes. Raises CompileError on unusable input."""
    config = ArtifactConfig(
        topic=topic,
        language=Language(language),
        difficulty=difficulty,
        background_image=background_image,
        theme=theme,
        audio_mode=AudioMode(audio_mode),
    )
    document = build_document(questions, config, narration)
    html = document.render()
    log.info("Compiled %d questions (%s audio, theme %s): %d bytes",
             len(questions), config.audio_mode.value, theme, len(html))
    return html.encode("utf-8")


def artifact_filename(topic: str, prefix: str = DEFAULT_PREFIX) -> str:
    sanitized = _UNSAFE_FILENAME_RE.sub("_", topic or "")
    return f"{prefix}_{sanitized or 'quiz'}.html"


def save_artifact(artifact: bytes, filename: str, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / Path(filename).name
    path.write_bytes(artifact)
    log.info("Saved artifact to %s", path)
    return path
