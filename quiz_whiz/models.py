from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class Language(str, Enum):
    ENGLISH = "English"
    HINDI = "Hindi"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class AudioMode(str, Enum):
    NONE = "none"
    STANDARD = "standard"  # replaying device's own speech engine
    HIGH = "high"  # pre-synthesized PCM embedded in the artifact


class FragmentKind(str, Enum):
    QUESTION = "question"
    INTRO = "intro"
    OPTION = "option"


@dataclass
class QuizQuestion:
    question: str
    options: list[str]
    correct_answer: str  # must equal one of options, not re-validated here
    explanation: str

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> QuizQuestion:
        """Parse the wire form produced by the quiz generator.

        Accepts ``correctAnswer`` or ``correct_answer``. Raises ValueError on
        anything that is not a question/options/answer/explanation record.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Question must be an object, got {type(raw).__name__}")
        answer = raw.get("correctAnswer", raw.get("correct_answer"))
        missing = [k for k, v in (
            ("question", raw.get("question")),
            ("options", raw.get("options")),
            ("correctAnswer", answer),
        ) if v is None]
        if missing:
            raise ValueError(f"Question is missing {', '.join(missing)}")
        options = raw["options"]
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            raise ValueError("Question options must be a list of strings")
        return cls(
            question=str(raw["question"]),
            options=list(options),
            correct_answer=str(answer),
            explanation=str(raw.get("explanation", "")),
        )


@dataclass
class NarrationRecord:
    """Synthesized audio for one question. Empty string marks a failed fragment."""

    question_audio: str = ""
    options_intro_audio: str = ""
    options_audio: list[str] = field(default_factory=list)

    def fragments(self) -> Iterator[tuple[FragmentKind, int | None, str]]:
        """Yield (kind, option position, payload) in narration order."""
        yield FragmentKind.QUESTION, None, self.question_audio
        yield FragmentKind.INTRO, None, self.options_intro_audio
        for i, audio in enumerate(self.options_audio):
            yield FragmentKind.OPTION, i, audio

    def to_dict(self) -> dict:
        return {
            "questionAudio": self.question_audio,
            "optionsIntroAudio": self.options_intro_audio,
            "optionsAudio": list(self.options_audio),
        }

    @classmethod
    def from_dict(cls, raw: dict) -> NarrationRecord:
        return cls(
            question_audio=raw.get("questionAudio", "") or "",
            options_intro_audio=raw.get("optionsIntroAudio", "") or "",
            options_audio=[a or "" for a in raw.get("optionsAudio", [])],
        )


@dataclass
class ArtifactConfig:
    topic: str
    language: Language = Language.ENGLISH
    difficulty: str = Difficulty.MEDIUM.value  # passed through as display text
    background_image: str | None = None  # data URI
    theme: str = "light"
    audio_mode: AudioMode = AudioMode.NONE
