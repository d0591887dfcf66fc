"""Quiz playback state machine.

This is the reference model of what the exported artifact does at replay
time: Setup -> Question(i) -> Answered(i) -> ... -> Results. The runtime
script in ``runtime/quiz.js`` implements the same transitions, and reads the
feedback bands and copy defined here from the artifact's embedded data.
"""
from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from quiz_whiz.models import QuizQuestion

# (minimum percentage, message), checked top to bottom
FEEDBACK_BANDS: tuple[tuple[int, str], ...] = (
    (100, "Perfect Score! Aap toh expert hain! 🏆"),
    (80, "Shaandaar! Aapko toh sab pata hai. 🎉"),
    (50, "Bahut Achhe! Accha pradarshan. 👍"),
    (0, "Practice karte rahein! Aap kar lenge. 💪"),
)


class Phase(str, Enum):
    SETUP = "setup"
    QUESTION = "question"
    ANSWERED = "answered"
    RESULTS = "results"


class OptionState(str, Enum):
    OPEN = "open"  # selectable
    CORRECT = "correct"
    WRONG = "wrong"  # the user's incorrect pick
    DIM = "dim"


def percentage(score: int, total: int) -> int:
    if total == 0:
        return 0
    # JS Math.round semantics (half up), not banker's rounding
    return int(score / total * 100 + 0.5)


def feedback_for(pct: int) -> str:
    for minimum, message in FEEDBACK_BANDS:
        if pct >= minimum:
            return message
    return FEEDBACK_BANDS[-1][1]


class InvalidTransition(RuntimeError):
    pass


class PlaybackSession:
    def __init__(self, questions: Sequence[QuizQuestion]):
        if not questions:
            raise ValueError("A quiz needs at least one question")
        self.questions = list(questions)
        self.phase = Phase.SETUP
        self.current = 0
        self.furthest = 0
        self.score = 0
        self.answers: list[str | None] = [None] * len(self.questions)
        self.review_open = False

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def question(self) -> QuizQuestion:
        return self.questions[self.current]

    @property
    def is_locked(self) -> bool:
        """An earlier question revisited via back is review-only."""
        return self.current < self.furthest

    @property
    def can_go_back(self) -> bool:
        return self.phase is Phase.ANSWERED and self.current > 0

    @property
    def percentage(self) -> int:
        return percentage(self.score, self.total)

    @property
    def feedback(self) -> str:
        return feedback_for(self.percentage)

    def _require(self, *phases: Phase) -> None:
        if self.phase not in phases:
            raise InvalidTransition(f"Not allowed in phase {self.phase.value}")

    def _enter_question(self) -> None:
        self.phase = Phase.ANSWERED if self.answers[self.current] is not None else Phase.QUESTION

    def start(self) -> None:
        self._require(Phase.SETUP)
        self.current = 0
        self.furthest = 0
        self.score = 0
        self.answers = [None] * self.total
        self.review_open = False
        self._enter_question()

    def select(self, option_index: int) -> bool:
        """Answer the current question. Returns False if the pick was ignored."""
        self._require(Phase.QUESTION, Phase.ANSWERED)
        if self.is_locked or self.answers[self.current] is not None:
            return False
        choice = self.question.options[option_index]
        if choice == self.question.correct_answer:
            self.score += 1
        self.answers[self.current] = choice
        self.phase = Phase.ANSWERED
        return True

    def next(self) -> None:
        self._require(Phase.ANSWERED)
        self.furthest = max(self.furthest, self.current + 1)
        self.current += 1
        if self.current >= self.total:
            self.phase = Phase.RESULTS
        else:
            self._enter_question()

    def back(self) -> None:
        if not self.can_go_back:
            raise InvalidTransition("No previous question to go back to")
        self.current -= 1
        self._enter_question()

    def end(self) -> None:
        """End early; unanswered questions simply do not score."""
        self._require(Phase.QUESTION, Phase.ANSWERED)
        self.phase = Phase.RESULTS

    def toggle_review(self) -> bool:
        self._require(Phase.RESULTS)
        self.review_open = not self.review_open
        return self.review_open

    def play_again(self) -> None:
        self._require(Phase.RESULTS)
        self.phase = Phase.SETUP

    def option_states(self) -> list[OptionState]:
        selected = self.answers[self.current]
        if selected is None:
            state = OptionState.DIM if self.is_locked else OptionState.OPEN
            return [state] * len(self.question.options)
        states = []
        for option in self.question.options:
            if option == self.question.correct_answer:
                states.append(OptionState.CORRECT)
            elif option == selected:
                states.append(OptionState.WRONG)
            else:
                states.append(OptionState.DIM)
        return states

    def review(self) -> list[dict]:
        return [
            {
                "number": i + 1,
                "question": q.question,
                "correct_answer": q.correct_answer,
                "explanation": q.explanation,
                "your_answer": self.answers[i],
            }
            for i, q in enumerate(self.questions)
        ]
