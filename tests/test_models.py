"""Tests for quiz and narration data models."""
from __future__ import annotations

import pytest

from quiz_whiz.models import AudioMode, FragmentKind, Language, NarrationRecord, QuizQuestion


class TestQuizQuestion:
    def test_wire_form(self):
        q = QuizQuestion("Q?", ["A", "B"], "B", "Because.")
        assert q.to_dict() == {
            "question": "Q?", "options": ["A", "B"], "correctAnswer": "B", "explanation": "Because.",
        }
        assert QuizQuestion.from_dict(q.to_dict()) == q

    def test_snake_case_answer(self):
        q = QuizQuestion.from_dict({"question": "Q", "options": ["x"], "correct_answer": "x"})
        assert q.correct_answer == "x"
        assert q.explanation == ""

    @pytest.mark.parametrize("raw", [
        "not an object",
        {"options": ["a"], "correctAnswer": "a"},
        {"question": "q", "correctAnswer": "a"},
        {"question": "q", "options": ["a"]},
        {"question": "q", "options": "a", "correctAnswer": "a"},
        {"question": "q", "options": ["a", 2], "correctAnswer": "a"},
    ])
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            QuizQuestion.from_dict(raw)


class TestNarrationRecord:
    def test_fragment_order(self):
        record = NarrationRecord("q", "i", ["o0", "o1"])
        assert list(record.fragments()) == [
            (FragmentKind.QUESTION, None, "q"),
            (FragmentKind.INTRO, None, "i"),
            (FragmentKind.OPTION, 0, "o0"),
            (FragmentKind.OPTION, 1, "o1"),
        ]

    def test_from_dict_fills_missing(self):
        record = NarrationRecord.from_dict({"optionsAudio": [None, "x"]})
        assert record.question_audio == ""
        assert record.options_audio == ["", "x"]
        assert NarrationRecord.from_dict(record.to_dict()) == record


class TestEnums:
    def test_values(self):
        assert Language("Hindi") is Language.HINDI
        assert [m.value for m in AudioMode] == ["none", "standard", "high"]
        with pytest.raises(ValueError):
            AudioMode("medium")
