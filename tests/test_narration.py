"""Tests for the parallel narration orchestrator."""
from __future__ import annotations

import asyncio

import pytest

from quiz_whiz.models import FragmentKind, Language, QuizQuestion
from quiz_whiz.narration import (
    Fragment,
    assemble_records,
    flatten_fragments,
    options_intro,
    synthesize_all,
)

from conftest import FakeTTS, payload_for


class TestFlattenFragments:
    def test_order_and_count(self, sample_questions):
        frags = flatten_fragments(sample_questions, Language.ENGLISH)
        assert len(frags) == sum(2 + len(q.options) for q in sample_questions)
        first = frags[:6]
        assert [f.kind for f in first] == [
            FragmentKind.QUESTION, FragmentKind.INTRO,
            FragmentKind.OPTION, FragmentKind.OPTION, FragmentKind.OPTION, FragmentKind.OPTION,
        ]
        assert [f.position for f in first[2:]] == [0, 1, 2, 3]

    def test_markup_stripped(self, sample_questions):
        frags = flatten_fragments(sample_questions, Language.ENGLISH)
        q2 = [f for f in frags if f.question_index == 1 and f.kind is FragmentKind.QUESTION][0]
        assert q2.text == "H2O is the formula for what?"

    def test_intro_by_language(self):
        assert options_intro(Language.ENGLISH) == "Aapke options hain:"
        assert options_intro("Hindi") == "आपके विकल्प यहाँ हैं:"

    def test_label(self):
        assert Fragment(2, FragmentKind.OPTION, "x", 3).label() == "q2/option[3]"


class TestAssembleRecords:
    def test_order_independent(self, sample_questions):
        frags = flatten_fragments(sample_questions, Language.ENGLISH)
        pairs = [(f, f.label()) for f in frags]
        forward = assemble_records(sample_questions, pairs)
        backward = assemble_records(sample_questions, list(reversed(pairs)))
        assert forward == backward
        assert forward[1].options_audio[2] == "q1/option[2]"

    def test_missing_stays_empty(self, sample_questions):
        records = assemble_records(sample_questions, [])
        assert all(r.question_audio == "" for r in records)
        assert [len(r.options_audio) for r in records] == [4, 3, 4]


class TestSynthesizeAll:
    @pytest.mark.asyncio
    async def test_all_succeed(self, sample_questions):
        tts = FakeTTS()
        records = await synthesize_all(sample_questions, Language.ENGLISH, tts)
        assert len(records) == 3
        assert records[0].question_audio == payload_for(sample_questions[0].question)
        assert records[0].options_intro_audio == payload_for("Aapke options hain:")
        assert records[2].options_audio == [payload_for(o) for o in ["5", "6", "7", "8"]]
        assert tts.synthesize_called == 13

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_shape(self, sample_questions):
        tts = FakeTTS(fail={"Mars", "Aapke options hain:"})
        records = await synthesize_all(sample_questions, Language.ENGLISH, tts)
        assert len(records) == len(sample_questions)
        assert records[0].options_audio[1] == ""
        assert records[0].options_audio[0] == payload_for("Venus")
        assert all(r.options_intro_audio == "" for r in records)
        assert records[1].question_audio != ""

    @pytest.mark.asyncio
    async def test_every_request_fails(self, sample_questions):
        texts = {f.text for f in flatten_fragments(sample_questions, Language.ENGLISH)}
        records = await synthesize_all(sample_questions, Language.ENGLISH, FakeTTS(fail=texts))
        assert len(records) == 3
        for record, q in zip(records, sample_questions):
            assert record.question_audio == ""
            assert record.options_audio == [""] * len(q.options)

    @pytest.mark.asyncio
    async def test_progress_monotonic_to_one(self, sample_questions):
        seen = []
        tts = FakeTTS(fail={"Water"})
        await synthesize_all(sample_questions, Language.ENGLISH, tts, seen.append)
        assert seen[0] == 0.0
        assert seen[-1] == 1.0
        assert seen == sorted(seen)
        assert len(seen) == 14  # initial report plus one per fragment

    @pytest.mark.asyncio
    async def test_completion_order_does_not_matter(self, sample_questions):
        delays = {"Venus": 0.03, sample_questions[2].question: 0.02, "Aapke options hain:": 0.01}
        records = await synthesize_all(sample_questions, Language.ENGLISH, FakeTTS(delays=delays))
        assert records[0].options_audio[0] == payload_for("Venus")
        assert records[2].question_audio == payload_for(sample_questions[2].question)

    @pytest.mark.asyncio
    async def test_runs_concurrently(self, sample_questions):
        frags = flatten_fragments(sample_questions, Language.ENGLISH)
        tts = FakeTTS(delays={f.text: 0.05 for f in frags})
        loop = asyncio.get_running_loop()
        started = loop.time()
        await synthesize_all(sample_questions, Language.ENGLISH, tts)
        assert loop.time() - started < 0.05 * len(frags) / 2

    @pytest.mark.asyncio
    async def test_blank_text_not_sent(self):
        questions = [QuizQuestion("Pick one", ["<br>", "B"], "B", "")]
        tts = FakeTTS()
        records = await synthesize_all(questions, Language.ENGLISH, tts)
        assert "" not in tts.texts
        assert records[0].options_audio[0] == ""
        assert records[0].options_audio[1] == payload_for("B")

    @pytest.mark.asyncio
    async def test_empty_quiz(self):
        seen = []
        records = await synthesize_all([], Language.ENGLISH, FakeTTS(), seen.append)
        assert records == []
        assert seen == [0.0, 1.0]

    @pytest.mark.asyncio
    async def test_broken_progress_callback(self, sample_questions):
        def explode(_):
            raise RuntimeError("listener gone")

        records = await synthesize_all(sample_questions, Language.ENGLISH, FakeTTS(), explode)
        assert len(records) == 3
