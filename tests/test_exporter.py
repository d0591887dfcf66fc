"""Tests for the end-to-end export pipeline."""
from __future__ import annotations

import json
import re

import pytest

from quiz_whiz.compiler import CompileError
from quiz_whiz.config import Settings
from quiz_whiz.exporter import PACKAGING_PROGRESS, export_quiz, parse_export_request
from quiz_whiz.models import ArtifactConfig, AudioMode, Language

from conftest import FakeTTS, payload_for


class TestExportQuiz:
    @pytest.mark.asyncio
    async def test_none_mode_skips_narration(self, sample_questions):
        events = []
        tts = FakeTTS()
        result = await export_quiz(
            sample_questions, ArtifactConfig(topic="Planets"), tts,
            lambda p, m: events.append((p, m)),
        )
        assert tts.synthesize_called == 0
        assert result.narration is None
        assert result.filename == "khelega_quiz_Planets.html"
        assert [p for p, _ in events] == [0, 90, PACKAGING_PROGRESS, 100]
        assert events[-1][1] == "Download complete!"

    @pytest.mark.asyncio
    async def test_high_mode_progress_band(self, sample_questions):
        events = []
        config = ArtifactConfig(topic="Planets", audio_mode=AudioMode.HIGH)
        result = await export_quiz(sample_questions, config, FakeTTS(),
                                   lambda p, m: events.append((p, m)))
        progress = [p for p, _ in events]
        assert progress == sorted(progress)
        assert progress[0] == 0
        assert progress[-1] == 100
        narration = [p for p, m in events if m.startswith("Generating audio")]
        assert narration
        assert all(60 <= p <= 90 for p in narration)
        assert narration[-1] == 90
        assert result.narration[0].question_audio == payload_for(sample_questions[0].question)

        html = result.artifact.decode("utf-8")
        body = re.search(r'id="quiz-payload">(.*?)</script>', html, re.S).group(1)
        assert len(json.loads(body)["narration"]["records"]) == 3

    @pytest.mark.asyncio
    async def test_custom_band_and_prefix(self, sample_questions):
        events = []
        config = ArtifactConfig(topic="", audio_mode=AudioMode.HIGH)
        result = await export_quiz(sample_questions, config, FakeTTS(),
                                   lambda p, m: events.append(p),
                                   prefix="demo", narration_band=(10, 50))
        assert result.filename == "demo_image_based_quiz.html"
        assert 10 in events
        assert 50 in events
        assert all(not 50 < p < PACKAGING_PROGRESS for p in events)

    @pytest.mark.asyncio
    async def test_high_tolerates_failures(self, sample_questions):
        config = ArtifactConfig(topic="t", audio_mode=AudioMode.HIGH)
        result = await export_quiz(sample_questions, config, FakeTTS(fail={"Mars"}))
        assert result.narration[0].options_audio[1] == ""

    @pytest.mark.asyncio
    async def test_empty_questions(self):
        with pytest.raises(CompileError):
            await export_quiz([], ArtifactConfig(topic="x"))

    @pytest.mark.asyncio
    async def test_high_without_provider(self, sample_questions):
        with pytest.raises(CompileError):
            await export_quiz(sample_questions, ArtifactConfig(topic="x", audio_mode=AudioMode.HIGH))


class TestParseExportRequest:
    def test_defaults_from_settings(self, sample_questions):
        settings = Settings(default_theme="forest", default_audio_mode="standard",
                            default_language="Hindi")
        body = {"questions": [q.to_dict() for q in sample_questions]}
        questions, config = parse_export_request(body, settings)
        assert questions == sample_questions
        assert config.theme == "forest"
        assert config.audio_mode is AudioMode.STANDARD
        assert config.language is Language.HINDI
        assert config.difficulty == "Medium"
        assert config.topic == ""

    def test_camel_case_keys(self):
        body = {"questions": [], "audioMode": "high", "backgroundImage": "data:x", "topic": "T"}
        _, config = parse_export_request(body, Settings())
        assert config.audio_mode is AudioMode.HIGH
        assert config.background_image == "data:x"

    @pytest.mark.parametrize("body", [
        {"questions": "nope"},
        {"questions": [{"question": "q"}]},
        {"questions": [], "theme": "neon"},
        {"questions": [], "language": "French"},
        {"questions": [], "audio_mode": "loud"},
    ])
    def test_rejects(self, body):
        with pytest.raises(ValueError):
            parse_export_request(body, Settings())
