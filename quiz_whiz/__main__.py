"""CLI entry point for quiz-whiz.

Usage:
  python -m quiz_whiz serve [--port PORT] [--host HOST]
  python -m quiz_whiz stop
  python -m quiz_whiz restart [--port PORT]
  python -m quiz_whiz status
  python -m quiz_whiz export QUESTIONS.json [--topic T] [--language L] [--difficulty D]
                             [--theme T] [--audio none|standard|high]
                             [--background IMAGE] [--out DIR]
  python -m quiz_whiz play QUESTIONS.json [--narrate] [--language L]
"""
from __future__ import annotations

import asyncio
import base64
import json
import mimetypes
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "export":
        _export(args[1:])
    elif command == "play":
        _play(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, export, play")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _positional(args: list[str]) -> str | None:
    """First argument that is neither a flag nor a flag's value."""
    skip = False
    for a in args:
        if skip:
            skip = False
            continue
        if a.startswith("--"):
            skip = a not in ("--narrate",)
            continue
        return a
    return None


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _write_pid() -> None:
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        PID_FILE.unlink(missing_ok=True)
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        PID_FILE.unlink(missing_ok=True)
        return False


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    _write_pid()

    print(f"Starting Quiz Whiz on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "quiz_whiz.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        _remove_pid()


def _load_questions(path: str | None):
    from quiz_whiz.models import QuizQuestion

    if path is None:
        print("Missing questions file.")
        sys.exit(1)
    src = Path(path)
    if not src.exists():
        print(f"File not found: {src}")
        sys.exit(1)
    raw = json.loads(src.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("questions", [])
    try:
        return [QuizQuestion.from_dict(q) for q in raw]
    except ValueError as e:
        print(f"Invalid questions file: {e}")
        sys.exit(1)


def _image_data_uri(path: str) -> str:
    mime = mimetypes.guess_type(path)[0] or "image/png"
    data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


def _export(args: list[str]):
    from quiz_whiz.compiler import CompileError, save_artifact
    from quiz_whiz.config import load_settings
    from quiz_whiz.exporter import export_quiz, parse_export_request
    from quiz_whiz.models import AudioMode
    from quiz_whiz.providers.base import create_tts_provider

    settings = load_settings()
    questions = _load_questions(_positional(args))
    background = _parse_flag(args, "--background", None)

    body = {
        "topic": _parse_flag(args, "--topic", ""),
        "language": _parse_flag(args, "--language", None),
        "difficulty": _parse_flag(args, "--difficulty", None),
        "theme": _parse_flag(args, "--theme", None),
        "audio_mode": _parse_flag(args, "--audio", None),
        "background_image": _image_data_uri(background) if background else None,
    }
    try:
        _, config = parse_export_request(body, settings)
    except ValueError as e:
        print(f"Invalid option: {e}")
        sys.exit(1)

    tts = None
    if config.audio_mode is AudioMode.HIGH:
        tts = create_tts_provider(settings)
        print(f"Synthesizing narration with {tts.name()}...")

    def on_progress(percent: int, message: str) -> None:
        print(f"  [{percent:3d}%] {message}")

    try:
        result = asyncio.run(export_quiz(
            questions, config, tts, on_progress,
            prefix=settings.app_prefix,
            narration_band=(settings.narration_progress_start, settings.narration_progress_end),
        ))
    except CompileError as e:
        print(f"Export failed: {e}")
        sys.exit(1)

    out = _parse_flag(args, "--out", None)
    directory = Path(out) if out else settings.output_full_path
    path = save_artifact(result.artifact, result.filename, directory)
    print(f"\nSaved {path} ({len(result.artifact)} bytes)")


def _play(args: list[str]):
    questions = _load_questions(_positional(args))
    if not questions:
        print("No questions to play.")
        sys.exit(1)
    try:
        asyncio.run(_play_async(questions, args))
    except KeyboardInterrupt:
        print()


async def _play_async(questions, args: list[str]):
    from quiz_whiz.config import load_settings, save_settings
    from quiz_whiz.effects import SoundEffects
    from quiz_whiz.markup import strip_markup
    from quiz_whiz.models import Language
    from quiz_whiz.narration import synthesize_all
    from quiz_whiz.player import AudioPlayer, AudioResources, narrate
    from quiz_whiz.providers.base import create_tts_provider
    from quiz_whiz.session import OptionState, Phase, PlaybackSession

    settings = load_settings()
    resources = AudioResources(muted=settings.muted)
    effects = SoundEffects(resources)
    speaker = AudioPlayer(resources)
    loop = asyncio.get_running_loop()

    records = None
    if "--narrate" in args:
        language = Language(_parse_flag(args, "--language", settings.default_language))
        tts = create_tts_provider(settings)
        print(f"Synthesizing narration with {tts.name()}...")
        records = await synthesize_all(
            questions, language, tts,
            lambda p: print(f"\r  {int(p * 100):3d}%", end="", flush=True),
        )
        print()

    marks = {
        OptionState.OPEN: " ",
        OptionState.CORRECT: "+",
        OptionState.WRONG: "x",
        OptionState.DIM: " ",
    }
    session = PlaybackSession(questions)
    token = None
    narration_task = None

    def stop_narration():
        if token is not None:
            token.cancel()

    async def ask(prompt: str) -> str:
        return (await loop.run_in_executor(None, input, prompt)).strip().lower()

    while True:
        if session.phase is Phase.SETUP:
            print(f"\n{len(questions)} questions. Commands: number to answer, n next, b back, "
                  "s speak, m mute, e end, q quit")
            if await ask("Press Enter to start ") == "q":
                break
            session.start()
            continue

        if session.phase is Phase.RESULTS:
            stop_narration()
            print(f"\nScore: {session.score}/{session.total} ({session.percentage}%)")
            print(session.feedback)
            choice = await ask("[r]eview, [p]lay again, [q]uit: ")
            if choice == "r":
                if session.toggle_review():
                    for item in session.review():
                        print(f"  Q{item['number']}. {strip_markup(item['question'])}")
                        print(f"      Answer: {item['correct_answer']}"
                              f" (you: {item['your_answer'] or '-'})")
                        print(f"      {strip_markup(item['explanation'])}")
            elif choice == "p":
                session.play_again()
            elif choice == "q":
                break
            continue

        q = session.question
        print(f"\nQuestion {session.current + 1}/{session.total}   Score: {session.score}")
        print(strip_markup(q.question))
        for i, (option, state) in enumerate(zip(q.options, session.option_states())):
            print(f"  [{marks[state]}] {i + 1}. {option}")
        if session.phase is Phase.ANSWERED:
            print(f"  {strip_markup(q.explanation)}")

        choice = await ask("> ")
        can_speak = session.phase is Phase.QUESTION and not session.is_locked
        if choice == "s" and records is not None and can_speak:
            stop_narration()
            if narration_task is not None:
                await narration_task
            token = speaker.cancellation_token()
            narration_task = asyncio.create_task(narrate(speaker, records[session.current], token))
        elif choice == "m":
            settings.muted = resources.toggle_mute()
            save_settings(settings)
            print("Muted." if settings.muted else "Unmuted.")
        elif choice.isdigit() and 1 <= int(choice) <= len(q.options):
            stop_narration()
            effects.play_select()
            if session.select(int(choice) - 1):
                if session.answers[session.current] == q.correct_answer:
                    effects.play_correct()
                else:
                    effects.play_incorrect()
        elif choice == "n" and session.phase is Phase.ANSWERED:
            stop_narration()
            session.next()
        elif choice == "b" and session.can_go_back:
            stop_narration()
            session.back()
        elif choice == "e":
            stop_narration()
            session.end()
        elif choice == "q":
            break

    stop_narration()
    if narration_task is not None:
        await narration_task
    await effects.drain()
    resources.reset()


if __name__ == "__main__":
    main()
