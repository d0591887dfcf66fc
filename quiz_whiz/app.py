"""FastAPI application: settings, themes, and offline quiz export."""
from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from urllib.parse import quote

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from quiz_whiz.config import Settings, load_settings, save_settings
from quiz_whiz.exporter import ExportResult, export_quiz, parse_export_request
from quiz_whiz.models import AudioMode
from quiz_whiz.providers.base import create_tts_provider
from quiz_whiz.themes import THEMES

app = FastAPI(title="Quiz Whiz")

_settings: Settings | None = None
_exports: dict[str, tuple[float, ExportResult]] = {}  # download_id -> (stored at, artifact)
_export_tasks: set[asyncio.Task] = set()

_log = logging.getLogger("quiz_whiz.export")

EXPORT_TTL = 600  # seconds an unclaimed artifact is kept
MAX_PENDING_EXPORTS = 8
_clock = time.monotonic


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_tts():
    return create_tts_provider(get_settings())


@app.on_event("startup")
async def startup():
    global _settings
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()


@app.on_event("shutdown")
async def shutdown():
    for t in list(_export_tasks):
        t.cancel()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()


# ── API: Themes ───────────────────────────────────────────────────────────

@app.get("/api/themes")
async def api_themes():
    return [{"key": t.key, "name": t.name} for t in THEMES.values()]


# ── API: Export ───────────────────────────────────────────────────────────

@app.post("/api/export")
async def api_export(request: Request):
    """Build an offline quiz, streaming progress as server-sent events.

    The final event carries a ``download_id`` for ``GET /api/export/{id}``.
    """
    body = await request.json()
    s = get_settings()
    try:
        questions, config = parse_export_request(body, s)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not questions:
        raise HTTPException(400, "No questions to export")

    tts = None
    if config.audio_mode is AudioMode.HIGH:
        try:
            tts = _get_tts()
        except Exception as e:
            raise HTTPException(400, f"Speech provider unavailable: {e}")

    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(percent: int, message: str) -> None:
        queue.put_nowait({"progress": percent, "message": message})

    async def run():
        try:
            result = await export_quiz(
                questions, config, tts, on_progress,
                prefix=s.app_prefix,
                narration_band=(s.narration_progress_start, s.narration_progress_end),
            )
            download_id = _store_export(result)
            queue.put_nowait({
                "done": True,
                "download_id": download_id,
                "filename": result.filename,
            })
        except asyncio.CancelledError:
            raise
        except Exception as e:
            _log.warning("Export failed: %s", e)
            queue.put_nowait({"error": str(e)})
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    _export_tasks.add(task)
    task.add_done_callback(_export_tasks.discard)

    async def stream():
        while True:
            event = await queue.get()
            if event is None:
                break
            yield f"data: {json.dumps(event)}\n\n"

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def _store_export(result: ExportResult) -> str:
    """Keep a finished artifact for one download, evicting stale and excess entries."""
    now = _clock()
    for key, (stored_at, _) in list(_exports.items()):
        if now - stored_at > EXPORT_TTL:
            del _exports[key]
    while len(_exports) >= MAX_PENDING_EXPORTS:
        oldest = next(iter(_exports))
        _log.info("Dropping unclaimed export %s", oldest)
        del _exports[oldest]
    download_id = uuid.uuid4().hex
    _exports[download_id] = (now, result)
    return download_id


def _take_export(download_id: str) -> ExportResult | None:
    entry = _exports.pop(download_id, None)
    if entry is None:
        return None
    stored_at, result = entry
    if _clock() - stored_at > EXPORT_TTL:
        return None
    return result


def _content_disposition(filename: str) -> str:
    fallback = "".join(c if c.isascii() and c not in '"\\' else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@app.get("/api/export/{download_id}")
async def api_download(download_id: str):
    result = _take_export(download_id)
    if result is None:
        raise HTTPException(404, "Unknown, expired or already downloaded export")
    return Response(
        content=result.artifact,
        media_type="text/html; charset=utf-8",
        headers={"Content-Disposition": _content_disposition(result.filename)},
    )
