"""FastAPI application over the content store and study sessions."""
from __future__ import annotations

import itertools
import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from phrase_trainer.audio import AssetCache
from phrase_trainer.categories import CATEGORIES
from phrase_trainer.config import Settings, load_settings
from phrase_trainer.content import ContentStore
from phrase_trainer.db import Database
from phrase_trainer.errors import ContentSourceError, OfflineNoCacheError, SessionStateError
from phrase_trainer.models import Rating
from phrase_trainer.providers.progress_sqlite import SqliteActivityLog, SqliteProgressStore
from phrase_trainer.providers.reachability import HttpReachability
from phrase_trainer.session import SessionManager, SessionState

app = FastAPI(title="Phrase Trainer")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_content: ContentStore | None = None
_assets: AssetCache | None = None
_sessions: dict[int, SessionManager] = {}
_session_ids = itertools.count(1)
MAX_OPEN_SESSIONS = 50  # oldest sessions are closed beyond this
_session_log = logging.getLogger("phrase_trainer.session")


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_content() -> ContentStore:
    assert _content is not None
    return _content


def get_assets() -> AssetCache:
    assert _assets is not None
    return _assets


def build_content_store(db: Database, settings: Settings) -> ContentStore:
    return ContentStore(
        db,
        settings.content_url,
        HttpReachability(settings.probe_url, timeout=settings.reachability_timeout_seconds),
        timeout=settings.fetch_timeout_seconds,
    )


@app.on_event("startup")
async def startup():
    global _db, _settings, _content, _assets
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    _content = build_content_store(_db, _settings)
    _assets = AssetCache(
        _db, _settings.audio_cache_full_path, max_bytes=_settings.audio_cache_max_bytes
    )


@app.on_event("shutdown")
async def shutdown():
    for session in _sessions.values():
        session.close()
    if _content:
        _content.close()
    if _db:
        _db.close()


@app.exception_handler(OfflineNoCacheError)
async def offline_handler(request: Request, exc: OfflineNoCacheError):
    return JSONResponse(status_code=503, content={"error": exc.code, "detail": str(exc)})


@app.exception_handler(ContentSourceError)
async def content_error_handler(request: Request, exc: ContentSourceError):
    return JSONResponse(status_code=502, content={"error": exc.code, "detail": str(exc)})


@app.exception_handler(SessionStateError)
async def session_state_handler(request: Request, exc: SessionStateError):
    return JSONResponse(status_code=409, content={"error": exc.code, "detail": str(exc)})


# ── API: Content ──────────────────────────────────────────────────────────

@app.get("/api/categories")
async def api_categories():
    content = get_content()
    await content.load()
    counts = content.categories()
    return [
        {"id": slug, "label": label, "count": counts.get(slug, 0)}
        for slug, label in CATEGORIES.items()
    ]


@app.get("/api/items")
async def api_items(category: str | None = None):
    content = get_content()
    if category:
        items = await content.items_for_category(category)
    else:
        await content.load()
        items = content.all_items()
    return [i.to_dict() for i in items]


@app.get("/api/items/{code}")
async def api_item(code: str):
    item = await get_content().get_by_code(code)
    if item is None:
        raise HTTPException(404, f"No item with code {code}")
    return item.to_dict()


@app.post("/api/content/refresh")
async def api_refresh():
    generation = await get_content().refresh()
    return {"item_count": len(generation.items), "fetched_at": generation.fetched_at}


# ── API: Sessions ─────────────────────────────────────────────────────────

def _get_session(session_id: int) -> SessionManager:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    return session


@app.post("/api/session/start")
async def api_session_start(request: Request):
    body = await request.json()
    category = body.get("category")
    if not category:
        raise HTTPException(422, "category is required")
    s = get_settings()
    db = get_db()
    session = SessionManager(
        get_content(),
        SqliteProgressStore(db),
        user_id=body.get("user_id") or s.user_id,
        category=category,
        activity=SqliteActivityLog(db),
        session_size=s.effective_session_size,
        due_after_hours=s.due_after_hours,
    )
    state = await session.start()
    if state is SessionState.LOAD_ERROR:
        code = getattr(session.error, "code", "LOAD_ERROR")
        return JSONResponse(
            status_code=503,
            content={"error": code, "detail": str(session.error), "session_id": None},
        )
    session_id = next(_session_ids)
    _sessions[session_id] = session
    while len(_sessions) > MAX_OPEN_SESSIONS:
        oldest = next(iter(_sessions))
        _sessions.pop(oldest).close()
        _session_log.info("Closed abandoned session %d", oldest)
    return {"session_id": session_id, **session.snapshot()}


@app.post("/api/session/{session_id}/flip")
async def api_session_flip(session_id: int):
    session = _get_session(session_id)
    session.flip()
    return session.snapshot()


@app.post("/api/session/{session_id}/skip")
async def api_session_skip(session_id: int):
    session = _get_session(session_id)
    session.skip()
    return session.snapshot()


@app.post("/api/session/{session_id}/restart")
async def api_session_restart(session_id: int):
    session = _get_session(session_id)
    session.restart()
    return session.snapshot()


@app.post("/api/session/{session_id}/rate")
async def api_session_rate(session_id: int, request: Request):
    session = _get_session(session_id)
    body = await request.json()
    try:
        rating = Rating(str(body["rating"]).lower())
    except (KeyError, ValueError):
        raise HTTPException(422, "rating must be one of: again, hard, good, easy")

    result = await session.rate(rating)
    schedule = {
        "interval_days": result.schedule.interval_days,
        "ease_factor": result.schedule.ease_factor,
    }
    if not result.ok:
        return JSONResponse(
            status_code=502,
            content={
                **session.snapshot(),
                "error": result.error.code,
                "detail": str(result.error),
                "schedule": schedule,
            },
        )
    return {"schedule": schedule, **session.snapshot()}


@app.delete("/api/session/{session_id}")
async def api_session_end(session_id: int):
    session = _sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(404, "Session not found")
    session.close()
    return {"ended": session_id, "stats": session.stats.to_dict()}


# ── API: Audio & progress ─────────────────────────────────────────────────

@app.get("/api/audio")
async def api_audio(ref: str):
    if not ref:
        raise HTTPException(422, "ref is required")
    return {"path": await get_assets().get(ref)}


@app.get("/api/stats")
async def api_stats(user_id: str | None = None):
    uid = user_id or get_settings().user_id
    db = get_db()
    stats = db.get_progress_stats(uid)
    stats["recent_activity"] = db.get_recent_activity(uid, limit=20)
    return stats
