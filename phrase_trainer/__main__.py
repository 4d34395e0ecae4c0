"""CLI entry point for phrase-trainer.

Usage:
  python -m phrase_trainer serve [--port PORT] [--host HOST]
  python -m phrase_trainer refresh
  python -m phrase_trainer lookup CODE
  python -m phrase_trainer categories
  python -m phrase_trainer stats [--user USER_ID]
"""
from __future__ import annotations

import asyncio
import sys


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "refresh":
        _refresh()
    elif command == "lookup":
        _lookup(args[1:])
    elif command == "categories":
        _categories()
    elif command == "stats":
        _stats(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, refresh, lookup, categories, stats")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _open_store():
    from phrase_trainer.app import build_content_store
    from phrase_trainer.config import load_settings
    from phrase_trainer.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    return settings, db, build_content_store(db, settings)


def _serve(args: list[str]):
    import uvicorn

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    print(f"Starting Phrase Trainer on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    uvicorn.run(
        "phrase_trainer.app:app",
        host=host,
        port=port,
        reload=False,
        timeout_graceful_shutdown=5,
    )


def _refresh():
    from phrase_trainer.errors import ContentSourceError

    _, db, store = _open_store()
    try:
        generation = asyncio.run(store.refresh())
    except ContentSourceError as e:
        print(f"Refresh failed [{e.code}]: {e}")
        sys.exit(1)
    finally:
        db.close()
    print(f"{len(generation.items)} items (fetched {generation.fetched_at})")


def _lookup(args: list[str]):
    if not args:
        print("Usage: lookup CODE")
        sys.exit(1)
    from phrase_trainer.errors import ContentSourceError

    _, db, store = _open_store()

    async def run():
        item = await store.get_by_code(args[0])
        # Let a stale-cache refresh finish before the loop closes
        await store.wait_for_refresh()
        return item

    try:
        item = asyncio.run(run())
    except ContentSourceError as e:
        print(f"Lookup failed [{e.code}]: {e}")
        sys.exit(1)
    finally:
        db.close()

    if item is None:
        print(f"No item with code {args[0]}")
        sys.exit(1)
    print(f"{item.code}  [{item.category}]")
    print(f"  {item.text_target}")
    print(f"  {item.text_native}")


def _categories():
    from phrase_trainer.categories import CATEGORIES
    from phrase_trainer.errors import ContentSourceError

    _, db, store = _open_store()

    async def run():
        await store.load()
        await store.wait_for_refresh()
        return store.categories()

    try:
        counts = asyncio.run(run())
    except ContentSourceError as e:
        print(f"Load failed [{e.code}]: {e}")
        sys.exit(1)
    finally:
        db.close()

    for slug, label in CATEGORIES.items():
        print(f"  {slug:<12} {counts.get(slug, 0):>4}  {label}")


def _stats(args: list[str]):
    settings, db, _ = _open_store()
    user_id = _parse_flag(args, "--user", settings.user_id)
    stats = db.get_progress_stats(user_id)
    db.close()

    print(f"User:             {user_id}")
    print(f"Items practiced:  {stats['items_practiced']}")
    print(f"Total reviews:    {stats['total_reviews']}")
    print(f"Mean accuracy:    {stats['accuracy']}%")


if __name__ == "__main__":
    main()
