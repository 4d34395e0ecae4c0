"""Offline-first content store backed by a published sheet.

Serving order: resident generation, then the persisted copy (with a
background refresh), then a blocking fetch. A refresh replaces the whole
generation or nothing.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import httpx

from phrase_trainer.errors import (
    CorruptCacheError,
    MalformedSourceError,
    MissingSourceUrlError,
    OfflineNoCacheError,
)
from phrase_trainer.models import ContentGeneration, Item
from phrase_trainer.parsers.sheet_parser import parse_sheet_csv

if TYPE_CHECKING:
    from phrase_trainer.db import Database
    from phrase_trainer.providers.base import Reachability

CACHE_KEY = "content_cache"

log = logging.getLogger("phrase_trainer.content")


def decode_generation(payload: str) -> ContentGeneration:
    try:
        return ContentGeneration.from_dict(json.loads(payload))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise CorruptCacheError(f"Persisted content cache is unreadable: {e}") from e


class ContentStore:
    def __init__(
        self,
        db: Database,
        source_url: str,
        reachability: Reachability,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.db = db
        self.source_url = source_url
        self.reachability = reachability
        self.timeout = timeout
        self.transport = transport
        self._generation: ContentGeneration | None = None
        self._refresh_task: asyncio.Task | None = None
        self._bg_tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def generation(self) -> ContentGeneration | None:
        return self._generation

    def close(self) -> None:
        """Stop late refreshes from swapping in a new generation."""
        self._closed = True

    # ── Loading ───────────────────────────────────────────────────────────

    async def load(self) -> ContentGeneration:
        if self._generation is not None:
            return self._generation

        persisted = self._read_persisted()
        if persisted is not None:
            self._generation = persisted
            self._schedule_background_refresh()
            return persisted

        return await self.refresh()

    async def refresh(self) -> ContentGeneration:
        if not await self.reachability.is_reachable():
            cached = self._generation or self._read_persisted()
            if cached is None:
                raise OfflineNoCacheError(
                    "No internet connection and no cached content available"
                )
            log.info("Offline: serving cached content (%d items)", len(cached.items))
            if self._generation is None and not self._closed:
                self._generation = cached
            return cached

        if not self.source_url:
            raise MissingSourceUrlError("No content_url configured")

        try:
            text = await self._fetch()
            items = parse_sheet_csv(text)
        except (MalformedSourceError, httpx.HTTPError) as e:
            fallback = self._generation or self._read_persisted()
            if fallback is None:
                if isinstance(e, MalformedSourceError):
                    raise
                raise MalformedSourceError(f"Failed to fetch content: {e}") from e
            log.warning("Refresh failed, keeping previous content: %s", e)
            return fallback

        generation = ContentGeneration(
            items=tuple(items),
            fetched_at=datetime.now(timezone.utc).isoformat(),
        )
        self._swap(generation)
        return generation

    async def _fetch(self) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            resp = await client.get(self.source_url)
            resp.raise_for_status()
            return resp.text

    def _swap(self, generation: ContentGeneration) -> None:
        if self._closed:
            log.info("Store closed; discarding refreshed content")
            return
        try:
            self.db.set_blob(CACHE_KEY, json.dumps(generation.to_dict()))
        except sqlite3.Error as e:
            log.warning("Could not persist content cache: %s", e)
        self._generation = generation
        log.info("Content refreshed: %d items", len(generation.items))

    def _read_persisted(self) -> ContentGeneration | None:
        payload = self.db.get_blob(CACHE_KEY)
        if payload is None:
            return None
        try:
            return decode_generation(payload)
        except CorruptCacheError as e:
            log.warning("%s; discarding it", e)
            self.db.delete_blob(CACHE_KEY)
            return None

    # ── Background refresh ────────────────────────────────────────────────

    def _schedule_background_refresh(self) -> asyncio.Task:
        if self._refresh_task is not None and not self._refresh_task.done():
            return self._refresh_task
        task = asyncio.create_task(self._background_refresh())
        self._refresh_task = task
        self._bg_tasks.add(task)
        task.add_done_callback(self._bg_tasks.discard)
        return task

    async def _background_refresh(self) -> ContentGeneration | None:
        try:
            return await self.refresh()
        except Exception as e:
            log.warning("Background refresh failed: %s", e)
            return None

    async def wait_for_refresh(self) -> ContentGeneration | None:
        """Await the pending background refresh, if any. Never raises."""
        if self._refresh_task is None:
            return None
        return await self._refresh_task

    # ── Queries ───────────────────────────────────────────────────────────

    def lookup_by_code(self, code: str) -> Item | None:
        if self._generation is None:
            return None
        return self._generation.lookup(code)

    async def get_by_code(self, code: str) -> Item | None:
        generation = await self.load()
        return generation.lookup(code)

    def all_items(self) -> list[Item]:
        return list(self._generation.items) if self._generation else []

    async def items_for_category(self, category: str) -> list[Item]:
        generation = await self.load()
        wanted = category.strip().lower()
        return [i for i in generation.items if i.category == wanted]

    def categories(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for item in self.all_items():
            counts[item.category] = counts.get(item.category, 0) + 1
        return counts
