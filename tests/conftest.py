"""Shared test fixtures."""
from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from phrase_trainer.content import ContentStore
from phrase_trainer.db import Database
from phrase_trainer.models import AudioRefs, Item, LearningRecord
from phrase_trainer.providers.base import ActivityLog, ProgressStore
from phrase_trainer.providers.reachability import StaticReachability

SHEET_URL = "https://sheets.example.com/pub?output=csv"

SHEET_CSV = """\
id,code,text_target,text_native,audio_target_url,audio_native_url,category,status
g1,GR001,Ẹ káàárọ̀,Good morning,https://cdn.example.com/g1-yo.mp3,https://cdn.example.com/g1-en.mp3,greetings,published
g2,GR002,Ẹ káàsán,Good afternoon,https://cdn.example.com/g2-yo.mp3,https://cdn.example.com/g2-en.mp3, Greetings ,published
g3,GR003,Ẹ kúùrọ̀lẹ́,Good evening,https://cdn.example.com/g3-yo.mp3,https://cdn.example.com/g3-en.mp3,greetings,
d1,GR004,Ẹ kú alẹ́,Good night,https://cdn.example.com/d1-yo.mp3,https://cdn.example.com/d1-en.mp3,greetings,draft
f1,FD001,Mo fẹ́ jẹun,I want to eat,https://cdn.example.com/f1-yo.mp3,https://cdn.example.com/f1-en.mp3,food,published
x1,XX001,Ó dàbọ̀,Goodbye,https://cdn.example.com/x1-yo.mp3,https://cdn.example.com/x1-en.mp3,weather,published
"""


class FakeSheetServer:
    """Serves a fixed CSV body and counts requests."""

    def __init__(self, body: str, status: int = 200):
        self.body = body
        self.status = status
        self.requests = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        return httpx.Response(self.status, text=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeProgressStore(ProgressStore):
    """In-memory progress store; fails the next ``fail_times`` writes."""

    def __init__(self, records: list[LearningRecord] | None = None):
        self.records = {r.item_id: r for r in records or []}
        self.fail_times = 0
        self.fail_reads = False
        self.calls: list[tuple[str, str, float]] = []

    async def get_learned(self, user_id: str) -> list[LearningRecord]:
        if self.fail_reads:
            raise ConnectionError("progress backend unreachable")
        return list(self.records.values())

    async def mark_practiced(self, user_id: str, item_id: str, accuracy_sample: float) -> LearningRecord:
        self.calls.append((user_id, item_id, accuracy_sample))
        if self.fail_times:
            self.fail_times -= 1
            raise ConnectionError("progress backend unreachable")
        now = datetime.now(timezone.utc)
        existing = self.records.get(item_id)
        if existing is None:
            record = LearningRecord(item_id, 1, accuracy_sample, now)
        else:
            record = LearningRecord(
                item_id,
                existing.practice_count + 1,
                (existing.accuracy_score + accuracy_sample) / 2,
                now,
            )
        self.records[item_id] = record
        return record


class FakeActivityLog(ActivityLog):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list[tuple[str, str, str]] = []

    async def log_activity(self, user_id: str, kind: str, item_id: str) -> None:
        if self.fail:
            raise RuntimeError("activity backend down")
        self.events.append((user_id, kind, item_id))


def make_item(item_id: str, code: str, category: str = "greetings") -> Item:
    return Item(
        id=item_id,
        code=code,
        text_target=f"target {item_id}",
        text_native=f"native {item_id}",
        audio=AudioRefs(
            target=f"https://cdn.example.com/{item_id}-yo.mp3",
            native=f"https://cdn.example.com/{item_id}-en.mp3",
        ),
        category=category,
    )


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def sheet_csv():
    return SHEET_CSV


@pytest.fixture
def sheet_server(sheet_csv):
    return FakeSheetServer(sheet_csv)


@pytest.fixture
def content_store(tmp_db, sheet_server):
    """A ContentStore that is online and talks to the fake sheet."""
    return ContentStore(
        tmp_db,
        SHEET_URL,
        StaticReachability(True),
        transport=sheet_server.transport,
    )


@pytest.fixture
def progress_store():
    return FakeProgressStore()


@pytest.fixture
def activity_log():
    return FakeActivityLog()


@pytest.fixture
def sample_items():
    return [make_item(f"g{n}", f"GR00{n}") for n in range(1, 4)]
