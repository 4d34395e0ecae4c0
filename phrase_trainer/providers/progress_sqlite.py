from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from phrase_trainer.models import LearningRecord
from phrase_trainer.providers.base import ActivityLog, ProgressStore

if TYPE_CHECKING:
    from phrase_trainer.db import Database


def _record_from_row(row: dict) -> LearningRecord:
    last = row.get("last_practiced_at")
    last_dt = datetime.fromisoformat(last) if last else None
    if last_dt is not None and last_dt.tzinfo is None:
        last_dt = last_dt.replace(tzinfo=timezone.utc)
    return LearningRecord(
        item_id=row["item_id"],
        practice_count=row["practice_count"],
        accuracy_score=row["accuracy_score"],
        last_practiced_at=last_dt,
    )


class SqliteProgressStore(ProgressStore):
    def __init__(self, db: Database):
        self.db = db

    async def get_learned(self, user_id: str) -> list[LearningRecord]:
        return [_record_from_row(r) for r in self.db.get_learning_records(user_id)]

    async def mark_practiced(
        self, user_id: str, item_id: str, accuracy_sample: float
    ) -> LearningRecord:
        now = datetime.now(timezone.utc).isoformat()
        row = self.db.upsert_learning_record(user_id, item_id, accuracy_sample, now)
        return _record_from_row(row)


class SqliteActivityLog(ActivityLog):
    def __init__(self, db: Database):
        self.db = db

    async def log_activity(self, user_id: str, kind: str, item_id: str) -> None:
        self.db.add_activity(user_id, kind, item_id)
