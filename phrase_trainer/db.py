from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_cache (
    cache_key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS learning_records (
    user_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    practice_count INTEGER NOT NULL DEFAULT 0,
    accuracy_score REAL NOT NULL DEFAULT 0,
    last_practiced_at TEXT,
    PRIMARY KEY (user_id, item_id)
);

CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    item_id TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS audio_cache (
    ref_hash TEXT PRIMARY KEY,
    remote_ref TEXT NOT NULL,
    file_path TEXT NOT NULL,
    size_bytes INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    last_used_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Content cache blob ────────────────────────────────────────────────

    def get_blob(self, key: str) -> str | None:
        row = self.conn.execute(
            "SELECT payload FROM kv_cache WHERE cache_key = ?", (key,)
        ).fetchone()
        return row["payload"] if row else None

    def set_blob(self, key: str, payload: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO kv_cache (cache_key, payload, updated_at) "
            "VALUES (?, ?, ?)",
            (key, payload, _now()),
        )
        self.conn.commit()

    def delete_blob(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_cache WHERE cache_key = ?", (key,))
        self.conn.commit()

    # ── Learning records ──────────────────────────────────────────────────

    def get_learning_records(self, user_id: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM learning_records WHERE user_id = ?", (user_id,)
        ).fetchall()
        return [dict(r) for r in rows]

    def get_learning_record(self, user_id: str, item_id: str) -> dict | None:
        row = self.conn.execute(
            "SELECT * FROM learning_records WHERE user_id = ? AND item_id = ?",
            (user_id, item_id),
        ).fetchone()
        return dict(row) if row else None

    def upsert_learning_record(
        self, user_id: str, item_id: str, accuracy_sample: float, practiced_at: str
    ) -> dict:
        """First practice creates the record; later ones bump the count and
        average the stored accuracy with the new sample."""
        sample = max(0.0, min(100.0, float(accuracy_sample)))
        existing = self.get_learning_record(user_id, item_id)
        if existing:
            blended = (existing["accuracy_score"] + sample) / 2
            self.conn.execute(
                "UPDATE learning_records SET practice_count = practice_count + 1, "
                "accuracy_score = ?, last_practiced_at = ? "
                "WHERE user_id = ? AND item_id = ?",
                (blended, practiced_at, user_id, item_id),
            )
        else:
            self.conn.execute(
                "INSERT INTO learning_records "
                "(user_id, item_id, practice_count, accuracy_score, last_practiced_at) "
                "VALUES (?, ?, 1, ?, ?)",
                (user_id, item_id, sample, practiced_at),
            )
        self.conn.commit()
        return self.get_learning_record(user_id, item_id)

    def get_progress_stats(self, user_id: str) -> dict:
        row = self.conn.execute(
            "SELECT COUNT(*) AS practiced, "
            "COALESCE(SUM(practice_count), 0) AS reviews, "
            "COALESCE(AVG(accuracy_score), 0) AS accuracy "
            "FROM learning_records WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        return {
            "items_practiced": row["practiced"],
            "total_reviews": row["reviews"],
            "accuracy": round(row["accuracy"], 1),
        }

    # ── Activity log ──────────────────────────────────────────────────────

    def add_activity(self, user_id: str, kind: str, item_id: str) -> None:
        self.conn.execute(
            "INSERT INTO activity_log (user_id, kind, item_id, created_at) "
            "VALUES (?, ?, ?, ?)",
            (user_id, kind, item_id, _now()),
        )
        self.conn.commit()

    def get_recent_activity(self, user_id: str, limit: int = 20) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM activity_log WHERE user_id = ? "
            "ORDER BY id DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        return [dict(r) for r in rows]

    # ── Audio cache ───────────────────────────────────────────────────────

    def get_audio_cache(self, ref_hash: str) -> str | None:
        row = self.conn.execute(
            "SELECT file_path FROM audio_cache WHERE ref_hash = ?", (ref_hash,)
        ).fetchone()
        return row["file_path"] if row else None

    def set_audio_cache(
        self, ref_hash: str, remote_ref: str, file_path: str, size_bytes: int
    ) -> None:
        now = _now()
        self.conn.execute(
            "INSERT OR REPLACE INTO audio_cache "
            "(ref_hash, remote_ref, file_path, size_bytes, created_at, last_used_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (ref_hash, remote_ref, file_path, size_bytes, now, now),
        )
        self.conn.commit()

    def touch_audio_cache(self, ref_hash: str) -> None:
        self.conn.execute(
            "UPDATE audio_cache SET last_used_at = ? WHERE ref_hash = ?",
            (_now(), ref_hash),
        )
        self.conn.commit()

    def get_audio_cache_entries(self) -> list[dict]:
        """All cache entries, least recently used first."""
        rows = self.conn.execute(
            "SELECT * FROM audio_cache ORDER BY last_used_at ASC, created_at ASC"
        ).fetchall()
        return [dict(r) for r in rows]

    def get_audio_cache_size(self) -> int:
        row = self.conn.execute(
            "SELECT COALESCE(SUM(size_bytes), 0) FROM audio_cache"
        ).fetchone()
        return row[0]

    def delete_audio_cache(self, ref_hash: str) -> None:
        self.conn.execute(
            "DELETE FROM audio_cache WHERE ref_hash = ?", (ref_hash,)
        )
        self.conn.commit()

    def clear_audio_cache(self) -> None:
        self.conn.execute("DELETE FROM audio_cache")
        self.conn.commit()
