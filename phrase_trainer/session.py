"""Study session: queue selection, card-by-card rating, in-session stats.

States: loading -> load_error | active; active -> complete when the pointer
runs off the end of the queue; complete -> active on restart, which replays
the same queue.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from phrase_trainer.errors import PersistFailureError, SessionStateError
from phrase_trainer.models import (
    LearningRecord,
    Rating,
    RepetitionSchedule,
    ReviewCard,
    SessionStats,
)
from phrase_trainer.srs import (
    DEFAULT_EASE,
    DUE_AFTER_HOURS,
    SESSION_CAP,
    accuracy_sample,
    compute_schedule,
    select_session_cards,
)

if TYPE_CHECKING:
    from phrase_trainer.content import ContentStore
    from phrase_trainer.providers.base import ActivityLog, ProgressStore

log = logging.getLogger("phrase_trainer.session")
_activity_log = logging.getLogger("phrase_trainer.activity")


class SessionState(str, Enum):
    LOADING = "loading"
    LOAD_ERROR = "load_error"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass
class RateResult:
    ok: bool
    schedule: RepetitionSchedule
    record: LearningRecord | None = None
    error: PersistFailureError | None = None
    session_complete: bool = False


class SessionManager:
    def __init__(
        self,
        content: ContentStore,
        progress: ProgressStore,
        user_id: str,
        category: str,
        activity: ActivityLog | None = None,
        session_size: int = SESSION_CAP,
        due_after_hours: float = DUE_AFTER_HOURS,
        clock: Callable[[], datetime] | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.content = content
        self.progress = progress
        self.activity = activity
        self.user_id = user_id
        self.category = category
        self.session_size = min(SESSION_CAP, session_size)
        self.due_after_hours = due_after_hours
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._timer = timer

        self.state = SessionState.LOADING
        self.error: Exception | None = None
        self.queue: list[ReviewCard] = []
        self.pointer = 0
        self.stats = SessionStats()
        self._flipped: set[int] = set()
        self._started = self._timer()
        self._rating = False
        self._alive = True
        self._bg_tasks: set[asyncio.Task] = set()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def start(self) -> SessionState:
        """Select the queue. Failures end in LOAD_ERROR; call again to retry."""
        self.state = SessionState.LOADING
        self.error = None
        try:
            items = await self.content.items_for_category(self.category)
            learned = await self.progress.get_learned(self.user_id)
        except Exception as e:
            if not self._alive:
                return self.state
            log.warning("Failed to load session for %r: %s", self.category, e)
            self.error = e
            self.state = SessionState.LOAD_ERROR
            return self.state

        if not self._alive:
            log.info("Session closed during load; discarding queue")
            return self.state

        records = {r.item_id: r for r in learned}
        self.queue = select_session_cards(
            items,
            records,
            now=self._clock(),
            limit=self.session_size,
            due_after_hours=self.due_after_hours,
        )
        self._reset_progress()
        log.info("Session started: %s, %d cards", self.category, len(self.queue))
        return self.state

    def restart(self) -> None:
        """Replay the same queue from the top with fresh stats."""
        if self.state not in (SessionState.ACTIVE, SessionState.COMPLETE):
            raise SessionStateError(f"Cannot restart a session in state {self.state.value}")
        self._require_idle()
        self._reset_progress()

    def close(self) -> None:
        self._alive = False

    async def drain(self) -> None:
        """Wait for outstanding activity-log writes."""
        if self._bg_tasks:
            await asyncio.gather(*self._bg_tasks, return_exceptions=True)

    def _reset_progress(self) -> None:
        self.pointer = 0
        self._flipped.clear()
        self.stats = SessionStats(total_cards=len(self.queue))
        self._started = self._timer()
        self.state = SessionState.ACTIVE if self.queue else SessionState.COMPLETE

    # ── Card access ───────────────────────────────────────────────────────

    @property
    def current_card(self) -> ReviewCard | None:
        if self.state is not SessionState.ACTIVE:
            return None
        return self.queue[self.pointer]

    @property
    def is_flipped(self) -> bool:
        return self.current_card is not None and self.pointer in self._flipped

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETE

    @property
    def progress_percentage(self) -> float:
        if not self.queue:
            return 0.0
        return min(100.0, (self.pointer + 1) / len(self.queue) * 100)

    def _require_current(self) -> ReviewCard:
        card = self.current_card
        if card is None:
            raise SessionStateError(f"No current card (session is {self.state.value})")
        return card

    def _require_idle(self) -> None:
        # Actions are serialized: nothing may move the pointer under a pending rating
        if self._rating:
            raise SessionStateError("A rating is already in progress")

    # ── Actions ───────────────────────────────────────────────────────────

    def flip(self) -> bool:
        self._require_current()
        self._require_idle()
        if self.pointer in self._flipped:
            self._flipped.discard(self.pointer)
        else:
            self._flipped.add(self.pointer)
        return self.pointer in self._flipped

    def skip(self) -> None:
        self._require_current()
        self._require_idle()
        self._advance()

    async def rate(self, rating: Rating) -> RateResult:
        """Score the current card and move on.

        If saving progress fails nothing changes: the same card stays
        current and the result carries the error for a retry.
        """
        card = self._require_current()
        self._require_idle()

        schedule = compute_schedule(
            rating, card.practice_count, card.accuracy_score or DEFAULT_EASE
        )
        sample = accuracy_sample(rating)

        self._rating = True
        try:
            record = await self.progress.mark_practiced(self.user_id, card.item_id, sample)
        except Exception as e:
            log.warning("Failed to save progress for %s: %s", card.item_id, e)
            err = PersistFailureError(f"Failed to save progress: {e}")
            err.__cause__ = e
            return RateResult(ok=False, schedule=schedule, error=err)
        finally:
            self._rating = False

        if not self._alive:
            return RateResult(ok=True, schedule=schedule, record=record)

        self._log_activity(card.item_id)

        stats = self.stats
        reviewed = stats.cards_reviewed
        stats.running_accuracy = (stats.running_accuracy * reviewed + sample) / (reviewed + 1)
        stats.cards_reviewed = reviewed + 1
        if rating is Rating.EASY:
            stats.mastered_count += 1
        elif rating is Rating.HARD:
            stats.hard_count += 1

        self._advance()
        return RateResult(
            ok=True, schedule=schedule, record=record, session_complete=self.is_complete
        )

    def _advance(self) -> None:
        self.pointer += 1
        self.stats.elapsed_ms = int((self._timer() - self._started) * 1000)
        if self.pointer >= len(self.queue):
            self.state = SessionState.COMPLETE

    def _log_activity(self, item_id: str) -> None:
        if self.activity is None:
            return
        task = asyncio.create_task(self._send_activity(item_id))
        self._bg_tasks.add(task)
        task.add_done_callback(self._bg_tasks.discard)

    async def _send_activity(self, item_id: str) -> None:
        try:
            await self.activity.log_activity(self.user_id, "practice", item_id)
        except Exception as e:
            _activity_log.warning("Activity log failed for %s: %s", item_id, e)

    # ── Serialization ─────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        card = self.current_card
        return {
            "state": self.state.value,
            "category": self.category,
            "pointer": self.pointer,
            "queue_length": len(self.queue),
            "progress_percentage": round(self.progress_percentage, 1),
            "flipped": self.is_flipped,
            "current_card": {
                "item": card.item.to_dict(),
                "practice_count": card.practice_count,
                "accuracy_score": card.accuracy_score,
            } if card else None,
            "stats": self.stats.to_dict(),
            "error": str(self.error) if self.error else None,
        }
