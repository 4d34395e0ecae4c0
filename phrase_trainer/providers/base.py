from __future__ import annotations

from abc import ABC, abstractmethod

from phrase_trainer.models import LearningRecord


class ProgressStore(ABC):
    """Per-user learning records, owned outside the session."""

    @abstractmethod
    async def get_learned(self, user_id: str) -> list[LearningRecord]:
        ...

    @abstractmethod
    async def mark_practiced(
        self, user_id: str, item_id: str, accuracy_sample: float
    ) -> LearningRecord:
        """Upsert: create on first practice, otherwise bump count and blend accuracy."""
        ...


class ActivityLog(ABC):
    @abstractmethod
    async def log_activity(self, user_id: str, kind: str, item_id: str) -> None:
        ...


class Reachability(ABC):
    @abstractmethod
    async def is_reachable(self) -> bool:
        ...
