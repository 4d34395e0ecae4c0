from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class Rating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def quality(self) -> int:
        return QUALITY[self]


QUALITY = {
    Rating.AGAIN: 0,
    Rating.HARD: 2,
    Rating.GOOD: 4,
    Rating.EASY: 5,
}


@dataclass(frozen=True)
class AudioRefs:
    target: str
    native: str


@dataclass(frozen=True)
class Item:
    id: str
    code: str
    text_target: str
    text_native: str
    audio: AudioRefs
    category: str
    publish_state: str = "published"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> Item:
        audio = d["audio"]
        return cls(
            id=d["id"],
            code=d["code"],
            text_target=d["text_target"],
            text_native=d["text_native"],
            audio=AudioRefs(target=audio["target"], native=audio["native"]),
            category=d["category"],
            publish_state=d.get("publish_state", "published"),
        )


@dataclass
class LearningRecord:
    item_id: str
    practice_count: int = 0
    accuracy_score: float = 0.0
    last_practiced_at: datetime | None = None


@dataclass(frozen=True)
class ReviewCard:
    """An item joined with the learner's record for one session.

    Presentation state (whether the card is flipped) lives on the session,
    never here.
    """

    item: Item
    practice_count: int = 0
    accuracy_score: float = 0.0
    last_practiced_at: datetime | None = None

    @property
    def item_id(self) -> str:
        return self.item.id

    @classmethod
    def join(cls, item: Item, record: LearningRecord | None) -> ReviewCard:
        if record is None:
            return cls(item=item)
        return cls(
            item=item,
            practice_count=record.practice_count,
            accuracy_score=record.accuracy_score,
            last_practiced_at=record.last_practiced_at,
        )


@dataclass(frozen=True)
class RepetitionSchedule:
    interval_days: int
    ease_factor: float


@dataclass
class SessionStats:
    total_cards: int = 0
    cards_reviewed: int = 0
    mastered_count: int = 0
    hard_count: int = 0
    running_accuracy: float = 0.0
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ContentGeneration:
    """One complete snapshot of the content set, swapped as a whole."""

    items: tuple[Item, ...]
    fetched_at: str
    _by_code: dict[str, Item] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        # First occurrence wins on duplicate codes
        index: dict[str, Item] = {}
        for item in self.items:
            index.setdefault(item.code.lower(), item)
        object.__setattr__(self, "_by_code", index)

    def lookup(self, code: str) -> Item | None:
        return self._by_code.get(code.strip().lower())

    def to_dict(self) -> dict:
        return {
            "fetched_at": self.fetched_at,
            "items": [i.to_dict() for i in self.items],
        }

    @classmethod
    def from_dict(cls, d: dict) -> ContentGeneration:
        return cls(
            items=tuple(Item.from_dict(i) for i in d["items"]),
            fetched_at=d["fetched_at"],
        )
