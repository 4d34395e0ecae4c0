"""SM-2 spaced repetition scheduling and session card selection."""
from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from phrase_trainer.models import Item, LearningRecord, Rating, RepetitionSchedule, ReviewCard

MIN_EASE = 1.3
DEFAULT_EASE = 2.5
EASY_BONUS = 1.3
DUE_AFTER_HOURS = 12.0
SESSION_CAP = 20

ACCURACY_SAMPLE = {
    Rating.EASY: 100.0,
    Rating.GOOD: 80.0,
    Rating.HARD: 50.0,
    Rating.AGAIN: 0.0,
}


def compute_schedule(
    rating: Rating,
    previous_interval_days: float = 1,
    previous_ease: float = DEFAULT_EASE,
) -> RepetitionSchedule:
    """Apply SM-2 to one rating.

    quality: Again=0, Hard=2, Good=4, Easy=5
      < 3: interval resets to 1 day
      >= 3: interval grows by the new ease (Easy gets an extra 1.3x)

    The ease never drops below 1.3 and the interval never below 1 day.
    """
    quality = rating.quality
    miss = 5 - quality
    # Rounded so float noise cannot push ceil() over an integer boundary
    new_ease = round(max(MIN_EASE, previous_ease + 0.1 - miss * (0.08 + miss * 0.02)), 6)

    if quality < 3:
        new_interval = 1
    else:
        bonus = EASY_BONUS if rating is Rating.EASY else 1.0
        new_interval = math.ceil(round(previous_interval_days * new_ease * bonus, 9))

    return RepetitionSchedule(interval_days=max(1, new_interval), ease_factor=new_ease)


def accuracy_sample(rating: Rating) -> float:
    return ACCURACY_SAMPLE[rating]


def is_due(
    last_practiced_at: datetime | None,
    now: datetime | None = None,
    due_after_hours: float = DUE_AFTER_HOURS,
) -> bool:
    """Never-practiced items are always due; others once enough time passed."""
    if last_practiced_at is None:
        return True
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if last_practiced_at.tzinfo is None:
        last_practiced_at = last_practiced_at.replace(tzinfo=timezone.utc)
    return now - last_practiced_at >= timedelta(hours=due_after_hours)


def select_session_cards(
    items: Iterable[Item],
    records: dict[str, LearningRecord],
    now: datetime | None = None,
    limit: int = SESSION_CAP,
    due_after_hours: float = DUE_AFTER_HOURS,
) -> list[ReviewCard]:
    """Build a session queue: due reviews first, then new items.

    Items practiced too recently to be due are left out entirely. Within
    each group the incoming item order is kept.
    """
    now = now or datetime.now(timezone.utc)
    limit = max(0, min(SESSION_CAP, limit))
    due_seen: list[ReviewCard] = []
    new: list[ReviewCard] = []

    for item in items:
        card = ReviewCard.join(item, records.get(item.id))
        if card.last_practiced_at is None:
            new.append(card)
        elif is_due(card.last_practiced_at, now, due_after_hours):
            due_seen.append(card)

    return (due_seen + new)[:limit]
