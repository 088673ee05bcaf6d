"""
SM-2 scheduler.

Pure functions over items and memory states: computing the next state after a
review, filtering by due-ness, estimating retention and ordering a review
queue. No I/O; "now" can always be supplied by the caller.
"""

from collections.abc import Iterable
from datetime import date, datetime

from anamnesis.application.utils.dates import add_days, calendar_day
from anamnesis.domain.constants import (
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    PASSING_QUALITY,
    RECENT_REVIEW_WINDOW,
)
from anamnesis.domain.errors import InvalidQualityError
from anamnesis.domain.models import Item, MemoryState, RetentionLevel


def calculate_next(
    state: MemoryState, quality: int, now: datetime | None = None
) -> MemoryState:
    """
    Compute the memory state that follows a review of the given quality.

    Quality below 3 resets the repetition streak to a one-day interval.
    Otherwise the interval grows 1 -> 6 -> interval * ease_factor and the
    ease factor is adjusted by EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)).

    Raises:
        InvalidQualityError: if quality is outside 0-5.
    """
    if isinstance(quality, bool) or not 0 <= quality <= MAX_QUALITY:
        raise InvalidQualityError(f"quality must be an integer 0-5, got {quality!r}")

    now = now or datetime.now()

    if quality < PASSING_QUALITY:
        return MemoryState(
            repetition=0,
            interval=1,
            ease_factor=max(MIN_EASE_FACTOR, state.ease_factor - 0.2),
            next_review=add_days(now, 1),
        )

    if state.repetition == 0:
        interval = 1
    elif state.repetition == 1:
        interval = 6
    else:
        interval = _round_half_up(state.interval * state.ease_factor)

    miss = MAX_QUALITY - quality
    ease_factor = state.ease_factor + (0.1 - miss * (0.08 + miss * 0.02))

    return MemoryState(
        repetition=state.repetition + 1,
        interval=interval,
        ease_factor=max(MIN_EASE_FACTOR, ease_factor),
        next_review=add_days(now, interval),
    )


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; intervals round .5 upwards.
    return int(value + 0.5)


def is_due(item: Item, reference: datetime | date | None = None) -> bool:
    """Due when the next-review calendar day is on or before the reference day."""
    today = calendar_day(reference or datetime.now())
    return calendar_day(item.memory.next_review) <= today


def is_overdue(item: Item, reference: datetime | date | None = None) -> bool:
    """Overdue when the next-review calendar day is before yesterday."""
    today = calendar_day(reference or datetime.now())
    return (today - calendar_day(item.memory.next_review)).days > 1


def get_due_items(items: Iterable[Item], reference: datetime | date | None = None) -> list[Item]:
    reference = reference or datetime.now()
    return [item for item in items if is_due(item, reference)]


def get_overdue_items(
    items: Iterable[Item], reference: datetime | date | None = None
) -> list[Item]:
    reference = reference or datetime.now()
    return [item for item in items if is_overdue(item, reference)]


def estimate_retention_level(item: Item) -> RetentionLevel:
    """
    Bucket an item by its memory state and recent review quality.

    The first matching rule wins:
        mastered     repetition>=5, EF>=2.3, interval>=30, avg quality>=4
        advanced     repetition>=4, EF>=2.0, interval>=14, avg quality>=3.5
        intermediate repetition>=2, EF>=1.8, avg quality>=3
        learning     repetition>=1 or at least two reviews
        novice       otherwise (and always without history)
    """
    history = item.history
    if not history:
        return RetentionLevel.NOVICE

    recent = history[-RECENT_REVIEW_WINDOW:]
    avg_quality = sum(r.quality for r in recent) / len(recent)

    repetition = item.memory.repetition
    ease_factor = item.memory.ease_factor
    interval = item.memory.interval

    if repetition >= 5 and ease_factor >= 2.3 and interval >= 30 and avg_quality >= 4:
        return RetentionLevel.MASTERED
    if repetition >= 4 and ease_factor >= 2.0 and interval >= 14 and avg_quality >= 3.5:
        return RetentionLevel.ADVANCED
    if repetition >= 2 and ease_factor >= 1.8 and avg_quality >= 3:
        return RetentionLevel.INTERMEDIATE
    if repetition >= 1 or len(history) >= 2:
        return RetentionLevel.LEARNING
    return RetentionLevel.NOVICE


def optimize_review_order(
    items: Iterable[Item], reference: datetime | date | None = None
) -> list[Item]:
    """
    Stable sort: overdue items first, then lower retention level, then lower
    ease factor (harder items first).
    """
    reference = reference or datetime.now()
    return sorted(
        items,
        key=lambda item: (
            not is_overdue(item, reference),
            item.retention_level.rank,
            item.memory.ease_factor,
        ),
    )
