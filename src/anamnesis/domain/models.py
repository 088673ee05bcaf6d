"""
Domain models for review items and their memory state.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

from .constants import DEFAULT_EASE_FACTOR


class Quality(IntEnum):
    """SM-2 recall quality as reported by the user."""

    COMPLETE_BLACKOUT = 0
    WRONG_REMEMBERED = 1  # wrong, but the answer felt familiar
    WRONG_EASY = 2  # wrong, the answer looked easy afterwards
    CORRECT_DIFFICULT = 3
    CORRECT_HESITATION = 4
    PERFECT = 5


class ReviewMode(str, Enum):
    QUICK = "quick"
    DEEP = "deep"
    QUIZ = "quiz"


class RetentionLevel(str, Enum):
    """Coarse mastery bucket derived from an item's memory state."""

    NOVICE = "novice"
    LEARNING = "learning"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    MASTERED = "mastered"

    @property
    def rank(self) -> int:
        return RETENTION_LEVEL_ORDER[self]


RETENTION_LEVEL_ORDER: dict[RetentionLevel, int] = {
    RetentionLevel.NOVICE: 0,
    RetentionLevel.LEARNING: 1,
    RetentionLevel.INTERMEDIATE: 2,
    RetentionLevel.ADVANCED: 3,
    RetentionLevel.MASTERED: 4,
}


@dataclass(frozen=True)
class MemoryState:
    """
    SM-2 memory state for an item.

    Replaced wholesale by the scheduler after every review.

    Attributes:
        repetition: Consecutive successful reviews.
        interval: Current interval in days.
        ease_factor: Difficulty multiplier, never below 1.3.
        next_review: When the item is next due (only the calendar day matters).
    """

    repetition: int = 0
    interval: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    next_review: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ReviewRecord:
    """
    A single entry in an item's review history.

    Attributes:
        reviewed_at: When the review happened.
        quality: Recall quality 0-5.
        mode: How the item was reviewed.
        quiz_score: Score in quiz mode, if any.
    """

    reviewed_at: datetime
    quality: int
    mode: ReviewMode = ReviewMode.QUICK
    quiz_score: float | None = None


@dataclass(frozen=True)
class Item:
    """
    A reviewable note.

    Owned by the item repository; the core only reads it and hands back
    updated copies (see dataclasses.replace).
    """

    id: str
    path: str
    title: str
    memory: MemoryState = field(default_factory=MemoryState)
    retention_level: RetentionLevel = RetentionLevel.NOVICE
    history: tuple[ReviewRecord, ...] = ()
    tags: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)
    last_modified: datetime = field(default_factory=datetime.now)
