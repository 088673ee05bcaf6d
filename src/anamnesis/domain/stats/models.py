"""
Domain models for retention statistics.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from ..models import RetentionLevel


def _empty_levels() -> dict[RetentionLevel, int]:
    return {level: 0 for level in RetentionLevel}


@dataclass
class ReviewStatistics:
    """
    Aggregate review activity over all items.

    Attributes:
        total_items: Number of registered items.
        by_retention_level: Item count per retention level.
        average_ease_factor: Mean ease factor over all items.
        reviews_today: Reviews since local midnight.
        reviews_this_week: Reviews in the last seven days (plus today).
        streak: Consecutive days with a review, ending today.
        longest_streak: Longest run of consecutive review days ever.
        total_reviews: Number of history entries.
        average_quality: Mean quality over all history entries.
    """

    total_items: int = 0
    by_retention_level: dict[RetentionLevel, int] = field(default_factory=_empty_levels)
    average_ease_factor: float = 0.0
    reviews_today: int = 0
    reviews_this_week: int = 0
    streak: int = 0
    longest_streak: int = 0
    total_reviews: int = 0
    average_quality: float = 0.0


@dataclass(frozen=True)
class RetentionDistribution:
    by_level: dict[RetentionLevel, int]
    percentages: dict[RetentionLevel, int]  # rounded to whole percent


@dataclass(frozen=True)
class RetentionTrend:
    direction: Literal["improving", "stable", "declining"]
    change_percent: int
    period: str = "last 7 days"


@dataclass
class RetentionReport:
    statistics: ReviewStatistics
    distribution: RetentionDistribution
    trend: RetentionTrend
    health_score: int  # 0-100
    recommendations: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)
