"""
Retention calculator for deriving insights from review history.

This is a pure computation module with no I/O.
"""

import math
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from anamnesis.application.utils.dates import start_of_day
from anamnesis.domain.models import Item, RetentionLevel
from anamnesis.domain.stats.models import (
    RetentionDistribution,
    RetentionReport,
    RetentionTrend,
    ReviewStatistics,
)

# Neutral quality assumed when nothing has been reviewed yet.
_NEUTRAL_QUALITY = 3.0


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


class RetentionCalculator:
    """
    Computes statistics and a health report from a collection of items.

    Stateless and side-effect free.
    """

    def statistics(self, items: Sequence[Item], now: datetime | None = None) -> ReviewStatistics:
        now = now or datetime.now()
        stats = ReviewStatistics(total_items=len(items))
        if not items:
            return stats

        today_start = start_of_day(now)
        week_start = today_start - timedelta(days=7)
        total_quality = 0
        review_days: set[date] = set()

        for item in items:
            stats.by_retention_level[item.retention_level] += 1
            for record in item.history:
                stats.total_reviews += 1
                total_quality += record.quality
                review_days.add(record.reviewed_at.date())
                if record.reviewed_at >= today_start:
                    stats.reviews_today += 1
                if record.reviewed_at >= week_start:
                    stats.reviews_this_week += 1

        stats.average_ease_factor = sum(i.memory.ease_factor for i in items) / len(items)
        if stats.total_reviews:
            stats.average_quality = total_quality / stats.total_reviews
        stats.streak, stats.longest_streak = self._compute_streaks(review_days, now.date())
        return stats

    def distribution(self, stats: ReviewStatistics) -> RetentionDistribution:
        total = stats.total_items or 1
        return RetentionDistribution(
            by_level=dict(stats.by_retention_level),
            percentages={
                level: _js_round(count / total * 100)
                for level, count in stats.by_retention_level.items()
            },
        )

    def trend(self, stats: ReviewStatistics) -> RetentionTrend:
        """
        Direction of recall quality, judged from the average quality alone
        (no past snapshots are kept).
        """
        avg_quality = stats.average_quality or _NEUTRAL_QUALITY
        if avg_quality >= 4:
            return RetentionTrend(direction="improving", change_percent=5)
        if avg_quality >= 3:
            return RetentionTrend(direction="stable", change_percent=0)
        return RetentionTrend(direction="declining", change_percent=-5)

    def health_score(self, stats: ReviewStatistics, distribution: RetentionDistribution) -> int:
        """
        0-100 score: base 50, weighted by the level distribution, plus up to
        10 points of streak and 5 points per quality step above 3.
        """
        pct = distribution.percentages
        score = 50.0
        score += pct[RetentionLevel.MASTERED] * 0.5
        score += pct[RetentionLevel.ADVANCED] * 0.3
        score += pct[RetentionLevel.INTERMEDIATE] * 0.1
        score -= pct[RetentionLevel.NOVICE] * 0.2
        score += min(stats.streak, 10)
        score += ((stats.average_quality or _NEUTRAL_QUALITY) - 3) * 5
        return max(0, min(100, _js_round(score)))

    def recommendations(
        self,
        stats: ReviewStatistics,
        distribution: RetentionDistribution,
        trend: RetentionTrend,
    ) -> list[str]:
        pct = distribution.percentages
        tips = []

        if stats.reviews_today == 0 and stats.total_items > 0:
            tips.append("Start today's review: steady repetition is what makes memories stick.")
        if pct[RetentionLevel.NOVICE] > 30:
            tips.append("Many items are still new. Review them early and often.")
        if pct[RetentionLevel.MASTERED] < 10 and stats.total_items > 20:
            tips.append("Few items are mastered yet. Keep a consistent review habit.")
        if trend.direction == "declining":
            tips.append("Recent review quality is dropping. Consider reviewing more often.")
        if stats.streak >= 7:
            tips.append(f"{stats.streak}-day review streak. Great habit!")

        return tips

    def report(self, items: Sequence[Item], now: datetime | None = None) -> RetentionReport:
        now = now or datetime.now()
        stats = self.statistics(items, now)
        distribution = self.distribution(stats)
        trend = self.trend(stats)
        return RetentionReport(
            statistics=stats,
            distribution=distribution,
            trend=trend,
            health_score=self.health_score(stats, distribution),
            recommendations=self.recommendations(stats, distribution, trend),
            generated_at=now,
        )

    def _compute_streaks(self, days: set[date], today: date) -> tuple[int, int]:
        """
        Current streak counts back from today; a day without reviews today
        means no current streak.
        """
        if not days:
            return 0, 0

        streak = 0
        while today - timedelta(days=streak) in days:
            streak += 1

        ordered = sorted(days)
        longest = current = 1
        for prev, curr in zip(ordered, ordered[1:]):
            if (curr - prev).days == 1:
                current += 1
            else:
                current = 1
            longest = max(longest, current)

        return streak, longest
