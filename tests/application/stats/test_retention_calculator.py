from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from anamnesis.application.stats import RetentionCalculator, RetentionService
from anamnesis.domain.models import RetentionLevel, ReviewRecord


@pytest.fixture
def calc():
    return RetentionCalculator()


def _reviews(now, *entries):
    """(days_ago, quality) pairs -> history tuple."""
    return tuple(
        ReviewRecord(reviewed_at=now - timedelta(days=ago), quality=q) for ago, q in entries
    )


@pytest.fixture
def sample(make_item, now):
    return [
        make_item(
            "m",
            ease_factor=2.6,
            level=RetentionLevel.MASTERED,
            history=_reviews(now, (1, 5), (0, 5)),
        ),
        make_item(
            "n",
            ease_factor=2.0,
            level=RetentionLevel.NOVICE,
            history=_reviews(now, (10, 3), (2, 3)),
        ),
    ]


def test_statistics(calc, sample, now):
    stats = calc.statistics(sample, now)

    assert stats.total_items == 2
    assert stats.by_retention_level[RetentionLevel.MASTERED] == 1
    assert stats.by_retention_level[RetentionLevel.NOVICE] == 1
    assert stats.by_retention_level[RetentionLevel.ADVANCED] == 0
    assert stats.average_ease_factor == pytest.approx(2.3)
    assert stats.reviews_today == 1
    assert stats.reviews_this_week == 3
    assert stats.total_reviews == 4
    assert stats.average_quality == pytest.approx(4.0)
    assert (stats.streak, stats.longest_streak) == (3, 3)


def test_report(calc, sample, now):
    report = calc.report(sample, now)

    assert report.distribution.percentages[RetentionLevel.MASTERED] == 50
    assert report.distribution.percentages[RetentionLevel.NOVICE] == 50
    assert report.trend.direction == "improving"
    # 50 + 50*0.5 - 50*0.2 + streak 3 + (4-3)*5
    assert report.health_score == 73
    assert report.recommendations == ["Many items are still new. Review them early and often."]
    assert report.generated_at == now


def test_empty_collection(calc, now):
    report = calc.report([], now)

    assert report.statistics.total_items == 0
    assert report.statistics.streak == 0
    assert set(report.distribution.percentages.values()) == {0}
    assert report.trend.direction == "stable"
    assert report.health_score == 50
    assert report.recommendations == []


def test_streak_must_reach_today(calc, make_item, now):
    items = [make_item("a", history=_reviews(now, (3, 4), (2, 4), (1, 4)))]
    stats = calc.statistics(items, now)

    assert stats.streak == 0
    assert stats.longest_streak == 3


def test_long_streak_is_celebrated(calc, make_item, now):
    items = [make_item("a", history=_reviews(now, *((d, 5) for d in range(8))))]
    report = calc.report(items, now)

    assert report.statistics.streak == 8
    assert "8-day review streak. Great habit!" in report.recommendations


def test_declining_quality(calc, make_item, now):
    items = [make_item("a", history=_reviews(now, (3, 1), (2, 2)))]
    report = calc.report(items, now)

    assert report.trend.direction == "declining"
    assert report.trend.change_percent == -5
    assert "Start today's review: steady repetition is what makes memories stick." in (
        report.recommendations
    )
    assert "Recent review quality is dropping. Consider reviewing more often." in (
        report.recommendations
    )


def test_health_score_is_clamped(calc, make_item, now):
    items = [
        make_item(f"m{i}", level=RetentionLevel.MASTERED, history=_reviews(now, (i, 5)))
        for i in range(12)
    ]
    assert calc.report(items, now).health_score == 100


def test_few_mastered_in_large_collection(calc, make_item, now):
    items = [make_item(f"i{i}", history=_reviews(now, (0, 4))) for i in range(21)]
    report = calc.report(items, now)

    assert "Few items are mastered yet. Keep a consistent review habit." in report.recommendations


@pytest.mark.asyncio
async def test_service_reads_repository(sample, clock):
    repo = MagicMock(get_all_items=AsyncMock(return_value=sample))
    service = RetentionService(repo, clock=clock)

    stats = await service.get_statistics()
    report = await service.get_report()

    assert stats.total_items == 2
    assert report.health_score == 73
    assert repo.get_all_items.await_count == 2
