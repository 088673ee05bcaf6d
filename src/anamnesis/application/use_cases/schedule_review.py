"""
Schedule review use case.

Collects what needs reviewing today, what is overdue and what is coming up,
and proposes a review order.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from anamnesis.application.scheduler import get_due_items, get_overdue_items, optimize_review_order
from anamnesis.application.utils.dates import add_days, calendar_day
from anamnesis.domain.constants import DEFAULT_UPCOMING_DAYS
from anamnesis.domain.models import Item
from anamnesis.domain.ports import ItemRepository

logger = logging.getLogger(__name__)


@dataclass
class ReviewSchedule:
    due_today: list[Item] = field(default_factory=list)
    overdue: list[Item] = field(default_factory=list)
    upcoming: list[Item] = field(default_factory=list)
    total_due: int = 0
    suggested_order: list[str] = field(default_factory=list)


class ScheduleReviewUseCase:
    def __init__(
        self,
        repository: ItemRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._repo = repository
        self._clock = clock

    async def execute(
        self, include_upcoming: bool = True, upcoming_days: int = DEFAULT_UPCOMING_DAYS
    ) -> ReviewSchedule:
        """
        Build today's review schedule.

        `due_today` includes overdue items; `overdue` is the subset more than
        a day late. `upcoming` covers the next `upcoming_days` calendar days.
        """
        items = await self._repo.get_all_items()
        if not items:
            return ReviewSchedule()

        now = self._clock()
        due = get_due_items(items, now)
        overdue = get_overdue_items(items, now)

        upcoming: list[Item] = []
        if include_upcoming:
            today = calendar_day(now)
            horizon = calendar_day(add_days(now, upcoming_days))
            upcoming = [
                item
                for item in items
                if today < calendar_day(item.memory.next_review) <= horizon
            ]

        order = optimize_review_order(due, now)
        logger.debug(
            f"[schedule] {len(due)} due ({len(overdue)} overdue), {len(upcoming)} upcoming"
        )

        return ReviewSchedule(
            due_today=due,
            overdue=overdue,
            upcoming=upcoming,
            total_due=len(due),
            suggested_order=[item.id for item in order],
        )
