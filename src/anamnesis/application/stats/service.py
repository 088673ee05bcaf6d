"""
Retention Service: Application layer orchestrator.

Coordinates fetching items from the repository and computing retention
statistics over them.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from anamnesis.domain.ports import ItemRepository
from anamnesis.domain.stats.models import RetentionReport, ReviewStatistics

from .retention_calculator import RetentionCalculator

logger = logging.getLogger(__name__)


class RetentionService:
    """
    Application service for retention statistics.

    Depends on the ItemRepository abstraction, not on a concrete adapter.
    """

    def __init__(
        self,
        repository: ItemRepository,
        calculator: RetentionCalculator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            repository: The repository (port) holding the items.
            calculator: Optional custom calculator; uses default if not provided.
            clock: Source of "now".
        """
        self._repo = repository
        self._calc = calculator or RetentionCalculator()
        self._clock = clock

    async def get_statistics(self) -> ReviewStatistics:
        items = await self._repo.get_all_items()
        return self._calc.statistics(items, self._clock())

    async def get_report(self) -> RetentionReport:
        """
        Build the full retention report: statistics, level distribution,
        quality trend, health score and recommendations.
        """
        items = await self._repo.get_all_items()
        report = self._calc.report(items, self._clock())
        logger.debug(
            f"[stats] {report.statistics.total_items} items, health {report.health_score}"
        )
        return report
