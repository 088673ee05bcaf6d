"""
Complete review use case.

Applies one review result to an item: next SM-2 state, new retention level,
one more history entry. The item is saved before the result is returned.
"""

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from anamnesis.application.scheduler import calculate_next, estimate_retention_level
from anamnesis.domain.errors import ItemNotFoundError
from anamnesis.domain.models import Item, MemoryState, RetentionLevel, ReviewMode, ReviewRecord
from anamnesis.domain.ports import ItemRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompleteReviewResult:
    item: Item
    previous_memory: MemoryState
    previous_level: RetentionLevel
    new_level: RetentionLevel
    next_review: datetime
    interval: int

    @property
    def level_changed(self) -> bool:
        return self.previous_level != self.new_level

    @property
    def was_new(self) -> bool:
        """First review of an item that had never been studied."""
        return self.previous_memory.repetition == 0 and len(self.item.history) == 1


class CompleteReviewUseCase:
    def __init__(
        self,
        repository: ItemRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._repo = repository
        self._clock = clock

    async def execute(
        self,
        item_id: str,
        quality: int,
        mode: ReviewMode = ReviewMode.QUICK,
        quiz_score: float | None = None,
    ) -> CompleteReviewResult:
        """
        Raises:
            ItemNotFoundError: if the repository has no such item.
            InvalidQualityError: if quality is outside 0-5.
        """
        item = await self._repo.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        now = self._clock()
        memory = calculate_next(item.memory, quality, now)
        record = ReviewRecord(reviewed_at=now, quality=quality, mode=mode, quiz_score=quiz_score)

        updated = dataclasses.replace(
            item,
            memory=memory,
            history=(*item.history, record),
            last_modified=now,
        )
        new_level = estimate_retention_level(updated)
        updated = dataclasses.replace(updated, retention_level=new_level)

        await self._repo.save_item(updated)

        if new_level != item.retention_level:
            logger.info(
                f"[review] {item.title}: {item.retention_level.value} -> {new_level.value}"
            )
        logger.debug(
            f"[review] {item_id} q={quality} next={memory.next_review:%Y-%m-%d} "
            f"interval={memory.interval} ef={memory.ease_factor:.2f}"
        )

        return CompleteReviewResult(
            item=updated,
            previous_memory=item.memory,
            previous_level=item.retention_level,
            new_level=new_level,
            next_review=memory.next_review,
            interval=memory.interval,
        )
