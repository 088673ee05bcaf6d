"""
Register item use case.

Adds a note to the review system, or refreshes the title and tags of one
that is already registered (its memory state is left alone).
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from anamnesis.application.id_service import generate_item_id
from anamnesis.domain.models import Item, MemoryState
from anamnesis.domain.ports import ItemRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisterItemRequest:
    path: str
    title: str
    tags: tuple[str, ...] = ()
    initial_next_review: datetime | None = None


@dataclass(frozen=True)
class RegisterItemResult:
    item: Item
    is_new: bool


class RegisterItemUseCase:
    def __init__(
        self,
        repository: ItemRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._repo = repository
        self._clock = clock

    async def execute(
        self,
        path: str,
        title: str,
        tags: Iterable[str] = (),
        initial_next_review: datetime | None = None,
    ) -> RegisterItemResult:
        item_id = generate_item_id(path)
        now = self._clock()
        existing = await self._repo.get_item(item_id)

        if existing is not None:
            updated = dataclasses.replace(
                existing, title=title, tags=tuple(tags), last_modified=now
            )
            await self._repo.save_item(updated)
            return RegisterItemResult(item=updated, is_new=False)

        item = Item(
            id=item_id,
            path=path,
            title=title,
            memory=MemoryState(next_review=initial_next_review or now),
            tags=tuple(tags),
            created_at=now,
            last_modified=now,
        )
        await self._repo.save_item(item)
        logger.debug(f"[register] {path} -> {item_id}")
        return RegisterItemResult(item=item, is_new=True)

    async def execute_batch(
        self, requests: Iterable[RegisterItemRequest]
    ) -> list[RegisterItemResult]:
        """Register several notes one after another."""
        results = []
        for req in requests:
            results.append(
                await self.execute(req.path, req.title, req.tags, req.initial_next_review)
            )

        created = sum(1 for r in results if r.is_new)
        logger.info(f"[register] {created} created, {len(results) - created} updated")
        return results
