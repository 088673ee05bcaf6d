"""
Daily planner.

Drives one day of reviewing on top of the ports:
1. Load items, cluster them by embedding similarity (when enabled)
2. Ask the session manager for today's review items and new items
3. Introduce the new items through the repository
4. Record each finished review and persist the session state
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from anamnesis.application.cluster_adapter import annotate_clusters
from anamnesis.application.scheduler import get_due_items
from anamnesis.application.session_manager import ReviewSessionManager
from anamnesis.application.use_cases.complete_review import (
    CompleteReviewResult,
    CompleteReviewUseCase,
)
from anamnesis.application.use_cases.group_similar_items import GroupSimilarItemsUseCase
from anamnesis.domain.constants import SESSION_MAX_GROUP_SIZE
from anamnesis.domain.grouping import AnnotatedCluster
from anamnesis.domain.models import Item, ReviewMode
from anamnesis.domain.ports import EmbeddingSource, ItemRepository, SessionStore
from anamnesis.domain.session import DailyReviewQueue, FocusSession, SessionConfig

logger = logging.getLogger(__name__)


@dataclass
class DailyPlan:
    review_items: list[Item] = field(default_factory=list)
    new_items: list[Item] = field(default_factory=list)
    clusters: list[AnnotatedCluster] = field(default_factory=list)
    queue: DailyReviewQueue | None = None


class DailyPlanner:
    def __init__(
        self,
        repository: ItemRepository,
        store: SessionStore,
        embeddings: EmbeddingSource | None = None,
        config: SessionConfig | None = None,
        group_similar: bool = True,
        max_group_size: int = SESSION_MAX_GROUP_SIZE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._repo = repository
        self._store = store
        self._embeddings = embeddings
        self._config = config or SessionConfig()
        self._group_similar = group_similar
        self._max_group_size = max_group_size
        self._clock = clock
        self._manager: ReviewSessionManager | None = None

    async def session_manager(self) -> ReviewSessionManager:
        """Load persisted state once and keep the manager for this planner's lifetime."""
        if self._manager is None:
            persisted = await self._store.load()
            self._manager = ReviewSessionManager(persisted, self._config, clock=self._clock)
        return self._manager

    async def build_clusters(self, items: list[Item]) -> list[AnnotatedCluster]:
        if not self._group_similar or self._embeddings is None:
            return []

        grouping = GroupSimilarItemsUseCase(self._embeddings)
        result = await grouping.execute(
            [item.id for item in items],
            threshold=self._config.similarity_threshold,
            max_group_size=self._max_group_size,
        )
        due_ids = [item.id for item in get_due_items(items, self._clock())]
        return annotate_clusters(result.groups, due_ids, self._config.cluster_min_size)

    async def plan_today(self) -> DailyPlan:
        manager = await self.session_manager()
        items = await self._repo.get_all_items()
        clusters = await self.build_clusters(items)

        review_items = manager.select_today_review_items(items, clusters)

        unintroduced = await self._repo.get_unintroduced_items()
        new_items = manager.select_new_items_to_introduce(unintroduced, clusters)
        for item in new_items:
            await self._repo.introduce_item(item.id)

        await self._persist()

        logger.info(
            f"[planner] {len(review_items)} to review, {len(new_items)} new, "
            f"{len(clusters)} clusters"
        )
        return DailyPlan(
            review_items=review_items,
            new_items=new_items,
            clusters=clusters,
            queue=manager.get_daily_queue(),
        )

    async def record_review(
        self,
        item_id: str,
        quality: int,
        mode: ReviewMode = ReviewMode.QUICK,
        is_new: bool | None = None,
        quiz_score: float | None = None,
    ) -> CompleteReviewResult:
        """
        Apply a review to the item and count it against today's budgets.

        A first review of a never-studied item counts against the new-item
        budget unless `is_new` says otherwise.

        Raises:
            ItemNotFoundError: if the item does not exist.
            InvalidQualityError: if quality is outside 0-5.
        """
        manager = await self.session_manager()
        result = await CompleteReviewUseCase(self._repo, clock=self._clock).execute(
            item_id, quality, mode, quiz_score
        )
        if is_new is None:
            is_new = result.was_new
        manager.mark_reviewed(item_id, is_new)
        await self._persist()
        return result

    async def pause_session(self) -> FocusSession | None:
        manager = await self.session_manager()
        manager.pause_current_session()
        await self._persist()
        return manager.get_current_session()

    async def resume_session(self) -> FocusSession | None:
        manager = await self.session_manager()
        manager.resume_current_session()
        await self._persist()
        return manager.get_current_session()

    async def daily_queue(self) -> DailyReviewQueue:
        manager = await self.session_manager()
        return manager.get_daily_queue()

    async def _persist(self) -> None:
        await self._store.save(self._manager.get_persisted_data())
