"""
Review session manager.

Stateful facade over the pure transitions in anamnesis.application.session.
Holds one PersistedSessionData value, the session budgets and a clock, and
swaps in the new value after every operation. Callers persist
`get_persisted_data()` after each meaningful change.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

from anamnesis.application import session as transitions
from anamnesis.application.utils.dates import today_string
from anamnesis.domain.grouping import AnnotatedCluster
from anamnesis.domain.models import Item
from anamnesis.domain.session import (
    DailyReviewQueue,
    FocusSession,
    PersistedSessionData,
    SessionConfig,
)

logger = logging.getLogger(__name__)


class ReviewSessionManager:
    """
    Selects today's work and records progress against the daily budgets.

    Not safe for interleaved use: one caller at a time.
    """

    def __init__(
        self,
        persisted: PersistedSessionData | None,
        config: SessionConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            persisted: State loaded from the session store, or None on first run.
            config: Budgets; defaults apply when omitted.
            clock: Source of "now", injectable for tests.
        """
        self._config = config or SessionConfig()
        self._clock = clock
        self._data = transitions.roll_over(persisted, today_string(clock()))

    @property
    def config(self) -> SessionConfig:
        return self._config

    def update_config(self, **changes) -> None:
        self._config = self._config.model_copy(update=changes)

    def select_today_review_items(
        self, items: Sequence[Item], clusters: Sequence[AnnotatedCluster]
    ) -> list[Item]:
        now = self._sync_day()
        self._data, selected = transitions.select_today_review_items(
            self._data, self._config, items, clusters, now
        )
        return selected

    def select_new_items_to_introduce(
        self, candidates: Sequence[Item], clusters: Sequence[AnnotatedCluster]
    ) -> list[Item]:
        self._sync_day()
        return transitions.select_new_items_to_introduce(
            self._data, self._config, candidates, clusters
        )

    def mark_reviewed(self, item_id: str, is_new: bool = False) -> None:
        now = self._sync_day()
        self._data = transitions.mark_reviewed(
            self._data, self._config, item_id, is_new, now
        )

    def start_session_for_cluster(
        self, cluster: AnnotatedCluster, due_ids: Iterable[str]
    ) -> FocusSession:
        now = self._sync_day()
        self._data, session = transitions.start_session_for_cluster(
            self._data, cluster, due_ids, now
        )
        return session

    def pause_current_session(self) -> None:
        self._sync_day()
        self._data = transitions.pause_session(self._data)

    def resume_current_session(self) -> None:
        now = self._sync_day()
        self._data = transitions.resume_session(self._data, now)

    def get_current_session(self) -> FocusSession | None:
        return self._data.current_session

    def get_daily_queue(self) -> DailyReviewQueue:
        self._sync_day()
        return transitions.daily_queue(self._data, self._config)

    def get_persisted_data(self) -> PersistedSessionData:
        return self._data

    def _sync_day(self) -> datetime:
        # Long-running processes cross midnight too.
        now = self._clock()
        self._data = transitions.roll_over(self._data, today_string(now))
        return now
