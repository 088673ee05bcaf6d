"""
Focus-session and persisted session state.

These models are immutable values; every change produces a new instance
(see anamnesis.application.session). They serialize to the camelCase JSON
layout used by the session store.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_DAILY_LIMIT,
    DEFAULT_NEW_ITEMS_PER_DAY,
    DEFAULT_SESSION_SIMILARITY_THRESHOLD,
)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class _StateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_storage(self) -> dict:
        """Dump to the JSON-ready camelCase layout."""
        return self.model_dump(mode="json", by_alias=True)


class FocusSession(_StateModel):
    """
    An in-progress review pass restricted to one similarity cluster.

    Status moves active -> completed (remaining empties), active -> paused
    or paused -> active. Completed sessions are dropped, never resumed.
    """

    id: str
    cluster_id: str
    cluster_label: str
    item_ids: list[str] = Field(default_factory=list, alias="noteIds")
    remaining_ids: list[str] = Field(default_factory=list, alias="remainingNoteIds")
    reviewed_today_ids: list[str] = Field(default_factory=list)
    started_at: datetime
    last_active_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE

    @model_validator(mode="after")
    def _remaining_within_members(self) -> "FocusSession":
        members = set(self.item_ids)
        stray = [i for i in self.remaining_ids if i not in members]
        if stray:
            raise ValueError(f"remaining ids outside the session cluster: {stray}")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE


class PersistedSessionData(_StateModel):
    """The sole unit of cross-restart session state."""

    current_session: FocusSession | None = None
    last_active_date: str = ""  # YYYY-MM-DD
    reviewed_today_ids: list[str] = Field(default_factory=list)
    new_items_introduced_ids: list[str] = Field(
        default_factory=list, alias="newCardsIntroducedIds"
    )
    cluster_last_reviewed: dict[str, str] = Field(default_factory=dict)


class SessionConfig(BaseModel):
    """Budgets and grouping parameters for the session manager."""

    model_config = ConfigDict(frozen=True)

    daily_limit: int = Field(default=DEFAULT_DAILY_LIMIT, ge=0)
    new_items_per_day: int = Field(default=DEFAULT_NEW_ITEMS_PER_DAY, ge=0)
    similarity_threshold: float = Field(default=DEFAULT_SESSION_SIMILARITY_THRESHOLD, ge=-1.0, le=1.0)
    cluster_min_size: int = Field(default=DEFAULT_CLUSTER_MIN_SIZE, ge=1)


class DailyReviewQueue(BaseModel):
    """Snapshot of today's progress against the budgets."""

    model_config = ConfigDict(frozen=True)

    date: str
    focus_session: FocusSession | None
    reviewed_count: int
    daily_limit: int
    new_items_introduced: int
    new_items_limit: int

    @property
    def remaining_reviews(self) -> int:
        return max(0, self.daily_limit - self.reviewed_count)

    @property
    def remaining_new_items(self) -> int:
        return max(0, self.new_items_limit - self.new_items_introduced)
