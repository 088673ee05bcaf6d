"""
Session state transitions.

Every function takes the current PersistedSessionData (plus the event) and
returns a new value; nothing is mutated. Budgets are enforced here:
`reviewed_today_ids` never exceeds `daily_limit` and
`new_items_introduced_ids` never exceeds `new_items_per_day`.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from anamnesis.application.id_service import generate_session_id
from anamnesis.application.scheduler import is_due, optimize_review_order
from anamnesis.application.utils.dates import today_string
from anamnesis.domain.constants import NEVER_REVIEWED
from anamnesis.domain.grouping import AnnotatedCluster
from anamnesis.domain.models import Item
from anamnesis.domain.session import (
    DailyReviewQueue,
    FocusSession,
    PersistedSessionData,
    SessionConfig,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def roll_over(data: PersistedSessionData | None, today: str) -> PersistedSessionData:
    """
    Start a new day if `today` differs from the last active date.

    Daily counters reset; the current session and per-cluster review dates
    carry over, since a session may span midnight.
    """
    if data is None:
        return PersistedSessionData(last_active_date=today)
    if data.last_active_date == today:
        return data

    logger.info(
        f"[session] Day rollover {data.last_active_date or '-'} -> {today}: "
        f"resetting {len(data.reviewed_today_ids)} reviewed, "
        f"{len(data.new_items_introduced_ids)} introduced"
    )
    return data.model_copy(
        update={
            "last_active_date": today,
            "reviewed_today_ids": [],
            "new_items_introduced_ids": [],
        }
    )


def select_today_review_items(
    data: PersistedSessionData,
    config: SessionConfig,
    items: Sequence[Item],
    clusters: Sequence[AnnotatedCluster],
    now: datetime,
) -> tuple[PersistedSessionData, list[Item]]:
    """
    Pick today's review items within the remaining daily budget.

    Order of preference:
    1. Due items still remaining in the active focus session
    2. A new focus session on the due cluster reviewed longest ago
    3. All due items in optimized review order
    """
    reviewed = set(data.reviewed_today_ids)
    due = [item for item in items if item.id not in reviewed and is_due(item, now)]

    remaining_slots = config.daily_limit - len(data.reviewed_today_ids)
    if remaining_slots <= 0:
        logger.debug("[session] Daily limit reached, nothing to select")
        return data, []

    session = data.current_session
    if session is not None and session.is_active:
        picked = _session_items(session, due)
        if picked:
            return data, picked[:remaining_slots]
        data = complete_session(data, now)

    data, session = _start_next_session(data, due, clusters, now)
    if session is not None:
        return data, _session_items(session, due)[:remaining_slots]

    logger.debug(f"[session] No eligible cluster, ordering {len(due)} due items")
    return data, optimize_review_order(due, now)[:remaining_slots]


def select_new_items_to_introduce(
    data: PersistedSessionData,
    config: SessionConfig,
    candidates: Sequence[Item],
    clusters: Sequence[AnnotatedCluster],
) -> list[Item]:
    """
    Pick unintroduced items to bring in today, preferring members of the
    current session's cluster. Does not change state; introductions are
    recorded by `mark_reviewed(..., is_new=True)`.
    """
    remaining_slots = config.new_items_per_day - len(data.new_items_introduced_ids)
    if remaining_slots <= 0:
        return []

    introduced = set(data.new_items_introduced_ids)
    pending = [item for item in candidates if item.id not in introduced]

    session = data.current_session
    if session is None:
        return pending[:remaining_slots]

    cluster = next((c for c in clusters if c.id == session.cluster_id), None)
    members = set(cluster.item_ids if cluster is not None else session.item_ids)
    same_cluster = [item for item in pending if item.id in members]
    others = [item for item in pending if item.id not in members]
    return (same_cluster + others)[:remaining_slots]


def mark_reviewed(
    data: PersistedSessionData,
    config: SessionConfig,
    item_id: str,
    is_new: bool,
    now: datetime,
) -> PersistedSessionData:
    """
    Record a finished review. Idempotent per item and day.

    A review beyond the daily limit is refused (state unchanged). A new item
    beyond the new-item budget still counts as a review but not as an
    introduction. The active session completes once nothing remains.
    """
    reviewed = list(data.reviewed_today_ids)
    introduced = list(data.new_items_introduced_ids)

    if item_id not in reviewed:
        if len(reviewed) >= config.daily_limit:
            logger.warning(
                f"[session] Daily limit {config.daily_limit} reached, not recording {item_id}"
            )
            return data
        reviewed.append(item_id)

    if is_new and item_id not in introduced:
        if len(introduced) >= config.new_items_per_day:
            logger.warning(
                f"[session] New-item limit {config.new_items_per_day} reached, "
                f"{item_id} not recorded as introduced"
            )
        else:
            introduced.append(item_id)

    updates: dict = {
        "reviewed_today_ids": reviewed,
        "new_items_introduced_ids": introduced,
    }

    session = data.current_session
    if session is not None:
        session_reviewed = list(session.reviewed_today_ids)
        if item_id not in session_reviewed:
            session_reviewed.append(item_id)
        session = session.model_copy(
            update={
                "remaining_ids": [i for i in session.remaining_ids if i != item_id],
                "reviewed_today_ids": session_reviewed,
                "last_active_at": now,
            }
        )
        updates["current_session"] = session

    data = data.model_copy(update=updates)

    if session is not None and session.is_active and not session.remaining_ids:
        data = complete_session(data, now)
    return data


def start_session_for_cluster(
    data: PersistedSessionData,
    cluster: AnnotatedCluster,
    due_ids: Iterable[str],
    now: datetime,
) -> tuple[PersistedSessionData, FocusSession]:
    """
    Install a new active focus session on `cluster`, replacing any current
    one. Remaining ids are the due ids that belong to the cluster.
    """
    members = list(cluster.item_ids)
    member_set = set(members)
    remaining: list[str] = []
    for item_id in due_ids:
        if item_id in member_set and item_id not in remaining:
            remaining.append(item_id)

    session = FocusSession(
        id=generate_session_id(),
        cluster_id=cluster.id,
        cluster_label=cluster.label,
        item_ids=members,
        remaining_ids=remaining,
        reviewed_today_ids=[],
        started_at=now,
        last_active_at=now,
        status=SessionStatus.ACTIVE,
    )
    logger.info(
        f"[session] Started focus session on '{cluster.label}' "
        f"({len(remaining)}/{len(members)} due)"
    )
    return data.model_copy(update={"current_session": session}), session


def complete_session(data: PersistedSessionData, now: datetime) -> PersistedSessionData:
    """Drop the current session and stamp its cluster as reviewed today."""
    session = data.current_session
    if session is None:
        return data

    logger.info(f"[session] Completed focus session on '{session.cluster_label}'")
    return data.model_copy(
        update={
            "current_session": None,
            "cluster_last_reviewed": {
                **data.cluster_last_reviewed,
                session.cluster_id: today_string(now),
            },
        }
    )


def pause_session(data: PersistedSessionData) -> PersistedSessionData:
    session = data.current_session
    if session is None or session.status != SessionStatus.ACTIVE:
        return data
    paused = session.model_copy(update={"status": SessionStatus.PAUSED})
    return data.model_copy(update={"current_session": paused})


def resume_session(data: PersistedSessionData, now: datetime) -> PersistedSessionData:
    session = data.current_session
    if session is None or session.status != SessionStatus.PAUSED:
        return data
    resumed = session.model_copy(
        update={"status": SessionStatus.ACTIVE, "last_active_at": now}
    )
    return data.model_copy(update={"current_session": resumed})


def daily_queue(data: PersistedSessionData, config: SessionConfig) -> DailyReviewQueue:
    return DailyReviewQueue(
        date=data.last_active_date,
        focus_session=data.current_session,
        reviewed_count=len(data.reviewed_today_ids),
        daily_limit=config.daily_limit,
        new_items_introduced=len(data.new_items_introduced_ids),
        new_items_limit=config.new_items_per_day,
    )


def _session_items(session: FocusSession, due: Sequence[Item]) -> list[Item]:
    remaining = set(session.remaining_ids)
    return [item for item in due if item.id in remaining]


def _start_next_session(
    data: PersistedSessionData,
    due: Sequence[Item],
    clusters: Sequence[AnnotatedCluster],
    now: datetime,
) -> tuple[PersistedSessionData, FocusSession | None]:
    """Open a session on the due cluster reviewed longest ago (most due breaks ties)."""
    if not clusters:
        return data, None

    due_ids = [item.id for item in due]
    due_set = set(due_ids)

    eligible = []
    for cluster in clusters:
        due_count = sum(1 for item_id in cluster.item_ids if item_id in due_set)
        if due_count > 0:
            last = data.cluster_last_reviewed.get(cluster.id, NEVER_REVIEWED)
            eligible.append((last, -due_count, cluster))

    if not eligible:
        return data, None

    eligible.sort(key=lambda entry: (entry[0], entry[1]))
    return start_session_for_cluster(data, eligible[0][2], due_ids, now)
