from datetime import datetime, timedelta

import pytest

from anamnesis.application.session import (
    complete_session,
    daily_queue,
    mark_reviewed,
    pause_session,
    resume_session,
    roll_over,
    select_new_items_to_introduce,
    select_today_review_items,
    start_session_for_cluster,
)
from anamnesis.domain.grouping import AnnotatedCluster
from anamnesis.domain.session import (
    FocusSession,
    PersistedSessionData,
    SessionConfig,
    SessionStatus,
)

NOW = datetime(2025, 3, 10, 9, 30)
TODAY = "2025-03-10"


@pytest.fixture
def config():
    return SessionConfig(daily_limit=5, new_items_per_day=2)


@pytest.fixture
def fresh():
    return PersistedSessionData(last_active_date=TODAY)


def _cluster(cluster_id, *ids, due=0):
    return AnnotatedCluster(
        id=cluster_id, label=cluster_id.title(), item_ids=tuple(ids), due_count=due,
        total_count=len(ids),
    )


def _session(cluster_id, members, remaining, status=SessionStatus.ACTIVE):
    return FocusSession(
        id="session_test",
        cluster_id=cluster_id,
        cluster_label=cluster_id.title(),
        item_ids=list(members),
        remaining_ids=list(remaining),
        started_at=NOW,
        last_active_at=NOW,
        status=status,
    )


def _ids(items):
    return [i.id for i in items]


# ---------- rollover ----------


def test_roll_over_without_data_starts_fresh():
    data = roll_over(None, TODAY)
    assert data.last_active_date == TODAY
    assert data.current_session is None
    assert data.reviewed_today_ids == []


def test_roll_over_same_day_is_unchanged(fresh):
    data = fresh.model_copy(update={"reviewed_today_ids": ["a"]})
    assert roll_over(data, TODAY) is data


def test_roll_over_new_day_resets_counters_only():
    session = _session("c1", ["a", "b"], ["b"])
    data = PersistedSessionData(
        current_session=session,
        last_active_date="2025-03-09",
        reviewed_today_ids=["a"],
        new_items_introduced_ids=["a"],
        cluster_last_reviewed={"c0": "2025-03-01"},
    )
    rolled = roll_over(data, TODAY)

    assert rolled.last_active_date == TODAY
    assert rolled.reviewed_today_ids == []
    assert rolled.new_items_introduced_ids == []
    assert rolled.current_session == session
    assert rolled.cluster_last_reviewed == {"c0": "2025-03-01"}
    # The input value is untouched.
    assert data.reviewed_today_ids == ["a"]


# ---------- select_today_review_items ----------


def test_daily_limit_reached_selects_nothing(config, make_item):
    data = PersistedSessionData(last_active_date=TODAY, reviewed_today_ids=list("vwxyz"))
    new_data, items = select_today_review_items(data, config, [make_item("a")], [], NOW)
    assert items == []
    assert new_data is data


def test_fallback_orders_due_items_and_applies_budget(config, fresh, make_item):
    items = [
        make_item("later", due_in=3),
        make_item("today", due_in=0),
        make_item("late", due_in=-4),
        make_item("done", due_in=0),
    ]
    data = fresh.model_copy(update={"reviewed_today_ids": ["done"]})
    new_data, selected = select_today_review_items(data, config, items, [], NOW)

    assert _ids(selected) == ["late", "today"]
    assert new_data.current_session is None


def test_fallback_truncates_to_remaining_slots(fresh, make_item):
    config = SessionConfig(daily_limit=2)
    items = [make_item(x) for x in "abcd"]
    _, selected = select_today_review_items(fresh, config, items, [], NOW)
    assert _ids(selected) == ["a", "b"]


def test_active_session_returns_its_due_remaining_items(config, fresh, make_item):
    items = [make_item(x) for x in "abcd"]
    data = fresh.model_copy(update={"current_session": _session("c1", "abc", "cb")})
    new_data, selected = select_today_review_items(data, config, items, [], NOW)

    # Due-set order, not remaining order.
    assert _ids(selected) == ["b", "c"]
    assert new_data is data


def test_new_session_starts_on_never_reviewed_cluster(config, fresh, make_item):
    items = [make_item(x) for x in "abcdef"]
    clusters = [_cluster("old", "a", "b", "c"), _cluster("new", "d", "e", "f")]
    data = fresh.model_copy(update={"cluster_last_reviewed": {"old": "2025-03-01"}})

    new_data, selected = select_today_review_items(data, config, items, clusters, NOW)

    session = new_data.current_session
    assert session.cluster_id == "new"
    assert session.status == SessionStatus.ACTIVE
    assert session.remaining_ids == ["d", "e", "f"]
    assert session.item_ids == ["d", "e", "f"]
    assert _ids(selected) == ["d", "e", "f"]


def test_least_recently_reviewed_cluster_wins(config, fresh, make_item):
    items = [make_item(x) for x in "abcdef"]
    clusters = [_cluster("recent", "a", "b", "c"), _cluster("stale", "d", "e", "f")]
    data = fresh.model_copy(
        update={"cluster_last_reviewed": {"recent": "2025-03-09", "stale": "2025-02-01"}}
    )
    new_data, _ = select_today_review_items(data, config, items, clusters, NOW)
    assert new_data.current_session.cluster_id == "stale"


def test_tie_goes_to_cluster_with_more_due_items(config, fresh, make_item):
    items = [make_item("a", due_in=5), make_item("b"), make_item("c"), make_item("d"),
             make_item("e"), make_item("f")]
    clusters = [_cluster("few", "a", "b", "c", due=3), _cluster("many", "d", "e", "f")]
    new_data, _ = select_today_review_items(fresh, config, items, clusters, NOW)
    # Due counts are recomputed: "few" has 2 due, "many" has 3.
    assert new_data.current_session.cluster_id == "many"


def test_full_tie_keeps_input_order(config, fresh, make_item):
    items = [make_item(x) for x in "abcdef"]
    clusters = [_cluster("first", "a", "b", "c"), _cluster("second", "d", "e", "f")]
    new_data, _ = select_today_review_items(fresh, config, items, clusters, NOW)
    assert new_data.current_session.cluster_id == "first"


def test_session_remaining_only_holds_due_members(config, fresh, make_item):
    items = [make_item("a"), make_item("b", due_in=4), make_item("c")]
    clusters = [_cluster("c1", "a", "b", "c")]
    new_data, selected = select_today_review_items(fresh, config, items, clusters, NOW)

    assert new_data.current_session.remaining_ids == ["a", "c"]
    assert _ids(selected) == ["a", "c"]


def test_exhausted_session_completes_and_next_cluster_starts(config, fresh, make_item):
    items = [make_item("a", due_in=3), make_item("d"), make_item("e"), make_item("f")]
    clusters = [_cluster("c1", "a", "b", "c"), _cluster("c2", "d", "e", "f")]
    data = fresh.model_copy(update={"current_session": _session("c1", "abc", "a")})

    new_data, selected = select_today_review_items(data, config, items, clusters, NOW)

    assert new_data.cluster_last_reviewed["c1"] == TODAY
    assert new_data.current_session.cluster_id == "c2"
    assert _ids(selected) == ["d", "e", "f"]


def test_exhausted_session_without_other_clusters_falls_back(config, fresh, make_item):
    items = [make_item("x"), make_item("a", due_in=3)]
    data = fresh.model_copy(update={"current_session": _session("c1", "abc", "a")})

    new_data, selected = select_today_review_items(data, config, items, [], NOW)

    assert new_data.current_session is None
    assert new_data.cluster_last_reviewed == {"c1": TODAY}
    assert _ids(selected) == ["x"]


def test_paused_session_is_replaced_by_a_new_one(config, fresh, make_item):
    items = [make_item(x) for x in "abcdef"]
    clusters = [_cluster("c1", "a", "b", "c"), _cluster("c2", "d", "e", "f")]
    data = fresh.model_copy(
        update={
            "current_session": _session("c1", "abc", "abc", status=SessionStatus.PAUSED),
            "cluster_last_reviewed": {"c1": "2025-03-01"},
        }
    )
    new_data, _ = select_today_review_items(data, config, items, clusters, NOW)

    assert new_data.current_session.cluster_id == "c2"
    assert new_data.current_session.status == SessionStatus.ACTIVE


def test_clusters_without_due_items_fall_back(config, fresh, make_item):
    items = [make_item("a", due_in=2), make_item("b", due_in=2), make_item("c", due_in=2),
             make_item("x")]
    clusters = [_cluster("c1", "a", "b", "c")]
    new_data, selected = select_today_review_items(fresh, config, items, clusters, NOW)

    assert new_data.current_session is None
    assert _ids(selected) == ["x"]


def test_reviewed_items_are_never_selected_again(config, fresh, make_item):
    items = [make_item(x) for x in "abc"]
    clusters = [_cluster("c1", "a", "b", "c")]
    data = fresh.model_copy(update={"reviewed_today_ids": ["b"]})
    new_data, selected = select_today_review_items(data, config, items, clusters, NOW)

    assert "b" not in _ids(selected)
    assert "b" not in new_data.current_session.remaining_ids


# ---------- select_new_items_to_introduce ----------


def test_new_items_respect_budget_and_skip_introduced(config, fresh, make_item):
    candidates = [make_item(x) for x in "abcd"]
    data = fresh.model_copy(update={"new_items_introduced_ids": ["a"]})
    assert _ids(select_new_items_to_introduce(data, config, candidates, [])) == ["b"]


def test_new_items_budget_exhausted(config, fresh, make_item):
    data = fresh.model_copy(update={"new_items_introduced_ids": ["x", "y"]})
    assert select_new_items_to_introduce(data, config, [make_item("a")], []) == []


def test_new_items_prefer_current_cluster(config, fresh, make_item):
    candidates = [make_item(x) for x in "abcd"]
    clusters = [_cluster("c1", "k", "c", "d")]
    data = fresh.model_copy(update={"current_session": _session("c1", "kcd", "k")})

    assert _ids(select_new_items_to_introduce(data, config, candidates, clusters)) == ["c", "d"]


def test_new_items_use_session_members_when_cluster_is_gone(config, fresh, make_item):
    candidates = [make_item(x) for x in "abcd"]
    data = fresh.model_copy(update={"current_session": _session("gone", "kd", "k")})

    assert _ids(select_new_items_to_introduce(data, config, candidates, [])) == ["d", "a"]


def test_selecting_new_items_does_not_change_state(config, fresh, make_item):
    select_new_items_to_introduce(fresh, config, [make_item("a")], [])
    assert fresh.new_items_introduced_ids == []


# ---------- mark_reviewed ----------


def test_mark_reviewed_is_idempotent(config, fresh):
    once = mark_reviewed(fresh, config, "a", True, NOW)
    twice = mark_reviewed(once, config, "a", True, NOW)

    assert twice.reviewed_today_ids == ["a"]
    assert twice.new_items_introduced_ids == ["a"]


def test_mark_reviewed_never_exceeds_daily_limit(config, fresh):
    data = fresh
    for i in range(10):
        data = mark_reviewed(data, config, f"n{i}", False, NOW)

    assert len(data.reviewed_today_ids) == config.daily_limit
    assert data.reviewed_today_ids == [f"n{i}" for i in range(5)]


def test_new_item_beyond_budget_counts_only_as_review(config, fresh):
    data = fresh
    for item_id in "abc":
        data = mark_reviewed(data, config, item_id, True, NOW)

    assert data.reviewed_today_ids == ["a", "b", "c"]
    assert data.new_items_introduced_ids == ["a", "b"]


def test_mark_reviewed_advances_session(config, fresh):
    data = fresh.model_copy(update={"current_session": _session("c1", "abc", "abc")})
    later = NOW + timedelta(minutes=5)
    data = mark_reviewed(data, config, "b", False, later)

    session = data.current_session
    assert session.remaining_ids == ["a", "c"]
    assert session.reviewed_today_ids == ["b"]
    assert session.last_active_at == later


def test_last_review_completes_session(config, fresh):
    data = fresh.model_copy(update={"current_session": _session("c1", "abc", "a")})
    data = mark_reviewed(data, config, "a", False, NOW)

    assert data.current_session is None
    assert data.cluster_last_reviewed == {"c1": TODAY}


def test_paused_session_shrinks_but_never_completes(config, fresh):
    paused = _session("c1", "abc", "a", status=SessionStatus.PAUSED)
    data = fresh.model_copy(update={"current_session": paused})
    data = mark_reviewed(data, config, "a", False, NOW)

    assert data.current_session is not None
    assert data.current_session.remaining_ids == []
    assert data.current_session.status == SessionStatus.PAUSED
    assert data.cluster_last_reviewed == {}


def test_refused_review_leaves_session_alone(fresh):
    config = SessionConfig(daily_limit=1)
    data = fresh.model_copy(
        update={"reviewed_today_ids": ["x"], "current_session": _session("c1", "ab", "ab")}
    )
    assert mark_reviewed(data, config, "a", False, NOW) is data


# ---------- explicit session control ----------


def test_start_session_for_cluster_replaces_current(fresh):
    data = fresh.model_copy(update={"current_session": _session("c1", "ab", "ab")})
    cluster = _cluster("c2", "x", "y", "z")

    new_data, session = start_session_for_cluster(data, cluster, ["z", "q", "x", "z"], NOW)

    assert new_data.current_session == session
    assert session.cluster_id == "c2"
    assert session.remaining_ids == ["z", "x"]
    assert session.item_ids == ["x", "y", "z"]
    assert session.id.startswith("session_")
    assert session.started_at == NOW


def test_pause_and_resume(fresh):
    data = fresh.model_copy(update={"current_session": _session("c1", "ab", "ab")})

    paused = pause_session(data)
    assert paused.current_session.status == SessionStatus.PAUSED
    assert pause_session(paused) is paused

    later = NOW + timedelta(hours=1)
    resumed = resume_session(paused, later)
    assert resumed.current_session.status == SessionStatus.ACTIVE
    assert resumed.current_session.last_active_at == later
    assert resume_session(resumed, later) is resumed


def test_pause_and_resume_without_session_are_noops(fresh):
    assert pause_session(fresh) is fresh
    assert resume_session(fresh, NOW) is fresh


def test_complete_without_session_is_noop(fresh):
    assert complete_session(fresh, NOW) is fresh


def test_daily_queue_snapshot(config, fresh):
    data = fresh.model_copy(
        update={"reviewed_today_ids": ["a", "b"], "new_items_introduced_ids": ["b"]}
    )
    queue = daily_queue(data, config)

    assert queue.date == TODAY
    assert queue.reviewed_count == 2
    assert queue.remaining_reviews == 3
    assert queue.new_items_introduced == 1
    assert queue.remaining_new_items == 1
    assert queue.focus_session is None


# ---------- persisted layout ----------


def test_storage_layout_uses_camel_case_keys(fresh):
    data = fresh.model_copy(
        update={
            "current_session": _session("c1", "ab", "b"),
            "new_items_introduced_ids": ["a"],
            "cluster_last_reviewed": {"c0": "2025-03-01"},
        }
    )
    stored = data.to_storage()

    assert set(stored) == {
        "currentSession",
        "lastActiveDate",
        "reviewedTodayIds",
        "newCardsIntroducedIds",
        "clusterLastReviewed",
    }
    assert stored["currentSession"]["noteIds"] == ["a", "b"]
    assert stored["currentSession"]["remainingNoteIds"] == ["b"]
    assert stored["currentSession"]["status"] == "active"
    assert PersistedSessionData.model_validate(stored).to_storage() == stored


def test_remaining_ids_must_be_members():
    with pytest.raises(ValueError):
        _session("c1", "ab", "abz")
