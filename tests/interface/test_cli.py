"""Tests for the anamnesis CLI: end-to-end against a temporary vault, plus error paths."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from anamnesis.application.id_service import generate_item_id
from anamnesis.application.utils.text import parse_frontmatter
from anamnesis.domain.errors import AnamnesisError
from anamnesis.interface.cli import app

runner = CliRunner()

STUDIED = '---\nsrs:\n  repetition: 1\n  interval: 1\n  easeFactor: 2.5\n  nextReview: "2020-01-01"\n---\nA\n'


@pytest.fixture
def vault(mock_vault, mock_home):
    (mock_vault / "Alpha.md").write_text(STUDIED, encoding="utf-8")
    (mock_vault / "Beta.md").write_text("Beta body\n", encoding="utf-8")
    return mock_vault


def _invoke(vault, *args):
    return runner.invoke(app, ["--vault", str(vault), *args])


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("today", "review", "schedule", "register", "groups", "stats", "session"):
        assert command in result.stdout


# --- today / review / session ---


def test_today_json_plans_and_introduces(vault):
    result = _invoke(vault, "today", "--json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [r["id"] for r in payload["review"]] == [generate_item_id("Alpha.md")]
    assert [r["path"] for r in payload["new"]] == ["Beta.md"]
    assert payload["queue"]["reviewed_count"] == 0
    assert payload["clusters"] == 0

    meta, body = parse_frontmatter((vault / "Beta.md").read_text(encoding="utf-8"))
    assert "nextReview" in meta["srs"]
    assert body == "Beta body\n"
    assert (vault / ".anamnesis" / "data.json").exists()


def test_today_text_output(vault):
    result = _invoke(vault, "today")
    assert result.exit_code == 0
    assert "Review (1)" in result.stdout
    assert "No focus session." in result.stdout


def test_review_then_status(vault):
    item_id = generate_item_id("Alpha.md")

    result = _invoke(vault, "review", item_id, "-q", "4")
    assert result.exit_code == 0, result.output
    assert "Alpha: next review" in result.stdout
    assert "(in 6 days)" in result.stdout

    status = _invoke(vault, "session", "status")
    assert "reviewed 1/20" in status.stdout


def test_reviewing_a_new_note_counts_against_new_budget(vault):
    _invoke(vault, "today")

    result = _invoke(vault, "review", generate_item_id("Beta.md"), "-q", "4")
    assert result.exit_code == 0, result.output

    status = _invoke(vault, "session", "status")
    assert "reviewed 1/20, new 1/10" in status.stdout


def test_review_unknown_item(vault):
    result = _invoke(vault, "review", "deadbeef", "-q", "3")
    assert result.exit_code == 1
    assert "Item not found: deadbeef" in result.stdout


def test_review_rejects_out_of_range_quality(vault):
    result = _invoke(vault, "review", generate_item_id("Alpha.md"), "-q", "7")
    assert result.exit_code == 2


@patch("anamnesis.interface.cli.get_daily_planner")
def test_review_reports_other_errors(mock_get_planner, vault):
    mock_get_planner.return_value = MagicMock(
        record_review=AsyncMock(side_effect=AnamnesisError("bad frontmatter"))
    )
    result = _invoke(vault, "review", "abc", "-q", "3")
    assert result.exit_code == 1
    assert "Review failed: bad frontmatter" in result.stdout


@patch("anamnesis.interface.cli.get_daily_planner")
def test_session_pause_without_session(mock_get_planner, vault):
    planner = MagicMock(pause_session=AsyncMock(return_value=None))
    mock_get_planner.return_value = planner

    result = _invoke(vault, "session", "pause")

    assert result.exit_code == 0
    assert "No focus session." in result.stdout
    planner.pause_session.assert_awaited_once()


# --- schedule / register ---


def test_schedule(vault):
    result = _invoke(vault, "schedule", "--days", "3")
    assert result.exit_code == 0
    assert "Due: 1 (overdue 1)" in result.stdout
    assert generate_item_id("Alpha.md") in result.stdout


def test_register_introduces_note(vault):
    result = _invoke(vault, "register", str(vault / "Beta.md"), "--tag", "inbox")

    assert result.exit_code == 0, result.output
    assert f"{generate_item_id('Beta.md')}  Beta.md  updated" in result.stdout
    meta, _ = parse_frontmatter((vault / "Beta.md").read_text(encoding="utf-8"))
    assert meta["srs"]["repetition"] == 0
    assert meta["srs"]["nextReview"] != "9999-12-31"


def test_register_outside_vault(vault, tmp_path):
    outside = tmp_path / "elsewhere.md"
    outside.write_text("x", encoding="utf-8")

    result = _invoke(vault, "register", str(outside))
    assert result.exit_code == 2
    assert "outside the vault" in result.stdout


# --- groups / stats / config ---


def test_groups_without_embeddings(vault):
    result = _invoke(vault, "groups")
    assert result.exit_code == 0
    assert "No similarity groups" in result.stdout


def test_groups_json_with_embeddings(vault):
    base = vault / "09_Embedded"
    (base / "embeddings").mkdir(parents=True)
    (base / "index.json").write_text("{}", encoding="utf-8")
    for name in ("Alpha.md", "Beta.md"):
        item_id = generate_item_id(name)
        (base / "embeddings" / f"{item_id}.json").write_text(
            json.dumps({"vector": [1.0, 0.1]}), encoding="utf-8"
        )

    result = _invoke(vault, "groups", "--json", "--threshold", "0.5")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert len(payload["groups"]) == 1
    # Notes at the vault root have no folder to label by.
    assert payload["groups"][0]["label"] == "Group of 2 items"
    assert sorted(payload["groups"][0]["items"]) == sorted(
        generate_item_id(n) for n in ("Alpha.md", "Beta.md")
    )
    assert payload["ungrouped"] == []


def test_stats_json(vault):
    result = _invoke(vault, "stats", "--json")
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["total_items"] == 2
    assert payload["by_retention_level"]["novice"] == 2
    assert 0 <= payload["health_score"] <= 100


def test_config_show(vault):
    result = _invoke(vault, "config", "show")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["vault_root"] == str(vault.resolve())
    assert data["data_file"] == str(vault.resolve() / ".anamnesis" / "data.json")
    assert data["daily_limit"] == 20


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("anamnesis ")
