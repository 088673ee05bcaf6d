"""Anamnesis CLI: daily review planning, review recording and statistics."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import typer

from anamnesis.application.config import AppConfig, resolve_config
from anamnesis.application.factory import (
    get_daily_planner,
    get_embedding_source,
    get_item_repository,
)
from anamnesis.application.id_service import extract_title
from anamnesis.application.stats import RetentionService
from anamnesis.application.use_cases.group_similar_items import GroupSimilarItemsUseCase
from anamnesis.application.use_cases.register_item import RegisterItemRequest, RegisterItemUseCase
from anamnesis.application.use_cases.schedule_review import ScheduleReviewUseCase
from anamnesis.consts import APP_NAME, VERSION
from anamnesis.domain.constants import DEFAULT_UPCOMING_DAYS
from anamnesis.domain.errors import AnamnesisError, ItemNotFoundError
from anamnesis.domain.models import Item, RetentionLevel, ReviewMode
from anamnesis.domain.session import DailyReviewQueue, FocusSession

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="anamnesis: spaced-repetition review planner for a markdown vault.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

session_app = typer.Typer(help="Inspect and control the focus session.", no_args_is_help=True)
app.add_typer(session_app, name="session")

config_app = typer.Typer(help="Manage anamnesis configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{APP_NAME} {VERSION}")
        raise typer.Exit()


def _log_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    vault: Annotated[
        Path | None,
        typer.Option("--vault", help="Vault root. Defaults to 'vault_root' in config, or CWD."),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    version: Annotated[
        bool,
        typer.Option(
            "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
        ),
    ] = False,
):
    """Global settings for anamnesis."""
    ctx.ensure_object(dict)
    ctx.obj["vault_root"] = vault
    ctx.obj["verbose"] = verbose
    logging.getLogger().setLevel(_log_level(verbose))


def _resolve(ctx: typer.Context, **overrides: Any) -> AppConfig:
    obj = ctx.obj or {}
    config = resolve_config({"vault_root": obj.get("vault_root"), **overrides})
    logger.debug(f"[cli] vault={config.vault_root} data={config.data_file}")
    return config


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _item_row(item: Item) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "path": item.path,
        "next_review": item.memory.next_review.strftime("%Y-%m-%d"),
        "interval": item.memory.interval,
        "ease_factor": round(item.memory.ease_factor, 2),
        "retention_level": item.retention_level.value,
    }


def _echo_items(header: str, items: list[Item]) -> None:
    typer.secho(f"{header} ({len(items)})", bold=True)
    for item in items:
        typer.echo(f"  {item.id}  {item.title}  [{item.retention_level.value}]")


def _echo_session(session: FocusSession | None) -> None:
    if session is None:
        typer.echo("No focus session.")
        return
    done = len(session.item_ids) - len(session.remaining_ids)
    typer.echo(
        f"Focus: {session.cluster_label} ({session.status.value}) "
        f"{len(session.remaining_ids)} remaining, {done}/{len(session.item_ids)} done"
    )


def _echo_queue(queue: DailyReviewQueue) -> None:
    typer.echo(
        f"{queue.date}: reviewed {queue.reviewed_count}/{queue.daily_limit}, "
        f"new {queue.new_items_introduced}/{queue.new_items_limit}"
    )


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def today(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """[bold green]Plan[/bold green] today's reviews and introduce new items."""
    config = _resolve(ctx)
    planner = get_daily_planner(config)
    plan = asyncio.run(planner.plan_today())

    if json_output:
        payload = {
            "queue": plan.queue.model_dump(mode="json") if plan.queue else None,
            "review": [_item_row(i) for i in plan.review_items],
            "new": [_item_row(i) for i in plan.new_items],
            "clusters": len(plan.clusters),
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if plan.queue:
        _echo_queue(plan.queue)
        _echo_session(plan.queue.focus_session)
    _echo_items("Review", plan.review_items)
    _echo_items("New", plan.new_items)
    if not plan.review_items and not plan.new_items:
        typer.secho("Nothing to review today.", fg="green")


@app.command()
def review(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item id (see 'anamnesis today').")],
    quality: Annotated[
        int, typer.Option("--quality", "-q", min=0, max=5, help="Recall quality 0-5.")
    ],
    mode: Annotated[ReviewMode, typer.Option(help="How the item was reviewed.")] = (
        ReviewMode.QUICK
    ),
    quiz_score: Annotated[float | None, typer.Option(help="Score in quiz mode.")] = None,
):
    """Record the result of reviewing one item."""
    config = _resolve(ctx)
    planner = get_daily_planner(config)

    try:
        result = asyncio.run(planner.record_review(item_id, quality, mode, quiz_score=quiz_score))
    except ItemNotFoundError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)
    except AnamnesisError as e:
        typer.secho(f"Review failed: {e}", fg="red")
        raise typer.Exit(1)

    typer.echo(
        f"{result.item.title}: next review {result.next_review:%Y-%m-%d} "
        f"(in {result.interval} days)"
    )
    if result.level_changed:
        typer.secho(
            f"Retention {result.previous_level.value} -> {result.new_level.value}", fg="green"
        )


@app.command()
def schedule(
    ctx: typer.Context,
    days: Annotated[int, typer.Option(min=0, help="Upcoming window in days.")] = (
        DEFAULT_UPCOMING_DAYS
    ),
):
    """Show due, overdue and upcoming items with a suggested order."""
    config = _resolve(ctx)
    result = asyncio.run(ScheduleReviewUseCase(get_item_repository(config)).execute(True, days))

    typer.echo(f"Due: {result.total_due} (overdue {len(result.overdue)})")
    typer.echo(f"Upcoming in {days} days: {len(result.upcoming)}")
    if result.suggested_order:
        typer.echo("Suggested order:")
        for item_id in result.suggested_order:
            typer.echo(f"  {item_id}")


@app.command()
def register(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Notes to add to the review rotation.")],
    tags: Annotated[list[str] | None, typer.Option("--tag", help="Tag to set.")] = None,
):
    """Add notes to the review rotation, due today."""
    config = _resolve(ctx)
    requests = []
    for p in paths:
        full = p if p.is_absolute() else Path.cwd() / p
        try:
            rel = full.resolve().relative_to(config.vault_root).as_posix()
        except ValueError:
            typer.secho(f"{p} is outside the vault {config.vault_root}", fg="red")
            raise typer.Exit(2)
        requests.append(RegisterItemRequest(rel, extract_title(rel), tuple(tags or ())))

    repo = get_item_repository(config)
    use_case = RegisterItemUseCase(repo)

    async def run():
        results = await use_case.execute_batch(requests)
        # Notes without an srs block are parked until introduced.
        for r in results:
            await repo.introduce_item(r.item.id)
        return results

    try:
        results = asyncio.run(run())
    except ItemNotFoundError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)

    for r in results:
        status = "registered" if r.is_new else "updated"
        typer.echo(f"{r.item.id}  {r.item.path}  {status}")


@app.command()
def groups(
    ctx: typer.Context,
    threshold: Annotated[
        float | None, typer.Option(help="Minimum similarity to link two items.")
    ] = None,
    max_size: Annotated[int | None, typer.Option(help="Largest allowed group.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Group items by embedding similarity."""
    config = _resolve(ctx)
    repo = get_item_repository(config)
    use_case = GroupSimilarItemsUseCase(get_embedding_source(config), repo)

    async def run():
        items = await repo.get_all_items()
        return items, await use_case.execute(
            [i.id for i in items],
            threshold=config.similarity_threshold if threshold is None else threshold,
            max_group_size=max_size or config.max_group_size,
            infer_labels=True,
        )

    items, result = asyncio.run(run())
    titles = {i.id: i.title for i in items}

    if json_output:
        payload = {
            "groups": [
                {
                    "id": g.id,
                    "label": g.label,
                    "items": g.item_ids,
                    "cohesion": round(g.cohesion, 4),
                }
                for g in result.groups
            ],
            "ungrouped": result.ungrouped_ids,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not result.groups:
        typer.secho("No similarity groups (embeddings missing or too few items).", fg="yellow")
        return

    for g in result.groups:
        typer.secho(f"{g.label}  ({len(g.item_ids)} items, cohesion {g.cohesion:.2f})", bold=True)
        for item_id in g.item_ids:
            typer.echo(f"  {item_id}  {titles.get(item_id, '?')}")
    typer.echo(f"Ungrouped: {len(result.ungrouped_ids)}")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Retention statistics and recommendations."""
    config = _resolve(ctx)
    report = asyncio.run(RetentionService(get_item_repository(config)).get_report())
    s = report.statistics

    if json_output:
        payload = {
            "total_items": s.total_items,
            "by_retention_level": {k.value: v for k, v in s.by_retention_level.items()},
            "average_ease_factor": round(s.average_ease_factor, 2),
            "reviews_today": s.reviews_today,
            "reviews_this_week": s.reviews_this_week,
            "streak": s.streak,
            "longest_streak": s.longest_streak,
            "total_reviews": s.total_reviews,
            "average_quality": round(s.average_quality, 2),
            "trend": report.trend.direction,
            "health_score": report.health_score,
            "recommendations": report.recommendations,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Items: {s.total_items}  Reviews: {s.total_reviews}")
    for level in RetentionLevel:
        pct = report.distribution.percentages[level]
        typer.echo(f"  {level.value:<13}{s.by_retention_level[level]:>5}  {pct:>3}%")
    typer.echo(f"Today: {s.reviews_today}  This week: {s.reviews_this_week}")
    typer.echo(f"Streak: {s.streak} days (longest {s.longest_streak})")
    typer.echo(f"Trend: {report.trend.direction}  Health: {report.health_score}/100")
    for tip in report.recommendations:
        typer.echo(f"- {tip}")


# ---------------------------------------------------------------------------
# Session subgroup
# ---------------------------------------------------------------------------


@session_app.command("status")
def session_status(ctx: typer.Context):
    """Show today's progress and the focus session."""
    planner = get_daily_planner(_resolve(ctx))
    queue = asyncio.run(planner.daily_queue())
    _echo_queue(queue)
    _echo_session(queue.focus_session)


@session_app.command("pause")
def session_pause(ctx: typer.Context):
    """Pause the active focus session."""
    planner = get_daily_planner(_resolve(ctx))
    _echo_session(asyncio.run(planner.pause_session()))


@session_app.command("resume")
def session_resume(ctx: typer.Context):
    """Resume a paused focus session."""
    planner = get_daily_planner(_resolve(ctx))
    _echo_session(asyncio.run(planner.resume_session()))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
