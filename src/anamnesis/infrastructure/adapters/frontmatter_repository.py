"""
Frontmatter Item Repository: Infrastructure adapter for a markdown vault.

Every markdown note in the vault is a review item. Its SRS state lives in an
`srs:` mapping in the note's YAML frontmatter:

    srs:
      noteId: "abc12345"
      repetition: 3
      interval: 7
      easeFactor: 2.5
      nextReview: "2025-01-15"
      retentionLevel: "intermediate"
      reviewHistory:
        - date: "2025-01-08"
          quality: 4
          mode: "quick"

Notes without it are unintroduced items, parked in the far future until the
session manager introduces them.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any

from anamnesis.application.id_service import extract_title, generate_item_id
from anamnesis.application.utils.dates import DAY_FORMAT, parse_day
from anamnesis.application.utils.fs import iter_markdown_files
from anamnesis.application.utils.text import (
    YAML_ERROR_KEY,
    parse_frontmatter,
    rebuild_markdown_with_frontmatter,
)
from anamnesis.domain.constants import DEFAULT_EASE_FACTOR, FAR_FUTURE
from anamnesis.domain.errors import AnamnesisError, ItemNotFoundError
from anamnesis.domain.models import Item, MemoryState, RetentionLevel, ReviewMode, ReviewRecord
from anamnesis.domain.ports import ItemRepository

logger = logging.getLogger(__name__)

SRS_KEY = "srs"
MAX_STORED_HISTORY = 20


class FrontmatterItemRepository(ItemRepository):
    def __init__(
        self,
        vault_root: Path,
        exclude_folders: Iterable[str] = (),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.vault_root = vault_root
        self.exclude_folders = list(exclude_folders)
        self._clock = clock
        self._items: dict[str, Item] | None = None

    async def get_all_items(self) -> list[Item]:
        return list(self._load().values())

    async def get_item(self, item_id: str) -> Item | None:
        return self._load().get(item_id)

    async def save_item(self, item: Item) -> None:
        path = self.vault_root / item.path
        if not path.is_file():
            raise ItemNotFoundError(item.id)

        text = path.read_text(encoding="utf-8")
        meta, body = parse_frontmatter(text)
        if YAML_ERROR_KEY in meta:
            raise AnamnesisError(f"Cannot update {item.path}: {meta[YAML_ERROR_KEY]}")

        meta[SRS_KEY] = _to_srs(item)
        path.write_text(rebuild_markdown_with_frontmatter(meta, body), encoding="utf-8")

        if self._items is not None:
            self._items[item.id] = item
        logger.debug(f"[repo] Saved {item.path} (next {item.memory.next_review:%Y-%m-%d})")

    async def get_unintroduced_items(self) -> list[Item]:
        return [item for item in self._load().values() if _is_unintroduced(item)]

    async def introduce_item(self, item_id: str) -> bool:
        item = self._load().get(item_id)
        if item is None:
            return False
        if not _is_unintroduced(item):
            return True

        now = self._clock()
        memory = dataclasses.replace(item.memory, next_review=now)
        await self.save_item(dataclasses.replace(item, memory=memory, last_modified=now))
        logger.info(f"[repo] Introduced {item.title}")
        return True

    def invalidate(self) -> None:
        """Forget cached items so the next call rescans the vault."""
        self._items = None

    def _load(self) -> dict[str, Item]:
        if self._items is None:
            self._items = {}
            for path in iter_markdown_files(self.vault_root, self.exclude_folders):
                item = self._read_item(path)
                if item is not None:
                    self._items[item.id] = item
            logger.debug(f"[repo] Loaded {len(self._items)} items from {self.vault_root}")
        return self._items

    def _read_item(self, path: Path) -> Item | None:
        rel = path.relative_to(self.vault_root).as_posix()
        try:
            text = path.read_text(encoding="utf-8")
            st = path.stat()
        except OSError as e:
            logger.warning(f"[repo] Skipped {rel}: {e}")
            return None

        meta, _ = parse_frontmatter(text)
        if YAML_ERROR_KEY in meta:
            logger.warning(f"[repo] Skipped {rel}: {meta[YAML_ERROR_KEY]}")
            return None

        tags = _parse_tags(meta.get("tags"))
        created = datetime.fromtimestamp(st.st_ctime)
        modified = datetime.fromtimestamp(st.st_mtime)
        srs = meta.get(SRS_KEY)

        if not isinstance(srs, dict):
            return Item(
                id=generate_item_id(rel),
                path=rel,
                title=extract_title(rel),
                memory=MemoryState(next_review=FAR_FUTURE),
                tags=tags,
                created_at=created,
                last_modified=modified,
            )

        try:
            return Item(
                id=str(srs.get("noteId") or generate_item_id(rel)),
                path=rel,
                title=extract_title(rel),
                memory=MemoryState(
                    repetition=int(srs.get("repetition", 0)),
                    interval=int(srs.get("interval", 0)),
                    ease_factor=float(srs.get("easeFactor", DEFAULT_EASE_FACTOR)),
                    next_review=_to_datetime(srs.get("nextReview")) or self._clock(),
                ),
                retention_level=RetentionLevel(srs.get("retentionLevel", "novice")),
                history=tuple(_parse_history(srs.get("reviewHistory") or [])),
                tags=tags,
                created_at=created,
                last_modified=modified,
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"[repo] Skipped {rel}: invalid srs block ({e})")
            return None


def _is_unintroduced(item: Item) -> bool:
    return item.memory.repetition == 0 and item.memory.next_review.year == FAR_FUTURE.year


def _to_datetime(value: Any) -> datetime | None:
    # YAML turns unquoted dates into date/datetime objects.
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is None else value.astimezone().replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return parse_day(str(value))


def _parse_history(entries: list[Any]) -> list[ReviewRecord]:
    records = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        reviewed_at = _to_datetime(entry.get("date"))
        if reviewed_at is None:
            continue
        quiz_score = entry.get("quizScore")
        records.append(
            ReviewRecord(
                reviewed_at=reviewed_at,
                quality=int(entry.get("quality", 0)),
                mode=ReviewMode(entry.get("mode", "quick")),
                quiz_score=float(quiz_score) if quiz_score is not None else None,
            )
        )
    return records


def _parse_tags(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.replace(",", " ").split()
    return tuple(str(t).lstrip("#") for t in value if t)


def _to_srs(item: Item) -> dict[str, Any]:
    srs: dict[str, Any] = {
        "noteId": item.id,
        "repetition": item.memory.repetition,
        "interval": item.memory.interval,
        "easeFactor": round(item.memory.ease_factor, 2),
        "nextReview": item.memory.next_review.strftime(DAY_FORMAT),
        "retentionLevel": item.retention_level.value,
    }

    history = []
    for record in item.history[-MAX_STORED_HISTORY:]:
        entry: dict[str, Any] = {
            "date": record.reviewed_at.strftime(DAY_FORMAT),
            "quality": record.quality,
            "mode": record.mode.value,
        }
        if record.quiz_score is not None:
            entry["quizScore"] = record.quiz_score
        history.append(entry)
    if history:
        srs["reviewHistory"] = history

    return srs
