"""
JSON Session Store: keeps PersistedSessionData in a JSON data file.

The session lives under one key of the file; other keys (settings written by
other tools) are preserved on save.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from anamnesis.domain.constants import SESSION_STORAGE_KEY
from anamnesis.domain.ports import SessionStore
from anamnesis.domain.session import PersistedSessionData

logger = logging.getLogger(__name__)


class JsonSessionStore(SessionStore):
    def __init__(self, path: Path, key: str = SESSION_STORAGE_KEY):
        self.path = path
        self.key = key

    async def load(self) -> PersistedSessionData | None:
        """Corrupt or missing data loads as None (a fresh start)."""
        raw = self._read_file().get(self.key)
        if raw is None:
            return None

        try:
            return PersistedSessionData.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"[store] Ignoring invalid session data in {self.path}: {e}")
            return None

    async def save(self, data: PersistedSessionData) -> None:
        content = self._read_file()
        content[self.key] = data.to_storage()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(content, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            content = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[store] Could not read {self.path}: {e}")
            return {}
        return content if isinstance(content, dict) else {}
