"""
Vault Embedding Source: reads vectors written by the vault embeddings plugin.

Layout under the vault:

    09_Embedded/
      index.json                 {"notes": {"<item id>": {"path": ...}, ...}, ...}
      embeddings/<safe id>.json  {"noteId": ..., "vector": [...], ...}
"""

import json
import logging
import time
from pathlib import Path
from typing import Any

from anamnesis.application.id_service import to_safe_id
from anamnesis.domain.constants import (
    EMBEDDING_BATCH_SIZE,
    EMBEDDING_FOLDER,
    EMBEDDING_INDEX_FILE,
    EMBEDDING_INDEX_TTL,
    EMBEDDINGS_SUBFOLDER,
)
from anamnesis.domain.ports import EmbeddingSource

logger = logging.getLogger(__name__)


class VaultEmbeddingSource(EmbeddingSource):
    def __init__(self, vault_root: Path, folder: str = EMBEDDING_FOLDER):
        self.base = vault_root / folder
        self._index: dict[str, Any] | None = None
        self._index_read_at = 0.0
        self._vectors: dict[str, list[float]] = {}

    @property
    def index_path(self) -> Path:
        return self.base / EMBEDDING_INDEX_FILE

    async def is_available(self) -> bool:
        return self.index_path.is_file()

    async def read_index(self) -> dict[str, Any] | None:
        """Read index.json, cached for a short while."""
        now = time.monotonic()
        if self._index is not None and now - self._index_read_at < EMBEDDING_INDEX_TTL:
            return self._index

        try:
            self._index = json.loads(self.index_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[embeddings] Failed to read index: {e}")
            return None

        self._index_read_at = now
        return self._index

    async def read_vector(self, item_id: str) -> list[float] | None:
        if item_id in self._vectors:
            return self._vectors[item_id]

        path = self.base / EMBEDDINGS_SUBFOLDER / f"{to_safe_id(item_id)}.json"
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[embeddings] Failed to read embedding for {item_id}: {e}")
            return None

        vector = payload.get("vector") if isinstance(payload, dict) else None
        if not isinstance(vector, list) or not vector:
            logger.warning(f"[embeddings] No vector in embedding for {item_id}")
            return None

        self._vectors[item_id] = [float(x) for x in vector]
        return self._vectors[item_id]

    async def read_all_vectors(self) -> dict[str, list[float]]:
        index = await self.read_index()
        if not index:
            return {}
        return await self.read_vectors_batch(list(index.get("notes", {})))

    async def read_vectors_batch(self, item_ids: list[str]) -> dict[str, list[float]]:
        result: dict[str, list[float]] = {}
        for start in range(0, len(item_ids), EMBEDDING_BATCH_SIZE):
            for item_id in item_ids[start : start + EMBEDDING_BATCH_SIZE]:
                vector = await self.read_vector(item_id)
                if vector is not None:
                    result[item_id] = vector
        logger.debug(f"[embeddings] Read {len(result)}/{len(item_ids)} vectors")
        return result

    def clear_cache(self) -> None:
        self._index = None
        self._index_read_at = 0.0
        self._vectors.clear()
