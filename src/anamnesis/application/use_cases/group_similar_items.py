"""
Group similar items use case.

Loads embedding vectors for the requested items and clusters the ones that
have a vector. Items without a vector are reported as ungrouped.
"""

import dataclasses
import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from anamnesis.application import clustering
from anamnesis.domain.constants import DEFAULT_MAX_GROUP_SIZE, DEFAULT_SIMILARITY_THRESHOLD
from anamnesis.domain.grouping import ClusteringOptions, ItemVector, SimilarityGroup
from anamnesis.domain.ports import EmbeddingSource, ItemRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupingSummary:
    total_items: int = 0
    grouped_items: int = 0
    number_of_groups: int = 0
    average_group_size: float = 0.0
    average_cohesion: float = 0.0


@dataclass
class GroupSimilarItemsResult:
    groups: list[SimilarityGroup] = field(default_factory=list)
    ungrouped_ids: list[str] = field(default_factory=list)
    summary: GroupingSummary = field(default_factory=GroupingSummary)


class GroupSimilarItemsUseCase:
    def __init__(
        self,
        embeddings: EmbeddingSource,
        repository: ItemRepository | None = None,
    ):
        """
        Args:
            embeddings: Source of precomputed vectors.
            repository: Needed only to label groups by folder.
        """
        self._embeddings = embeddings
        self._repo = repository

    async def execute(
        self,
        item_ids: Sequence[str],
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_group_size: int = DEFAULT_MAX_GROUP_SIZE,
        infer_labels: bool = False,
    ) -> GroupSimilarItemsResult:
        item_ids = list(item_ids)
        empty = GroupSimilarItemsResult(
            ungrouped_ids=item_ids, summary=GroupingSummary(total_items=len(item_ids))
        )

        if not await self._embeddings.is_available():
            logger.debug("[group] Embedding source unavailable, skipping grouping")
            return empty

        vectors = await self._embeddings.read_vectors_batch(item_ids)
        with_vectors = [ItemVector(i, vectors[i]) for i in item_ids if i in vectors]
        without_vectors = [i for i in item_ids if i not in vectors]

        if len(with_vectors) < 2:
            return empty

        result = clustering.cluster(
            with_vectors,
            ClusteringOptions(threshold=threshold, max_group_size=max_group_size),
        )

        groups = result.groups
        if infer_labels and self._repo is not None:
            groups = await self._label_by_folder(groups)

        grouped = sum(len(g.item_ids) for g in groups)
        summary = GroupingSummary(
            total_items=len(item_ids),
            grouped_items=grouped,
            number_of_groups=len(groups),
            average_group_size=grouped / len(groups) if groups else 0.0,
            average_cohesion=result.metadata.average_cohesion,
        )
        logger.info(
            f"[group] {summary.number_of_groups} groups over {summary.grouped_items}"
            f"/{summary.total_items} items"
        )

        return GroupSimilarItemsResult(
            groups=groups,
            ungrouped_ids=[*result.ungrouped_ids, *without_vectors],
            summary=summary,
        )

    async def _label_by_folder(self, groups: list[SimilarityGroup]) -> list[SimilarityGroup]:
        """Label each group with the folder most of its members live in."""
        paths = {item.id: item.path for item in await self._repo.get_all_items()}

        labelled = []
        for group in groups:
            folders = Counter(
                PurePosixPath(paths[i]).parent.name
                for i in group.item_ids
                if i in paths and PurePosixPath(paths[i]).parent.name
            )
            if folders:
                folder, _ = folders.most_common(1)[0]
                group = dataclasses.replace(group, label=folder)
            labelled.append(group)
        return labelled
