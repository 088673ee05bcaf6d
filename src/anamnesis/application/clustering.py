"""
Similarity clustering engine.

Groups items by embedding similarity with single-linkage agglomerative
clustering:
1. Build the full pairwise cosine-similarity matrix
2. Repeatedly merge the most similar pair of clusters that fits within the
   size cap, until the best link falls below the threshold
3. Emit every cluster with at least two members as a SimilarityGroup

Ties between equally similar pairs go to the pair met first when scanning
clusters in input order (lower index first, then lower partner index).
"""

import logging
from collections.abc import Sequence

import numpy as np

from anamnesis.application.id_service import generate_group_id
from anamnesis.domain.constants import CLUSTER_ALGORITHM
from anamnesis.domain.errors import InvalidVectorError
from anamnesis.domain.grouping import (
    ClusteringOptions,
    GroupingMetadata,
    GroupingResult,
    ItemVector,
    SimilarItem,
    SimilarityGroup,
)

logger = logging.getLogger(__name__)

# Links at or below this value never merge.
_NO_LINK = -1.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors; 0.0 when either has zero norm.

    Raises:
        InvalidVectorError: if the vectors differ in dimension.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise InvalidVectorError(
            f"Vectors must have the same dimension (got {va.size} and {vb.size})"
        )

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def find_most_similar(
    target: Sequence[float], candidates: Sequence[ItemVector], top_k: int
) -> list[SimilarItem]:
    """
    Rank candidates by similarity to target and return the best top_k
    (fewer if there are not enough candidates).
    """
    scored = [
        SimilarItem(item_id=c.item_id, similarity=cosine_similarity(target, c.vector))
        for c in candidates
    ]
    scored.sort(key=lambda s: s.similarity, reverse=True)
    return scored[: max(0, top_k)]


def build_similarity_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Symmetric pairwise cosine-similarity matrix with a unit diagonal.

    Zero vectors have similarity 0 to everything else.
    """
    dims = {len(v) for v in vectors}
    if len(dims) > 1:
        raise InvalidVectorError(f"Vectors must have the same dimension (got {sorted(dims)})")

    matrix = np.asarray(vectors, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1)
    safe_norms = np.where(norms == 0.0, 1.0, norms)
    unit = matrix / safe_norms[:, None]
    unit[norms == 0.0] = 0.0

    sim = unit @ unit.T
    np.fill_diagonal(sim, 1.0)
    return sim


def cluster(items: Sequence[ItemVector], options: ClusteringOptions | None = None) -> GroupingResult:
    """
    Partition items into similarity groups.

    Fewer than two items yields no groups. Items that end up alone are
    reported in `ungrouped_ids`. No group ever exceeds `max_group_size`.
    """
    options = options or ClusteringOptions()

    if len(items) < 2:
        return GroupingResult(
            groups=[],
            ungrouped_ids=[i.item_id for i in items],
            metadata=GroupingMetadata(total_items=len(items)),
        )

    similarity = build_similarity_matrix([i.vector for i in items])
    members = _merge_clusters(similarity, options.threshold, options.max_group_size)

    groups: list[SimilarityGroup] = []
    grouped: set[int] = set()
    for indices in members:
        if len(indices) < 2:
            continue
        grouped.update(indices)
        groups.append(_build_group(items, indices, similarity))

    ungrouped = [item.item_id for idx, item in enumerate(items) if idx not in grouped]

    grouped_count = sum(len(g.item_ids) for g in groups)
    average_cohesion = sum(g.cohesion for g in groups) / len(groups) if groups else 0.0

    logger.debug(
        f"[cluster] {len(items)} items -> {len(groups)} groups, "
        f"{len(ungrouped)} ungrouped (threshold={options.threshold})"
    )

    return GroupingResult(
        groups=groups,
        ungrouped_ids=ungrouped,
        metadata=GroupingMetadata(
            algorithm=CLUSTER_ALGORITHM,
            threshold=options.threshold,
            total_items=len(items),
            grouped_items=grouped_count,
            average_cohesion=average_cohesion,
        ),
    )


def _merge_clusters(similarity: np.ndarray, threshold: float, max_group_size: int) -> list[list[int]]:
    """
    Single-linkage agglomeration.

    `link[i, j]` holds the best member-to-member similarity between active
    clusters i and j and is updated in place on every merge, so each step
    only scans the active pairs once. Returns member index lists of the
    surviving clusters in ascending order of their first index.
    """
    n = similarity.shape[0]
    link = similarity.copy()
    members: list[list[int]] = [[i] for i in range(n)]
    sizes = np.ones(n, dtype=np.int64)
    active = np.ones(n, dtype=bool)
    upper = np.triu(np.ones((n, n), dtype=bool), k=1)

    while active.sum() > 1:
        eligible = (
            upper
            & np.outer(active, active)
            & (np.add.outer(sizes, sizes) <= max_group_size)
            & (link > _NO_LINK)
        )
        if not eligible.any():
            break

        # argmax returns the first maximum in row-major order, i.e. the first
        # pair met when scanning (i, j) with i < j.
        candidates = np.where(eligible, link, -np.inf)
        flat = int(np.argmax(candidates))
        i, j = divmod(flat, n)
        best = float(candidates[i, j])

        if best < threshold:
            break

        members[i].extend(members[j])
        sizes[i] += sizes[j]
        active[j] = False

        merged = np.maximum(link[i], link[j])
        link[i, :] = merged
        link[:, i] = merged
        link[i, i] = 1.0

    return [members[i] for i in range(n) if active[i]]


def _build_group(
    items: Sequence[ItemVector], indices: list[int], similarity: np.ndarray
) -> SimilarityGroup:
    item_ids = [items[i].item_id for i in indices]
    vectors = np.asarray([items[i].vector for i in indices], dtype=np.float64)
    centroid = vectors.mean(axis=0)

    sub = similarity[np.ix_(indices, indices)]
    pairs = sub[np.triu_indices(len(indices), k=1)]
    cohesion = float(pairs.mean()) if pairs.size else 0.0

    return SimilarityGroup(
        id=generate_group_id(item_ids),
        label=f"Group of {len(item_ids)} items",
        item_ids=item_ids,
        centroid=[float(x) for x in centroid],
        cohesion=cohesion,
    )
