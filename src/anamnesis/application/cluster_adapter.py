"""
Cluster adapter.

Turns SimilarityGroups (clustering output) into AnnotatedClusters
(session input) by counting how many members are currently due.
Stateless and side-effect free.
"""

from collections.abc import Iterable, Sequence

from anamnesis.domain.constants import DEFAULT_CLUSTER_MIN_SIZE
from anamnesis.domain.grouping import AnnotatedCluster, ClusterStats, SimilarityGroup


def annotate_clusters(
    groups: Iterable[SimilarityGroup],
    due_ids: Iterable[str],
    min_cluster_size: int = DEFAULT_CLUSTER_MIN_SIZE,
) -> list[AnnotatedCluster]:
    """
    Annotate each group with its due and total counts, dropping groups
    smaller than `min_cluster_size`.
    """
    due = set(due_ids)
    clusters: list[AnnotatedCluster] = []

    for group in groups:
        total = len(group.item_ids)
        if total < min_cluster_size:
            continue
        clusters.append(
            AnnotatedCluster(
                id=group.id,
                label=group.label,
                item_ids=tuple(group.item_ids),
                due_count=sum(1 for item_id in group.item_ids if item_id in due),
                total_count=total,
                centroid=tuple(group.centroid) if group.centroid else None,
            )
        )

    return clusters


def filter_clusters_with_due(clusters: Iterable[AnnotatedCluster]) -> list[AnnotatedCluster]:
    return [c for c in clusters if c.due_count > 0]


def sort_clusters_by_priority(clusters: Iterable[AnnotatedCluster]) -> list[AnnotatedCluster]:
    """Most due items first, then the larger cluster."""
    return sorted(clusters, key=lambda c: (-c.due_count, -c.total_count))


def find_cluster_for_item(
    item_id: str, clusters: Sequence[AnnotatedCluster]
) -> AnnotatedCluster | None:
    for cluster in clusters:
        if item_id in cluster.item_ids:
            return cluster
    return None


def calculate_cluster_stats(clusters: Sequence[AnnotatedCluster]) -> ClusterStats:
    if not clusters:
        return ClusterStats()

    total_items = sum(c.total_count for c in clusters)
    return ClusterStats(
        total_clusters=len(clusters),
        clusters_with_due=sum(1 for c in clusters if c.due_count > 0),
        total_items=total_items,
        total_due_items=sum(c.due_count for c in clusters),
        average_cluster_size=total_items / len(clusters),
    )
