"""
Domain models for similarity grouping.

SimilarityGroup is produced by the clustering engine on every run and never
persisted. AnnotatedCluster is the session-facing view of a group.
"""

from dataclasses import dataclass, field
from datetime import datetime

from .constants import CLUSTER_ALGORITHM, DEFAULT_MAX_GROUP_SIZE, DEFAULT_SIMILARITY_THRESHOLD


@dataclass(frozen=True)
class ItemVector:
    """An item id paired with its embedding vector."""

    item_id: str
    vector: list[float]


@dataclass(frozen=True)
class ClusteringOptions:
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    max_group_size: int = DEFAULT_MAX_GROUP_SIZE


@dataclass(frozen=True)
class SimilarItem:
    item_id: str
    similarity: float


@dataclass
class SimilarityGroup:
    """
    A group of items whose embeddings are close to each other.

    Attributes:
        id: Content-derived id (stable for the same membership).
        label: Display label.
        item_ids: Members; order carries no meaning.
        centroid: Mean of the member vectors.
        cohesion: Mean pairwise similarity of the members (0-1).
    """

    id: str
    label: str
    item_ids: list[str]
    centroid: list[float]
    cohesion: float = 0.0
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class GroupingMetadata:
    algorithm: str = CLUSTER_ALGORITHM
    threshold: float = 0.0
    total_items: int = 0
    grouped_items: int = 0
    average_cohesion: float = 0.0
    processed_at: datetime = field(default_factory=datetime.now)


@dataclass
class GroupingResult:
    groups: list[SimilarityGroup]
    ungrouped_ids: list[str]
    metadata: GroupingMetadata


@dataclass(frozen=True)
class AnnotatedCluster:
    """A similarity group annotated with how many of its members are due."""

    id: str
    label: str
    item_ids: tuple[str, ...]
    due_count: int
    total_count: int
    centroid: tuple[float, ...] | None = None


@dataclass(frozen=True)
class ClusterStats:
    total_clusters: int = 0
    clusters_with_due: int = 0
    total_items: int = 0
    total_due_items: int = 0
    average_cluster_size: float = 0.0
