# Domain Package
from .errors import AnamnesisError, InvalidQualityError, InvalidVectorError, ItemNotFoundError
from .grouping import (
    AnnotatedCluster,
    ClusteringOptions,
    GroupingMetadata,
    GroupingResult,
    ItemVector,
    SimilarItem,
    SimilarityGroup,
)
from .models import Item, MemoryState, Quality, RetentionLevel, ReviewMode, ReviewRecord
from .ports import EmbeddingSource, ItemRepository, SessionStore
from .session import (
    DailyReviewQueue,
    FocusSession,
    PersistedSessionData,
    SessionConfig,
    SessionStatus,
)

__all__ = [
    "AnamnesisError",
    "InvalidQualityError",
    "InvalidVectorError",
    "ItemNotFoundError",
    "AnnotatedCluster",
    "ClusteringOptions",
    "GroupingMetadata",
    "GroupingResult",
    "ItemVector",
    "SimilarItem",
    "SimilarityGroup",
    "Item",
    "MemoryState",
    "Quality",
    "RetentionLevel",
    "ReviewMode",
    "ReviewRecord",
    "EmbeddingSource",
    "ItemRepository",
    "SessionStore",
    "DailyReviewQueue",
    "FocusSession",
    "PersistedSessionData",
    "SessionConfig",
    "SessionStatus",
]
