"""Centralized constants for Anamnesis.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

from datetime import datetime

# ---------- SM-2 ----------
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3
MAX_QUALITY = 5
RECENT_REVIEW_WINDOW = 5  # history entries used for retention estimation

# ---------- Unintroduced items ----------
FAR_FUTURE = datetime(9999, 12, 31)

# ---------- Clustering ----------
DEFAULT_SIMILARITY_THRESHOLD = 0.3
DEFAULT_MAX_GROUP_SIZE = 10
CLUSTER_ALGORITHM = "hierarchical"

# ---------- Session ----------
DEFAULT_DAILY_LIMIT = 20
DEFAULT_NEW_ITEMS_PER_DAY = 10
DEFAULT_SESSION_SIMILARITY_THRESHOLD = 0.7
DEFAULT_CLUSTER_MIN_SIZE = 3
SESSION_MAX_GROUP_SIZE = 20  # focus-session clusters may be larger than ad-hoc groups
NEVER_REVIEWED = "1970-01-01"
SESSION_STORAGE_KEY = "srs-session-data"

# ---------- Embedding source ----------
EMBEDDING_FOLDER = "09_Embedded"
EMBEDDING_INDEX_FILE = "index.json"
EMBEDDINGS_SUBFOLDER = "embeddings"
EMBEDDING_BATCH_SIZE = 50
EMBEDDING_INDEX_TTL = 60.0  # seconds

# ---------- Schedule ----------
DEFAULT_UPCOMING_DAYS = 7
