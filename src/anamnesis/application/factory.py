"""
Adapter Factory
Centralizes building the vault adapters and the daily planner from config.
"""

from collections.abc import Callable
from datetime import datetime

from anamnesis.application.config import AppConfig
from anamnesis.application.use_cases.daily_planner import DailyPlanner
from anamnesis.domain.ports import EmbeddingSource, ItemRepository, SessionStore
from anamnesis.infrastructure.adapters.frontmatter_repository import FrontmatterItemRepository
from anamnesis.infrastructure.adapters.json_session_store import JsonSessionStore
from anamnesis.infrastructure.adapters.vault_embeddings import VaultEmbeddingSource


def get_item_repository(config: AppConfig) -> ItemRepository:
    return FrontmatterItemRepository(config.vault_root, exclude_folders=config.exclude_folders)


def get_embedding_source(config: AppConfig) -> EmbeddingSource:
    return VaultEmbeddingSource(config.vault_root, folder=config.embedding_folder)


def get_session_store(config: AppConfig) -> SessionStore:
    return JsonSessionStore(config.data_file)


def get_daily_planner(
    config: AppConfig, clock: Callable[[], datetime] = datetime.now
) -> DailyPlanner:
    """
    Returns a DailyPlanner wired to the vault adapters.
    Embeddings are only attached when similarity grouping is enabled.
    """
    return DailyPlanner(
        repository=get_item_repository(config),
        store=get_session_store(config),
        embeddings=get_embedding_source(config) if config.group_similar else None,
        config=config.session_config(),
        group_similar=config.group_similar,
        max_group_size=config.max_group_size,
        clock=clock,
    )
