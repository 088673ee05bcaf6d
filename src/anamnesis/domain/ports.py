"""
Ports (interfaces) for the collaborators of the scheduling core.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Item
from .session import PersistedSessionData


class ItemRepository(ABC):
    """
    Port for durable storage of review items.

    Implementations:
        - FrontmatterItemRepository: SRS state in markdown frontmatter.
    """

    @abstractmethod
    async def get_all_items(self) -> list[Item]:
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> Item | None:
        pass

    @abstractmethod
    async def save_item(self, item: Item) -> None:
        """
        Persist an item, creating or replacing its stored state.

        Raises:
            ItemNotFoundError: if the backing note no longer exists.
        """
        pass

    @abstractmethod
    async def get_unintroduced_items(self) -> list[Item]:
        """
        Items that were never studied and are parked in the far future.
        """
        pass

    @abstractmethod
    async def introduce_item(self, item_id: str) -> bool:
        """
        Make an unintroduced item due today.

        Returns:
            False if the item does not exist, True otherwise (including when
            it was already introduced).
        """
        pass


class EmbeddingSource(ABC):
    """
    Port for reading precomputed embedding vectors.

    Implementations:
        - VaultEmbeddingSource: JSON files written by the vault embeddings plugin.
    """

    @abstractmethod
    async def is_available(self) -> bool:
        pass

    @abstractmethod
    async def read_all_vectors(self) -> dict[str, list[float]]:
        pass

    @abstractmethod
    async def read_vectors_batch(self, item_ids: list[str]) -> dict[str, list[float]]:
        """
        Read vectors for the given ids. Ids without a vector are omitted.
        """
        pass


class SessionStore(ABC):
    """
    Port for loading and saving PersistedSessionData under a fixed key.
    """

    @abstractmethod
    async def load(self) -> PersistedSessionData | None:
        pass

    @abstractmethod
    async def save(self, data: PersistedSessionData) -> None:
        pass
