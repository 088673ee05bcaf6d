"""Error taxonomy for Anamnesis.

Only caller bugs are raised. Degenerate data and exhausted budgets are
answered with empty results instead.
"""


class AnamnesisError(Exception):
    """Base class for all Anamnesis errors."""


class InvalidVectorError(AnamnesisError, ValueError):
    """Two vectors of different dimensions were compared."""


class InvalidQualityError(AnamnesisError, ValueError):
    """A recall quality outside the 0-5 range was supplied."""


class ItemNotFoundError(AnamnesisError, LookupError):
    """The repository has no item with the requested id."""

    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id
