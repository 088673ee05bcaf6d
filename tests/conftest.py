from datetime import datetime, timedelta

import pytest

from anamnesis.domain.models import Item, MemoryState, RetentionLevel

NOW = datetime(2025, 3, 10, 9, 30)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def make_item():
    """Factory for items due a given number of days from NOW (negative = past)."""

    def _make(
        item_id: str,
        due_in: int = 0,
        repetition: int = 1,
        interval: int = 1,
        ease_factor: float = 2.5,
        level: RetentionLevel = RetentionLevel.LEARNING,
        path: str | None = None,
        history: tuple = (),
    ) -> Item:
        return Item(
            id=item_id,
            path=path or f"notes/{item_id}.md",
            title=item_id,
            memory=MemoryState(
                repetition=repetition,
                interval=interval,
                ease_factor=ease_factor,
                next_review=NOW + timedelta(days=due_in),
            ),
            retention_level=level,
            history=history,
        )

    return _make


@pytest.fixture
def mock_vault(tmp_path):
    """Creates a temporary directory structure mimicking a vault."""
    d = tmp_path / "MyVault"
    d.mkdir()
    return d


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for key in ("ANAMNESIS_VAULT_ROOT", "ANAMNESIS_DATA_FILE", "ANAMNESIS_DAILY_LIMIT"):
        monkeypatch.delenv(key, raising=False)
    return home
