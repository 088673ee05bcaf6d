from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from anamnesis.domain.constants import (
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_DAILY_LIMIT,
    DEFAULT_NEW_ITEMS_PER_DAY,
    DEFAULT_SESSION_SIMILARITY_THRESHOLD,
    EMBEDDING_FOLDER,
    SESSION_MAX_GROUP_SIZE,
)
from anamnesis.domain.session import SessionConfig


def _config_files() -> list[Path]:
    return [
        Path.home() / ".config/anamnesis/config.toml",
        Path.home() / ".anamnesis.toml",
    ]


class AppConfig(BaseSettings):
    """
    Settings for the planner, budgets and vault scan.

    Values come from the TOML file (~/.config/anamnesis/config.toml or
    ~/.anamnesis.toml), then ANAMNESIS_* environment variables, then CLI
    overrides, each layer beating the one before it.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANAMNESIS_",
        extra="ignore",
    )

    # Paths
    vault_root: Path | None = None
    data_file: Path | None = None

    # Session budgets
    daily_limit: int = Field(default=DEFAULT_DAILY_LIMIT, ge=0)
    new_cards_per_day: int = Field(default=DEFAULT_NEW_ITEMS_PER_DAY, ge=0)

    # Grouping
    similarity_threshold: float = Field(
        default=DEFAULT_SESSION_SIMILARITY_THRESHOLD, ge=-1.0, le=1.0
    )
    cluster_min_size: int = Field(default=DEFAULT_CLUSTER_MIN_SIZE, ge=1)
    max_group_size: int = Field(default=SESSION_MAX_GROUP_SIZE, ge=2)
    group_similar: bool = True
    embedding_folder: str = EMBEDDING_FOLDER

    # Vault scan
    exclude_folders: list[str] = Field(default_factory=lambda: ["templates", "attachments"])

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources take priority; CLI overrides arrive as init settings.
        toml_file = next((f for f in _config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("vault_root", "data_file", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            daily_limit=self.daily_limit,
            new_items_per_day=self.new_cards_per_day,
            similarity_threshold=self.similarity_threshold,
            cluster_min_size=self.cluster_min_size,
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Build the effective config from defaults, TOML, environment and the
    non-None CLI overrides, then fill in the vault and data file paths.
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.vault_root is None:
        config.vault_root = Path.cwd()

    if config.data_file is None:
        config.data_file = config.vault_root / ".anamnesis" / "data.json"

    return config
