from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from vocabsrs.domain.constants import (
    DEFAULT_MODE_WEIGHTS,
    DEFAULT_SESSION_LIMIT,
    MODE_KEYS,
)


class AppConfig(BaseSettings):
    """
    Configuration model for vocabsrs.
    Supports loading from:
    1. Environment variables (VOCABSRS_*)
    2. Config file (~/.config/vocabsrs/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="VOCABSRS_",
        extra="ignore",
    )

    # Paths
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/vocabsrs/cards.json"
    )

    # Scheduling
    mode_weights: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_MODE_WEIGHTS))
    default_mode: str = MODE_KEYS[1]

    # Sessions
    session_limit: int = DEFAULT_SESSION_LIMIT
    persist_mode: Literal["end", "immediate"] = "end"

    # Server
    host: str = "127.0.0.1"
    port: int = 8777

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins; CLI overrides beat env, env beats the file.
        toml_file = next((f for f in _config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @field_validator("mode_weights")
    @classmethod
    def check_weights(cls, v: dict[str, float]) -> dict[str, float]:
        for key, weight in v.items():
            if weight < 0:
                raise ValueError(f"Weight for mode {key!r} must be non-negative")
        return v

    @field_validator("default_mode")
    @classmethod
    def check_default_mode(cls, v: str) -> str:
        # Accept the numeric UI mode as well as the key.
        if v.isdigit() and int(v) in MODE_KEYS:
            return MODE_KEYS[int(v)]
        return v


def _config_files() -> list[Path]:
    # Resolved per call so a patched HOME is honoured.
    return [
        Path.home() / ".config/vocabsrs/config.toml",
        Path.home() / ".vocabsrs.toml",
    ]


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/vocabsrs/config.toml (if exists)
    3. Environment variables (VOCABSRS_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
