"""Typed configuration — single source of truth for all increments settings.

Loading priority (highest to lowest):
  1. Explicit init kwargs (programmatic overrides, tests)
  2. Environment variables: INCREMENTS_<SECTION>__<KEY>  (double-underscore separator)
  3. Config file: INCREMENTS_CONFIG_FILE env var, or conf/settings.toml at project root
  4. Model field defaults

Example env overrides:
  INCREMENTS_PATHS__INCREMENTS_DIR=/srv/db/incrementals
  INCREMENTS_CHAIN__BASELINE=20160128_192500
  INCREMENTS_CHAIN__POLICY=strict
  INCREMENTS_LOGGING__LEVEL=DEBUG
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

# src/increments/config.py → ../../..
_PROJECT_ROOT = Path(__file__).parent.parent.parent
_DEFAULT_CONFIG = _PROJECT_ROOT / "conf" / "settings.toml"


def _config_file() -> Path:
    """Resolve the config file path.

    Returns INCREMENTS_CONFIG_FILE if set (raises FileNotFoundError if
    missing), otherwise the bundled default at conf/settings.toml.
    """
    if env_val := os.environ.get("INCREMENTS_CONFIG_FILE"):
        p = Path(env_val)
        if not p.is_file():
            raise FileNotFoundError(f"INCREMENTS_CONFIG_FILE not found: {p}")
        return p
    return _DEFAULT_CONFIG


# ---------------------------------------------------------------------------
# Section models — each maps to a [section] in conf/settings.toml
# ---------------------------------------------------------------------------


class PathsSettings(BaseModel):
    """Where increment files live and where run state is kept."""

    increments_dir: Path = Path("incrementals")
    state_dir: Path = Path(".increments")


class ChainSettings(BaseModel):
    """Chain-matching behaviour."""

    # Used only when no baseline has been saved to the state file.
    baseline: str | None = None
    ignore: list[str] = Field(default_factory=lambda: [".gitkeep"])
    policy: Literal["skip", "strict"] = "skip"

    @field_validator("baseline", mode="before")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class HeaderSettings(BaseModel):
    """Header line format and read sizes."""

    current_prefix: str = "-- Increment timestamp:"
    previous_prefix: str = "-- Previous timestamp:"
    chunk_size: int = Field(default=4096, gt=0)
    max_line_bytes: int = Field(default=64 * 1024, gt=0)


class LoggingSettings(BaseModel):
    """Logging verbosity and output format."""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"

    @field_validator("level", mode="before")
    @classmethod
    def _normalise_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"level must be one of {sorted(valid)}, got {v!r}")
        return v.upper()


# ---------------------------------------------------------------------------
# Root settings class
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """All increments runtime settings, fully resolved and validated."""

    paths: PathsSettings = PathsSettings()
    chain: ChainSettings = ChainSettings()
    header: HeaderSettings = HeaderSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_prefix="INCREMENTS_",
        env_nested_delimiter="__",  # INCREMENTS_CHAIN__POLICY → chain.policy
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # TOML + env only; no dotenv or secret files.
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=_config_file()),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide Settings instance (loaded once, cached thereafter).

    Tests should call ``get_settings.cache_clear()`` before each test that
    patches environment variables or the config file.
    """
    return Settings()
