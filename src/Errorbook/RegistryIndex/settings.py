# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex.settings",
#   "purpose": "Pydantic Settings for registry index paths, thresholds, and URL resolution.",
#   "sections": [
#     {
#       "id": "loglevel",
#       "name": "LogLevel",
#       "anchor": "class-loglevel",
#       "kind": "class"
#     },
#     {
#       "id": "indexsettings",
#       "name": "IndexSettings",
#       "anchor": "class-indexsettings",
#       "kind": "class"
#     },
#     {
#       "id": "load-settings",
#       "name": "load_settings",
#       "anchor": "function-load-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Settings for the errorbook registry index tools.

Values are layered with the precedence CLI args > ENV vars > defaults. The
environment uses the ``ERRORBOOK_`` prefix (``ERRORBOOK_INDEX_MIN_COVERAGE``,
``ERRORBOOK_REGISTRY_RAW_BASE``, ``ERRORBOOK_REGISTRY_BRANCH``...) except for
``GITHUB_REPOSITORY``, which CI runners export under that exact name. Blank
environment values are treated as unset.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .io import RegistryLayout
from .types import DEFAULT_MIN_TOKEN_LENGTH

__all__ = ["DEFAULT_MIN_COVERAGE", "LogLevel", "IndexSettings", "load_settings"]

DEFAULT_MIN_COVERAGE = 85


class LogLevel(str, Enum):
    """Logging verbosity accepted by the CLI."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class IndexSettings(BaseSettings):
    """Paths, thresholds, and URL hints shared by rebuild, coverage, and validate."""

    model_config = SettingsConfigDict(
        env_prefix="ERRORBOOK_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    root: Path = Field(Path("."), description="Repository root containing registry/")
    min_token_length: int = Field(
        DEFAULT_MIN_TOKEN_LENGTH,
        ge=1,
        description="Minimum token length used when rebuilding the index",
    )
    index_min_coverage: Optional[str] = Field(
        None,
        description="Coverage gate threshold override (percent); unusable values are ignored",
    )
    registry_raw_base: Optional[str] = Field(
        None, description="Explicit URL prefix used for shard locations"
    )
    registry_branch: str = Field("main", description="Branch used with GITHUB_REPOSITORY")
    github_repository: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("GITHUB_REPOSITORY", "github_repository"),
        description="owner/name slug exported by CI",
    )
    log_level: LogLevel = Field(LogLevel.INFO, description="Logging level")

    @field_validator(
        "index_min_coverage",
        "registry_raw_base",
        "github_repository",
        mode="before",
    )
    @classmethod
    def blank_as_unset(cls, value: Any) -> Any:
        """Treat empty or whitespace-only strings as missing values."""
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("index_min_coverage", mode="before")
    @classmethod
    def coverage_as_text(cls, value: Any) -> Any:
        """Keep the raw threshold; the coverage gate decides whether it is usable."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("registry_branch", mode="before")
    @classmethod
    def default_branch(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "main"
        return value.strip() if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("root", mode="before")
    @classmethod
    def expand_root(cls, value: Any) -> Any:
        """Expand user home for string or path roots."""
        if isinstance(value, (str, Path)):
            return Path(value).expanduser()
        return value

    def layout(self) -> RegistryLayout:
        return RegistryLayout.for_root(self.root)


def load_settings(**overrides: Any) -> IndexSettings:
    """Build :class:`IndexSettings`, applying non-``None`` ``overrides`` last.

    Raises:
        ConfigurationError: If the environment or overrides fail validation.
    """

    explicit = {key: value for key, value in overrides.items() if value is not None}
    try:
        return IndexSettings(**explicit)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid registry index settings: {exc}") from exc
