"""Exception hierarchy shared by the registry index builder, gate, and validator.

Rebuilds and validations fail fast: malformed registry/index payloads, dangling
bucket references, and missing shard files abort immediately with one of the
errors below so automation never trusts a corrupted index. The coverage gate is
the exception to that rule and reports per-entry failures in its payload
instead of raising. CLI usage errors reuse the option/hint layout used by the
other command-line tools so terminal output stays predictable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = [
    "RegistryIndexError",
    "RegistryFormatError",
    "ConsistencyError",
    "ConfigurationError",
    "CLIValidationError",
    "BuildModeError",
    "format_cli_error",
]


class RegistryIndexError(RuntimeError):
    """Base exception for registry indexing and verification failures."""


class RegistryFormatError(RegistryIndexError):
    """Raised when a registry, index, or shard file cannot be decoded."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class ConsistencyError(RegistryIndexError):
    """Raised when the registry, index, and shards disagree with each other."""

    def __init__(
        self,
        message: str,
        *,
        token: Optional[str] = None,
        bucket: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.token = token
        self.bucket = bucket


class ConfigurationError(RegistryIndexError):
    """Raised when settings or environment overrides are invalid."""


@dataclass(slots=True)
class CLIValidationError(ValueError):
    """Base exception capturing option names and human-friendly messages."""

    option: str
    message: str
    hint: Optional[str] = None
    stage: str = "cli"

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        ValueError.__init__(self, self.message)

    def __str__(self) -> str:  # pragma: no cover - formatting handled in helper
        return self.message


class BuildModeError(CLIValidationError):
    """Raised when a rebuild is requested without ``--check`` or ``--write``."""

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self.stage = "rebuild"
        CLIValidationError.__post_init__(self)


def format_cli_error(error: CLIValidationError) -> str:
    """Return a consistent error string for CLI consumption."""

    prefix = f"[{error.stage}]"
    hint = f" Hint: {error.hint}" if error.hint else ""
    return f"{prefix} {error.option}: {error.message}.{hint}".strip()


# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex.errors",
#   "purpose": "Define the exception hierarchy used by rebuild, coverage, and validation",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "consistency", "name": "Consistency Errors", "anchor": "CON", "kind": "api"},
#     {"id": "cli", "name": "CLI Usage Errors", "anchor": "CLI", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
