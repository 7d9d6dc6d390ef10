"""
Typer CLI for rebuilding, gating, and validating the errorbook registry index.

Commands print a machine-readable summary on stdout; structured logs go to
stderr. Exit status: ``0`` on success, ``1`` for validation/configuration
failures and crashes, ``2`` for rebuild usage errors and for a coverage gate
that ran but did not reach its threshold.

NAVMAP:
- CLI_ROOT: Root Typer app with global callback
- COMMANDS: rebuild, coverage, validate
- HELPERS: Context extraction, JSON output
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .builder import IndexBuilder, resolve_build_mode
from .coverage import compute_coverage, resolve_min_coverage
from .errors import BuildModeError, RegistryIndexError, format_cli_error
from .io import RegistryLayout, read_json_object
from .raw_base import resolve_raw_base
from .settings import IndexSettings, LogLevel, load_settings
from .types import Registry, RegistryIndex
from .validation import RegistryValidator

__all__ = ["app", "main", "CLIContext", "GATE_FAILED_EXIT_CODE"]

GATE_FAILED_EXIT_CODE = 2
PACKAGE_LOGGER = "Errorbook.RegistryIndex"

# ============================================================================
# CLI Application Setup
# ============================================================================

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Rebuild, gate, and validate the errorbook registry index.",
)


@dataclass
class CLIContext:
    """Settings shared by every subcommand."""

    settings: IndexSettings

    @property
    def layout(self) -> RegistryLayout:
        return self.settings.layout()


def _context(ctx: typer.Context) -> CLIContext:
    state = ctx.obj
    if not isinstance(state, CLIContext):
        typer.secho("Configuration not initialized", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return state


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


# ============================================================================
# Root Callback (Global Options)
# ============================================================================


@app.callback()
def root_callback(
    ctx: typer.Context,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Repository root containing registry/")
    ] = None,
    log_level: Annotated[
        Optional[LogLevel], typer.Option("--log-level", help="Logging level", case_sensitive=False)
    ] = None,
) -> None:
    """Load settings (CLI > ENV > defaults) and configure logging."""
    try:
        settings = load_settings(root=root, log_level=log_level)
    except RegistryIndexError as exc:
        typer.secho(f"Configuration error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    logging.getLogger(PACKAGE_LOGGER).setLevel(settings.log_level.value)
    ctx.obj = CLIContext(settings=settings)


# ============================================================================
# Commands
# ============================================================================


@app.command("rebuild")
def rebuild_command(
    ctx: typer.Context,
    check: Annotated[
        bool, typer.Option("--check", help="Compute and report counts without writing")
    ] = False,
    write: Annotated[
        bool, typer.Option("--write", help="Write shards, registry, and index")
    ] = False,
) -> None:
    """Regenerate the token index and per-bucket shards from the registry."""
    state = _context(ctx)
    try:
        mode = resolve_build_mode(check, write)
    except BuildModeError as exc:
        typer.secho(format_cli_error(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)

    settings = state.settings
    layout = state.layout
    try:
        registry = Registry.from_dict(read_json_object(layout.registry_path))
        builder = IndexBuilder(
            resolve_raw_base(settings.root, settings),
            min_token_length=settings.min_token_length,
        )
        summary = builder.run(registry, layout, mode)
    except RegistryIndexError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _echo_json(summary.to_dict())


@app.command("coverage")
def coverage_command(
    ctx: typer.Context,
    min_coverage: Annotated[
        Optional[float],
        typer.Option("--min-coverage", help="Required coverage percent (default: env or 85)"),
    ] = None,
) -> None:
    """Report how many registry entries are reachable through the index."""
    state = _context(ctx)
    layout = state.layout
    try:
        registry = Registry.from_dict(read_json_object(layout.registry_path))
        index = RegistryIndex.from_dict(read_json_object(layout.index_path))
    except RegistryIndexError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    threshold = resolve_min_coverage(min_coverage, state.settings.index_min_coverage)
    report = compute_coverage(registry, index, threshold)
    _echo_json(report.to_dict())
    if not report.passed:
        raise typer.Exit(code=GATE_FAILED_EXIT_CODE)


@app.command("validate")
def validate_command(
    ctx: typer.Context,
    allow_missing_shards: Annotated[
        bool,
        typer.Option(
            "--allow-missing-shards",
            help="Skip shard file checks (bucket references are still enforced)",
        ),
    ] = False,
) -> None:
    """Check registry, index, and shards for structural and referential consistency."""
    state = _context(ctx)
    layout = state.layout
    try:
        registry = read_json_object(layout.registry_path)
        index = read_json_object(layout.index_path)
        RegistryValidator(
            layout.shards_dir, require_shards=not allow_missing_shards
        ).validate(registry, index)
    except RegistryIndexError as exc:
        typer.secho(f"registry validation failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo("registry validation passed")


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
