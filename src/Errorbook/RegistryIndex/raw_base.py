"""Resolve the public URL prefix under which shard files are published.

Shard locations stored in the index are absolute URLs so consumers can fetch a
single bucket without cloning the registry. The prefix is taken from, in order:
an explicit ``ERRORBOOK_REGISTRY_RAW_BASE``; the CI-provided
``GITHUB_REPOSITORY`` with ``ERRORBOOK_REGISTRY_BRANCH``; the ``origin`` URL in
``.git/config`` when it points at GitHub; and finally the upstream registry.
Only the index builder consults this module.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from .logging import get_logger, log_event
from .settings import IndexSettings

__all__ = ["DEFAULT_RAW_BASE", "RAW_GITHUB_HOST", "parse_github_remote", "resolve_raw_base"]

RAW_GITHUB_HOST = "https://raw.githubusercontent.com"
DEFAULT_RAW_BASE = f"{RAW_GITHUB_HOST}/heguangyong/sce-errorbook-registry/main"

_URL_LINE = re.compile(r"url\s*=\s*(.+)")
_GITHUB_HTTPS = re.compile(r"^https://github\.com/([^/]+)/([^/.]+)(?:\.git)?$", re.IGNORECASE)
_GITHUB_SSH = re.compile(r"^git@github\.com:([^/]+)/([^/.]+)(?:\.git)?$", re.IGNORECASE)

_LOGGER = get_logger(__name__, base_fields={"stage": "raw-base"})


def parse_github_remote(url: str) -> Optional[str]:
    """Return ``owner/repo`` for a GitHub HTTPS or SSH remote, else ``None``."""

    candidate = url.strip()
    for pattern in (_GITHUB_HTTPS, _GITHUB_SSH):
        match = pattern.match(candidate)
        if match:
            return f"{match.group(1)}/{match.group(2)}"
    return None


def _from_git_config(root: Path) -> Optional[str]:
    config_path = root / ".git" / "config"
    try:
        if not config_path.is_file():
            return None
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        log_event(_LOGGER, "debug", "git config unreadable", path=str(config_path), error=str(exc))
        return None
    match = _URL_LINE.search(raw)
    if not match:
        return None
    slug = parse_github_remote(match.group(1))
    if slug is None:
        return None
    return f"{RAW_GITHUB_HOST}/{slug}/main"


def resolve_raw_base(root: Path, settings: IndexSettings) -> str:
    """Return the shard URL prefix without a trailing slash."""

    if settings.registry_raw_base:
        base = settings.registry_raw_base.rstrip("/")
        source = "env"
    elif settings.github_repository:
        base = f"{RAW_GITHUB_HOST}/{settings.github_repository}/{settings.registry_branch}"
        source = "github-repository"
    else:
        from_git = _from_git_config(Path(root))
        if from_git is not None:
            base, source = from_git, "git-config"
        else:
            base, source = DEFAULT_RAW_BASE, "default"
    log_event(_LOGGER, "debug", "raw base resolved", raw_base=base, source=source)
    return base
