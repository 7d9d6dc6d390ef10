"""
JSON persistence helpers for registry, index, and shard files.

Every artifact produced by a rebuild is written through :func:`atomic_write`
so readers never observe a half-written shard, and every reader goes through
:func:`read_json_object` so decoding failures surface as
:class:`~Errorbook.RegistryIndex.errors.RegistryFormatError` with the offending
path attached.
"""

from __future__ import annotations

import contextlib
import json
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, TextIO

from .errors import RegistryFormatError

__all__ = [
    "REGISTRY_FILE_NAME",
    "INDEX_FILE_NAME",
    "SHARDS_DIR_NAME",
    "SHARD_SUFFIX",
    "RegistryLayout",
    "atomic_write",
    "read_json_object",
    "write_json",
    "list_shard_files",
]

REGISTRY_FILE_NAME = "errorbook-registry.json"
INDEX_FILE_NAME = "errorbook-registry.index.json"
SHARDS_DIR_NAME = "shards"
SHARD_SUFFIX = ".json"


@dataclass(frozen=True, slots=True)
class RegistryLayout:
    """Filesystem locations of the registry, its index, and its shards."""

    registry_path: Path
    index_path: Path
    shards_dir: Path

    @classmethod
    def for_root(cls, root: Path) -> "RegistryLayout":
        """Return the conventional ``<root>/registry/...`` layout."""

        base = Path(root) / "registry"
        return cls(
            registry_path=base / REGISTRY_FILE_NAME,
            index_path=base / INDEX_FILE_NAME,
            shards_dir=base / SHARDS_DIR_NAME,
        )

    def shard_path(self, bucket: str) -> Path:
        return self.shards_dir / f"{bucket}{SHARD_SUFFIX}"


@contextlib.contextmanager
def atomic_write(path: Path) -> Iterator[TextIO]:
    """Write to a temporary file and atomically replace the destination."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex}")
    try:
        with tmp.open("w", encoding="utf-8") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def read_json_object(path: Path) -> Dict[str, Any]:
    """Load ``path`` and require a top-level JSON object."""

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RegistryFormatError(f"{path} does not exist", path=path) from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RegistryFormatError(
            f"{path}: invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}",
            path=path,
        ) from exc
    if not isinstance(payload, dict):
        raise RegistryFormatError(f"{path}: expected a JSON object", path=path)
    return payload


def write_json(path: Path, payload: Any) -> Path:
    """Persist ``payload`` with two-space indentation and a trailing newline."""

    with atomic_write(path) as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    return path


def list_shard_files(shards_dir: Path) -> List[str]:
    """Return the sorted names of ``*.json`` files in ``shards_dir``."""

    if not shards_dir.is_dir():
        return []
    return sorted(
        child.name
        for child in shards_dir.iterdir()
        if child.is_file() and child.name.endswith(SHARD_SUFFIX)
    )
