# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex.validation",
#   "purpose": "Structural and referential consistency checks across registry, index, and shards",
#   "sections": [
#     {
#       "id": "registryvalidator",
#       "name": "RegistryValidator",
#       "anchor": "class-registryvalidator",
#       "kind": "class"
#     },
#     {
#       "id": "validate-registry",
#       "name": "validate_registry",
#       "anchor": "function-validate-registry",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Consistency validation for the registry, its index, and the shard files.

Checks run in a fixed order and the first violation raises
:class:`~Errorbook.RegistryIndex.errors.ConsistencyError`:

1. schema version tags and container shapes of the registry and index;
2. the registry's declared ``total_entries`` against its actual entries;
3. every bucket location is a non-empty string;
4. every location names a shard under ``/registry/shards/`` ending in ``.json``
   and, in strict mode, that shard exists on disk with the registry version
   tag, an ``entries`` array, and a matching ``source.total_entries``;
5. every ``token_to_bucket`` value is a published bucket.

The validator works on the raw JSON payloads rather than the parsed
dataclasses because it must notice the malformed shapes that parsing would
paper over.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping

from .builder import SHARD_PATH_MARKER
from .errors import ConsistencyError, RegistryFormatError
from .io import SHARD_SUFFIX, read_json_object
from .logging import get_logger, log_event
from .types import INDEX_API_VERSION, REGISTRY_API_VERSION

__all__ = ("RegistryValidator", "validate_registry")

_LOGGER = get_logger(__name__, base_fields={"stage": "validate"})


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConsistencyError(message)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class RegistryValidator:
    """Validate registry/index payloads against each other and the shard directory.

    Args:
        shards_dir: Directory holding ``<bucket>.json`` shard files.
        require_shards: When ``False`` the shard-file checks are skipped, for
            indexes whose shards have not been materialised yet. Bucket
            referential integrity is enforced either way.
    """

    def __init__(self, shards_dir: Path, *, require_shards: bool = True) -> None:
        self.shards_dir = Path(shards_dir)
        self.require_shards = require_shards

    def validate(self, registry: Mapping[str, Any], index: Mapping[str, Any]) -> None:
        """Raise :class:`ConsistencyError` on the first violation found."""

        self._check_versions(registry, index)
        _require(
            registry["total_entries"] == len(registry["entries"]),
            f"registry.total_entries ({registry['total_entries']}) does not match "
            f"entries length ({len(registry['entries'])})",
        )
        buckets: Mapping[str, Any] = index["buckets"]
        for bucket, target in buckets.items():
            _require(isinstance(target, str) and len(target) > 0, f"bucket {bucket} target missing")
        for bucket, target in buckets.items():
            self._check_target(bucket, target)
        token_to_bucket = index.get("token_to_bucket")
        self._check_references({} if token_to_bucket is None else token_to_bucket, buckets)
        log_event(
            _LOGGER,
            "info",
            "registry validation passed",
            bucket_count=len(buckets),
            require_shards=self.require_shards,
        )

    def _check_versions(self, registry: Mapping[str, Any], index: Mapping[str, Any]) -> None:
        _require(isinstance(registry, Mapping), "registry must be object")
        _require(
            registry.get("api_version") == REGISTRY_API_VERSION, "registry api_version invalid"
        )
        _require(isinstance(registry.get("entries"), list), "registry.entries must be array")
        _require(
            _is_number(registry.get("total_entries")), "registry.total_entries must be number"
        )
        _require(isinstance(index, Mapping), "index must be object")
        _require(index.get("api_version") == INDEX_API_VERSION, "index api_version invalid")
        _require(isinstance(index.get("buckets"), Mapping), "index.buckets required")

    def _check_target(self, bucket: str, target: str) -> None:
        _require(
            SHARD_PATH_MARKER in target and target.endswith(SHARD_SUFFIX),
            f"bucket {bucket} target '{target}' is not a shard location",
        )
        if not self.require_shards:
            return
        shard_name = target.rsplit("/", 1)[-1]
        shard_path = self.shards_dir / shard_name
        _require(shard_path.is_file(), f"bucket {bucket} shard missing: {shard_path}")
        try:
            shard = read_json_object(shard_path)
        except RegistryFormatError as exc:
            raise ConsistencyError(f"bucket {bucket} shard unreadable: {exc}") from exc
        _require(
            shard.get("api_version") == REGISTRY_API_VERSION,
            f"shard {shard_name} api_version invalid",
        )
        entries = shard.get("entries")
        _require(isinstance(entries, list), f"shard {shard_name} entries must be array")
        source = shard.get("source")
        declared = source.get("total_entries") if isinstance(source, Mapping) else None
        _require(
            declared == len(entries),
            f"shard {shard_name} source.total_entries ({declared}) does not match "
            f"entries length ({len(entries)})",
        )

    @staticmethod
    def _check_references(token_to_bucket: Any, buckets: Mapping[str, Any]) -> None:
        _require(isinstance(token_to_bucket, Mapping), "index.token_to_bucket must be object")
        for token, bucket in token_to_bucket.items():
            if isinstance(bucket, str) and bucket in buckets:
                continue
            raise ConsistencyError(
                f"token_to_bucket maps token '{token}' to unknown bucket '{bucket}'",
                token=token,
                bucket=bucket if isinstance(bucket, str) else None,
            )


def validate_registry(
    registry: Mapping[str, Any],
    index: Mapping[str, Any],
    shards_dir: Path,
    *,
    require_shards: bool = True,
) -> None:
    """Convenience wrapper around :meth:`RegistryValidator.validate`."""

    RegistryValidator(shards_dir, require_shards=require_shards).validate(registry, index)
