# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex.builder",
#   "purpose": "Rebuild the token index and materialise per-bucket shard files",
#   "sections": [
#     {
#       "id": "buildmode",
#       "name": "BuildMode",
#       "anchor": "class-buildmode",
#       "kind": "class"
#     },
#     {
#       "id": "resolve-build-mode",
#       "name": "resolve_build_mode",
#       "anchor": "function-resolve-build-mode",
#       "kind": "function"
#     },
#     {
#       "id": "rebuildresult",
#       "name": "RebuildResult",
#       "anchor": "class-rebuildresult",
#       "kind": "class"
#     },
#     {
#       "id": "indexbuilder",
#       "name": "IndexBuilder",
#       "anchor": "class-indexbuilder",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Index rebuild and shard materialisation.

``IndexBuilder.rebuild`` is a pure computation over a :class:`Registry`:

- every entry is tokenized (:func:`tokenize_entry`) and each token classified
  (:class:`BucketClassifier`);
- the entry is appended to the entry list of every bucket it reaches, so one
  entry can live in several shards;
- ``token_to_bucket`` is the seed dictionary merged with the classification of
  every token seen, emitted in sorted token order. Classification depends on
  the token alone, so the map is the same whatever order entries arrive in;
- seed buckets always exist, even when empty, followed by every other
  populated bucket in name order.

``IndexBuilder.write`` persists the result: shards first, then stale shard
pruning, then the registry and the index. Check mode stops after the
computation and reports counts only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .classifier import BucketClassifier
from .errors import BuildModeError
from .io import SHARD_SUFFIX, RegistryLayout, list_shard_files, write_json
from .logging import get_logger, log_event
from .tokenization import tokenize_entry
from .types import (
    DEFAULT_MIN_TOKEN_LENGTH,
    INDEX_API_VERSION,
    Entry,
    RebuildSummary,
    Registry,
    RegistryIndex,
    Shard,
    utc_timestamp,
)

__all__ = (
    "SHARD_PATH_MARKER",
    "BuildMode",
    "RebuildResult",
    "IndexBuilder",
    "resolve_build_mode",
    "shard_location",
)

# --- Globals ---

SHARD_PATH_MARKER = "/registry/shards/"

_LOGGER = get_logger(__name__, base_fields={"stage": "rebuild"})


class BuildMode(str, Enum):
    """Whether a rebuild only reports (``check``) or also persists (``write``)."""

    CHECK = "check"
    WRITE = "write"


def resolve_build_mode(check: bool, write: bool) -> BuildMode:
    """Map the ``--check``/``--write`` flags to a :class:`BuildMode`.

    Check wins when both are given. Requesting neither is a usage error.
    """

    if check:
        return BuildMode.CHECK
    if write:
        return BuildMode.WRITE
    raise BuildModeError(
        option="--write",
        message="missing --write (or use --check)",
        hint="pass --check for a dry run",
    )


def shard_location(raw_base: str, bucket: str) -> str:
    """Return the published URL of ``bucket``'s shard."""

    return f"{raw_base}{SHARD_PATH_MARKER}{bucket}{SHARD_SUFFIX}"


@dataclass(frozen=True)
class RebuildResult:
    """Everything a rebuild computes, ready to be reported or written."""

    registry: Registry
    index: RegistryIndex
    bucket_entries: Mapping[str, Tuple[Entry, ...]]
    generated_at: str

    def shards(self) -> List[Shard]:
        return [
            Shard(bucket=bucket, entries=entries, generated_at=self.generated_at)
            for bucket, entries in self.bucket_entries.items()
        ]

    def summary(self, *, write: bool) -> RebuildSummary:
        return RebuildSummary(
            write=write,
            total_entries=len(self.registry.entries),
            bucket_count=len(self.index.buckets),
            token_count=len(self.index.token_to_bucket),
        )


class IndexBuilder:
    """Derive the token index and bucket partition from a registry."""

    def __init__(
        self,
        raw_base: str,
        *,
        classifier: Optional[BucketClassifier] = None,
        min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
    ) -> None:
        if min_token_length < 1:
            raise ValueError("min_token_length must be at least 1")
        self.raw_base = raw_base.rstrip("/")
        self.classifier = classifier or BucketClassifier()
        self.min_token_length = min_token_length

    def classify_tokens(self, entries: Sequence[Entry]) -> Dict[str, str]:
        """Return the seeded token map extended with every token in ``entries``."""

        seen: set[str] = set()
        for entry in entries:
            seen.update(tokenize_entry(entry, self.min_token_length))
        merged = dict(self.classifier.vocabulary.seed_tokens)
        merged.update({token: self.classifier.classify(token) for token in seen})
        return dict(sorted(merged.items()))

    def partition(
        self, entries: Sequence[Entry], token_to_bucket: Mapping[str, str]
    ) -> Dict[str, Tuple[Entry, ...]]:
        """Group ``entries`` by every bucket their tokens reach."""

        grouped: Dict[str, List[Entry]] = {bucket: [] for bucket in self.classifier.seed_buckets()}
        for entry in entries:
            reached = {token_to_bucket[token] for token in tokenize_entry(entry, self.min_token_length)}
            for bucket in sorted(reached):
                grouped.setdefault(bucket, []).append(entry)
        seeds = list(self.classifier.seed_buckets())
        ordered = seeds + sorted(bucket for bucket in grouped if bucket not in seeds)
        return {bucket: tuple(grouped[bucket]) for bucket in ordered}

    def rebuild(self, registry: Registry, *, generated_at: Optional[str] = None) -> RebuildResult:
        """Compute the index and shard membership without touching storage."""

        stamp = generated_at or utc_timestamp()
        entries = registry.entries
        token_to_bucket = self.classify_tokens(entries)
        bucket_entries = self.partition(entries, token_to_bucket)
        index = RegistryIndex(
            token_to_bucket=token_to_bucket,
            buckets={bucket: shard_location(self.raw_base, bucket) for bucket in bucket_entries},
            min_token_length=self.min_token_length,
            api_version=INDEX_API_VERSION,
            generated_at=stamp,
        )
        return RebuildResult(
            registry=registry.refreshed(stamp),
            index=index,
            bucket_entries=bucket_entries,
            generated_at=stamp,
        )

    def write(self, result: RebuildResult, layout: RegistryLayout) -> List[str]:
        """Persist shards, prune stale ones, then write registry and index.

        Returns:
            Names of the shard files that were removed.
        """

        active: set[str] = set()
        for shard in result.shards():
            write_json(layout.shard_path(shard.bucket), shard.to_dict())
            active.add(shard.file_name)
            log_event(
                _LOGGER,
                "debug",
                "shard written",
                bucket=shard.bucket,
                entries=len(shard.entries),
            )

        pruned: List[str] = []
        for name in list_shard_files(layout.shards_dir):
            if name in active:
                continue
            (layout.shards_dir / name).unlink()
            pruned.append(name)
            log_event(_LOGGER, "info", "stale shard pruned", shard=name)

        write_json(layout.registry_path, result.registry.to_dict())
        write_json(layout.index_path, result.index.to_dict())
        return pruned

    def run(self, registry: Registry, layout: RegistryLayout, mode: BuildMode) -> RebuildSummary:
        """Rebuild and, in write mode, persist; returns the reported summary."""

        result = self.rebuild(registry)
        write = mode is BuildMode.WRITE
        if write:
            self.write(result, layout)
        summary = result.summary(write=write)
        log_event(
            _LOGGER,
            "info",
            "rebuild complete",
            write=write,
            total_entries=summary.total_entries,
            bucket_count=summary.bucket_count,
            token_count=summary.token_count,
        )
        return summary
