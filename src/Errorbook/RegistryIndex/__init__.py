# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex",
#   "purpose": "Errorbook registry index public API facade",
#   "sections": []
# }
# === /NAVMAP ===

"""
Errorbook.RegistryIndex builds and verifies the sharded token index published
next to the errorbook registry. Consumers download ``errorbook-registry.index.json``,
tokenize their query the same way the builder does, and fetch only the shard
files of the buckets those tokens route to.

Core modules and how they interrelate:

- ``tokenization`` turns an entry's text and tag fields into a token set. The
  builder and the coverage gate share it, which keeps their view of an entry
  identical.
- ``classifier`` routes a token to a bucket through the seed dictionary, the
  domain hint table, and a first-character fallback. Vocabularies are
  immutable values injected at construction.
- ``builder`` folds tokens into ``token_to_bucket``, groups entries per bucket,
  writes one shard per bucket, and prunes shards that no longer belong to the
  index.
- ``coverage`` recomputes token sets against a built index and turns the result
  into a pass/fail report for CI.
- ``validation`` enforces schema tags, declared counts, shard presence, and
  bucket referential integrity.
- ``settings``, ``raw_base``, ``io``, ``logging`` and ``cli`` are the
  configuration and I/O adapters around that core.
"""

from __future__ import annotations

# --- Globals ---

__all__ = (
    "BucketClassifier",
    "BucketVocabulary",
    "BuildMode",
    "ConsistencyError",
    "CoverageReport",
    "DEFAULT_VOCABULARY",
    "Entry",
    "IndexBuilder",
    "IndexSettings",
    "RebuildResult",
    "Registry",
    "RegistryIndex",
    "RegistryIndexError",
    "RegistryLayout",
    "RegistryValidator",
    "Shard",
    "compute_coverage",
    "resolve_build_mode",
    "resolve_min_coverage",
    "resolve_raw_base",
    "tokenize_entry",
    "validate_registry",
)


# --- Re-exports ---

from .builder import BuildMode, IndexBuilder, RebuildResult, resolve_build_mode
from .classifier import DEFAULT_VOCABULARY, BucketClassifier, BucketVocabulary
from .coverage import compute_coverage, resolve_min_coverage
from .errors import ConsistencyError, RegistryIndexError
from .io import RegistryLayout
from .raw_base import resolve_raw_base
from .settings import IndexSettings
from .tokenization import tokenize_entry
from .types import CoverageReport, Entry, Registry, RegistryIndex, Shard
from .validation import RegistryValidator, validate_registry
