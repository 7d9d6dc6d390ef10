"""
Core typed structures for the errorbook registry index.

This module defines the records exchanged between the tokenizer, the bucket
classifier, the index builder, the coverage gate, and the consistency
validator. Registry entries arrive as loosely typed JSON objects, so every
optional field is normalised once here (``Entry.from_mapping``) rather than
type-checked at each access site. The original JSON payload of each entry is
retained verbatim so shards and the rewritten registry serialise exactly what
the registry authors wrote.

Key Features:
- Immutable entry model with explicit optional text and tag fields
- Registry / index / shard containers with ``from_dict``/``to_dict`` helpers
- Report structures for rebuild summaries and coverage results
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

__all__ = (
    "REGISTRY_API_VERSION",
    "INDEX_API_VERSION",
    "DEFAULT_MIN_TOKEN_LENGTH",
    "UNKNOWN_ENTRY_ID",
    "TEXT_FIELDS",
    "TAG_FIELDS",
    "Entry",
    "Registry",
    "RegistryIndex",
    "Shard",
    "RebuildSummary",
    "UncoveredEntry",
    "CoverageReport",
    "coerce_number",
    "utc_timestamp",
)

# --- Globals ---

REGISTRY_API_VERSION = "sce.errorbook.registry/v0.1"
INDEX_API_VERSION = "sce.errorbook.registry-index/v0.1"
DEFAULT_MIN_TOKEN_LENGTH = 2
UNKNOWN_ENTRY_ID = "(unknown)"
_UNSET: Any = object()

TEXT_FIELDS: Tuple[str, ...] = ("title", "symptom", "root_cause", "notes")
TAG_FIELDS: Tuple[str, ...] = ("tags", "ontology_tags", "fix_actions", "verification_evidence")


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a ``Z`` suffix."""

    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _string_items(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def coerce_number(value: Any) -> Optional[Union[int, float]]:
    """Return ``value`` as a finite number, or ``None`` when it is not one.

    Numbers pass through; numeric strings such as ``"3"`` or ``" 72.5 "`` are
    parsed, so hand-edited JSON and environment values behave alike. Booleans,
    blank strings, and anything that parses to NaN or infinity are rejected.
    """

    if _finite_number(value):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


# --- Public Classes ---


@dataclass(frozen=True, slots=True)
class Entry:
    """One knowledge-base record describing a past error and its remediation.

    Attributes:
        id: Primary identifier, when present and a string.
        fingerprint: Secondary identifier used when ``id`` is absent.
        title: Short headline of the error.
        symptom: Observable behaviour.
        root_cause: Diagnosed cause.
        notes: Free-form remarks.
        tags: Author-supplied tags.
        ontology_tags: Tags drawn from the shared ontology.
        fix_actions: Remediation steps.
        verification_evidence: Evidence that the fix held.
        payload: The untouched JSON value the entry was parsed from.

    Examples:
        >>> entry = Entry.from_mapping({"id": "E-1", "title": "Order approval timeout"})
        >>> entry.display_id
        'E-1'
    """

    id: Optional[str] = None
    fingerprint: Optional[str] = None
    title: Optional[str] = None
    symptom: Optional[str] = None
    root_cause: Optional[str] = None
    notes: Optional[str] = None
    tags: Tuple[str, ...] = ()
    ontology_tags: Tuple[str, ...] = ()
    fix_actions: Tuple[str, ...] = ()
    verification_evidence: Tuple[str, ...] = ()
    payload: Any = field(default=_UNSET, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, payload: Any) -> "Entry":
        """Build an entry from a JSON value, dropping fields of unexpected type."""

        if not isinstance(payload, Mapping):
            return cls(payload=payload)
        return cls(
            id=_optional_text(payload.get("id")),
            fingerprint=_optional_text(payload.get("fingerprint")),
            title=_optional_text(payload.get("title")),
            symptom=_optional_text(payload.get("symptom")),
            root_cause=_optional_text(payload.get("root_cause")),
            notes=_optional_text(payload.get("notes")),
            tags=_string_items(payload.get("tags")),
            ontology_tags=_string_items(payload.get("ontology_tags")),
            fix_actions=_string_items(payload.get("fix_actions")),
            verification_evidence=_string_items(payload.get("verification_evidence")),
            payload=payload,
        )

    @property
    def display_id(self) -> str:
        """Identifier used in reports: ``id``, then ``fingerprint``, then ``(unknown)``."""

        for candidate in (self.id, self.fingerprint):
            if candidate and candidate.strip():
                return candidate.strip()
        return UNKNOWN_ENTRY_ID

    def text_chunks(self) -> List[str]:
        """Return the raw text fields followed by every tag-like string."""

        chunks: List[str] = []
        for name in TEXT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                chunks.append(value)
        for name in TAG_FIELDS:
            chunks.extend(getattr(self, name))
        return chunks

    def to_payload(self) -> Any:
        """Return the value to serialise for this entry."""

        if self.payload is not _UNSET:
            return self.payload
        data: Dict[str, Any] = {}
        for name in ("id", "fingerprint", *TEXT_FIELDS):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        for name in TAG_FIELDS:
            values = getattr(self, name)
            if values:
                data[name] = list(values)
        return data


@dataclass(frozen=True, slots=True)
class Registry:
    """Versioned container of entries as stored in ``errorbook-registry.json``."""

    entries: Tuple[Entry, ...] = ()
    api_version: Optional[str] = REGISTRY_API_VERSION
    generated_at: Optional[str] = None
    total_entries: Optional[int] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Registry":
        """Parse a registry payload; a non-array ``entries`` yields no entries."""

        raw_entries = payload.get("entries")
        entries = (
            tuple(Entry.from_mapping(item) for item in raw_entries)
            if isinstance(raw_entries, list)
            else ()
        )
        total = payload.get("total_entries")
        known = {"api_version", "generated_at", "total_entries", "entries"}
        return cls(
            entries=entries,
            api_version=_optional_text(payload.get("api_version")),
            generated_at=_optional_text(payload.get("generated_at")),
            total_entries=total if _finite_number(total) else None,
            extra={key: value for key, value in payload.items() if key not in known},
        )

    def refreshed(self, generated_at: str) -> "Registry":
        """Return a copy stamped with ``generated_at`` and an accurate count."""

        return Registry(
            entries=self.entries,
            api_version=REGISTRY_API_VERSION,
            generated_at=generated_at,
            total_entries=len(self.entries),
            extra=self.extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update(
            {
                "api_version": self.api_version,
                "generated_at": self.generated_at,
                "total_entries": self.total_entries,
                "entries": [entry.to_payload() for entry in self.entries],
            }
        )
        return data


@dataclass(frozen=True, slots=True)
class RegistryIndex:
    """Token-to-bucket routing table plus bucket-to-shard locations."""

    token_to_bucket: Mapping[str, str] = field(default_factory=dict)
    buckets: Mapping[str, str] = field(default_factory=dict)
    min_token_length: float = DEFAULT_MIN_TOKEN_LENGTH
    api_version: Optional[str] = INDEX_API_VERSION
    generated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RegistryIndex":
        """Parse an index payload tolerantly.

        Missing or malformed maps become empty, a ``min_token_length`` that is
        not a finite number (numeric strings count) falls back to the default,
        and bucket values that are not strings normalise to ``""`` so they
        never match a bucket key.
        """

        raw_tokens = payload.get("token_to_bucket")
        raw_buckets = payload.get("buckets")
        min_length = coerce_number(payload.get("min_token_length"))
        token_to_bucket = (
            {
                str(token): (bucket.strip() if isinstance(bucket, str) else "")
                for token, bucket in raw_tokens.items()
            }
            if isinstance(raw_tokens, Mapping)
            else {}
        )
        buckets = dict(raw_buckets) if isinstance(raw_buckets, Mapping) else {}
        return cls(
            token_to_bucket=token_to_bucket,
            buckets=buckets,
            min_token_length=DEFAULT_MIN_TOKEN_LENGTH if min_length is None else min_length,
            api_version=_optional_text(payload.get("api_version")),
            generated_at=_optional_text(payload.get("generated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_version": self.api_version,
            "generated_at": self.generated_at,
            "min_token_length": self.min_token_length,
            "token_to_bucket": dict(self.token_to_bucket),
            "buckets": dict(self.buckets),
        }


@dataclass(frozen=True, slots=True)
class Shard:
    """Entries reachable through a single bucket."""

    bucket: str
    entries: Tuple[Entry, ...]
    generated_at: str
    api_version: str = REGISTRY_API_VERSION

    @property
    def file_name(self) -> str:
        return f"{self.bucket}.json"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_version": self.api_version,
            "generated_at": self.generated_at,
            "bucket": self.bucket,
            "source": {"total_entries": len(self.entries)},
            "entries": [entry.to_payload() for entry in self.entries],
        }


@dataclass(frozen=True, slots=True)
class RebuildSummary:
    """Counts reported after a rebuild in either check or write mode."""

    write: bool
    total_entries: int
    bucket_count: int
    token_count: int
    mode: str = "rebuild-index"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "write": self.write,
            "total_entries": self.total_entries,
            "bucket_count": self.bucket_count,
            "token_count": self.token_count,
        }


@dataclass(frozen=True, slots=True)
class UncoveredEntry:
    id: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "reason": self.reason}


@dataclass(frozen=True, slots=True)
class CoverageReport:
    """Aggregate result of the coverage gate.

    Attributes:
        threshold_percent: Minimum coverage required to pass.
        total_entries: Number of registry entries inspected.
        covered_entries: Entries reachable through an indexed bucket.
        uncovered_entries: Entries that are not reachable.
        coverage_percent: ``covered / total * 100`` rounded to two decimals.
        passed: ``True`` when the gate is satisfied.
        uncovered_sample: Bounded sample of uncovered entries with reasons.
    """

    threshold_percent: float
    total_entries: int
    covered_entries: int
    uncovered_entries: int
    coverage_percent: float
    passed: bool
    uncovered_sample: Sequence[UncoveredEntry] = ()
    mode: str = "index-coverage-gate"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "threshold_percent": self.threshold_percent,
            "total_entries": self.total_entries,
            "covered_entries": self.covered_entries,
            "uncovered_entries": self.uncovered_entries,
            "coverage_percent": self.coverage_percent,
            "passed": self.passed,
            "uncovered_sample": [item.to_dict() for item in self.uncovered_sample],
        }
