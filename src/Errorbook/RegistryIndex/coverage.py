"""Coverage gate for the registry index.

The gate re-tokenizes every registry entry with the minimum token length the
index declares and checks that at least one of the entry's tokens routes, via
``token_to_bucket``, to a bucket the index publishes. Individual misses never
abort the run; they are counted and sampled into a :class:`CoverageReport`, and
only the aggregate pass/fail decision is meant to drive the process exit status.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from .logging import get_logger, log_event
from .settings import DEFAULT_MIN_COVERAGE
from .tokenization import tokenize_entry
from .types import CoverageReport, Registry, RegistryIndex, UncoveredEntry, coerce_number

__all__ = (
    "REASON_NO_TOKENS",
    "REASON_UNMAPPED",
    "UNCOVERED_SAMPLE_SIZE",
    "coverage_percent",
    "compute_coverage",
    "resolve_min_coverage",
)

REASON_NO_TOKENS = "no-indexable-tokens"
REASON_UNMAPPED = "token-not-mapped-to-existing-bucket"
UNCOVERED_SAMPLE_SIZE = 20

_LOGGER = get_logger(__name__, base_fields={"stage": "coverage"})

Number = Union[int, float]


def _routes_to_bucket(index: RegistryIndex, token: str) -> bool:
    bucket = index.token_to_bucket.get(token)
    return bool(bucket) and bucket in index.buckets


def resolve_min_coverage(
    explicit: Optional[Number] = None, env_value: Optional[Union[Number, str]] = None
) -> Number:
    """Return the threshold: explicit value, then environment override, then 85.

    Either source is skipped when it is not a finite number, so a malformed
    ``ERRORBOOK_INDEX_MIN_COVERAGE`` falls back to the default instead of
    failing the run. Numeric text such as ``"72.5"`` is accepted.
    """

    for candidate in (explicit, env_value):
        number = coerce_number(candidate)
        if number is not None:
            return number
    return DEFAULT_MIN_COVERAGE


def coverage_percent(covered: int, total: int) -> Number:
    """Return ``covered / total * 100`` rounded half-up to two decimals (100 when empty)."""

    if total == 0:
        return 100
    ratio = Decimal(covered / total * 100)
    return float(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_coverage(
    registry: Registry,
    index: RegistryIndex,
    min_coverage: Optional[Number] = None,
) -> CoverageReport:
    """Cross-check ``registry`` against ``index`` and return the gate report.

    ``min_coverage`` is used as given; callers combine flag and environment
    with :func:`resolve_min_coverage` first. ``None`` means the default 85.
    """

    threshold = DEFAULT_MIN_COVERAGE if min_coverage is None else min_coverage
    covered = 0
    uncovered: List[UncoveredEntry] = []

    for entry in registry.entries:
        tokens = tokenize_entry(entry, index.min_token_length)
        if not tokens:
            uncovered.append(UncoveredEntry(id=entry.display_id, reason=REASON_NO_TOKENS))
            continue
        if any(_routes_to_bucket(index, token) for token in tokens):
            covered += 1
        else:
            uncovered.append(UncoveredEntry(id=entry.display_id, reason=REASON_UNMAPPED))

    total = len(registry.entries)
    percent = coverage_percent(covered, total)
    report = CoverageReport(
        threshold_percent=threshold,
        total_entries=total,
        covered_entries=covered,
        uncovered_entries=len(uncovered),
        coverage_percent=percent,
        passed=total == 0 or percent >= threshold,
        uncovered_sample=tuple(uncovered[:UNCOVERED_SAMPLE_SIZE]),
    )
    log_event(
        _LOGGER,
        "info",
        "coverage computed",
        coverage_percent=percent,
        threshold_percent=threshold,
        passed=report.passed,
    )
    return report
