# === NAVMAP v1 ===
# {
#   "module": "Errorbook.RegistryIndex.classifier",
#   "purpose": "Route tokens to topic buckets using an injected vocabulary",
#   "sections": [
#     {
#       "id": "bucketvocabulary",
#       "name": "BucketVocabulary",
#       "anchor": "class-bucketvocabulary",
#       "kind": "class"
#     },
#     {
#       "id": "bucketclassifier",
#       "name": "BucketClassifier",
#       "anchor": "class-bucketclassifier",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Bucket classification for registry tokens.

Every token extracted from a registry entry is routed to exactly one bucket,
and each bucket becomes one shard file. Resolution is a fixed cascade:

1. the curated seed dictionary (short, high-frequency tokens with a hand-picked
   bucket);
2. the ordered domain hint table, first bucket whose keyword list contains the
   token;
3. the token's first character when it is ``[a-z0-9]``;
4. ``misc``.

The vocabulary is an immutable value handed to :class:`BucketClassifier` at
construction, so alternative vocabularies can be swapped in without touching
module state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

__all__ = (
    "MISC_BUCKET",
    "DEFAULT_SEED_TOKENS",
    "DEFAULT_DOMAIN_HINTS",
    "DEFAULT_VOCABULARY",
    "BucketVocabulary",
    "BucketClassifier",
)

# --- Globals ---

MISC_BUCKET = "misc"

DEFAULT_SEED_TOKENS: Mapping[str, str] = MappingProxyType(
    {
        "order": "order",
        "approve": "order",
        "payment": "payment",
        "auth": "auth",
    }
)

DEFAULT_DOMAIN_HINTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("order", ("order", "approve", "fulfillment", "shipment", "inventory")),
    ("payment", ("payment", "billing", "invoice", "refund", "settlement")),
    ("auth", ("auth", "login", "token", "permission", "access")),
)

_FALLBACK_CHAR = re.compile(r"[a-z0-9]", re.ASCII)


# --- Public Classes ---


@dataclass(frozen=True)
class BucketVocabulary:
    """Seed dictionary and domain hint table used to classify tokens.

    Attributes:
        seed_tokens: Token to bucket overrides consulted first. These tokens are
            also pre-registered in every rebuilt index.
        domain_hints: Ordered ``(bucket, keywords)`` pairs; the first bucket
            listing a token wins.
        fallback_bucket: Bucket used when nothing else matches.

    Examples:
        >>> vocab = BucketVocabulary(seed_tokens={"ship": "order"})
        >>> BucketClassifier(vocab).classify("ship")
        'order'
    """

    seed_tokens: Mapping[str, str] = field(default_factory=dict)
    domain_hints: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    fallback_bucket: str = MISC_BUCKET

    def __post_init__(self) -> None:
        object.__setattr__(self, "seed_tokens", MappingProxyType(dict(self.seed_tokens)))
        object.__setattr__(
            self,
            "domain_hints",
            tuple((str(bucket), tuple(keywords)) for bucket, keywords in self.domain_hints),
        )
        if not self.fallback_bucket:
            raise ValueError("fallback_bucket must be a non-empty string")

    def seed_buckets(self) -> Tuple[str, ...]:
        """Return seed bucket names in declaration order without duplicates."""

        return tuple(dict.fromkeys(self.seed_tokens.values()))


DEFAULT_VOCABULARY = BucketVocabulary(
    seed_tokens=DEFAULT_SEED_TOKENS,
    domain_hints=DEFAULT_DOMAIN_HINTS,
)


class BucketClassifier:
    """Deterministic, total mapping from token to bucket name."""

    def __init__(self, vocabulary: Optional[BucketVocabulary] = None) -> None:
        self._vocabulary = vocabulary or DEFAULT_VOCABULARY

    @property
    def vocabulary(self) -> BucketVocabulary:
        return self._vocabulary

    def seed_buckets(self) -> Tuple[str, ...]:
        return self._vocabulary.seed_buckets()

    def classify(self, token: str) -> str:
        """Return the bucket for ``token``; never raises for string input."""

        seeded = self._vocabulary.seed_tokens.get(token)
        if seeded:
            return seeded
        for bucket, keywords in self._vocabulary.domain_hints:
            if token in keywords:
                return bucket
        first = token[:1]
        if first and _FALLBACK_CHAR.fullmatch(first):
            return first
        return self._vocabulary.fallback_bucket
