"""Tokenization utilities shared by the index builder and the coverage gate."""
from __future__ import annotations

import re
from typing import Any, FrozenSet, Iterable, Iterator

from .types import DEFAULT_MIN_TOKEN_LENGTH, Entry

__all__ = ("iter_tokens", "tokenize_entry", "tokenize_chunks")

_SPLIT_PATTERN = re.compile(r"[^a-z0-9_]+", re.IGNORECASE | re.ASCII)


def iter_tokens(text: Any, min_token_length: float = DEFAULT_MIN_TOKEN_LENGTH) -> Iterator[str]:
    """Yield lowercase ``[a-z0-9_]`` tokens from ``text`` in encounter order.

    Non-string values yield nothing.
    """

    if not isinstance(text, str):
        return
    normalised = text.strip().lower()
    if not normalised:
        return
    for part in _SPLIT_PATTERN.split(normalised):
        token = part.strip()
        if len(token) >= min_token_length:
            yield token


def tokenize_chunks(
    chunks: Iterable[Any], min_token_length: float = DEFAULT_MIN_TOKEN_LENGTH
) -> FrozenSet[str]:
    """Return the deduplicated token set across ``chunks``."""

    tokens: set[str] = set()
    for chunk in chunks:
        tokens.update(iter_tokens(chunk, min_token_length))
    return frozenset(tokens)


def tokenize_entry(entry: Entry, min_token_length: float = DEFAULT_MIN_TOKEN_LENGTH) -> FrozenSet[str]:
    """Return the token set of ``entry``'s text and tag fields.

    The builder and the coverage gate both call this function, so the two
    always agree on which tokens an entry exposes for a given minimum length.
    """

    return tokenize_chunks(entry.text_chunks(), min_token_length)
