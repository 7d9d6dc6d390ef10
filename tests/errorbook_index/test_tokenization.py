"""Unit tests for entry tokenization."""

from __future__ import annotations

import pytest

from Errorbook.RegistryIndex.tokenization import iter_tokens, tokenize_entry
from Errorbook.RegistryIndex.types import Entry


def test_tokenize_entry_extracts_title_and_tags() -> None:
    entry = Entry.from_mapping({"title": "Order approval timeout", "tags": ["order", "sla"]})

    assert tokenize_entry(entry, 2) == {"order", "approval", "timeout", "sla"}


def test_tokenize_entry_is_deterministic() -> None:
    entry = Entry.from_mapping(
        {
            "title": "Checkout-API 502 on /v2/orders",
            "notes": "retry_budget exhausted",
            "verification_evidence": ["smoke test green"],
        }
    )

    assert tokenize_entry(entry, 2) == tokenize_entry(entry, 2)


def test_tag_order_does_not_change_tokens() -> None:
    forward = Entry.from_mapping({"tags": ["alpha", "beta", "gamma"], "fix_actions": ["x1", "y2"]})
    backward = Entry.from_mapping({"tags": ["gamma", "beta", "alpha"], "fix_actions": ["y2", "x1"]})

    assert tokenize_entry(forward) == tokenize_entry(backward)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"title": "", "symptom": "   ", "tags": []},
        {"title": None, "tags": None, "notes": 42},
        {"tags": [1, 2, None], "ontology_tags": "not-a-list"},
    ],
)
def test_empty_or_malformed_fields_yield_no_tokens(payload: dict) -> None:
    assert tokenize_entry(Entry.from_mapping(payload)) == frozenset()


def test_non_mapping_entry_yields_no_tokens() -> None:
    assert tokenize_entry(Entry.from_mapping("just a string")) == frozenset()


def test_split_keeps_underscores_and_drops_short_pieces() -> None:
    assert list(iter_tokens("E_TIMEOUT: a b-cd/ée", 2)) == ["e_timeout", "cd"]


def test_min_token_length_filters_pieces() -> None:
    entry = Entry.from_mapping({"title": "db io timeout"})

    assert tokenize_entry(entry, 3) == {"timeout"}
    assert tokenize_entry(entry, 1) == {"db", "io", "timeout"}


def test_tokens_are_lowercase() -> None:
    assert list(iter_tokens("HTTP 500 Internal")) == ["http", "500", "internal"]


def test_non_string_text_is_ignored() -> None:
    assert list(iter_tokens(None)) == []
    assert list(iter_tokens(["order"])) == []
