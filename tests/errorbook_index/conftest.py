"""Shared fixtures for registry index tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from Errorbook.RegistryIndex.io import RegistryLayout
from Errorbook.RegistryIndex.types import REGISTRY_API_VERSION

RAW_BASE = "https://raw.githubusercontent.com/acme/errorbook/main"


def _registry_payload(entries: List[Any], **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "api_version": REGISTRY_API_VERSION,
        "generated_at": "2026-01-01T00:00:00Z",
        "total_entries": len(entries),
        "entries": entries,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_registry() -> Callable[..., Dict[str, Any]]:
    """Return a factory building registry payloads around a list of entries."""

    return _registry_payload


@pytest.fixture
def raw_base() -> str:
    return RAW_BASE


@pytest.fixture
def sample_entries() -> List[Dict[str, Any]]:
    return [
        {
            "id": "EB-001",
            "title": "Order approval timeout",
            "tags": ["order", "sla"],
        },
        {
            "id": "EB-002",
            "title": "Refund settlement stuck",
            "symptom": "Payment webhook retries forever",
            "fix_actions": ["replay billing event"],
        },
        {
            "fingerprint": "fp-003",
            "root_cause": "Login token expired",
            "ontology_tags": ["auth"],
        },
    ]


@pytest.fixture
def layout(tmp_path: Path) -> RegistryLayout:
    return RegistryLayout.for_root(tmp_path)


@pytest.fixture
def write_registry(layout: RegistryLayout) -> Callable[[Dict[str, Any]], Path]:
    def _write(payload: Dict[str, Any]) -> Path:
        layout.registry_path.parent.mkdir(parents=True, exist_ok=True)
        layout.registry_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return layout.registry_path

    return _write


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CI-provided variables from leaking into settings resolution."""

    for name in (
        "ERRORBOOK_ROOT",
        "ERRORBOOK_MIN_TOKEN_LENGTH",
        "ERRORBOOK_INDEX_MIN_COVERAGE",
        "ERRORBOOK_REGISTRY_RAW_BASE",
        "ERRORBOOK_REGISTRY_BRANCH",
        "ERRORBOOK_LOG_LEVEL",
        "GITHUB_REPOSITORY",
    ):
        monkeypatch.delenv(name, raising=False)
