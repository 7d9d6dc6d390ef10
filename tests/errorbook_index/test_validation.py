"""Tests for registry/index/shard consistency validation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Tuple

import pytest

from Errorbook.RegistryIndex.builder import BuildMode, IndexBuilder
from Errorbook.RegistryIndex.errors import ConsistencyError
from Errorbook.RegistryIndex.io import RegistryLayout
from Errorbook.RegistryIndex.types import INDEX_API_VERSION, Registry
from Errorbook.RegistryIndex.validation import RegistryValidator, validate_registry


def _load(path: Path) -> Dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def built(raw_base: str, layout: RegistryLayout, make_registry, sample_entries) -> Tuple[dict, dict]:
    registry = Registry.from_dict(make_registry(sample_entries))
    IndexBuilder(raw_base).run(registry, layout, BuildMode.WRITE)
    return _load(layout.registry_path), _load(layout.index_path)


def test_rebuild_then_validate_passes(built, layout: RegistryLayout) -> None:
    registry, index = built

    RegistryValidator(layout.shards_dir).validate(registry, index)


def test_dangling_bucket_reference_cites_token_and_bucket(built, layout: RegistryLayout) -> None:
    registry, index = built
    index["token_to_bucket"]["ghost"] = "phantom"

    with pytest.raises(ConsistencyError) as excinfo:
        validate_registry(registry, index, layout.shards_dir)

    assert excinfo.value.token == "ghost"
    assert excinfo.value.bucket == "phantom"
    assert "token_to_bucket maps token 'ghost' to unknown bucket 'phantom'" in str(excinfo.value)


def test_loose_mode_still_enforces_bucket_references(tmp_path: Path, make_registry) -> None:
    index = {
        "api_version": INDEX_API_VERSION,
        "token_to_bucket": {"order": "order", "lost": "zz"},
        "buckets": {"order": "https://x/registry/shards/order.json"},
    }
    validator = RegistryValidator(tmp_path / "missing", require_shards=False)

    with pytest.raises(ConsistencyError, match="unknown bucket 'zz'"):
        validator.validate(make_registry([]), index)

    del index["token_to_bucket"]["lost"]
    validator.validate(make_registry([]), index)


def test_strict_mode_requires_shard_files(built, layout: RegistryLayout) -> None:
    registry, index = built
    layout.shard_path("auth").unlink()

    with pytest.raises(ConsistencyError, match="bucket auth shard missing"):
        RegistryValidator(layout.shards_dir).validate(registry, index)
    RegistryValidator(layout.shards_dir, require_shards=False).validate(registry, index)


@pytest.mark.parametrize(
    ("mutate", "message"),
    [
        (lambda reg, idx: reg.update(api_version="v0"), "registry api_version invalid"),
        (lambda reg, idx: reg.update(entries={}), "registry.entries must be array"),
        (lambda reg, idx: reg.update(total_entries="3"), "registry.total_entries must be number"),
        (lambda reg, idx: idx.update(api_version="v0"), "index api_version invalid"),
        (lambda reg, idx: idx.pop("buckets"), "index.buckets required"),
        (lambda reg, idx: reg.update(total_entries=7), "does not match entries length"),
        (lambda reg, idx: idx["buckets"].update(order=""), "bucket order target missing"),
        (
            lambda reg, idx: idx["buckets"].update(order="https://x/order.txt"),
            "is not a shard location",
        ),
        (lambda reg, idx: idx.update(token_to_bucket=[]), "token_to_bucket must be object"),
    ],
)
def test_structural_violations(built, layout: RegistryLayout, mutate, message: str) -> None:
    registry, index = built
    mutate(registry, index)

    with pytest.raises(ConsistencyError, match=message):
        RegistryValidator(layout.shards_dir).validate(registry, index)


def test_registry_count_checked_before_buckets(built, layout: RegistryLayout) -> None:
    registry, index = built
    registry["total_entries"] = 0
    index["buckets"]["order"] = ""

    with pytest.raises(ConsistencyError, match="total_entries"):
        RegistryValidator(layout.shards_dir).validate(registry, index)


@pytest.mark.parametrize(
    ("shard_patch", "message"),
    [
        ({"api_version": "v0"}, "api_version invalid"),
        ({"entries": None}, "entries must be array"),
        ({"source": {"total_entries": 5}}, "source.total_entries"),
    ],
)
def test_shard_payload_violations(built, layout: RegistryLayout, shard_patch, message: str) -> None:
    registry, index = built
    shard_path = layout.shard_path("order")
    shard = _load(shard_path)
    shard.update(shard_patch)
    shard_path.write_text(json.dumps(shard), encoding="utf-8")

    with pytest.raises(ConsistencyError, match=message):
        RegistryValidator(layout.shards_dir).validate(registry, index)


def test_unreadable_shard_is_a_consistency_error(built, layout: RegistryLayout) -> None:
    registry, index = built
    layout.shard_path("payment").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConsistencyError, match="shard unreadable"):
        RegistryValidator(layout.shards_dir).validate(registry, index)
