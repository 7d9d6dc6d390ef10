"""End-to-end CLI flows for rebuild, coverage, and validate."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from Errorbook.RegistryIndex.cli import GATE_FAILED_EXIT_CODE, app

runner = CliRunner()


@pytest.fixture
def repo(tmp_path: Path, write_registry, make_registry, sample_entries, monkeypatch) -> Path:
    monkeypatch.setenv("ERRORBOOK_REGISTRY_RAW_BASE", "https://raw.githubusercontent.com/acme/errorbook/main")
    write_registry(make_registry(sample_entries))
    return tmp_path


def _invoke(root: Path, *args: str):
    return runner.invoke(app, ["--root", str(root), *args])


class TestRebuildCommand:
    def test_requires_check_or_write(self, repo: Path) -> None:
        result = _invoke(repo, "rebuild")

        assert result.exit_code == 2
        assert not (repo / "registry" / "errorbook-registry.index.json").exists()

    def test_check_reports_without_writing(self, repo: Path) -> None:
        result = _invoke(repo, "rebuild", "--check")

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["mode"] == "rebuild-index"
        assert payload["write"] is False
        assert payload["total_entries"] == 3
        assert not (repo / "registry" / "shards").exists()

    def test_write_materialises_artifacts(self, repo: Path) -> None:
        result = _invoke(repo, "rebuild", "--write")

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["write"] is True
        index = json.loads((repo / "registry" / "errorbook-registry.index.json").read_text())
        assert index["buckets"]["order"] == (
            "https://raw.githubusercontent.com/acme/errorbook/main/registry/shards/order.json"
        )
        assert payload["bucket_count"] == len(index["buckets"])

    def test_missing_registry_is_reported(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "rebuild", "--check")

        assert result.exit_code == 1


class TestCoverageCommand:
    def test_gate_passes_after_rebuild(self, repo: Path) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0

        result = _invoke(repo, "coverage")

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["mode"] == "index-coverage-gate"
        assert payload["coverage_percent"] == 100.0
        assert payload["passed"] is True

    def test_gate_failure_prints_report_then_exits_nonzero(
        self, repo: Path, write_registry, make_registry, sample_entries
    ) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0
        write_registry(make_registry(sample_entries + [{"id": "blank"}]))

        result = _invoke(repo, "coverage", "--min-coverage", "90")

        assert result.exit_code == GATE_FAILED_EXIT_CODE
        payload = json.loads(result.stdout)
        assert payload["coverage_percent"] == 75.0
        assert payload["threshold_percent"] == 90.0
        assert payload["passed"] is False
        assert payload["uncovered_sample"] == [{"id": "blank", "reason": "no-indexable-tokens"}]

    def test_environment_threshold_applies_without_flag(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch, write_registry, make_registry, sample_entries
    ) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0
        write_registry(make_registry(sample_entries + [{"id": "blank"}]))
        monkeypatch.setenv("ERRORBOOK_INDEX_MIN_COVERAGE", "70")

        result = _invoke(repo, "coverage")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["threshold_percent"] == 70.0

    def test_malformed_environment_threshold_falls_back_to_default(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ERRORBOOK_INDEX_MIN_COVERAGE", "abc")

        assert _invoke(repo, "rebuild", "--check").exit_code == 0
        assert _invoke(repo, "rebuild", "--write").exit_code == 0
        assert _invoke(repo, "validate").exit_code == 0

        result = _invoke(repo, "coverage")

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["threshold_percent"] == 85


class TestValidateCommand:
    def test_validate_after_rebuild(self, repo: Path) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0

        result = _invoke(repo, "validate")

        assert result.exit_code == 0
        assert "registry validation passed" in result.stdout

    def test_validate_reports_dangling_bucket(self, repo: Path) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0
        index_path = repo / "registry" / "errorbook-registry.index.json"
        index = json.loads(index_path.read_text())
        index["token_to_bucket"]["ghost"] = "phantom"
        index_path.write_text(json.dumps(index))

        result = _invoke(repo, "validate")

        assert result.exit_code == 1
        assert "registry validation passed" not in result.stdout

    def test_allow_missing_shards(self, repo: Path) -> None:
        assert _invoke(repo, "rebuild", "--write").exit_code == 0
        for shard in (repo / "registry" / "shards").glob("*.json"):
            shard.unlink()

        assert _invoke(repo, "validate").exit_code == 1
        assert _invoke(repo, "validate", "--allow-missing-shards").exit_code == 0
