# tests/unit/test_main.py - v2
"""Tests for the CLI entry point (main.py)."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from medevidence.main import main
from medevidence.metadata.crossref import CrossrefClient


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("REDIS_URL", "CACHE_BACKEND", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


class TestCLI:
    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "medevidence" in capsys.readouterr().out

    def test_score(self, tmp_path, capsys):
        counts = tmp_path / "counts.json"
        counts.write_text(json.dumps({"cochraneReviews": 2, "guidelines": 1, "recentArticles": 3}))
        assert main(["score", str(counts)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["score"] == 55
        assert out["level"] == "good"

    def test_score_with_warning(self, tmp_path, capsys):
        counts = tmp_path / "counts.json"
        counts.write_text("{}")
        assert main(["score", str(counts), "--warning"]) == 0
        assert "EVOLVING EVIDENCE BASE" in capsys.readouterr().out

    def test_score_rejects_non_object(self, tmp_path):
        counts = tmp_path / "counts.json"
        counts.write_text("[1, 2]")
        assert main(["score", str(counts)]) == 1

    def test_missing_file(self, tmp_path):
        assert main(["score", str(tmp_path / "nope.json")]) == 1

    def test_invalid_json(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert main(["conflicts", str(bad)]) == 1

    def test_conflicts(self, tmp_path, capsys):
        guidelines = tmp_path / "guidelines.json"
        guidelines.write_text(json.dumps([
            {"org": "WHO", "topic": "drug X", "position": "recommend drug X"},
            {"organization": "CDC", "topic": "drug X", "position": "do not recommend drug X"},
        ]))
        assert main(["conflicts", str(guidelines)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert len(out) == 1
        assert out[0]["severity"] == "major"

    def test_conflicts_invalid_records(self, tmp_path):
        guidelines = tmp_path / "guidelines.json"
        guidelines.write_text(json.dumps([{"topic": "drug X"}]))
        assert main(["conflicts", str(guidelines)]) == 1

    def test_hash(self, capsys):
        assert main(["hash", "Hypertension  Treatment", "--source", "pubmed"]) == 0
        digest, key = capsys.readouterr().out.split()
        assert len(digest) == 64
        assert key == f"evidence:{digest}:pubmed"

    def test_metadata_unresolved(self, capsys):
        assert main(["metadata", "https://example.org/x", "--title", "T"]) == 2
        assert json.loads(capsys.readouterr().out)["title"] == "T"

    def test_metadata_resolved(self, capsys):
        work = {"title": ["Resolved"], "container-title": ["JAMA"]}
        with patch.object(CrossrefClient, "_get_work", return_value=work):
            assert main(["metadata", "https://doi.org/10.1001/jama.2020.1"]) == 0
        assert json.loads(capsys.readouterr().out)["source"] == "JAMA"

    def test_cache_stats_unconfigured(self, capsys):
        assert main(["cache-stats"]) == 0
        out = capsys.readouterr().out
        assert "Configured: False" in out
        assert "Available:  False" in out
        assert "Hits" not in out
