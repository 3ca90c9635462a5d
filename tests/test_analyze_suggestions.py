#!/usr/bin/env python3
"""
Suggestion Analytics Test Suite

Tests for loading suggestion lines into pandas and summarizing them.
"""

import sys
from pathlib import Path

import pytest

# Add project root and scripts to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "scripts"))

import run_suggester
from analyze_suggestions import load_suggestion_frame, summarize_suggestions


SAMPLE_LINES = [
    "700_101 1.1 s1 0.75 r1#r4",
    "700_101 1.2 s4 0.75 r1",
    "700_101 2.1 s3 0.25",
    "701_101 1.1 s2 0.5",
]


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "suggestions.txt"
    path.write_text("\n".join(SAMPLE_LINES) + "\n", encoding="utf-8")
    return path


class TestLoadSuggestionFrame:
    """Tests for parsing output lines."""

    def test_columns(self, sample_file):
        df = load_suggestion_frame(sample_file)
        assert len(df) == 4
        assert list(df["user_id"]) == ["700", "700", "700", "701"]
        assert list(df["context_id"]) == ["101"] * 4
        assert list(df["bundle_rank"]) == [1, 1, 2, 1]
        assert list(df["venue_rank"]) == [1, 2, 1, 1]
        assert list(df["score"]) == [0.75, 0.75, 0.25, 0.5]

    def test_similar_venue_ids(self, sample_file):
        df = load_suggestion_frame(sample_file)
        assert df["similar_venue_ids"].tolist() == [["r1", "r4"], ["r1"], [], []]


class TestSummarizeSuggestions:
    """Tests for run statistics."""

    def test_summary(self, sample_file):
        summary = summarize_suggestions(load_suggestion_frame(sample_file))
        assert summary["pairs"] == 2
        assert summary["users"] == 2
        assert summary["contexts"] == 1
        assert summary["suggested_venues"] == 4
        assert summary["bundles"] == 3
        assert summary["bundles_per_pair"] == pytest.approx(1.5)
        assert summary["mean_bundle_size"] == pytest.approx(4 / 3)
        assert summary["score"]["max"] == 0.75
        assert summary["score"]["min"] == 0.25
        assert summary["score"]["mean"] == pytest.approx(0.5)
        assert summary["explained_share"] == pytest.approx(0.5)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("", encoding="utf-8")
        summary = summarize_suggestions(load_suggestion_frame(path))
        assert summary["pairs"] == 0
        assert summary["bundles"] == 0

    def test_on_suggester_output(self, dataset_dir, suggester_argv):
        assert run_suggester.main(suggester_argv) == 0
        summary = summarize_suggestions(load_suggestion_frame(dataset_dir / "out" / "suggestions.txt"))
        assert summary["pairs"] == 4
        assert summary["contexts"] == 2
        assert 0.0 < summary["explained_share"] <= 1.0
