"""Tests for scanner evaluation metrics and the benchmark runner."""

from pathlib import Path

import pytest

from evaluation.benchmark_runner import load_test_cases, run_benchmark
from evaluation.safety_metrics import (
    block_recall,
    safety_weighted_score,
    scanner_report,
    severity_accuracy,
)

CASES_PATH = Path(__file__).resolve().parents[1] / "data" / "eval" / "scanner_cases.json"


class TestMetrics:
    def test_severity_accuracy(self):
        assert severity_accuracy("CRITICAL", "critical") is True
        assert severity_accuracy(None, "none") is True
        assert severity_accuracy("high", "medium") is False

    def test_under_classification_penalized_more(self):
        """Test that missing severity costs more than over-flagging."""
        under = safety_weighted_score("medium", "critical")
        over = safety_weighted_score("critical", "medium")
        assert under < over
        assert safety_weighted_score("high", "high") == 1.0
        assert under == pytest.approx(0.4)
        assert over == pytest.approx(0.8)

    def test_score_floor(self):
        assert safety_weighted_score("none", "critical") == 0.0

    def test_block_recall(self):
        assert block_recall(["critical", "low"], ["critical", "critical"]) == 0.5
        assert block_recall(["low"], ["low"]) == 1.0

    def test_report_without_alert(self):
        report = scanner_report(None, expected_severity="none", expected_patterns=[])
        assert report["predicted_severity"] == "none"
        assert report["severity_exact_match"] is True
        assert report["pattern_recall"] == 1.0

    def test_report_with_alert(self, scanner):
        alert = scanner.analyze("You might have a thyroid condition based on these symptoms.")
        report = scanner_report(
            alert, expected_severity="medium", expected_patterns=["symptoms", "fever"]
        )
        assert report["severity_exact_match"] is True
        assert report["pattern_recall"] == 0.5


class TestBenchmarkRunner:
    def test_load_cases(self):
        cases = load_test_cases(str(CASES_PATH))
        assert len(cases) > 0
        assert all("text" in c for c in cases)

    def test_load_rejects_unknown_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"items": []}')
        with pytest.raises(ValueError):
            load_test_cases(str(path))

    def test_bundled_cases(self, scanner):
        aggregate = run_benchmark(load_test_cases(str(CASES_PATH)), scanner=scanner, verbose=False)
        assert aggregate["failed_cases"] == 0
        assert aggregate["block_recall"] == 1.0
        assert aggregate["severity_exact_accuracy"] == 1.0

    def test_empty(self):
        aggregate = run_benchmark([], verbose=False)
        assert aggregate["total_cases"] == 0
