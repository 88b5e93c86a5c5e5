"""
NutriGuard Safety Engine – Benchmark Runner
=============================================
Runs the Clinical Oversight Scanner across labelled cases and produces
aggregate metrics.

Usage:
    python -m evaluation.benchmark_runner data/eval/scanner_cases.json
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

from evaluation.safety_metrics import block_recall, scanner_report
from models.oversight.clinical_scanner import ClinicalOversightScanner

logger = logging.getLogger(__name__)


def load_test_cases(path: str) -> List[dict]:
    """Load test cases from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, list):
        return data
    if "cases" in data:
        return data["cases"]
    raise ValueError(f"Expected a list or {{cases: [...]}} in {path}")


def run_benchmark(
    test_cases: List[dict],
    scanner: Optional[ClinicalOversightScanner] = None,
    verbose: bool = True,
) -> dict:
    """
    Run the scanner on a list of labelled texts and collect metrics.

    Parameters
    ----------
    test_cases : list[dict]
        Each case should have:
          - "text": str
          - "expected_severity": "none" | "low" | "medium" | "high" | "critical"
          - "expected_patterns": list[str] (optional)
    scanner : ClinicalOversightScanner, optional
    verbose : bool
        Log per-case results.

    Returns
    -------
    dict with aggregate metrics.
    """
    scanner = scanner or ClinicalOversightScanner()
    results = []
    errors = []

    for i, case in enumerate(test_cases):
        case_id = case.get("id", f"case_{i}")
        try:
            alert = scanner.analyze(case.get("text", ""))
            report = scanner_report(
                alert,
                expected_severity=case.get("expected_severity"),
                expected_patterns=case.get("expected_patterns"),
            )
            case_result = {"case_id": case_id, "status": "success", "metrics": report}

            if verbose:
                logger.info(
                    "Case %s: predicted=%s expected=%s",
                    case_id, report["predicted_severity"], case.get("expected_severity", "?"),
                )

        except Exception as e:
            case_result = {
                "case_id": case_id,
                "status": "error",
                "error": str(e),
            }
            errors.append(case_id)
            logger.error("Case %s failed: %s", case_id, e)

        results.append(case_result)

    successful = [r for r in results if r["status"] == "success"]
    aggregate = _compute_aggregate(successful)
    aggregate["total_cases"] = len(test_cases)
    aggregate["successful_cases"] = len(successful)
    aggregate["failed_cases"] = len(errors)
    aggregate["per_case_results"] = results

    return aggregate


def _compute_aggregate(successful_results: List[dict]) -> dict:
    """Compute aggregate metrics from successful results."""
    if not successful_results:
        return {}

    exact = []
    safety_scores = []
    pattern_recalls = []
    predicted, expected = [], []

    for r in successful_results:
        m = r.get("metrics", {})
        if "severity_exact_match" in m:
            exact.append(m["severity_exact_match"])
            predicted.append(m["predicted_severity"])
            expected.append(m["expected_severity"])
        if "safety_score" in m:
            safety_scores.append(m["safety_score"])
        if "pattern_recall" in m:
            pattern_recalls.append(m["pattern_recall"])

    def _mean(lst):
        return round(sum(lst) / len(lst), 4) if lst else None

    return {
        "severity_exact_accuracy": _mean([float(x) for x in exact]),
        "mean_safety_score": _mean(safety_scores),
        "mean_pattern_recall": _mean(pattern_recalls),
        "block_recall": round(block_recall(predicted, expected), 4) if expected else None,
    }


def main():
    parser = argparse.ArgumentParser(description="Benchmark the clinical content scanner")
    parser.add_argument("cases", help="Path to labelled cases JSON")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    aggregate = run_benchmark(load_test_cases(args.cases))
    aggregate.pop("per_case_results", None)
    print(json.dumps(aggregate, indent=2))


if __name__ == "__main__":
    main()
