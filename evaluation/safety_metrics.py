"""
NutriGuard Safety Engine – Safety Metrics
===========================================
Evaluates the Clinical Oversight Scanner against labelled content.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

# "none" = scanner returned no alert
SEVERITY_ORDER = {"none": 0, "low": 1, "medium": 2, "high": 3, "critical": 4}


def _rank(severity: Optional[str]) -> int:
    return SEVERITY_ORDER.get((severity or "none").lower(), 0)


def severity_accuracy(predicted: Optional[str], expected: Optional[str]) -> bool:
    """Exact match on severity level."""
    return _rank(predicted) == _rank(expected)


def block_recall(predicted: Sequence[Optional[str]], expected: Sequence[Optional[str]]) -> float:
    """What fraction of content that should be blocked (critical) was blocked?"""
    should_block = [i for i, e in enumerate(expected) if _rank(e) == SEVERITY_ORDER["critical"]]
    if not should_block:
        return 1.0
    hits = sum(1 for i in should_block if _rank(predicted[i]) == SEVERITY_ORDER["critical"])
    return hits / len(should_block)


def safety_weighted_score(predicted: Optional[str], expected: Optional[str]) -> float:
    """
    Safety-weighted score that penalizes under-classification more than
    over-classification.

    - Under-classification (predicted < expected): heavy penalty
    - Over-classification (predicted > expected): mild penalty
    - Exact match: 1.0
    """
    diff = _rank(predicted) - _rank(expected)

    if diff == 0:
        return 1.0
    elif diff > 0:
        return max(0.0, 1.0 - diff * 0.1)
    else:
        return max(0.0, 1.0 + diff * 0.3)


def scanner_report(
    alert: Optional[Any],
    expected_severity: Optional[str] = None,
    expected_patterns: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Generate a quality report for one scanned text."""
    predicted = alert.severity.value if alert is not None else "none"
    detected = [p.lower() for p in (alert.detected_patterns if alert is not None else [])]

    report = {
        "predicted_severity": predicted,
        "predicted_type": alert.type.value if alert is not None else None,
        "confidence_score": alert.confidence_score if alert is not None else None,
        "auto_block": bool(alert is not None and alert.auto_block),
        "num_patterns": len(detected),
    }

    if expected_severity is not None:
        report["expected_severity"] = expected_severity
        report["severity_exact_match"] = severity_accuracy(predicted, expected_severity)
        report["safety_score"] = safety_weighted_score(predicted, expected_severity)

    if expected_patterns is not None:
        if not expected_patterns:
            report["pattern_recall"] = 1.0
        else:
            hits = sum(
                1 for p in expected_patterns if any(p.lower() in d for d in detected)
            )
            report["pattern_recall"] = hits / len(expected_patterns)

    return report
