"""
NutriGuard Safety Engine – Profile Pipeline
=============================================
Pipeline: health-profile records (+ proposed edit) → Conflict Detector → gate.
Turns a detection result into an allow / review / block decision and
forwards detected conflicts to the audit collaborator.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence

from core.logging_utils import get_audit_logger, log_safety_event
from models.conflicts.conflict_detector import ConflictDetector
from models.conflicts.emergency_monitor import EMERGENCY_NOTICE
from models.schema_definition import ConflictDetectionResult, ConflictSeverity

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "Conflict detection is an automated safety screen. It does NOT replace "
    "review by a qualified healthcare professional."
)


class Gate(str, Enum):
    ALLOW = "allow"
    REVIEW = "review"
    BLOCK = "block"


GATE_MESSAGES = {
    Gate.ALLOW: "No blocking conflicts found.",
    Gate.REVIEW: "Potential conflicts were found. Clinical review is recommended before continuing.",
    Gate.BLOCK: "This change conflicts with your health profile and has been blocked for your safety.",
}


def decide_gate(result: ConflictDetectionResult) -> Gate:
    """Map a detection result to a caller decision. Failure is never ALLOW."""
    if result.detection_failed or result.critical_conflicts:
        return Gate.BLOCK
    if result.nothing_checked or result.requires_clinical_review:
        return Gate.REVIEW
    return Gate.ALLOW


def summarize_conflicts(result: ConflictDetectionResult) -> dict:
    """Compact, display-ready view of a detection result."""
    by_severity = {s.value: 0 for s in ConflictSeverity}
    for conflict in result.all_conflicts:
        by_severity[conflict.severity.value] += 1
    return {
        "subject_id": result.subject_id,
        "conflict_count": result.conflict_count,
        "by_severity": by_severity,
        "safety_score": result.safety_score,
        "requires_clinical_review": result.requires_clinical_review,
        "detection_failed": result.detection_failed,
        "checks_performed": result.checks_performed.model_dump(),
        "conflicts": [
            {
                "id": c.id,
                "type": c.type.value,
                "severity": c.severity.value,
                "description": c.description,
                "resolved": c.resolved,
            }
            for c in result.all_conflicts
        ],
    }


class ProfilePipeline:
    """Conflict detection on a subject's allergies and medications."""

    def __init__(
        self,
        detector: Optional[ConflictDetector] = None,
        audit_logger: Optional[logging.Logger] = None,
    ):
        self.detector = detector or ConflictDetector()
        self.audit_logger = audit_logger or get_audit_logger()

    def run(
        self,
        subject_id: str,
        allergies: Sequence[Any],
        medications: Optional[Sequence[Any]] = None,
        proposed_changes: Optional[dict] = None,
    ) -> dict:
        """
        Detect conflicts and decide what the caller should do.

        Returns a dict with keys:
            id, timestamp, subject_id, gate, message, emergency_notice,
            result (serialized ConflictDetectionResult), conflict_summary,
            disclaimer
        """
        logger.info("Profile pipeline: detecting conflicts for %s", subject_id)
        result = self.detector.detect_conflicts(
            subject_id, allergies, medications, proposed_changes
        )
        gate = decide_gate(result)
        summary = summarize_conflicts(result)

        if result.has_conflicts or gate != Gate.ALLOW:
            log_safety_event(
                self.audit_logger,
                stage="conflicts",
                event="conflicts_detected" if result.has_conflicts else "not_checked",
                details={"gate": gate.value, **summary},
                level=logging.WARNING if gate == Gate.BLOCK else logging.INFO,
            )

        return {
            "id": str(uuid.uuid4())[:8],
            "timestamp": datetime.utcnow().isoformat(),
            "subject_id": result.subject_id,
            "gate": gate.value,
            "message": GATE_MESSAGES[gate],
            "emergency_notice": EMERGENCY_NOTICE if gate == Gate.BLOCK else None,
            "result": result.model_dump(mode="json"),
            "conflict_summary": summary,
            "disclaimer": DISCLAIMER,
        }
