"""
NutriGuard Safety Engine – Safety Scorer
==========================================
Turns a list of detected conflicts into the aggregate 0–100 safety score
and the clinical-review decision.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from models.schema_definition import ConflictSeverity, ConflictType, HealthConflict

logger = logging.getLogger(__name__)

MAX_SAFETY_SCORE = 100

DEFAULT_PENALTIES: Dict[ConflictType, int] = {
    ConflictType.MEDICATION_INTERACTION: 15,
    ConflictType.ALLERGY_CONFLICT: 10,
    ConflictType.CONDITION_COMPATIBILITY: 12,
}

REVIEW_SEVERITIES = (ConflictSeverity.HIGH, ConflictSeverity.CRITICAL)


class SafetyScorer:
    """Aggregate risk scoring for a detection run."""

    def __init__(self, penalties: Optional[Dict[ConflictType, int]] = None):
        self.penalties = dict(DEFAULT_PENALTIES)
        if penalties:
            for conflict_type, penalty in penalties.items():
                if penalty < 0:
                    raise ValueError(f"Penalty for {conflict_type} must be non-negative")
                self.penalties[ConflictType(conflict_type)] = penalty

    def score(self, conflicts: Sequence[HealthConflict]) -> int:
        """
        Start at 100, subtract a fixed penalty per conflict type, floor at 0.

        Penalties are non-negative, so adding conflicts can only lower the score.
        """
        total = MAX_SAFETY_SCORE
        for conflict in conflicts:
            total -= self.penalties.get(conflict.type, 0)
        return max(0, total)

    @staticmethod
    def requires_review(
        conflicts: Sequence[HealthConflict],
        oversight_required: bool,
        threshold: int = 3,
    ) -> bool:
        """Any high/critical conflict, or ``threshold`` or more conflicts."""
        if not oversight_required:
            return False
        if any(c.severity in REVIEW_SEVERITIES for c in conflicts):
            return True
        return len(conflicts) >= threshold
