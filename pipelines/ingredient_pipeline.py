"""
NutriGuard Safety Engine – Ingredient Pipeline
================================================
Pipeline: proposed ingredients → Emergency Safety Monitor → verdict.
Runs before a recipe or meal is shown; forwards block / warn verdicts to
the audit collaborator.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from core.logging_utils import get_audit_logger, log_safety_event
from models.conflicts.emergency_monitor import ClinicalSafetyMonitor
from models.schema_definition import EmergencyAction

logger = logging.getLogger(__name__)


class IngredientPipeline:
    """Emergency allergen / food-interaction screen for an ingredient list."""

    def __init__(
        self,
        monitor: Optional[ClinicalSafetyMonitor] = None,
        audit_logger: Optional[logging.Logger] = None,
    ):
        self.monitor = monitor or ClinicalSafetyMonitor()
        self.audit_logger = audit_logger or get_audit_logger()

    def run(
        self,
        allergies: Sequence[Any],
        medications: Sequence[Any],
        ingredients: Sequence[str],
    ) -> dict:
        """Return the serialized EmergencyCheckResult plus the ingredients checked."""
        verdict = self.monitor.emergency_conflict_check(allergies, medications, ingredients)

        if verdict.action_required != EmergencyAction.PROCEED:
            log_safety_event(
                self.audit_logger,
                stage="emergency",
                event=f"ingredients_{verdict.action_required.value}",
                details={
                    "warnings": verdict.emergency_warnings,
                    "ingredient_count": len(ingredients or []),
                },
                level=(
                    logging.WARNING
                    if verdict.action_required == EmergencyAction.BLOCK
                    else logging.INFO
                ),
            )

        output = verdict.model_dump(mode="json")
        output["ingredients_checked"] = list(ingredients or [])
        return output
