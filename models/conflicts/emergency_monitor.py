"""
NutriGuard Safety Engine – Emergency Safety Monitor
=====================================================
Fast-path check that runs before a food, recipe or ingredient list is shown
to the user. Anaphylactic allergens BLOCK; medication–food contraindications
WARN. A block verdict is never downgraded by any other signal.

Cost is O(allergies × ingredients + medications × ingredients); no I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from core.validation import validate_records
from models.catalogs.drug_catalog import DrugInteractionCatalog
from models.schema_definition import (
    AllergySeverity,
    EmergencyAction,
    EmergencyCheckResult,
    EmergencyMedication,
)

logger = logging.getLogger(__name__)

EMERGENCY_NOTICE = (
    "If this is a medical emergency, call 911 or contact emergency services immediately."
)

BLOCK_MESSAGE = (
    "This item contains an ingredient you have a severe allergy to and has been "
    "blocked for your safety."
)
WARN_MESSAGE = (
    "Some ingredients may conflict with your medications or allergies. Please review the "
    "warnings before continuing."
)
PROCEED_MESSAGE = "No emergency conflicts found."
FAILURE_MESSAGE = (
    "We could not verify this item against your health profile, so it has been "
    "blocked for your safety."
)


@dataclass(frozen=True)
class FoodContraindicationRule:
    """Medication class → foods to flag, matched by name fragment."""
    drug_class: str
    name_fragments: Tuple[str, ...]
    foods: Tuple[str, ...]

    def applies_to(self, medication: EmergencyMedication) -> bool:
        name = medication.generic_name.lower()
        return any(fragment in name for fragment in self.name_fragments)


FOOD_CONTRAINDICATIONS: Tuple[FoodContraindicationRule, ...] = (
    FoodContraindicationRule(
        drug_class="warfarin",
        name_fragments=("warfarin",),
        foods=("vitamin k", "spinach", "kale", "broccoli"),
    ),
    FoodContraindicationRule(
        drug_class="monoamine oxidase inhibitor",
        name_fragments=(
            "monoamine oxidase inhibitor", "phenelzine", "tranylcypromine",
            "isocarboxazid", "selegiline",
        ),
        foods=("tyramine", "aged cheese", "wine"),
    ),
    FoodContraindicationRule(
        drug_class="tetracycline",
        name_fragments=("tetracycline", "doxycycline", "minocycline"),
        foods=("dairy", "milk", "calcium", "iron"),
    ),
    FoodContraindicationRule(
        drug_class="digoxin",
        name_fragments=("digoxin",),
        foods=("licorice", "ginseng"),
    ),
    FoodContraindicationRule(
        drug_class="statin",
        name_fragments=(
            "statins", "atorvastatin", "simvastatin", "lovastatin", "rosuvastatin",
            "pravastatin", "fluvastatin", "pitavastatin",
        ),
        foods=("grapefruit",),
    ),
)


class ClinicalSafetyMonitor:
    """Immediate block / warn / proceed verdict for proposed ingredients."""

    def __init__(
        self,
        drug_catalog: Optional[DrugInteractionCatalog] = None,
        rules: Sequence[FoodContraindicationRule] = FOOD_CONTRAINDICATIONS,
        logger: Optional[logging.Logger] = None,
    ):
        self.drug_catalog = drug_catalog
        self.rules = tuple(rules)
        self.logger = logger or logging.getLogger(__name__)

    def emergency_conflict_check(
        self,
        allergies: Optional[Sequence[Any]],
        medications: Optional[Sequence[Any]],
        proposed_ingredients: Optional[Sequence[Any]],
    ) -> EmergencyCheckResult:
        """
        Check a proposed ingredient list against anaphylactic allergies and
        medication–food contraindications.

        Returns
        -------
        EmergencyCheckResult – ``is_safe`` is False iff the action is BLOCK.
        """
        try:
            return self._check(allergies, medications, proposed_ingredients)
        except Exception as e:
            self.logger.exception("Emergency conflict check failed")
            return EmergencyCheckResult(
                is_safe=False,
                emergency_warnings=[f"CRITICAL: safety check could not be completed ({e})"],
                action_required=EmergencyAction.BLOCK,
                user_message=FAILURE_MESSAGE,
                emergency_notice=EMERGENCY_NOTICE,
            )

    def _check(self, allergies, medications, proposed_ingredients) -> EmergencyCheckResult:
        allergy_records, allergy_anomalies = validate_records(
            allergies, "emergency_allergy", self.logger
        )
        medication_records, medication_anomalies = validate_records(
            medications, "emergency_medication", self.logger
        )
        ingredients = [
            i for i in (proposed_ingredients or []) if isinstance(i, str) and i.strip()
        ]
        lowered = [i.lower() for i in ingredients]

        warnings: List[str] = []
        action = EmergencyAction.PROCEED

        for allergy in allergy_records:
            if allergy.severity != AllergySeverity.ANAPHYLACTIC:
                continue
            allergen = allergy.allergen.strip().lower()
            for ingredient, ingredient_lower in zip(ingredients, lowered):
                if allergen in ingredient_lower:
                    warnings.append(
                        f"CRITICAL: {ingredient} contains {allergy.allergen} - ANAPHYLACTIC RISK"
                    )
                    action = EmergencyAction.BLOCK

        for medication in medication_records:
            if not medication.is_active:
                continue
            for food in self.food_contraindications(medication):
                if any(food in ingredient_lower for ingredient_lower in lowered):
                    warnings.append(
                        f"WARNING: {food} may interact with {medication.generic_name}"
                    )
                    if action != EmergencyAction.BLOCK:
                        action = EmergencyAction.WARN

        # an unreadable allergy may hide an anaphylactic one
        if allergy_anomalies:
            warnings.append(
                f"WARNING: {len(allergy_anomalies)} allergy record(s) could not be checked"
            )
            if action != EmergencyAction.BLOCK:
                action = EmergencyAction.WARN

        if action == EmergencyAction.BLOCK:
            self.logger.warning("Emergency check BLOCK: %s", warnings)
            message, notice = BLOCK_MESSAGE, EMERGENCY_NOTICE
        elif action == EmergencyAction.WARN:
            message, notice = WARN_MESSAGE, None
        else:
            message, notice = PROCEED_MESSAGE, None

        return EmergencyCheckResult(
            is_safe=action != EmergencyAction.BLOCK,
            emergency_warnings=warnings,
            action_required=action,
            user_message=message,
            emergency_notice=notice,
            anomalies=allergy_anomalies + medication_anomalies,
        )

    def food_contraindications(self, medication: EmergencyMedication) -> List[str]:
        """Foods to flag for one medication: static table plus catalog avoidances."""
        foods: List[str] = []
        for rule in self.rules:
            if rule.applies_to(medication):
                foods.extend(rule.foods)
        if self.drug_catalog is not None:
            for food in self.drug_catalog.food_interactions(medication.generic_name):
                if food.avoidance_required:
                    foods.append(food.food)
        # keep first occurrence order
        return list(dict.fromkeys(foods))
