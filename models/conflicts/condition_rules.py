"""
NutriGuard Safety Engine – Condition Compatibility Rules
==========================================================
Rule table for the condition-compatibility pass. Conditions are inferred
from medication names and indications; this is a heuristic, not a clinical
taxonomy. New rules are added to DEFAULT_CONDITION_RULES without touching
the detector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from models.schema_definition import (
    ConflictSeverity,
    ConflictType,
    HealthConflict,
    Medication,
)

logger = logging.getLogger(__name__)


DIABETIC_DRUG_FRAGMENTS = (
    "metformin", "glipizide", "glyburide", "glimepiride", "chlorpropamide",
    "pioglitazone", "sitagliptin", "linagliptin", "empagliflozin",
    "canagliflozin", "insulin",
)

SULFONYLUREA_FRAGMENTS = ("glipizide", "glyburide", "glimepiride", "chlorpropamide")

ACE_INHIBITOR_ARB_FRAGMENTS = (
    "pril",                     # lisinopril, enalapril, ramipril, ...
    "losartan", "valsartan", "irbesartan", "candesartan", "olmesartan", "telmisartan",
)

DIURETIC_FRAGMENTS = (
    "hydrochlorothiazide", "chlorthalidone", "furosemide", "bumetanide",
    "torsemide", "spironolactone", "indapamide",
)

NSAID_FRAGMENTS = (
    "ibuprofen", "naproxen", "diclofenac", "celecoxib", "meloxicam",
    "indomethacin", "ketorolac",
)


@dataclass(frozen=True)
class ConditionRule:
    """
    One (trigger condition -> conflict) rule.

    A medication is in scope when its name contains one of ``scope_fragments``
    or its indication contains one of ``scope_indications`` (empty scope means
    every medication). The rule fires when each group in ``required_groups``
    matches at least one in-scope medication and at least two medications are
    in scope. One combination product may satisfy several groups.
    """
    rule_id: str
    condition: str
    risk_type: str
    severity: ConflictSeverity
    description: str
    required_groups: Dict[str, Tuple[str, ...]]
    scope_fragments: Tuple[str, ...] = ()
    scope_indications: Tuple[str, ...] = ()

    def in_scope(self, med: Medication) -> bool:
        if not self.scope_fragments and not self.scope_indications:
            return True
        name = med.generic_name.lower()
        indication = (med.indication or "").lower()
        return (
            any(frag in name for frag in self.scope_fragments)
            or any(ind in indication for ind in self.scope_indications)
        )

    def match(self, medications: Sequence[Medication]) -> Optional[List[Medication]]:
        """Return the medications that triggered the rule, or None."""
        scoped = [m for m in medications if self.in_scope(m)]
        if len(scoped) < 2:
            return None

        involved: Dict[str, Medication] = {}
        for fragments in self.required_groups.values():
            hits = [m for m in scoped if any(f in m.generic_name.lower() for f in fragments)]
            if not hits:
                return None
            for m in hits:
                involved.setdefault(m.id, m)

        return list(involved.values())

    def build_conflict(self, subject_id: str, medications: List[Medication]) -> HealthConflict:
        return HealthConflict(
            id=f"{self.rule_id}-{subject_id}",
            type=ConflictType.CONDITION_COMPATIBILITY,
            severity=self.severity,
            description=self.description,
            affected_subject_id=subject_id,
            conflicting_data={
                "condition": self.condition,
                "risk_type": self.risk_type,
                "rule_id": self.rule_id,
                "medications": [m.model_dump() for m in medications],
            },
        )


DEFAULT_CONDITION_RULES: Tuple[ConditionRule, ...] = (
    ConditionRule(
        rule_id="diabetes-hypoglycemia-risk",
        condition="diabetes",
        risk_type="hypoglycemia",
        severity=ConflictSeverity.HIGH,
        description="High risk of hypoglycemia with concurrent insulin and sulfonylurea use",
        required_groups={
            "insulin": ("insulin",),
            "sulfonylurea": SULFONYLUREA_FRAGMENTS,
        },
        scope_fragments=DIABETIC_DRUG_FRAGMENTS,
        scope_indications=("diabetes",),
    ),
    ConditionRule(
        rule_id="renal-triple-whammy-risk",
        condition="renal function",
        risk_type="acute_kidney_injury",
        severity=ConflictSeverity.HIGH,
        description=(
            "Risk of acute kidney injury with combined ACE inhibitor/ARB, "
            "diuretic and NSAID use"
        ),
        required_groups={
            "ace_inhibitor_or_arb": ACE_INHIBITOR_ARB_FRAGMENTS,
            "diuretic": DIURETIC_FRAGMENTS,
            "nsaid": NSAID_FRAGMENTS,
        },
    ),
)


def evaluate_condition_rules(
    subject_id: str,
    medications: Sequence[Medication],
    rules: Sequence[ConditionRule] = DEFAULT_CONDITION_RULES,
) -> List[HealthConflict]:
    """Run every rule against the subject's active medications."""
    conflicts = []
    for rule in rules:
        triggered = rule.match(medications)
        if triggered:
            logger.debug("Condition rule %s fired for %s", rule.rule_id, subject_id)
            conflicts.append(rule.build_conflict(subject_id, triggered))
    return conflicts
