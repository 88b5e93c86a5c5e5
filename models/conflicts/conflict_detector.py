"""
NutriGuard Safety Engine – Conflict Detector
==============================================
Core decision engine. Given a subject's allergies and medications (or a
proposed replacement of either list) it runs three independent passes:

  1. medication ↔ medication interactions (drug catalog)
  2. allergy ↔ medication and allergy ↔ allergy cross-reactivity
  3. condition compatibility (rule table)

and aggregates the conflicts into a ConflictDetectionResult with a safety
score and a clinical-review decision.

The detector is a pure function of its inputs, its config and the immutable
catalogs: no I/O, no environment access, no per-call state on the instance.
An internal failure is reported as maximum risk, never as "all clear".
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

from core.config import ConflictDetectionConfig
from core.validation import validate_records
from models.catalogs.allergen_catalog import AllergenCatalog, allergy_severity_to_conflict
from models.catalogs.drug_catalog import DrugInteractionCatalog, drug_severity_to_conflict
from models.conflicts.condition_rules import (
    DEFAULT_CONDITION_RULES,
    ConditionRule,
    evaluate_condition_rules,
)
from models.conflicts.safety_scorer import SafetyScorer
from models.schema_definition import (
    Allergy,
    ChecksPerformed,
    ConflictDetectionResult,
    ConflictSeverity,
    ConflictType,
    HealthConflict,
    Medication,
    ProposedChanges,
)

logger = logging.getLogger(__name__)

# conflict_count reported when the detector itself failed
DETECTOR_FAILURE_SENTINEL = 999

# (allergen fragment, medication-name fragment) clinical equivalences
ALLERGEN_DRUG_EQUIVALENCES: Tuple[Tuple[str, str], ...] = (
    ("penicillin", "cillin"),
    ("sulfa", "sulfa"),
    ("aspirin", "salicylate"),
)

_AUTO_RESOLUTIONS = {
    ConflictType.MEDICATION_INTERACTION: (
        (ConflictSeverity.LOW, ConflictSeverity.MEDIUM),
        "Separate dosing times or adjust dose under routine monitoring",
    ),
    ConflictType.ALLERGY_CONFLICT: (
        (ConflictSeverity.LOW,),
        "Consider an alternative medication without the allergen",
    ),
}


class ConflictDetector:
    """Healthcare conflict detection over allergies, medications and conditions."""

    def __init__(
        self,
        config: Optional[ConflictDetectionConfig] = None,
        drug_catalog: Optional[DrugInteractionCatalog] = None,
        allergen_catalog: Optional[AllergenCatalog] = None,
        condition_rules: Sequence[ConditionRule] = DEFAULT_CONDITION_RULES,
        scorer: Optional[SafetyScorer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or ConflictDetectionConfig()
        self.drug_catalog = drug_catalog or DrugInteractionCatalog.from_yaml()
        self.allergen_catalog = allergen_catalog or AllergenCatalog.from_yaml()
        self.condition_rules = tuple(condition_rules)
        self.scorer = scorer or SafetyScorer()
        self.logger = logger or logging.getLogger(__name__)

    # ── Public API ──────────────────────────────────────────────────────

    def detect_conflicts(
        self,
        subject_id: str,
        allergies: Optional[Sequence[Any]],
        medications: Optional[Sequence[Any]] = None,
        proposed_changes: Optional[Union[ProposedChanges, dict]] = None,
    ) -> ConflictDetectionResult:
        """
        Detect conflicts for one subject.

        Parameters
        ----------
        subject_id : str
            Identifier of the person the records belong to.
        allergies, medications : sequence
            Current records (models or mappings). Inactive medications are ignored.
        proposed_changes : ProposedChanges or dict, optional
            A present ``allergies`` / ``medications`` list replaces the current
            one for this call only.

        Returns
        -------
        ConflictDetectionResult – maximum-risk result if detection itself fails.
        """
        subject_id = str(subject_id)
        try:
            raw_allergies, raw_medications = self._resolve_effective(
                allergies, medications, proposed_changes
            )
            allergy_records, allergy_anomalies = validate_records(
                raw_allergies, "allergy", self.logger
            )
            medication_records, medication_anomalies = validate_records(
                raw_medications, "medication", self.logger
            )
            active = [m for m in medication_records if m.is_active]

            conflicts: List[HealthConflict] = []
            cfg = self.config

            if cfg.enable_medication_interactions:
                conflicts.extend(self.detect_medication_interactions(subject_id, active))
            if cfg.enable_allergy_conflicts:
                conflicts.extend(self.detect_allergy_conflicts(subject_id, allergy_records, active))
            if cfg.enable_condition_compatibility:
                conflicts.extend(self.detect_condition_conflicts(subject_id, active))

            checks = ChecksPerformed(
                medication=cfg.enable_medication_interactions,
                allergy=cfg.enable_allergy_conflicts,
                condition=cfg.enable_condition_compatibility,
            )

            safety_score = self.scorer.score(conflicts)
            requires_review = self.scorer.requires_review(
                conflicts,
                oversight_required=cfg.clinical_oversight_required,
                threshold=cfg.review_conflict_threshold,
            )

            auto_resolution_applied = False
            if cfg.auto_resolve_minor_conflicts:
                conflicts, auto_resolution_applied = self._apply_auto_resolution(conflicts)

            critical = [c for c in conflicts if c.severity == ConflictSeverity.CRITICAL]
            warnings = [c for c in conflicts if c.severity != ConflictSeverity.CRITICAL]

            if conflicts:
                self.logger.info(
                    "Subject %s: %d conflict(s), %d critical, safety score %d",
                    subject_id, len(conflicts), len(critical), safety_score,
                )
            if not (checks.medication or checks.allergy or checks.condition):
                self.logger.warning(
                    "All detection passes disabled – subject %s was NOT checked", subject_id
                )

            return ConflictDetectionResult(
                subject_id=subject_id,
                has_conflicts=bool(conflicts),
                conflict_count=len(conflicts),
                critical_conflicts=critical,
                warnings=warnings,
                auto_resolution_applied=auto_resolution_applied,
                requires_clinical_review=requires_review,
                safety_score=safety_score,
                checks_performed=checks,
                anomalies=allergy_anomalies + medication_anomalies,
            )

        except Exception:
            # Detection failure is maximum risk
            self.logger.exception("Conflict detection failed for subject %s", subject_id)
            return self._failure_result(subject_id)

    # ── Detection passes ────────────────────────────────────────────────

    def detect_medication_interactions(
        self, subject_id: str, medications: Sequence[Medication]
    ) -> List[HealthConflict]:
        """Check every unordered pair of active medications against the catalog."""
        conflicts = []
        for i in range(len(medications)):
            for j in range(i + 1, len(medications)):
                med1, med2 = medications[i], medications[j]
                source, target = med1, med2
                interaction = self.drug_catalog.find_interaction(med1.generic_name, med2.generic_name)
                if interaction is None:
                    source, target = med2, med1
                    interaction = self.drug_catalog.find_interaction(
                        med2.generic_name, med1.generic_name
                    )
                if interaction is None:
                    continue

                conflicts.append(HealthConflict(
                    id=f"drug-{med1.id}-{med2.id}",
                    type=ConflictType.MEDICATION_INTERACTION,
                    severity=drug_severity_to_conflict(interaction.severity),
                    description=(
                        f"Interaction between {source.generic_name} and "
                        f"{target.generic_name}: {interaction.description}"
                    ),
                    affected_subject_id=subject_id,
                    conflicting_data={
                        "medication1": source.model_dump(),
                        "medication2": target.model_dump(),
                        "interaction": interaction.as_dict(),
                    },
                ))
        return conflicts

    def detect_allergy_conflicts(
        self,
        subject_id: str,
        allergies: Sequence[Allergy],
        medications: Sequence[Medication],
    ) -> List[HealthConflict]:
        """Allergy ↔ medication matches, then allergy ↔ allergy cross-reactivity."""
        conflicts = []
        for allergy in allergies:
            for medication in medications:
                if not self.is_medication_allergenic(medication, allergy):
                    continue
                conflicts.append(HealthConflict(
                    id=f"allergy-med-{allergy.id}-{medication.id}",
                    type=ConflictType.ALLERGY_CONFLICT,
                    severity=allergy_severity_to_conflict(allergy.severity),
                    description=(
                        f"Medication {medication.generic_name} may cause allergic reaction "
                        f"due to {allergy.allergen} allergy"
                    ),
                    affected_subject_id=subject_id,
                    conflicting_data={
                        "allergy": allergy.model_dump(),
                        "medication": medication.model_dump(),
                    },
                ))

            for other in allergies:
                if other.id == allergy.id:
                    continue
                rule = self.allergen_catalog.cross_reactive_with(allergy.allergen, other.allergen)
                if rule is None:
                    continue
                conflicts.append(HealthConflict(
                    id=f"cross-allergy-{allergy.id}-{other.id}",
                    type=ConflictType.ALLERGY_CONFLICT,
                    severity=rule.risk_level,
                    description=(
                        f"Cross-reactive allergies detected: {allergy.allergen} and {other.allergen}"
                    ),
                    affected_subject_id=subject_id,
                    conflicting_data={
                        "primary_allergy": allergy.model_dump(),
                        "cross_reactive_allergy": other.model_dump(),
                        "rule": rule.as_dict(),
                    },
                ))
        return conflicts

    def detect_condition_conflicts(
        self, subject_id: str, medications: Sequence[Medication]
    ) -> List[HealthConflict]:
        return evaluate_condition_rules(subject_id, medications, self.condition_rules)

    # ── Helpers ─────────────────────────────────────────────────────────

    @staticmethod
    def is_medication_allergenic(medication: Medication, allergy: Allergy) -> bool:
        med_name = medication.generic_name.lower()
        allergen = allergy.allergen.strip().lower()

        if allergen in med_name:
            return True
        return any(
            allergen_fragment in allergen and drug_fragment in med_name
            for allergen_fragment, drug_fragment in ALLERGEN_DRUG_EQUIVALENCES
        )

    @staticmethod
    def _resolve_effective(allergies, medications, proposed_changes) -> Tuple[list, list]:
        if proposed_changes is None:
            return list(allergies or []), list(medications or [])
        if not isinstance(proposed_changes, ProposedChanges):
            proposed_changes = ProposedChanges.model_validate(proposed_changes)
        effective_allergies = (
            proposed_changes.allergies if proposed_changes.allergies is not None else allergies
        )
        effective_medications = (
            proposed_changes.medications if proposed_changes.medications is not None else medications
        )
        return list(effective_allergies or []), list(effective_medications or [])

    @staticmethod
    def _apply_auto_resolution(
        conflicts: List[HealthConflict],
    ) -> Tuple[List[HealthConflict], bool]:
        """Mark eligible minor conflicts resolved. Returns new conflict objects."""
        applied = False
        resolved = []
        for conflict in conflicts:
            rule = _AUTO_RESOLUTIONS.get(conflict.type)
            if rule and conflict.severity in rule[0]:
                conflict = conflict.model_copy(
                    update={"resolved": True, "resolution_action": rule[1]}
                )
                applied = True
            resolved.append(conflict)
        return resolved, applied

    @staticmethod
    def _failure_result(subject_id: str) -> ConflictDetectionResult:
        return ConflictDetectionResult(
            subject_id=subject_id,
            has_conflicts=True,
            conflict_count=DETECTOR_FAILURE_SENTINEL,
            critical_conflicts=[],
            warnings=[],
            auto_resolution_applied=False,
            requires_clinical_review=True,
            safety_score=0,
            checks_performed=ChecksPerformed(),
            detection_failed=True,
        )
