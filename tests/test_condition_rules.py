"""Tests for condition compatibility rules and the safety scorer."""

import pytest

from models.conflicts.condition_rules import (
    DEFAULT_CONDITION_RULES,
    ConditionRule,
    evaluate_condition_rules,
)
from models.conflicts.safety_scorer import SafetyScorer
from models.schema_definition import (
    ConflictSeverity,
    ConflictType,
    HealthConflict,
    Medication,
)


def _med(med_id, name, indication=None):
    return Medication(id=med_id, generic_name=name, indication=indication)


def _conflict(conflict_type, severity, conflict_id="c"):
    return HealthConflict(
        id=conflict_id,
        type=conflict_type,
        severity=severity,
        description="test",
        affected_subject_id="u1",
    )


class TestConditionRules:
    """Test the default rule table."""

    def test_rule_ids_unique(self):
        ids = [r.rule_id for r in DEFAULT_CONDITION_RULES]
        assert len(ids) == len(set(ids))

    def test_hypoglycemia_rule(self):
        conflicts = evaluate_condition_rules(
            "u1", [_med("m1", "insulin lispro"), _med("m2", "glyburide")]
        )
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.id == "diabetes-hypoglycemia-risk-u1"
        assert conflict.conflicting_data["risk_type"] == "hypoglycemia"
        assert len(conflict.conflicting_data["medications"]) == 2

    def test_hypoglycemia_rule_needs_both_groups(self):
        assert evaluate_condition_rules(
            "u1", [_med("m1", "insulin lispro"), _med("m2", "metformin")]
        ) == []

    def test_scope_by_indication(self):
        """Test that an indication brings a medication into scope."""
        rule = DEFAULT_CONDITION_RULES[0]
        assert rule.in_scope(_med("m1", "exenatide", indication="Type 2 Diabetes"))
        assert not rule.in_scope(_med("m1", "lisinopril", indication="hypertension"))

    def test_triple_whammy(self):
        conflicts = evaluate_condition_rules(
            "u1",
            [_med("m1", "lisinopril"), _med("m2", "furosemide"), _med("m3", "naproxen")],
        )
        assert [c.conflicting_data["rule_id"] for c in conflicts] == ["renal-triple-whammy-risk"]
        assert conflicts[0].severity == ConflictSeverity.HIGH

    def test_triple_whammy_incomplete(self):
        assert evaluate_condition_rules(
            "u1", [_med("m1", "lisinopril"), _med("m2", "naproxen")]
        ) == []

    def test_combination_product_fires_with_second_diabetic_drug(self):
        """Test that one record covering both groups fires once another diabetic drug is present."""
        conflicts = evaluate_condition_rules(
            "u1", [_med("m1", "insulin glargine/glipizide"), _med("m2", "metformin")]
        )
        assert [c.conflicting_data["rule_id"] for c in conflicts] == ["diabetes-hypoglycemia-risk"]
        assert len(conflicts[0].conflicting_data["medications"]) == 1

    def test_combination_product_alone_does_not_fire(self):
        rule = ConditionRule(
            rule_id="combo",
            condition="test",
            risk_type="test",
            severity=ConflictSeverity.MEDIUM,
            description="combo product",
            required_groups={"a": ("alpha",), "b": ("beta",)},
            scope_fragments=("alpha", "beta"),
        )
        assert rule.match([_med("m1", "alphabeta"), _med("m2", "water")]) is None
        assert [m.id for m in rule.match([_med("m1", "alphabeta"), _med("m2", "alpha")])] == [
            "m1", "m2",
        ]

    def test_custom_rule(self):
        rule = ConditionRule(
            rule_id="custom",
            condition="test",
            risk_type="test",
            severity=ConflictSeverity.LOW,
            description="custom rule",
            required_groups={"a": ("alpha",), "b": ("beta",)},
        )
        conflicts = evaluate_condition_rules(
            "u1", [_med("m1", "alpha"), _med("m2", "beta")], rules=[rule]
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.CONDITION_COMPATIBILITY


class TestSafetyScorer:
    """Test score and review decision."""

    def test_empty_is_perfect(self):
        assert SafetyScorer().score([]) == 100

    @pytest.mark.parametrize(
        "conflict_type,expected",
        [
            (ConflictType.MEDICATION_INTERACTION, 85),
            (ConflictType.ALLERGY_CONFLICT, 90),
            (ConflictType.CONDITION_COMPATIBILITY, 88),
        ],
    )
    def test_penalty_per_type(self, conflict_type, expected):
        assert SafetyScorer().score([_conflict(conflict_type, ConflictSeverity.LOW)]) == expected

    def test_floor_at_zero(self):
        conflicts = [
            _conflict(ConflictType.MEDICATION_INTERACTION, ConflictSeverity.LOW, str(i))
            for i in range(10)
        ]
        assert SafetyScorer().score(conflicts) == 0

    def test_custom_penalties(self):
        scorer = SafetyScorer(penalties={ConflictType.ALLERGY_CONFLICT: 50})
        assert scorer.score([_conflict(ConflictType.ALLERGY_CONFLICT, ConflictSeverity.LOW)]) == 50

    def test_negative_penalty_rejected(self):
        with pytest.raises(ValueError):
            SafetyScorer(penalties={ConflictType.ALLERGY_CONFLICT: -5})

    def test_review_on_high_severity(self):
        conflicts = [_conflict(ConflictType.ALLERGY_CONFLICT, ConflictSeverity.HIGH)]
        assert SafetyScorer.requires_review(conflicts, oversight_required=True) is True

    def test_review_on_count(self):
        conflicts = [
            _conflict(ConflictType.ALLERGY_CONFLICT, ConflictSeverity.LOW, str(i))
            for i in range(3)
        ]
        assert SafetyScorer.requires_review(conflicts, oversight_required=True) is True
        assert SafetyScorer.requires_review(conflicts[:2], oversight_required=True) is False

    def test_review_disabled(self):
        conflicts = [_conflict(ConflictType.ALLERGY_CONFLICT, ConflictSeverity.CRITICAL)]
        assert SafetyScorer.requires_review(conflicts, oversight_required=False) is False
