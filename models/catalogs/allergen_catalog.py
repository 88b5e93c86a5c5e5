"""
NutriGuard Safety Engine – Allergen Cross-Reactivity Catalog
==============================================================
Read-only table of allergens that commonly co-react, with a risk level and
avoidance guidance per rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Optional, Tuple

import yaml

from core.exceptions import CatalogError
from models.schema_definition import AllergySeverity, ConflictSeverity

logger = logging.getLogger(__name__)

_DEFAULT_RULES_PATH = Path(__file__).resolve().parents[2] / "configs" / "allergen_rules.yaml"

_ALLERGY_TO_CONFLICT = {
    AllergySeverity.MILD: ConflictSeverity.LOW,
    AllergySeverity.MODERATE: ConflictSeverity.MEDIUM,
    AllergySeverity.SEVERE: ConflictSeverity.HIGH,
    AllergySeverity.ANAPHYLACTIC: ConflictSeverity.CRITICAL,
}


def allergy_severity_to_conflict(severity: AllergySeverity) -> ConflictSeverity:
    """Fixed mapping from an allergy's own severity to conflict severity."""
    return _ALLERGY_TO_CONFLICT[AllergySeverity(severity)]


@dataclass(frozen=True)
class AllergenRule:
    allergen: str
    cross_reactive_allergens: Tuple[str, ...]
    risk_level: ConflictSeverity
    avoidance_recommendations: Tuple[str, ...] = ()

    def as_dict(self) -> dict:
        return {
            "allergen": self.allergen,
            "cross_reactive_allergens": list(self.cross_reactive_allergens),
            "risk_level": self.risk_level.value,
            "avoidance_recommendations": list(self.avoidance_recommendations),
        }


class AllergenCatalog:
    """Immutable allergen cross-reactivity lookup."""

    def __init__(self, rules: List[dict]):
        built = {}
        for raw in rules or []:
            rule = self._build_rule(raw or {})
            if rule.allergen in built:
                raise CatalogError(f"Duplicate allergen rule '{rule.allergen}'")
            built[rule.allergen] = rule
        self._rules = MappingProxyType(built)
        logger.info("Allergen catalog loaded: %d rules", len(built))

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "AllergenCatalog":
        rules_path = Path(path) if path else _DEFAULT_RULES_PATH
        if not rules_path.exists():
            raise CatalogError(f"Allergen rules not found at {rules_path}")
        with open(rules_path) as f:
            data = yaml.safe_load(f) or {}
        return cls(data.get("allergens", []))

    @staticmethod
    def _build_rule(raw: dict) -> AllergenRule:
        allergen = str(raw.get("allergen", "") or "").strip().lower()
        if not allergen:
            raise CatalogError("Allergen rule has no allergen")
        try:
            risk = ConflictSeverity(str(raw.get("risk_level", "")).lower())
        except ValueError:
            raise CatalogError(f"Unknown risk level '{raw.get('risk_level')}' for {allergen}")
        cross = tuple(
            str(a).strip().lower()
            for a in raw.get("cross_reactive_allergens", []) or []
            if str(a).strip()
        )
        return AllergenRule(
            allergen=allergen,
            cross_reactive_allergens=cross,
            risk_level=risk,
            avoidance_recommendations=tuple(
                str(r) for r in raw.get("avoidance_recommendations", []) or []
            ),
        )

    def get(self, allergen: str) -> Optional[AllergenRule]:
        return self._rules.get(allergen.strip().lower())

    def cross_reactive_with(self, primary: str, other: str) -> Optional[AllergenRule]:
        """Return primary's rule if ``other`` contains one of its cross-reactive allergens."""
        rule = self.get(primary)
        if rule is None:
            return None
        other_lower = other.lower()
        if any(cross in other_lower for cross in rule.cross_reactive_allergens):
            return rule
        return None

    def allergens(self) -> Iterable[str]:
        return self._rules.keys()

    def __len__(self) -> int:
        return len(self._rules)
