"""
NutriGuard Safety Engine – Drug Interaction Catalog
=====================================================
Read-only lookup of known drug-drug and drug-food interactions, keyed by
lower-cased generic name. Pure data: an absent entry means "no known
interaction", never "unknown / unsafe".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

import yaml

from core.exceptions import CatalogError
from models.schema_definition import ConflictSeverity, DrugInteractionSeverity

logger = logging.getLogger(__name__)

_DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "configs" / "drug_interactions.yaml"

_EVIDENCE_LEVELS = {"high", "medium", "low"}

_DRUG_TO_CONFLICT = {
    DrugInteractionSeverity.MINOR: ConflictSeverity.LOW,
    DrugInteractionSeverity.MODERATE: ConflictSeverity.MEDIUM,
    DrugInteractionSeverity.MAJOR: ConflictSeverity.HIGH,
    DrugInteractionSeverity.CONTRAINDICATED: ConflictSeverity.CRITICAL,
}


def drug_severity_to_conflict(severity: DrugInteractionSeverity) -> ConflictSeverity:
    """Fixed mapping from catalog drug severity to conflict severity."""
    return _DRUG_TO_CONFLICT[DrugInteractionSeverity(severity)]


@dataclass(frozen=True)
class DrugInteractionEntry:
    interacting_drug: str
    severity: DrugInteractionSeverity
    description: str
    mechanism: str = ""
    clinical_recommendation: str = ""
    evidence_level: str = "medium"

    def as_dict(self) -> dict:
        return {
            "interacting_drug": self.interacting_drug,
            "severity": self.severity.value,
            "description": self.description,
            "mechanism": self.mechanism,
            "clinical_recommendation": self.clinical_recommendation,
            "evidence_level": self.evidence_level,
        }


@dataclass(frozen=True)
class FoodInteraction:
    food: str
    effect: str
    avoidance_required: bool = False


@dataclass(frozen=True)
class DrugCatalogEntry:
    drug: str
    interactions: Tuple[DrugInteractionEntry, ...] = ()
    food_interactions: Tuple[FoodInteraction, ...] = ()


def _normalize(name: str) -> str:
    return name.strip().lower()


class DrugInteractionCatalog:
    """Immutable drug interaction lookup table."""

    def __init__(self, entries: Mapping[str, dict]):
        built = {}
        for drug, raw in (entries or {}).items():
            key = _normalize(str(drug))
            if not key:
                raise CatalogError("Drug catalog contains an empty drug name")
            built[key] = self._build_entry(key, raw or {})
        self._entries = MappingProxyType(built)
        logger.info("Drug catalog loaded: %d drugs", len(built))

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "DrugInteractionCatalog":
        """Load the catalog from a YAML file (defaults to configs/drug_interactions.yaml)."""
        catalog_path = Path(path) if path else _DEFAULT_CATALOG_PATH
        if not catalog_path.exists():
            raise CatalogError(f"Drug catalog not found at {catalog_path}")
        with open(catalog_path) as f:
            data = yaml.safe_load(f) or {}
        return cls(data.get("drugs", {}))

    @staticmethod
    def _build_entry(drug: str, raw: dict) -> DrugCatalogEntry:
        interactions = []
        for item in raw.get("interactions", []) or []:
            other = _normalize(str(item.get("interacting_drug", "") or ""))
            if not other:
                raise CatalogError(f"Interaction for '{drug}' has no interacting_drug")
            try:
                severity = DrugInteractionSeverity(str(item.get("severity", "")).lower())
            except ValueError:
                raise CatalogError(
                    f"Unknown severity '{item.get('severity')}' for {drug} -> {other}"
                )
            evidence = str(item.get("evidence_level", "medium")).lower()
            if evidence not in _EVIDENCE_LEVELS:
                raise CatalogError(f"Unknown evidence level '{evidence}' for {drug} -> {other}")
            interactions.append(DrugInteractionEntry(
                interacting_drug=other,
                severity=severity,
                description=str(item.get("description", "") or ""),
                mechanism=str(item.get("mechanism", "") or ""),
                clinical_recommendation=str(item.get("clinical_recommendation", "") or ""),
                evidence_level=evidence,
            ))

        foods = []
        for item in raw.get("food_interactions", []) or []:
            food = _normalize(str(item.get("food", "") or ""))
            if not food:
                raise CatalogError(f"Food interaction for '{drug}' has no food")
            foods.append(FoodInteraction(
                food=food,
                effect=str(item.get("effect", "") or ""),
                avoidance_required=bool(item.get("avoidance_required", False)),
            ))

        return DrugCatalogEntry(
            drug=drug,
            interactions=tuple(interactions),
            food_interactions=tuple(foods),
        )

    # ── Lookups ─────────────────────────────────────────────────────────

    def get(self, drug: str) -> Optional[DrugCatalogEntry]:
        return self._entries.get(_normalize(drug))

    def find_interaction(self, drug1: str, drug2: str) -> Optional[DrugInteractionEntry]:
        """Single-direction lookup: drug1's entry listing drug2."""
        entry = self.get(drug1)
        if entry is None:
            return None
        target = _normalize(drug2)
        for interaction in entry.interactions:
            if interaction.interacting_drug == target:
                return interaction
        return None

    def food_interactions(self, drug: str) -> Tuple[FoodInteraction, ...]:
        entry = self.get(drug)
        return entry.food_interactions if entry else ()

    def drugs(self) -> Iterable[str]:
        return self._entries.keys()

    def __contains__(self, drug: object) -> bool:
        return isinstance(drug, str) and _normalize(drug) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
