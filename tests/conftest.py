"""Pytest configuration and fixtures for NutriGuard tests."""

import pytest

from core.config import ConflictDetectionConfig, OversightConfig
from models.catalogs.allergen_catalog import AllergenCatalog
from models.catalogs.drug_catalog import DrugInteractionCatalog
from models.conflicts.conflict_detector import ConflictDetector
from models.conflicts.emergency_monitor import ClinicalSafetyMonitor
from models.oversight.clinical_scanner import ClinicalOversightScanner
from pipelines.content_pipeline import ContentPipeline


@pytest.fixture(scope="session")
def drug_catalog() -> DrugInteractionCatalog:
    """Drug catalog loaded from configs/drug_interactions.yaml."""
    return DrugInteractionCatalog.from_yaml()


@pytest.fixture(scope="session")
def allergen_catalog() -> AllergenCatalog:
    """Allergen rules loaded from configs/allergen_rules.yaml."""
    return AllergenCatalog.from_yaml()


@pytest.fixture
def detector(drug_catalog, allergen_catalog) -> ConflictDetector:
    """Detector with default (all passes enabled) configuration."""
    return ConflictDetector(
        config=ConflictDetectionConfig(),
        drug_catalog=drug_catalog,
        allergen_catalog=allergen_catalog,
    )


@pytest.fixture
def make_detector(drug_catalog, allergen_catalog):
    """Factory for detectors with config overrides."""

    def _make(**overrides) -> ConflictDetector:
        return ConflictDetector(
            config=ConflictDetectionConfig(**overrides),
            drug_catalog=drug_catalog,
            allergen_catalog=allergen_catalog,
        )

    return _make


@pytest.fixture
def monitor(drug_catalog) -> ClinicalSafetyMonitor:
    return ClinicalSafetyMonitor(drug_catalog=drug_catalog)


@pytest.fixture
def scanner() -> ClinicalOversightScanner:
    return ClinicalOversightScanner()


@pytest.fixture
def content_pipeline(scanner) -> ContentPipeline:
    return ContentPipeline(scanner=scanner, oversight_config=OversightConfig())


def med(med_id: str, name: str, active: bool = True, indication: str = None) -> dict:
    """Medication record as a client would send it (camelCase)."""
    record = {"id": med_id, "genericName": name, "isActive": active}
    if indication:
        record["indication"] = indication
    return record


def allergy(allergy_id: str, allergen: str, severity: str = "moderate") -> dict:
    return {"id": allergy_id, "allergen": allergen, "severity": severity}
