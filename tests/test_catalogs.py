"""Tests for the drug interaction and allergen cross-reactivity catalogs."""

import pytest

from core.exceptions import CatalogError
from models.catalogs.allergen_catalog import AllergenCatalog, allergy_severity_to_conflict
from models.catalogs.drug_catalog import DrugInteractionCatalog, drug_severity_to_conflict
from models.schema_definition import (
    AllergySeverity,
    ConflictSeverity,
    DrugInteractionSeverity,
)


# ============================================================================
# Drug Interaction Catalog
# ============================================================================


class TestDrugCatalogContent:
    """Test the bundled drug interaction data."""

    def test_catalog_not_empty(self, drug_catalog):
        """Test that the catalog has drugs."""
        assert len(drug_catalog) > 0
        assert "warfarin" in drug_catalog

    def test_lookup_is_case_insensitive(self, drug_catalog):
        """Test that names are normalized on lookup."""
        assert drug_catalog.get("  Warfarin ") is drug_catalog.get("warfarin")
        assert "WARFARIN" in drug_catalog

    def test_warfarin_aspirin_is_major(self, drug_catalog):
        """Test the warfarin → aspirin entry."""
        interaction = drug_catalog.find_interaction("warfarin", "aspirin")
        assert interaction is not None
        assert interaction.severity == DrugInteractionSeverity.MAJOR
        assert "bleeding" in interaction.description.lower()

    def test_lookup_is_single_direction(self, drug_catalog):
        """Test that find_interaction only reads drug1's entry."""
        assert drug_catalog.find_interaction("warfarin", "aspirin") is not None
        assert drug_catalog.find_interaction("aspirin", "warfarin") is None

    def test_unknown_drug_has_no_interactions(self, drug_catalog):
        """Test that an absent entry means no known interaction."""
        assert drug_catalog.get("vitamin-c") is None
        assert drug_catalog.find_interaction("vitamin-c", "warfarin") is None
        assert drug_catalog.food_interactions("vitamin-c") == ()

    def test_has_contraindicated_interactions(self, drug_catalog):
        """Test that the catalog carries at least one contraindicated pair."""
        contraindicated = [
            i
            for drug in drug_catalog.drugs()
            for i in drug_catalog.get(drug).interactions
            if i.severity == DrugInteractionSeverity.CONTRAINDICATED
        ]
        assert len(contraindicated) > 0

    def test_food_interactions_loaded(self, drug_catalog):
        """Test that food interactions carry the avoidance flag."""
        foods = {f.food: f for f in drug_catalog.food_interactions("simvastatin")}
        assert "grapefruit" in foods
        assert foods["grapefruit"].avoidance_required is True


class TestDrugCatalogValidation:
    """Test catalog construction errors."""

    def test_unknown_severity_rejected(self):
        with pytest.raises(CatalogError):
            DrugInteractionCatalog({
                "a": {"interactions": [{"interacting_drug": "b", "severity": "severe"}]}
            })

    def test_missing_interacting_drug_rejected(self):
        with pytest.raises(CatalogError):
            DrugInteractionCatalog({"a": {"interactions": [{"severity": "minor"}]}})

    def test_unknown_evidence_level_rejected(self):
        with pytest.raises(CatalogError):
            DrugInteractionCatalog({
                "a": {"interactions": [
                    {"interacting_drug": "b", "severity": "minor", "evidence_level": "anecdotal"}
                ]}
            })

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CatalogError):
            DrugInteractionCatalog.from_yaml(str(tmp_path / "missing.yaml"))

    def test_from_custom_yaml(self, tmp_path):
        path = tmp_path / "drugs.yaml"
        path.write_text(
            "drugs:\n"
            "  DrugA:\n"
            "    interactions:\n"
            "      - interacting_drug: DrugB\n"
            "        severity: moderate\n"
            "        description: test\n"
        )
        catalog = DrugInteractionCatalog.from_yaml(str(path))
        assert catalog.find_interaction("druga", "drugb").severity == DrugInteractionSeverity.MODERATE

    def test_entries_are_read_only(self, drug_catalog):
        with pytest.raises(TypeError):
            drug_catalog._entries["new"] = None


class TestDrugSeverityMapping:
    """Test drug severity → conflict severity."""

    @pytest.mark.parametrize(
        "drug_severity,expected",
        [
            (DrugInteractionSeverity.MINOR, ConflictSeverity.LOW),
            (DrugInteractionSeverity.MODERATE, ConflictSeverity.MEDIUM),
            (DrugInteractionSeverity.MAJOR, ConflictSeverity.HIGH),
            (DrugInteractionSeverity.CONTRAINDICATED, ConflictSeverity.CRITICAL),
        ],
    )
    def test_mapping(self, drug_severity, expected):
        assert drug_severity_to_conflict(drug_severity) == expected


# ============================================================================
# Allergen Catalog
# ============================================================================


class TestAllergenCatalog:
    """Test allergen cross-reactivity lookups."""

    def test_catalog_not_empty(self, allergen_catalog):
        assert len(allergen_catalog) > 0
        assert "peanuts" in set(allergen_catalog.allergens())

    def test_peanuts_cross_react_with_tree_nuts(self, allergen_catalog):
        rule = allergen_catalog.cross_reactive_with("peanuts", "tree nuts")
        assert rule is not None
        assert rule.risk_level == ConflictSeverity.HIGH

    def test_lookup_is_one_directional(self, allergen_catalog):
        """Test that only the primary allergen's own rule is consulted."""
        assert allergen_catalog.cross_reactive_with("peanuts", "legumes") is not None
        assert allergen_catalog.cross_reactive_with("legumes", "peanuts") is None

    def test_cross_reactivity_matches_substring(self, allergen_catalog):
        """Test that 'crustaceans (shrimp)' still matches the shellfish rule."""
        rule = allergen_catalog.cross_reactive_with("Shellfish", "crustaceans (shrimp)")
        assert rule is not None
        assert rule.risk_level == ConflictSeverity.CRITICAL

    def test_unrelated_allergens(self, allergen_catalog):
        assert allergen_catalog.cross_reactive_with("peanuts", "latex") is None
        assert allergen_catalog.cross_reactive_with("unknown", "peanuts") is None

    def test_duplicate_rule_rejected(self):
        with pytest.raises(CatalogError):
            AllergenCatalog([
                {"allergen": "egg", "cross_reactive_allergens": [], "risk_level": "low"},
                {"allergen": "Egg", "cross_reactive_allergens": [], "risk_level": "low"},
            ])

    def test_unknown_risk_level_rejected(self):
        with pytest.raises(CatalogError):
            AllergenCatalog([
                {"allergen": "egg", "cross_reactive_allergens": ["chicken"], "risk_level": "extreme"}
            ])

    @pytest.mark.parametrize(
        "allergy_severity,expected",
        [
            (AllergySeverity.MILD, ConflictSeverity.LOW),
            (AllergySeverity.MODERATE, ConflictSeverity.MEDIUM),
            (AllergySeverity.SEVERE, ConflictSeverity.HIGH),
            (AllergySeverity.ANAPHYLACTIC, ConflictSeverity.CRITICAL),
        ],
    )
    def test_allergy_severity_mapping(self, allergy_severity, expected):
        assert allergy_severity_to_conflict(allergy_severity) == expected
