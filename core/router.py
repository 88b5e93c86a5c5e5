"""
NutriGuard Safety Engine – Router
===================================
One-call entrypoint: loads configuration and catalogs once, builds the
shared detector / monitor / scanner, and dispatches to the gating pipelines.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from core.config import EngineConfig, load_config
from models.catalogs.allergen_catalog import AllergenCatalog
from models.catalogs.drug_catalog import DrugInteractionCatalog
from models.conflicts.conflict_detector import ConflictDetector
from models.conflicts.emergency_monitor import ClinicalSafetyMonitor
from models.oversight.clinical_scanner import ClinicalOversightScanner
from pipelines.content_pipeline import ContentPipeline
from pipelines.ingredient_pipeline import IngredientPipeline
from pipelines.profile_pipeline import ProfilePipeline

logger = logging.getLogger(__name__)


class NutriGuardRouter:
    """Shared safety engine for API routes, the CLI and the demo."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or load_config(config_path)

        # Catalogs are immutable and shared by every component
        self.drug_catalog = DrugInteractionCatalog.from_yaml(self.config.drug_catalog_path)
        self.allergen_catalog = AllergenCatalog.from_yaml(self.config.allergen_rules_path)

        self.detector = ConflictDetector(
            config=self.config.detection,
            drug_catalog=self.drug_catalog,
            allergen_catalog=self.allergen_catalog,
        )
        self.monitor = ClinicalSafetyMonitor(drug_catalog=self.drug_catalog)
        self.scanner = ClinicalOversightScanner()

        self.profile_pipeline = ProfilePipeline(detector=self.detector)
        self.ingredient_pipeline = IngredientPipeline(monitor=self.monitor)
        self.content_pipeline = ContentPipeline(
            scanner=self.scanner, oversight_config=self.config.oversight
        )
        logger.info(
            "NutriGuard ready: %d drugs, %d allergen rules, oversight=%s",
            len(self.drug_catalog), len(self.allergen_catalog), self.config.oversight.enabled,
        )

    # ── Public API ──────────────────────────────────────────────────────

    def check_profile(
        self,
        subject_id: str,
        allergies: Sequence[Any],
        medications: Optional[Sequence[Any]] = None,
        proposed_changes: Optional[dict] = None,
    ) -> dict:
        """Run conflict detection and gate the result."""
        return self.profile_pipeline.run(subject_id, allergies, medications, proposed_changes)

    def check_ingredients(
        self,
        allergies: Sequence[Any],
        medications: Sequence[Any],
        ingredients: Sequence[str],
    ) -> dict:
        """Emergency block / warn / proceed verdict for an ingredient list."""
        return self.ingredient_pipeline.run(allergies, medications, ingredients)

    def screen_inbound(self, data: Any) -> dict:
        return self.content_pipeline.screen_inbound(data)

    def screen_outbound(self, data: Any) -> dict:
        return self.content_pipeline.screen_outbound(data)
