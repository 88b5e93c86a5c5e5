"""
NutriGuard Safety Engine – Configuration
==========================================
Loads engine configuration from configs/engine_config.yaml, then applies
environment overrides. Entry points call ``load_dotenv`` before this.
The detector itself never reads the environment: it is handed a config object.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.exceptions import ConfigError
from core.validation import coerce_bool, coerce_int

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "engine_config.yaml"


class ConflictDetectionConfig(BaseModel):
    """Switches for the Conflict Detector."""
    model_config = ConfigDict(frozen=True)

    enable_medication_interactions: bool = True
    enable_allergy_conflicts: bool = True
    enable_condition_compatibility: bool = True
    auto_resolve_minor_conflicts: bool = False      # explicit opt-in
    emergency_override_enabled: bool = True         # reported only, never enforced here
    clinical_oversight_required: bool = True
    review_conflict_threshold: int = Field(default=3, ge=1)


class OversightConfig(BaseModel):
    """Switches for the clinical content gate at the HTTP boundary."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    skip_paths: Tuple[str, ...] = (
        "/health", "/docs", "/openapi.json", "/redoc", "/oversight/analyze",
    )
    block_inbound_critical: bool = True
    annotate_outbound: bool = True


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    detection: ConflictDetectionConfig = Field(default_factory=ConflictDetectionConfig)
    oversight: OversightConfig = Field(default_factory=OversightConfig)
    drug_catalog_path: Optional[str] = None
    allergen_rules_path: Optional[str] = None


# env var -> (section, field, kind)
ENV_OVERRIDES: List[Tuple[str, str, str, str]] = [
    ("ENABLE_MEDICATION_INTERACTIONS", "detection", "enable_medication_interactions", "bool"),
    ("ENABLE_ALLERGY_CONFLICTS", "detection", "enable_allergy_conflicts", "bool"),
    ("ENABLE_CONDITION_COMPATIBILITY", "detection", "enable_condition_compatibility", "bool"),
    ("AUTO_RESOLVE_MINOR_CONFLICTS", "detection", "auto_resolve_minor_conflicts", "bool"),
    ("EMERGENCY_OVERRIDE_ENABLED", "detection", "emergency_override_enabled", "bool"),
    ("CLINICAL_OVERSIGHT_REQUIRED", "detection", "clinical_oversight_required", "bool"),
    ("CLINICAL_REVIEW_THRESHOLD", "detection", "review_conflict_threshold", "int"),
    ("CLINICAL_CONTENT_OVERSIGHT_ENABLED", "oversight", "enabled", "bool"),
]


def load_config(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """
    Build the engine configuration.

    Parameters
    ----------
    path : str, optional
        YAML config file. Defaults to configs/engine_config.yaml; a missing
        file falls back to defaults.
    env : mapping, optional
        Environment to read overrides from (defaults to ``os.environ``).
    """
    cfg_path = Path(path) if path else _DEFAULT_CONFIG_PATH
    env = os.environ if env is None else env

    raw: dict = {}
    if cfg_path.exists():
        with open(cfg_path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.warning("Engine config not found at %s – using defaults", cfg_path)

    sections = {
        "detection": dict(raw.get("detection", {}) or {}),
        "oversight": dict(raw.get("oversight", {}) or {}),
    }

    for var, section, field, kind in ENV_OVERRIDES:
        value = env.get(var)
        if value is None or value == "":
            continue
        if kind == "bool":
            sections[section][field] = coerce_bool(value, var)
        else:
            sections[section][field] = coerce_int(value, var, minimum=1)
        logger.info("Config override from %s: %s.%s=%s", var, section, field, value)

    if "skip_paths" in sections["oversight"]:
        sections["oversight"]["skip_paths"] = tuple(sections["oversight"]["skip_paths"] or ())

    catalogs = raw.get("catalogs", {}) or {}
    try:
        return EngineConfig(
            detection=ConflictDetectionConfig(**sections["detection"]),
            oversight=OversightConfig(**sections["oversight"]),
            drug_catalog_path=catalogs.get("drug_interactions"),
            allergen_rules_path=catalogs.get("allergen_rules"),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid engine configuration: {e}") from e
