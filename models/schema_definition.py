"""
NutriGuard Safety Engine – Schema Definitions
==============================================
Pydantic models for the safety engine:
  Inputs : Allergy / Medication records from the health-profile layer
  Output : Conflict records + detection result (Conflict Detector)
  Output : Emergency verdict (Emergency Safety Monitor)
  Output : Clinical alerts (Clinical Oversight Scanner)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Enums ───────────────────────────────────────────────────────────────────


class AllergySeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    ANAPHYLACTIC = "anaphylactic"


class DrugInteractionSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CONTRAINDICATED = "contraindicated"


class ConflictType(str, Enum):
    MEDICATION_INTERACTION = "medication_interaction"
    ALLERGY_CONFLICT = "allergy_conflict"
    CONDITION_COMPATIBILITY = "condition_compatibility"


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _CONFLICT_RANK[self]


_CONFLICT_RANK = {
    ConflictSeverity.LOW: 1,
    ConflictSeverity.MEDIUM: 2,
    ConflictSeverity.HIGH: 3,
    ConflictSeverity.CRITICAL: 4,
}


class EmergencyAction(str, Enum):
    BLOCK = "block"
    WARN = "warn"
    PROCEED = "proceed"


class ClinicalSeverity(str, Enum):
    LOW = "LOW"             # General health information
    MEDIUM = "MEDIUM"       # Health recommendations / diagnostic language
    HIGH = "HIGH"           # Medical advice
    CRITICAL = "CRITICAL"   # Emergency medical advice

    @property
    def rank(self) -> int:
        return _CLINICAL_RANK[self]

    def __ge__(self, other):
        if isinstance(other, ClinicalSeverity):
            return self.rank >= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, ClinicalSeverity):
            return self.rank > other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, ClinicalSeverity):
            return self.rank <= other.rank
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, ClinicalSeverity):
            return self.rank < other.rank
        return NotImplemented


_CLINICAL_RANK = {
    ClinicalSeverity.LOW: 1,
    ClinicalSeverity.MEDIUM: 2,
    ClinicalSeverity.HIGH: 3,
    ClinicalSeverity.CRITICAL: 4,
}


class ClinicalAlertType(str, Enum):
    MEDICAL_ADVICE = "MEDICAL_ADVICE"
    DIAGNOSTIC_STATEMENT = "DIAGNOSTIC_STATEMENT"
    TREATMENT_RECOMMENDATION = "TREATMENT_RECOMMENDATION"
    EMERGENCY_ADVICE = "EMERGENCY_ADVICE"
    CLINICAL_TERMINOLOGY = "CLINICAL_TERMINOLOGY"


# ── Inputs: health-profile records ──────────────────────────────────────────


class _ProfileRecord(BaseModel):
    """Accepts both the camelCase input contract and snake_case names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class EmergencyAllergy(_ProfileRecord):
    """Allergy as read by the emergency check: only allergen and severity matter."""
    id: Optional[str] = None
    allergen: str = Field(min_length=1)
    severity: AllergySeverity

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("allergen")
    @classmethod
    def _allergen_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("allergen must not be blank")
        return v


class Allergy(EmergencyAllergy):
    """A known sensitivity on a health profile."""
    id: str


class EmergencyMedication(_ProfileRecord):
    """Medication as read by the emergency check; the id is optional."""
    id: Optional[str] = None
    generic_name: str = Field(min_length=1)
    indication: Optional[str] = None
    is_active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("generic_name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("generic name must not be blank")
        return v


class Medication(EmergencyMedication):
    """A current or historical prescription."""
    id: str


class ProposedChanges(BaseModel):
    """Hypothetical edit: a present list replaces the current one for one call."""
    allergies: Optional[List[Any]] = None
    medications: Optional[List[Any]] = None


# ── Output: Conflict Detector ───────────────────────────────────────────────


class HealthConflict(BaseModel):
    """A single detected conflict. Created fresh on every detection call."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: ConflictType
    severity: ConflictSeverity
    description: str
    affected_subject_id: str
    conflicting_data: Dict[str, Any] = Field(default_factory=dict)
    detected_at: datetime = Field(default_factory=datetime.utcnow)
    resolved: bool = False
    resolution_action: Optional[str] = None


class ChecksPerformed(BaseModel):
    """Which detection passes actually ran for a result."""
    model_config = ConfigDict(frozen=True)

    medication: bool = False
    allergy: bool = False
    condition: bool = False


class ConflictDetectionResult(BaseModel):
    """Aggregate outcome of one detect_conflicts call."""
    model_config = ConfigDict(frozen=True)

    subject_id: str
    has_conflicts: bool
    conflict_count: int
    critical_conflicts: List[HealthConflict] = Field(default_factory=list)
    warnings: List[HealthConflict] = Field(default_factory=list)
    auto_resolution_applied: bool = False
    requires_clinical_review: bool = False
    safety_score: int = Field(ge=0, le=100)
    checks_performed: ChecksPerformed = Field(default_factory=ChecksPerformed)
    detection_failed: bool = False
    anomalies: List[str] = Field(default_factory=list)

    @property
    def all_conflicts(self) -> List[HealthConflict]:
        return list(self.critical_conflicts) + list(self.warnings)

    @property
    def nothing_checked(self) -> bool:
        """True when every pass was disabled – "not checked", not "clean"."""
        c = self.checks_performed
        return not (c.medication or c.allergy or c.condition)


# ── Output: Emergency Safety Monitor ────────────────────────────────────────


class EmergencyCheckResult(BaseModel):
    """Immediate verdict for a proposed ingredient list."""
    model_config = ConfigDict(frozen=True)

    is_safe: bool
    emergency_warnings: List[str] = Field(default_factory=list)
    action_required: EmergencyAction = EmergencyAction.PROCEED
    user_message: str = ""
    emergency_notice: Optional[str] = None
    anomalies: List[str] = Field(default_factory=list)


# ── Output: Clinical Oversight Scanner ──────────────────────────────────────


class ClinicalAlert(BaseModel):
    """Classification of one piece of free text."""
    model_config = ConfigDict(frozen=True)

    severity: ClinicalSeverity
    type: ClinicalAlertType
    detected_patterns: List[str] = Field(default_factory=list)
    content_snippet: str = ""
    confidence_score: float = Field(ge=0.0, le=1.0)
    requires_review: bool
    auto_block: bool
    scanner_error: Optional[str] = None
