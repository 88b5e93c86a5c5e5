"""
NutriGuard Safety Engine – API Schemas
========================================
Pydantic models for the REST API request/response contracts.

Profile records are accepted as raw objects; malformed records are skipped
by the engine and reported as anomalies rather than rejected with a 422.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ── Request Models ──────────────────────────────────────────────────────────


class DetectConflictsRequest(BaseModel):
    """Request body for profile conflict detection."""
    subject_id: str = Field(..., min_length=1, description="Profile subject identifier")
    allergies: List[Any] = Field(default_factory=list)
    medications: List[Any] = Field(default_factory=list)
    proposed_changes: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Replacement allergy/medication lists to evaluate instead of the stored ones",
    )


class EmergencyCheckRequest(BaseModel):
    """Request body for the fast ingredient screen."""
    allergies: List[Any] = Field(default_factory=list)
    medications: List[Any] = Field(default_factory=list)
    ingredients: List[str] = Field(..., description="Proposed food / recipe ingredients")


class AnalyzeContentRequest(BaseModel):
    """Request body for clinical content classification."""
    content: Any = Field(..., description="Text or JSON structure to scan")


# ── Response Models ─────────────────────────────────────────────────────────


class ConflictSummaryItem(BaseModel):
    id: str
    type: str
    severity: str
    description: str
    resolved: bool = False


class DetectConflictsResponse(BaseModel):
    """Gated conflict-detection result returned by the API."""
    id: str
    timestamp: str
    subject_id: str
    gate: str
    message: str
    has_conflicts: bool
    conflict_count: int
    safety_score: int
    requires_clinical_review: bool
    conflicts: List[ConflictSummaryItem] = Field(default_factory=list)
    checks_performed: Dict[str, bool] = Field(default_factory=dict)
    anomalies: List[str] = Field(default_factory=list)
    disclaimer: str


class EmergencyCheckResponse(BaseModel):
    is_safe: bool
    action_required: str
    emergency_warnings: List[str] = Field(default_factory=list)
    user_message: str
    emergency_notice: Optional[str] = None
    ingredients_checked: List[str] = Field(default_factory=list)
    anomalies: List[str] = Field(default_factory=list)


class ClinicalAlertResponse(BaseModel):
    severity: str
    type: str
    detected_patterns: List[str] = Field(default_factory=list)
    content_snippet: str
    confidence_score: float
    requires_review: bool
    auto_block: bool


class AnalyzeContentResponse(BaseModel):
    alert_count: int
    max_severity: Optional[str] = None
    alerts: List[ClinicalAlertResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    catalogs: Dict[str, int] = Field(default_factory=dict)
    oversight_enabled: bool = True
