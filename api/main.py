"""
NutriGuard Safety Engine – FastAPI Application
================================================
REST API for health-profile conflict detection and clinical content oversight.

Endpoints:
  GET  /health                      – Health check
  POST /conflicts/detect            – Allergy / medication / condition conflicts
  POST /conflicts/emergency-check   – Fast ingredient screen before display
  POST /oversight/analyze           – Classify text for clinical content
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware import ClinicalOversightMiddleware
from api.schemas import (
    AnalyzeContentRequest,
    AnalyzeContentResponse,
    DetectConflictsRequest,
    DetectConflictsResponse,
    EmergencyCheckRequest,
    EmergencyCheckResponse,
    HealthResponse,
)
from core.logging_utils import setup_logging
from core.router import NutriGuardRouter

# ── Setup ───────────────────────────────────────────────────────────────────

setup_logging(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="NutriGuard Safety Engine",
    description=(
        "Deterministic clinical safety layer for nutrition services: "
        "health-profile conflict detection, emergency ingredient screening "
        "and clinical content oversight."
    ),
    version="0.1.0",
)

router = NutriGuardRouter(config_path=os.environ.get("NUTRIGUARD_CONFIG"))

# Registered before CORS so CORS stays outermost
app.add_middleware(
    ClinicalOversightMiddleware,
    pipeline=router.content_pipeline,
    skip_paths=router.config.oversight.skip_paths,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Endpoints ───────────────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return HealthResponse(
        status="ok",
        version="0.1.0",
        catalogs={
            "drugs": len(router.drug_catalog),
            "allergen_rules": len(router.allergen_catalog),
        },
        oversight_enabled=router.config.oversight.enabled,
    )


@app.post("/conflicts/detect", response_model=DetectConflictsResponse)
async def detect_conflicts(request: DetectConflictsRequest):
    """Detect conflicts in a health profile, or in a proposed edit to it."""
    try:
        result = router.check_profile(
            request.subject_id,
            request.allergies,
            request.medications,
            request.proposed_changes,
        )
    except Exception as e:
        logger.error("Conflict detection endpoint failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    if result["gate"] == "block":
        return JSONResponse(
            status_code=403,
            content={
                "error": "Critical Health Conflict",
                "code": "CRITICAL_HEALTH_CONFLICT",
                "message": result["message"],
                "emergency_notice": result["emergency_notice"],
                "conflict_summary": result["conflict_summary"],
            },
        )
    return _build_detect_response(result)


@app.post("/conflicts/emergency-check", response_model=EmergencyCheckResponse)
async def emergency_check(request: EmergencyCheckRequest):
    """Screen proposed ingredients against anaphylactic allergies and medications."""
    try:
        verdict = router.check_ingredients(
            request.allergies, request.medications, request.ingredients
        )
    except Exception as e:
        logger.error("Emergency check endpoint failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    if verdict["action_required"] == "block":
        return JSONResponse(
            status_code=403,
            content={
                "error": "Anaphylactic Risk",
                "code": "ANAPHYLACTIC_RISK_BLOCKED",
                "message": verdict["user_message"],
                "emergency_notice": verdict["emergency_notice"],
                "conflict_summary": {
                    "warnings": verdict["emergency_warnings"],
                    "ingredients_checked": verdict["ingredients_checked"],
                },
            },
        )
    return EmergencyCheckResponse(**verdict)


@app.post("/oversight/analyze", response_model=AnalyzeContentResponse)
async def analyze_content(request: AnalyzeContentRequest):
    """Classify content for clinical advice. Classification only, never blocks."""
    try:
        alerts = router.scanner.analyze_structured(request.content)
    except Exception as e:
        logger.error("Oversight analyze endpoint failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    max_severity = None
    for alert in alerts:
        if max_severity is None or alert.severity > max_severity:
            max_severity = alert.severity
    return AnalyzeContentResponse(
        alert_count=len(alerts),
        max_severity=max_severity.value if max_severity else None,
        alerts=[a.model_dump(mode="json") for a in alerts],
    )


# ── Helpers ─────────────────────────────────────────────────────────────────


def _build_detect_response(result: dict) -> DetectConflictsResponse:
    """Convert pipeline result to API response."""
    detection = result.get("result", {})
    summary = result.get("conflict_summary", {})
    return DetectConflictsResponse(
        id=result.get("id", "unknown"),
        timestamp=result.get("timestamp", ""),
        subject_id=result.get("subject_id", ""),
        gate=result.get("gate", "review"),
        message=result.get("message", ""),
        has_conflicts=detection.get("has_conflicts", False),
        conflict_count=detection.get("conflict_count", 0),
        safety_score=detection.get("safety_score", 0),
        requires_clinical_review=detection.get("requires_clinical_review", True),
        conflicts=summary.get("conflicts", []),
        checks_performed=detection.get("checks_performed", {}),
        anomalies=detection.get("anomalies", []),
        disclaimer=result.get("disclaimer", ""),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
