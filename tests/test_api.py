"""Tests for the REST API and the clinical oversight middleware."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import app
from api.middleware import ClinicalOversightMiddleware
from conftest import allergy, med
from core.config import OversightConfig
from pipelines.content_pipeline import DISCLAIMER_KEY, ContentPipeline


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        """Test that health reports loaded catalogs."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["catalogs"]["drugs"] > 0
        assert data["catalogs"]["allergen_rules"] > 0


class TestDetectEndpoint:
    """Tests for POST /conflicts/detect."""

    def test_review_result(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "allergies": [],
            "medications": [med("m1", "warfarin"), med("m2", "aspirin")],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["gate"] == "review"
        assert data["conflict_count"] == 1
        assert data["safety_score"] == 85
        assert data["requires_clinical_review"] is True
        assert data["conflicts"][0]["severity"] == "high"

    def test_clean_result(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "medications": [med("m1", "metformin")],
        })
        assert response.status_code == 200
        assert response.json()["gate"] == "allow"

    def test_critical_conflict_is_403(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "medications": [med("m1", "simvastatin"), med("m2", "clarithromycin")],
        })
        assert response.status_code == 403
        data = response.json()
        assert data["code"] == "CRITICAL_HEALTH_CONFLICT"
        assert data["conflict_summary"]["by_severity"]["critical"] == 1

    def test_proposed_changes(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "allergies": [allergy("a1", "penicillin", "severe")],
            "medications": [],
            "proposed_changes": {"medications": [med("m1", "amoxicillin")]},
        })
        assert response.status_code == 200
        assert response.json()["conflicts"][0]["type"] == "allergy_conflict"

    def test_malformed_records_reported(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "medications": [{"id": "m1"}],
        })
        assert response.status_code == 200
        assert len(response.json()["anomalies"]) == 1

    def test_missing_subject_is_422(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={"medications": []})
        assert response.status_code == 422


class TestEmergencyCheckEndpoint:
    """Tests for POST /conflicts/emergency-check."""

    def test_anaphylactic_is_403(self, client: TestClient) -> None:
        response = client.post("/conflicts/emergency-check", json={
            "allergies": [allergy("a1", "shellfish", "anaphylactic")],
            "ingredients": ["shellfish stock", "garlic"],
        })
        assert response.status_code == 403
        data = response.json()
        assert data["code"] == "ANAPHYLACTIC_RISK_BLOCKED"
        assert data["emergency_notice"]
        assert data["conflict_summary"]["warnings"]

    def test_warn(self, client: TestClient) -> None:
        response = client.post("/conflicts/emergency-check", json={
            "medications": [med("m1", "warfarin")],
            "ingredients": ["spinach"],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["action_required"] == "warn"
        assert data["is_safe"] is True

    def test_proceed(self, client: TestClient) -> None:
        response = client.post("/conflicts/emergency-check", json={"ingredients": ["rice"]})
        assert response.status_code == 200
        assert response.json()["action_required"] == "proceed"


class TestAnalyzeEndpoint:
    """Tests for POST /oversight/analyze (classification only)."""

    def test_critical_text_classified_not_blocked(self, client: TestClient) -> None:
        response = client.post(
            "/oversight/analyze", json={"content": "Go to the emergency room now."}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["alert_count"] == 1
        assert data["max_severity"] == "CRITICAL"
        assert data["alerts"][0]["auto_block"] is True
        assert DISCLAIMER_KEY not in data

    def test_clean_text(self, client: TestClient) -> None:
        response = client.post("/oversight/analyze", json={"content": "Oats and berries."})
        assert response.json() == {"alert_count": 0, "max_severity": None, "alerts": []}


class TestOversightMiddleware:
    """Tests for inbound blocking and outbound annotation."""

    def test_critical_request_blocked(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "medications": [med("m1", "warfarin", indication="Go to the emergency room now")],
        })
        assert response.status_code == 403
        data = response.json()
        assert data["error"] == "Clinical Review Required"
        assert data["code"] == "CLINICAL_OVERSIGHT_BLOCKED"
        assert data["clinical_alert"]["requires_review"] is True
        assert response.headers["x-clinical-review-id"] == data["clinical_alert"]["review_id"]
        assert data["clinical_alert"]["review_id"].startswith("clinical_")

    def test_high_request_flagged(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={
            "subject_id": "u1",
            "medications": [
                med("m1", "warfarin", indication="You should increase your medication dose")
            ],
        })
        assert response.status_code == 200
        assert response.headers["x-clinical-review-required"] == "true"
        assert response.headers["x-clinical-review-id"].startswith("clinical_")

    def test_clean_request_not_flagged(self, client: TestClient) -> None:
        response = client.post("/conflicts/detect", json={"subject_id": "u1"})
        assert "x-clinical-review-required" not in response.headers
        assert "x-clinical-review-id" not in response.headers
        assert "x-clinical-disclaimer" not in response.headers


@pytest.fixture
def echo_client():
    """Minimal app wrapped in the middleware, returning canned bodies."""
    echo = FastAPI()

    @echo.get("/advice")
    async def advice():
        return {"message": "You might have a thyroid condition."}

    @echo.get("/plain")
    async def plain():
        return {"message": "Eat more vegetables."}

    @echo.get("/error")
    async def error():
        from fastapi.responses import JSONResponse
        return JSONResponse(status_code=404, content={"message": "Call 911"})

    @echo.get("/status")
    async def status():
        return {"message": "You might have a thyroid condition."}

    echo.add_middleware(
        ClinicalOversightMiddleware,
        pipeline=ContentPipeline(oversight_config=OversightConfig()),
        skip_paths=("/status",),
    )
    return TestClient(echo)


class TestOutboundAnnotation:
    def test_medium_response_wrapped(self, echo_client: TestClient) -> None:
        response = echo_client.get("/advice")
        assert response.status_code == 200
        assert response.headers["x-clinical-disclaimer"] == "included"
        data = response.json()
        assert data["message"] == "You might have a thyroid condition."
        assert data[DISCLAIMER_KEY]["requires_professional_review"] is True

    def test_plain_response_untouched(self, echo_client: TestClient) -> None:
        response = echo_client.get("/plain")
        assert response.json() == {"message": "Eat more vegetables."}
        assert "x-clinical-disclaimer" not in response.headers

    def test_error_response_untouched(self, echo_client: TestClient) -> None:
        response = echo_client.get("/error")
        assert response.status_code == 404
        assert DISCLAIMER_KEY not in response.json()

    def test_skip_path(self, echo_client: TestClient) -> None:
        response = echo_client.get("/status")
        assert DISCLAIMER_KEY not in response.json()
