"""
NutriGuard Safety Engine – Content Pipeline
=============================================
Caller-side handling of Clinical Oversight Scanner results:

  inbound  : CRITICAL alert → reject with a structured clinical-review error
  outbound : any MEDIUM+ alert → wrap payload with a clinical disclaimer

The scanner only classifies; every block / annotate decision lives here.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from datetime import datetime
from typing import Any, List, Optional

from core.config import OversightConfig
from core.logging_utils import get_audit_logger, log_safety_event
from models.conflicts.emergency_monitor import EMERGENCY_NOTICE
from models.oversight.clinical_scanner import ClinicalOversightScanner
from models.schema_definition import ClinicalAlert, ClinicalSeverity

logger = logging.getLogger(__name__)

DISCLAIMER_KEY = "_clinical_disclaimer"

DISCLAIMER_MESSAGE = (
    "This information is for educational purposes only and does not constitute "
    "medical advice. Please consult with a healthcare professional for medical decisions."
)

BLOCK_MESSAGE = (
    "This content has been flagged for clinical review due to potential medical advice."
)


def clinical_review_error(alerts: List[ClinicalAlert], review_id: Optional[str] = None) -> dict:
    """Structured body for a request rejected by clinical oversight."""
    critical = [a for a in alerts if a.severity == ClinicalSeverity.CRITICAL]
    return {
        "error": "Clinical Review Required",
        "code": "CLINICAL_OVERSIGHT_BLOCKED",
        "message": BLOCK_MESSAGE,
        "clinical_alert": {
            "severity": ClinicalSeverity.CRITICAL.value,
            "requires_review": True,
            "alerts_detected": len(critical),
            "detected_patterns": sorted({p for a in critical for p in a.detected_patterns}),
            "contact_support": "Please contact our clinical team for medical questions.",
            "emergency_notice": EMERGENCY_NOTICE,
            "review_id": review_id,
        },
    }


def review_worthy(alerts: List[ClinicalAlert]) -> List[ClinicalAlert]:
    return [a for a in alerts if a.severity >= ClinicalSeverity.MEDIUM]


class ContentPipeline:
    """Inbound blocking and outbound annotation of clinical content."""

    def __init__(
        self,
        scanner: Optional[ClinicalOversightScanner] = None,
        oversight_config: Optional[OversightConfig] = None,
        audit_logger: Optional[logging.Logger] = None,
    ):
        self.scanner = scanner or ClinicalOversightScanner()
        self.config = oversight_config or OversightConfig()
        self.audit_logger = audit_logger or get_audit_logger()

    def screen_inbound(self, data: Any) -> dict:
        """
        Scan a request body.

        Returns
        -------
        dict with keys:
            blocked (bool), review_required (bool), alerts (list[ClinicalAlert]),
            error_body (dict | None), review (review ticket | None)

        HIGH and CRITICAL content is queued for clinical review whether or
        not the request is blocked.
        """
        if not self.config.enabled:
            return {
                "blocked": False, "review_required": False, "alerts": [],
                "error_body": None, "review": None,
            }

        alerts = self.scanner.analyze_structured(data)
        critical = [a for a in alerts if a.severity == ClinicalSeverity.CRITICAL]
        high = [a for a in alerts if a.severity == ClinicalSeverity.HIGH]

        if alerts:
            log_safety_event(
                self.audit_logger,
                stage="oversight",
                event="clinical_content_in_request",
                details={"alerts": [a.model_dump(mode="json") for a in alerts]},
                level=logging.WARNING,
            )

        blocked = bool(critical) and self.config.block_inbound_critical
        review = self.queue_for_review(data, critical + high) if critical or high else None
        review_id = review["review_id"] if review else None
        return {
            "blocked": blocked,
            "review_required": review is not None,
            "alerts": alerts,
            "error_body": clinical_review_error(alerts, review_id) if blocked else None,
            "review": review,
        }

    def screen_outbound(self, data: Any) -> dict:
        """
        Scan a response body and wrap it with a disclaimer when needed.

        Returns
        -------
        dict with keys: payload, alerts, disclaimer_added
        """
        if not self.config.enabled:
            return {"payload": data, "alerts": [], "disclaimer_added": False}

        alerts = self.scanner.analyze_structured(data)
        flagged = review_worthy(alerts)

        if alerts:
            log_safety_event(
                self.audit_logger,
                stage="oversight",
                event="clinical_content_in_response",
                details={"alerts": [a.model_dump(mode="json") for a in alerts]},
                level=logging.WARNING if flagged else logging.INFO,
            )

        if flagged and self.config.annotate_outbound:
            return {
                "payload": self.wrap_with_disclaimer(data, flagged),
                "alerts": alerts,
                "disclaimer_added": True,
            }
        return {"payload": data, "alerts": alerts, "disclaimer_added": False}

    @staticmethod
    def wrap_with_disclaimer(data: Any, flagged: List[ClinicalAlert]) -> dict:
        disclaimer = {
            "message": DISCLAIMER_MESSAGE,
            "alerts_detected": len(flagged),
            "requires_professional_review": True,
            "emergency_notice": EMERGENCY_NOTICE,
        }
        if isinstance(data, dict):
            return {**data, DISCLAIMER_KEY: disclaimer}
        return {"data": data, DISCLAIMER_KEY: disclaimer}

    def queue_for_review(
        self,
        content: Any,
        alerts: List[ClinicalAlert],
        subject_id: Optional[str] = None,
    ) -> dict:
        """
        Hand flagged content to the clinical review queue.

        Called by ``screen_inbound`` for HIGH and CRITICAL requests. The queue
        itself is the audit log: the ticket is emitted as a
        ``queued_for_clinical_review`` event.
        """
        serialized = json.dumps(content, sort_keys=True, default=str)
        content_hash = hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:32]
        priority = (
            "HIGH" if any(a.severity == ClinicalSeverity.CRITICAL for a in alerts) else "MEDIUM"
        )
        ticket = {
            "review_id": f"clinical_{uuid.uuid4().hex[:12]}",
            "status": "PENDING_REVIEW",
            "priority": priority,
            "content_hash": content_hash,
            "subject_id": subject_id,
            "queued_at": datetime.utcnow().isoformat(),
        }
        log_safety_event(
            self.audit_logger,
            stage="oversight",
            event="queued_for_clinical_review",
            details={**ticket, "alerts": [a.model_dump(mode="json") for a in alerts]},
        )
        return ticket
