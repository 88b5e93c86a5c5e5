"""
NutriGuard Safety Engine – Clinical Oversight Scanner
=======================================================
Deterministic text classifier that flags content resembling medical advice,
diagnosis or emergency guidance. It only classifies; blocking and disclaimer
wrapping are done by the caller (see pipelines/content_pipeline.py).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from models.oversight.patterns import (
    CLINICAL_TERMS,
    PATTERN_FAMILIES,
    TEXT_FIELDS,
    PatternFamily,
)
from models.schema_definition import (
    ClinicalAlert,
    ClinicalAlertType,
    ClinicalSeverity,
)

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200
GENERIC_FIELD_DEPTH = 3     # any string within this many levels is scanned
MAX_WALK_DEPTH = 16         # hard cap for named free-text fields


class ClinicalOversightScanner:
    """Classify free text into clinical severity levels."""

    def __init__(
        self,
        families: Sequence[PatternFamily] = PATTERN_FAMILIES,
        terms: Sequence[str] = CLINICAL_TERMS,
        logger: Optional[logging.Logger] = None,
    ):
        self.families = tuple(families)
        self.terms = tuple(t.lower() for t in terms)
        self.logger = logger or logging.getLogger(__name__)

    def analyze(self, text: Any) -> Optional[ClinicalAlert]:
        """
        Classify one piece of text.

        Returns None when nothing clinical is found. An internal error yields a
        CRITICAL auto-block alert rather than None.
        """
        if not isinstance(text, str) or not text:
            return None
        try:
            return self._classify(text)
        except Exception as e:
            self.logger.exception("Clinical content scan failed")
            return ClinicalAlert(
                severity=ClinicalSeverity.CRITICAL,
                type=ClinicalAlertType.MEDICAL_ADVICE,
                detected_patterns=[],
                content_snippet=_snippet(text),
                confidence_score=0.0,
                requires_review=True,
                auto_block=True,
                scanner_error=str(e) or e.__class__.__name__,
            )

    def analyze_structured(self, data: Any) -> List[ClinicalAlert]:
        """Scan every relevant string in a request or response body."""
        alerts = []
        for text in self.extract_text(data):
            alert = self.analyze(text)
            if alert is not None:
                alerts.append(alert)
        return alerts

    @staticmethod
    def extract_text(data: Any) -> List[str]:
        """
        Collect strings from nested mappings / sequences.

        Named free-text fields are followed at any depth (up to MAX_WALK_DEPTH);
        every other value is followed only within the first GENERIC_FIELD_DEPTH
        levels.
        """
        found: List[str] = []

        def walk(obj: Any, depth: int) -> None:
            if depth > MAX_WALK_DEPTH:
                return
            if isinstance(obj, str):
                found.append(obj)
            elif isinstance(obj, dict):
                for key, value in obj.items():
                    if str(key).lower() in TEXT_FIELDS or depth < GENERIC_FIELD_DEPTH:
                        walk(value, depth + 1)
            elif isinstance(obj, (list, tuple)):
                for item in obj:
                    walk(item, depth + 1)

        if data is not None:
            walk(data, 0)
        return found

    # ── Internals ───────────────────────────────────────────────────────

    def _classify(self, text: str) -> Optional[ClinicalAlert]:
        lower_text = text.lower()
        detected: List[str] = []
        severity = ClinicalSeverity.LOW
        alert_type = ClinicalAlertType.CLINICAL_TERMINOLOGY

        for family in self.families:
            family_hit = False
            for pattern in family.patterns:
                match = pattern.search(text)
                if match:
                    detected.append(match.group(0))
                    family_hit = True
            # first family to reach a severity owns the alert type
            if family_hit and family.severity > severity:
                severity = family.severity
                alert_type = family.alert_type

        for term in self.terms:
            if term in lower_text:
                detected.append(term)

        unique = _dedupe(detected)
        if not unique:
            return None

        confidence = min(0.3 + 0.2 * len(unique), 1.0)
        alert = ClinicalAlert(
            severity=severity,
            type=alert_type,
            detected_patterns=unique,
            content_snippet=_snippet(text),
            confidence_score=round(confidence, 3),
            requires_review=severity >= ClinicalSeverity.MEDIUM,
            auto_block=severity == ClinicalSeverity.CRITICAL,
        )
        if alert.requires_review:
            self.logger.info(
                "Clinical content %s (%s): %s", severity.value, alert_type.value, unique
            )
        return alert


def _snippet(text: str) -> str:
    return text[:SNIPPET_LENGTH] + ("..." if len(text) > SNIPPET_LENGTH else "")


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique
