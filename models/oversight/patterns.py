"""
NutriGuard Safety Engine – Clinical Oversight Patterns
========================================================
Pattern families for the content scanner. Each family is tagged with the
alert type and the severity it contributes; families are evaluated in the
order of PATTERN_FAMILIES so severity escalation is reproducible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

from models.schema_definition import ClinicalAlertType, ClinicalSeverity


@dataclass(frozen=True)
class PatternFamily:
    name: str
    alert_type: ClinicalAlertType
    severity: ClinicalSeverity
    patterns: Tuple[Pattern[str], ...]


def _compile(*sources: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(s, re.IGNORECASE) for s in sources)


EMERGENCY_ADVICE = PatternFamily(
    name="emergency_advice",
    alert_type=ClinicalAlertType.EMERGENCY_ADVICE,
    severity=ClinicalSeverity.CRITICAL,
    patterns=_compile(
        r"go\s+to\s+(the\s+)?(emergency(\s+(room|department))?|er|hospital|doctor)\s+"
        r"(immediately|right\s+away|now)",
        r"call\s+(911|an?\s+ambulance|ambulance|emergency(\s+services)?)",
        r"(this|that)\s+is\s+a\s+medical\s+emergency",
    ),
)

MEDICAL_ADVICE = PatternFamily(
    name="medical_advice",
    alert_type=ClinicalAlertType.MEDICAL_ADVICE,
    severity=ClinicalSeverity.HIGH,
    patterns=_compile(
        r"you\s+should\s+(take|stop|start|increase|decrease)\s+.*(medication|drug|pill|dose)",
        r"i\s+(recommend|suggest|advise)\s+.*(treatment|medication|therapy)",
        r"(take|don't\s+take|stop\s+taking)\s+.*(medication|drug|pill)",
    ),
)

TREATMENT_RECOMMENDATION = PatternFamily(
    name="treatment_recommendation",
    alert_type=ClinicalAlertType.TREATMENT_RECOMMENDATION,
    severity=ClinicalSeverity.HIGH,
    patterns=_compile(
        r"you\s+(need|should|must)\s+(have\s+)?(surgery|an?\s+operation|operation|procedure|a\s+procedure)",
        r"i\s+would\s+(prescribe|recommend)\s+",
        r"(increase|decrease|change)\s+your\s+(dosage|dose|medication)",
    ),
)

CONTRAINDICATION_WARNING = PatternFamily(
    name="contraindication_warning",
    alert_type=ClinicalAlertType.MEDICAL_ADVICE,
    severity=ClinicalSeverity.HIGH,
    patterns=_compile(
        r"(don't|never)\s+(mix|combine|take\s+together)\s+.*(medication|drug|supplement)",
        r"(avoid|stop)\s+.*(food|activity|medication)\s+(while|when|if)",
    ),
)

DIAGNOSTIC_STATEMENT = PatternFamily(
    name="diagnostic_statement",
    alert_type=ClinicalAlertType.DIAGNOSTIC_STATEMENT,
    severity=ClinicalSeverity.MEDIUM,
    patterns=_compile(
        r"you\s+(have|don't\s+have|might\s+have)\s+.*(disease|condition|disorder|syndrome)",
        r"(this|that)\s+is\s+(definitely|probably|likely)\s+.*(cancer|diabetes|heart|kidney)",
        r"your\s+(symptoms|condition)\s+(indicate|suggest|mean)",
    ),
)

LAB_INTERPRETATION = PatternFamily(
    name="lab_interpretation",
    alert_type=ClinicalAlertType.DIAGNOSTIC_STATEMENT,
    severity=ClinicalSeverity.MEDIUM,
    patterns=_compile(
        r"your\s+(lab|test)\s+(results|values)\s+(show|indicate|mean)",
        r"(normal|abnormal|high|low)\s+(blood|urine|cholesterol)",
    ),
)

PATTERN_FAMILIES: Tuple[PatternFamily, ...] = (
    EMERGENCY_ADVICE,
    MEDICAL_ADVICE,
    TREATMENT_RECOMMENDATION,
    CONTRAINDICATION_WARNING,
    DIAGNOSTIC_STATEMENT,
    LAB_INTERPRETATION,
)

# Bare terminology, matched by substring; contributes LOW only.
CLINICAL_TERMS: Tuple[str, ...] = (
    "diagnosis", "prognosis", "treatment", "therapy", "prescription",
    "medication", "dosage", "side effects", "contraindications",
    "symptoms", "disease", "condition", "disorder", "syndrome",
    "laboratory", "test results", "blood work", "biopsy",
    "surgery", "procedure", "operation", "medical emergency",
)

# Likely free-text fields in request/response bodies
TEXT_FIELDS = frozenset({
    "message", "content", "description", "notes", "advice",
    "recommendation", "instructions", "summary", "analysis",
    "response", "answer", "explanation", "feedback",
})
