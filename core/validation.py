"""
NutriGuard Safety Engine – Validation Utilities
=================================================
Validates health-profile records and engine outputs against Pydantic schemas.
A malformed record is an input data anomaly: it is reported and skipped,
never allowed to abort a whole detection run.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.exceptions import ConfigError
from models.schema_definition import (
    Allergy,
    ConflictDetectionResult,
    EmergencyAllergy,
    EmergencyMedication,
    Medication,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _format_errors(e: ValidationError) -> List[str]:
    errors = []
    for err in e.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "<record>"
        errors.append(f"Validation error at '{field}': {err['msg']}")
    return errors


def _validate(model: Type[T], data: Any) -> Tuple[Optional[T], List[str]]:
    if isinstance(data, model):
        return data, []
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data), []
    except ValidationError as e:
        return None, _format_errors(e)


def validate_allergy(data: Any) -> Tuple[Optional[Allergy], List[str]]:
    """
    Validate a single allergy record.

    Returns (validated_model, errors_list).
    """
    return _validate(Allergy, data)


def validate_medication(data: Any) -> Tuple[Optional[Medication], List[str]]:
    """
    Validate a single medication record.

    Returns (validated_model, errors_list).
    """
    return _validate(Medication, data)


def validate_records(
    records: Optional[Iterable[Any]],
    kind: str,
    log: Optional[logging.Logger] = None,
) -> Tuple[list, List[str]]:
    """
    Validate a list of allergy or medication records one by one.

    Parameters
    ----------
    records : iterable
        Model instances or plain mappings.
    kind : str
        "allergy" or "medication". The "emergency_" variants accept records
        without an id.
    log : logging.Logger, optional
        Where to report skipped records (defaults to this module's logger).

    Returns (valid_records, anomalies). Invalid records are skipped.
    """
    validators = {
        "allergy": validate_allergy,
        "medication": validate_medication,
        "emergency_allergy": lambda data: _validate(EmergencyAllergy, data),
        "emergency_medication": lambda data: _validate(EmergencyMedication, data),
    }
    if kind not in validators:
        raise ValueError(f"Unknown record kind '{kind}'")
    validate = validators[kind]
    log = log or logger

    valid = []
    anomalies: List[str] = []
    for index, record in enumerate(records or []):
        model, errors = validate(record)
        if model is None:
            record_id = record.get("id", "?") if isinstance(record, dict) else "?"
            anomaly = f"Skipped {kind}[{index}] (id={record_id}): {'; '.join(errors)}"
            anomalies.append(anomaly)
            log.warning("Input data anomaly: %s", anomaly)
            continue
        valid.append(model)
    return valid, anomalies


def validate_detection_result(data: dict) -> Tuple[Optional[ConflictDetectionResult], List[str]]:
    """
    Validate a serialized detection result read back by a caller.

    Caller hook: the engine builds results as models and never calls this
    itself. Use it before trusting a stored or forwarded result again.

    Returns (validated_model, errors_list).
    """
    errors = []
    try:
        validated = ConflictDetectionResult(**data)
        return validated, []
    except ValidationError as e:
        errors = _format_errors(e)
        logger.warning("Detection result validation failed: %d errors", len(errors))
        return None, errors


def coerce_bool(value: Any, name: str = "value") -> bool:
    """Parse a boolean flag from config or environment text."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Could not parse boolean for {name}: '{value}'")


def coerce_int(value: Any, name: str = "value", minimum: Optional[int] = None) -> int:
    """Parse an integer setting; enforce an optional lower bound."""
    try:
        v = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigError(f"Could not parse integer for {name}: '{value}'")
    if minimum is not None and v < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {v}")
    return v
