"""
NutriGuard Safety Engine – Logging Utilities
==============================================
Configures logging for the safety engine and provides the structured
event helper that pipelines use to forward conflicts and alerts to the
audit collaborator.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

AUDIT_LOGGER_NAME = "nutriguard.audit"

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
NOISY_LOGGERS = ("uvicorn.access", "httpx", "multipart")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    audit_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the safety engine.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, WARNING, ERROR).
    log_file : str, optional
        Also write every record to this file.
    json_format : bool
        Emit JSON lines instead of pipe-separated text.
    audit_file : str, optional
        Dedicated JSON-lines sink for safety events (``nutriguard.audit``).
        Falls back to the ``NUTRIGUARD_AUDIT_LOG`` environment variable.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = (
        JsonFormatter() if json_format
        else logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_file:
        root_logger.addHandler(_file_handler(log_file, formatter))

    audit_file = audit_file or os.environ.get("NUTRIGUARD_AUDIT_LOG")
    audit_logger = get_audit_logger()
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()
    if audit_file:
        # audit sink is always JSON lines
        audit_logger.addHandler(_file_handler(audit_file, JsonFormatter()))
        audit_logger.setLevel(logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setFormatter(formatter)
    return handler


class JsonFormatter(logging.Formatter):
    """JSON-structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        details = getattr(record, "safety_details", None)
        if details:
            log_entry["details"] = details
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry, default=str)


def get_audit_logger() -> logging.Logger:
    """Logger that compliance handlers attach to."""
    return logging.getLogger(AUDIT_LOGGER_NAME)


def log_safety_event(
    logger: logging.Logger,
    stage: str,
    event: str,
    details: Optional[dict] = None,
    level: int = logging.INFO,
):
    """Log a structured safety event: ``[stage] event | {details}``."""
    msg = f"[{stage}] {event}"
    if details:
        msg += f" | {json.dumps(details, default=str)}"
    logger.log(level, msg, extra={"safety_details": details or {}})
