"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from fd_catalog.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_catalog_write(
    request_id: str,
    operation: str,
    issuer_id: str,
    revision: Optional[int],
    user_id: Optional[str] = None,
    scheme_id: Optional[str] = None,
    slab_id: Optional[str] = None,
) -> None:
    """Log a committed catalog change"""
    logging.info(
        "Catalog write committed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "catalog_write",
            "operation": operation,
            "issuer_id": issuer_id,
            "scheme_id": scheme_id,
            "slab_id": slab_id,
            "revision": revision,
        },
    )


def log_quote(
    request_id: str,
    issuer_id: str,
    scheme_id: str,
    slab_id: str,
    total_rate_bps: int,
    duration_ms: float,
) -> None:
    """Log structured quote outcome for analysis"""
    logging.info(
        "Quote completed",
        extra={
            "request_id": request_id,
            "step": "quote_complete",
            "issuer_id": issuer_id,
            "scheme_id": scheme_id,
            "slab_id": slab_id,
            "total_rate_bps": total_rate_bps,
            "duration_ms": duration_ms,
        },
    )
