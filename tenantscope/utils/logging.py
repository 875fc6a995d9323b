"""Structured logging for tenant-scoped data access."""

import logging
import sys
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with a single stdout handler.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
    """
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class StructuredAccessLogger:
    """Structured logger for handle operations."""

    def log_operation(
        self,
        *,
        tenant_id: str | None,
        user_id: str | int | None,
        entity: str,
        operation: str,
        outcome: str,
        record_id: int | None = None,
    ) -> None:
        """Log one handle operation with structured data."""
        log_data: dict[str, Any] = {
            "tenant_id": tenant_id,
            "user_id": user_id,
            "entity": entity,
            "operation": operation,
            "outcome": outcome,
        }

        if record_id is not None:
            log_data["record_id"] = record_id

        log_msg = f"Data access: {entity}.{operation} - {outcome}"

        if outcome == "ok":
            logger.debug(log_msg, extra={"structured": log_data})
        elif outcome == "not_found":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.error(log_msg, extra={"structured": log_data})
