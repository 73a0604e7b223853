"""
Audit Logger

DESIGN DECISION: Every insert, update and delete made through the flows
is logged. This provides:
1. A per-month change history the user can read
2. Debugging capability when totals look wrong
3. The old and new value of every edited row

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Writes a structured local log line even without storage
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from finance.models.audit import (
    AuditEntityType,
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)
from finance.services.storage import AuditStorageInterface


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog (JSON lines through the stdlib logging module)."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger().setLevel(log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_log table (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.id),
                )
                return False

        return True

    async def log_created(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        new_value: dict[str, Any],
    ) -> bool:
        return await self.log(
            AuditEventBuilder.created(user_id, entity_type, entity_id, new_value)
        )

    async def log_updated(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        old_value: Optional[dict[str, Any]],
        new_value: dict[str, Any],
    ) -> bool:
        return await self.log(
            AuditEventBuilder.updated(user_id, entity_type, entity_id, old_value, new_value)
        )

    async def log_deleted(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        old_value: Optional[dict[str, Any]],
    ) -> bool:
        return await self.log(
            AuditEventBuilder.deleted(user_id, entity_type, entity_id, old_value)
        )

    async def month_history(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> list[AuditEvent]:
        """
        The user's audit entries whose changed_at falls in the month,
        newest first. Empty when no storage is configured.
        """
        if not self._storage:
            return []
        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        return await self._storage.get_events_between(user_id, start, end)

    async def entity_history(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Every event for one row, oldest first."""
        if not self._storage:
            return []
        return await self._storage.get_events_by_entity(user_id, entity_type, entity_id)
