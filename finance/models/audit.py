"""
Audit Models for Finance Tracker

Every insert, update and delete a user makes is recorded in the
`audit_log` table. This provides:
1. A per-month change history the user can read
2. Debugging information when totals look wrong
3. The old and new values of every edit

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """What happened to the entity."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntityType(str, Enum):
    """Tables whose changes are audited."""
    TRANSACTION = "transaction"
    CATEGORY = "category"
    CARD = "card"
    MONTHLY_SETTINGS = "monthly_settings"
    USER_PREFERENCES = "user_preferences"
    MONTHLY_GOAL = "monthly_goal"


class AuditSeverity(str, Enum):
    """Severity level for the local log line."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit_log row.

    `old_value` / `new_value` hold the row as it was before and
    after the change (None for the side that does not exist).
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    user_id: UUID
    changed_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the change happened (UTC)"
    )
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: UUID
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None

    # Local-only; not a column of audit_log
    severity: AuditSeverity = Field(default=AuditSeverity.INFO, exclude=True)

    @property
    def description(self) -> str:
        """Short human-readable line for the history panel."""
        return f"{self.action.value} - {self.entity_type.value} (ID: {str(self.entity_id)[:8]}...)"

    @property
    def changed_fields(self) -> list[str]:
        """Keys whose value differs between old and new (updates only)."""
        if self.old_value is None or self.new_value is None:
            return []
        keys = set(self.old_value) | set(self.new_value)
        return sorted(k for k in keys if self.old_value.get(k) != self.new_value.get(k))

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.

        Values are left out; only which fields changed.
        """
        return {
            "event_id": str(self.id),
            "user_id": str(self.user_id),
            "changed_at": self.changed_at.isoformat(),
            "action": self.action.value,
            "entity_type": self.entity_type.value,
            "entity_id": str(self.entity_id),
            "changed_fields": self.changed_fields,
        }

    def to_row(self) -> dict[str, Any]:
        """Payload for the audit_log table."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.created(user_id, AuditEntityType.CARD, card.id, card.to_row())
        event = AuditEventBuilder.updated(user_id, entity_type, entity_id, old_row, new_row)
    """

    @staticmethod
    def created(
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        new_value: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            user_id=user_id,
            action=AuditAction.INSERT,
            entity_type=entity_type,
            entity_id=entity_id,
            new_value=new_value,
        )

    @staticmethod
    def updated(
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        old_value: Optional[dict[str, Any]],
        new_value: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            user_id=user_id,
            action=AuditAction.UPDATE,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value=old_value,
            new_value=new_value,
        )

    @staticmethod
    def deleted(
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
        old_value: Optional[dict[str, Any]],
    ) -> AuditEvent:
        return AuditEvent(
            user_id=user_id,
            action=AuditAction.DELETE,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value=old_value,
            severity=AuditSeverity.WARNING,
        )
