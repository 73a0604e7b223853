"""Audit logging package."""

from finance.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
