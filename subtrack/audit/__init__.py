"""Audit logging package."""

from subtrack.audit.logger import AuditLogger, get_logger

__all__ = ["AuditLogger", "get_logger"]
