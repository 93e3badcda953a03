"""Audit logging package."""

from mywallet.audit.logger import AuditLogger, get_logger

__all__ = ["AuditLogger", "get_logger"]
