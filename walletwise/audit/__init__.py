"""Audit logging package."""

from walletwise.audit.logger import AuditLogger, create_correlation_id

__all__ = ["AuditLogger", "create_correlation_id"]
