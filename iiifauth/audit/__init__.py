"""
Audit logging for negotiation steps.
"""

from .logger import (
    NegotiationEvent,
    AuditLogger,
    MemoryAuditLogger,
    FileAuditLogger,
    create_audit_logger,
)

__all__ = [
    "NegotiationEvent",
    "AuditLogger",
    "MemoryAuditLogger",
    "FileAuditLogger",
    "create_audit_logger",
]
