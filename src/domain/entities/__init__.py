"""
Auth Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import HashAlgorithm, NotificationKind

# Export all entities
from .credential import Credential
from .session import ActiveSession
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "HashAlgorithm",
    "NotificationKind",
    # Entities
    "Credential",
    "ActiveSession",
    "AuditEvent",
]
