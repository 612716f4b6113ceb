"""
Entity: Audit Log Entry

Append-only record of a state transition. Written in the same unit of
work as the document update it describes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AuditAction(str, Enum):
    VERIFIED_BY_MAKER = "VERIFIED_BY_MAKER"
    REJECTED_BY_MAKER = "REJECTED_BY_MAKER"
    VERIFIED_BY_VERIFIER = "VERIFIED_BY_VERIFIER"
    REVOKE_PERMISSION = "REVOKE_PERMISSION"
    AUTO_VERIFIED = "AUTO_VERIFIED"
    AUTO_REJECTED = "AUTO_REJECTED"
    REJECTED_DUPLICATE_IDENTITY = "REJECTED_DUPLICATE_IDENTITY"
    DOCUMENT_EXPIRED = "DOCUMENT_EXPIRED"


@dataclass(frozen=True)
class AuditLogEntry:
    user_id: str                 # actor
    document_id: str
    action: AuditAction
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
