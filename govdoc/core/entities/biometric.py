"""
Entity: Biometric Identity

Per-user biometric record. The hash is derived from a facial-feature
summary, never raw imagery, and is unique across users.
"""

from dataclasses import dataclass, field

from govdoc.core.entities.user import UserProfile


@dataclass(frozen=True)
class BiometricIdentity:
    user_id: str
    biometric_hash: str
    biometric_data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    existing_owner: UserProfile | None = None
