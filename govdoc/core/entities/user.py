"""
Entity: User / Actor

UserProfile is the owner side of a document (contact details, wallet,
biometric hash). Actor is whoever is calling into the pipeline.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    CITIZEN = "CITIZEN"
    MAKER = "MAKER"
    VERIFIER = "VERIFIER"
    ISSUER = "ISSUER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


STAFF_ROLES = frozenset({Role.MAKER, Role.VERIFIER, Role.ISSUER, Role.ADMIN, Role.SYSTEM})


@dataclass(frozen=True)
class UserProfile:
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone_number: str | None = None
    role: Role = Role.CITIZEN
    wallet_address: str | None = None
    biometric_hash: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    @property
    def is_system(self) -> bool:
        return self.role == Role.SYSTEM

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


SYSTEM_ACTOR = Actor(user_id="system", role=Role.SYSTEM)
