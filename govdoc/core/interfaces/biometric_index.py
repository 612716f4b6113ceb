"""
Contract: Biometric Index

Process-wide index of biometric hashes. Writes must enforce hash
uniqueness (first write wins).
"""

from abc import ABC, abstractmethod

from govdoc.core.entities.biometric import BiometricIdentity
from govdoc.core.entities.user import UserProfile


class IBiometricIndex(ABC):
    """Port: Biometric Index."""

    @abstractmethod
    def find_owner(self, biometric_hash: str) -> UserProfile | None:
        """Return the user holding this hash, if any."""
        ...

    @abstractmethod
    def store(self, user_id: str, biometric_data: dict, biometric_hash: str) -> BiometricIdentity:
        """
        Bind a hash to a user.

        Raises:
            DuplicateIdentity: another user already holds the hash.
            NotFoundError: unknown user.
        """
        ...

    @abstractmethod
    def get(self, user_id: str) -> BiometricIdentity | None:
        ...
