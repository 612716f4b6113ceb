"""
Use Case: Biometric Deduplication Gate

Prevents one face from backing two accounts. The hash is a SHA-256 over
the facial summary the analysis already extracted (confidence, quality,
features), never raw imagery.

Only runs for biometric-bearing document kinds and only when the report
found a face; everything else passes through untouched.
"""

import hashlib
import json
import logging
from datetime import datetime

from govdoc.core.entities.biometric import BiometricIdentity, DuplicateCheck
from govdoc.core.entities.document import Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.errors import DuplicateIdentity
from govdoc.core.interfaces.biometric_index import IBiometricIndex

logger = logging.getLogger(__name__)


def compute_biometric_hash(report: ForensicReport) -> str:
    """Stable hash of the facial-feature summary in `report`."""
    payload = json.dumps(
        {
            "faceConfidence": report.face_confidence,
            "quality": report.face_quality,
            "features": report.facial_features,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class BiometricDeduplicationGate:
    """Checks and stores biometric hashes against the identity index."""

    def __init__(self, index: IBiometricIndex):
        self._index = index

    @staticmethod
    def applies_to(document: Document, report: ForensicReport) -> bool:
        return document.carries_biometric and report.has_face_image

    def process_biometric_data(self, report: ForensicReport, user_id: str) -> tuple[str, str | None]:
        """
        Hash a report's facial data and look for another owner.

        Returns:
            (biometric_hash, conflicting_user_id). Empty hash when the
            report has no face.
        """
        if not report.has_face_image:
            return "", None
        biometric_hash = compute_biometric_hash(report)
        check = self.check_for_duplicate(biometric_hash, user_id=user_id)
        return biometric_hash, check.existing_owner.id if check.is_duplicate else None

    def check_for_duplicate(self, biometric_hash: str, user_id: str | None = None) -> DuplicateCheck:
        """
        A hash held by a *different* user than `user_id` is a duplicate.
        With no user_id any holder counts.
        """
        if not biometric_hash:
            return DuplicateCheck(is_duplicate=False)
        owner = self._index.find_owner(biometric_hash)
        if owner is None or owner.id == user_id:
            return DuplicateCheck(is_duplicate=False)
        return DuplicateCheck(is_duplicate=True, existing_owner=owner)

    def store_biometric_data(self, user_id: str, biometric_data: dict, biometric_hash: str) -> BiometricIdentity:
        """First write wins: raises DuplicateIdentity if another user holds the hash."""
        check = self.check_for_duplicate(biometric_hash, user_id=user_id)
        if check.is_duplicate:
            raise DuplicateIdentity(biometric_hash, check.existing_owner)
        return self._index.store(user_id, biometric_data, biometric_hash)

    def get_biometric_data(self, user_id: str) -> BiometricIdentity | None:
        return self._index.get(user_id)

    def evaluate(self, document: Document, report: ForensicReport) -> str | None:
        """
        Gate a document owner's identity.

        Returns:
            The stored hash, or None when the gate does not apply.

        Raises:
            DuplicateIdentity: the face is already bound to another account.
        """
        if not self.applies_to(document, report):
            return None

        biometric_hash = compute_biometric_hash(report)
        check = self.check_for_duplicate(biometric_hash, user_id=document.user_id)
        if check.is_duplicate:
            logger.warning(
                f"Biometric duplicate for document {document.id}: user {document.user_id} "
                f"collides with existing user {check.existing_owner.id}"
            )
            raise DuplicateIdentity(biometric_hash, check.existing_owner)

        self.store_biometric_data(
            document.user_id,
            {
                "documentId": document.id,
                "faceConfidence": report.face_confidence,
                "hasFaceImage": report.has_face_image,
                "extractedAt": datetime.utcnow().isoformat(),
            },
            biometric_hash,
        )
        return biometric_hash
