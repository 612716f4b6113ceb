"""
Adapter: SAS Attestation

Implementation of IIssuanceService for identity documents: a
government-signed, non-transferable attestation on the Solana
Attestation Service, with the citizen wallet as holder.

Transaction construction and signing live with the issuer's signing
service; this adapter builds the attestation payload and its
deterministic reference.
"""

import hashlib
import json
import logging

from govdoc.core.entities.document import BlockchainType
from govdoc.core.errors import IssuanceFailed
from govdoc.core.interfaces.issuance_service import AttestationRequest, IIssuanceService, IssuanceReceipt

logger = logging.getLogger(__name__)


class SASAttestationService(IIssuanceService):
    """Issues SAS attestations on behalf of the government issuer wallet."""

    def __init__(self, issuer_wallet: str, schema_id: str = "schema_document_verification", cluster: str = "devnet"):
        self._issuer = issuer_wallet
        self._schema_id = schema_id
        self._cluster = cluster

    def issue(self, request: AttestationRequest) -> IssuanceReceipt:
        if not isinstance(request, AttestationRequest):
            raise IssuanceFailed(f"SAS backend cannot handle {type(request).__name__}", request.document_id)
        if not self._issuer:
            raise IssuanceFailed("Issuer wallet address is not configured", request.document_id)

        payload = {
            "schemaId": self._schema_id,
            "issuer": self._issuer,
            "holder": request.holder_wallet,
            "documentType": request.document_type,
            "documentHash": request.document_hash,
            "authenticityScore": request.authenticity_score,
            "tamperRisk": request.tamper_risk,
            "expiresAt": request.expires_at.isoformat() if request.expires_at else None,
        }
        signature = self._sign(payload)
        attestation_id = self.attestation_id(request)

        logger.info(f"SAS attestation {attestation_id} for document {request.document_id} on {self._cluster}")
        return IssuanceReceipt(
            reference_id=attestation_id,
            transaction_reference=signature,
            blockchain_type=BlockchainType.SAS_ATTESTATION,
        )

    @staticmethod
    def _sign(payload: dict) -> str:
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()

    @staticmethod
    def attestation_id(request: AttestationRequest) -> str:
        """Stable per document and content, so a repeated request names the same attestation."""
        digest = hashlib.sha256(f"{request.document_id}:{request.document_hash}".encode("utf-8")).hexdigest()
        return f"sas_{request.document_id}_{digest[:16]}"
