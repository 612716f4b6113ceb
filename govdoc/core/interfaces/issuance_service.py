"""
Contract: Issuance Service

Requests an attestation or NFT mint for an approved document. The
request is a tagged variant: AttestationRequest for identity documents,
NftMintRequest for ownership documents. One interface, two backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from govdoc.core.entities.document import BlockchainType


@dataclass(frozen=True)
class AttestationRequest:
    """Non-transferable, issuer-signed claim bound to the holder."""
    document_id: str
    holder_wallet: str
    document_type: str
    document_hash: str
    authenticity_score: int = 0
    tamper_risk: str = "NONE"
    expires_at: datetime | None = None


@dataclass(frozen=True)
class NftMintRequest:
    """Transferable token representation of an ownership document."""
    document_id: str
    holder_wallet: str
    name: str
    document_type: str
    document_hash: str
    attributes: dict = field(default_factory=dict)


IssuanceRequest = Union[AttestationRequest, NftMintRequest]


@dataclass(frozen=True)
class IssuanceReceipt:
    reference_id: str               # attestation id or mint address
    transaction_reference: str
    blockchain_type: BlockchainType
    issued_at: datetime = field(default_factory=datetime.utcnow)


class IIssuanceService(ABC):
    """
    Port: Issuance Service

    Implementations: SAS attestation, Metaplex NFT mint, and the
    dispatcher that routes between them.
    """

    @abstractmethod
    def issue(self, request: IssuanceRequest) -> IssuanceReceipt:
        """
        Issue the on-chain artefact for an approved document.

        Raises:
            IssuanceFailed: the backend refused or errored.
        """
        ...
