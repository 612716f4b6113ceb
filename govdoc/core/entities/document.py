"""
Entity: Document

A government document under verification. Pure domain model, no
framework or database dependency. Status only moves along
ALLOWED_TRANSITIONS; the Lifecycle Manager is the only writer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class DocType(str, Enum):
    NATIONAL_ID = "NATIONAL_ID"
    PASSPORT = "PASSPORT"
    DRIVERS_LICENSE = "DRIVERS_LICENSE"
    BIRTH_CERTIFICATE = "BIRTH_CERTIFICATE"
    LAND_TITLE = "LAND_TITLE"
    PROPERTY_DEED = "PROPERTY_DEED"
    VEHICLE_REGISTRATION = "VEHICLE_REGISTRATION"


class DocStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class BlockchainType(str, Enum):
    SAS_ATTESTATION = "SAS_ATTESTATION"
    NFT_METAPLEX = "NFT_METAPLEX"


# Kinds that carry a facial biometric
BIOMETRIC_DOC_TYPES = frozenset({DocType.NATIONAL_ID, DocType.PASSPORT, DocType.DRIVERS_LICENSE})

IDENTITY_DOC_TYPES = frozenset({
    DocType.BIRTH_CERTIFICATE, DocType.NATIONAL_ID, DocType.PASSPORT, DocType.DRIVERS_LICENSE,
})
OWNERSHIP_DOC_TYPES = frozenset({
    DocType.LAND_TITLE, DocType.PROPERTY_DEED, DocType.VEHICLE_REGISTRATION,
})

ALLOWED_TRANSITIONS: dict[DocStatus, frozenset[DocStatus]] = {
    DocStatus.PENDING: frozenset({DocStatus.VERIFIED, DocStatus.REJECTED}),
    DocStatus.VERIFIED: frozenset({DocStatus.EXPIRED}),
    DocStatus.REJECTED: frozenset(),
    DocStatus.EXPIRED: frozenset(),
}


def default_blockchain_type(doc_type: DocType) -> BlockchainType:
    """Identity documents are attested; ownership documents are minted."""
    if doc_type in OWNERSHIP_DOC_TYPES:
        return BlockchainType.NFT_METAPLEX
    return BlockchainType.SAS_ATTESTATION


@dataclass
class Document:
    """Domain entity: Document."""
    id: str
    user_id: str
    doc_type: DocType
    status: DocStatus = DocStatus.PENDING
    title: str = ""
    file_hash: str | None = None           # sha256 of the uploaded bytes
    blockchain_type: BlockchainType | None = None
    attestation_id: str | None = None
    nft_mint_address: str | None = None
    transaction_reference: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime | None = None

    def __post_init__(self):
        if self.blockchain_type is None:
            self.blockchain_type = default_blockchain_type(self.doc_type)

    @property
    def carries_biometric(self) -> bool:
        return self.doc_type in BIOMETRIC_DOC_TYPES

    @property
    def issuance_reference(self) -> str | None:
        if self.blockchain_type == BlockchainType.NFT_METAPLEX:
            return self.nft_mint_address
        return self.attestation_id

    def can_transition_to(self, target: DocStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]
