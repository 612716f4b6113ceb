import pytest

from govdoc.core.entities.document import BlockchainType
from govdoc.core.errors import IssuanceFailed
from govdoc.core.interfaces.issuance_service import AttestationRequest, NftMintRequest
from govdoc.infrastructure.issuance.dispatcher import IssuanceDispatcher
from govdoc.infrastructure.issuance.nft_minting import NFTMintingService
from govdoc.infrastructure.issuance.sas_attestation import SASAttestationService

ATTESTATION = AttestationRequest(
    document_id="doc-1",
    holder_wallet="HoLdErWaLLeT",
    document_type="NATIONAL_ID",
    document_hash="a" * 64,
    authenticity_score=91,
)


def test_repeated_attestation_names_the_same_artefact():
    sas = SASAttestationService(issuer_wallet="IsSuErWaLLeT")

    first = sas.issue(ATTESTATION)
    second = sas.issue(ATTESTATION)

    assert first.reference_id == second.reference_id
    assert first.reference_id.startswith("sas_doc-1_")
    assert first.blockchain_type == BlockchainType.SAS_ATTESTATION


def test_attestation_id_follows_content():
    other = AttestationRequest(
        document_id="doc-1", holder_wallet="HoLdErWaLLeT", document_type="NATIONAL_ID", document_hash="b" * 64
    )
    assert SASAttestationService.attestation_id(ATTESTATION) != SASAttestationService.attestation_id(other)


def test_missing_issuer_wallet():
    with pytest.raises(IssuanceFailed):
        SASAttestationService(issuer_wallet="").issue(ATTESTATION)


def test_dispatcher_routes_by_request_kind():
    dispatcher = IssuanceDispatcher(
        SASAttestationService(issuer_wallet="IsSuErWaLLeT"),
        NFTMintingService(fee_payer_wallet="FeEpAyEr"),
    )
    mint = NftMintRequest(
        document_id="doc-2", holder_wallet="HoLdErWaLLeT", name="Plot 7", document_type="LAND_TITLE",
        document_hash="c" * 64,
    )

    assert dispatcher.issue(ATTESTATION).blockchain_type == BlockchainType.SAS_ATTESTATION
    assert dispatcher.issue(mint).blockchain_type == BlockchainType.NFT_METAPLEX
