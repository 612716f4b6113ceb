"""
Issuance Dispatcher.

Routes the tagged request variant to its backend:
AttestationRequest → SAS, NftMintRequest → Metaplex. Any backend fault
surfaces as IssuanceFailed.
"""

import logging

from govdoc.core.errors import IssuanceFailed
from govdoc.core.interfaces.issuance_service import (
    AttestationRequest,
    IIssuanceService,
    IssuanceReceipt,
    IssuanceRequest,
    NftMintRequest,
)

logger = logging.getLogger(__name__)


class IssuanceDispatcher(IIssuanceService):

    def __init__(self, attestation_service: IIssuanceService, nft_service: IIssuanceService):
        self._routes = {
            AttestationRequest: attestation_service,
            NftMintRequest: nft_service,
        }

    def issue(self, request: IssuanceRequest) -> IssuanceReceipt:
        backend = self._routes.get(type(request))
        if backend is None:
            raise IssuanceFailed(f"Unsupported issuance request {type(request).__name__}")
        try:
            return backend.issue(request)
        except IssuanceFailed:
            raise
        except Exception as e:
            logger.exception(f"Issuance backend error for document {request.document_id}")
            raise IssuanceFailed(f"Issuance backend error: {e}", request.document_id) from e
