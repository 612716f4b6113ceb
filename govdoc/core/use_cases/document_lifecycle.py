"""
Use Case: Document Lifecycle

Owns the document status state machine:

    PENDING ──APPROVED──▶ VERIFIED ──(time)──▶ EXPIRED
       └─────REJECTED──▶ REJECTED

REVIEW leaves the document PENDING so it shows up in the audit queue.
Every status change writes exactly one audit entry in the same unit of
work. Issuance runs after the VERIFIED commit; if it fails the document
stays VERIFIED and a dead-letter row is queued for reconciliation. A
document is issued at most once: the worker stores its own receipt and
reconciliation never retries a call that is still running.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from govdoc.core.concurrency import DocumentLockRegistry, call_with_timeout
from govdoc.core.entities.audit_log import AuditAction, AuditLogEntry
from govdoc.core.entities.decision import Disposition
from govdoc.core.entities.document import BlockchainType, DocStatus, Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.entities.user import SYSTEM_ACTOR, Actor, UserProfile
from govdoc.core.errors import (
    CollaboratorTimeout,
    InvalidTransition,
    IssuanceFailed,
    NotFoundError,
)
from govdoc.core.interfaces.document_repository import IDocumentRepository
from govdoc.core.interfaces.issuance_service import (
    AttestationRequest,
    IIssuanceService,
    IssuanceReceipt,
    IssuanceRequest,
    NftMintRequest,
)

logger = logging.getLogger(__name__)

RECEIPT_NOT_STORED = "Issued but the receipt was not stored"

TARGET_STATUS = {
    Disposition.APPROVED: DocStatus.VERIFIED,
    Disposition.REJECTED: DocStatus.REJECTED,
}


@dataclass
class TransitionResult:
    document: Document
    disposition: Disposition
    audit_entry: AuditLogEntry | None = None
    issuance: IssuanceReceipt | None = None
    issuance_error: str | None = None

    @property
    def status_changed(self) -> bool:
        return self.audit_entry is not None

    @property
    def issuance_pending(self) -> bool:
        return self.issuance_error is not None


@dataclass
class ReconciliationReport:
    attempted: int = 0
    issued: list[str] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    in_flight: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "issued": self.issued,
            "failed": self.failed,
            "skipped": self.skipped,
            "inFlight": self.in_flight,
        }


def audit_action_for(disposition: Disposition, actor: Actor) -> AuditAction:
    if disposition == Disposition.APPROVED:
        return AuditAction.AUTO_VERIFIED if actor.is_system else AuditAction.VERIFIED_BY_MAKER
    return AuditAction.AUTO_REJECTED if actor.is_system else AuditAction.REJECTED_BY_MAKER


def build_issuance_request(
    document: Document,
    owner: UserProfile | None,
    report: ForensicReport | None = None,
) -> IssuanceRequest:
    """Pick the request variant from the document's blockchain type."""
    if owner is None or not owner.wallet_address:
        raise IssuanceFailed(f"Holder of document '{document.id}' has no wallet address", document.id)

    if document.blockchain_type == BlockchainType.NFT_METAPLEX:
        return NftMintRequest(
            document_id=document.id,
            holder_wallet=owner.wallet_address,
            name=document.title or f"{document.doc_type.value} {document.id[:8]}",
            document_type=document.doc_type.value,
            document_hash=document.file_hash or "",
            attributes={
                "overallScore": report.overall_score if report else None,
                "issuedTo": owner.full_name,
            },
        )
    return AttestationRequest(
        document_id=document.id,
        holder_wallet=owner.wallet_address,
        document_type=document.doc_type.value,
        document_hash=document.file_hash or "",
        authenticity_score=report.breakdown.authenticity if report else 0,
        tamper_risk=report.tamper_risk.value if report else "NONE",
        expires_at=document.expires_at,
    )


class DocumentLifecycleManager:
    """
    Applies dispositions to documents.

    Dependency Injection: repository, issuance service and lock registry
    come in through the constructor. Without an issuance service approved
    documents go straight to the dead-letter list.
    """

    def __init__(
        self,
        repository: IDocumentRepository,
        issuance_service: IIssuanceService | None = None,
        issuance_timeout: float | None = 60.0,
        locks: DocumentLockRegistry | None = None,
    ):
        self._repo = repository
        self._issuer = issuance_service
        self._issuance_timeout = issuance_timeout
        self._locks = locks or DocumentLockRegistry()
        self._in_flight: set[str] = set()
        self._in_flight_guard = threading.Lock()

    @property
    def locks(self) -> DocumentLockRegistry:
        return self._locks

    def apply_disposition(
        self,
        document_id: str,
        disposition: Disposition,
        actor: Actor = SYSTEM_ACTOR,
        comments: str | None = None,
        metadata: dict | None = None,
        action: AuditAction | None = None,
    ) -> TransitionResult:
        """
        Apply a disposition to a PENDING document.

        Raises:
            NotFoundError: unknown document.
            InvalidTransition: document is not PENDING.
        """
        disposition = Disposition(disposition)

        with self._locks.hold(document_id):
            document = self._repo.get(document_id)
            if document is None:
                raise NotFoundError("Document", document_id)
            if document.status != DocStatus.PENDING:
                logger.warning(
                    f"Rejected {disposition.value} for document {document_id}: status is {document.status.value}"
                )
                raise InvalidTransition(document_id, document.status.value, disposition.value)

            if disposition == Disposition.REVIEW:
                logger.info(f"Document {document_id} routed to audit queue")
                return TransitionResult(document=document, disposition=disposition)

            entry = AuditLogEntry(
                user_id=actor.user_id,
                document_id=document_id,
                action=action or audit_action_for(disposition, actor),
                metadata=self._entry_metadata(actor, comments, metadata),
            )
            document = self._repo.transition(
                document_id,
                expected=DocStatus.PENDING,
                target=TARGET_STATUS[disposition],
                entry=entry,
            )
            logger.info(
                f"Document {document_id}: {disposition.value} → {document.status.value} "
                f"by {actor.user_id} ({actor.role.value})"
            )

            result = TransitionResult(document=document, disposition=disposition, audit_entry=entry)
            if disposition == Disposition.APPROVED:
                self._issue(result)
            return result

    def expire_documents(self, now: datetime | None = None, limit: int | None = None) -> list[Document]:
        """
        Time-driven sweep: VERIFIED documents past expires_at become EXPIRED.
        Already-expired documents are never selected, so re-running is a no-op.
        """
        now = now or datetime.utcnow()
        expired = []
        for candidate in self._repo.find_expired_documents(now, limit):
            with self._locks.hold(candidate.id):
                entry = AuditLogEntry(
                    user_id=SYSTEM_ACTOR.user_id,
                    document_id=candidate.id,
                    action=AuditAction.DOCUMENT_EXPIRED,
                    metadata={"expiresAt": candidate.expires_at.isoformat() if candidate.expires_at else None},
                )
                try:
                    expired.append(
                        self._repo.transition(candidate.id, DocStatus.VERIFIED, DocStatus.EXPIRED, entry)
                    )
                except InvalidTransition:
                    logger.debug(f"Document {candidate.id} already left VERIFIED, skipping")
        logger.info(f"Expiry sweep at {now.isoformat()}: {len(expired)} document(s) expired")
        return expired

    def retry_pending_issuances(self, limit: int | None = None) -> ReconciliationReport:
        """
        Retry issuance for VERIFIED documents on the dead-letter list.

        Documents whose earlier issuance call is still running are left
        queued. A row that already holds a receipt is stored without
        calling the backend again.
        """
        report = ReconciliationReport()
        for pending in self._repo.list_pending_issuances(limit):
            with self._locks.hold(pending.document_id):
                if self.is_issuing(pending.document_id):
                    report.in_flight.append(pending.document_id)
                    continue

                document = self._repo.get(pending.document_id)
                if document is None or document.status != DocStatus.VERIFIED or document.issuance_reference:
                    self._repo.resolve_pending_issuance(pending.document_id)
                    report.skipped.append(pending.document_id)
                    continue

                report.attempted += 1
                if pending.has_receipt:
                    receipt = IssuanceReceipt(
                        reference_id=pending.reference_id,
                        transaction_reference=pending.transaction_reference or "",
                        blockchain_type=pending.blockchain_type,
                    )
                    self._repo.record_issuance(document.id, receipt)
                    self._repo.resolve_pending_issuance(document.id)
                    report.issued.append(document.id)
                    continue

                try:
                    _, updated = self._dispatch(document)
                except (IssuanceFailed, CollaboratorTimeout) as e:
                    self._repo.mark_issuance_attempt(document.id, e.message)
                    report.failed.append({"documentId": document.id, "error": e.message})
                    logger.error(f"Issuance retry failed for document {document.id}: {e.message}")
                    continue

                if updated is None:
                    report.failed.append({"documentId": document.id, "error": RECEIPT_NOT_STORED})
                else:
                    report.issued.append(document.id)

        logger.info(
            f"Issuance reconciliation: {len(report.issued)} issued, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped, "
            f"{len(report.in_flight)} in flight"
        )
        return report

    def is_issuing(self, document_id: str) -> bool:
        """True while an issuance call for the document is running, including one its caller gave up on."""
        with self._in_flight_guard:
            return document_id in self._in_flight

    # ── internals ──

    @staticmethod
    def _entry_metadata(actor: Actor, comments: str | None, extra: dict | None) -> dict:
        metadata = dict(extra or {})
        if not actor.is_system:
            metadata["makerComments"] = comments or ""
        elif comments:
            metadata["comments"] = comments
        metadata["timestamp"] = datetime.utcnow().isoformat()
        return metadata

    def _dispatch(self, document: Document) -> tuple[IssuanceReceipt, Document | None]:
        if self._issuer is None:
            raise IssuanceFailed("No issuance service configured", document.id)
        request = build_issuance_request(
            document,
            self._repo.get_owner(document.user_id),
            self._repo.get_report(document.id),
        )
        with self._in_flight_guard:
            self._in_flight.add(document.id)
        return call_with_timeout(
            self._issue_and_record, document, request, timeout=self._issuance_timeout, operation="issuance"
        )

    def _issue_and_record(
        self, document: Document, request: IssuanceRequest
    ) -> tuple[IssuanceReceipt, Document | None]:
        """
        Runs on the issuance worker. The receipt is stored from here, so a
        call that outlives its deadline still lands on the document and
        reconciliation finds it issued.
        """
        try:
            receipt = self._issuer.issue(request)
            try:
                updated = self._repo.record_issuance(document.id, receipt)
            except Exception as e:
                logger.error(f"Issued {receipt.reference_id} for document {document.id} but could not store it: {e}")
                self._repo.add_pending_issuance(
                    document.id, document.blockchain_type, f"{RECEIPT_NOT_STORED}: {e}", receipt=receipt
                )
                return receipt, None
            self._repo.resolve_pending_issuance(document.id)
            logger.info(f"Issued {receipt.blockchain_type.value} {receipt.reference_id} for document {document.id}")
            return receipt, updated
        finally:
            with self._in_flight_guard:
                self._in_flight.discard(document.id)

    def _issue(self, result: TransitionResult) -> None:
        document = result.document
        try:
            receipt, updated = self._dispatch(document)
        except (IssuanceFailed, CollaboratorTimeout) as e:
            # The VERIFIED status and its audit entry stand.
            logger.error(f"Issuance failed for verified document {document.id}: {e.message}")
            self._repo.add_pending_issuance(document.id, document.blockchain_type, e.message)
            result.issuance_error = e.message
            return

        if updated is None:
            result.issuance_error = RECEIPT_NOT_STORED
            return
        result.document = updated
        result.issuance = receipt
