"""
Contract: Document Repository

Persistence for documents, their live forensic report, the append-only
audit log and the issuance dead-letter list. A status transition and its
audit entry must commit as one unit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from govdoc.core.entities.audit_log import AuditLogEntry
from govdoc.core.entities.decision import Decision
from govdoc.core.entities.document import BlockchainType, DocStatus, Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.entities.user import UserProfile
from govdoc.core.interfaces.issuance_service import IssuanceReceipt


@dataclass
class ReviewCandidate:
    """A document parked in the review bucket, with full reviewer context."""
    document: Document
    owner: UserProfile
    report: ForensicReport


@dataclass
class PendingIssuance:
    """Dead-letter record for a VERIFIED document whose issuance failed."""
    document_id: str
    blockchain_type: BlockchainType
    last_error: str = ""
    attempts: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_attempt_at: datetime = field(default_factory=datetime.utcnow)
    # Set when the backend issued but the receipt was never stored
    reference_id: str | None = None
    transaction_reference: str | None = None

    @property
    def has_receipt(self) -> bool:
        return self.reference_id is not None


class IDocumentRepository(ABC):
    """Port: Document Repository."""

    # ── Documents & owners ──

    @abstractmethod
    def get(self, document_id: str) -> Document | None:
        ...

    @abstractmethod
    def add(self, document: Document) -> Document:
        ...

    @abstractmethod
    def get_owner(self, user_id: str) -> UserProfile | None:
        ...

    @abstractmethod
    def set_file_hash(self, document_id: str, file_hash: str) -> Document:
        """
        Record the SHA-256 of the uploaded bytes on a PENDING document.

        Raises:
            NotFoundError: unknown document.
            InvalidTransition: the document is no longer PENDING.
        """
        ...

    # ── Forensic reports ──

    @abstractmethod
    def save_report(self, report: ForensicReport, decision: Decision) -> None:
        """Store the live report for report.document_id, replacing any previous one."""
        ...

    @abstractmethod
    def get_report(self, document_id: str) -> ForensicReport | None:
        ...

    # ── Transitions ──

    @abstractmethod
    def transition(
        self,
        document_id: str,
        expected: DocStatus,
        target: DocStatus,
        entry: AuditLogEntry,
    ) -> Document:
        """
        Move a document from `expected` to `target` and append `entry`,
        atomically.

        Raises:
            NotFoundError: unknown document.
            InvalidTransition: the document is no longer in `expected`.
        """
        ...

    @abstractmethod
    def record_issuance(self, document_id: str, receipt: IssuanceReceipt) -> Document:
        """Store the attestation id / mint address on a VERIFIED document."""
        ...

    # ── Queries ──

    @abstractmethod
    def list_pending_review(self, skip: int, take: int) -> tuple[list[ReviewCandidate], int]:
        """PENDING documents whose latest disposition was REVIEW, oldest first."""
        ...

    @abstractmethod
    def find_expired_documents(self, now: datetime, limit: int | None = None) -> list[Document]:
        """VERIFIED documents with expires_at <= now."""
        ...

    @abstractmethod
    def list_audit_logs(self, document_id: str) -> list[AuditLogEntry]:
        ...

    @abstractmethod
    def get_stats(self) -> dict:
        ...

    # ── Issuance dead-letter list ──

    @abstractmethod
    def add_pending_issuance(
        self,
        document_id: str,
        blockchain_type: BlockchainType,
        error: str,
        receipt: IssuanceReceipt | None = None,
    ) -> PendingIssuance:
        """Queue or bump the dead-letter row; a receipt is kept so reconciliation can store it without reissuing."""
        ...

    @abstractmethod
    def list_pending_issuances(self, limit: int | None = None) -> list[PendingIssuance]:
        ...

    @abstractmethod
    def mark_issuance_attempt(self, document_id: str, error: str) -> None:
        ...

    @abstractmethod
    def resolve_pending_issuance(self, document_id: str) -> None:
        ...
