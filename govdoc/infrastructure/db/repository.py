"""
Repositories — SQLAlchemy implementations of the persistence ports.

Handles:
  - Documents, owners, live forensic reports
  - Atomic status transition + audit entry
  - Audit queue query (oldest first)
  - Issuance dead-letter list
  - Biometric identity index (unique hash)
"""

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from govdoc.core.entities.audit_log import AuditLogEntry
from govdoc.core.entities.biometric import BiometricIdentity
from govdoc.core.entities.decision import Decision, Disposition
from govdoc.core.entities.document import BlockchainType, DocStatus, Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.entities.user import UserProfile
from govdoc.core.errors import DuplicateIdentity, InvalidTransition, NotFoundError
from govdoc.core.interfaces.biometric_index import IBiometricIndex
from govdoc.core.interfaces.document_repository import (
    IDocumentRepository,
    PendingIssuance,
    ReviewCandidate,
)
from govdoc.core.interfaces.issuance_service import IssuanceReceipt
from govdoc.infrastructure.db.database import get_db
from govdoc.infrastructure.db.models import (
    AuditLogRecord,
    DocumentRecord,
    ForensicReportRecord,
    PendingIssuanceRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)


class DocumentRepository(IDocumentRepository):
    """Repository for documents, reports, audit trail and pending issuances."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _db(self):
        return get_db(self._session_factory)

    # ── Documents & owners ──

    def get(self, document_id: str) -> Document | None:
        with self._db() as db:
            record = db.get(DocumentRecord, document_id)
            return record.to_entity() if record else None

    def add(self, document: Document) -> Document:
        with self._db() as db:
            record = DocumentRecord.from_entity(document)
            db.add(record)
            db.flush()
            logger.info(f"Saved document {record.id} [{record.type}] for user {record.user_id}")
            return record.to_entity()

    def add_user(self, user: UserProfile) -> UserProfile:
        with self._db() as db:
            existing = db.get(UserRecord, user.id)
            if existing:
                logger.debug(f"User {user.id} already exists, skipping")
                return existing.to_entity()
            record = UserRecord.from_entity(user)
            db.add(record)
            db.flush()
            return record.to_entity()

    def get_owner(self, user_id: str) -> UserProfile | None:
        with self._db() as db:
            record = db.get(UserRecord, user_id)
            return record.to_entity() if record else None

    def set_file_hash(self, document_id: str, file_hash: str) -> Document:
        with self._db() as db:
            updated = (
                db.query(DocumentRecord)
                .filter(DocumentRecord.id == document_id, DocumentRecord.status == DocStatus.PENDING.value)
                .update(
                    {DocumentRecord.file_hash: file_hash, DocumentRecord.updated_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
            record = db.get(DocumentRecord, document_id)
            if record is None:
                raise NotFoundError("Document", document_id)
            if updated == 0:
                raise InvalidTransition(document_id, record.status, "UPLOAD")
            db.refresh(record)
            return record.to_entity()

    # ── Forensic reports ──

    def save_report(self, report: ForensicReport, decision: Decision) -> None:
        with self._db() as db:
            record = db.query(ForensicReportRecord).filter_by(document_id=report.document_id).first()
            if record is None:
                record = ForensicReportRecord(document_id=report.document_id)
                db.add(record)
            record.update_from(report, decision.disposition.value, decision.rationale)
            logger.debug(
                f"Saved report {report.analysis_id} for document {report.document_id} "
                f"[{decision.disposition.value}]"
            )

    def get_report(self, document_id: str) -> ForensicReport | None:
        with self._db() as db:
            record = db.query(ForensicReportRecord).filter_by(document_id=document_id).first()
            return record.to_entity() if record else None

    # ── Transitions ──

    def transition(
        self,
        document_id: str,
        expected: DocStatus,
        target: DocStatus,
        entry: AuditLogEntry,
    ) -> Document:
        with self._db() as db:
            updated = (
                db.query(DocumentRecord)
                .filter(DocumentRecord.id == document_id, DocumentRecord.status == expected.value)
                .update(
                    {DocumentRecord.status: target.value, DocumentRecord.updated_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
            if updated == 0:
                current = db.get(DocumentRecord, document_id)
                if current is None:
                    raise NotFoundError("Document", document_id)
                raise InvalidTransition(document_id, current.status, target.value)

            db.add(AuditLogRecord.from_entity(entry))
            db.flush()
            record = db.get(DocumentRecord, document_id)
            db.refresh(record)
            return record.to_entity()

    def record_issuance(self, document_id: str, receipt: IssuanceReceipt) -> Document:
        with self._db() as db:
            reference_column = (
                DocumentRecord.nft_mint_address
                if receipt.blockchain_type == BlockchainType.NFT_METAPLEX
                else DocumentRecord.attestation_id
            )
            updated = (
                db.query(DocumentRecord)
                .filter(DocumentRecord.id == document_id, DocumentRecord.status == DocStatus.VERIFIED.value)
                .update(
                    {
                        reference_column: receipt.reference_id,
                        DocumentRecord.transaction_reference: receipt.transaction_reference,
                        DocumentRecord.issued_at: receipt.issued_at,
                        DocumentRecord.updated_at: datetime.utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            record = db.get(DocumentRecord, document_id)
            if record is None:
                raise NotFoundError("Document", document_id)
            if updated == 0:
                raise InvalidTransition(document_id, record.status, "ISSUANCE")
            db.refresh(record)
            return record.to_entity()

    # ── Queries ──

    def list_pending_review(self, skip: int, take: int) -> tuple[list[ReviewCandidate], int]:
        with self._db() as db:
            query = (
                db.query(DocumentRecord, ForensicReportRecord, UserRecord)
                .join(ForensicReportRecord, ForensicReportRecord.document_id == DocumentRecord.id)
                .join(UserRecord, UserRecord.id == DocumentRecord.user_id)
                .filter(
                    DocumentRecord.status == DocStatus.PENDING.value,
                    ForensicReportRecord.disposition == Disposition.REVIEW.value,
                )
            )
            total = query.count()
            rows = (
                query.order_by(DocumentRecord.created_at.asc(), DocumentRecord.id.asc())
                .offset(skip)
                .limit(take)
                .all()
            )
            items = [
                ReviewCandidate(document=doc.to_entity(), owner=user.to_entity(), report=report.to_entity())
                for doc, report, user in rows
            ]
            return items, total

    def find_expired_documents(self, now: datetime, limit: int | None = None) -> list[Document]:
        with self._db() as db:
            query = (
                db.query(DocumentRecord)
                .filter(
                    DocumentRecord.status == DocStatus.VERIFIED.value,
                    DocumentRecord.expires_at.isnot(None),
                    DocumentRecord.expires_at <= now,
                )
                .order_by(DocumentRecord.expires_at.asc())
            )
            if limit:
                query = query.limit(limit)
            return [r.to_entity() for r in query.all()]

    def list_audit_logs(self, document_id: str) -> list[AuditLogEntry]:
        with self._db() as db:
            records = (
                db.query(AuditLogRecord)
                .filter_by(document_id=document_id)
                .order_by(AuditLogRecord.timestamp.asc())
                .all()
            )
            return [r.to_entity() for r in records]

    def get_stats(self) -> dict:
        """Get aggregated statistics."""
        with self._db() as db:
            by_status = dict(
                db.query(DocumentRecord.status, func.count(DocumentRecord.id))
                .group_by(DocumentRecord.status)
                .all()
            )
            by_disposition = dict(
                db.query(ForensicReportRecord.disposition, func.count(ForensicReportRecord.id))
                .group_by(ForensicReportRecord.disposition)
                .all()
            )
            avg_score = db.query(func.avg(ForensicReportRecord.overall_score)).scalar() or 0
            pending_issuances = db.query(PendingIssuanceRecord).count()
            return {
                "documents": sum(by_status.values()),
                "by_status": {s.value: by_status.get(s.value, 0) for s in DocStatus},
                "by_disposition": {d.value: by_disposition.get(d.value, 0) for d in Disposition},
                "avg_score": round(float(avg_score), 1),
                "pending_issuances": pending_issuances,
            }

    # ── Issuance dead-letter list ──

    def add_pending_issuance(
        self,
        document_id: str,
        blockchain_type: BlockchainType,
        error: str,
        receipt: IssuanceReceipt | None = None,
    ) -> PendingIssuance:
        with self._db() as db:
            record = db.query(PendingIssuanceRecord).filter_by(document_id=document_id).first()
            if record:
                record.attempts = (record.attempts or 0) + 1
                record.last_error = error
                record.last_attempt_at = datetime.utcnow()
            else:
                record = PendingIssuanceRecord(
                    document_id=document_id,
                    blockchain_type=blockchain_type.value,
                    last_error=error,
                    attempts=1,
                )
                db.add(record)
            if receipt is not None:
                record.reference_id = receipt.reference_id
                record.transaction_reference = receipt.transaction_reference
            db.flush()
            logger.info(f"Queued issuance retry for document {document_id}")
            return record.to_entity()

    def list_pending_issuances(self, limit: int | None = None) -> list[PendingIssuance]:
        with self._db() as db:
            query = db.query(PendingIssuanceRecord).order_by(PendingIssuanceRecord.created_at.asc())
            if limit:
                query = query.limit(limit)
            return [r.to_entity() for r in query.all()]

    def mark_issuance_attempt(self, document_id: str, error: str) -> None:
        with self._db() as db:
            record = db.query(PendingIssuanceRecord).filter_by(document_id=document_id).first()
            if record:
                record.attempts = (record.attempts or 0) + 1
                record.last_error = error
                record.last_attempt_at = datetime.utcnow()

    def resolve_pending_issuance(self, document_id: str) -> None:
        with self._db() as db:
            db.query(PendingIssuanceRecord).filter_by(document_id=document_id).delete()


class BiometricRepository(IBiometricIndex):
    """Biometric identity index on users.biometric_hash (unique)."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def find_owner(self, biometric_hash: str) -> UserProfile | None:
        with get_db(self._session_factory) as db:
            record = db.query(UserRecord).filter_by(biometric_hash=biometric_hash).first()
            return record.to_entity() if record else None

    def store(self, user_id: str, biometric_data: dict, biometric_hash: str) -> BiometricIdentity:
        try:
            with get_db(self._session_factory) as db:
                record = db.get(UserRecord, user_id)
                if record is None:
                    raise NotFoundError("User", user_id)
                record.biometric_hash = biometric_hash
                record.biometric_data = biometric_data
        except IntegrityError:
            # Lost a race: another user committed the same hash first
            raise DuplicateIdentity(biometric_hash, self.find_owner(biometric_hash))
        logger.info(f"Stored biometric identity for user {user_id}")
        return BiometricIdentity(user_id=user_id, biometric_hash=biometric_hash, biometric_data=biometric_data)

    def get(self, user_id: str) -> BiometricIdentity | None:
        with get_db(self._session_factory) as db:
            record = db.get(UserRecord, user_id)
            if record is None or not record.biometric_hash:
                return None
            return BiometricIdentity(
                user_id=record.id,
                biometric_hash=record.biometric_hash,
                biometric_data=record.biometric_data or {},
            )
