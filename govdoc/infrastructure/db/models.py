"""
Database Models — SQLAlchemy.

Tables:
  - users: document owners and staff; unique biometric_hash
  - documents: verification subjects and their lifecycle status
  - forensic_reports: live report per document (one at most)
  - audit_logs: append-only transition trail
  - pending_issuances: dead-letter list for failed issuance
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Float, Integer, Boolean, DateTime, Text, JSON,
    ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from govdoc.core.entities.audit_log import AuditAction, AuditLogEntry
from govdoc.core.entities.document import BlockchainType, DocStatus, DocType, Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.entities.user import Role, UserProfile
from govdoc.core.interfaces.document_repository import PendingIssuance


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    """Document owners and staff."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    email = Column(String(255), nullable=True)
    phone_number = Column(String(32), nullable=True)
    role = Column(String(20), default=Role.CITIZEN.value, nullable=False)
    wallet_address = Column(String(64), nullable=True)

    # Biometric identity, unique across users when set
    biometric_hash = Column(String(64), unique=True, nullable=True, index=True)
    biometric_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    documents = relationship("DocumentRecord", back_populates="user")

    def __repr__(self):
        return f"<User {self.id} [{self.role}]>"

    def to_entity(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            email=self.email,
            phone_number=self.phone_number,
            role=Role(self.role),
            wallet_address=self.wallet_address,
            biometric_hash=self.biometric_hash,
        )

    @classmethod
    def from_entity(cls, user: UserProfile) -> "UserRecord":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone_number=user.phone_number,
            role=user.role.value,
            wallet_address=user.wallet_address,
            biometric_hash=user.biometric_hash,
        )


class DocumentRecord(Base):
    """Documents under verification."""
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), default="")
    type = Column(String(30), nullable=False)
    status = Column(String(20), default=DocStatus.PENDING.value, nullable=False, index=True)
    file_hash = Column(String(64), nullable=True, index=True)

    # Issuance
    blockchain_type = Column(String(20), nullable=False)
    attestation_id = Column(String(128), nullable=True)
    nft_mint_address = Column(String(128), nullable=True)
    transaction_reference = Column(String(128), nullable=True)
    issued_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserRecord", back_populates="documents")
    forensic_report = relationship(
        "ForensicReportRecord", back_populates="document", uselist=False, cascade="all, delete-orphan"
    )
    audit_logs = relationship("AuditLogRecord", back_populates="document")

    def __repr__(self):
        return f"<Document {self.id} [{self.status}]>"

    def to_entity(self) -> Document:
        return Document(
            id=self.id,
            user_id=self.user_id,
            doc_type=DocType(self.type),
            status=DocStatus(self.status),
            title=self.title or "",
            file_hash=self.file_hash,
            blockchain_type=BlockchainType(self.blockchain_type),
            attestation_id=self.attestation_id,
            nft_mint_address=self.nft_mint_address,
            transaction_reference=self.transaction_reference,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentRecord":
        return cls(
            id=document.id,
            user_id=document.user_id,
            title=document.title,
            type=document.doc_type.value,
            status=document.status.value,
            file_hash=document.file_hash,
            blockchain_type=document.blockchain_type.value,
            attestation_id=document.attestation_id,
            nft_mint_address=document.nft_mint_address,
            transaction_reference=document.transaction_reference,
            issued_at=document.issued_at,
            expires_at=document.expires_at,
            created_at=document.created_at,
        )


class ForensicReportRecord(Base):
    """Live forensic report for a document. New analysis runs replace it."""
    __tablename__ = "forensic_reports"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(
        String(64), ForeignKey("documents.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    analysis_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Scores
    overall_score = Column(Integer, nullable=False, index=True)
    integrity_score = Column(Integer, default=0)
    authenticity_score = Column(Integer, default=0)
    metadata_score = Column(Integer, default=0)
    ocr_score = Column(Integer, default=0)
    biometric_score = Column(Integer, default=0)
    security_score = Column(Integer, default=0)

    # Tampering
    tampering_detected = Column(Boolean, default=False)
    tamper_risk = Column(String(20), default="NONE")

    # Biometric / OCR
    has_face_image = Column(Boolean, default=False)
    face_confidence = Column(Float, default=0.0)
    ocr_confidence = Column(Float, default=0.0)
    extracted_text = Column(Text, default="")

    # Decision
    recommended_action = Column(String(20), nullable=True)   # advisory, from the analyzer
    disposition = Column(String(20), nullable=False, index=True)   # computed by the policy
    rationale = Column(String(255), default="")

    findings = Column(JSON, default=dict)
    raw_json = Column(JSON, default=dict)

    document = relationship("DocumentRecord", back_populates="forensic_report")

    def __repr__(self):
        return f"<ForensicReport doc={self.document_id} score={self.overall_score} [{self.disposition}]>"

    def to_entity(self) -> ForensicReport:
        return ForensicReport.from_dict(self.raw_json)

    def update_from(self, report: ForensicReport, disposition: str, rationale: str) -> None:
        b = report.breakdown
        self.analysis_id = report.analysis_id
        self.created_at = report.created_at
        self.overall_score = report.overall_score
        self.integrity_score = b.integrity
        self.authenticity_score = b.authenticity
        self.metadata_score = b.metadata
        self.ocr_score = b.ocr
        self.biometric_score = b.biometric
        self.security_score = b.security
        self.tampering_detected = report.tampering_detected
        self.tamper_risk = report.tamper_risk.value
        self.has_face_image = report.has_face_image
        self.face_confidence = report.face_confidence
        self.ocr_confidence = report.ocr_confidence
        self.extracted_text = report.extracted_text
        self.recommended_action = report.recommended_action
        self.disposition = disposition
        self.rationale = rationale[:255]
        self.findings = report.findings.to_dict()
        self.raw_json = report.to_dict()


class AuditLogRecord(Base):
    """Append-only audit trail."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    document_id = Column(String(64), ForeignKey("documents.id"), nullable=False, index=True)
    action = Column(String(40), nullable=False)
    details = Column("metadata", JSON, default=dict)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    document = relationship("DocumentRecord", back_populates="audit_logs")

    __table_args__ = (Index("ix_audit_logs_document_timestamp", "document_id", "timestamp"),)

    def __repr__(self):
        return f"<AuditLog {self.action} doc={self.document_id} by={self.user_id}>"

    def to_entity(self) -> AuditLogEntry:
        return AuditLogEntry(
            id=self.id,
            user_id=self.user_id,
            document_id=self.document_id,
            action=AuditAction(self.action),
            metadata=self.details or {},
            timestamp=self.timestamp,
        )

    @classmethod
    def from_entity(cls, entry: AuditLogEntry) -> "AuditLogRecord":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            document_id=entry.document_id,
            action=entry.action.value,
            details=entry.metadata,
            timestamp=entry.timestamp,
        )


class PendingIssuanceRecord(Base):
    """VERIFIED documents whose attestation / mint still has to happen."""
    __tablename__ = "pending_issuances"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(String(64), ForeignKey("documents.id"), unique=True, nullable=False)
    blockchain_type = Column(String(20), nullable=False)
    attempts = Column(Integer, default=1)
    last_error = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    last_attempt_at = Column(DateTime, default=datetime.utcnow)
    # Receipt that was issued but could not be stored on the document
    reference_id = Column(String(128), nullable=True)
    transaction_reference = Column(String(128), nullable=True)

    def to_entity(self) -> PendingIssuance:
        return PendingIssuance(
            document_id=self.document_id,
            blockchain_type=BlockchainType(self.blockchain_type),
            last_error=self.last_error or "",
            attempts=self.attempts or 0,
            created_at=self.created_at,
            last_attempt_at=self.last_attempt_at,
            reference_id=self.reference_id,
            transaction_reference=self.transaction_reference,
        )
