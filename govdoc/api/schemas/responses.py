"""
Pydantic schemas — Response models for the API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from govdoc.core.entities.audit_log import AuditLogEntry
from govdoc.core.entities.document import Document
from govdoc.core.interfaces.document_repository import PendingIssuance, ReviewCandidate


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploaderResponse(CamelModel):
    id: str
    name: str
    email: str | None = None
    phone_number: str | None = None


class QueueForensicResponse(CamelModel):
    overall_score: int
    breakdown: dict
    tampering_detected: bool
    tamper_risk: str
    findings: dict
    analyzed_at: datetime


class QueueItemResponse(CamelModel):
    document_id: str
    type: str
    title: str
    uploader: UploaderResponse
    forensic: QueueForensicResponse
    uploaded_at: datetime

    @classmethod
    def from_candidate(cls, candidate: ReviewCandidate) -> "QueueItemResponse":
        document, owner, report = candidate.document, candidate.owner, candidate.report
        return cls(
            document_id=document.id,
            type=document.doc_type.value,
            title=document.title,
            uploader=UploaderResponse(
                id=owner.id,
                name=owner.full_name,
                email=owner.email,
                phone_number=owner.phone_number,
            ),
            forensic=QueueForensicResponse(
                overall_score=report.overall_score,
                breakdown=report.breakdown.to_dict(),
                tampering_detected=report.tampering_detected,
                tamper_risk=report.tamper_risk.value,
                findings=report.findings.to_dict(),
                analyzed_at=report.created_at,
            ),
            uploaded_at=document.created_at,
        )


class QueueMeta(CamelModel):
    total: int
    count: int
    has_more: bool


class AuditQueueResponse(CamelModel):
    queue: list[QueueItemResponse]
    meta: QueueMeta


class BatchSummary(BaseModel):
    total: int
    processed: int
    succeeded: int
    failed: int


class BatchDecisionResponse(BaseModel):
    summary: BatchSummary
    results: list[dict]


class DocumentResponse(CamelModel):
    id: str
    user_id: str
    type: str
    status: str
    title: str
    file_hash: str | None = None
    blockchain_type: str | None = None
    blockchain_reference: str | None = None
    transaction_reference: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            user_id=document.user_id,
            type=document.doc_type.value,
            status=document.status.value,
            title=document.title,
            file_hash=document.file_hash,
            blockchain_type=document.blockchain_type.value if document.blockchain_type else None,
            blockchain_reference=document.issuance_reference,
            transaction_reference=document.transaction_reference,
            issued_at=document.issued_at,
            expires_at=document.expires_at,
            created_at=document.created_at,
        )


class AnalysisResponse(CamelModel):
    document: DocumentResponse
    decision: str
    disposition: str
    overall_score: int
    user_message: str
    blockchain_status: str
    rationale: str
    from_cache: bool = False
    issuance_pending: bool = False
    biometric_checked: bool = False
    pipeline_version: str = ""
    total_latency_ms: float = 0.0
    stage_latencies: dict = {}


class AuditLogResponse(CamelModel):
    id: str | None = None
    user_id: str
    document_id: str
    action: str
    metadata: dict
    timestamp: datetime

    @classmethod
    def from_entity(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            document_id=entry.document_id,
            action=entry.action.value,
            metadata=entry.metadata,
            timestamp=entry.timestamp,
        )


class PendingIssuanceResponse(CamelModel):
    document_id: str
    blockchain_type: str
    last_error: str | None = None
    attempts: int
    created_at: datetime | None = None
    last_attempt_at: datetime | None = None

    @classmethod
    def from_entity(cls, pending: PendingIssuance) -> "PendingIssuanceResponse":
        return cls(
            document_id=pending.document_id,
            blockchain_type=pending.blockchain_type.value,
            last_error=pending.last_error,
            attempts=pending.attempts,
            created_at=pending.created_at,
            last_attempt_at=pending.last_attempt_at,
        )
