"""
Routes: document registration, upload + forensic analysis, audit trail,
biometric duplicate check.
"""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from govdoc.api.dependencies import ServiceContainer, get_actor, get_container
from govdoc.api.schemas.requests import BiometricDuplicateRequest
from govdoc.api.schemas.responses import AnalysisResponse, AuditLogResponse, DocumentResponse
from govdoc.core.entities.document import DocType, Document
from govdoc.core.entities.user import Actor, UserProfile
from govdoc.core.errors import AuthorizationError, DuplicateIdentity, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_MIME_PREFIXES = ("image/", "application/pdf")


def _load_for_actor(container: ServiceContainer, document_id: str, actor: Actor) -> Document:
    document = container.repository.get(document_id)
    if document is None:
        raise NotFoundError("Document", document_id)
    if document.user_id != actor.user_id and not actor.is_staff:
        raise AuthorizationError("Forbidden")
    return document


@router.post("/documents", response_model=DocumentResponse, status_code=201)
def create_document(
    doc_type: str = Form(..., alias="type"),
    title: str = Form(""),
    expires_at: datetime | None = Form(None, alias="expiresAt"),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """Register a PENDING document for the calling citizen."""
    try:
        kind = DocType(doc_type.upper())
    except ValueError:
        raise ValidationError(
            f"Unknown document type {doc_type!r}",
            details=[{"loc": ["type"], "msg": f"must be one of {[t.value for t in DocType]}", "type": "value_error"}],
        )

    container.repository.add_user(UserProfile(id=actor.user_id, role=actor.role))
    document = container.repository.add(
        Document(
            id=str(uuid.uuid4()),
            user_id=actor.user_id,
            doc_type=kind,
            title=title or kind.value.replace("_", " ").title(),
            expires_at=expires_at,
        )
    )
    return DocumentResponse.from_entity(document)


@router.post("/documents/{document_id}/forensic", response_model=AnalysisResponse)
async def upload_for_analysis(
    document_id: str,
    file: UploadFile = File(...),
    force_reanalysis: bool = Form(False, alias="forceReanalysis"),
    strict_mode: bool = Form(False, alias="strictMode"),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """
    Upload the document file and run the full pipeline:
    cache → forensic analysis → decision → biometric gate → disposition.

    A biometric collision rejects the document and answers 409.
    """
    await run_in_threadpool(_load_for_actor, container, document_id, actor)

    if not file.content_type or not file.content_type.startswith(ALLOWED_MIME_PREFIXES):
        raise ValidationError("File must be an image (JPEG/PNG) or PDF")
    file_bytes = await file.read()
    if len(file_bytes) == 0:
        raise ValidationError("Empty file")

    outcome = await run_in_threadpool(
        container.analysis.execute,
        document_id,
        file_bytes=file_bytes,
        mime_type=file.content_type,
        options={"strictMode": strict_mode},
        force_reanalysis=force_reanalysis,
    )

    transition = outcome.transition
    blockchain_status = outcome.decision.blockchain_status
    if transition.issuance is not None:
        blockchain_status = "ISSUED"
    elif transition.issuance_pending:
        blockchain_status = "ISSUANCE_PENDING"

    return AnalysisResponse(
        document=DocumentResponse.from_entity(outcome.document),
        decision=outcome.decision.status_decision,
        disposition=outcome.decision.disposition.value,
        overall_score=outcome.report.overall_score,
        user_message=outcome.decision.user_message,
        blockchain_status=blockchain_status,
        rationale=outcome.decision.rationale,
        from_cache=outcome.from_cache,
        issuance_pending=transition.issuance_pending,
        biometric_checked=outcome.biometric_hash is not None,
        pipeline_version=outcome.pipeline_version,
        total_latency_ms=outcome.total_latency_ms,
        stage_latencies=outcome.stage_latencies,
    )


@router.get("/documents/{document_id}/audit-log", response_model=list[AuditLogResponse])
def get_audit_log(
    document_id: str,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    _load_for_actor(container, document_id, actor)
    return [AuditLogResponse.from_entity(e) for e in container.repository.list_audit_logs(document_id)]


# ── Biometric ──

@router.post("/verify/biometric-duplicate")
def verify_biometric_duplicate(
    body: BiometricDuplicateRequest,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """
    Called during onboarding after ID upload: is this face already bound
    to another account? Stores the identity when it is not.
    """
    if body.user_id != actor.user_id and not actor.is_staff:
        raise AuthorizationError("Forbidden")

    if body.document_id:
        document = _load_for_actor(container, body.document_id, actor)
        if document.user_id != body.user_id:
            raise AuthorizationError(f"Document {body.document_id} does not belong to user {body.user_id}")

    gate = container.biometric_gate
    check = gate.check_for_duplicate(body.biometric_hash, user_id=body.user_id)
    if check.is_duplicate:
        logger.warning(f"Biometric duplicate check failed for user {body.user_id}")
        raise DuplicateIdentity(body.biometric_hash, check.existing_owner)

    if body.document_id:
        report = container.repository.get_report(body.document_id)
        if report is not None:
            gate.store_biometric_data(
                body.user_id,
                {
                    "documentId": body.document_id,
                    "faceConfidence": report.face_confidence,
                    "hasFaceImage": report.has_face_image,
                    "extractedAt": datetime.utcnow().isoformat(),
                },
                body.biometric_hash,
            )

    return {
        "isDuplicate": False,
        "message": "Biometric check passed. You may proceed.",
        "biometricHash": body.biometric_hash,
    }


@router.get("/verify/biometric-status/{user_id}")
def get_biometric_status(
    user_id: str,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    if user_id != actor.user_id:
        raise AuthorizationError("Forbidden")
    identity = container.biometric_gate.get_biometric_data(user_id)
    return {
        "hasBiometricData": identity is not None,
        "biometricData": identity.biometric_data if identity else None,
    }
