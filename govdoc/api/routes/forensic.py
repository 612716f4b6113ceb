"""
Routes: maker audit queue, batch decisions, status lookup, cache admin.
"""

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query

from govdoc.api.dependencies import ServiceContainer, get_actor, get_container, require_roles
from govdoc.api.schemas.requests import BatchDecisionRequest
from govdoc.api.schemas.responses import (
    AuditQueueResponse,
    BatchDecisionResponse,
    QueueItemResponse,
    QueueMeta,
)
from govdoc.core.entities.user import Actor, Role
from govdoc.core.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/forensic/audit-queue", response_model=AuditQueueResponse)
def get_audit_queue(
    skip: int = Query(0),
    take: int | None = Query(None),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """
    Documents waiting for a maker (forensic score in the review band),
    oldest submission first.
    """
    if take is None:
        take = container.settings.audit_queue_default_take
    page = container.audit_queue.list_pending(skip=skip, take=take, actor=actor)
    return AuditQueueResponse(
        queue=[QueueItemResponse.from_candidate(c) for c in page.items],
        meta=QueueMeta(total=page.total, count=page.count, has_more=page.has_more),
    )


@router.post("/forensic/audit-batch", response_model=BatchDecisionResponse)
def post_audit_batch(
    body: BatchDecisionRequest,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """
    Approve or reject many documents at once.

    Body: {"actions": [{"documentId", "action": "APPROVE"|"REJECT", "comments"?}]}
    Partial failure is reported per item with HTTP 200.
    """
    result = container.batch.apply_batch(body.actions, actor)
    return BatchDecisionResponse(
        summary=result.summary(),
        results=[r.to_dict() for r in result.results],
    )


@router.get("/forensic/status/{document_id}")
def get_forensic_status(
    document_id: str,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    return container.status.get_status(document_id, actor)


# ── Cache administration ──

@router.get("/forensic/cache/stats")
def get_cache_stats(
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    require_roles(actor, Role.ADMIN, Role.MAKER)
    if container.cache is None:
        return {"enabled": False}
    return {"enabled": True, **container.cache.stats().to_dict()}


@router.post("/forensic/cache/purge")
def purge_cache(
    older_than_minutes: int | None = Query(None),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """Drop cached reports; everything when older_than_minutes is omitted."""
    require_roles(actor, Role.ADMIN, Role.MAKER)
    if older_than_minutes is not None and older_than_minutes < 0:
        raise ValidationError(
            "older_than_minutes must be >= 0",
            details=[{"loc": ["older_than_minutes"], "msg": "must be >= 0", "type": "value_error"}],
        )
    if container.cache is None:
        return {"removed": 0}
    older_than = None
    if older_than_minutes is not None:
        older_than = datetime.utcnow() - timedelta(minutes=older_than_minutes)
    return {"removed": container.cache.purge(older_than)}


@router.post("/forensic/cache/stats/reset")
def reset_cache_stats(
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    require_roles(actor, Role.ADMIN, Role.MAKER)
    if container.cache is not None:
        container.cache.reset_stats()
    return {"reset": container.cache is not None}
