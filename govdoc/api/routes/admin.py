"""
Routes: operator jobs (expiry sweep, issuance reconciliation).
"""

from fastapi import APIRouter, Depends, Query

from govdoc.api.dependencies import ServiceContainer, get_actor, get_container, require_roles
from govdoc.api.schemas.responses import PendingIssuanceResponse
from govdoc.core.entities.user import Actor, Role

router = APIRouter()


@router.post("/admin/expire-sweep")
def run_expire_sweep(
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """Move VERIFIED documents past their expiry date to EXPIRED."""
    require_roles(actor, Role.ADMIN, Role.MAKER)
    expired = container.lifecycle.expire_documents(limit=limit)
    return {"expired": len(expired), "documentIds": [d.id for d in expired]}


@router.get("/admin/issuances/pending", response_model=list[PendingIssuanceResponse])
def list_pending_issuances(
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    require_roles(actor, Role.ADMIN, Role.MAKER)
    return [PendingIssuanceResponse.from_entity(p) for p in container.repository.list_pending_issuances(limit)]


@router.post("/admin/issuances/reconcile")
def reconcile_issuances(
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    """Retry issuance for verified documents whose first attempt failed."""
    require_roles(actor, Role.ADMIN, Role.MAKER)
    return container.lifecycle.retry_pending_issuances(limit).to_dict()
