"""
API dependencies — service container and actor extraction.

The container wires concrete adapters into the use cases once per
process. Tests build their own container and pass it to create_app().
"""

import logging
from dataclasses import dataclass

from fastapi import Header, Request

from govdoc.config.settings import Settings, get_settings
from govdoc.core.concurrency import DocumentLockRegistry
from govdoc.core.entities.user import Actor, Role
from govdoc.core.errors import AuthenticationError, AuthorizationError
from govdoc.core.interfaces.forensic_analyzer import IForensicAnalyzer
from govdoc.core.interfaces.forensic_cache import IForensicCache
from govdoc.core.interfaces.issuance_service import IIssuanceService
from govdoc.core.use_cases.audit_queue import AuditQueueUseCase
from govdoc.core.use_cases.batch_decisions import BatchDecisionProcessor
from govdoc.core.use_cases.biometric_dedup import BiometricDeduplicationGate
from govdoc.core.use_cases.decide_disposition import DecisionPolicy
from govdoc.core.use_cases.document_lifecycle import DocumentLifecycleManager
from govdoc.core.use_cases.forensic_status import ForensicStatusUseCase
from govdoc.core.use_cases.process_analysis import ProcessForensicAnalysisUseCase
from govdoc.infrastructure.cache.forensic_cache import InMemoryForensicCache
from govdoc.infrastructure.db.database import create_db_engine, create_session_factory, init_db
from govdoc.infrastructure.db.repository import BiometricRepository, DocumentRepository
from govdoc.infrastructure.issuance.dispatcher import IssuanceDispatcher
from govdoc.infrastructure.issuance.nft_minting import NFTMintingService
from govdoc.infrastructure.issuance.sas_attestation import SASAttestationService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: object
    repository: DocumentRepository
    biometric_gate: BiometricDeduplicationGate
    policy: DecisionPolicy
    lifecycle: DocumentLifecycleManager
    analysis: ProcessForensicAnalysisUseCase
    audit_queue: AuditQueueUseCase
    batch: BatchDecisionProcessor
    status: ForensicStatusUseCase
    cache: IForensicCache | None = None
    analyzer: IForensicAnalyzer | None = None


def _build_analyzer(settings: Settings) -> IForensicAnalyzer | None:
    """Gemini analyzer if enabled."""
    if not settings.llm_enabled or not settings.gemini_api_key:
        return None
    from govdoc.infrastructure.llm.gemini_forensic_analyzer import GeminiForensicAnalyzer
    return GeminiForensicAnalyzer(api_key=settings.gemini_api_key, model_name=settings.gemini_model)


def build_container(
    settings: Settings | None = None,
    session_factory=None,
    analyzer: IForensicAnalyzer | None = None,
    issuance_service: IIssuanceService | None = None,
    cache: IForensicCache | None = None,
) -> ServiceContainer:
    """Factory — build every use case with concrete adapters."""
    settings = settings or get_settings()
    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        init_db(engine)
        session_factory = create_session_factory(engine)

    repository = DocumentRepository(session_factory)
    policy = DecisionPolicy.from_settings(settings)
    if cache is None and settings.forensic_cache_enabled:
        cache = InMemoryForensicCache(default_ttl_seconds=settings.forensic_cache_ttl_minutes * 60)
    if analyzer is None:
        analyzer = _build_analyzer(settings)
    if issuance_service is None:
        issuance_service = IssuanceDispatcher(
            attestation_service=SASAttestationService(
                issuer_wallet=settings.issuer_wallet_address,
                schema_id=settings.attestation_schema_id,
                cluster=settings.solana_cluster,
            ),
            nft_service=NFTMintingService(
                fee_payer_wallet=settings.issuer_wallet_address,
                cluster=settings.solana_cluster,
            ),
        )

    gate = BiometricDeduplicationGate(BiometricRepository(session_factory))
    lifecycle = DocumentLifecycleManager(
        repository,
        issuance_service=issuance_service,
        issuance_timeout=settings.issuance_timeout_seconds,
        locks=DocumentLockRegistry(),
    )

    return ServiceContainer(
        settings=settings,
        session_factory=session_factory,
        repository=repository,
        biometric_gate=gate,
        policy=policy,
        lifecycle=lifecycle,
        analysis=ProcessForensicAnalysisUseCase(
            repository=repository,
            policy=policy,
            lifecycle=lifecycle,
            biometric_gate=gate,
            analyzer=analyzer,
            cache=cache,
            analysis_timeout=settings.analysis_timeout_seconds,
        ),
        audit_queue=AuditQueueUseCase(
            repository, max_take=settings.audit_queue_max_take, reviewer_role=Role(settings.reviewer_role)
        ),
        batch=BatchDecisionProcessor(
            lifecycle,
            max_batch_size=settings.batch_max_actions,
            max_workers=settings.batch_max_workers,
            reviewer_role=Role(settings.reviewer_role),
        ),
        status=ForensicStatusUseCase(repository, policy),
        cache=cache,
        analyzer=analyzer,
    )


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        container = build_container()
        request.app.state.container = container
    return container


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """Actor from the x-user-id / x-user-role headers set by the auth gateway."""
    if not x_user_id:
        raise AuthenticationError("Unauthorized")
    try:
        role = Role((x_user_role or Role.CITIZEN.value).upper())
    except ValueError:
        raise AuthorizationError(f"Unknown role {x_user_role!r}")
    if role == Role.SYSTEM:
        raise AuthorizationError("SYSTEM role cannot be asserted by a request")
    return Actor(user_id=x_user_id, role=role)


def require_roles(actor: Actor, *roles: Role) -> Actor:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise AuthorizationError(f"Requires role: {allowed}")
    return actor
