"""
FastAPI Application — Government Document Trust Pipeline.

Architecture:
  - PostgreSQL (prod) / SQLite (dev, tests) for documents, reports, audit trail
  - Gemini multimodal forensic analysis
  - Score-banded decision policy with a maker review queue
  - SAS attestation / Metaplex NFT issuance for verified documents
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from govdoc import __version__
from govdoc.api.dependencies import ServiceContainer, build_container
from govdoc.api.errors import setup_exception_handlers
from govdoc.api.routes.admin import router as admin_router
from govdoc.api.routes.documents import router as documents_router
from govdoc.api.routes.forensic import router as forensic_router
from govdoc.config.settings import get_settings
from govdoc.core.concurrency import call_with_timeout
from govdoc.core.errors import PipelineError
from govdoc.infrastructure.db.database import ping

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Build the API. Tests pass a pre-wired container; otherwise one is built at startup."""
    settings = container.settings if container else get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GovDoc Trust Pipeline",
        description="Forensic verification, maker review and on-chain issuance for government documents.",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.state.container = container

    # ── Startup ──
    @app.on_event("startup")
    async def startup():
        if app.state.container is None:
            app.state.container = build_container(settings)
        logger.info("GovDoc Trust Pipeline started")

    app.include_router(documents_router, prefix="/api/v1", tags=["Documents"])
    app.include_router(forensic_router, prefix="/api/v1", tags=["Forensic"])
    app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])

    # ── Health ──
    @app.get("/health")
    def health():
        c: ServiceContainer = app.state.container
        if c is None:
            c = app.state.container = build_container(settings)
        timeout = c.settings.health_timeout_seconds

        try:
            db_ok = call_with_timeout(ping, c.session_factory, timeout=timeout, operation="database ping")
        except PipelineError:
            db_ok = False

        stats = c.repository.get_stats() if db_ok else None

        if c.analyzer is None:
            analyzer_status = {"status": "DISABLED"}
        else:
            try:
                analyzer_status = call_with_timeout(
                    c.analyzer.health_check, timeout=timeout, operation="analyzer health check"
                )
            except PipelineError as e:
                analyzer_status = {"status": "UNAVAILABLE", "error": e.message}

        db_url = c.settings.database_url
        return {
            "status": "ok" if db_ok else "degraded",
            "version": __version__,
            "database": {
                "type": "PostgreSQL" if "postgres" in db_url else "SQLite",
                "reachable": db_ok,
            },
            "stats": stats,
            "cache": c.cache.stats().to_dict() if c.cache else {"enabled": False},
            "analyzer": {
                "configured": c.analyzer is not None,
                "model": c.settings.gemini_model if c.analyzer else None,
                **analyzer_status,
            },
        }

    return app


app = create_app()
