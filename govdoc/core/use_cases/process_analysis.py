"""
Use Case: Process Forensic Analysis — upload path.

Orchestrates: Cache → Analyzer → Decision Policy → Biometric Gate → Lifecycle
Measures the latency of each stage.
"""

import dataclasses
import hashlib
import logging
import time
from dataclasses import dataclass, field

from govdoc.core.concurrency import call_with_timeout
from govdoc.core.entities.audit_log import AuditAction
from govdoc.core.entities.decision import Decision, Disposition
from govdoc.core.entities.document import DocStatus, Document
from govdoc.core.entities.forensic_report import ForensicReport
from govdoc.core.entities.user import SYSTEM_ACTOR
from govdoc.core.errors import (
    AnalysisFailed,
    DuplicateIdentity,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from govdoc.core.interfaces.document_repository import IDocumentRepository
from govdoc.core.interfaces.forensic_analyzer import AnalysisInput, IForensicAnalyzer
from govdoc.core.interfaces.forensic_cache import IForensicCache
from govdoc.core.use_cases.biometric_dedup import BiometricDeduplicationGate
from govdoc.core.use_cases.decide_disposition import DecisionPolicy
from govdoc.core.use_cases.document_lifecycle import DocumentLifecycleManager, TransitionResult

logger = logging.getLogger(__name__)


def file_sha256(file_bytes: bytes) -> str:
    return hashlib.sha256(file_bytes).hexdigest()


@dataclass
class AnalysisOutcome:
    """Everything the upload path produced for one document."""
    document: Document
    report: ForensicReport
    decision: Decision
    transition: TransitionResult
    from_cache: bool = False
    biometric_hash: str | None = None
    pipeline_version: str = ""
    total_latency_ms: float = 0.0
    stage_latencies: dict = field(default_factory=dict)   # {"cache_ms": 0.1, "analysis_ms": 5200.3, ...}


class ProcessForensicAnalysisUseCase:
    """
    Use Case: document bytes (or an externally produced report) → disposition.

    Dependency Injection: every collaborator comes in through the
    constructor. analyzer and cache are optional; without an analyzer the
    caller must pass a report.
    """

    PIPELINE_VERSION = "1.0.0"

    def __init__(
        self,
        repository: IDocumentRepository,
        policy: DecisionPolicy,
        lifecycle: DocumentLifecycleManager,
        biometric_gate: BiometricDeduplicationGate,
        analyzer: IForensicAnalyzer | None = None,
        cache: IForensicCache | None = None,
        analysis_timeout: float | None = 300.0,
    ):
        self._repo = repository
        self._policy = policy
        self._lifecycle = lifecycle
        self._gate = biometric_gate
        self._analyzer = analyzer
        self._cache = cache
        self._analysis_timeout = analysis_timeout

    def execute(
        self,
        document_id: str,
        file_bytes: bytes | None = None,
        mime_type: str = "image/jpeg",
        report: ForensicReport | None = None,
        options: dict | None = None,
        force_reanalysis: bool = False,
    ) -> AnalysisOutcome:
        """
        Run the pipeline for one PENDING document.

        1. Load document — must be PENDING
        2. Cache lookup by content hash (skipped on force_reanalysis)
        3. Analysis call with the long timeout
        4. Decision Policy
        5. Record the file hash, replace live report
        6. Biometric gate (identity-bearing documents with a face)
        7. Apply disposition

        AnalysisFailed / CollaboratorTimeout leave the document PENDING with
        no report, so the call is safe to retry.
        """
        if file_bytes is None and report is None:
            raise ValidationError("Either file bytes or a forensic report is required")
        if file_bytes is not None and len(file_bytes) == 0:
            raise ValidationError("Empty file")

        stage_latencies: dict[str, float] = {}
        t_start = time.perf_counter()

        # ── 1. Document ────────────────────────────────────
        document = self._repo.get(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        if document.status != DocStatus.PENDING:
            raise InvalidTransition(document_id, document.status.value, "ANALYSIS")

        file_hash = file_sha256(file_bytes) if file_bytes is not None else document.file_hash
        from_cache = False

        # ── 2. Cache ───────────────────────────────────────
        if report is None and self._cache is not None and file_hash and not force_reanalysis:
            t0 = time.perf_counter()
            report = self._cache.get(file_hash)
            stage_latencies["cache_ms"] = round((time.perf_counter() - t0) * 1000, 2)
            from_cache = report is not None

        # ── 3. Analysis ────────────────────────────────────
        if report is None:
            if self._analyzer is None:
                raise AnalysisFailed("No forensic analyzer configured")
            if file_bytes is None:
                raise ValidationError("File bytes are required for analysis")
            t0 = time.perf_counter()
            report = call_with_timeout(
                self._analyzer.analyze,
                AnalysisInput(
                    document_id=document.id,
                    file_bytes=file_bytes,
                    mime_type=mime_type,
                    document_type=document.doc_type.value,
                    options=options or {},
                ),
                timeout=self._analysis_timeout,
                operation="analysis",
            )
            stage_latencies["analysis_ms"] = round((time.perf_counter() - t0) * 1000, 2)
            if self._cache is not None and file_hash:
                self._cache.put(file_hash, report)

        if report.document_id != document.id:
            # Cached report for identical bytes uploaded under another document
            report = dataclasses.replace(report, document_id=document.id)

        # ── 4. Decision ────────────────────────────────────
        t0 = time.perf_counter()
        decision = self._policy.decide(report)
        stage_latencies["decision_ms"] = round((time.perf_counter() - t0) * 1000, 2)

        # ── 5. Live report ─────────────────────────────────
        if file_hash and file_hash != document.file_hash:
            document = self._repo.set_file_hash(document.id, file_hash)
        self._repo.save_report(report, decision)

        # ── 6. Biometric gate ──────────────────────────────
        biometric_hash = None
        if decision.disposition != Disposition.REJECTED:
            t0 = time.perf_counter()
            try:
                biometric_hash = self._gate.evaluate(document, report)
            except DuplicateIdentity:
                self._lifecycle.apply_disposition(
                    document.id,
                    Disposition.REJECTED,
                    actor=SYSTEM_ACTOR,
                    comments="biometric identity already registered to another account",
                    action=AuditAction.REJECTED_DUPLICATE_IDENTITY,
                )
                raise
            stage_latencies["biometric_ms"] = round((time.perf_counter() - t0) * 1000, 2)

        # ── 7. Disposition ─────────────────────────────────
        t0 = time.perf_counter()
        transition = self._lifecycle.apply_disposition(
            document.id,
            decision.disposition,
            actor=SYSTEM_ACTOR,
            metadata={
                "overallScore": report.overall_score,
                "rationale": decision.rationale,
                "analysisId": report.analysis_id,
            },
        )
        stage_latencies["disposition_ms"] = round((time.perf_counter() - t0) * 1000, 2)

        logger.info(
            f"Document {document.id} analysed: score={report.overall_score} "
            f"→ {decision.disposition.value}{' (cached)' if from_cache else ''}"
        )

        return AnalysisOutcome(
            document=transition.document,
            report=report,
            decision=decision,
            transition=transition,
            from_cache=from_cache,
            biometric_hash=biometric_hash,
            pipeline_version=self.PIPELINE_VERSION,
            total_latency_ms=round((time.perf_counter() - t_start) * 1000, 2),
            stage_latencies=stage_latencies,
        )
