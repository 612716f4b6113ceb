"""Test doubles for the analysis and issuance collaborators."""

import threading
import time
import uuid

from govdoc.core.entities.document import BlockchainType
from govdoc.core.entities.forensic_report import ForensicReport, ScoreBreakdown, TamperRisk
from govdoc.core.errors import IssuanceFailed
from govdoc.core.interfaces.forensic_analyzer import AnalysisInput, IForensicAnalyzer
from govdoc.core.interfaces.issuance_service import (
    AttestationRequest,
    IIssuanceService,
    IssuanceReceipt,
)


def make_report(
    document_id: str = "doc-1",
    score: int = 90,
    tampering: bool = False,
    risk: TamperRisk = TamperRisk.NONE,
    face: bool = False,
    features: dict | None = None,
    **overrides,
) -> ForensicReport:
    fields = dict(
        document_id=document_id,
        analysis_id=str(uuid.uuid4()),
        overall_score=score,
        breakdown=ScoreBreakdown(
            integrity=score, authenticity=score, metadata=score, ocr=score, biometric=score, security=score
        ),
        tampering_detected=tampering,
        tamper_risk=risk,
        has_face_image=face,
        face_confidence=0.93 if face else 0.0,
        face_quality="GOOD" if face else None,
        facial_features=features if features is not None else ({"hasGlasses": False} if face else None),
        extracted_text="REPUBLIC OF KENYA NATIONAL ID",
        ocr_confidence=0.9,
        ai_model="fake-model",
    )
    fields.update(overrides)
    return ForensicReport(**fields)


class FakeAnalyzer(IForensicAnalyzer):
    """Returns canned reports; records every call."""

    def __init__(self, score: int = 90, delay: float = 0.0, **report_kwargs):
        self.score = score
        self.delay = delay
        self.report_kwargs = report_kwargs
        self.calls: list[AnalysisInput] = []

    def analyze(self, request: AnalysisInput) -> ForensicReport:
        self.calls.append(request)
        if self.delay:
            time.sleep(self.delay)
        return make_report(request.document_id, score=self.score, **self.report_kwargs)


class FakeIssuer(IIssuanceService):
    """Deterministic issuance backend that can be told to fail or to stall."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.requests = []
        self._lock = threading.Lock()

    def issue(self, request) -> IssuanceReceipt:
        with self._lock:
            self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise IssuanceFailed("issuer node unreachable", request.document_id)
        kind = (
            BlockchainType.SAS_ATTESTATION
            if isinstance(request, AttestationRequest)
            else BlockchainType.NFT_METAPLEX
        )
        return IssuanceReceipt(
            reference_id=f"ref_{request.document_id}",
            transaction_reference=f"tx_{request.document_id}",
            blockchain_type=kind,
        )
