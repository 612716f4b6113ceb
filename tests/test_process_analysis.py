import pytest

from govdoc.core.entities.audit_log import AuditAction
from govdoc.core.entities.decision import Disposition
from govdoc.core.entities.document import DocStatus, DocType
from govdoc.core.entities.forensic_report import TamperRisk
from govdoc.core.entities.user import Actor, Role
from govdoc.core.errors import (
    AnalysisFailed,
    CollaboratorTimeout,
    DuplicateIdentity,
    InvalidTransition,
    ValidationError,
)
from govdoc.core.use_cases.audit_queue import AuditQueueUseCase
from govdoc.core.use_cases.biometric_dedup import BiometricDeduplicationGate
from govdoc.core.use_cases.decide_disposition import DecisionPolicy
from govdoc.core.use_cases.document_lifecycle import DocumentLifecycleManager
from govdoc.core.use_cases.forensic_status import ForensicStatusUseCase
from govdoc.core.use_cases.process_analysis import ProcessForensicAnalysisUseCase
from govdoc.infrastructure.cache.forensic_cache import InMemoryForensicCache

from tests.fakes import FakeAnalyzer, make_report

FILE = b"\xff\xd8\xff\xe0fake-jpeg-bytes"
MAKER = Actor(user_id="maker-1", role=Role.MAKER)


@pytest.fixture
def build(repository, biometric_index, issuer):
    def _build(analyzer=None, cache=None, analysis_timeout=5.0):
        lifecycle = DocumentLifecycleManager(repository, issuance_service=issuer, issuance_timeout=5)
        return ProcessForensicAnalysisUseCase(
            repository=repository,
            policy=DecisionPolicy(),
            lifecycle=lifecycle,
            biometric_gate=BiometricDeduplicationGate(biometric_index),
            analyzer=analyzer,
            cache=cache,
            analysis_timeout=analysis_timeout,
        )

    return _build


def test_high_score_is_verified_and_issued_once(build, repository, issuer, make_document):
    doc = make_document()
    outcome = build(FakeAnalyzer(score=90)).execute(doc.id, FILE)

    assert outcome.decision.disposition == Disposition.APPROVED
    assert outcome.document.status == DocStatus.VERIFIED
    assert outcome.transition.issuance is not None
    assert len(issuer.requests) == 1
    assert [e.action for e in repository.list_audit_logs(doc.id)] == [AuditAction.AUTO_VERIFIED]
    assert {"analysis_ms", "decision_ms", "disposition_ms"} <= set(outcome.stage_latencies)


def test_mid_score_goes_to_the_audit_queue(build, repository, issuer, make_document):
    doc = make_document()
    outcome = build(FakeAnalyzer(score=75)).execute(doc.id, FILE)

    assert outcome.decision.disposition == Disposition.REVIEW
    assert repository.get(doc.id).status == DocStatus.PENDING
    assert issuer.requests == []

    page = AuditQueueUseCase(repository).list_pending(actor=MAKER)
    assert [c.document.id for c in page.items] == [doc.id]

    status = ForensicStatusUseCase(repository, DecisionPolicy()).get_status(doc.id, MAKER)
    assert status["decision"] == "UNDER_REVIEW"
    assert status["overallScore"] == 75
    assert status["blockchainStatus"] == "PENDING_HUMAN_REVIEW"


def test_low_score_is_rejected(build, repository, make_document):
    doc = make_document()
    build(FakeAnalyzer(score=40)).execute(doc.id, FILE)

    assert repository.get(doc.id).status == DocStatus.REJECTED
    assert repository.list_audit_logs(doc.id)[0].action == AuditAction.AUTO_REJECTED


def test_tampering_overrides_high_score(build, repository, issuer, make_document):
    doc = make_document()
    outcome = build(FakeAnalyzer(score=95, tampering=True, risk=TamperRisk.CRITICAL)).execute(doc.id, FILE)

    assert outcome.decision.tamper_override
    assert repository.get(doc.id).status == DocStatus.REJECTED
    assert issuer.requests == []


def test_identical_bytes_hit_the_cache(build, make_document):
    analyzer = FakeAnalyzer(score=78)
    use_case = build(analyzer, cache=InMemoryForensicCache())
    first, second = make_document(), make_document()

    use_case.execute(first.id, FILE)
    outcome = use_case.execute(second.id, FILE)

    assert len(analyzer.calls) == 1
    assert outcome.from_cache is True
    assert outcome.report.document_id == second.id


def test_force_reanalysis_bypasses_cache(build, make_document):
    analyzer = FakeAnalyzer(score=78)
    use_case = build(analyzer, cache=InMemoryForensicCache())
    first, second = make_document(), make_document()

    use_case.execute(first.id, FILE)
    use_case.execute(second.id, FILE, force_reanalysis=True)

    assert len(analyzer.calls) == 2


def test_timeout_leaves_document_pending_without_report(build, repository, make_document):
    doc = make_document()
    use_case = build(FakeAnalyzer(score=90, delay=0.5), analysis_timeout=0.05)

    with pytest.raises(CollaboratorTimeout):
        use_case.execute(doc.id, FILE)

    assert repository.get(doc.id).status == DocStatus.PENDING
    assert repository.get_report(doc.id) is None
    assert repository.list_audit_logs(doc.id) == []


def test_missing_analyzer_fails_cleanly(build, repository, make_document):
    doc = make_document()
    with pytest.raises(AnalysisFailed):
        build(analyzer=None).execute(doc.id, FILE)
    assert repository.get(doc.id).status == DocStatus.PENDING


def test_external_report_skips_the_analyzer(build, repository, make_document):
    doc = make_document()
    outcome = build(analyzer=None).execute(doc.id, report=make_report(doc.id, score=86))
    assert outcome.document.status == DocStatus.VERIFIED


def test_input_validation(build, make_document):
    doc = make_document()
    use_case = build(FakeAnalyzer())
    with pytest.raises(ValidationError):
        use_case.execute(doc.id)
    with pytest.raises(ValidationError):
        use_case.execute(doc.id, b"")


def test_resolved_document_cannot_be_reanalysed(build, make_document):
    doc = make_document()
    use_case = build(FakeAnalyzer(score=40))
    use_case.execute(doc.id, FILE)
    with pytest.raises(InvalidTransition):
        use_case.execute(doc.id, FILE)


def test_biometric_duplicate_rejects_second_account(build, repository, make_document, other_citizen):
    analyzer = FakeAnalyzer(score=90, face=True)
    use_case = build(analyzer)
    first = make_document(DocType.PASSPORT)
    second = make_document(DocType.NATIONAL_ID, user_id=other_citizen.id)

    outcome = use_case.execute(first.id, FILE)
    assert outcome.biometric_hash is not None

    with pytest.raises(DuplicateIdentity) as exc_info:
        use_case.execute(second.id, FILE + b"other-scan")

    assert exc_info.value.existing_owner.id == first.user_id
    assert repository.get(second.id).status == DocStatus.REJECTED
    (entry,) = repository.list_audit_logs(second.id)
    assert entry.action == AuditAction.REJECTED_DUPLICATE_IDENTITY


def test_rejected_documents_skip_the_biometric_gate(build, biometric_index, make_document, citizen):
    doc = make_document(DocType.PASSPORT)
    build(FakeAnalyzer(score=30, face=True)).execute(doc.id, FILE)
    assert biometric_index.get(citizen.id) is None
