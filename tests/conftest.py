from datetime import datetime

import pytest

from govdoc.api.dependencies import build_container
from govdoc.config.settings import Settings
from govdoc.core.entities.document import DocType, Document
from govdoc.core.entities.user import Role, UserProfile
from govdoc.infrastructure.db.database import create_db_engine, create_session_factory, init_db
from govdoc.infrastructure.db.repository import BiometricRepository, DocumentRepository

from tests.fakes import FakeAnalyzer, FakeIssuer


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'govdoc-test.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return DocumentRepository(session_factory)


@pytest.fixture
def biometric_index(session_factory):
    return BiometricRepository(session_factory)


@pytest.fixture
def issuer():
    return FakeIssuer()


@pytest.fixture
def analyzer():
    return FakeAnalyzer(score=90)


@pytest.fixture
def citizen(repository):
    return repository.add_user(
        UserProfile(
            id="citizen-1",
            first_name="Amina",
            last_name="Otieno",
            email="amina@example.org",
            phone_number="+254700000001",
            role=Role.CITIZEN,
            wallet_address="WaLLet1111111111111111111111111111111111111",
        )
    )


@pytest.fixture
def other_citizen(repository):
    return repository.add_user(
        UserProfile(
            id="citizen-2",
            first_name="Brian",
            last_name="Mwangi",
            phone_number="+254700000002",
            role=Role.CITIZEN,
            wallet_address="WaLLet2222222222222222222222222222222222222",
        )
    )


@pytest.fixture
def make_document(repository, citizen):
    counter = {"n": 0}

    def _make(doc_type: DocType = DocType.NATIONAL_ID, user_id: str | None = None, **kwargs) -> Document:
        counter["n"] += 1
        kwargs.setdefault("id", f"doc-{counter['n']}")
        kwargs.setdefault("file_hash", f"hash-{counter['n']}")
        kwargs.setdefault("created_at", datetime(2026, 1, 1, 8, 0, counter["n"] % 60))
        return repository.add(
            Document(user_id=user_id or citizen.id, doc_type=doc_type, title=doc_type.value, **kwargs)
        )

    return _make


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        gemini_api_key="",
        llm_enabled=False,
        issuer_wallet_address="GovIssuer111111111111111111111111111111111",
        analysis_timeout_seconds=5,
        issuance_timeout_seconds=5,
        health_timeout_seconds=2,
        log_level="WARNING",
    )


@pytest.fixture
def container(settings, session_factory, analyzer, issuer):
    return build_container(
        settings=settings,
        session_factory=session_factory,
        analyzer=analyzer,
        issuance_service=issuer,
    )
