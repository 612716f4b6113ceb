import pytest

from govdoc.core.entities.user import UserProfile
from govdoc.infrastructure.db import database
from govdoc.infrastructure.db.database import create_db_engine, create_session_factory, get_db, init_db, ping
from govdoc.infrastructure.db.models import UserRecord
from govdoc.infrastructure.db.repository import DocumentRepository


def make_factory(path):
    engine = create_db_engine(f"sqlite:///{path}")
    init_db(engine)
    return create_session_factory(engine)


def test_no_process_wide_engine():
    assert not hasattr(database, "get_engine")
    assert not hasattr(database, "get_session_factory")


def test_separate_factories_do_not_share_rows(tmp_path):
    first = DocumentRepository(make_factory(tmp_path / "a.db"))
    second = DocumentRepository(make_factory(tmp_path / "b.db"))

    first.add_user(UserProfile(id="citizen-a"))

    assert first.get_owner("citizen-a") is not None
    assert second.get_owner("citizen-a") is None


def test_get_db_rolls_back_on_error(tmp_path):
    factory = make_factory(tmp_path / "c.db")

    with pytest.raises(RuntimeError):
        with get_db(factory) as db:
            db.add(UserRecord(id="ghost", role="CITIZEN"))
            db.flush()
            raise RuntimeError("abort")

    with get_db(factory) as db:
        assert db.get(UserRecord, "ghost") is None


def test_ping(tmp_path):
    assert ping(make_factory(tmp_path / "d.db")) is True
