import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GIST_ENV", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gist.hashing import Sha256FieldHasher
from gist.models import Base
from gist.registry import StateRegistry
from gist.verifier import AllowAllVerifier, Groth16Proof

ZERO_PROOF = Groth16Proof(a=[0, 0], b=[[0, 0], [0, 0]], c=[0, 0])


@pytest.fixture()
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def hasher():
    return Sha256FieldHasher()


@pytest.fixture()
def registry(db, hasher):
    return StateRegistry(db, hasher, depth=64, verifier=AllowAllVerifier())


@pytest.fixture()
def transit(registry):
    """Run one transition and commit it, rolling back on rejection."""

    def _transit(id, old, new, genesis, block, ts, reg=None):
        reg = reg or registry
        try:
            ev = reg.transit_state(id, old, new, genesis, ZERO_PROOF, block, ts)
            reg.db.commit()
            return ev
        except Exception:
            reg.db.rollback()
            raise

    return _transit


@pytest.fixture()
def client(session_factory):
    from fastapi.testclient import TestClient
    from app import app
    from gist.db import get_db
    from gist.deps import get_verifier

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_verifier] = lambda: AllowAllVerifier()
    yield TestClient(app)
    app.dependency_overrides.clear()
