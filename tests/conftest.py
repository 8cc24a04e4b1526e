import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carechain import registry
from carechain.db import init_db

ADMIN = "admin"
PATIENT = "alice"
PROVIDER = "genhospital"


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(ADMIN, bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def parties(db):
    """A verified patient and a verified provider."""
    registry.register_patient(db, PATIENT, 10, "Alice")
    registry.register_provider(db, PROVIDER, 10, "GenHospital", "cardiology", "LIC-001")
    registry.verify_patient(db, ADMIN, 20, PATIENT)
    registry.verify_provider(db, ADMIN, 20, PROVIDER)
    return PATIENT, PROVIDER
