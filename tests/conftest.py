import os

# Never reach a real text service from the test suite
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENROUTER_API_KEY", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sabia import models  # noqa: F401  (registers the tables)
from sabia.catalogue import SqlCatalogue
from sabia.db import Base
from sabia.diagnostic import SessionStore
from sabia.engine import Engine
from sabia.gateway import SqlGateway
from sabia.schemas import SubjectArea

from factories import RecordingFeedback


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool, future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    """Session on a fresh in-memory database."""
    session = sessionmaker(bind=db_engine, autoflush=False, future=True)()
    yield session
    session.close()


@pytest.fixture
def gateway(db):
    return SqlGateway(db)


@pytest.fixture
def catalogue(db):
    return SqlCatalogue(db)


@pytest.fixture
def feedback():
    return RecordingFeedback()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def engine(gateway, catalogue, sessions, feedback):
    return Engine(
        gateway,
        catalogue,
        sessions,
        feedback,
        areas=[SubjectArea.mathematics, SubjectArea.languages],
        xp_per_level=1000,
        feedback_timeout=0.5,
    )
