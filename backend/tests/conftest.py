import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test-signaling.db")

import pytest
from sqlalchemy.orm import sessionmaker

import signaling.models  # noqa: F401
from signaling.core.coordinator import SignalingCoordinator
from signaling.core.locks import StripedLocks
from signaling.db.session import Base, build_engine


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'calls.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks():
    return StripedLocks(stripes=8, timeout=2.0), StripedLocks(stripes=8, timeout=2.0)


@pytest.fixture
def make_coordinator(session_factory, locks):
    """Build coordinators on fresh sessions that share one set of locks, like request handlers do."""
    sessions = []
    call_locks, side_locks = locks

    def factory() -> SignalingCoordinator:
        session = session_factory()
        sessions.append(session)
        return SignalingCoordinator(session, locks=call_locks, side_locks=side_locks)

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def coordinator(make_coordinator) -> SignalingCoordinator:
    return make_coordinator()
