# tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import ticketing.models  # noqa: F401  (registers every table on Base.metadata)
from ticketing.db.base_class import Base
from ticketing.db.session import create_engine, get_db
from ticketing.main import app


# --- Test Database Setup ---
# Each test gets its own SQLite file so threads can open separate connections.
@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'ticketing_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(session_factory):
    """
    Provides a TestClient backed by the per-test database.
    Authentication is real: tests send bearer tokens from tests/utils/auth.py.
    """

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
