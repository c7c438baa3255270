import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app

# One in-memory database per test run; StaticPool hands every session the
# same connection, so the app and the fixtures see the same rows.
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Session on a freshly created schema; tables are dropped afterwards."""
    # Table classes must be registered on the metadata before create_all
    from app.models.match import Match  # noqa: F401
    from app.models.team import Team  # noqa: F401
    from app.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """API client bound to the test engine instead of DATABASE_URL."""
    app.dependency_overrides[get_session] = override_get_session

    # Installed before the client starts so no request reaches the app engine
    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
