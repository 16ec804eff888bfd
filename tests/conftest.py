# 1. Standard Library
from collections.abc import Callable, Generator
from datetime import datetime
from typing import Any

# 2. Third-Party Libraries
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# 3. Application Layers
from customer_directory.api.main import app
from customer_directory.data_access.database import get_session
from customer_directory.data_access.models import UserMeta, UserRecord, UserRole


# --- Setup: Isolated Testing Environment ---

@pytest.fixture(name="session")
def session_fixture() -> Generator[Session, Any, None]:
    """
    Creates a clean, in-memory SQLite user store for every test.
    StaticPool keeps the single connection alive across the TestClient threadpool.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session) -> Callable[..., UserRecord]:
    """Factory that stores a user with its roles and attributes."""

    def make_user(
        login: str,
        email: str,
        roles: tuple[str, ...] = ("customer",),
        registered: datetime | None = None,
        display_name: str = "",
        nicename: str | None = None,
        **attributes: str,
    ) -> UserRecord:
        user = UserRecord(
            user_login=login,
            user_nicename=nicename if nicename is not None else login,
            user_email=email,
            display_name=display_name or login,
            user_registered=registered or datetime(2024, 1, 1, 12, 0, 0),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        assert user.id is not None

        for role in roles:
            session.add(UserRole(user_id=user.id, role=role))
        for key, value in attributes.items():
            session.add(UserMeta(user_id=user.id, meta_key=key, meta_value=value))
        session.commit()
        return user

    return make_user


@pytest.fixture(name="client")
def client_fixture(session: Session) -> Generator[TestClient, Any, None]:
    """TestClient wired to the in-memory store."""
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()

