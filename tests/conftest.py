"""Test configuration and fixtures."""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "disabled"
os.environ["AUTO_CREATE_TABLES"] = "false"

import uuid

import pytest
from fastapi.testclient import TestClient

from crm_chat.chat import ChatRelay, ConnectionRegistry, connection_registry
from crm_chat.core.database import SessionLocal, engine
from crm_chat.core.security import Subject, create_access_token, get_password_hash
from crm_chat.models import Base, Customer, User

PASSWORD = "Secret123"


class FakeSocket:
    """Stands in for a websocket; records every event sent to it."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def of_type(self, event_type: str) -> list[dict]:
        return [event for event in self.sent if event["type"] == event_type]


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    connection_registry.connections.clear()
    connection_registry.rooms.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def factory(role: str = "agent", email: str | None = None, name: str | None = None) -> User:
        user = User(
            email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=get_password_hash(PASSWORD),
            role=role,
            name=name or role.title(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_customer(db):
    def factory(name: str = "Acme Corp", assigned_to: uuid.UUID | None = None) -> Customer:
        customer = Customer(
            name=name,
            email=f"{uuid.uuid4().hex[:8]}@customer.example.com",
            assigned_to=assigned_to,
        )
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return factory


@pytest.fixture
def agent(make_user):
    return make_user("agent")


@pytest.fixture
def customer(make_customer):
    return make_customer()


def subject_of(user: User) -> Subject:
    return Subject(id=str(user.id), email=user.email, role=user.role)


def token_for(user: User) -> str:
    return create_access_token(subject=user.id, email=user.email, role=user.role)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def relay(registry):
    return ChatRelay(registry, SessionLocal)


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client
