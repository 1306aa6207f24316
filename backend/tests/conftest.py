"""Pytest configuration: one app per test over a temporary SQLite file."""
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from lifehub import crud, schemas
from lifehub.core.config import Settings
from lifehub.main import create_app
from lifehub.schemas.item import ItemType

PASSWORD = "Password123!"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'test.db'}",
        SECRET_KEY="test-secret-key",
        SHARE_LINK_SECRET="test-share-secret",
        SHARE_LINK_BASE_URL="http://testserver",
    )


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(app) -> Generator[Session, None, None]:
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def register(client: TestClient, email: str, password: str = PASSWORD) -> Dict[str, str]:
    """Register an account through the API and return its auth headers."""
    r = client.post("/api/v1/auth/register", json={"email": email, "password": password, "name": email.split("@")[0]})
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture()
def auth_headers(client: TestClient) -> Dict[str, str]:
    return register(client, "alice@example.com")


@pytest.fixture()
def other_headers(client: TestClient) -> Dict[str, str]:
    return register(client, "bob@example.com")


@pytest.fixture()
def owner(db: Session):
    return crud.user.create(db, obj_in=schemas.UserCreate(email="owner@example.com", password=PASSWORD))


@pytest.fixture()
def stranger(db: Session):
    return crud.user.create(db, obj_in=schemas.UserCreate(email="stranger@example.com", password=PASSWORD))


@pytest.fixture()
def note(db: Session, owner):
    return crud.item.create_with_user(
        db, item_type=ItemType.NOTE, payload={"title": "Groceries", "content": "milk"}, user_id=owner.id
    )
