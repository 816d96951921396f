import pytest
from fastapi.testclient import TestClient

from fakes import InMemoryInventoryStore
from stockroom.api.dependencies import (
    get_image_storage,
    get_password_hasher,
    get_store,
    get_token_issuer,
)
from stockroom.core.security import PasswordHasher, TokenIssuer
from stockroom.main import app
from stockroom.storage.local_storage import LocalImageStorage

TEST_SECRET = "test-secret-key"


@pytest.fixture
def store():
    return InMemoryInventoryStore()


@pytest.fixture
def image_storage(tmp_path):
    return LocalImageStorage(image_dir=tmp_path / "products", max_size=1024)


@pytest.fixture
def tokens():
    return TokenIssuer(secret=TEST_SECRET, expires_minutes=60)


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def client(store, image_storage, tokens, hasher):
    """TestClient wired to the in-memory store and a tmp image directory"""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_image_storage] = lambda: image_storage
    app.dependency_overrides[get_token_issuer] = lambda: tokens
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    # No `with` block: the lifespan (scheduler, create_all) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Stock Keeper", "email": "keeper@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def category_id(client, auth_headers):
    response = client.post(
        "/api/categories",
        json={"name": "Hardware", "description": "Tools and parts"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["id"]

