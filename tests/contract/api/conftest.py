import pytest
from fastapi.testclient import TestClient

from proofquest.app import create_app
from proofquest.core.service.progress.verifier.mock import MockVerifier


@pytest.fixture
def app():
    return create_app(verifier=MockVerifier(success_rate=1.0, delay=0, seed=11), bcrypt_rounds=4)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/auth/social", json={"provider": "google"})
    return {"Authorization": f"Bearer {response.json()['token']}"}
