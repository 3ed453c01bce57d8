import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """App client over a fresh in-memory store; lifespan runs on enter."""
    from habitflow.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def signed_in(client):
    """Client holding a session cookie for a freshly registered user."""
    response = client.post(
        "/signup",
        json={
            "email": "ada@example.com",
            "password": "pw",
            "first_name": "Ada",
            "last_name": "Lovelace",
        },
    )
    assert response.status_code == 201
    return client
