"""Unit tests for the mock WoowUp API."""

import base64

import pytest
from fastapi.testclient import TestClient

from magento_woowup.mock_servers.app import create_app, create_mock_app

AUTH = {"Authorization": "Basic wu-key"}


@pytest.fixture
def client():
    return TestClient(create_mock_app(api_key="wu-key"))


def test_health_needs_no_auth(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_wrong_key_is_rejected(client):
    response = client.post("/users", json={"email": "a@b.com"}, headers={"Authorization": "Basic nope"})

    assert response.status_code == 401
    assert response.json() == {"code": "unauthorized", "message": "Invalid API key"}


def test_user_lifecycle(client):
    assert client.get("/multiusers/exist", params={"email": "a@b.com"}, headers=AUTH).json()["payload"]["exist"] is False

    assert client.post("/users", json={"email": "a@b.com"}, headers=AUTH).status_code == 201
    assert client.get("/multiusers/exist", params={"email": "a@b.com"}, headers=AUTH).json()["payload"]["exist"] is True
    assert client.put("/multiusers", json={"email": "a@b.com", "first_name": "Ana"}, headers=AUTH).status_code == 200


def test_purchase_requires_known_customer(client):
    response = client.post("/purchases", json={"invoice_number": "1", "email": "x@y.com"}, headers=AUTH)

    assert response.status_code == 404
    assert response.json()["code"] == "user_not_found"


def test_duplicate_purchase(client):
    client.post("/users", json={"email": "a@b.com"}, headers=AUTH)
    client.post("/purchases", json={"invoice_number": "1", "email": "a@b.com"}, headers=AUTH)

    response = client.post("/purchases", json={"invoice_number": "1", "email": "a@b.com"}, headers=AUTH)

    assert response.status_code == 409
    assert response.json()["code"] == "duplicated_purchase_number"
    assert response.json()["payload"]["errors"]


def test_product_update_unknown_sku(client):
    encoded = base64.b64encode(b"SKU-1").decode()

    response = client.put(f"/products/{encoded}", json={"sku": "SKU-1"}, headers=AUTH)

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_error_rate_simulates_failures():
    client = TestClient(create_mock_app(random_seed=1, error_rate=1.0))

    response = client.get("/multiusers/exist", params={"email": "a@b.com"}, headers=AUTH)

    assert response.status_code == 500


def test_factory_reads_environment(monkeypatch):
    monkeypatch.setenv("MOCK_API_KEY", "env-key")

    client = TestClient(create_app())

    assert client.get("/multiusers/exist", headers=AUTH).status_code == 401
    assert client.get("/multiusers/exist", headers={"Authorization": "Basic env-key"}).status_code == 200
