# tests/test_health.py
from fastapi import status
from fastapi.testclient import TestClient


def test_root_responds(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["name"] == "Nexus Campus"


def test_health(client: TestClient) -> None:
    r = client.get("/health")
    assert r.json() == {"status": "ok"}


def test_system_health_checks_database(client: TestClient) -> None:
    r = client.get("/api/v1/system/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["components"]["database"] == "healthy"


def test_system_config_hides_secrets(client: TestClient) -> None:
    r = client.get("/api/v1/system/config")
    data = r.json()
    assert data["signing"]["configured"] is True
    assert "test-hmac-secret" not in r.text
    assert "secret_key" not in data["app"]
