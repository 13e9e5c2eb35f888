"""Tests for the health check endpoint."""

from fastapi.testclient import TestClient

from repodrop.main import app

client = TestClient(app)


def test_health_endpoint():
    """Test that the health endpoint returns correct response."""
    response = client.get("/health")

    # Assert status code is 200
    assert response.status_code == 200

    data = response.json()

    assert "status" in data
    assert "service" in data
    assert "version" in data
    assert data["status"] == "ok"


def test_health_endpoint_values():
    """Test that the health endpoint returns expected values."""
    response = client.get("/health")

    data = response.json()

    assert data["service"] == "repodrop"
    assert data["version"] == "0.1.0"
    assert data["converter"] in ("local", "remote")
