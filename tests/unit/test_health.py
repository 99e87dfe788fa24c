"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from insights.main import app

client = TestClient(app)


def test_healthz_endpoint():
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readyz_database_healthy():
    db_health = {"healthy": True, "pool_stats": {"pool_size": 2, "pool_available": 2}}
    with patch("insights.routes.health.db_health_check", AsyncMock(return_value=db_health)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 2
    assert isinstance(data["checks"]["database"]["latency_ms"], (int, float))
    assert "backend" in data["checks"]["reason_classification"]


def test_readyz_database_unhealthy():
    db_health = {"healthy": False, "error": "Pool not initialized"}
    with patch("insights.routes.health.db_health_check", AsyncMock(return_value=db_health)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"
