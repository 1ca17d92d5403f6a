"""
Unit tests for api/routes/health.py: health endpoint.
"""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from api.main import app


class TestHealthCheck:
    """Test GET /health."""

    @pytest.fixture
    def client(self):
        return TestClient(app)

    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_response_fields(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "timestamp" in data
        assert isinstance(data["timestamp"], float)

    def test_provider_configuration(self, client):
        with patch("api.routes.health.settings") as mock_settings:
            mock_settings.get_text_provider_order.return_value = ["openai", "mock"]
            mock_settings.get_image_provider_order.return_value = ["gemini"]
            mock_settings.get_api_key.side_effect = lambda name: "key" if name == "gemini" else ""

            data = client.get("/health").json()

        assert data["providers"]["text"] == [
            {"name": "openai", "configured": False},
            {"name": "mock", "configured": True},
        ]
        assert data["providers"]["image"] == [{"name": "gemini", "configured": True}]
