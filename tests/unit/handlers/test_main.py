"""
Module: test_main.py
Description: Tests for application wiring: lifespan, health and error bodies.
"""

from unittest.mock import AsyncMock, patch

import fakeredis
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from eventrelay.config.settings import settings
from eventrelay.main import app
from eventrelay.storage.redis_store import RedisDueSchedule, RedisEventQueue


@pytest.fixture
def no_workers(monkeypatch):
    monkeypatch.setattr(settings, "run_workers", False)


class TestApplication:

    def test_lifespan_wires_redis_stores(self, no_workers):
        """Test startup connects to Redis and exposes the shared stores."""
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
        with patch("eventrelay.main.connect_redis", new_callable=AsyncMock, return_value=client):
            with TestClient(app) as test_client:
                assert isinstance(app.state.event_queue, RedisEventQueue)
                assert isinstance(app.state.due_schedule, RedisDueSchedule)

                response = test_client.post("/ingest", json={"userID": "u1", "payload": "p1"})
                assert response.status_code == 200

                stats = test_client.get("/stats").json()
                assert stats == {"queue_length": 1, "scheduled_retries": 0}

    def test_health(self, no_workers):
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
        with patch("eventrelay.main.connect_redis", new_callable=AsyncMock, return_value=client):
            with TestClient(app) as test_client:
                response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["version"] == settings.app_version

    def test_error_body_structure(self, no_workers):
        """Test HTTP errors are returned in the structured error envelope."""
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
        with patch("eventrelay.main.connect_redis", new_callable=AsyncMock, return_value=client):
            with TestClient(app) as test_client:
                response = test_client.post("/ingest", content="nope")

        assert response.status_code == 400
        assert response.json() == {
            "error": {"code": 400, "message": "Error parsing event", "type": "http_exception"}
        }

    def test_store_unreachable_aborts_startup(self, no_workers):
        """Test an unreachable store at startup is fatal."""
        with patch(
            "eventrelay.main.connect_redis",
            new_callable=AsyncMock,
            side_effect=RedisConnectionError("refused")
        ):
            with pytest.raises(RedisConnectionError):
                with TestClient(app):
                    pass
