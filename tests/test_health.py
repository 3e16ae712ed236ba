"""
API tests: health, cache diagnostics and invalidation endpoints
"""
import pytest
from fastapi.testclient import TestClient

from insightcache.cache import ResultCache
from insightcache.main import create_app
from conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    cache = ResultCache(clock=clock)
    for key in ("u1:photo:1", "u1:photo:2", "u1:predictions", "u2:patterns"):
        cache.store.set(key, {"key": key}, 600, clock.now)
    return cache


@pytest.fixture
def client(cache):
    with TestClient(create_app(cache=cache)) as client:
        yield client


def test_health_endpoint_returns_200(client):
    """Test that /health returns HTTP 200"""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_endpoint_returns_ok_status(client):
    """Test that /health returns status: ok"""
    assert client.get("/health").json()["status"] == "ok"


def test_lifespan_starts_and_stops_gc(cache):
    """The app owns the janitor thread for the lifetime of the process"""
    with TestClient(create_app(cache=cache)):
        assert cache.janitor.is_running is True
    assert cache.janitor.is_running is False


def test_cache_stats(client):
    """Test that /cache/stats reports stored entries"""
    data = client.get("/cache/stats").json()
    assert data["entries"] == 4
    assert {item["key"] for item in data["items"]} == {
        "u1:photo:1", "u1:photo:2", "u1:predictions", "u2:patterns"
    }


def test_cache_status_for_cached_key(client, clock):
    """Test that /cache/status reports age and remaining TTL"""
    clock.advance(100)
    data = client.get("/cache/status/u1:predictions").json()
    assert data["cached"] is True
    assert data["is_stale"] is False
    assert data["remaining_ttl_seconds"] == 500.0


def test_cache_status_for_unknown_key(client):
    data = client.get("/cache/status/u9:nothing").json()
    assert data["cached"] is False


def test_invalidate_by_key(client, cache):
    response = client.post("/cache/invalidate", json={"key": "u1:predictions"})
    assert response.status_code == 200
    assert response.json() == {"invalidated": 1}
    assert "u1:predictions" not in cache.store


def test_invalidate_by_pattern(client, cache):
    response = client.post("/cache/invalidate", json={"pattern": "photo"})
    assert response.json() == {"invalidated": 2}
    assert sorted(cache.store.keys()) == ["u1:predictions", "u2:patterns"]


def test_invalidate_requires_exactly_one_selector(client):
    assert client.post("/cache/invalidate", json={}).status_code == 400
    both = {"key": "u1:predictions", "pattern": "photo"}
    assert client.post("/cache/invalidate", json=both).status_code == 400
    assert client.post("/cache/invalidate", json={"pattern": ""}).status_code == 400


def test_logout_invalidates_user(client, cache):
    response = client.post("/cache/invalidate/user/u1")
    assert response.json() == {"invalidated": 3}
    assert cache.store.keys() == ["u2:patterns"]


def test_clear_cache(client, cache):
    assert client.post("/cache/clear").json() == {"invalidated": 4}
    assert len(cache.store) == 0
