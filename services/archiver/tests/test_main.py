"""Tests for the archiver HTTP API."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from services.archiver.app.main import app, get_store, start_workers
from shared.config.settings import WorkerSettings
from shared.schemas.article import Article
from shared.storage.errors import BackendUnavailable


def client_for(store):
    app.dependency_overrides[get_store] = lambda: store
    # Not used as a context manager: the lifespan (real Redis, workers) stays off.
    return TestClient(app)


@pytest.fixture
def client(store):
    yield client_for(store)
    app.dependency_overrides.clear()


@pytest.fixture
def producer_client(client_only_store):
    yield client_for(client_only_store)
    app.dependency_overrides.clear()


def test_app_creation():
    assert app.title == "Crusty Buffer Archiver"


def test_add_article_queues_it(client, store):
    response = client.post("/articles", json={"url": "https://example.com/post"})

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["url"] == "https://example.com/post"
    assert "content" not in body
    assert store.pending_jobs() == 1
    assert store.dequeue() == Article.model_validate(body).id


def test_add_article_in_producer_mode(producer_client, client_only_store):
    response = producer_client.post("/articles", json={"url": "https://example.com/post"})

    assert response.status_code == 201
    assert client_only_store.pending_jobs() == 1


def test_add_article_rejects_invalid_url(client):
    response = client.post("/articles", json={"url": "not a url"})
    assert response.status_code == 422


def test_add_article_reports_store_failure(client, store, monkeypatch):
    def broken_save(article):
        raise BackendUnavailable("redis went away")

    monkeypatch.setattr(store, "save", broken_save)

    response = client.post("/articles", json={"url": "https://example.com/post"})
    assert response.status_code == 503


def test_list_articles(client):
    for i in range(3):
        client.post("/articles", json={"url": f"https://example.com/{i}"})

    response = client.get("/articles", params={"limit": 2})

    assert response.status_code == 200
    assert [a["url"] for a in response.json()] == ["https://example.com/2", "https://example.com/1"]


def test_list_articles_limit_is_bounded(client):
    assert client.get("/articles", params={"limit": 0}).status_code == 422
    assert client.get("/articles", params={"limit": 101}).status_code == 422


def test_get_archived_article_includes_content(client, store):
    article = Article.create("https://example.com/post")
    store.save(article)
    article.mark_archived("T", "E", "<p>c</p>")
    store.save(article)

    response = client.get(f"/articles/{article.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "archived"
    assert body["content"] == "<p>c</p>"
    assert body["archived_at"] is not None


def test_get_unknown_article(client):
    assert client.get(f"/articles/{uuid4()}").status_code == 404


def test_get_malformed_id(client):
    assert client.get("/articles/not-a-uuid").status_code == 422


def test_health_with_both_stores(client):
    body = client.get("/archiver/health").json()

    assert body["status"] == "healthy"
    assert {c["name"] for c in body["checks"]} == {"redis", "cold_store"}


def test_health_in_producer_mode_is_degraded(producer_client):
    body = producer_client.get("/archiver/health").json()
    assert body["status"] == "degraded"


def test_readiness(producer_client):
    body = producer_client.get("/archiver/health/ready").json()

    assert body["status"] == "ready"
    assert body["critical_dependencies"] == {"redis": "healthy"}


def test_liveness(client):
    assert client.get("/archiver/health/live").json() == {"status": "alive", "service": "archiver"}


def test_status_reports_queue_depth(client):
    assert client.get("/archiver/status").json() == {"is_idle": True, "pending_jobs": 0}

    client.post("/articles", json={"url": "https://example.com/post"})

    assert client.get("/archiver/status").json() == {"is_idle": False, "pending_jobs": 1}


def test_metrics_endpoint(client):
    response = client.get("/archiver/metrics")

    assert response.status_code == 200
    assert "archiver_jobs_total" in response.text


def test_start_workers_respects_disabled_flag(store, monkeypatch):
    monkeypatch.setenv("WORKER_ENABLED", "false")
    assert start_workers(store, None, WorkerSettings()) == []
