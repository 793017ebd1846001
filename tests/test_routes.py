"""Tests for the HTTP surface."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from tubeloader import config
from tubeloader.main import create_app
from tubeloader.routes import require_credential


@pytest.fixture
def service(make_service):
    return make_service(max_bulk_items=3)


@pytest.fixture
def anon_client(service):
    with TestClient(create_app(service)) as c:
        yield c


@pytest.fixture
def client(service, credential):
    app = create_app(service)
    app.dependency_overrides[require_credential] = lambda: credential
    with TestClient(app) as c:
        yield c


def test_health(anon_client):
    body = anon_client.get("/").json()

    assert body["status"] == "ok"
    assert body["queue"] == {"capacity": 2, "running": 0, "pending": 0}
    assert body["jobs"] == {"queued": 0, "running": 0, "done": 0, "failed": 0}


def test_health_counts_jobs_by_status(client, fetcher):
    fetcher.fail("https://example.com/bad.mp4", "Failed to fetch source: 404")
    client.post("/api/upload", json={"items": [
        {"sourceUrl": "https://example.com/ok.mp4"},
        {"sourceUrl": "https://example.com/bad.mp4"},
    ]})

    assert client.get("/").json()["jobs"] == {"queued": 0, "running": 0, "done": 1, "failed": 1}


def test_config(anon_client, monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", None)

    body = anon_client.get("/api/config").json()

    assert body == {
        "redirectUri": "http://testserver/auth/google/callback",
        "maxConcurrentUploads": 2,
        "maxBulkItems": 3,
    }


def test_config_prefers_base_url(anon_client, monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", "https://uploads.example.com")

    body = anon_client.get("/api/config").json()

    assert body["redirectUri"] == "https://uploads.example.com/auth/google/callback"


def test_auth_status_signed_out(anon_client):
    assert anon_client.get("/api/auth/status").json() == {"authenticated": False}


def test_upload_requires_sign_in(anon_client, store):
    resp = anon_client.post("/api/upload", json={"items": [{"sourceUrl": "https://example.com/a.mp4"}]})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated. Sign in with Google first."}
    assert len(store) == 0


def test_jobs_require_sign_in(anon_client):
    assert anon_client.get("/api/jobs").status_code == 401


def test_upload_and_list(client, publisher):
    resp = client.post("/api/upload", json={"items": [
        {"sourceUrl": "https://example.com/a.mp4", "title": "First"},
        {"sourceUrl": "https://example.com/b.mp4", "title": "Second", "tags": ["t"]},
    ]})

    assert resp.status_code == 200
    job_ids = resp.json()["jobIds"]
    assert len(job_ids) == 2

    jobs = client.get("/api/jobs").json()["jobs"]
    assert [job["id"] for job in jobs] == list(reversed(job_ids))
    assert jobs[0]["title"] == "Second"
    assert jobs[0]["status"] == "done"
    assert jobs[0]["videoId"] == "vid123"
    assert jobs[0]["videoUrl"] == "https://www.youtube.com/watch?v=vid123"
    assert jobs[0]["createdAt"] and jobs[0]["startedAt"] and jobs[0]["completedAt"]

    [request] = [r for r in publisher.requests if r.title == "First"]
    assert request.redirect_context.redirect_uri.endswith("/auth/google/callback")


def test_upload_empty_batch(client, store):
    resp = client.post("/api/upload", json={"items": []})

    assert resp.status_code == 400
    assert resp.json() == {"error": "items must be a non-empty array."}
    assert len(store) == 0


def test_upload_missing_items(client):
    resp = client.post("/api/upload", json={})

    assert resp.status_code == 400
    assert resp.json()["error"] == "items must be a non-empty array."


def test_upload_over_limit(client, store):
    items = [{"sourceUrl": f"https://example.com/{i}.mp4"} for i in range(4)]

    resp = client.post("/api/upload", json={"items": items})

    assert resp.status_code == 400
    assert resp.json()["error"] == "You can upload up to 3 items in one request."
    assert len(store) == 0


def test_upload_invalid_url(client):
    resp = client.post("/api/upload", json={"items": [{"sourceUrl": "file:///etc/passwd"}]})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid URL: file:///etc/passwd"


def test_single_job_status(client):
    [job_id] = client.post("/api/upload", json={"items": [{"sourceUrl": "https://example.com/a.mp4"}]}).json()["jobIds"]

    body = client.get(f"/api/jobs/{job_id}").json()

    assert body["id"] == job_id
    assert body["sourceUrl"] == "https://example.com/a.mp4"


def test_unknown_job(client):
    resp = client.get("/api/jobs/does-not-exist")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Job not found"}


def test_logout(anon_client):
    resp = anon_client.post("/api/auth/logout")

    assert resp.json() == {"ok": True}


def test_google_login_redirects_to_consent(anon_client, monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "client-123")
    monkeypatch.setattr(config, "GOOGLE_CLIENT_SECRET", "secret")
    monkeypatch.setattr(config, "BASE_URL", None)

    resp = anon_client.get("/auth/google", follow_redirects=False)

    assert resp.status_code == 302
    location = urlparse(resp.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "accounts.google.com"
    assert query["client_id"] == ["client-123"]
    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]
    assert query["redirect_uri"] == ["http://testserver/auth/google/callback"]
    assert "state" in query


def test_callback_rejects_state_mismatch(anon_client):
    resp = anon_client.get("/auth/google/callback?code=abc&state=forged", follow_redirects=False)

    assert resp.status_code == 400
    assert "Invalid OAuth state" in resp.text
