"""Tests for the HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

import main
from signup import SAVE_FAILED_MESSAGE
from storage import MemoryStorage
from waitlist import LocalEntryStore


@pytest.fixture
def app_storage(monkeypatch, local_config):
    storage = MemoryStorage()
    monkeypatch.setattr(main.app.state, "config", local_config)
    monkeypatch.setattr(main.app.state, "local_store", LocalEntryStore(storage))
    return storage


@pytest.fixture
def client(app_storage):
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def remote_app(monkeypatch, remote_config, fake_remote):
    monkeypatch.setattr(main.app.state, "config", remote_config)
    monkeypatch.setattr(main.app.state, "local_store", LocalEntryStore(MemoryStorage()))
    monkeypatch.setattr(main, "_remote_instance", fake_remote)
    with TestClient(main.app) as test_client:
        yield test_client


def test_health_reports_mode(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "mode": "local"}


def test_json_signup(client):
    response = client.post("/api/waitlist", json={"email": "A@x.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "succeeded"
    assert body["email"] == "a@x.com"
    assert body["next_url"] == "/complete-signup?email=a%40x.com"
    assert main.app.state.local_store.get("a@x.com").completed_signup is False


def test_form_signup_redirects_browsers(client):
    response = client.post(
        "/api/waitlist",
        data={"email": "a@x.com"},
        headers={"accept": "text/html"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/complete-signup?email=a%40x.com"


@pytest.mark.parametrize("email", ["", "not-an-email", "a@b", "a b@x.com"])
def test_invalid_email_rejected(client, email):
    response = client.post("/api/waitlist", json={"email": email})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid email"
    assert main.app.state.local_store.load_entries() == []


def test_storage_failure_returns_generic_error(client, app_storage):
    app_storage.fail_writes = True
    response = client.post("/api/waitlist", json={"email": "a@x.com"})

    assert response.status_code == 503
    assert response.json()["error"] == SAVE_FAILED_MESSAGE


def test_complete_without_prior_signup(client):
    response = client.post("/api/waitlist/complete", json={"email": "new@x.com"})

    assert response.status_code == 200
    assert response.json()["status"] == "succeeded"
    assert main.app.state.local_store.get("new@x.com").completed_signup is True


def test_complete_signup_page_escapes_email(client):
    response = client.get("/complete-signup", params={"email": "<b>@x.com"})
    assert response.status_code == 200
    assert "&lt;b&gt;@x.com" in response.text
    assert "<b>@x.com" not in response.text


def test_remote_mode_uses_remote_client(remote_app, fake_remote):
    response = remote_app.post("/api/waitlist", json={"email": "a@x.com"})

    assert response.status_code == 200
    assert fake_remote.calls[0]["email"] == "a@x.com"
    assert main.app.state.local_store.load_entries() == []


def test_remote_failure_hides_detail(remote_app, fake_remote):
    from errors import BackendUnavailable

    fake_remote.error = BackendUnavailable("Remote upsert rejected", detail="409: duplicate key")
    response = remote_app.post("/api/waitlist/complete", json={"email": "a@x.com"})

    assert response.status_code == 503
    assert response.json()["error"] == SAVE_FAILED_MESSAGE
    assert "duplicate" not in response.text


def test_malformed_json_is_rejected(client):
    response = client.post(
        "/api/waitlist",
        content=b'{"email": ',
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid email"


def test_shutdown_closes_remote_client(monkeypatch, app_storage):
    closed = []

    class ClosableRemote:
        def upsert(self, fields):
            pass

        def close(self):
            closed.append(True)

    monkeypatch.setattr(main, "_remote_instance", ClosableRemote())
    with TestClient(main.app):
        pass

    assert closed == [True]
    assert main._remote_instance is None
