import logging

from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from conftest import login, signup
from memberhub.main import create_app
from memberhub.services import users

COOKIE = "memberhub_session"


class BrokenSessionStore:
    async def load(self, session_id):
        return None

    async def save(self, session_id, state):
        raise SQLAlchemyError("database is locked")

    async def delete(self, session_id):
        return None


def test_storage_failure_renders_error_view(app, client):
    app.state.session_manager.store = BrokenSessionStore()

    r = signup(client)

    assert r.status_code == 500
    assert "Storage failure." in r.text
    assert COOKIE not in r.cookies


def test_duplicate_insert_race_is_reported_as_conflict(client, db_rows, monkeypatch):
    async def no_conflict(session, username, email):
        return None

    monkeypatch.setattr(users, "find_conflict", no_conflict)

    assert signup(client).status_code == 302
    client.cookies.clear()

    r = signup(client)
    assert r.status_code == 409
    assert "account is already registered" in r.text
    assert len(db_rows("SELECT id FROM users")) == 1


def test_other_http_errors_keep_their_status(settings, clock, tmp_path):
    app = create_app(settings.model_copy(update={"public_dir": tmp_path / "missing"}), clock=clock)

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="short and stout")

    with TestClient(app) as client:
        r = client.get("/teapot")

    assert r.status_code == 418
    assert "Something went wrong (418)" in r.text
    assert "short and stout" in r.text


def test_unmatched_methods_render_404(client):
    for path in ("/nope", "/members", "/cat.gif"):
        r = client.post(path)
        assert r.status_code == 404
        assert "Page not found" in r.text


def test_access_log_omits_passwords_and_session_ids(client, caplog):
    caplog.set_level(logging.INFO)

    created = signup(client)
    cookie = created.cookies[COOKIE]
    client.get("/logout")
    logged_in = login(client)
    messages = [record.getMessage() for record in caplog.records]

    assert logged_in.status_code == 302
    assert not any("secret1" in message for message in messages)
    assert not any(cookie in message for message in messages)
    assert not any(logged_in.cookies[COOKIE] in message for message in messages)

    access = [record.getMessage() for record in caplog.records if record.name == "memberhub.access"]
    assert any(message.startswith("POST /signupSubmit -> 302") for message in access)
    assert any(message.startswith("POST /loggingIn -> 302") for message in access)
