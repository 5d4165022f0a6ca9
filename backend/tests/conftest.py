from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from memberhub.core.config import Settings
from memberhub.main import create_app

GIF_BYTES = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04\x01\x00\x00\x00\x00"
    b",\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def public_dir(tmp_path: Path) -> Path:
    d = tmp_path / "public"
    d.mkdir()
    (d / "cat.gif").write_bytes(GIF_BYTES)
    (d / "dog.GIF").write_bytes(GIF_BYTES)
    (d / "notes.txt").write_text("not an image", encoding="utf-8")
    return d


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "memberhub-test.db"


@pytest.fixture()
def settings(db_path: Path, public_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        session_secret="test-session-secret",
        cookie_secret="test-cookie-secret",
        password_hash_rounds=4,
        session_cleanup_interval_seconds=0,
        public_dir=public_dir,
    )


@pytest.fixture()
def app(settings: Settings, clock: FakeClock):
    return create_app(settings, clock=clock)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db_rows(db_path: Path):
    """Run a read-only SQL query against the test database."""

    engine = create_engine(f"sqlite:///{db_path}")

    def query(sql: str, **params):
        with engine.connect() as conn:
            return conn.execute(text(sql), params).mappings().all()

    yield query
    engine.dispose()


def signup(client: TestClient, **fields):
    data = {"username": "alice", "password": "secret1", "email": "alice@example.com"}
    data.update(fields)
    data = {k: v for k, v in data.items() if v is not None}
    return client.post("/signupSubmit", data=data, follow_redirects=False)


def login(client: TestClient, **fields):
    data = {"email": "alice@example.com", "password": "secret1"}
    data.update(fields)
    data = {k: v for k, v in data.items() if v is not None}
    return client.post("/loggingIn", data=data, follow_redirects=False)
