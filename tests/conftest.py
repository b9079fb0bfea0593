import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure predictable environment variables for tests before importing the app.
BASE_DIR = Path(__file__).resolve().parents[1]
TEST_DB_PATH = BASE_DIR / "test.db"

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{TEST_DB_PATH}")
os.environ.setdefault("DB_AUTO_CREATE", "true")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("APP_URL", "http://localhost:3000")
os.environ.setdefault("OTP_HASH_ROUNDS", "4")
os.environ.setdefault("SENDINBLUE_API_KEY", "test-key")
os.environ.setdefault("GITHUB_CLIENT_ID", "gh-client")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "gh-secret")
os.environ.setdefault("ALLOW_UNAUTHENTICATED", "false")

import app.main as main  # noqa: E402  (import after env vars are set)
from app.controllers import otp_controller  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import AsyncSessionLocal  # noqa: E402


class Outbox:
    """Captures OTP emails instead of calling the mail API."""

    def __init__(self):
        self.messages = []

    async def send(self, to_email: str, otp: str, token_id: str) -> None:
        self.messages.append({"email": to_email, "otp": otp, "token_id": token_id})

    @property
    def last(self) -> dict:
        return self.messages[-1]


@pytest.fixture()
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(otp_controller, "send_otp_email", box.send)
    return box


@pytest.fixture()
def make_client(outbox):
    """Builds a TestClient on a fresh database; settings can be patched first."""
    clients = []

    def _make() -> TestClient:
        if TEST_DB_PATH.exists():
            TEST_DB_PATH.unlink()
        test_client = TestClient(main.app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture()
def client(make_client):
    return make_client()


@pytest.fixture()
def run_db():
    """Runs `fn(db)` on the client's event loop with a fresh session."""

    def _run(test_client: TestClient, fn):
        async def _call():
            async with AsyncSessionLocal() as db:
                return await fn(db)

        return test_client.portal.call(_call)

    return _run


@pytest.fixture()
def app_settings():
    return settings
