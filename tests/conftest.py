"""Shared fixtures: a fresh SQLite database per test, config, email transport."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio

from core.database import build_engine, build_session_factory, get_session, init_db, session_scope
from core.integrations import EmailSender
from taskboard.config import TaskboardConfig, get_config
from taskboard.reminders import get_email_sender


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def config():
    return TaskboardConfig(cron_secret="s3cret", app_base_url="https://board.test")


class EmailOutbox:
    """Records requests sent to the email API; can be told to fail."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"error": "down"})
        return httpx.Response(200, json={"id": f"msg-{len(self.requests)}"})


@pytest.fixture
def outbox():
    return EmailOutbox()


@pytest.fixture
def email_sender(outbox):
    return EmailSender(
        api_url="https://email.test/send",
        api_key="test-key",
        transport=httpx.MockTransport(outbox.handler),
    )


@pytest_asyncio.fixture
async def client(session_factory, config, email_sender):
    from api.main import app

    async def override_session():
        async with session_scope(session_factory) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()

