import os
import sys
import tempfile
import time
import uuid
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

_DB_DIR = tempfile.mkdtemp(prefix="reviewbridge-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR}/api.db")
os.environ.setdefault("OAUTH_TOKEN_KEY", "MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTIzNDU2Nzg5MDE=")
os.environ.setdefault("SECRET_KEY", "test_secret_key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-secret")
os.environ.setdefault("FACEBOOK_APP_ID", "fb-app")
os.environ.setdefault("FACEBOOK_APP_SECRET", "fb-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "https://api.example.test")
os.environ.setdefault("FRONTEND_URL", "https://app.example.test")

from reviewbridge.config import Settings  # noqa: E402
from reviewbridge.UAA import utils  # noqa: E402
from reviewbridge.UAA.models import User  # noqa: E402
from reviewbridge.models.linked_account import LinkedAccount  # noqa: E402,F401
from reviewbridge.models.testimonial import Testimonial  # noqa: E402,F401

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_REVIEWS_API = "https://mybusiness.googleapis.com/v4"
FB_GRAPH = "https://graph.facebook.com/v18.0"


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the app uses."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.expiry = {}

    def _alive(self, key):
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.values.pop(key, None)
            self.sets.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.values or key in self.sets

    async def set(self, key, value, ex=None):
        self.values[key] = str(value)
        if ex:
            self.expiry[key] = time.time() + ex
        return True

    async def get(self, key):
        return self.values.get(key) if self._alive(key) else None

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.values.pop(key, None)
            self.sets.pop(key, None)
            self.expiry.pop(key, None)
        return removed

    async def exists(self, *keys):
        return sum(1 for key in keys if self._alive(key))

    async def incr(self, key):
        value = int(self.values.get(key, 0)) + 1 if self._alive(key) else 1
        self.values[key] = str(value)
        return value

    async def expire(self, key, seconds):
        if not self._alive(key):
            return False
        self.expiry[key] = time.time() + seconds
        return True

    async def sadd(self, key, *members):
        self._alive(key)
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def srem(self, key, *members):
        bucket = self.sets.get(key, set())
        before = len(bucket)
        bucket.difference_update(members)
        return before - len(bucket)

    async def smembers(self, key):
        return set(self.sets.get(key, set())) if self._alive(key) else set()


class FakeProviderAPI:
    """
    httpx.MockTransport handler routing on (method, url without query).

    Each route holds one or more responses, served in order; the last one
    repeats. A response is (status, json_body) or a callable(request).
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, *responses):
        self.routes[(method.upper(), url)] = list(responses)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, str(request.url).split("?")[0])
        responses = self.routes.get(key)
        if not responses:
            return httpx.Response(404, json={"error": {"message": "no route"}})
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if callable(response):
            return response(request)
        status, body = response
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls_to(self, url):
        return [c for c in self.calls if str(c.url).split("?")[0] == url]


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(utils, "redis_client", fake)
    return fake


@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        GOOGLE_CLIENT_ID="google-client",
        GOOGLE_CLIENT_SECRET="google-secret",
        FACEBOOK_APP_ID="fb-app",
        FACEBOOK_APP_SECRET="fb-secret",
        PUBLIC_BASE_URL="https://api.example.test",
        FRONTEND_URL="https://app.example.test",
    )


@pytest.fixture()
def provider_api():
    return FakeProviderAPI()


@pytest.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
async def db_session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture()
async def user(db_session):
    user = User(
        id=uuid.uuid4(),
        email=f"owner-{uuid.uuid4().hex[:8]}@example.com",
        username=f"owner-{uuid.uuid4().hex[:8]}",
        hashed_password="not-used",
    )
    db_session.add(user)
    await db_session.commit()
    return user
