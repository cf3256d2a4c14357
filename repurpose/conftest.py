# conftest.py
import os
import tempfile
import time
from pathlib import Path

import pytest

# Configure the environment before any repurpose module reads settings
_TEST_DB_DIR = tempfile.mkdtemp(prefix="repurpose-tests-")
os.environ["ENV"] = "test"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{Path(_TEST_DB_DIR) / 'test.db'}"
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-supabase-jwt-secret-0123456789abcdef")
for _key in ("GEMINI_API_KEY", "GROQ_API_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET",
             "STRIPE_PRICE_ID", "FIRECRAWL_API_KEY", "ADMIN_API_KEYS", "DATABASE_URL"):
    os.environ.pop(_key, None)

import jwt  # noqa: E402

from repurpose.features.generation.providers import ProviderChain  # noqa: E402
from repurpose.tests.fakes import FakeProvider, LONG_TEXT  # noqa: E402


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Recreate all tables before each test for a clean slate."""
    from repurpose.core.database import reset_database

    reset_database()
    yield


@pytest.fixture
def long_text():
    return LONG_TEXT


@pytest.fixture
def make_chain():
    """Build a ProviderChain from FakeProvider keyword specs."""

    def _make(*specs):
        return ProviderChain([FakeProvider(**spec) for spec in specs])

    return _make


@pytest.fixture
def make_token():
    """Sign a Supabase-style access token."""
    from repurpose.core.config import settings

    def _make(sub="user-1", email="user@example.com", expires_in=3600, secret=None, audience="authenticated"):
        now = int(time.time())
        payload = {"sub": sub, "email": email, "aud": audience, "iat": now, "exp": now + expires_in}
        return jwt.encode(payload, secret or settings.SUPABASE_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(sub="user-1", email="user@example.com"):
        return {"Authorization": f"Bearer {make_token(sub=sub, email=email)}"}

    return _headers


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from repurpose.main import app

    return TestClient(app)
