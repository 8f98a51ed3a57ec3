import os
import tempfile
import time
import uuid

# Configure before the application (and its settings cache) is imported
_DB_DIR = tempfile.mkdtemp(prefix="iknoweverything-tests-")
DB_PATH = os.path.join(_DB_DIR, "test.db")
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["SUPABASE_JWT_SECRET"] = JWT_SECRET
for _var in ("GOOGLE_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "JWT_SECRET"):
    os.environ.pop(_var, None)

import jwt
import pytest
from fastapi.testclient import TestClient

from iknoweverything.api.deps import get_provider
from iknoweverything.core.ratelimit import chat_limiter
from iknoweverything.main import app
from iknoweverything.schemas.chat import ModelInfo


class FakeProvider:
    id = "fake"

    def __init__(self):
        self.calls = []
        self.reply = "Paris is the capital of France."
        self.error = None
        # Optional coroutine run while "generating", before the reply is returned
        self.during_generate = None

    async def list_models(self):
        return [ModelInfo(id="fake-1", name="Fake One", context_length=1000)]

    async def generate(self, history, message, files):
        self.calls.append({"history": list(history), "message": message, "files": list(files)})
        if self.during_generate is not None:
            await self.during_generate()
        if self.error is not None:
            raise self.error
        return self.reply


def make_token(user_id, secret=JWT_SECRET, expires_in=3600, **claims):
    payload = {
        "sub": user_id,
        "email": f"{user_id[:8]}@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_provider] = lambda: provider
    chat_limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_path():
    return DB_PATH


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {make_token(str(uuid.uuid4()))}"}


@pytest.fixture
def run_async(client):
    """Run a coroutine function on the application's event loop."""
    return client.portal.call
