import pathlib
import sys

import httpx
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from voiceclip.app import create_app  # noqa: E402
from voiceclip.config import get_settings  # noqa: E402

_CONFIG_VARS = (
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_BASE_URL",
    "ELEVENLABS_MODEL_ID",
    "DEEPGRAM_API_KEY",
    "DEEPGRAM_BASE_URL",
    "TTS_PROVIDER",
    "DAILY_CHAR_LIMIT",
    "ANON_DAILY_CHAR_LIMIT",
    "SESSION_SECRET",
    "CLOUD_SYNC_JWT_SECRET",
    "SESSION_TTL_SECONDS",
    "ANON_IDENTITY_SALT",
    "PASSWORD_HASH_ITERATIONS",
    "ALLOWED_ORIGIN",
    "STORAGE_BACKEND",
    "STORAGE_PATH",
    "KV_DATABASE_PATH",
    "UPSTREAM_TIMEOUT",
    "LOG_FILE",
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Start every test from a clean environment with storage under tmp_path."""

    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret")
    monkeypatch.setenv("PASSWORD_HASH_ITERATIONS", "1000")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "cloud-sync.json"))
    monkeypatch.setenv("KV_DATABASE_PATH", str(tmp_path / "cloud-kv.db"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_app():
    """Build the application with upstream HTTP served by ``handler``."""

    def _build(handler=None):
        get_settings.cache_clear()
        transport = httpx.MockTransport(handler) if handler is not None else None
        return create_app(http_transport=transport)

    return _build


@pytest.fixture
def register_user():
    """Register through the API and return the bearer token."""

    def _register(client, email="ada@example.com", password="correct horse"):
        response = client.post(
            "/api/auth/register", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _register
