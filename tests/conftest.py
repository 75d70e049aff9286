import pytest
from fastapi.testclient import TestClient

from bitbeam.config import load_config
from bitbeam.context import build_context
from bitbeam.main import create_app

ADMIN_KEY = "test-admin-key"


def _configure_env(tmp_path, monkeypatch, *, allow_register="true", max_upload=str(1024 * 1024), use_tls="false"):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("BITBEAM_DB_TYPE", "sqlite")
    monkeypatch.setenv("BITBEAM_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("BITBEAM_DATA_PATH", str(tmp_path / "blobs"))
    monkeypatch.setenv("BITBEAM_BASE_URL", "files.example.test")
    monkeypatch.setenv("BITBEAM_USE_TLS", use_tls)
    monkeypatch.setenv("BITBEAM_ALLOW_REGISTER", allow_register)
    monkeypatch.setenv("BITBEAM_ADMIN_KEY", ADMIN_KEY)
    monkeypatch.setenv("BITBEAM_MAX_UPLOAD_BYTES", max_upload)
    monkeypatch.setenv("BITBEAM_LOG_LEVEL", "debug")
    monkeypatch.delenv("BITBEAM_LOG_LOCATION", raising=False)


@pytest.fixture
def prepare_client(tmp_path, monkeypatch):
    """Build a TestClient against a fresh database and blob directory."""
    clients = []

    def _prepare(**overrides):
        _configure_env(tmp_path, monkeypatch, **overrides)
        app = create_app(load_config())
        client = TestClient(app)
        client.context = app.state.context  # type: ignore[attr-defined]
        clients.append(client)
        return client

    yield _prepare
    for client in clients:
        client.close()
        client.context.engine.dispose()


@pytest.fixture
def client(prepare_client):
    with prepare_client() as c:
        yield c


@pytest.fixture
def context(tmp_path, monkeypatch):
    _configure_env(tmp_path, monkeypatch)
    ctx = build_context(load_config())
    yield ctx
    ctx.engine.dispose()


@pytest.fixture
def owner_key(context):
    return context.identities.register("alice", "wonderland").key
