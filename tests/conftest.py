from pathlib import Path

import pytest
from fastapi.testclient import TestClient

FLAGGED_ORG = "flooder"
DENIED_ORG = "banned"
DETERRENT_SIZE = 5000
ENCRYPTION_PASSWORD = "s3cret"


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("API_PREFIX", "")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("ENCRYPTION_PASSWORD", ENCRYPTION_PASSWORD)
    monkeypatch.setenv("PARSER_LIMIT", str(64 * 1024))
    monkeypatch.setenv("DENIED_COMPANY_TOKENS", DENIED_ORG)
    monkeypatch.setenv("DENIED_DEVICE_MODELS", "Emulator")
    monkeypatch.setenv("DDOS_BOMB_COMPANY_TOKENS", f"{FLAGGED_ORG}, other-flooder")
    monkeypatch.setenv("DETERRENT_SIZE_BYTES", str(DETERRENT_SIZE))
    monkeypatch.setenv("DETERRENT_CHUNK_SIZE", "1024")
    monkeypatch.setenv("DETERRENT_CHUNK_DELAY", "0")

    from app import models  # noqa: F401
    from app.core.config import clear_settings_cache
    from app.db.base import Base
    from app.db.session import get_engine, reset_engine
    from app.main import create_app

    clear_settings_cache()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())

    app = create_app()
    with TestClient(app) as client:
        yield client

    Base.metadata.drop_all(bind=get_engine())
    reset_engine()
    clear_settings_cache()


@pytest.fixture()
def db_session(app_client: TestClient):
    from app.db.session import get_session_factory

    with get_session_factory()() as db:
        yield db


def device_info(org: str = "acme", uuid: str = "d1", **overrides) -> dict:
    body = {
        "org": org,
        "uuid": uuid,
        "model": "Pixel",
        "manufacturer": "Google",
        "framework": "ReactNative",
        "version": "14",
    }
    body.update(overrides)
    return body


def register(client: TestClient, org: str = "acme", uuid: str = "d1", **overrides) -> dict:
    response = client.post("/register", json=device_info(org, uuid, **overrides))
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def claims_of(client: TestClient, token: str):
    return client.app.state.token_service.verify(token)
