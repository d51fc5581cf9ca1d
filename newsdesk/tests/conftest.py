# newsdesk/tests/conftest.py
import pytest

ADMIN = "admin-principal"
USER = "reader-principal"


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    # Redireciona o DB para arquivo temporário
    from newsdesk.storage import db
    db_file = tmp_path / "newsdesk_db.json"
    monkeypatch.setattr(db, "DB_PATH", str(db_file), raising=True)
    return str(db_file)


@pytest.fixture()
def admin_config(monkeypatch):
    from newsdesk import config
    monkeypatch.setattr(config, "ADMIN_PRINCIPALS", frozenset({ADMIN}), raising=True)
    monkeypatch.setattr(config, "ARTICLE_TTL_HOURS", 24 * 7, raising=True)


@pytest.fixture()
def app(monkeypatch, temp_db, admin_config):
    # Patches para impedir network/scheduler no startup
    from newsdesk.api import main as api_main
    from newsdesk import config

    monkeypatch.setattr(config, "INGEST_ON_STARTUP", False, raising=True)
    monkeypatch.setattr(api_main, "run_ingestion", lambda: {"status": "success", "added": 0}, raising=True)

    class DummyScheduler:
        def add_job(self, *a, **k): pass
        def start(self): pass
        def shutdown(self, wait=False): pass
    monkeypatch.setattr(api_main, "scheduler", DummyScheduler(), raising=True)

    return api_main.app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def as_admin():
    return {"X-Principal": ADMIN}


@pytest.fixture()
def as_user():
    return {"X-Principal": USER}

