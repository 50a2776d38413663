"""
Unauthenticated utility routes: /ping and /dbtime.
"""
from amigo_api.core.db import build_engine, build_session_factory
from amigo_api.core.deps import get_db


def test_ping(client):
    resp = client.get("/api/v1/ping")

    assert resp.status_code == 200
    assert resp.json() == {"message": "pong"}


def test_dbtime_reads_database_clock(client):
    resp = client.get("/api/v1/dbtime")

    assert resp.status_code == 200
    assert resp.json()["now"]


def test_dbtime_storage_failure_is_500(client, app, tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    unreachable = build_session_factory(engine)

    def broken_db():
        db = unreachable()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_db
    try:
        resp = client.get("/api/v1/dbtime")
    finally:
        app.dependency_overrides.clear()
        engine.dispose()

    assert resp.status_code == 500
    assert resp.json()["error"].startswith("read db time")
