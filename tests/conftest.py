"""
Shared fixtures: a fresh SQLite database file per test and an app wired to it.
"""
import pytest
from fastapi.testclient import TestClient

from amigo_api.core.config import Settings
from amigo_api.core.db import Base
from amigo_api.main import create_app

SECRET = "test-secret-with-enough-bytes-for-hs256-0123456789abcdef"
FIXED_CODE = "000000"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite:///{tmp_path / 'amigo.db'}",
        auth_secret=SECRET,
        otp_fixed_code=FIXED_CODE,
        otp_expires_minutes=5,
        access_token_ttl_hours=1,
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    Base.metadata.create_all(bind=app.state.engine)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
