import os
import tempfile

import pytest

# Must be set before marketplace modules read their settings.
os.environ.setdefault("AUTH_LOG_FILE", os.path.join(tempfile.gettempdir(), "marketplace-test-auth.log"))
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

from fastapi.testclient import TestClient  # noqa: E402

from marketplace.auth.kinds import AccountKind  # noqa: E402
from marketplace.core.settings import reload_settings  # noqa: E402
from marketplace.main import create_app  # noqa: E402
from marketplace.security.passwords import hash_password  # noqa: E402
from marketplace.security.rate_limit import limiter  # noqa: E402


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'test.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    reload_settings()
    yield url
    monkeypatch.undo()
    reload_settings()


@pytest.fixture
def client(database_url):
    limiter.reset()
    with TestClient(create_app()) as c:
        yield c
    limiter.reset()

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin#123"


@pytest.fixture
def admin_headers(client):
    """Seed an administrator straight into the store and log it in."""
    session = client.app.state.database.session()
    try:
        session.add(AccountKind.USER.model(name="Administrator", email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD)))
        session.commit()
    finally:
        session.close()

    response = client.post("/auth/user/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
