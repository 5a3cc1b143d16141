import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from nicename.config import Settings
from nicename.deps import get_db, get_settings
from nicename.main import app

TOKEN = "s3cret"


@pytest.fixture
def client(engine, wp_cli):
    settings = Settings(database_url="sqlite://", admin_token=TOKEN)

    def _db():
        with engine.connect() as conn:
            yield conn

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = _db
    yield TestClient(app)
    app.dependency_overrides.clear()


def post(client, old, new, token=TOKEN):
    headers = {"X-Admin-Token": token} if token else {}
    return client.post("/api/nicename/rename", json={"old": old, "new": new}, headers=headers)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_rename(client, engine):
    resp = post(client, "bob", "bobby")
    assert resp.status_code == 200
    body = resp.json()
    assert body["user_id"] == 1
    assert body["new"] == "bobby"
    assert body["buddypress"] is True
    assert len(body["tables"]) == 4
    with engine.connect() as conn:
        assert conn.execute(text("SELECT user_nicename FROM wp_users WHERE ID = 1")).scalar() == "bobby"


def test_token_required(client):
    assert post(client, "bob", "bobby", token=None).status_code == 401
    assert post(client, "bob", "bobby", token="wrong").status_code == 401


@pytest.mark.parametrize("token", ["s3c", "s3cret-and-more", "S3CRET"])
def test_near_miss_tokens_rejected(client, engine, token):
    assert post(client, "bob", "bobby", token=token).status_code == 401
    with engine.connect() as conn:
        assert conn.execute(text("SELECT user_nicename FROM wp_users WHERE ID = 1")).scalar() == "bob"


def test_disabled_without_configured_token(client):
    app.dependency_overrides[get_settings] = lambda: Settings(database_url="sqlite://")
    assert post(client, "bob", "bobby").status_code == 503


@pytest.mark.parametrize("old, new, status", [
    ("bob", "bob", 400),
    ("!!", "bobby", 400),
    ("nobody", "somebody", 404),
])
def test_errors_map_to_status(client, old, new, status):
    resp = post(client, old, new)
    assert resp.status_code == status
    assert resp.json()["detail"]


def test_search_replace_failure_is_bad_gateway(client, wp_cli):
    wp_cli.returncode = 1
    resp = post(client, "bob", "bobby")
    assert resp.status_code == 502
