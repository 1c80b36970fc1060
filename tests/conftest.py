import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from core.stores.mongo import MongoStore
from core.stores.sql import SqlStore
from main import create_app


@pytest.fixture
def settings():
    return Settings(
        app_env="development",
        jwt_secret_key="test-secret",
        access_token_expire_minutes=60,
        database_url="sqlite://",
        openai_api_key=None,
        static_dir="does-not-exist",
    )


@pytest.fixture(params=["sql", "mongo"])
def store(request):
    if request.param == "sql":
        s = SqlStore.from_url("sqlite://")
    else:
        s = MongoStore(mongomock.MongoClient(), "weather_dashboard_test")
    s.init()
    yield s
    s.close()


@pytest.fixture
def client(settings, store):
    app = create_app(settings, store)
    with TestClient(app) as c:
        yield c


def register(client, username="alice", password="P@ssw0rd1"):
    return client.post("/api/auth/register", json={"username": username, "password": password})


@pytest.fixture
def auth_headers(client):
    res = register(client)
    assert res.status_code == 201
    return {"Authorization": f"Bearer {res.json()['token']}"}
