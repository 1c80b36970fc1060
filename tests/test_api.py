from datetime import timedelta

from conftest import register
from core.security import create_access_token
from core.stores import UserIdentity


# -------------------------------
# Auth
# -------------------------------

def test_register_returns_token_and_user(client):
    res = register(client, "  Alice ")
    assert res.status_code == 201
    body = res.json()
    assert body["token"]
    assert body["user"]["username"] == "alice"
    assert body["user"]["id"]


def test_register_duplicate_username(client):
    register(client, "Foo ")
    res = register(client, "foo")
    assert res.status_code == 400
    assert res.json() == {"error": "Username already exists"}


def test_register_missing_fields(client):
    res = client.post("/api/auth/register", json={"username": "bob"})
    assert res.status_code == 400
    assert res.json()["error"] == "Username and password are required"


def test_register_malformed_body(client):
    res = client.post("/api/auth/register", json={"username": ["x"], "password": "y"})
    assert res.status_code == 400
    assert "error" in res.json()


def test_login_normalizes_username(client):
    register(client, "alice", "P@ssw0rd1")
    res = client.post("/api/auth/login", json={"username": "ALICE ", "password": "P@ssw0rd1"})
    assert res.status_code == 200
    assert res.json()["user"]["username"] == "alice"


def test_login_failures_are_indistinguishable(client):
    register(client, "alice", "P@ssw0rd1")
    wrong_password = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    unknown_user = client.post("/api/auth/login", json={"username": "zed", "password": "P@ssw0rd1"})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"error": "Invalid credentials"}


def test_me(client, auth_headers):
    res = client.get("/api/auth/me", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["username"] == "alice"


# -------------------------------
# Bearer auth on city routes
# -------------------------------

def test_cities_require_token(client):
    res = client.get("/api/cities")
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_cities_reject_invalid_token(client):
    res = client.get("/api/cities", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 403
    assert res.json() == {"error": "Forbidden"}


def test_cities_reject_expired_token(client, settings):
    token = create_access_token(
        UserIdentity(id="1", username="alice"),
        settings.jwt_secret_key,
        expires_delta=timedelta(seconds=-5),
    )
    res = client.get("/api/cities", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 403


def test_auth_checked_before_body(client):
    res = client.post("/api/cities", json={"name": ""})
    assert res.status_code == 401


# -------------------------------
# Cities
# -------------------------------

def test_add_city_and_duplicate(client, auth_headers):
    res = client.post("/api/cities", json={"name": "Paris", "lat": 48.8566, "lon": 2.3522}, headers=auth_headers)
    assert res.status_code == 201
    created = res.json()
    assert created["is_favorite"] == 0
    assert created["alreadyExists"] is False

    res = client.post("/api/cities", json={"name": "Paris", "lat": 48.8570, "lon": 2.3525}, headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["id"] == created["id"]
    assert res.json()["alreadyExists"] is True


def test_add_city_validates_coordinates(client, auth_headers):
    res = client.post("/api/cities", json={"name": "Nowhere", "lat": 123, "lon": 0}, headers=auth_headers)
    assert res.status_code == 400
    res = client.post("/api/cities", json={"name": "Paris"}, headers=auth_headers)
    assert res.status_code == 400


def test_city_payload_shape(client, auth_headers):
    client.post("/api/cities", json={"name": "Oslo", "lat": 59.9139, "lon": 10.7522}, headers=auth_headers)
    cities = client.get("/api/cities", headers=auth_headers).json()
    assert set(cities[0]) == {"id", "name", "lat", "lon", "is_favorite"}


def test_delete_city_of_another_user(client, auth_headers):
    city = client.post("/api/cities", json={"name": "Rome", "lat": 41.9, "lon": 12.5}, headers=auth_headers).json()

    other = register(client, "bob").json()["token"]
    res = client.delete(f"/api/cities/{city['id']}", headers={"Authorization": f"Bearer {other}"})
    assert res.status_code == 404
    assert res.json() == {"error": "City not found"}
    assert len(client.get("/api/cities", headers=auth_headers).json()) == 1


def test_delete_all_on_empty_collection(client, auth_headers):
    res = client.delete("/api/cities", headers=auth_headers)
    assert res.status_code == 204
    assert res.content == b""


def test_favorite_unknown_city(client, auth_headers):
    res = client.patch("/api/cities/unknown/favorite", json={"is_favorite": True}, headers=auth_headers)
    assert res.status_code == 404


def test_favorite_without_body_clears_flag(client, auth_headers):
    city = client.post("/api/cities", json={"name": "Rome", "lat": 41.9, "lon": 12.5}, headers=auth_headers).json()
    client.patch(f"/api/cities/{city['id']}/favorite", json={"is_favorite": 1}, headers=auth_headers)
    res = client.patch(f"/api/cities/{city['id']}/favorite", headers=auth_headers)
    assert res.json() == {"success": True}
    assert client.get("/api/cities", headers=auth_headers).json()[0]["is_favorite"] == 0


def test_end_to_end_scenario(client):
    res = register(client, "alice", "P@ssw0rd1")
    assert res.status_code == 201

    res = client.post("/api/auth/login", json={"username": "ALICE ", "password": "P@ssw0rd1"})
    assert res.status_code == 200
    headers = {"Authorization": f"Bearer {res.json()['token']}"}

    res = client.post("/api/cities", json={"name": "Paris", "lat": 48.8566, "lon": 2.3522}, headers=headers)
    assert res.status_code == 201
    city_id = res.json()["id"]

    cities = client.get("/api/cities", headers=headers).json()
    assert len(cities) == 1

    res = client.patch(f"/api/cities/{city_id}/favorite", json={"is_favorite": True}, headers=headers)
    assert res.json() == {"success": True}
    assert client.get("/api/cities", headers=headers).json()[0]["is_favorite"] == 1

    res = client.delete(f"/api/cities/{city_id}", headers=headers)
    assert res.status_code == 204

    assert client.get("/api/cities", headers=headers).json() == []


# -------------------------------
# Misc routes
# -------------------------------

def test_health(client, store):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["backend"] == store.backend
    if store.backend == "sql":
        assert body["storeState"] == "connected"


def test_unknown_api_route(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "API route GET /api/nope not found"}


def test_insight_without_api_key_uses_fallback(client, auth_headers):
    payload = {
        "city": "Paris",
        "weather": {"temperature": 21.5, "weatherCode": 1, "daily": {"temperatureMax": [24], "temperatureMin": [14]}},
    }
    res = client.post("/api/insight", json=payload, headers=auth_headers)
    assert res.status_code == 200
    assert res.json() == {"insight": "Check the forecast and plan your day accordingly!"}


def test_store_failure_is_a_generic_500(client, auth_headers, store, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(store, "list_cities", boom)
    res = client.get("/api/cities", headers=auth_headers)
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to fetch cities"}
    assert "disk on fire" in caplog.text


def test_city_a_box_width_away_is_not_a_server_error(client, auth_headers):
    first = client.post("/api/cities", json={"name": "Springfield", "lat": 48.015, "lon": 2.0}, headers=auth_headers)
    assert first.status_code == 201
    second = client.post("/api/cities", json={"name": "Springfield", "lat": 48.025, "lon": 2.0}, headers=auth_headers)
    assert second.status_code in (200, 201)
    assert second.json()["alreadyExists"] is (second.status_code == 200)


def test_city_just_outside_box_is_created(client, auth_headers):
    client.post("/api/cities", json={"name": "Springfield", "lat": 40.0, "lon": -89.0}, headers=auth_headers)
    res = client.post("/api/cities", json={"name": "Springfield", "lat": 40.0101, "lon": -89.0}, headers=auth_headers)
    assert res.status_code == 201


def test_favorite_value_follows_truthiness(client, auth_headers):
    city = client.post("/api/cities", json={"name": "Rome", "lat": 41.9, "lon": 12.5}, headers=auth_headers).json()
    url = f"/api/cities/{city['id']}/favorite"

    assert client.patch(url, json={"is_favorite": 2}, headers=auth_headers).json() == {"success": True}
    assert client.get("/api/cities", headers=auth_headers).json()[0]["is_favorite"] == 1

    assert client.patch(url, json={"is_favorite": None}, headers=auth_headers).json() == {"success": True}
    assert client.get("/api/cities", headers=auth_headers).json()[0]["is_favorite"] == 0


def test_non_bearer_scheme_counts_as_missing_token(client):
    res = client.get("/api/cities", headers={"Authorization": "Token abc"})
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}
