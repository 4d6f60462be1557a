"""
tests/test_api_routes.py -- HTTP contract of the four services.

Covers:
  - auth: register -> login -> profile scenario, 409/404/401 mapping,
    admin-only /users, Cache-Control on /login, error envelope shape
  - ingest: POST /ingest under both duplicate policies, GET /records ordering,
    non-finite numbers and out-of-range timestamps -> 422,
    request validation -> 422
  - sensors: GET /sensor-data stores and returns a generated reading
  - parcels: create -> delete -> active/deleted listings scenario, idempotent
    delete, 404 for unknown ids
  - /health on every service
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from api.main import create_ingest_app


def _register(client, username="alice", password="pw1", role="admin"):
    return client.post("/register", json={"username": username, "password": password, "role": role})


def _token(client, username="alice", password="pw1") -> str:
    resp = client.post("/login", json={"username": username, "password": password})
    assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
    return resp.json()["token"]


# ---------------------------------------------------------------------------
# Auth service
# ---------------------------------------------------------------------------


class TestAuthScenario:
    def test_register_login_profile(self, auth_client):
        resp = _register(auth_client)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["user"]["username"] == "alice"
        assert body["user"]["role"] == "admin"
        assert "password" not in resp.text

        token = _token(auth_client)
        resp = auth_client.get("/profile", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"username": "alice", "role": "admin"}

    def test_login_response_shape(self, auth_client, settings):
        _register(auth_client)
        resp = auth_client.post("/login", json={"username": "alice", "password": "pw1"})
        assert resp.headers["Cache-Control"] == "no-store"
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.token_expire_seconds

    def test_default_role_is_user(self, auth_client):
        resp = auth_client.post("/register", json={"username": "bob", "password": "pw"})
        assert resp.json()["user"]["role"] == "user"


class TestAuthErrors:
    def test_duplicate_register_409(self, auth_client):
        _register(auth_client)
        resp = _register(auth_client, password="other")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_unknown_role_422(self, auth_client):
        resp = _register(auth_client, role="superuser")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_unknown_user_404(self, auth_client):
        resp = auth_client.post("/login", json={"username": "ghost", "password": "pw"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_wrong_password_401(self, auth_client):
        _register(auth_client)
        resp = auth_client.post("/login", json={"username": "alice", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"

    def test_profile_without_token_401(self, auth_client):
        resp = auth_client.get("/profile")
        assert resp.status_code == 401
        assert set(resp.json()["error"]) == {"code", "message", "detail"}

    def test_profile_with_garbage_token_401(self, auth_client):
        resp = auth_client.get("/profile", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401


class TestUserListing:
    def test_user_role_forbidden(self, auth_client):
        _register(auth_client, "bob", "pw", "user")
        resp = auth_client.get("/users", headers={"Authorization": f"Bearer {_token(auth_client, 'bob', 'pw')}"})
        assert resp.status_code == 403

    def test_admin_lists_users(self, auth_client):
        _register(auth_client)
        _register(auth_client, "bob", "pw", "user")
        resp = auth_client.get("/users", headers={"Authorization": f"Bearer {_token(auth_client)}"})
        assert resp.status_code == 200
        assert [u["username"] for u in resp.json()] == ["alice", "bob"]


# ---------------------------------------------------------------------------
# Ingest service
# ---------------------------------------------------------------------------

READING = {
    "temperature": 24.5,
    "humidity": 60,
    "rain": "sí",
    "radiation": 700,
    "timestamp": "2024-05-01T12:00:00Z",
}


class TestIngest:
    def test_ingest_and_list(self, ingest_client):
        resp = ingest_client.post("/ingest", json=READING)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["status"] == "created"

        records = ingest_client.get("/records").json()
        assert len(records) == 1
        assert records[0]["id"] == body["id"]
        assert records[0]["rain"] is True

    def test_default_policy_appends(self, ingest_client):
        ingest_client.post("/ingest", json=READING)
        ingest_client.post("/ingest", json=READING)
        assert len(ingest_client.get("/records").json()) == 2

    def test_timestamp_policy_dedups(self, settings, readings_engine):
        settings = settings.model_copy(update={"ingest_dedup_policy": "timestamp"})
        with TestClient(create_ingest_app(settings, engine=readings_engine)) as client:
            first = client.post("/ingest", json=READING).json()
            second = client.post("/ingest", json={**READING, "temperature": 30}).json()
            assert second == {"status": "duplicate", "id": first["id"]}
            assert len(client.get("/records").json()) == 1

    def test_records_newest_first_with_limit(self, ingest_client):
        for minute in ("00", "30", "15"):
            ingest_client.post("/ingest", json={**READING, "timestamp": f"2024-05-01T12:{minute}:00Z"})
        records = ingest_client.get("/records", params={"limit": 2}).json()
        assert [r["timestamp"][11:16] for r in records] == ["12:30", "12:15"]

    def test_missing_timestamp_defaults_to_now(self, ingest_client):
        payload = {k: v for k, v in READING.items() if k != "timestamp"}
        assert ingest_client.post("/ingest", json=payload).status_code == 200

    @pytest.mark.parametrize(
        "payload",
        [
            {"humidity": 60, "radiation": 700},
            {**READING, "temperature": "warm"},
            {**READING, "rain": "maybe"},
        ],
    )
    def test_invalid_payload_422(self, ingest_client, payload):
        resp = ingest_client.post("/ingest", json=payload)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert ingest_client.get("/records").json() == []

    @pytest.mark.parametrize("number", ["NaN", "Infinity", "-Infinity", "1e999"])
    def test_non_finite_number_422(self, ingest_client, number):
        body = f'{{"temperature": {number}, "humidity": 60, "radiation": 700, "timestamp": "2024-05-01T12:00:00Z"}}'
        resp = ingest_client.post("/ingest", content=body, headers={"Content-Type": "application/json"})
        assert resp.status_code == 422, f"Expected 422, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "validation_error"
        assert ingest_client.get("/records").json() == []

    def test_timestamp_out_of_range_in_utc_422(self, ingest_client):
        resp = ingest_client.post("/ingest", json={**READING, "timestamp": "0001-01-01T00:00:00+01:00"})
        assert resp.status_code == 422, f"Expected 422, got {resp.status_code}: {resp.text}"
        assert ingest_client.get("/records").status_code == 200

    def test_year_below_1000_keeps_records_readable(self, ingest_client):
        resp = ingest_client.post("/ingest", json={**READING, "timestamp": "0999-01-01T00:00:00Z"})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        ingest_client.post("/ingest", json=READING)

        resp = ingest_client.get("/records")
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        assert [r["timestamp"][:10] for r in resp.json()] == ["2024-05-01", "0999-01-01"]


class TestSensorData:
    def test_generates_and_stores(self, sensors_client):
        resp = sensors_client.get("/sensor-data")
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["status"] == "created"
        assert body["reading"]["id"] == body["id"]
        assert 20 <= body["reading"]["temperature"] <= 30


# ---------------------------------------------------------------------------
# Parcels service
# ---------------------------------------------------------------------------


class TestParcelScenario:
    def test_create_delete_listings(self, parcels_client):
        resp = parcels_client.post("/parcelas", json={"name": "North", "location": "X"})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        parcel = resp.json()
        assert uuid.UUID(parcel["id"])
        assert parcel["deleted"] is False

        resp = parcels_client.delete(f"/parcelas/{parcel['id']}")
        assert resp.status_code == 200
        assert resp.json()["deleted"]["deleted"] is True
        assert resp.json()["deleted"]["id"] == parcel["id"]

        active = parcels_client.get("/parcelas").json()
        deleted = parcels_client.get("/parcelas/eliminadas").json()
        assert parcel["id"] not in {p["id"] for p in active}
        assert parcel["id"] in {p["id"] for p in deleted}

    def test_delete_is_idempotent(self, parcels_client):
        parcel = parcels_client.post("/parcelas", json={"name": "North", "location": "X"}).json()
        first = parcels_client.delete(f"/parcelas/{parcel['id']}")
        second = parcels_client.delete(f"/parcelas/{parcel['id']}")
        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()

    def test_unknown_id_404(self, parcels_client):
        resp = parcels_client.delete(f"/parcelas/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_supplied_id_conflict(self, parcels_client):
        parcel_id = str(uuid.uuid4())
        payload = {"id": parcel_id, "name": "North", "location": "X"}
        assert parcels_client.post("/parcelas", json=payload).json()["id"] == parcel_id
        assert parcels_client.post("/parcelas", json=payload).status_code == 409

    def test_blank_name_422(self, parcels_client):
        resp = parcels_client.post("/parcelas", json={"name": "  ", "location": "X"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "client_fixture, service",
    [
        ("auth_client", "auth"),
        ("sensors_client", "sensors"),
        ("ingest_client", "ingest"),
        ("parcels_client", "parcels"),
    ],
)
def test_health(request, client_fixture, service):
    client = request.getfixturevalue(client_fixture)
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["service"] == service
    assert body["components"] == {"app": "ok", "database": "ok"}


def test_unknown_route_uses_error_envelope(parcels_client):
    resp = parcels_client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"
