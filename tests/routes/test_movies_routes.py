"""Tests for the /movies blueprint through the Flask test client."""
from __future__ import annotations

import pytest

from moviepoa.db.engine import reset_for_tests
from moviepoa.services import auth_token_service
from moviepoa.startup import create_app


@pytest.fixture
def app(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DATABASE_FILE", ":memory:")
    app = create_app({"TESTING": True, "SECRET_KEY": "routes-test-secret"})
    yield app
    reset_for_tests(drop=True)


@pytest.fixture
def client(app):
    return app.test_client()


def _register(app, email="owner@example.com"):
    resp = app.test_client().post("/auth/register", json={"email": email, "password": "Secret123!"})
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def auth(app):
    return _register(app)


def _create(client, auth, **fields):
    resp = client.post("/movies", json=fields, headers=auth)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_requires_authentication(client):
    resp = client.get("/movies")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "auth_required"


def test_invalid_bearer_token_rejected(client):
    resp = client.get("/movies", headers={"Authorization": "Bearer not-a-token"})

    assert resp.status_code == 401


def test_create_and_list(client, auth):
    _create(client, auth, title="Zodiac")
    _create(client, auth, title="Ran", rank=1)

    body = client.get("/movies", headers=auth).get_json()

    assert body["count"] == 2
    assert [m["title"] for m in body["movies"]] == ["Ran", "Zodiac"]
    top = client.get("/movies/top", headers=auth).get_json()
    assert [m["title"] for m in top["movies"]] == ["Ran"]


def test_create_validation_error(client, auth):
    resp = client.post("/movies", json={"title": " ", "rank": 0}, headers=auth)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_failed"
    assert body["details"]["errors"] == ["title_required", "rank_out_of_range"]


def test_create_rejects_non_json_body(client, auth):
    resp = client.post("/movies", data="title=Heat", headers=auth)

    assert resp.status_code == 400
    assert resp.get_json()["details"]["errors"] == ["body_not_object"]


def test_create_at_taken_rank_shifts(client, auth):
    first = _create(client, auth, title="A", rank=1)
    _create(client, auth, title="B", rank=1)

    moved = client.get(f"/movies/{first['id']}", headers=auth).get_json()

    assert moved["rank"] == 2


def test_put_requires_title_patch_does_not(client, auth):
    movie = _create(client, auth, title="Solaris", release_year=1972)

    put = client.put(f"/movies/{movie['id']}", json={"overview": "Ocean."}, headers=auth)
    patch = client.patch(f"/movies/{movie['id']}", json={"overview": "Ocean."}, headers=auth)

    assert put.status_code == 400
    assert patch.status_code == 200
    body = patch.get_json()
    assert body["overview"] == "Ocean."
    assert body["release_year"] == 1972


def test_rank_endpoints(client, auth):
    a = _create(client, auth, title="A", rank=1)
    b = _create(client, auth, title="B")

    resp = client.patch(f"/movies/{b['id']}/rank", json={"rank": 1}, headers=auth)
    assert resp.status_code == 200
    assert resp.get_json()["rank"] == 1
    assert client.get(f"/movies/{a['id']}", headers=auth).get_json()["rank"] == 2

    bad = client.patch(f"/movies/{b['id']}/rank", json={"rank": 101}, headers=auth)
    assert bad.status_code == 400

    cleared = client.delete(f"/movies/{b['id']}/rank", headers=auth)
    assert cleared.status_code == 200
    assert cleared.get_json()["rank"] is None


def test_delete_keeps_gaps(client, auth):
    ids = [_create(client, auth, title=f"m{r}", rank=r)["id"] for r in (3, 4, 5, 7)]

    resp = client.delete(f"/movies/{ids[2]}", headers=auth)
    assert resp.status_code == 204

    ranks = [m["rank"] for m in client.get("/movies/top", headers=auth).get_json()["movies"]]
    assert ranks == [3, 4, 7]
    assert client.get(f"/movies/{ids[2]}", headers=auth).status_code == 404


def test_reorder(client, auth):
    a = _create(client, auth, title="A", rank=1)
    b = _create(client, auth, title="B", rank=2)

    resp = client.post("/movies/reorder", json={"ordered_ids": [b["id"], a["id"]]}, headers=auth)

    assert resp.status_code == 200
    assert [m["id"] for m in resp.get_json()["movies"]] == [b["id"], a["id"]]
    missing = client.post("/movies/reorder", json={"ordered_ids": [9999]}, headers=auth)
    assert missing.status_code == 404


def test_owners_are_isolated(app, client, auth):
    other = _register(app, "other@example.com")
    mine = _create(client, auth, title="Mine", rank=1)

    assert client.get(f"/movies/{mine['id']}", headers=other).status_code == 404
    assert client.delete(f"/movies/{mine['id']}", headers=other).status_code == 404
    assert client.get("/movies", headers=other).get_json()["count"] == 0


def test_public_top_list(app, client, auth):
    _create(client, auth, title="Ran", rank=1)
    _create(client, auth, title="Unranked")
    user_id = client.get("/auth/me", headers=auth).get_json()["id"]

    anonymous = app.test_client()
    resp = anonymous.get(f"/users/{user_id}/top")

    assert resp.status_code == 200
    assert [m["title"] for m in resp.get_json()["movies"]] == ["Ran"]
    assert anonymous.get("/users/9999/top").status_code == 404


def test_storage_fault_maps_to_500(app, client, auth, monkeypatch):
    from moviepoa.db.repositories import StorageFaultError

    store = app.extensions["moviepoa_store"]

    def broken(owner_id):
        raise StorageFaultError("list: storage failure")

    monkeypatch.setattr(store, "list", broken)

    resp = client.get("/movies", headers=auth)

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "storage_unavailable"


def test_token_for_missing_user_is_storage_error(app, client):
    with app.app_context():
        token = auth_token_service.issue_token(999, "ghost@example.com")

    resp = client.post("/movies", json={"title": "Orphan"}, headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "storage_unavailable"
