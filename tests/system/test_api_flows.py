"""
System tests for the Herbario API.

Exercise the app in-process through httpx's ASGI transport against a
temporary SQLite database: submission, moderation, listing and login flows.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from herbario.kernel.identity.jwt import get_jwt_manager
from herbario.kernel.models.plant import Plant
from herbario.kernel.models.user import User


async def _submit(client: AsyncClient, **fields) -> dict:
    r = await client.post("/plants/submissions", json=fields)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _assert_error(response, status_code: int, code: str) -> dict:
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["error"] is True
    assert body["code"] == code
    assert body["message"]
    assert body["correlationId"]
    return body


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "service": "Herbario API", "version": "0.1.0"}

    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["ok"] is True


@pytest.mark.asyncio
async def test_submit_accept_and_publish(
    client: AsyncClient,
    admin_user: User,
    admin_headers: dict,
    user_headers: dict,
):
    """Submit -> admin accept -> visible in the public gallery, hidden from non-admins."""
    r = await client.post(
        "/plants/submissions",
        json={"name": "Lavanda", "scientific_name": "Lavandula dentata"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["success"] is True
    plant = body["data"]
    assert plant["status"] == "pending"
    assert plant["has_image"] is False
    assert plant["accepted_by"] is None

    r = await client.put(f"/plants/{plant['id']}/accept", headers=admin_headers)
    assert r.status_code == 200, r.text
    accepted = r.json()["data"]
    assert accepted["status"] == "accepted"
    assert accepted["accepted_by"] == str(admin_user.id)

    r = await client.get("/plants", params={"status": "accepted"})
    assert r.status_code == 200
    assert plant["id"] in [p["id"] for p in r.json()["data"]]
    assert all(p["status"] == "accepted" for p in r.json()["data"])

    r = await client.get("/plants", params={"status": "pending"})
    _assert_error(r, 401, "MISSING_TOKEN")
    assert "data" not in r.json()

    r = await client.get("/plants", params={"status": "pending"}, headers=user_headers)
    _assert_error(r, 403, "FORBIDDEN")


@pytest.mark.asyncio
async def test_invalid_latitude_creates_nothing(client: AsyncClient):
    r = await client.post(
        "/plants/submissions",
        json={"name": "Lavanda", "latitude": "not-a-number"},
    )
    body = _assert_error(r, 400, "VALIDATION_ERROR")
    assert body["details"][0]["field"] == "latitude"

    r = await client.get("/plants/count/pending")
    assert r.json() == {"pending": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Lavanda", "status": "accepted"},
        {"name": "Lavanda", "accepted_by": str(uuid.uuid4())},
        {"family": "Lamiaceae"},
        {"name": "Lavanda", "longitude": True},
    ],
)
async def test_rejected_submissions(client: AsyncClient, payload):
    r = await client.post("/plants/submissions", json=payload)
    _assert_error(r, 400, "VALIDATION_ERROR")

    r = await client.get("/plants/count/pending")
    assert r.json() == {"pending": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [b"", b"{not json", b"[1, 2]"])
async def test_submission_body_must_be_a_json_object(client: AsyncClient, content):
    r = await client.post(
        "/plants/submissions",
        content=content,
        headers={"Content-Type": "application/json"},
    )
    _assert_error(r, 400, "VALIDATION_ERROR")


@pytest.mark.asyncio
async def test_form_submission_with_image(client: AsyncClient, png_bytes: bytes):
    r = await client.post(
        "/plants/submissions",
        data={"name": "Jara", "scientific_name": "Cistus ladanifer", "latitude": "40.1"},
        files={"imagen": ("jara.png", png_bytes, "image/png")},
    )
    assert r.status_code == 201, r.text
    plant = r.json()["data"]
    assert plant["has_image"] is True
    assert plant["latitude"] == pytest.approx(40.1)

    r = await client.get(f"/plants/{plant['id']}/imagen")
    assert r.status_code == 200
    assert r.content == png_bytes
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=600"


@pytest.mark.asyncio
async def test_form_submission_without_image(client: AsyncClient):
    r = await client.post(
        "/plants/submissions",
        data={"name": "Tomillo"},
        files={"imagen": ("", b"", "application/octet-stream")},
    )
    assert r.status_code == 201, r.text
    assert r.json()["data"]["has_image"] is False


@pytest.mark.asyncio
async def test_non_image_upload_is_rejected(client: AsyncClient):
    r = await client.post(
        "/plants/submissions",
        data={"name": "Jara"},
        files={"imagen": ("notes.txt", b"hello", "text/plain")},
    )
    body = _assert_error(r, 400, "VALIDATION_ERROR")
    assert body["details"][0]["field"] == "imagen"


@pytest.mark.asyncio
async def test_image_not_found(client: AsyncClient, pending_plant: Plant):
    r = await client.get(f"/plants/{pending_plant.id}/imagen")
    _assert_error(r, 404, "NOT_FOUND")

    r = await client.get("/plants/not-a-uuid/imagen")
    _assert_error(r, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_listing_requires_admin_unless_accepted(
    client: AsyncClient,
    admin_headers: dict,
    user_headers: dict,
    pending_plant: Plant,
):
    for params in ({}, {"status": "pending"}, {"status": "rejected"}, {"status": ""}):
        r = await client.get("/plants", params=params)
        _assert_error(r, 401, "MISSING_TOKEN")

        r = await client.get("/plants", params=params, headers=user_headers)
        _assert_error(r, 403, "FORBIDDEN")

    r = await client.get("/plants", params={"status": "pending"}, headers=admin_headers)
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["data"]] == [str(pending_plant.id)]

    r = await client.get("/plants", params={"status": "accepted"})
    assert r.status_code == 200
    assert r.json()["data"] == []


@pytest.mark.asyncio
async def test_listing_query_validation(client: AsyncClient):
    for params in ({"status": "Accepted"}, {"status": "accepted", "page": "0"}, {"status": "accepted", "sort": "name"}):
        r = await client.get("/plants", params=params)
        body = _assert_error(r, 400, "VALIDATION_ERROR")
        assert "data" not in body


@pytest.mark.asyncio
async def test_listing_pagination_and_search(client: AsyncClient, admin_headers: dict):
    names = ["Lavanda", "Romero", "Salvia"]
    for name in names:
        plant = await _submit(client, name=name, family="Lamiaceae")
        r = await client.put(f"/plants/{plant['id']}/accept", headers=admin_headers)
        assert r.status_code == 200
    await _submit(client, name="Encina", family="Fagaceae")

    r = await client.get("/plants", params={"status": "accepted", "pageSize": 2, "page": 2})
    assert r.status_code == 200
    body = r.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 2, "pageSize": 2, "total": 3, "totalPages": 2}

    r = await client.get("/plants", params={"status": "accepted", "q": "ROM"})
    assert [p["name"] for p in r.json()["data"]] == ["Romero"]

    r = await client.get("/plants", params={"family": "Fagaceae"}, headers=admin_headers)
    assert [p["name"] for p in r.json()["data"]] == ["Encina"]


@pytest.mark.asyncio
async def test_reject_and_counts(client: AsyncClient, admin_user: User, admin_headers: dict):
    first = await _submit(client, name="Lavanda")
    second = await _submit(client, name="Romero")
    await _submit(client, name="Encina")

    r = await client.put(f"/plants/{first['id']}/accept", headers=admin_headers)
    assert r.status_code == 200
    r = await client.put(f"/plants/{second['id']}/reject", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["rejected_by"] == str(admin_user.id)

    r = await client.get("/plants/count", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"pending": 1, "accepted": 1, "rejected": 1}

    r = await client.get("/plants/count/pending")
    assert r.json() == {"pending": 1}

    r = await client.get("/plants/count")
    _assert_error(r, 401, "MISSING_TOKEN")


@pytest.mark.asyncio
async def test_moderation_requires_admin(
    client: AsyncClient,
    user_headers: dict,
    pending_plant: Plant,
):
    plant_id = pending_plant.id
    for method, path in (
        ("PUT", f"/plants/{plant_id}/accept"),
        ("PUT", f"/plants/{plant_id}/reject"),
        ("PUT", f"/plants/{plant_id}"),
        ("DELETE", f"/plants/{plant_id}"),
    ):
        r = await client.request(method, path)
        _assert_error(r, 401, "MISSING_TOKEN")
        assert r.headers["www-authenticate"] == "Bearer"

        r = await client.request(method, path, headers=user_headers)
        _assert_error(r, 403, "FORBIDDEN")

    r = await client.get("/plants/count/pending")
    assert r.json() == {"pending": 1}


@pytest.mark.asyncio
async def test_moderation_by_removed_admin(client: AsyncClient, pending_plant: Plant):
    token, _ = get_jwt_manager().create_access_token(uuid.uuid4(), "gone@herbario.example", "admin")
    headers = {"Authorization": f"Bearer {token}"}

    r = await client.put(f"/plants/{pending_plant.id}/accept", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["status"] == "accepted"
    assert r.json()["data"]["accepted_by"] is None

    r = await client.put(f"/plants/{pending_plant.id}/reject", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["rejected_by"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("plant_id", [str(uuid.uuid4()), "not-a-uuid"])
async def test_moderating_missing_record(client: AsyncClient, admin_headers: dict, plant_id):
    for method, path in (
        ("PUT", f"/plants/{plant_id}/accept"),
        ("PUT", f"/plants/{plant_id}/reject"),
        ("PUT", f"/plants/{plant_id}"),
        ("DELETE", f"/plants/{plant_id}"),
    ):
        r = await client.request(method, path, headers=admin_headers, json={"name": "X"} if method == "PUT" else None)
        _assert_error(r, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_update(client: AsyncClient, admin_headers: dict, pending_plant: Plant):
    path = f"/plants/{pending_plant.id}"

    r = await client.put(path, json={}, headers=admin_headers)
    assert r.status_code == 200
    unchanged = r.json()["data"]
    assert unchanged["name"] == "Romero"
    assert unchanged["status"] == "pending"

    r = await client.put(path, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == unchanged

    r = await client.put(
        path,
        json={"description": "Arbusto aromatico", "family": None, "status": "accepted"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    updated = r.json()["data"]
    assert updated["description"] == "Arbusto aromatico"
    assert updated["family"] == "Lamiaceae"
    assert updated["status"] == "accepted"
    assert updated["accepted_by"] is None

    r = await client.put(path, json={"status": "archived"}, headers=admin_headers)
    _assert_error(r, 400, "VALIDATION_ERROR")

    r = await client.put(path, json={"latitude": "north"}, headers=admin_headers)
    _assert_error(r, 400, "VALIDATION_ERROR")


@pytest.mark.asyncio
async def test_delete(client: AsyncClient, admin_headers: dict, plant_with_image: Plant):
    path = f"/plants/{plant_with_image.id}"

    r = await client.delete(path, headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Plant deleted"}

    r = await client.get(f"{path}/imagen")
    _assert_error(r, 404, "NOT_FOUND")

    r = await client.delete(path, headers=admin_headers)
    _assert_error(r, 404, "NOT_FOUND")


class TestAuth:

    @pytest.mark.asyncio
    async def test_login_and_verify(self, client: AsyncClient, admin_user: User, admin_credentials: dict):
        r = await client.post("/auth/login", json=admin_credentials)
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["success"] is True
        assert body["user"] == {
            "id": str(admin_user.id),
            "email": admin_user.email,
            "name": "admin",
            "role": "admin",
        }

        r = await client.get("/auth/verify", headers={"Authorization": f"Bearer {body['token']}"})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == str(admin_user.id)

    @pytest.mark.asyncio
    async def test_login_token_opens_admin_routes(self, client: AsyncClient, admin_credentials: dict):
        token = (await client.post("/auth/login", json=admin_credentials)).json()["token"]

        r = await client.get("/plants/count", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_alike(
        self,
        client: AsyncClient,
        admin_credentials: dict,
    ):
        wrong = await client.post(
            "/auth/login",
            json={"email": admin_credentials["email"], "password": "WrongPassword1"},
        )
        unknown = await client.post(
            "/auth/login",
            json={"email": "nobody@herbario.example", "password": admin_credentials["password"]},
        )

        first = _assert_error(wrong, 401, "INVALID_CREDENTIALS")
        second = _assert_error(unknown, 401, "INVALID_CREDENTIALS")
        assert first["message"] == second["message"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"email": "admin@herbario.example"}, {"password": "AdminPass123"}])
    async def test_missing_credentials(self, client: AsyncClient, payload):
        r = await client.post("/auth/login", json=payload)
        _assert_error(r, 400, "MISSING_CREDENTIALS")

    @pytest.mark.asyncio
    async def test_malformed_credentials(self, client: AsyncClient):
        r = await client.post("/auth/login", json={"email": "admin", "password": "short"})
        body = _assert_error(r, 400, "VALIDATION_ERROR")
        assert {d["field"] for d in body["details"]} == {"email", "password"}

    @pytest.mark.asyncio
    async def test_verify_without_token(self, client: AsyncClient):
        r = await client.get("/auth/verify")
        _assert_error(r, 401, "MISSING_TOKEN")

        r = await client.get("/auth/verify", headers={"Authorization": "Basic YWRtaW46cGFzcw=="})
        _assert_error(r, 401, "MISSING_TOKEN")

    @pytest.mark.asyncio
    async def test_verify_bad_token(self, client: AsyncClient):
        r = await client.get("/auth/verify", headers={"Authorization": "Bearer not.a.token"})
        _assert_error(r, 401, "INVALID_OR_EXPIRED_TOKEN")

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, admin_user: User):
        token, _ = get_jwt_manager().create_access_token(
            admin_user.id,
            admin_user.email,
            "admin",
            issued_at=datetime.now(timezone.utc) - timedelta(days=2),
        )

        r = await client.get("/plants/count", headers={"Authorization": f"Bearer {token}"})
        _assert_error(r, 401, "INVALID_OR_EXPIRED_TOKEN")

    @pytest.mark.asyncio
    async def test_verify_token_for_removed_principal(self, client: AsyncClient):
        token, _ = get_jwt_manager().create_access_token(uuid.uuid4(), "gone@herbario.example", "admin")

        r = await client.get("/auth/verify", headers={"Authorization": f"Bearer {token}"})
        _assert_error(r, 401, "INVALID_TOKEN")

    @pytest.mark.asyncio
    async def test_logout(self, client: AsyncClient):
        r = await client.post("/auth/logout")
        assert r.status_code == 200
        assert r.json() == {"success": True, "message": "Session closed"}
