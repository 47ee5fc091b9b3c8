import logging

import pytest
from httpx import AsyncClient, ASGITransport

from app.main import app

EXPORTS_URL = "/api/v1/exports"


async def create_export(client: AsyncClient, player_user_id: int, data: str = "payload", **extra):
    return await client.post(
        EXPORTS_URL,
        json={"player_user_id": player_user_id, "serialized_data": data, **extra}
    )


# ==================== CREATE ====================

@pytest.mark.asyncio
async def test_create_export(client: AsyncClient, player_id, serialized_model):
    """Test export creation returns the full record"""
    response = await create_export(client, player_id, serialized_model)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    result = data["result"]
    assert len(result["id"]) == 12 and result["id"].isdigit()
    assert result["player_user_id"] == player_id
    assert result["serialized_data"] == serialized_model
    assert result["created_at"] == "2025-01-01T12:00:00.123456Z"


@pytest.mark.asyncio
async def test_create_export_with_id(client: AsyncClient):
    """Test a client-supplied id is kept"""
    response = await create_export(client, 42, "X", id="100000000000")

    assert response.status_code == 201
    assert response.json()["result"]["id"] == "100000000000"


@pytest.mark.asyncio
async def test_create_export_trailing_slash(client: AsyncClient):
    """Test POST /exports/ is accepted as well"""
    response = await client.post(
        f"{EXPORTS_URL}/",
        json={"player_user_id": 1, "serialized_data": "X"}
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_generated_ids_are_unique(client: AsyncClient):
    """Test generated ids do not collide in practice"""
    ids = set()
    for player in range(1, 11):
        response = await create_export(client, player)
        ids.add(response.json()["result"]["id"])

    assert len(ids) == 10


@pytest.mark.asyncio
async def test_create_export_quota(client: AsyncClient):
    """Test a sixth export for the same player is rejected"""
    for _ in range(5):
        response = await create_export(client, 7)
        assert response.status_code == 201

    response = await create_export(client, 7)

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["errors"] == [{
        "code": 4001,
        "message": "Player cannot have more than 5 model exports"
    }]

    # Another player is unaffected
    other = await create_export(client, 8)
    assert other.status_code == 201


@pytest.mark.asyncio
async def test_create_export_duplicate_id(client: AsyncClient):
    """Test reusing an id fails with 4002"""
    await create_export(client, 1, id="123456789012")

    response = await create_export(client, 2, id="123456789012")

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == 4002


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["12345", "1234567890123", "abcdefghijkl"])
async def test_create_export_invalid_id(client: AsyncClient, bad_id):
    """Test ids that are not 12 digits are rejected"""
    response = await create_export(client, 1, id=bad_id)

    assert response.status_code == 400
    assert response.json()["errors"] == [{"code": 400, "message": "ID must be a 12-digit number"}]


@pytest.mark.asyncio
async def test_create_export_missing_fields(client: AsyncClient):
    """Test missing serialized_data is a 400"""
    response = await client.post(EXPORTS_URL, json={"player_user_id": 1})

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["errors"][0]["code"] == 400
    assert "serialized_data" in data["errors"][0]["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"player_user_id": 0, "serialized_data": "X"},
    {"player_user_id": -3, "serialized_data": "X"},
    {"player_user_id": "12", "serialized_data": "X"},
    {"player_user_id": 1, "serialized_data": ""},
])
async def test_create_export_invalid_fields(client: AsyncClient, body):
    """Test invalid player ids and empty payloads are rejected"""
    response = await client.post(EXPORTS_URL, json=body)

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == 400


@pytest.mark.asyncio
async def test_create_export_large_player_id(client: AsyncClient):
    """Test player ids beyond 32 bits round-trip"""
    player_user_id = 2**63 - 1
    response = await create_export(client, player_user_id)

    assert response.status_code == 201
    assert response.json()["result"]["player_user_id"] == player_user_id

    listing = await client.get(f"{EXPORTS_URL}/player/{player_user_id}")
    assert [item["player_user_id"] for item in listing.json()["result"]] == [player_user_id]


@pytest.mark.asyncio
async def test_create_export_player_id_out_of_range(client: AsyncClient):
    """Test a player id too large to store is a 400, not a 500"""
    response = await create_export(client, 2**63)

    assert response.status_code == 400
    assert response.json()["errors"] == [{"code": 400, "message": "Invalid player_user_id"}]


@pytest.mark.asyncio
async def test_create_export_invalid_json(client: AsyncClient):
    """Test malformed JSON bodies are rejected"""
    response = await client.post(
        EXPORTS_URL,
        content=b"{not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["errors"] == [{"code": 400, "message": "Invalid JSON body"}]


# ==================== LIST ====================

@pytest.mark.asyncio
async def test_list_player_exports_newest_first(client: AsyncClient, clock):
    """Test listing returns most recent exports first"""
    created = []
    for _ in range(3):
        response = await create_export(client, 5)
        created.append(response.json()["result"]["id"])
        clock.advance(minutes=10)

    response = await client.get(f"{EXPORTS_URL}/player/5")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [item["id"] for item in data["result"]] == list(reversed(created))
    assert all(item["is_expired"] is False for item in data["result"])
    assert all(item["player_user_id"] == 5 for item in data["result"])


@pytest.mark.asyncio
async def test_list_player_exports_empty(client: AsyncClient):
    """Test a player without exports gets an empty list"""
    response = await client.get(f"{EXPORTS_URL}/player/999")

    assert response.status_code == 200
    assert response.json() == {"success": True, "result": []}


@pytest.mark.asyncio
async def test_list_player_exports_sweeps_expired(client: AsyncClient, clock):
    """Test expired exports are returned once, flagged, and then gone"""
    old = (await create_export(client, 5, "old")).json()["result"]["id"]
    clock.advance(hours=23)
    fresh = (await create_export(client, 5, "fresh")).json()["result"]["id"]
    clock.advance(hours=2)

    response = await client.get(f"{EXPORTS_URL}/player/5")
    flags = {item["id"]: item["is_expired"] for item in response.json()["result"]}
    assert flags == {old: True, fresh: False}

    response = await client.get(f"{EXPORTS_URL}/player/5")
    assert [item["id"] for item in response.json()["result"]] == [fresh]


@pytest.mark.asyncio
async def test_list_player_exports_is_repeatable(client: AsyncClient):
    """Test two lists in a row without expiry are identical"""
    for _ in range(2):
        await create_export(client, 3)

    first = await client.get(f"{EXPORTS_URL}/player/3")
    second = await client.get(f"{EXPORTS_URL}/player/3")

    assert first.json() == second.json()


@pytest.mark.asyncio
@pytest.mark.parametrize("player", ["0", "-1", "abc", "42abc", "9223372036854775808"])
async def test_list_player_exports_invalid_player(client: AsyncClient, player):
    """Test invalid player ids are rejected"""
    response = await client.get(f"{EXPORTS_URL}/player/{player}")

    assert response.status_code == 400
    assert response.json()["errors"] == [{"code": 400, "message": "Invalid player_user_id"}]


# ==================== IMPORT ====================

@pytest.mark.asyncio
async def test_import_export(client: AsyncClient, player_id, serialized_model):
    """Test importing returns the stored payload"""
    created = (await create_export(client, player_id, serialized_model)).json()["result"]

    response = await client.get(f"{EXPORTS_URL}/import/{created['id']}/{player_id}")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "result": {
            "id": created["id"],
            "serialized_data": serialized_model,
            "is_expired": False,
        }
    }


@pytest.mark.asyncio
async def test_import_expired_export_once(client: AsyncClient, clock):
    """Test an expired export is handed back once and then not found"""
    await create_export(client, 42, "X", id="100000000000")
    clock.advance(hours=25)

    response = await client.get(f"{EXPORTS_URL}/import/100000000000/42")

    assert response.status_code == 200
    assert response.json()["result"] == {
        "id": "100000000000",
        "serialized_data": "X",
        "is_expired": True,
    }

    response = await client.get(f"{EXPORTS_URL}/import/100000000000/42")

    assert response.status_code == 404
    assert response.json()["errors"][0]["code"] == 4041


@pytest.mark.asyncio
async def test_import_export_wrong_owner(client: AsyncClient):
    """Test another player's export looks the same as a missing one"""
    await create_export(client, 1, id="111111111111")

    wrong_owner = await client.get(f"{EXPORTS_URL}/import/111111111111/2")
    missing = await client.get(f"{EXPORTS_URL}/import/222222222222/1")

    assert wrong_owner.status_code == missing.status_code == 404
    assert wrong_owner.json() == missing.json()


@pytest.mark.asyncio
async def test_import_export_invalid_player(client: AsyncClient):
    """Test a non-positive player id is a 400"""
    response = await client.get(f"{EXPORTS_URL}/import/111111111111/0")

    assert response.status_code == 400


# ==================== UPDATE ====================

@pytest.mark.asyncio
async def test_update_export(client: AsyncClient, clock):
    """Test updating replaces the payload and keeps created_at"""
    created = (await create_export(client, 9, "v1")).json()["result"]
    clock.advance(hours=1)

    response = await client.put(
        f"{EXPORTS_URL}/{created['id']}",
        json={"serialized_data": "v2"}
    )

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["serialized_data"] == "v2"
    assert result["created_at"] == created["created_at"]
    assert result["player_user_id"] == 9
    assert result["is_expired"] is False

    imported = await client.get(f"{EXPORTS_URL}/import/{created['id']}/9")
    assert imported.json()["result"]["serialized_data"] == "v2"


@pytest.mark.asyncio
async def test_update_expired_export_discards_write(client: AsyncClient, clock):
    """Test updating an expired export returns stale content and deletes it"""
    created = (await create_export(client, 9, "v1")).json()["result"]
    clock.advance(hours=24, seconds=1)

    response = await client.put(
        f"{EXPORTS_URL}/{created['id']}",
        json={"serialized_data": "v2"}
    )

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["serialized_data"] == "v1"
    assert result["is_expired"] is True
    assert result["created_at"] == created["created_at"]

    listing = await client.get(f"{EXPORTS_URL}/player/9")
    assert listing.json()["result"] == []


@pytest.mark.asyncio
async def test_update_export_not_found(client: AsyncClient):
    response = await client.put(f"{EXPORTS_URL}/123123123123", json={"serialized_data": "X"})

    assert response.status_code == 404
    assert response.json()["errors"] == [{"code": 4041, "message": "Model not found"}]


@pytest.mark.asyncio
async def test_update_export_empty_payload(client: AsyncClient):
    created = (await create_export(client, 9)).json()["result"]

    response = await client.put(f"{EXPORTS_URL}/{created['id']}", json={"serialized_data": ""})

    assert response.status_code == 400


# ==================== ERRORS ====================

@pytest.mark.asyncio
async def test_unexpected_error_is_generic(client: AsyncClient, export_service, monkeypatch):
    """Test internal failures return code 7000 without details"""
    async def broken(*args, **kwargs):
        raise RuntimeError("database is on fire")

    monkeypatch.setattr(export_service, "list_player_exports", broken)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get(f"{EXPORTS_URL}/player/1")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "errors": [{"code": 7000, "message": "Internal Server Error"}]
    }


@pytest.mark.asyncio
async def test_response_carries_request_id(client: AsyncClient):
    response = await client.get(f"{EXPORTS_URL}/player/1", headers={"X-Request-ID": "abc12345"})

    assert response.headers["X-Request-ID"] == "abc12345"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client: AsyncClient):
    response = await client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_request_completion_is_logged(client: AsyncClient, caplog):
    caplog.set_level(logging.INFO, logger="model_exports")

    await client.get(f"{EXPORTS_URL}/player/1")

    completed = [r for r in caplog.records if getattr(r, "event_type", None) == "http_request_complete"]
    assert len(completed) == 1
    assert completed[0].http_path == f"{EXPORTS_URL}/player/1"
    assert completed[0].http_status == 200


# ==================== UNVERSIONED PATHS ====================

@pytest.mark.asyncio
async def test_unversioned_export_routes(client: AsyncClient):
    """Test the export routes also answer under /exports"""
    response = await client.post("/exports", json={"player_user_id": 3, "serialized_data": "X"})

    assert response.status_code == 201
    export_id = response.json()["result"]["id"]

    updated = await client.put(f"/exports/{export_id}", json={"serialized_data": "Y"})
    assert updated.json()["result"]["serialized_data"] == "Y"

    listing = await client.get("/exports/player/3")
    assert [item["id"] for item in listing.json()["result"]] == [export_id]

    imported = await client.get(f"/exports/import/{export_id}/3")
    assert imported.json()["result"]["serialized_data"] == "Y"
