"""Integration tests for the FastAPI layer."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from immortality.api.app import create_app
from immortality.api.runtime import ApiState
from immortality.config import Settings
from immortality.domain import equipment
from immortality.domain import models as dm
from immortality.domain.enums import EquipmentKind
from immortality.repository import JsonGameRepository


def _make_app(tmp_path):
    def factory() -> ApiState:
        settings = Settings(
            data_dir=tmp_path,
            tick_interval_ms=25.0,
            autosave_interval_seconds=3600.0,
        )
        return ApiState(settings=settings)

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport


async def _create_paused_game(client: AsyncClient, name: str = "Run") -> int:
    response = await client.post("/games", json={"name": name})
    assert response.status_code == 201
    game_id = response.json()["id"]
    response = await client.post(f"/games/{game_id}/clock/pause")
    assert response.status_code == 200
    assert response.json()["state"] == "paused"
    return game_id


def _live_game(app, game_id: int) -> dm.GameState:
    return app.state.api_state.games.get_game(dm.GameID(game_id))


@pytest.mark.asyncio
async def test_game_lifecycle_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/health")
        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "ok"
        assert payload["main_loop_running"] is True

        game_id = await _create_paused_game(client)
        _live_game(app, game_id).character.money = 330.0

        response = await client.post(f"/games/{game_id}/farm/buy-land", json={"quantity": 10})
        assert response.status_code == 200
        bought = response.json()
        assert bought["applied"] == 3
        assert bought["clamped"] is True
        assert bought["farm"]["land"] == 3
        assert bought["farm"]["land_price"] == 130.0

        response = await client.post(f"/games/{game_id}/farm/plow", json={"quantity": -1})
        assert response.status_code == 200
        plowed = response.json()
        assert plowed["applied"] == 3
        assert plowed["clamped"] is False
        assert plowed["farm"]["batches"] == [
            {"count": 3, "crop_id": "rice", "yield_per_harvest": 1.0, "days_to_harvest": 90}
        ]

        response = await client.post(f"/games/{game_id}/farm/clear", json={"quantity": 0})
        assert response.status_code == 400

        response = await client.get(f"/games/{game_id}/clock")
        before = response.json()["tick_count"]
        response = await client.post(f"/games/{game_id}/clock/step")
        assert response.status_code == 200
        stepped = response.json()
        assert stepped["stepped"] is True
        assert stepped["tick_count"] == before + 1

        response = await client.get(f"/games/{game_id}/farm")
        assert response.json()["batches"][0]["days_to_harvest"] == 89

        response = await client.post(f"/games/{game_id}/clock/resume", json={"speed_divider": 1})
        assert response.status_code == 200
        locked = response.json()
        assert locked["accepted"] is False
        assert locked["state"] == "paused"

        response = await client.post(f"/games/{game_id}/clock/resume", json={"speed_divider": 10})
        resumed = response.json()
        assert resumed["accepted"] is True
        assert resumed["state"] == "running"
        assert resumed["effective_interval_ms"] == 250.0

        response = await client.post(f"/games/{game_id}/clock/step")
        assert response.json()["stepped"] is False

        response = await client.get("/games")
        assert [game["id"] for game in response.json()] == [game_id]

        response = await client.post(f"/games/{game_id}/save")
        assert response.status_code == 200

    repo = JsonGameRepository(tmp_path)
    stored = repo.load(dm.GameID(game_id))
    assert stored.home.land == 0
    assert stored.clock.tick_count >= 1


@pytest.mark.asyncio
async def test_unknown_game_returns_404(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        for method, path in [
            ("get", "/games/99"),
            ("get", "/games/99/farm"),
            ("get", "/games/99/clock"),
            ("post", "/games/99/clock/pause"),
            ("post", "/games/99/save"),
        ]:
            response = await getattr(client, method)(path)
            assert response.status_code == 404, path

        response = await client.post("/games/99/farm/plow", json={"quantity": 1})
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_equipment_endpoints_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        game_id = await _create_paused_game(client)
        game = _live_game(app, game_id)
        for value in (100.0, 60.0):
            equipment.add_equipment(
                game.inventory,
                name="iron sword",
                kind=EquipmentKind.WEAPON,
                slot="rightHand",
                value=value,
                durability=50.0,
                material="iron",
                base_damage=10.0,
            )
        equipment.add_equipment(
            game.inventory,
            name="leather vest",
            kind=EquipmentKind.ARMOR,
            slot="body",
            value=30.0,
            durability=20.0,
            material="leather",
            defense=3.0,
        )

        response = await client.post(
            f"/games/{game_id}/equipment/merge", json={"first_id": 1, "second_id": 3}
        )
        assert response.status_code == 400

        response = await client.post(
            f"/games/{game_id}/equipment/merge", json={"first_id": 1, "second_id": 42}
        )
        assert response.status_code == 404

        response = await client.post(
            f"/games/{game_id}/equipment/merge", json={"first_id": 1, "second_id": 2}
        )
        assert response.status_code == 201
        merged = response.json()
        assert merged["id"] == 4
        assert merged["value"] == pytest.approx(80.0)
        assert merged["durability"] == 100.0

        response = await client.get(f"/games/{game_id}/equipment")
        assert [item["id"] for item in response.json()] == [3, 4]

        response = await client.get(f"/games/{game_id}/equipment/4/tooltip")
        assert response.status_code == 200
        assert "• Base Damage: 10" in response.json()["tooltip"]

        response = await client.get(f"/games/{game_id}/equipment/1/tooltip")
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_format_endpoint(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/format", params={"value": 1500000})
        assert response.json() == {"mode": "standard", "text": "1.5M"}

        response = await client.get("/format", params={"value": 1234, "mode": "scientific"})
        assert response.json()["text"] == "1.23e+3"

        response = await client.get("/format", params={"value": "inf"})
        assert response.json()["text"] == "Infinity"

        response = await client.get("/format", params={"value": 1, "mode": "roman"})
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_select_crop_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        game_id = await _create_paused_game(client)

        response = await client.post(f"/games/{game_id}/farm/crop", json={"crop_id": "melon"})
        assert response.status_code == 200
        assert response.json()["crop_id"] == "melon"

        response = await client.post(f"/games/{game_id}/farm/crop", json={"crop_id": "lotus"})
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_pill_commands_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        game_id = await _create_paused_game(client)

        response = await client.get(f"/games/{game_id}/character")
        assert response.status_code == 200
        assert response.json()["alchemy_lifespan_label"] == "0 days"

        response = await client.post(
            f"/games/{game_id}/character/longevity", json={"power": 400}
        )
        assert response.status_code == 200
        taken = response.json()
        assert taken["gained"] == 400
        assert taken["character"]["alchemy_lifespan_label"] == "1 year 35 days"

        response = await client.post(
            f"/games/{game_id}/character/longevity", json={"power": 36500}
        )
        assert response.json()["gained"] == 36100
        assert response.json()["character"]["alchemy_lifespan"] == 36500

        response = await client.post(f"/games/{game_id}/character/longevity", json={"power": 0})
        assert response.status_code == 422

        response = await client.post(f"/games/{game_id}/character/empowerment", json={"pills": 3})
        assert response.status_code == 200
        empowered = response.json()
        assert empowered["empowerment_pills"] == 3
        assert empowered["empowerment_multiplier"] > 1
        assert empowered["empowerment_explanation"].startswith(
            "You have taken 3 empowerment pills."
        )

        response = await client.post("/games/99/character/empowerment", json={"pills": 1})
        assert response.status_code == 404
