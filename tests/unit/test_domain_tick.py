"""Tests for daily tick orchestration."""

from __future__ import annotations

from immortality.domain import batches, farm, tick
from immortality.domain import models as dm
from immortality.domain.enums import EquipmentKind


def _game() -> dm.GameState:
    return dm.GameState(id=dm.GameID(1), name="Test", home=dm.Home(land=2))


def test_tick_advances_counters():
    game = _game()
    report = tick.run_daily_tick(game)

    assert report.tick == 1
    assert report.harvested == []
    assert game.clock.tick_count == 1
    assert game.character.age_days == 1


def test_tick_ages_fields_and_reports_harvest():
    game = _game()
    farm.select_crop(game, "beans")
    farm.plow(game, -1)

    reports = [tick.run_daily_tick(game) for _ in range(150)]

    assert all(not report.harvested for report in reports[:-1])
    assert reports[-1].harvested[0].count == 2
    assert game.inventory.crops["beans"] == 6.0
    assert batches.total_units(game.home.fields) == 0


def test_tick_wears_equipped_gear():
    game = _game()
    item = dm.Equipment(
        id=dm.EquipmentID(1),
        name="iron sword",
        kind=EquipmentKind.WEAPON,
        slot="rightHand",
        value=100.0,
        durability=2.0,
        material="iron",
    )
    game.inventory.equipment[item.id] = item
    game.inventory.equipped[item.slot] = item.id

    for _ in range(3):
        tick.run_daily_tick(game)

    assert item.durability == 0
    assert item.value < 100.0
