"""Daily tick orchestration for Immortality games."""

from __future__ import annotations

from dataclasses import dataclass, field

from . import equipment, farm
from .models import DisplayBatch, GameState
from .rules_config import DEFAULT_RULES, RulesConfig


@dataclass(slots=True)
class TickReport:
    """What happened during one tick."""

    tick: int
    harvested: list[DisplayBatch] = field(default_factory=list)


def run_daily_tick(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> TickReport:
    """Advance the game by one in-game day.

    The tick runs to completion before returning; callers must not interleave
    commands with it.
    """

    state.clock.tick_count += 1
    state.character.age_days += 1

    harvested = farm.advance_farm(state, rules)
    equipment.wear_equipped(state, rules)

    return TickReport(tick=state.clock.tick_count, harvested=harvested)
