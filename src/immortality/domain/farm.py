"""Land and field commands for the home farm."""

from __future__ import annotations

import math
import sys
from fractions import Fraction

from . import batches
from .models import DisplayBatch, GameState, Home
from .quantity import BulkResult, resolve_quantity, validate_quantity
from .rules_config import DEFAULT_RULES, RulesConfig

# ---------------------------------------------------------------------------
# Land pricing


def land_cost(home: Home, count: int, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Price of buying ``count`` plots in one go; each plot costs more than the last."""

    if count <= 0:
        return 0
    increment = rules.farm.land_price_increment
    plots = float(count)
    return home.land_price * plots + increment * (plots * (plots - 1) / 2)


def affordable_land(home: Home, money: float, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Largest number of plots whose combined price fits in ``money``.

    Solved over exact rationals, so the count stays correct long after one more
    plot stops changing the float total.  Infinite money is capped at the
    largest finite float.
    """

    if not money > 0 or not 0 < home.land_price < math.inf:
        return 0
    budget = Fraction(min(money, sys.float_info.max))
    price = Fraction(home.land_price)
    increment = Fraction(rules.farm.land_price_increment)
    if increment <= 0:
        return int(budget // price)

    # increment * n^2 + (2 * price - increment) * n <= 2 * budget, scaled to integers
    scale = math.lcm(budget.denominator, price.denominator, increment.denominator)
    a = int(increment * scale)
    b = int((2 * price - increment) * scale)
    c = int(2 * budget * scale)

    def fits(plots: int) -> bool:
        return a * plots * plots + b * plots <= c

    # isqrt floors, so the estimate is off by at most one
    count = max(0, (math.isqrt(b * b + 4 * a * c) - b) // (2 * a))
    while fits(count + 1):
        count += 1
    while count > 0 and not fits(count):
        count -= 1
    return count


# ---------------------------------------------------------------------------
# Bulk commands


def buy_land(state: GameState, quantity: int, rules: RulesConfig = DEFAULT_RULES) -> BulkResult:
    """Buy plots with the character's money, clamped to what is affordable."""

    validate_quantity(quantity)
    home = state.home
    count = resolve_quantity(quantity, affordable_land(home, state.character.money, rules))
    if count:
        cost = land_cost(home, count, rules)
        state.character.money = max(0, state.character.money - cost)
        home.land += count
        home.land_price += rules.farm.land_price_increment * count
    return BulkResult(requested=quantity, applied=count)


def plow(state: GameState, quantity: int, rules: RulesConfig = DEFAULT_RULES) -> BulkResult:
    """Turn free land into fields planted with the home's selected crop."""

    validate_quantity(quantity)
    home = state.home
    count = resolve_quantity(quantity, home.land)
    if count:
        crop = rules.farm.crop(home.crop_id)
        batches.add_units(
            home.fields, count, crop.crop_id, crop.yield_per_harvest, crop.days_to_harvest
        )
        home.land -= count
    return BulkResult(requested=quantity, applied=count)


def clear_fields(
    state: GameState, quantity: int, rules: RulesConfig = DEFAULT_RULES
) -> BulkResult:
    """Remove fields and return their plots to free land."""

    validate_quantity(quantity)
    home = state.home
    count = resolve_quantity(quantity, batches.total_units(home.fields))
    removed = batches.remove_units(home.fields, count) if count else 0
    home.land += removed
    return BulkResult(requested=quantity, applied=removed)


def reset_fields(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> BulkResult:
    """Clear every field and replant the same number with the selected crop."""

    home = state.home
    total = batches.total_units(home.fields)
    if total:
        clear_fields(state, -1, rules)
        plow(state, total, rules)
    return BulkResult(requested=total, applied=total)


def select_crop(state: GameState, crop_id: str, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Choose the crop used by future plowing; raises ``KeyError`` if unknown."""

    state.home.crop_id = rules.farm.crop(crop_id).crop_id


# ---------------------------------------------------------------------------
# Daily progression


def advance_farm(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> list[DisplayBatch]:
    """Age every field by a day and credit ripe ones to the crop stockpile."""

    home = state.home
    harvested = batches.advance_day(home.fields)
    crops = state.inventory.crops
    for record in harvested:
        crops[record.crop_id] = crops.get(record.crop_id, 0) + (
            record.count * record.yield_per_harvest
        )
        if rules.farm.auto_replant:
            crop = rules.farm.crop(home.crop_id)
            batches.add_units(
                home.fields,
                record.count,
                crop.crop_id,
                crop.yield_per_harvest,
                crop.days_to_harvest,
            )
        else:
            home.land += record.count
    return harvested
