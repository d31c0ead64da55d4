"""Player-facing numbers derived from game state.

Every function here is a pure read: tooltips are rebuilt on each render, so
nothing may mutate the state it inspects.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from . import farm
from .enums import EquipmentKind, NumberMode
from .models import Character, Equipment, Home
from .numbers import format_days, format_number
from .rules_config import DEFAULT_RULES, RulesConfig

LONGEVITY = "Longevity"
EMPOWERMENT = "Empowerment"

MERGE_HINT = "Drag and drop onto similar {plural} to merge them into something better."
WEAR_WARNING = (
    "The durability and value of equipment degrades with use. Be careful when merging "
    "powerful items that have seen a lot of wear, the product may be even lower quality "
    "than the original if the item's value is low."
)

_NUMBER_PATTERN = re.compile(r"[+-]?\d+\.?\d*")


@dataclass(frozen=True, slots=True)
class LongevityGain:
    """Lifespan days a pill promises versus what it would actually add."""

    nominal: int
    effective: int


@dataclass(frozen=True, slots=True)
class EmpowermentSummary:
    """Empowerment expressed both as a multiplier and as a percentage bonus."""

    pills: int
    multiplier: float
    percent_bonus: float


@dataclass(frozen=True, slots=True)
class ItemInfo:
    """Catalog description of a non-equipment item."""

    name: str
    description: str
    item_type: str | None = None
    value: float | None = None
    use_description: str | None = None
    effect: str | None = None
    power: int = 0
    slot: str | None = None
    furniture_effects: str | None = None


@dataclass(frozen=True, slots=True)
class FurnitureEffect:
    name: str
    count: int
    effects: str


# ---------------------------------------------------------------------------
# Pills


def longevity_gain(
    power: int, current_lifespan: int, rules: RulesConfig = DEFAULT_RULES
) -> LongevityGain:
    """Nominal and cap-limited lifespan gain of a longevity pill."""

    cap = rules.lifespan.alchemy_lifespan_cap_days
    effective = max(0, min(power, cap - current_lifespan))
    return LongevityGain(nominal=max(0, power), effective=effective)


def longevity_tooltip_lines(
    power: int, current_lifespan: int, rules: RulesConfig = DEFAULT_RULES
) -> list[str]:
    gain = longevity_gain(power, current_lifespan, rules)
    days_per_year = rules.lifespan.days_per_year
    cap_years = rules.lifespan.alchemy_lifespan_cap_days // days_per_year
    return [
        "Effects:",
        f"• +{format_days(gain.nominal, days_per_year)} alchemy lifespan "
        f"(max {cap_years} years).",
        "",
        f"The effective value of taking this pill will be "
        f"+{format_days(gain.effective, days_per_year)}.",
    ]


def empowerment_multiplier(factor: float, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Attribute gain multiplier for an empowerment factor.

    The curve is logistic in the number of pills taken: 1.0 with no pills,
    saturating at ``1 + empowerment_max_bonus``.
    """

    lifespan = rules.lifespan
    pills = max(0.0, (factor - 1) / lifespan.empowerment_per_pill)
    exponent = -pills / lifespan.empowerment_curve_scale
    denominator = 1 + lifespan.empowerment_curve_base**exponent
    return 1 + (2 * lifespan.empowerment_max_bonus) / denominator - lifespan.empowerment_max_bonus


def empowerment_summary(factor: float, rules: RulesConfig = DEFAULT_RULES) -> EmpowermentSummary:
    multiplier = empowerment_multiplier(factor, rules)
    pills = max(0, round((factor - 1) / rules.lifespan.empowerment_per_pill))
    return EmpowermentSummary(
        pills=pills, multiplier=multiplier, percent_bonus=(multiplier - 1) * 100
    )


def empowerment_explanation(
    summary: EmpowermentSummary, mode: NumberMode = NumberMode.STANDARD
) -> str:
    noun = "pill" if summary.pills == 1 else "pills"
    return (
        f"You have taken {summary.pills} empowerment {noun}. Your attribute gains are "
        f"multiplied by {format_number(summary.multiplier, mode)} "
        f"(+{format_number(summary.percent_bonus, mode)}%)."
    )


# ---------------------------------------------------------------------------
# Tooltips


def equipment_tooltip(item: Equipment, mode: NumberMode = NumberMode.STANDARD) -> str:
    is_weapon = item.kind == EquipmentKind.WEAPON
    imbued = f" and imbued with the power of {item.effect}" if item.effect else ""
    noun = "weapon" if is_weapon else "piece of armor"
    flavor = f"A unique {noun} made of {item.material}{imbued}."

    if is_weapon:
        stats = [f"• Base Damage: {format_number(item.base_damage, mode)}"]
    else:
        stats = [f"• Defense: {format_number(item.defense, mode)}"]
    stats.append(f"• Durability: {format_number(item.durability, mode)}")
    stats.append(f"• Value: {format_number(item.value, mode)}")

    hint = MERGE_HINT.format(plural="weapons" if is_weapon else "armor")
    return "\n\n".join([title_case(item.name), flavor, "\n".join(stats), hint, WEAR_WARNING])


def item_tooltip(
    item: ItemInfo,
    character: Character,
    *,
    mode: NumberMode = NumberMode.STANDARD,
    rules: RulesConfig = DEFAULT_RULES,
) -> str:
    lines = [title_case(item.name), "", item.description]

    stats: list[str] = []
    if item.item_type:
        spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", item.item_type)
        stats.append(f"• Type: {title_case(spaced)}")
    if item.value is not None and math.isfinite(item.value):
        stats.append(f"• Value: {format_number(item.value, mode)} taels")
    if item.slot and item.item_type == "furniture":
        stats.append(f"• Slot: {title_case(item.slot)}")
        if item.furniture_effects:
            stats.append(f"• Bonus: {item.furniture_effects}")
    if stats:
        lines.extend(["", *stats])

    if item.effect == EMPOWERMENT:
        summary = empowerment_summary(character.empowerment_factor, rules)
        lines.extend(["", "Effects:", "• Multiplies attribute gains."])
        lines.extend(["", empowerment_explanation(summary, mode)])
    elif item.effect == LONGEVITY:
        lines.append("")
        lines.extend(longevity_tooltip_lines(item.power, character.alchemy_lifespan, rules))
    elif item.use_description:
        lines.extend(["", "Effects:"])
        lines.extend(f"• {effect}" for effect in parse_effects(item.use_description))

    return "\n".join(lines)


def parse_effects(use_description: str) -> list[str]:
    """Split a catalog use description into one sentence per effect."""

    effects: list[str] = []
    for part in (p for p in re.split(r"\.\s*", use_description) if p.strip()):
        if "% chance:" in part:
            effects.append(part + ".")
            continue
        for effect in (e.strip() for e in re.split(r",\s*", part) if e.strip()):
            effects.append(effect if effect.endswith(".") else effect + ".")
    return effects


def title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


# ---------------------------------------------------------------------------
# Home


def furniture_effects_summary(home: Home) -> list[FurnitureEffect]:
    """Placed furniture grouped by name with numeric bonuses scaled by count."""

    placed = [item for item in home.furniture.values() if item is not None and item.effects]
    counts = Counter(item.name for item in placed)
    effects_by_name = {item.name: item.effects for item in placed}

    def scale(count: int) -> Callable[[re.Match[str]], str]:
        def _replace(match: re.Match[str]) -> str:
            raw = match.group(0)
            number = float(raw) * count
            if number.is_integer():
                text = str(int(number))
            else:
                text = re.sub(r"\.?0+$", "", f"{number:.2f}")
            return ("+" if raw.startswith("+") and number >= 0 else "") + text

        return _replace

    return [
        FurnitureEffect(
            name=name,
            count=count,
            effects=_NUMBER_PATTERN.sub(scale(count), effects_by_name[name] or ""),
        )
        for name, count in counts.items()
    ]


def land_price_label(
    home: Home,
    count: int,
    mode: NumberMode = NumberMode.STANDARD,
    rules: RulesConfig = DEFAULT_RULES,
) -> str:
    return format_number(farm.land_cost(home, count, rules), mode)


def half_affordable_land_label(
    home: Home,
    money: float,
    mode: NumberMode = NumberMode.STANDARD,
    rules: RulesConfig = DEFAULT_RULES,
) -> str:
    return format_number(farm.affordable_land(home, money, rules) // 2, mode)


def build_time_years(
    progress: float,
    days_to_build: float,
    builder_power: float = 0,
    mode: NumberMode = NumberMode.STANDARD,
    rules: RulesConfig = DEFAULT_RULES,
) -> str:
    """Remaining construction time in years for a partially built house."""

    remaining = (1 - progress) * days_to_build / (1 + builder_power)
    return format_number(remaining / rules.lifespan.days_per_year, mode) + " years"
