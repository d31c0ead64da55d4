"""Pill consumption rules for the player character."""

from __future__ import annotations

from .models import Character
from .rules_config import DEFAULT_RULES, RulesConfig


def apply_longevity(
    character: Character, power: int, rules: RulesConfig = DEFAULT_RULES
) -> int:
    """Add ``power`` days of alchemy lifespan up to the cap; return the days gained."""

    cap = rules.lifespan.alchemy_lifespan_cap_days
    gained = max(0, min(power, cap - character.alchemy_lifespan))
    character.alchemy_lifespan += gained
    return gained


def apply_empowerment(
    character: Character, pills: int = 1, rules: RulesConfig = DEFAULT_RULES
) -> None:
    """Record ``pills`` empowerment pills taken."""

    if pills <= 0:
        return
    character.empowerment_factor += rules.lifespan.empowerment_per_pill * pills
