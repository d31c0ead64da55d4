"""Pure state transitions for the simulation clock.

``Running(divider)`` and ``Paused`` are modelled by :attr:`SimClock.paused`
plus :attr:`SimClock.speed_divider`.  The real-time driver lives in
:mod:`immortality.api.runtime`; everything here is synchronous and
deterministic so it can be exercised without an event loop.
"""

from __future__ import annotations

from .enums import ClockState
from .models import SimClock, SpeedUnlocks
from .rules_config import DEFAULT_RULES, RulesConfig


def state_of(clock: SimClock) -> ClockState:
    return ClockState.PAUSED if clock.paused else ClockState.RUNNING


def unlocked_dividers(unlocks: SpeedUnlocks, rules: RulesConfig = DEFAULT_RULES) -> tuple[int, ...]:
    """Speed tiers currently available, slowest first."""

    tiers = rules.clock
    unlocked = set(tiers.always_unlocked)
    if unlocks.fast:
        unlocked.add(tiers.fast_tier)
    if unlocks.faster:
        unlocked.add(tiers.faster_tier)
    if unlocks.fastest:
        unlocked.add(tiers.fastest_tier)
    return tuple(tier for tier in tiers.speed_tiers if tier in unlocked)


def pause(clock: SimClock) -> None:
    """Stop automatic advancement; pausing twice is harmless."""

    clock.paused = True
    clock.banked_ms = 0.0


def resume(
    clock: SimClock,
    speed_divider: int,
    unlocks: SpeedUnlocks,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Run at ``speed_divider`` if that tier is unlocked.

    A locked or unknown tier leaves the clock untouched and returns ``False``.
    """

    if speed_divider not in unlocked_dividers(unlocks, rules):
        return False
    if clock.paused:
        clock.banked_ms = 0.0
    clock.paused = False
    clock.speed_divider = speed_divider
    return True


def can_single_step(clock: SimClock) -> bool:
    return clock.paused


def effective_interval_ms(clock: SimClock) -> float:
    """Real-time milliseconds per tick at the current speed tier."""

    return clock.tick_interval_ms * clock.speed_divider


def ticks_due(clock: SimClock, elapsed_ms: float) -> int:
    """Ticks that ``elapsed_ms`` more of banked time would cover, before any cap."""

    interval = effective_interval_ms(clock)
    if clock.paused or elapsed_ms <= 0 or interval <= 0:
        return 0
    return int((clock.banked_ms + elapsed_ms) // interval)


def accrue(clock: SimClock, elapsed_ms: float, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Bank ``elapsed_ms`` of real time and return how many ticks are now due.

    Paused clocks bank nothing.  The result is capped at
    ``rules.clock.max_catchup_ticks``; time beyond the cap is discarded rather
    than carried over.
    """

    if clock.paused or elapsed_ms <= 0:
        return 0
    interval = effective_interval_ms(clock)
    if interval <= 0:
        return 0

    clock.banked_ms += elapsed_ms
    due = int(clock.banked_ms // interval)
    cap = rules.clock.max_catchup_ticks
    if due > cap:
        clock.banked_ms = 0.0
        return cap
    clock.banked_ms -= due * interval
    return due
