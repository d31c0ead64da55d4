"""Tests for the simulation clock state machine."""

from __future__ import annotations

from dataclasses import replace

from hypothesis import given
from hypothesis import strategies as st

from immortality.domain import clock
from immortality.domain import models as dm
from immortality.domain.enums import ClockState
from immortality.domain.rules_config import DEFAULT_RULES


def test_only_base_tiers_are_unlocked_by_default():
    assert clock.unlocked_dividers(dm.SpeedUnlocks()) == (40, 10)


def test_unlocks_add_faster_tiers_in_order():
    unlocks = dm.SpeedUnlocks(fast=True, fastest=True)
    assert clock.unlocked_dividers(unlocks) == (40, 10, 5, 1)


def test_resume_with_locked_tier_is_ignored():
    sim = dm.SimClock(paused=True, speed_divider=40)

    accepted = clock.resume(sim, 1, dm.SpeedUnlocks())

    assert accepted is False
    assert sim.paused
    assert sim.speed_divider == 40


def test_resume_with_unknown_tier_is_ignored():
    sim = dm.SimClock(speed_divider=10)
    assert clock.resume(sim, 3, dm.SpeedUnlocks(fast=True, faster=True, fastest=True)) is False
    assert sim.speed_divider == 10


def test_resume_switches_tier_while_running():
    sim = dm.SimClock(speed_divider=40, banked_ms=300.0)

    assert clock.resume(sim, 10, dm.SpeedUnlocks())

    assert sim.speed_divider == 10
    assert sim.banked_ms == 300.0
    assert clock.state_of(sim) == ClockState.RUNNING


def test_pause_is_idempotent():
    sim = dm.SimClock(banked_ms=500.0)

    clock.pause(sim)
    snapshot = replace(sim)
    clock.pause(sim)

    assert sim == snapshot
    assert clock.state_of(sim) == ClockState.PAUSED
    assert sim.banked_ms == 0


def test_single_step_only_allowed_when_paused():
    sim = dm.SimClock()
    assert not clock.can_single_step(sim)
    clock.pause(sim)
    assert clock.can_single_step(sim)


def test_effective_interval_scales_with_divider():
    assert clock.effective_interval_ms(dm.SimClock(tick_interval_ms=25.0, speed_divider=40)) == 1000
    assert clock.effective_interval_ms(dm.SimClock(tick_interval_ms=25.0, speed_divider=1)) == 25


def test_accrue_banks_partial_ticks():
    sim = dm.SimClock(speed_divider=40)

    assert clock.accrue(sim, 2500.0) == 2
    assert sim.banked_ms == 500.0
    assert clock.accrue(sim, 600.0) == 1
    assert sim.banked_ms == 100.0


def test_paused_clock_accrues_nothing():
    sim = dm.SimClock(paused=True)
    assert clock.accrue(sim, 10_000.0) == 0
    assert sim.banked_ms == 0


def test_accrue_caps_catch_up_and_drops_excess():
    rules = replace(DEFAULT_RULES, clock=replace(DEFAULT_RULES.clock, max_catchup_ticks=50))
    sim = dm.SimClock(speed_divider=1)

    assert clock.accrue(sim, 1_000_000.0, rules) == 50
    assert sim.banked_ms == 0


@given(
    chunks=st.lists(st.floats(min_value=0.0, max_value=5000.0), max_size=30),
    divider=st.sampled_from([40, 10]),
)
def test_accrued_ticks_never_exceed_elapsed_time(chunks, divider):
    sim = dm.SimClock(speed_divider=divider)
    ticks = sum(clock.accrue(sim, chunk) for chunk in chunks)

    interval = clock.effective_interval_ms(sim)
    assert ticks * interval <= sum(chunks) + 1e-6
    assert -1e-6 <= sim.banked_ms < interval + 1e-6


def test_ticks_due_reports_time_owed_before_the_cap():
    rules = replace(DEFAULT_RULES, clock=replace(DEFAULT_RULES.clock, max_catchup_ticks=50))
    sim = dm.SimClock(speed_divider=1, banked_ms=10.0)

    assert clock.ticks_due(sim, 1_000.0) == 40
    assert clock.ticks_due(sim, 1_000_000.0) == 40_000
    assert sim.banked_ms == 10.0
    assert clock.accrue(sim, 1_000_000.0, rules) == 50
    assert clock.ticks_due(dm.SimClock(paused=True), 5_000.0) == 0
