"""Enumerations used by the Immortality domain."""

from __future__ import annotations

from enum import StrEnum


class NumberMode(StrEnum):
    """Rendering modes supported by the big-number formatter."""

    STANDARD = "standard"
    SCIENTIFIC = "scientific"


class EquipmentKind(StrEnum):
    """Equipment families; only equipment of the same kind can be merged."""

    WEAPON = "weapon"
    ARMOR = "armor"


class ClockState(StrEnum):
    """Scheduler states exposed to clients."""

    RUNNING = "running"
    PAUSED = "paused"
