"""Dataclasses describing every Immortality game entity.

The rules layer operates purely on these in-memory types.  Persistence adapters
(see :mod:`immortality.repository` and :mod:`immortality.savegame`) serialize
them through pydantic ``TypeAdapter`` without any translation layer, so every
field here is part of the save format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType

from .enums import EquipmentKind, NumberMode

# --- Strongly typed identifiers -------------------------------------------------

GameID = NewType("GameID", int)
EquipmentID = NewType("EquipmentID", int)

FieldKey = tuple[str, float, int]

# Overflowed magnitudes are legal state; keep them as Infinity in saved JSON
# instead of pydantic's default ``null``.
SAVE_CONFIG = {"ser_json_inf_nan": "constants"}


# --- Clock ----------------------------------------------------------------------


@dataclass(slots=True)
class SimClock:
    """Authoritative simulation clock (one tick is one in-game day)."""

    __pydantic_config__ = SAVE_CONFIG

    tick_count: int = 0
    tick_interval_ms: float = 25.0
    speed_divider: int = 40
    paused: bool = False
    banked_ms: float = 0.0


@dataclass(slots=True)
class SpeedUnlocks:
    """Progression flags gating the faster speed tiers."""

    fast: bool = False
    faster: bool = False
    fastest: bool = False


# --- Farm -----------------------------------------------------------------------


@dataclass(slots=True)
class Field:
    """A single, individually tracked farm field."""

    __pydantic_config__ = SAVE_CONFIG

    crop_id: str
    yield_per_harvest: float
    days_to_harvest: int

    @property
    def key(self) -> FieldKey:
        return (self.crop_id, self.yield_per_harvest, self.days_to_harvest)


@dataclass(slots=True)
class FieldBatch:
    """``count`` identical fields stored as one record."""

    __pydantic_config__ = SAVE_CONFIG

    count: int
    crop_id: str
    yield_per_harvest: float
    days_to_harvest: int

    @property
    def key(self) -> FieldKey:
        return (self.crop_id, self.yield_per_harvest, self.days_to_harvest)


@dataclass(frozen=True, slots=True)
class DisplayBatch:
    """Read-side summary of every field sharing one key."""

    count: int
    crop_id: str
    yield_per_harvest: float
    days_to_harvest: int


@dataclass(slots=True)
class FieldCollection:
    """All planted fields of a home.

    The first ``detail_limit`` fields are kept as individual :class:`Field`
    records; everything beyond that lives in :class:`FieldBatch` records with at
    most one batch per key.
    """

    fields: list[Field] = field(default_factory=list)
    batches: list[FieldBatch] = field(default_factory=list)
    detail_limit: int = 300


@dataclass(slots=True)
class Furniture:
    """Catalog entry placed in a home furniture slot."""

    name: str
    slot: str
    effects: str | None = None


@dataclass(slots=True)
class Home:
    """Land, fields and furniture owned by the character."""

    __pydantic_config__ = SAVE_CONFIG

    land: int = 0
    land_price: float = 100.0
    crop_id: str = "rice"
    fields: FieldCollection = field(default_factory=FieldCollection)
    furniture: dict[str, Furniture | None] = field(default_factory=dict)


# --- Character & inventory ------------------------------------------------------


@dataclass(slots=True)
class Character:
    """Economy and lifespan state of the player character."""

    __pydantic_config__ = SAVE_CONFIG

    money: float = 0.0
    age_days: int = 0
    alchemy_lifespan: int = 0
    empowerment_factor: float = 1.0


@dataclass(slots=True)
class Equipment:
    """A weapon or piece of armor."""

    __pydantic_config__ = SAVE_CONFIG

    id: EquipmentID
    name: str
    kind: EquipmentKind
    slot: str
    value: float
    durability: float
    material: str
    effect: str | None = None
    base_damage: float = 0.0
    defense: float = 0.0


@dataclass(slots=True)
class Inventory:
    """Crop stockpile and equipment owned by the character."""

    __pydantic_config__ = SAVE_CONFIG

    crops: dict[str, float] = field(default_factory=dict)
    equipment: dict[EquipmentID, Equipment] = field(default_factory=dict)
    equipped: dict[str, EquipmentID] = field(default_factory=dict)
    next_equipment_id: int = 1


# --- Root aggregate -------------------------------------------------------------


@dataclass(slots=True)
class GameState:
    """Root aggregate handed to the tick and to every command handler."""

    __pydantic_config__ = SAVE_CONFIG

    id: GameID
    name: str
    clock: SimClock = field(default_factory=SimClock)
    unlocks: SpeedUnlocks = field(default_factory=SpeedUnlocks)
    character: Character = field(default_factory=Character)
    home: Home = field(default_factory=Home)
    inventory: Inventory = field(default_factory=Inventory)
    number_mode: NumberMode = NumberMode.STANDARD
