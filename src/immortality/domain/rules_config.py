"""Declarative rule configuration for the Immortality domain."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CropSpec:
    """Catalog entry describing a crop that can be planted on a field."""

    crop_id: str
    yield_per_harvest: float
    days_to_harvest: int


DEFAULT_CROPS: tuple[CropSpec, ...] = (
    CropSpec("rice", yield_per_harvest=1.0, days_to_harvest=90),
    CropSpec("cabbage", yield_per_harvest=2.0, days_to_harvest=120),
    CropSpec("beans", yield_per_harvest=3.0, days_to_harvest=150),
    CropSpec("melon", yield_per_harvest=5.0, days_to_harvest=180),
    CropSpec("peach", yield_per_harvest=10.0, days_to_harvest=360),
)


@dataclass(frozen=True, slots=True)
class FarmRules:
    """Land pricing and field bookkeeping constants."""

    detail_limit: int = 300
    initial_land_price: float = 100.0
    land_price_increment: float = 10.0
    auto_replant: bool = False
    default_crop: str = "rice"
    crops: tuple[CropSpec, ...] = DEFAULT_CROPS

    def crop(self, crop_id: str) -> CropSpec:
        for spec in self.crops:
            if spec.crop_id == crop_id:
                return spec
        raise KeyError(f"Unknown crop '{crop_id}'")


@dataclass(frozen=True, slots=True)
class EquipmentRules:
    """Wear and merge tuning."""

    durability_loss_per_use: float = 1.0
    value_loss_per_use: float = 0.01  # fraction of current value
    merge_wear_constant: float = 100.0


@dataclass(frozen=True, slots=True)
class LifespanRules:
    """Alchemy lifespan and empowerment constants."""

    days_per_year: int = 365
    alchemy_lifespan_cap_days: int = 36500
    empowerment_per_pill: float = 0.01
    empowerment_max_bonus: float = 99.0
    empowerment_curve_base: float = 1.02
    empowerment_curve_scale: float = 3.0


@dataclass(frozen=True, slots=True)
class ClockRules:
    """Scheduler pacing.

    The tick interval is multiplied by the divider, so the divider-1 tier is the
    fastest and the divider-40 tier the slowest.
    """

    speed_tiers: tuple[int, ...] = (40, 10, 5, 2, 1)
    always_unlocked: tuple[int, ...] = (40, 10)
    fast_tier: int = 5
    faster_tier: int = 2
    fastest_tier: int = 1
    max_catchup_ticks: int = 4000


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    farm: FarmRules = FarmRules()
    equipment: EquipmentRules = EquipmentRules()
    lifespan: LifespanRules = LifespanRules()
    clock: ClockRules = ClockRules()


DEFAULT_RULES = RulesConfig()
