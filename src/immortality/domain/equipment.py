"""Equipment wear and merge rules.

Merging works from the *current* value and durability of both inputs.  The
combined stats are scaled by a wear efficiency that approaches 1 for well-kept
gear and 0 for worn-out gear, so merging two battered items can produce
something worse than either of them.
"""

from __future__ import annotations

from .enums import EquipmentKind
from .models import Equipment, EquipmentID, GameState, Inventory
from .rules_config import DEFAULT_RULES, RulesConfig


class EquipmentMergeError(ValueError):
    """Raised when two pieces of equipment cannot be merged."""


def wear_efficiency(total_durability: float, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Fraction of the combined stats that survives a merge."""

    constant = rules.equipment.merge_wear_constant
    durability = max(0.0, total_durability)
    if constant <= 0:
        return 1.0
    return durability / (durability + constant)


def merge(
    first: Equipment,
    second: Equipment,
    *,
    new_id: EquipmentID,
    rules: RulesConfig = DEFAULT_RULES,
) -> Equipment:
    """Combine two pieces of equipment of the same kind into a new one."""

    if first.kind != second.kind:
        raise EquipmentMergeError(
            f"Cannot merge {first.kind} '{first.name}' with {second.kind} '{second.name}'"
        )

    durability = max(0.0, first.durability) + max(0.0, second.durability)
    efficiency = wear_efficiency(durability, rules)
    primary, donor = (first, second) if first.value >= second.value else (second, first)

    base_damage = 0.0
    defense = 0.0
    if first.kind == EquipmentKind.WEAPON:
        base_damage = max(0.0, (first.base_damage + second.base_damage) * efficiency)
    else:
        defense = max(0.0, (first.defense + second.defense) * efficiency)

    return Equipment(
        id=new_id,
        name=primary.name,
        kind=primary.kind,
        slot=primary.slot,
        value=max(0.0, (max(0.0, first.value) + max(0.0, second.value)) * efficiency),
        durability=durability,
        material=primary.material,
        effect=primary.effect or donor.effect,
        base_damage=base_damage,
        defense=defense,
    )


def apply_use(equipment: Equipment, times: int = 1, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Wear an item down by ``times`` uses; value and durability stop at zero."""

    if times <= 0:
        return
    wear = rules.equipment
    equipment.durability = max(0.0, equipment.durability - wear.durability_loss_per_use * times)
    retained = min(1.0, max(0.0, 1 - wear.value_loss_per_use)) ** times
    equipment.value = max(0.0, equipment.value * retained)


# ---------------------------------------------------------------------------
# Inventory commands


def add_equipment(
    inventory: Inventory,
    *,
    name: str,
    kind: EquipmentKind,
    slot: str,
    value: float,
    durability: float,
    material: str,
    effect: str | None = None,
    base_damage: float = 0,
    defense: float = 0,
) -> Equipment:
    """Create an item with a fresh id and store it in the inventory."""

    item = Equipment(
        id=_allocate_id(inventory),
        name=name,
        kind=kind,
        slot=slot,
        value=max(0.0, value),
        durability=max(0.0, durability),
        material=material,
        effect=effect,
        base_damage=base_damage,
        defense=defense,
    )
    inventory.equipment[item.id] = item
    return item


def equip(state: GameState, equipment_id: EquipmentID) -> None:
    """Place an owned item in its slot."""

    item = state.inventory.equipment[equipment_id]
    state.inventory.equipped[item.slot] = item.id


def merge_equipment(
    state: GameState,
    first_id: EquipmentID,
    second_id: EquipmentID,
    rules: RulesConfig = DEFAULT_RULES,
) -> Equipment:
    """Merge two owned items, replacing both with the product.

    Raises ``KeyError`` for unknown ids and :class:`EquipmentMergeError` for
    incompatible items; the inventory is untouched in both cases.
    """

    if first_id == second_id:
        raise EquipmentMergeError("Cannot merge an item with itself")
    inventory = state.inventory
    first = inventory.equipment[first_id]
    second = inventory.equipment[second_id]

    merged = merge(first, second, new_id=EquipmentID(inventory.next_equipment_id), rules=rules)
    _allocate_id(inventory)

    del inventory.equipment[first_id]
    del inventory.equipment[second_id]
    inventory.equipment[merged.id] = merged

    merged_ids = (first_id, second_id)
    slots = [slot for slot, item_id in inventory.equipped.items() if item_id in merged_ids]
    for slot in slots:
        del inventory.equipped[slot]
    if slots:
        inventory.equipped[merged.slot] = merged.id
    return merged


def wear_equipped(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Use every equipped item once."""

    for item_id in state.inventory.equipped.values():
        item = state.inventory.equipment.get(item_id)
        if item is not None:
            apply_use(item, 1, rules)


def _allocate_id(inventory: Inventory) -> EquipmentID:
    new_id = EquipmentID(inventory.next_equipment_id)
    inventory.next_equipment_id += 1
    return new_id
