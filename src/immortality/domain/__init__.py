"""Domain model for the Immortality simulation kernel.

This package holds every game rule in one place.  It exposes:

* Dataclasses describing every game entity (see :mod:`models`).
* Enumerations and strongly-typed identifiers used across the rules layer.
* Rule configuration objects (see :mod:`rules_config`).
* Pure rule functions: formatting, batched fields, farm commands, equipment
  wear and merging, the clock state machine, tooltip derivation, and the
  daily tick that ties them together.

Nothing in here performs I/O or knows about wall-clock time; the runtime in
:mod:`immortality.api.runtime` drives it.
"""

from . import (
    batches,
    character,
    clock,
    effects,
    enums,
    equipment,
    farm,
    models,
    numbers,
    quantity,
    rules_config,
    tick,
)

__all__ = [
    "batches",
    "character",
    "clock",
    "effects",
    "enums",
    "equipment",
    "farm",
    "models",
    "numbers",
    "quantity",
    "rules_config",
    "tick",
]
