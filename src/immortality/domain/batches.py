"""Batched field accounting.

A :class:`~immortality.domain.models.FieldCollection` stores the first
``detail_limit`` fields as individual records and folds everything beyond that
into one :class:`~immortality.domain.models.FieldBatch` per key.  Which fields are
individual and which are batched is an internal partition only: every read goes
through :func:`aggregate`, which merges both by key.

Fill order: new fields become individual records first; batches absorb the
overflow.  After any removal or harvest the individual list is backfilled from
the batches so the partition stays stable.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from .models import DisplayBatch, Field, FieldBatch, FieldCollection, FieldKey


def total_units(collection: FieldCollection) -> int:
    """Return the number of fields, individual and batched."""

    return len(collection.fields) + sum(batch.count for batch in collection.batches)


def add_units(
    collection: FieldCollection,
    n: int,
    crop_id: str,
    yield_per_harvest: float,
    days_to_harvest: int,
) -> int:
    """Plant ``n`` identical fields and return how many were added."""

    if days_to_harvest < 1:
        raise ValueError("days_to_harvest must be at least 1")
    if n <= 0:
        return 0

    room = max(0, collection.detail_limit - len(collection.fields))
    individual = min(n, room)
    collection.fields.extend(
        Field(crop_id, yield_per_harvest, days_to_harvest) for _ in range(individual)
    )
    overflow = n - individual
    if overflow:
        _add_to_batch(collection, (crop_id, yield_per_harvest, days_to_harvest), overflow)
    return n


def remove_units(collection: FieldCollection, n: int) -> int:
    """Remove up to ``n`` fields (``-1`` removes all) and return how many went.

    Fields furthest from harvest go first; ties break on crop id, then yield.
    Within one key, batched fields are drained before individual ones.
    """

    if n == -1:
        removed = total_units(collection)
        collection.fields.clear()
        collection.batches.clear()
        return removed
    if n < 0:
        raise ValueError(f"Invalid removal count {n}; use -1 to remove every field")

    remaining = n
    keys = {field.key for field in collection.fields}
    keys.update(batch.key for batch in collection.batches)
    for key in sorted(keys, key=_removal_order):
        if remaining == 0:
            break
        remaining -= _drain_batch(collection, key, remaining)
        if remaining:
            remaining -= _drop_fields(collection, key, remaining)

    rebalance(collection)
    return n - remaining


def aggregate(collection: FieldCollection) -> list[DisplayBatch]:
    """Merge fields and batches by key, ordered by days to harvest then crop id."""

    return _summarize(collection.fields, collection.batches)


def advance_day(collection: FieldCollection) -> list[DisplayBatch]:
    """Count every field down by one day and remove the ones that are ripe.

    Returns the harvested fields summarized by key.
    """

    for field in collection.fields:
        field.days_to_harvest -= 1
    for batch in collection.batches:
        batch.days_to_harvest -= 1

    ripe_fields = [field for field in collection.fields if field.days_to_harvest <= 0]
    ripe_batches = [batch for batch in collection.batches if batch.days_to_harvest <= 0]
    if not ripe_fields and not ripe_batches:
        return []

    collection.fields = [field for field in collection.fields if field.days_to_harvest > 0]
    collection.batches = [batch for batch in collection.batches if batch.days_to_harvest > 0]
    rebalance(collection)
    return _summarize(ripe_fields, ripe_batches)


def rebalance(collection: FieldCollection) -> None:
    """Restore the individual/batched partition after a mutation."""

    limit = collection.detail_limit
    if len(collection.fields) > limit:
        extra = collection.fields[limit:]
        del collection.fields[limit:]
        for key, count in Counter(field.key for field in extra).items():
            _add_to_batch(collection, key, count)
        return

    while len(collection.fields) < limit and collection.batches:
        batch = collection.batches[0]
        moved = min(batch.count, limit - len(collection.fields))
        collection.fields.extend(
            Field(batch.crop_id, batch.yield_per_harvest, batch.days_to_harvest)
            for _ in range(moved)
        )
        batch.count -= moved
        if batch.count == 0:
            collection.batches.pop(0)


def build_collection(summary: Iterable[DisplayBatch], detail_limit: int = 300) -> FieldCollection:
    """Materialize a collection from aggregate records."""

    collection = FieldCollection(detail_limit=detail_limit)
    for record in summary:
        add_units(
            collection,
            record.count,
            record.crop_id,
            record.yield_per_harvest,
            record.days_to_harvest,
        )
    return collection


# ---------------------------------------------------------------------------
# Internal helpers


def _removal_order(key: FieldKey) -> tuple[int, str, float]:
    crop_id, yield_per_harvest, days_to_harvest = key
    return (-days_to_harvest, crop_id, yield_per_harvest)


def _summarize(fields: Iterable[Field], batches: Iterable[FieldBatch]) -> list[DisplayBatch]:
    counts: Counter[FieldKey] = Counter(field.key for field in fields)
    for batch in batches:
        counts[batch.key] += batch.count

    summary = [
        DisplayBatch(
            count=count,
            crop_id=crop_id,
            yield_per_harvest=yield_per_harvest,
            days_to_harvest=days_to_harvest,
        )
        for (crop_id, yield_per_harvest, days_to_harvest), count in counts.items()
    ]
    summary.sort(key=lambda record: (record.days_to_harvest, record.crop_id))
    return summary


def _add_to_batch(collection: FieldCollection, key: FieldKey, count: int) -> None:
    for batch in collection.batches:
        if batch.key == key:
            batch.count += count
            return
    crop_id, yield_per_harvest, days_to_harvest = key
    collection.batches.append(FieldBatch(count, crop_id, yield_per_harvest, days_to_harvest))


def _drain_batch(collection: FieldCollection, key: FieldKey, limit: int) -> int:
    for index, batch in enumerate(collection.batches):
        if batch.key != key:
            continue
        taken = min(batch.count, limit)
        batch.count -= taken
        if batch.count == 0:
            del collection.batches[index]
        return taken
    return 0


def _drop_fields(collection: FieldCollection, key: FieldKey, limit: int) -> int:
    dropped = 0
    kept: list[Field] = []
    for field in reversed(collection.fields):
        if dropped < limit and field.key == key:
            dropped += 1
            continue
        kept.append(field)
    kept.reverse()
    collection.fields = kept
    return dropped
