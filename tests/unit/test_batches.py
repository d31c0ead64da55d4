"""Tests for batched field accounting."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from immortality.domain import batches
from immortality.domain import models as dm

CROPS = {"rice": 1.0, "cabbage": 2.0, "beans": 3.0}


def _collection(detail_limit: int = 3) -> dm.FieldCollection:
    return dm.FieldCollection(detail_limit=detail_limit)


def _check_partition(collection: dm.FieldCollection) -> None:
    assert len(collection.fields) <= collection.detail_limit
    assert all(batch.count > 0 for batch in collection.batches)
    keys = [batch.key for batch in collection.batches]
    assert len(keys) == len(set(keys))
    if collection.batches:
        assert len(collection.fields) == collection.detail_limit


def test_individual_records_fill_before_batches():
    collection = _collection()
    added = batches.add_units(collection, 5, "rice", 1.0, 90)

    assert added == 5
    assert len(collection.fields) == 3
    assert collection.batches == [dm.FieldBatch(2, "rice", 1.0, 90)]
    assert batches.total_units(collection) == 5


def test_overflow_joins_existing_batch_with_same_key():
    collection = _collection()
    batches.add_units(collection, 4, "rice", 1.0, 90)
    batches.add_units(collection, 3, "rice", 1.0, 90)

    assert collection.batches == [dm.FieldBatch(4, "rice", 1.0, 90)]
    _check_partition(collection)


def test_add_rejects_non_positive_days():
    with pytest.raises(ValueError):
        batches.add_units(_collection(), 1, "rice", 1.0, 0)


def test_aggregate_merges_individual_and_batched_fields():
    collection = _collection()
    batches.add_units(collection, 2, "rice", 1.0, 90)
    batches.add_units(collection, 4, "beans", 3.0, 30)

    summary = batches.aggregate(collection)

    assert summary == [
        dm.DisplayBatch(count=4, crop_id="beans", yield_per_harvest=3.0, days_to_harvest=30),
        dm.DisplayBatch(count=2, crop_id="rice", yield_per_harvest=1.0, days_to_harvest=90),
    ]


def test_aggregate_breaks_day_ties_on_crop_id():
    collection = _collection(detail_limit=10)
    batches.add_units(collection, 1, "rice", 1.0, 60)
    batches.add_units(collection, 1, "cabbage", 2.0, 60)

    assert [record.crop_id for record in batches.aggregate(collection)] == ["cabbage", "rice"]


def test_remove_takes_fields_furthest_from_harvest_first():
    collection = _collection()
    batches.add_units(collection, 2, "beans", 3.0, 10)
    batches.add_units(collection, 3, "rice", 1.0, 90)

    removed = batches.remove_units(collection, 3)

    assert removed == 3
    assert batches.aggregate(collection) == [
        dm.DisplayBatch(count=2, crop_id="beans", yield_per_harvest=3.0, days_to_harvest=10)
    ]
    _check_partition(collection)


def test_remove_clamps_to_available():
    collection = _collection()
    batches.add_units(collection, 4, "rice", 1.0, 90)

    assert batches.remove_units(collection, 10) == 4
    assert batches.total_units(collection) == 0


def test_remove_all_sentinel_clears_everything():
    collection = _collection()
    batches.add_units(collection, 7, "rice", 1.0, 90)

    assert batches.remove_units(collection, -1) == 7
    assert collection.fields == []
    assert collection.batches == []


def test_remove_rejects_other_negative_counts():
    with pytest.raises(ValueError):
        batches.remove_units(_collection(), -2)


def test_remove_backfills_individual_records():
    collection = _collection()
    batches.add_units(collection, 3, "beans", 3.0, 10)
    batches.add_units(collection, 3, "rice", 1.0, 5)

    batches.remove_units(collection, 2)

    assert len(collection.fields) == 3
    assert batches.total_units(collection) == 4
    _check_partition(collection)


def test_advance_day_harvests_ripe_fields():
    collection = _collection()
    batches.add_units(collection, 2, "beans", 3.0, 1)
    batches.add_units(collection, 4, "rice", 1.0, 3)

    harvested = batches.advance_day(collection)

    assert harvested == [
        dm.DisplayBatch(count=2, crop_id="beans", yield_per_harvest=3.0, days_to_harvest=0)
    ]
    assert batches.aggregate(collection) == [
        dm.DisplayBatch(count=4, crop_id="rice", yield_per_harvest=1.0, days_to_harvest=2)
    ]
    _check_partition(collection)


def test_advance_day_without_ripe_fields_returns_nothing():
    collection = _collection()
    batches.add_units(collection, 5, "rice", 1.0, 3)

    assert batches.advance_day(collection) == []
    assert batches.aggregate(collection)[0].days_to_harvest == 2


def test_detail_limit_zero_keeps_everything_batched():
    collection = _collection(detail_limit=0)
    batches.add_units(collection, 3, "rice", 1.0, 2)

    assert collection.fields == []
    assert batches.total_units(collection) == 3
    batches.advance_day(collection)
    assert batches.advance_day(collection)[0].count == 3
    assert batches.total_units(collection) == 0


_operations = st.lists(
    st.one_of(
        st.tuples(
            st.just("add"),
            st.integers(min_value=1, max_value=20),
            st.sampled_from(sorted(CROPS)),
            st.integers(min_value=1, max_value=6),
        ),
        st.tuples(st.just("remove"), st.integers(min_value=-1, max_value=15)),
        st.tuples(st.just("advance")),
    ),
    max_size=25,
)


def _apply(collection: dm.FieldCollection, operation: tuple) -> None:
    match operation:
        case ("add", count, crop_id, days):
            batches.add_units(collection, count, crop_id, CROPS[crop_id], days)
        case ("remove", count):
            if count != 0:
                batches.remove_units(collection, count)
        case ("advance",):
            batches.advance_day(collection)


@settings(max_examples=150)
@given(operations=_operations, detail_limit=st.integers(min_value=0, max_value=8))
def test_partition_invariants_hold_for_any_history(operations, detail_limit):
    collection = _collection(detail_limit)
    for operation in operations:
        _apply(collection, operation)
        _check_partition(collection)


@settings(max_examples=150)
@given(
    operations=_operations,
    detail_limit=st.integers(min_value=0, max_value=8),
    rebuild_limit=st.integers(min_value=0, max_value=8),
)
def test_rebuilding_from_aggregate_is_idempotent(operations, detail_limit, rebuild_limit):
    collection = _collection(detail_limit)
    for operation in operations:
        _apply(collection, operation)

    summary = batches.aggregate(collection)
    rebuilt = batches.build_collection(summary, detail_limit=rebuild_limit)

    assert batches.aggregate(rebuilt) == summary
    assert batches.total_units(rebuilt) == batches.total_units(collection)
    _check_partition(rebuilt)
