# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for intermediary name allocation."""

import pytest

from intermediary import AllocationError, Category, ClassEntry, FieldEntry, NameAllocator


def test_ph1_alloc_001_allocates_consecutive_names_in_call_order() -> None:
    allocator = NameAllocator()
    allocator.set_counter(Category.FIELD, 40)
    fields = [FieldEntry(name="a", desc="I") for _ in range(5)]

    names = [allocator.allocate(entry, Category.FIELD) for entry in fields]

    assert names == ["field_40", "field_41", "field_42", "field_43", "field_44"]
    assert allocator.get_counters() == {Category.FIELD: 45}


def test_ph1_alloc_002_counters_start_at_one_per_category() -> None:
    allocator = NameAllocator()

    class_name = allocator.allocate(ClassEntry(name="a", full_name="a"), Category.CLASS)
    field_name = allocator.allocate(FieldEntry(name="a", desc="I"), Category.FIELD)

    assert class_name == "class_1"
    assert field_name == "field_1"


def test_ph1_alloc_003_same_identity_returns_memoized_name() -> None:
    allocator = NameAllocator()
    entry = FieldEntry(name="a", desc="I")

    first = allocator.allocate(entry, Category.FIELD)
    second = allocator.allocate(entry, Category.FIELD)

    assert first == second == "field_1"
    assert allocator.get_counters() == {Category.FIELD: 2}


def test_ph1_alloc_004_structurally_equal_entries_are_distinct_identities() -> None:
    allocator = NameAllocator()

    first = allocator.allocate(FieldEntry(name="a", desc="I"), Category.FIELD)
    second = allocator.allocate(FieldEntry(name="a", desc="I"), Category.FIELD)

    assert first != second


def test_ph1_alloc_005_category_mismatch_raises_in_strict_mode() -> None:
    allocator = NameAllocator()
    entry = FieldEntry(name="a", desc="I")
    allocator.allocate(entry, Category.FIELD)

    with pytest.raises(AllocationError):
        allocator.allocate(entry, Category.METHOD)


def test_ph1_alloc_006_category_mismatch_keeps_first_name_when_lenient() -> None:
    allocator = NameAllocator(strict=False)
    entry = FieldEntry(name="a", desc="I")
    allocator.allocate(entry, Category.FIELD)

    name = allocator.allocate(entry, Category.METHOD)

    assert name == "field_1"
    assert Category.METHOD not in allocator.get_counters()


def test_ph1_alloc_007_rejects_counter_below_one() -> None:
    allocator = NameAllocator()

    with pytest.raises(ValueError):
        allocator.set_counter(Category.CLASS, 0)
