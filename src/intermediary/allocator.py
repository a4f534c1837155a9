# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Allocate deterministic intermediary names from per-category counters."""

import logging

from intermediary.entries import Category, ClassEntry, FieldEntry, MethodEntry

logger = logging.getLogger(__name__)

SymbolEntry = ClassEntry | FieldEntry | MethodEntry

FIRST_COUNTER_VALUE = 1


class AllocationError(RuntimeError):
    """Represent a symbol requested under more than one category."""


class NameAllocator:
    """Hand out ``<category>_<n>`` names, memoized per symbol identity.

    The first request for a symbol fixes its name; later requests return the
    same name. A later request under a different category is an invariant
    violation and raises :class:`AllocationError` unless ``strict`` is off,
    in which case the memoized name is still returned and a warning logged.
    """

    def __init__(self, strict: bool = True) -> None:
        """Initialize allocator state.

        Args:
            strict: Raise on category mismatch for an already named symbol.
        """
        self._strict = strict
        self._counters: dict[Category, int] = {}
        self._names: dict[SymbolEntry, tuple[Category, str]] = {}

    def allocate(self, entry: SymbolEntry, category: Category) -> str:
        """Return the intermediary name for ``entry``, allocating on first use.

        Args:
            entry: Symbol identity; compared by object identity.
            category: Category whose counter is consumed on first allocation.

        Returns:
            Allocated or memoized name.

        Raises:
            AllocationError: If ``entry`` was first named under another
                category and the allocator is strict.
        """
        existing = self._names.get(entry)
        if existing is not None:
            first_category, name = existing
            if first_category is not category:
                if self._strict:
                    raise AllocationError(
                        f"{name} was allocated as {first_category.value}, "
                        f"requested again as {category.value}"
                    )
                logger.warning(
                    "Category mismatch for allocated name (name=%s requested=%s)",
                    name,
                    category.value,
                )
            return name

        value = self._counters.get(category, FIRST_COUNTER_VALUE)
        self._counters[category] = value + 1
        name = f"{category.prefix}{value}"
        self._names[entry] = (category, name)
        return name

    def set_counter(self, category: Category, value: int) -> None:
        """Seed the next value for ``category``.

        Args:
            category: Counter category.
            value: Next unused integer.

        Raises:
            ValueError: If ``value`` is below the first counter value.
        """
        if value < FIRST_COUNTER_VALUE:
            raise ValueError(f"Counter for {category.value} must be >= {FIRST_COUNTER_VALUE}")
        self._counters[category] = value

    def get_counters(self) -> dict[Category, int]:
        return dict(self._counters)
