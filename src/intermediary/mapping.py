# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Mapping snapshot records and namespace-to-namespace lookup stores."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from intermediary.entries import Category, EntryTriple

logger = logging.getLogger(__name__)

COUNTER_MARKER = "# INTERMEDIARY-COUNTER"

_OBJECT_TYPE = re.compile(r"L([^;]+);")


class MappingFormatError(ValueError):
    """Represent a malformed mapping snapshot or correspondence record."""


@dataclass(frozen=True)
class ClassRecord:
    """Store one ``CLASS`` record; one name per namespace column."""

    names: tuple[str, ...]


@dataclass(frozen=True)
class MemberRecord:
    """Store one ``FIELD`` or ``METHOD`` record.

    Attributes:
        category: ``Category.FIELD`` or ``Category.METHOD``.
        owner: Owner class name in the first namespace column.
        desc: Descriptor in the first namespace column.
        names: One member name per namespace column.
    """

    category: Category
    owner: str
    desc: str
    names: tuple[str, ...]


@dataclass
class MappingSnapshot:
    """Hold every record of one mapping file, including its counter trailer."""

    namespaces: tuple[str, ...]
    classes: list[ClassRecord] = field(default_factory=list)
    members: list[MemberRecord] = field(default_factory=list)
    counters: dict[Category, int] = field(default_factory=dict)


def read_mapping_snapshot(lines: Iterable[str]) -> MappingSnapshot:
    """Parse mapping snapshot lines.

    Args:
        lines: Raw lines, with or without trailing newlines.

    Returns:
        Parsed snapshot.

    Raises:
        MappingFormatError: If the header or any record is malformed.
    """
    iterator = iter(lines)
    header_line = next(iterator, None)
    if header_line is None:
        raise MappingFormatError("Mapping snapshot is empty")
    header = header_line.rstrip("\r\n").split("\t")
    if header[0] != "v1" or len(header) < 3:
        raise MappingFormatError(f"Unsupported mapping header: {header_line.strip()!r}")

    snapshot = MappingSnapshot(namespaces=tuple(header[1:]))
    width = len(snapshot.namespaces)
    for line_number, raw_line in enumerate(iterator, start=2):
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            continue
        if line.startswith("#"):
            counter = _parse_counter_line(line=line, line_number=line_number)
            if counter is not None:
                snapshot.counters[counter[0]] = counter[1]
            continue
        parts = line.split("\t")
        kind = parts[0]
        if kind == "CLASS":
            if len(parts) != 1 + width:
                raise MappingFormatError(f"Malformed CLASS record at line {line_number}")
            snapshot.classes.append(ClassRecord(names=tuple(parts[1:])))
        elif kind in ("FIELD", "METHOD"):
            if len(parts) != 3 + width:
                raise MappingFormatError(f"Malformed {kind} record at line {line_number}")
            snapshot.members.append(
                MemberRecord(
                    category=Category.FIELD if kind == "FIELD" else Category.METHOD,
                    owner=parts[1],
                    desc=parts[2],
                    names=tuple(parts[3:]),
                )
            )
        else:
            raise MappingFormatError(
                f"Unknown record kind {kind!r} at line {line_number}"
            )
    return snapshot


def load_mapping_snapshot(path: Path) -> MappingSnapshot:
    """Read and parse one mapping file.

    Args:
        path: Mapping file path.

    Returns:
        Parsed snapshot.

    Raises:
        MappingFormatError: If the file content is malformed.
        OSError: If the file cannot be read.
    """
    with path.open(encoding="utf-8") as handle:
        snapshot = read_mapping_snapshot(handle)
    logger.info(
        "Loaded mapping snapshot (path=%s classes=%d members=%d)",
        path,
        len(snapshot.classes),
        len(snapshot.members),
    )
    return snapshot


def read_counters(lines: Iterable[str]) -> dict[Category, int]:
    """Collect ``# INTERMEDIARY-COUNTER`` lines, ignoring everything else.

    Args:
        lines: Raw lines of a mapping file or an external counter file.

    Returns:
        Counter values by category.

    Raises:
        MappingFormatError: If a counter line is malformed.
    """
    counters: dict[Category, int] = {}
    for line_number, raw_line in enumerate(lines, start=1):
        counter = _parse_counter_line(line=raw_line.strip(), line_number=line_number)
        if counter is not None:
            counters[counter[0]] = counter[1]
    return counters


def format_counter_lines(counters: dict[Category, int]) -> list[str]:
    """Render counters in category declaration order."""
    return [
        f"{COUNTER_MARKER} {category.value} {counters[category]}"
        for category in Category
        if category in counters
    ]


def _parse_counter_line(line: str, line_number: int) -> tuple[Category, int] | None:
    """Parse one comment line as a counter record.

    Args:
        line: Comment line without trailing newline.
        line_number: 1-based line number for error messages.

    Returns:
        Category and value, or None for other comments and unknown categories.

    Raises:
        MappingFormatError: If a counter line has the wrong shape.
    """
    if not line.startswith(COUNTER_MARKER):
        return None
    parts = line.split(" ")
    if len(parts) != 4:
        raise MappingFormatError(f"Malformed counter line at line {line_number}")
    try:
        category = Category(parts[2])
    except ValueError:
        logger.warning(
            "Ignoring counter for unknown category (category=%s line=%d)",
            parts[2],
            line_number,
        )
        return None
    try:
        value = int(parts[3])
    except ValueError as exc:
        raise MappingFormatError(
            f"Counter value is not an integer at line {line_number}"
        ) from exc
    return category, value


class MappingStore:
    """Translate class and member identities from one namespace to another.

    Stores are built once, either by :meth:`load` from a snapshot or
    incrementally through the ``add_*`` methods, and are read-only afterwards.
    """

    def __init__(self) -> None:
        self._classes: dict[str, str] = {}
        self._members: dict[EntryTriple, EntryTriple] = {}

    def __len__(self) -> int:
        return len(self._classes) + len(self._members)

    def load(self, snapshot: MappingSnapshot, from_namespace: str, to_namespace: str) -> None:
        """Populate the store from a snapshot.

        Args:
            snapshot: Parsed mapping snapshot.
            from_namespace: Namespace of lookup keys.
            to_namespace: Namespace of lookup results.

        Raises:
            MappingFormatError: If either namespace is missing from the snapshot.
        """
        source = _namespace_index(snapshot, from_namespace)
        target = _namespace_index(snapshot, to_namespace)

        primary_to_source: dict[str, str] = {}
        primary_to_target: dict[str, str] = {}
        for record in snapshot.classes:
            primary_to_source[record.names[0]] = record.names[source]
            primary_to_target[record.names[0]] = record.names[target]
            self._classes[record.names[source]] = record.names[target]

        for record in snapshot.members:
            key = EntryTriple(
                owner=primary_to_source.get(record.owner, record.owner),
                name=record.names[source],
                desc=_remap_descriptor(record.desc, primary_to_source),
            )
            value = EntryTriple(
                owner=primary_to_target.get(record.owner, record.owner),
                name=record.names[target],
                desc=_remap_descriptor(record.desc, primary_to_target),
            )
            self._members[key] = value

    def add_class(self, old: str, new: str) -> None:
        self._classes[old] = new

    def add_field(self, old: EntryTriple, new: EntryTriple) -> None:
        self._members[old] = new

    def add_method(self, old: EntryTriple, new: EntryTriple) -> None:
        self._members[old] = new

    def lookup_class(self, name: str) -> str | None:
        return self._classes.get(name)

    def lookup_member(self, owner: str, name: str, desc: str) -> EntryTriple | None:
        return self._members.get(EntryTriple(owner=owner, name=name, desc=desc))

    def lookup_entry(self, entry: EntryTriple) -> EntryTriple | None:
        return self._members.get(entry)


class DummyMappingStore(MappingStore):
    """Identity store: every lookup returns its input unchanged."""

    def load(self, snapshot: MappingSnapshot, from_namespace: str, to_namespace: str) -> None:
        logger.debug(
            "Ignoring snapshot load into identity store (from=%s to=%s)",
            from_namespace,
            to_namespace,
        )

    def add_class(self, old: str, new: str) -> None:
        return None

    def add_field(self, old: EntryTriple, new: EntryTriple) -> None:
        return None

    def add_method(self, old: EntryTriple, new: EntryTriple) -> None:
        return None

    def lookup_class(self, name: str) -> str | None:
        return name

    def lookup_member(self, owner: str, name: str, desc: str) -> EntryTriple | None:
        return EntryTriple(owner=owner, name=name, desc=desc)

    def lookup_entry(self, entry: EntryTriple) -> EntryTriple | None:
        return entry


def _namespace_index(snapshot: MappingSnapshot, namespace: str) -> int:
    try:
        return snapshot.namespaces.index(namespace)
    except ValueError as exc:
        raise MappingFormatError(
            f"Namespace {namespace!r} not present in mapping ({', '.join(snapshot.namespaces)})"
        ) from exc


def _remap_descriptor(desc: str, class_map: dict[str, str]) -> str:
    return _OBJECT_TYPE.sub(
        lambda match: f"L{class_map.get(match.group(1), match.group(1))};", desc
    )
