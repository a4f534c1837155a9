# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Class hierarchy contract and an in-memory implementation loaded from JSON dumps."""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Protocol

from intermediary.entries import ClassEntry, FieldEntry, MethodEntry

logger = logging.getLogger(__name__)


class ClassGraphError(ValueError):
    """Represent a malformed class graph dump."""


class ClassGraph(Protocol):
    """Define the hierarchy queries the generator needs from a parsed jar."""

    def get_class(self, name: str) -> ClassEntry | None:
        """Look up a class by fully qualified internal name."""

    def top_level_classes(self) -> list[ClassEntry]:
        """Return top-level classes in declaration order."""

    def superclass(self, entry: ClassEntry) -> ClassEntry | None:
        """Return the superclass node when it is part of the graph."""

    def interfaces(self, entry: ClassEntry) -> list[ClassEntry]:
        """Return interface nodes that are part of the graph."""

    def matching_entries(self, entry: ClassEntry, method: MethodEntry) -> list[ClassEntry]:
        """Return every class declaring the same override slot as ``method``."""

    def related_methods(
        self, entry: ClassEntry, method: MethodEntry
    ) -> list[tuple[ClassEntry, MethodEntry]]:
        """Return bridge targets and erasure counterparts of ``method``."""

    def is_source(self, entry: ClassEntry, method: MethodEntry) -> bool:
        """Check whether ``entry`` is the declaration site of ``method``."""


class ClassStorage:
    """Hold one parsed jar as linked class nodes.

    Classes nested with ``$`` are attached to their outer class when the
    outer class is present; everything else is top level. Declaration order
    of the dump is preserved.
    """

    def __init__(self, classes: list[ClassEntry]) -> None:
        """Initialize storage from already linked top-level classes.

        Args:
            classes: Top-level classes with nested classes attached.
        """
        self._top_level = list(classes)
        self._by_name: dict[str, ClassEntry] = {}
        self._subclasses: dict[str, list[ClassEntry]] = {}
        for entry in self._walk():
            self._by_name[entry.full_name] = entry
            parents = [entry.super_name] if entry.super_name else []
            parents.extend(entry.interface_names)
            for parent in parents:
                self._subclasses.setdefault(parent, []).append(entry)

    @classmethod
    def from_dump(cls, data: Any) -> "ClassStorage":
        """Build storage from a decoded JSON class dump.

        Args:
            data: Decoded dump object with a ``classes`` list.

        Returns:
            Linked class storage.

        Raises:
            ClassGraphError: If the dump shape is invalid.
        """
        if not isinstance(data, dict) or not isinstance(data.get("classes"), list):
            raise ClassGraphError("Class dump must be an object with a 'classes' list")

        entries: list[ClassEntry] = []
        seen: set[str] = set()
        for index, raw in enumerate(data["classes"]):
            entry = _parse_class(raw=raw, index=index)
            if entry.full_name in seen:
                raise ClassGraphError(f"Duplicate class in dump: {entry.full_name}")
            seen.add(entry.full_name)
            entries.append(entry)

        by_name = {entry.full_name: entry for entry in entries}
        top_level: list[ClassEntry] = []
        for entry in entries:
            separator = entry.full_name.rfind("$")
            outer = by_name.get(entry.full_name[:separator]) if separator > 0 else None
            if outer is None:
                top_level.append(entry)
                continue
            entry.name = entry.full_name[separator + 1 :]
            outer.inner_classes.append(entry)
        return cls(classes=top_level)

    def __len__(self) -> int:
        return len(self._by_name)

    def get_class(self, name: str) -> ClassEntry | None:
        return self._by_name.get(name)

    def top_level_classes(self) -> list[ClassEntry]:
        return list(self._top_level)

    def superclass(self, entry: ClassEntry) -> ClassEntry | None:
        if entry.super_name is None:
            return None
        return self._by_name.get(entry.super_name)

    def interfaces(self, entry: ClassEntry) -> list[ClassEntry]:
        return [
            self._by_name[name]
            for name in entry.interface_names
            if name in self._by_name
        ]

    def matching_entries(self, entry: ClassEntry, method: MethodEntry) -> list[ClassEntry]:
        """Collect the override family of ``method`` around ``entry``.

        The family is the fixed point of walking up through ancestors and
        down through descendants from every family member, keeping the
        classes that declare a non-private, non-static method with the same
        name and descriptor.

        Args:
            entry: Class declaring ``method``.
            method: Method whose slot is searched.

        Returns:
            Family classes in discovery order, starting with ``entry``.
        """
        if method.is_private_or_static():
            return [entry]

        family: dict[str, ClassEntry] = {entry.full_name: entry}
        worklist = [entry]
        while worklist:
            current = worklist.pop()
            related = list(self._ancestors(current)) + list(self._descendants(current))
            for candidate in related:
                if candidate.full_name in family:
                    continue
                if not _declares_virtual(candidate, method.key):
                    continue
                family[candidate.full_name] = candidate
                worklist.append(candidate)
        return list(family.values())

    def related_methods(
        self, entry: ClassEntry, method: MethodEntry
    ) -> list[tuple[ClassEntry, MethodEntry]]:
        declared = entry.get_method(method.key)
        if declared is None:
            return []
        pairs: list[tuple[ClassEntry, MethodEntry]] = []
        for owner_name, key in declared.related:
            owner = self._by_name.get(owner_name)
            target = owner.get_method(key) if owner is not None else None
            if owner is None or target is None:
                logger.debug(
                    "Skipping unresolved related method (owner=%s method=%s)",
                    owner_name,
                    key,
                )
                continue
            pairs.append((owner, target))
        return pairs

    def is_source(self, entry: ClassEntry, method: MethodEntry) -> bool:
        if method.is_private_or_static():
            return True
        return not any(
            _declares_virtual(ancestor, method.key)
            for ancestor in self._ancestors(entry)
        )

    def _walk(self) -> Iterator[ClassEntry]:
        stack = list(reversed(self._top_level))
        while stack:
            entry = stack.pop()
            yield entry
            stack.extend(reversed(entry.inner_classes))

    def _ancestors(self, entry: ClassEntry) -> Iterator[ClassEntry]:
        seen: set[str] = {entry.full_name}
        stack = [entry]
        while stack:
            current = stack.pop()
            parents = [self.superclass(current)] + self.interfaces(current)
            for parent in parents:
                if parent is None or parent.full_name in seen:
                    continue
                seen.add(parent.full_name)
                stack.append(parent)
                yield parent

    def _descendants(self, entry: ClassEntry) -> Iterator[ClassEntry]:
        seen: set[str] = {entry.full_name}
        stack = [entry]
        while stack:
            current = stack.pop()
            for child in self._subclasses.get(current.full_name, []):
                if child.full_name in seen:
                    continue
                seen.add(child.full_name)
                stack.append(child)
                yield child


def load_class_graph(path: Path) -> ClassStorage:
    """Load a JSON class dump from disk.

    Args:
        path: Dump file path.

    Returns:
        Linked class storage.

    Raises:
        ClassGraphError: If the file is not valid JSON or has an invalid shape.
        OSError: If the file cannot be read.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ClassGraphError(f"Invalid class dump {path}: {exc}") from exc
    storage = ClassStorage.from_dump(data)
    logger.info("Loaded class graph (path=%s classes=%d)", path, len(storage))
    return storage


def _declares_virtual(entry: ClassEntry, key: str) -> bool:
    declared = entry.get_method(key)
    return declared is not None and not declared.is_private_or_static()


def _parse_class(raw: Any, index: int) -> ClassEntry:
    """Convert one dumped class object into a class node.

    Args:
        raw: Decoded class object.
        index: Position in the dump, used in error messages.

    Returns:
        Unlinked class node.

    Raises:
        ClassGraphError: If required keys are missing or mistyped.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise ClassGraphError(f"Class #{index} must be an object with a 'name'")
    name: str = raw["name"]
    try:
        fields = [
            FieldEntry(name=item["name"], desc=item["desc"], access=int(item.get("access", 0)))
            for item in raw.get("fields", [])
        ]
        methods = [
            MethodEntry(
                name=item["name"],
                desc=item["desc"],
                access=int(item.get("access", 0)),
                related=[(str(owner), str(key)) for owner, key in item.get("related", [])],
            )
            for item in raw.get("methods", [])
        ]
        interfaces = [str(item) for item in raw.get("interfaces", [])]
        access = int(raw.get("access", 0))
    except (KeyError, TypeError, ValueError) as exc:
        raise ClassGraphError(f"Invalid member data in class {name}: {exc}") from exc
    return ClassEntry(
        name=name,
        full_name=name,
        super_name=raw.get("super"),
        interface_names=interfaces,
        access=access,
        fields=fields,
        methods=methods,
    )
