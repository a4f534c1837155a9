# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Read cross-version symbol correspondences into a mapping store."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, TypeVar

from intermediary.entries import EntryTriple
from intermediary.mapping import MappingFormatError, MappingStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class CorrespondenceCounts:
    """Count correspondence pairs added to a store."""

    classes: int
    fields: int
    methods: int


def read_correspondence(
    lines: Iterable[str], store: MappingStore, invert: bool = False
) -> CorrespondenceCounts:
    """Populate ``store`` from correspondence lines.

    Class lines read ``c<TAB>L<old>;<TAB>L<new>;``. Member lines are indented
    with one tab and belong to the last class line: ``m`` lines carry
    ``name + descriptor`` and ``f`` lines carry ``name;;descriptor``. Deeper
    indented lines and other member tags are skipped.

    Args:
        lines: Raw correspondence lines.
        store: Store receiving ``old -> new`` pairs, or ``new -> old`` when inverted.
        invert: Swap the orientation of every pair.

    Returns:
        Number of pairs added per kind.

    Raises:
        MappingFormatError: If a class or member line is malformed, or a member
            line appears before any class line.
    """
    current: tuple[str, str] | None = None
    classes = fields = methods = 0
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if not line.strip() or line.startswith("#"):
            continue
        if line.startswith("c\t"):
            parts = line.split("\t")
            if len(parts) != 3:
                raise MappingFormatError(f"Malformed class match at line {line_number}")
            current = (_strip_object_type(parts[1]), _strip_object_type(parts[2]))
            left, right = _oriented(current, invert)
            store.add_class(left, right)
            classes += 1
            continue
        if not line.startswith("\t"):
            raise MappingFormatError(f"Unexpected correspondence line at line {line_number}")
        if line.startswith("\t\t"):
            continue

        parts = line[1:].split("\t")
        tag = parts[0]
        if tag not in ("m", "f"):
            continue
        if current is None:
            raise MappingFormatError(
                f"Member match before any class match at line {line_number}"
            )
        if len(parts) != 3:
            raise MappingFormatError(f"Malformed member match at line {line_number}")
        if tag == "m":
            old = _method_triple(owner=current[0], text=parts[1], line_number=line_number)
            new = _method_triple(owner=current[1], text=parts[2], line_number=line_number)
            left_entry, right_entry = _oriented((old, new), invert)
            store.add_method(left_entry, right_entry)
            methods += 1
        else:
            old = _field_triple(owner=current[0], text=parts[1], line_number=line_number)
            new = _field_triple(owner=current[1], text=parts[2], line_number=line_number)
            left_entry, right_entry = _oriented((old, new), invert)
            store.add_field(left_entry, right_entry)
            fields += 1

    return CorrespondenceCounts(classes=classes, fields=fields, methods=methods)


def load_correspondence(path: Path, store: MappingStore, invert: bool = False) -> CorrespondenceCounts:
    """Read a correspondence file into ``store``.

    Args:
        path: Correspondence file path.
        store: Store to populate.
        invert: Swap the orientation of every pair.

    Returns:
        Number of pairs added per kind.
    """
    with path.open(encoding="utf-8") as handle:
        counts = read_correspondence(handle, store=store, invert=invert)
    logger.info(
        "Loaded correspondence (path=%s classes=%d fields=%d methods=%d)",
        path,
        counts.classes,
        counts.fields,
        counts.methods,
    )
    return counts


def _oriented(pair: tuple[_T, _T], invert: bool) -> tuple[_T, _T]:
    if invert:
        return pair[1], pair[0]
    return pair


def _strip_object_type(name: str) -> str:
    if name.startswith("L") and name.endswith(";"):
        return name[1:-1]
    return name


def _method_triple(owner: str, text: str, line_number: int) -> EntryTriple:
    split = text.find("(")
    if split <= 0:
        raise MappingFormatError(f"Malformed method signature at line {line_number}")
    return EntryTriple(owner=owner, name=text[:split], desc=text[split:])


def _field_triple(owner: str, text: str, line_number: int) -> EntryTriple:
    name, separator, desc = text.partition(";;")
    if not separator or not name or not desc:
        raise MappingFormatError(f"Malformed field signature at line {line_number}")
    return EntryTriple(owner=owner, name=name, desc=desc)
