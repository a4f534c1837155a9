# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Collect pre-existing intermediary names across override families and versions."""

import logging
from dataclasses import dataclass, field

from intermediary.classgraph import ClassGraph
from intermediary.entries import ClassEntry, EntryTriple, MethodEntry
from intermediary.mapping import MappingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupChain:
    """Group the stores consulted when looking up an existing name.

    Attributes:
        new_to_intermediary: Previous output for the same version, if any.
        new_to_old: Cross-version correspondence, new names to old names.
        old_to_intermediary: Previous version's intermediary mapping.
    """

    new_to_intermediary: MappingStore | None = None
    new_to_old: MappingStore | None = None
    old_to_intermediary: MappingStore | None = None

    def __post_init__(self) -> None:
        if self.new_to_old is not None and self.old_to_intermediary is None:
            raise ValueError("new_to_old requires old_to_intermediary")

    def is_empty(self) -> bool:
        return self.new_to_intermediary is None and self.new_to_old is None

    def resolve_class(self, name: str) -> str | None:
        """Translate a new class name to an intermediary name without propagation.

        Args:
            name: Fully qualified class name in the new version.

        Returns:
            Existing intermediary class name, or None.
        """
        if self.new_to_intermediary is not None:
            found = self.new_to_intermediary.lookup_class(name)
            if found is not None:
                return found
        if self.new_to_old is not None and self.old_to_intermediary is not None:
            old_name = self.new_to_old.lookup_class(name)
            if old_name is not None:
                return self.old_to_intermediary.lookup_class(old_name)
        return None

    def resolve_member(self, owner: str, name: str, desc: str) -> EntryTriple | None:
        """Translate a new member identity without hierarchy propagation.

        Args:
            owner: Declaring class in the new version.
            name: Member name in the new version.
            desc: Member descriptor in the new version.

        Returns:
            Existing intermediary identity, or None.
        """
        if self.new_to_intermediary is not None:
            found = self.new_to_intermediary.lookup_member(owner, name, desc)
            if found is not None:
                return found
        if self.new_to_old is not None and self.old_to_intermediary is not None:
            old_entry = self.new_to_old.lookup_member(owner, name, desc)
            if old_entry is not None:
                return self.old_to_intermediary.lookup_entry(old_entry)
        return None


@dataclass
class PropagationResult:
    """Hold candidate names and the visited method family.

    Attributes:
        names: Candidate intermediary name to provenance descriptions.
        family: Every method identity visited, in visit order.
    """

    names: dict[str, set[str]] = field(default_factory=dict)
    family: list[MethodEntry] = field(default_factory=list)

    def add(self, name: str, provenance: str) -> None:
        self.names.setdefault(name, set()).add(provenance)


class PropagationMatcher:
    """Search override families, bridges and the previous version for method names."""

    def __init__(
        self,
        graph: ClassGraph,
        chain: LookupChain,
        old_graph: ClassGraph | None = None,
    ) -> None:
        """Initialize matcher.

        Args:
            graph: New version class graph.
            chain: Stores used for lookups.
            old_graph: Previous version class graph, used when a correspondence
                hit has no direct intermediary name.
        """
        self._graph = graph
        self._chain = chain
        self._old_graph = old_graph

    def find_names(self, entry: ClassEntry, method: MethodEntry) -> PropagationResult:
        """Collect every existing name reachable from ``method``.

        Works through an explicit worklist of ``(class, method)`` pairs. Each
        method identity is expanded at most once, so cyclic bridge or
        override relations terminate.

        Args:
            entry: Class declaring ``method`` in the new version.
            method: Method to search from.

        Returns:
            Candidate names with provenance, and the visited family.
        """
        result = PropagationResult()
        visited: set[MethodEntry] = set()
        worklist: list[tuple[ClassEntry, MethodEntry]] = [(entry, method)]

        while worklist:
            current_class, current = worklist.pop()
            if current in visited:
                continue
            visited.add(current)
            result.family.append(current)

            suffix = f".{current.key}"
            if current.is_bridge():
                suffix += "(bridge)"

            family_classes = self._graph.matching_entries(current_class, current)
            for member_class in family_classes:
                sibling = member_class.get_method(current.key)
                if sibling is not None and sibling not in visited:
                    visited.add(sibling)
                    result.family.append(sibling)
                self._collect(
                    member_class=member_class,
                    method=current,
                    suffix=suffix,
                    result=result,
                )

            pending: list[tuple[ClassEntry, MethodEntry]] = []
            for member_class in family_classes:
                pending.extend(self._graph.related_methods(member_class, current))
            worklist.extend(reversed(pending))

        return result

    def _collect(
        self,
        member_class: ClassEntry,
        method: MethodEntry,
        suffix: str,
        result: PropagationResult,
    ) -> None:
        """Look up one family member through the store chain.

        Args:
            member_class: Family class in the new version.
            method: Method being matched.
            suffix: Provenance suffix for ``method``.
            result: Result receiving candidates.
        """
        chain = self._chain
        if chain.new_to_intermediary is not None:
            found = chain.new_to_intermediary.lookup_member(
                member_class.full_name, method.name, method.desc
            )
            if found is not None:
                result.add(found.name, describe_class(self._graph, member_class) + suffix)
                return

        if chain.new_to_old is None or chain.old_to_intermediary is None:
            return
        old_entry = chain.new_to_old.lookup_member(
            member_class.full_name, method.name, method.desc
        )
        if old_entry is None:
            return
        found = chain.old_to_intermediary.lookup_entry(old_entry)
        if found is not None:
            result.add(found.name, describe_class(self._graph, member_class) + suffix)
            return
        self._collect_old_family(old_entry=old_entry, suffix=suffix, result=result)

    def _collect_old_family(
        self, old_entry: EntryTriple, suffix: str, result: PropagationResult
    ) -> None:
        """Expand a correspondence hit through the old version's override family.

        Args:
            old_entry: Matched identity in the old version.
            suffix: Provenance suffix of the new method.
            result: Result receiving candidates.
        """
        if self._old_graph is None or self._chain.old_to_intermediary is None:
            return
        old_base = self._old_graph.get_class(old_entry.owner)
        if old_base is None:
            return
        old_method = old_base.get_method(old_entry.name + old_entry.desc)
        if old_method is None:
            logger.debug(
                "Matched old method missing from old graph (owner=%s method=%s%s)",
                old_entry.owner,
                old_entry.name,
                old_entry.desc,
            )
            return
        for old_class in self._old_graph.matching_entries(old_base, old_method):
            found = self._chain.old_to_intermediary.lookup_member(
                old_class.full_name, old_method.name, old_method.desc
            )
            if found is not None:
                result.add(found.name, describe_class(self._old_graph, old_class) + suffix)


def describe_class(graph: ClassGraph, entry: ClassEntry) -> str:
    """Render a class and its ancestor chain for conflict diagnostics.

    Interfaces are suffixed with ``(itf)``; several ancestors render as a
    bracketed, comma-separated alternation, e.g. ``c<-[b<-a,i]``.

    Args:
        graph: Graph owning ``entry``.
        entry: Class to describe.

    Returns:
        Human-readable provenance text.
    """
    text = _ancestor_chain(graph, entry, frozenset())
    if entry.is_interface():
        text += "(itf)"
    return text


def _ancestor_chain(graph: ClassGraph, entry: ClassEntry, seen: frozenset[str]) -> str:
    seen = seen | {entry.full_name}
    parents = [graph.superclass(entry)] + graph.interfaces(entry)
    chains = [
        _ancestor_chain(graph, parent, seen)
        for parent in parents
        if parent is not None and parent.full_name not in seen
    ]
    if not chains:
        return entry.full_name
    if len(chains) == 1:
        return f"{entry.full_name}<-{chains[0]}"
    return f"{entry.full_name}<-[{','.join(chains)}]"
