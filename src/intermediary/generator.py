# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Walk a class graph and emit an intermediary mapping snapshot."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from intermediary.allocator import NameAllocator
from intermediary.classgraph import ClassGraph
from intermediary.config import GeneratorConfig
from intermediary.correspondence import load_correspondence
from intermediary.entries import Category, ClassEntry, FieldEntry, MethodEntry
from intermediary.mapping import (
    DummyMappingStore,
    MappingSnapshot,
    MappingStore,
    format_counter_lines,
    load_mapping_snapshot,
    read_counters,
)
from intermediary.matcher import LookupChain, PropagationMatcher
from intermediary.resolver import (
    ConflictResolver,
    DecisionPolicy,
    FailFastPolicy,
    InteractivePolicy,
)

logger = logging.getLogger(__name__)

SOURCE_NAMESPACE = "official"
TARGET_NAMESPACE = "intermediary"
HEADER = f"v1\t{SOURCE_NAMESPACE}\t{TARGET_NAMESPACE}"


@dataclass(frozen=True)
class GenerationSummary:
    """Represent emitted record counters for one run."""

    class_records: int
    field_records: int
    method_records: int
    counters: dict[Category, int]


def is_unmapped_name(name: str) -> bool:
    """Check whether a member name follows the obfuscator's short-name convention.

    Args:
        name: Raw member name.

    Returns:
        True for names of at most two characters, or three ending in ``_``.
    """
    return len(name) <= 2 or (len(name) == 3 and name[2] == "_")


class GenerationSession:
    """Hold all mutable state of one generation run.

    Counters, allocated names and resolved method names live here and
    nowhere else, so separate sessions never share state.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        graph: ClassGraph,
        chain: LookupChain | None = None,
        old_graph: ClassGraph | None = None,
        policy: DecisionPolicy | None = None,
        allocator: NameAllocator | None = None,
    ) -> None:
        """Initialize a session.

        Args:
            config: Generator configuration.
            graph: New version class graph.
            chain: Stores used to find existing names.
            old_graph: Previous version class graph.
            policy: Conflict decision policy; defaults to a fail-fast policy
                for non-interactive configs and a terminal prompt otherwise.
            allocator: Name allocator, seeded by the caller when resuming.
        """
        self._config = config
        self._graph = graph
        self._chain = chain or LookupChain()
        self._allocator = allocator or NameAllocator()
        self._resolver = ConflictResolver(allocator=self._allocator)
        self._matcher = PropagationMatcher(graph=graph, chain=self._chain, old_graph=old_graph)
        if policy is None:
            policy = (
                InteractivePolicy(console=Console(), stdin=sys.stdin)
                if config.interactive
                else FailFastPolicy()
            )
        self._policy = policy

    @property
    def allocator(self) -> NameAllocator:
        return self._allocator

    @classmethod
    def for_generate(
        cls,
        config: GeneratorConfig,
        graph: ClassGraph,
        output_path: Path,
        policy: DecisionPolicy | None = None,
    ) -> "GenerationSession":
        """Prepare a run for a new version, reusing ``output_path`` when it exists.

        Counters come from the external counter file when it exists, else
        from the existing output file.

        Args:
            config: Generator configuration.
            graph: New version class graph.
            output_path: Mapping file that will be written.
            policy: Conflict decision policy.

        Returns:
            Prepared session.

        Raises:
            MappingFormatError: If the existing output or counter file is malformed.
        """
        allocator = NameAllocator()
        snapshot = _load_existing_output(output_path)
        new_to_intermediary = None
        counters: dict[Category, int] = {}
        if snapshot is not None:
            new_to_intermediary = _build_store(snapshot)
            counters = snapshot.counters
        _seed_counters(allocator, counters, config.counter_file)
        return cls(
            config=config,
            graph=graph,
            chain=LookupChain(new_to_intermediary=new_to_intermediary),
            policy=policy,
            allocator=allocator,
        )

    @classmethod
    def for_rewrite(
        cls,
        config: GeneratorConfig,
        graph: ClassGraph,
        old_mapping_path: Path,
        policy: DecisionPolicy | None = None,
        output_path: Path | None = None,
    ) -> "GenerationSession":
        """Prepare a run that renames the same version against an older mapping.

        Args:
            config: Generator configuration.
            graph: Class graph; serves as both old and new version.
            old_mapping_path: Previous intermediary mapping.
            policy: Conflict decision policy.
            output_path: Mapping file that will be written; names already in
                it take precedence over the older mapping.

        Returns:
            Prepared session.
        """
        allocator = NameAllocator()
        old_to_intermediary = _load_store(old_mapping_path, allocator, config.counter_file)
        chain = LookupChain(
            new_to_intermediary=_load_output_store(output_path),
            new_to_old=DummyMappingStore(),
            old_to_intermediary=old_to_intermediary,
        )
        return cls(
            config=config,
            graph=graph,
            chain=chain,
            old_graph=graph,
            policy=policy,
            allocator=allocator,
        )

    @classmethod
    def for_update(
        cls,
        config: GeneratorConfig,
        graph: ClassGraph,
        old_graph: ClassGraph,
        old_mapping_path: Path,
        matches_path: Path,
        policy: DecisionPolicy | None = None,
        output_path: Path | None = None,
    ) -> "GenerationSession":
        """Prepare a run for a new version matched against the previous one.

        Args:
            config: Generator configuration.
            graph: New version class graph.
            old_graph: Previous version class graph.
            old_mapping_path: Previous version's intermediary mapping.
            matches_path: Correspondence file in ``old -> new`` orientation.
            policy: Conflict decision policy.
            output_path: Mapping file that will be written; names already in
                it, including earlier conflict decisions, take precedence.

        Returns:
            Prepared session.
        """
        allocator = NameAllocator()
        old_to_intermediary = _load_store(old_mapping_path, allocator, config.counter_file)
        new_to_old = MappingStore()
        load_correspondence(matches_path, store=new_to_old, invert=True)
        chain = LookupChain(
            new_to_intermediary=_load_output_store(output_path),
            new_to_old=new_to_old,
            old_to_intermediary=old_to_intermediary,
        )
        return cls(
            config=config,
            graph=graph,
            chain=chain,
            old_graph=old_graph,
            policy=policy,
            allocator=allocator,
        )

    def render(self) -> tuple[list[str], GenerationSummary]:
        """Name every eligible symbol and render the snapshot lines.

        Classes are visited in declaration order, each followed by its nested
        classes. Nested classes are visited even when an outer class is
        filtered out.

        Returns:
            Snapshot lines without newlines, and record counters.

        Raises:
            ConflictError: If a conflict cannot be decided.
        """
        lines = [HEADER]
        class_records = field_records = method_records = 0
        stack: list[tuple[ClassEntry, str]] = [
            (entry, self._config.target_namespace)
            for entry in reversed(self._graph.top_level_classes())
        ]
        while stack:
            entry, prefix = stack.pop()
            translated = self._class_name(entry, prefix)
            stack.extend((inner, translated + "$") for inner in reversed(entry.inner_classes))
            if not self._config.is_included(entry.full_name):
                continue

            lines.append(f"CLASS\t{entry.full_name}\t{translated}")
            class_records += 1
            if self._config.map_fields:
                for field_entry in entry.fields:
                    lines.append(
                        f"FIELD\t{entry.full_name}\t{field_entry.desc}\t{field_entry.name}"
                        f"\t{self._field_name(entry, field_entry)}"
                    )
                    field_records += 1
            if self._config.map_methods:
                for method in entry.methods:
                    name = self._method_name(entry, method)
                    if name is None:
                        continue
                    lines.append(
                        f"METHOD\t{entry.full_name}\t{method.desc}\t{method.name}\t{name}"
                    )
                    method_records += 1

        counters = self._allocator.get_counters()
        lines.extend(format_counter_lines(counters))
        summary = GenerationSummary(
            class_records=class_records,
            field_records=field_records,
            method_records=method_records,
            counters=counters,
        )
        return lines, summary

    def write(self, output_path: Path) -> GenerationSummary:
        """Render the snapshot and replace ``output_path`` in one step.

        The external counter file, when configured, is rewritten with the
        same counter lines.

        Args:
            output_path: Destination mapping file.

        Returns:
            Record counters.

        Raises:
            ConflictError: If a conflict cannot be decided.
            OSError: If writing fails.
        """
        lines, summary = self.render()
        _write_atomic(output_path, "\n".join(lines) + "\n")
        if self._config.counter_file is not None:
            counter_lines = format_counter_lines(summary.counters)
            _write_atomic(self._config.counter_file, "\n".join(counter_lines) + "\n")
        logger.info(
            "Wrote mapping (path=%s classes=%d fields=%d methods=%d)",
            output_path,
            summary.class_records,
            summary.field_records,
            summary.method_records,
        )
        return summary

    def _class_name(self, entry: ClassEntry, prefix: str) -> str:
        """Compute the translated fully qualified name of a class.

        Args:
            entry: Class to name.
            prefix: Translated prefix inherited from the outer class, or the
                target namespace for top-level classes.

        Returns:
            Translated fully qualified name.
        """
        full_name = entry.full_name
        if not self._config.is_obfuscated(full_name):
            return full_name
        # Nesting kept intact by the obfuscator: only leaf names are scrambled.
        if "$" in full_name and not entry.is_anonymous():
            return full_name

        saved_prefix = prefix
        name: str | None = None
        found = self._chain.resolve_class(full_name)
        if found is not None:
            parts = found.split("$")
            name = parts[-1]
            if len(parts) == 1:
                prefix = ""

        if name is not None and Category.CLASS.prefix not in name:
            fresh = self._allocator.allocate(entry, Category.CLASS)
            logger.info("Replaced stale name (old=%s new=%s)", name, fresh)
            name = fresh
            prefix = saved_prefix
        if name is None:
            name = self._allocator.allocate(entry, Category.CLASS)

        if self._config.keep_package and prefix.startswith(self._config.target_namespace):
            prefix = entry.package
        return prefix + name

    def _field_name(self, entry: ClassEntry, field_entry: FieldEntry) -> str:
        if not is_unmapped_name(field_entry.name):
            return field_entry.name
        found = self._chain.resolve_member(entry.full_name, field_entry.name, field_entry.desc)
        if found is not None:
            if Category.FIELD.prefix in found.name:
                return found.name
            fresh = self._allocator.allocate(field_entry, Category.FIELD)
            logger.info("Replaced stale name (old=%s new=%s)", found.name, fresh)
            return fresh
        return self._allocator.allocate(field_entry, Category.FIELD)

    def _method_name(self, entry: ClassEntry, method: MethodEntry) -> str | None:
        """Name one method, or return None when it gets no record.

        Initializers and overrides that are not declaration sites get no
        record; long names map to themselves.

        Args:
            entry: Declaring class.
            method: Method to name.

        Returns:
            Method name for the record, or None.
        """
        if method.is_initializer() or not self._graph.is_source(entry, method):
            return None
        if not is_unmapped_name(method.name):
            return method.name
        cached = self._resolver.cached(method)
        if cached is not None:
            return cached
        result = self._matcher.find_names(entry, method)
        return self._resolver.resolve(
            entry=entry,
            method=method,
            result=result,
            policy=self._policy,
            category=Category.METHOD,
        )


def _seed_counters(
    allocator: NameAllocator, counters: dict[Category, int], counter_file: Path | None
) -> None:
    """Seed counters, preferring an existing external counter file.

    Args:
        allocator: Allocator to seed.
        counters: Counters read from a mapping snapshot.
        counter_file: External counter file path, if configured.
    """
    if counter_file is not None and counter_file.exists():
        with counter_file.open(encoding="utf-8") as handle:
            counters = read_counters(handle)
        logger.info("Using external counters (path=%s)", counter_file)
    for category, value in counters.items():
        allocator.set_counter(category, value)


def _build_store(snapshot: MappingSnapshot) -> MappingStore:
    store = MappingStore()
    store.load(snapshot, SOURCE_NAMESPACE, TARGET_NAMESPACE)
    return store


def _load_store(
    mapping_path: Path, allocator: NameAllocator, counter_file: Path | None
) -> MappingStore:
    snapshot = load_mapping_snapshot(mapping_path)
    _seed_counters(allocator, snapshot.counters, counter_file)
    return _build_store(snapshot)


def _load_existing_output(output_path: Path | None) -> MappingSnapshot | None:
    if output_path is None or not output_path.exists():
        return None
    logger.info("Target file exists - loading (path=%s)", output_path)
    return load_mapping_snapshot(output_path)


def _load_output_store(output_path: Path | None) -> MappingStore | None:
    snapshot = _load_existing_output(output_path)
    return None if snapshot is None else _build_store(snapshot)


def _write_atomic(path: Path, content: str) -> None:
    tmp_path = path.with_name(f"{path.name}.tmp")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
