# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Public import surface for intermediary name generation."""

from intermediary.allocator import AllocationError, NameAllocator
from intermediary.classgraph import ClassGraph, ClassGraphError, ClassStorage, load_class_graph
from intermediary.config import ConfigError, GeneratorConfig
from intermediary.correspondence import load_correspondence, read_correspondence
from intermediary.entries import Category, ClassEntry, EntryTriple, FieldEntry, MethodEntry
from intermediary.generator import GenerationSession, GenerationSummary, is_unmapped_name
from intermediary.mapping import (
    DummyMappingStore,
    MappingFormatError,
    MappingSnapshot,
    MappingStore,
    load_mapping_snapshot,
    read_counters,
    read_mapping_snapshot,
)
from intermediary.matcher import LookupChain, PropagationMatcher, PropagationResult
from intermediary.resolver import (
    ConflictError,
    ConflictResolver,
    DecisionPolicy,
    FailFastPolicy,
    InteractivePolicy,
    InvalidSelectionError,
    PendingDecision,
)

__all__ = [
    "AllocationError",
    "Category",
    "ClassEntry",
    "ClassGraph",
    "ClassGraphError",
    "ClassStorage",
    "ConfigError",
    "ConflictError",
    "ConflictResolver",
    "DecisionPolicy",
    "DummyMappingStore",
    "EntryTriple",
    "FailFastPolicy",
    "FieldEntry",
    "GenerationSession",
    "GenerationSummary",
    "GeneratorConfig",
    "InteractivePolicy",
    "InvalidSelectionError",
    "LookupChain",
    "MappingFormatError",
    "MappingSnapshot",
    "MappingStore",
    "MethodEntry",
    "NameAllocator",
    "PendingDecision",
    "PropagationMatcher",
    "PropagationResult",
    "is_unmapped_name",
    "load_class_graph",
    "load_correspondence",
    "load_mapping_snapshot",
    "read_correspondence",
    "read_counters",
    "read_mapping_snapshot",
]
