# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Symbol identities and class-graph nodes for intermediary generation."""

import enum
from dataclasses import dataclass, field

ACC_PRIVATE = 0x0002
ACC_STATIC = 0x0008
ACC_BRIDGE = 0x0040
ACC_INTERFACE = 0x0200


class Category(enum.Enum):
    """Closed set of symbol categories that receive intermediary names."""

    CLASS = "class"
    FIELD = "field"
    METHOD = "method"

    @property
    def prefix(self) -> str:
        """Return the allocator naming convention marker, e.g. ``field_``."""
        return f"{self.value}_"


@dataclass(frozen=True)
class EntryTriple:
    """Identify one member by owner, name and descriptor.

    Attributes:
        owner: Fully qualified internal name of the declaring class.
        name: Member name.
        desc: Member descriptor.
    """

    owner: str
    name: str
    desc: str


@dataclass(eq=False)
class FieldEntry:
    """Represent one field node. Equality is object identity."""

    name: str
    desc: str
    access: int = 0


@dataclass(eq=False)
class MethodEntry:
    """Represent one method node. Equality is object identity.

    Attributes:
        name: Method name.
        desc: Method descriptor.
        access: Raw access flags.
        related: Related method references as ``(class name, name + desc)``
            pairs (bridge targets and generic-erasure counterparts).
    """

    name: str
    desc: str
    access: int = 0
    related: list[tuple[str, str]] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.name + self.desc

    def is_bridge(self) -> bool:
        return bool(self.access & ACC_BRIDGE)

    def is_private_or_static(self) -> bool:
        return bool(self.access & (ACC_PRIVATE | ACC_STATIC))

    def is_initializer(self) -> bool:
        return self.name.startswith("<")


@dataclass(eq=False)
class ClassEntry:
    """Represent one class node. Equality is object identity.

    Attributes:
        name: Simple name; the full path for top-level classes, the segment
            after the last ``$`` for nested classes.
        full_name: Fully qualified internal name.
        super_name: Superclass internal name, if any.
        interface_names: Implemented interface internal names.
        access: Raw access flags.
        fields: Declared fields in declaration order.
        methods: Declared methods in declaration order.
        inner_classes: Directly nested classes in declaration order.
    """

    name: str
    full_name: str
    super_name: str | None = None
    interface_names: list[str] = field(default_factory=list)
    access: int = 0
    fields: list[FieldEntry] = field(default_factory=list)
    methods: list[MethodEntry] = field(default_factory=list)
    inner_classes: list["ClassEntry"] = field(default_factory=list)

    def get_method(self, key: str) -> MethodEntry | None:
        """Find a declared method by ``name + desc``.

        Args:
            key: Concatenated method name and descriptor.

        Returns:
            Matching method, or None when the class does not declare it.
        """
        for method in self.methods:
            if method.key == key:
                return method
        return None

    def is_interface(self) -> bool:
        return bool(self.access & ACC_INTERFACE)

    def is_anonymous(self) -> bool:
        return self.full_name != self.name and self.name.isdigit()

    @property
    def package(self) -> str:
        """Return the package path including its trailing ``/``."""
        return self.full_name[: self.full_name.rfind("/") + 1]
