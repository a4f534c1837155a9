# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Generator configuration."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_TARGET_NAMESPACE = "net/minecraft/"
# Classes outside any package are obfuscated.
DEFAULT_OBFUSCATION_PATTERN = r"^[^/]*$"
_DEFAULT_OBFUSCATION_PATTERNS = (re.compile(DEFAULT_OBFUSCATION_PATTERN),)
COUNTER_FILE_ENV = "INTERMEDIARY_COUNTER_FILE"


class ConfigError(ValueError):
    """Represent an invalid generator configuration value."""


@dataclass(frozen=True)
class GeneratorConfig:
    """Configure class classification and member mapping for one run.

    Attributes:
        target_namespace: Package prefix for freshly named top-level classes.
        obfuscation_patterns: A class is obfuscated when any pattern matches
            its whole fully qualified name.
        include_patterns: When non-empty, only classes with a name matching
            at least one pattern are emitted.
        keep_package: Keep the original package of obfuscated classes
            instead of moving them to ``target_namespace``.
        map_fields: Emit field records.
        map_methods: Emit method records.
        interactive: Ask for conflict decisions instead of failing.
        counter_file: External counter file mirrored on every run.
    """

    target_namespace: str = DEFAULT_TARGET_NAMESPACE
    obfuscation_patterns: tuple[re.Pattern[str], ...] = _DEFAULT_OBFUSCATION_PATTERNS
    include_patterns: tuple[re.Pattern[str], ...] = ()
    keep_package: bool = False
    map_fields: bool = True
    map_methods: bool = True
    interactive: bool = True
    counter_file: Path | None = None

    @classmethod
    def build(
        cls,
        target_namespace: str | None = None,
        obfuscation_patterns: Iterable[str] = (),
        include_patterns: Iterable[str] = (),
        keep_package: bool = False,
        only_class_names: bool = False,
        interactive: bool = True,
        counter_file: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "GeneratorConfig":
        """Build configuration from raw option values.

        Custom obfuscation patterns replace the default pattern; include
        patterns are additive. The counter file falls back to the
        ``INTERMEDIARY_COUNTER_FILE`` environment variable.

        Args:
            target_namespace: Target package prefix; a trailing ``/`` is added.
            obfuscation_patterns: Regular expressions for obfuscated classes.
            include_patterns: Regular expressions for emitted classes.
            keep_package: Keep original packages of obfuscated classes.
            only_class_names: Disable field and method mapping.
            interactive: Ask for conflict decisions.
            counter_file: External counter file path.
            environ: Environment mapping; defaults to ``os.environ``.

        Returns:
            Immutable configuration.

        Raises:
            ConfigError: If any pattern is not a valid regular expression.
        """
        environment = os.environ if environ is None else environ
        obfuscated = _compile_all(obfuscation_patterns, option="obfuscation pattern")
        counter_path = counter_file or environment.get(COUNTER_FILE_ENV)
        return cls(
            target_namespace=normalize_namespace(
                DEFAULT_TARGET_NAMESPACE if target_namespace is None else target_namespace
            ),
            obfuscation_patterns=obfuscated or _DEFAULT_OBFUSCATION_PATTERNS,
            include_patterns=_compile_all(include_patterns, option="include pattern"),
            keep_package=keep_package,
            map_fields=not only_class_names,
            map_methods=not only_class_names,
            interactive=interactive,
            counter_file=Path(counter_path) if counter_path else None,
        )

    def is_obfuscated(self, class_name: str) -> bool:
        return any(pattern.fullmatch(class_name) for pattern in self.obfuscation_patterns)

    def is_included(self, class_name: str) -> bool:
        if not self.include_patterns:
            return True
        return any(pattern.search(class_name) for pattern in self.include_patterns)


def normalize_namespace(namespace: str) -> str:
    """Ensure a non-empty namespace ends with ``/``."""
    if namespace and not namespace.endswith("/"):
        return namespace + "/"
    return namespace


def _compile_all(patterns: Iterable[str], option: str) -> tuple[re.Pattern[str], ...]:
    """Compile regular expressions.

    Args:
        patterns: Raw pattern strings.
        option: Option name used in error messages.

    Returns:
        Compiled patterns in input order.

    Raises:
        ConfigError: If a pattern fails to compile.
    """
    compiled: list[re.Pattern[str]] = []
    for raw in patterns:
        try:
            compiled.append(re.compile(raw))
        except re.error as exc:
            raise ConfigError(f"Invalid {option} {raw!r}: {exc}") from exc
    return tuple(compiled)
