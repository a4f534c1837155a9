# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Turn propagation candidates into one name per override family."""

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence, TextIO

from rich.console import Console

from intermediary.allocator import NameAllocator
from intermediary.entries import Category, ClassEntry, MethodEntry
from intermediary.matcher import PropagationResult

logger = logging.getLogger(__name__)


class ConflictError(RuntimeError):
    """Represent a conflict that could not be decided."""


class InvalidSelectionError(ValueError):
    """Represent an out-of-range conflict selection."""


@dataclass(frozen=True)
class Candidate:
    """Store one candidate name with its provenance descriptions."""

    name: str
    provenance: tuple[str, ...]


@dataclass(frozen=True)
class PendingDecision:
    """Represent a suspended conflict waiting for a selection.

    Attributes:
        symbol: Human-readable identity of the method being named.
        candidates: Candidate names, sorted and deduplicated.
        family: Method identities that share the decided name.
    """

    symbol: str
    candidates: tuple[Candidate, ...]
    family: tuple[MethodEntry, ...]

    def choose(self, selection: int) -> str:
        """Pick a candidate by its 1-based list position.

        Args:
            selection: Position as shown by :meth:`render_lines`.

        Returns:
            Chosen candidate name.

        Raises:
            InvalidSelectionError: If ``selection`` is out of range.
        """
        if selection < 1 or selection > len(self.candidates):
            raise InvalidSelectionError(
                f"Selection must be between 1 and {len(self.candidates)}"
            )
        return self.candidates[selection - 1].name

    def render_lines(self) -> list[str]:
        return [
            f"{index}) {candidate.name} <- {', '.join(candidate.provenance)}"
            for index, candidate in enumerate(self.candidates, start=1)
        ]


class DecisionPolicy(Protocol):
    """Decide a pending conflict."""

    def decide(self, pending: PendingDecision) -> str:
        """Return the chosen name for ``pending``.

        Raises:
            ConflictError: If no decision can be made.
        """


class FailFastPolicy:
    """Refuse every conflict; used by non-interactive runs."""

    def decide(self, pending: PendingDecision) -> str:
        for line in pending.render_lines():
            logger.warning("Conflict candidate (symbol=%s %s)", pending.symbol, line)
        raise ConflictError(
            f"Conflict detected for {pending.symbol}: "
            f"{', '.join(candidate.name for candidate in pending.candidates)}"
        )


class InteractivePolicy:
    """Ask the operator to pick a candidate, re-prompting on invalid input."""

    def __init__(self, console: Console, stdin: TextIO) -> None:
        """Initialize policy.

        Args:
            console: Console the candidate list is printed to.
            stdin: Stream one selection line is read from per attempt.
        """
        self._console = console
        self._stdin = stdin

    def decide(self, pending: PendingDecision) -> str:
        """Print candidates and block until a valid selection is read.

        Args:
            pending: Conflict to decide.

        Returns:
            Chosen candidate name.

        Raises:
            ConflictError: If input ends before a valid selection.
        """
        self._console.print(
            f"Conflict detected - matched same target name! ({pending.symbol})",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        for line in pending.render_lines():
            self._console.print(line, markup=False, highlight=False, soft_wrap=True)

        while True:
            self._console.print(
                f"Select 1-{len(pending.candidates)}:",
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            raw = self._stdin.readline()
            if not raw:
                raise ConflictError(f"Input ended before deciding {pending.symbol}")
            try:
                chosen = pending.choose(int(raw.strip()))
            except (ValueError, InvalidSelectionError) as exc:
                logger.warning("Invalid selection (input=%r error=%s)", raw.strip(), exc)
                continue
            self._console.print("OK!", markup=False, highlight=False, soft_wrap=True)
            return chosen


class ConflictResolver:
    """Choose and memoize one method name per propagation family."""

    def __init__(self, allocator: NameAllocator) -> None:
        """Initialize resolver.

        Args:
            allocator: Allocator used for fresh or replacement names.
        """
        self._allocator = allocator
        self._resolved: dict[MethodEntry, str] = {}

    def cached(self, method: MethodEntry) -> str | None:
        return self._resolved.get(method)

    def evaluate(
        self,
        entry: ClassEntry,
        method: MethodEntry,
        result: PropagationResult,
        category: Category = Category.METHOD,
    ) -> str | PendingDecision:
        """Resolve a name directly, or suspend with a pending decision.

        Args:
            entry: Class declaring ``method``.
            method: Method being named.
            result: Propagation result for ``method``.
            category: Category used for convention checks and allocation.

        Returns:
            The resolved name, or a :class:`PendingDecision` when several
            distinct candidates exist.
        """
        family = result.family or [method]
        for member in family:
            known = self._resolved.get(member)
            if known is not None:
                self._remember(family, known)
                return known

        if len(result.names) > 1:
            logger.warning(
                "Conflict detected (symbol=%s.%s candidates=%d)",
                entry.full_name,
                method.key,
                len(result.names),
            )
            return PendingDecision(
                symbol=f"{entry.full_name}.{method.key}",
                candidates=tuple(
                    Candidate(name=name, provenance=tuple(sorted(result.names[name])))
                    for name in sorted(result.names)
                ),
                family=tuple(family),
            )

        if len(result.names) == 1:
            name = next(iter(result.names))
            if category.prefix not in name:
                fresh = self._allocator.allocate(method, category)
                logger.info("Replaced stale name (old=%s new=%s)", name, fresh)
                name = fresh
        else:
            name = self._allocator.allocate(method, category)
        self._remember(family, name)
        return name

    def settle(self, pending: PendingDecision, name: str) -> str:
        """Record the decision for every family member of ``pending``.

        Args:
            pending: Decided conflict.
            name: Chosen name; must be one of the candidates.

        Returns:
            The chosen name.

        Raises:
            InvalidSelectionError: If ``name`` is not a candidate.
        """
        if name not in {candidate.name for candidate in pending.candidates}:
            raise InvalidSelectionError(f"{name} is not a candidate for {pending.symbol}")
        self._remember(pending.family, name)
        return name

    def resolve(
        self,
        entry: ClassEntry,
        method: MethodEntry,
        result: PropagationResult,
        policy: DecisionPolicy,
        category: Category = Category.METHOD,
    ) -> str:
        """Resolve a name, asking ``policy`` when a conflict suspends resolution.

        Raises:
            ConflictError: If ``policy`` cannot decide.
        """
        outcome = self.evaluate(entry=entry, method=method, result=result, category=category)
        if isinstance(outcome, PendingDecision):
            return self.settle(outcome, policy.decide(outcome))
        return outcome

    def _remember(self, family: Sequence[MethodEntry], name: str) -> None:
        for member in family:
            self._resolved[member] = name
