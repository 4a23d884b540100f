"""Append-only records of resolution decisions and swallowed failures."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from mockwire.bindings import TypeBinding
    from mockwire.constructors import ConstructorCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BindingDecision:
    """The type was produced by an explicit binding factory."""

    binding: TypeBinding


@dataclass(frozen=True, slots=True)
class ConstructorDecision:
    """The type was built by invoking ``candidate``."""

    candidate: ConstructorCandidate


@dataclass(frozen=True, slots=True)
class ImplicitSubstitution:
    """A built-in default realization replaced an abstract shape."""

    requested: Any
    substitute: type[Any]


@dataclass(frozen=True, slots=True)
class CycleBrokenWithDefault:
    """A placeholder was handed out because the type was already under construction.

    This is not an error. It records where a cyclic graph was cut.
    """

    placeholder: Any
    active: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class DoubleDecision:
    """A test double was handed out for the type.

    ``reused`` is set when the double was already registered.
    """

    double: Any
    wraps_real_instance: bool
    reused: bool = False


@dataclass(frozen=True, slots=True)
class ZeroValueDecision:
    """A value-like type resolved to its zero value."""

    value: Any


Decision: TypeAlias = (
    BindingDecision
    | ConstructorDecision
    | ImplicitSubstitution
    | CycleBrokenWithDefault
    | DoubleDecision
    | ZeroValueDecision
)


@dataclass(frozen=True, slots=True)
class ResolutionLogEntry:
    dependency: Any
    decision: Decision
    sequence: int


class ResolutionLog:
    """Record every way each type was resolved, in order.

    Entries are never replaced: resolving the same type twice appends two
    entries so callers can inspect the full history or just the latest one.
    """

    def __init__(self) -> None:
        self._entries: list[ResolutionLogEntry] = []
        self._by_type: dict[Any, list[ResolutionLogEntry]] = {}
        self._sequence = itertools.count()

    def record(self, dependency: Any, decision: Decision) -> ResolutionLogEntry:
        entry = ResolutionLogEntry(
            dependency=dependency,
            decision=decision,
            sequence=next(self._sequence),
        )
        self._entries.append(entry)
        self._by_type.setdefault(dependency, []).append(entry)
        return entry

    def query(self, dependency: Any) -> tuple[Decision, ...]:
        """Return all decisions recorded for ``dependency`` in insertion order."""
        return tuple(entry.decision for entry in self._by_type.get(dependency, ()))

    def latest(self, dependency: Any) -> Decision | None:
        entries = self._by_type.get(dependency)
        if not entries:
            return None
        return entries[-1].decision

    def latest_constructor(self, dependency: Any) -> ConstructorCandidate | None:
        """Return the most recent constructor used to build ``dependency``."""
        for entry in reversed(self._by_type.get(dependency, ())):
            if isinstance(entry.decision, ConstructorDecision):
                return entry.decision.candidate
        return None

    def entries(self) -> tuple[ResolutionLogEntry, ...]:
        return tuple(self._entries)

    def types(self) -> tuple[Any, ...]:
        return tuple(self._by_type)

    def __contains__(self, dependency: object) -> bool:
        return dependency in self._by_type

    def __iter__(self) -> Iterator[ResolutionLogEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class DiagnosticEntry:
    dependency: Any
    message: str
    exception: BaseException | None = None


class DiagnosticLog:
    """Failures that were swallowed by best-guess retries.

    Nothing a retry hides is lost: each swallowed exception is kept here and
    emitted at debug level.
    """

    def __init__(self) -> None:
        self._entries: list[DiagnosticEntry] = []

    def add(self, dependency: Any, message: str, exception: BaseException | None = None) -> None:
        logger.debug("Swallowed failure while resolving %r: %s", dependency, message)
        self._entries.append(DiagnosticEntry(dependency=dependency, message=message, exception=exception))

    def messages(self) -> tuple[str, ...]:
        return tuple(entry.message for entry in self._entries)

    def for_type(self, dependency: Any) -> tuple[DiagnosticEntry, ...]:
        return tuple(entry for entry in self._entries if entry.dependency == dependency)

    def __iter__(self) -> Iterator[DiagnosticEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
