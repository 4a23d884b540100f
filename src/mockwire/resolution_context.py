from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mockwire.bindings import BindingTable
    from mockwire.doubles import DoubleRegistry
    from mockwire.resolution_log import DiagnosticLog, ResolutionLog

# Context variable for the call tree of the current top-level resolve call.
# Factories that call back into the engine find the same context here, so the
# cycle guard covers them too.
_current_context: ContextVar[ResolutionContext | None] = ContextVar(
    "mockwire_resolution_context",
    default=None,
)


@dataclass(eq=False)
class ResolutionContext:
    """Per call tree resolution state.

    ``active`` holds the types currently under construction, outermost first.
    A type found in it is part of a cycle.
    """

    owner: object
    bindings: BindingTable
    doubles: DoubleRegistry
    log: ResolutionLog
    diagnostics: DiagnosticLog
    active: list[Any] = field(default_factory=list)

    def is_active(self, dependency: Any) -> bool:
        return dependency in self.active

    @contextmanager
    def constructing(self, dependency: Any) -> Generator[None, None, None]:
        """Mark ``dependency`` as under construction for the duration of the block."""
        self.active.append(dependency)
        try:
            yield
        finally:
            self.active.pop()


def get_current_context(owner: object) -> ResolutionContext | None:
    """Return the active context for ``owner``, if a resolve call of it is running."""
    context = _current_context.get()
    if context is None or context.owner is not owner:
        return None
    return context


@contextmanager
def resolution_context(
    owner: object,
    *,
    bindings: BindingTable,
    doubles: DoubleRegistry,
    log: ResolutionLog,
    diagnostics: DiagnosticLog,
) -> Generator[ResolutionContext, None, None]:
    """Reuse the running context of ``owner`` or open a fresh one for a top-level call."""
    existing = get_current_context(owner)
    if existing is not None:
        yield existing
        return

    context = ResolutionContext(
        owner=owner,
        bindings=bindings,
        doubles=doubles,
        log=log,
        diagnostics=diagnostics,
    )
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)
