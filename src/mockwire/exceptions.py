from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def _type_name(value: Any) -> str:
    return getattr(value, "__qualname__", None) or repr(value)


class MockWireError(Exception):
    """Represent a base class for all MockWire-specific failures.

    Catch this type when you want to handle any MockWire error path without
    matching each concrete exception class individually.
    """


class MockWireConfigurationError(MockWireError):
    """Signal an invalid binding registration or engine configuration.

    Raised by ``Engine.register_binding`` and ``Engine.register_implementer``
    when the concrete type is not a class, is abstract, or is not assignable to
    the abstract type it should realize.

    Configuration errors are surfaced immediately and never retried. Typical
    fixes include mapping the abstract type to a concrete subclass or passing a
    ``factory`` for types that cannot be constructed directly.
    """


class MockWireBindingConflictError(MockWireConfigurationError):
    """Signal a second binding for an already bound abstract type.

    Raised by ``Engine.register_binding`` when ``replace=False`` and a binding
    already exists. Pass ``replace=True`` to overwrite the previous binding.
    """

    def __init__(self, abstract_type: Any) -> None:
        self.abstract_type = abstract_type
        super().__init__(
            f"'{_type_name(abstract_type)}' is already bound. Use replace=True to overwrite it.",
        )


class MockWireSignatureError(MockWireConfigurationError):
    """Signal that constructor parameter annotations cannot be evaluated.

    Common triggers are forward references to names that are not importable
    from the module defining the class.

    Typical fixes include defining referenced classes at module level or
    registering a binding with an explicit ``factory``.
    """

    def __init__(self, dependency: Any, error: Exception) -> None:
        self.dependency = dependency
        self.error = error
        super().__init__(
            f"Unable to read constructor annotations of '{_type_name(dependency)}': {error}",
        )


class MockWireAmbiguousResolutionError(MockWireError):
    """Signal that more than one equally valid choice remains after tie-breaks.

    Raised by ``Engine.resolve`` and ``Engine.resolve_concrete_type`` when an
    abstract type has several concrete implementers that no tie-break rule
    separates, or, in strict mode, when a class has several constructors that
    take parameters.

    The ``candidates`` attribute lists every surviving choice. Typical fix is
    an explicit ``Engine.register_binding`` call for the abstract type.
    """

    def __init__(self, dependency: Any, candidates: Sequence[Any], *, reason: str = "") -> None:
        self.dependency = dependency
        self.candidates = tuple(candidates)
        names = ", ".join(_type_name(candidate) for candidate in self.candidates)
        message = f"Ambiguous resolution for '{_type_name(dependency)}': {names}."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class MockWireConstructionError(MockWireError):
    """Signal that no constructor of a class could build an instance.

    Raised when a class has no viable constructor, when explicit arguments
    match none of its constructors, or when every candidate constructor failed
    while resolving arguments or while running.

    The first invocation failure, if any, is chained as ``__cause__`` and all
    failures are available in ``failures`` as ``(candidate, exception)`` pairs.
    """

    def __init__(
        self,
        dependency: Any,
        message: str,
        failures: Sequence[tuple[Any, BaseException]] = (),
    ) -> None:
        self.dependency = dependency
        self.failures = tuple(failures)
        super().__init__(f"Unable to construct '{_type_name(dependency)}': {message}")


class MockWireDoubleConflictError(MockWireError):
    """Signal a second test double for a type that already has one.

    Raised by ``Engine.add_double`` when ``overwrite=False``. The existing
    double is left untouched.
    """

    def __init__(self, dependency: Any) -> None:
        self.dependency = dependency
        super().__init__(
            f"A double for '{_type_name(dependency)}' already exists. "
            "Use overwrite=True to replace it.",
        )


class MockWireDoubleNotFoundError(MockWireError):
    """Signal a lookup of a test double that was never created or added.

    Raised by ``Engine.get_required_double``. Typical fix is calling
    ``Engine.get_or_create_double`` or ``Engine.add_double`` first.
    """

    def __init__(self, dependency: Any) -> None:
        self.dependency = dependency
        super().__init__(f"No double is registered for '{_type_name(dependency)}'.")
