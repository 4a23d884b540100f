from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from mockwire._internal.type_checks import (
    is_abstract_type,
    is_protocol,
    is_runtime_class,
    runtime_origin,
)
from mockwire.exceptions import MockWireBindingConflictError, MockWireConfigurationError

if TYPE_CHECKING:
    from mockwire.engine import Engine

BindingFactory: TypeAlias = Callable[["Engine"], Any]
"""A callable receiving the engine and returning the instance for a binding."""


@dataclass(frozen=True, slots=True)
class TypeBinding:
    """An explicit mapping from an abstract type to its concrete realization."""

    abstract_type: Any
    """The type requested by callers."""
    concrete_type: type[Any]
    """The class built when ``abstract_type`` is requested."""
    factory: BindingFactory | None = None
    """An optional factory used instead of constructor selection."""
    fixed_arguments: tuple[Any, ...] = field(default_factory=tuple)
    """Arguments passed to the constructor when the caller supplies none."""


class BindingValidator:
    """Validates bindings before they are stored."""

    def validate(self, abstract_type: Any, concrete_type: Any) -> None:
        if not is_runtime_class(concrete_type):
            msg = f"Concrete type must be a class, got {concrete_type!r}."
            raise MockWireConfigurationError(msg)

        if is_abstract_type(concrete_type):
            if concrete_type is abstract_type:
                msg = (
                    f"'{concrete_type.__qualname__}' cannot be bound to itself because it is "
                    "abstract. Bind it to a concrete class instead."
                )
            else:
                msg = (
                    f"'{concrete_type.__qualname__}' cannot be abstract. An abstract type "
                    "must be bound to a concrete class."
                )
            raise MockWireConfigurationError(msg)

        if not self.is_assignable(abstract_type, concrete_type):
            msg = (
                f"'{concrete_type.__qualname__}' is not assignable to "
                f"'{getattr(abstract_type, '__qualname__', abstract_type)!s}'."
            )
            raise MockWireConfigurationError(msg)

    @staticmethod
    def is_assignable(abstract_type: Any, concrete_type: type[Any]) -> bool:
        origin = runtime_origin(abstract_type)
        if not is_runtime_class(origin):
            return False
        if issubclass(concrete_type, origin):
            return True
        if is_protocol(origin):
            members = {
                name
                for base in inspect.getmro(origin)
                if base.__module__ != "typing" and base is not object
                for name in (*vars(base), *getattr(base, "__annotations__", {}))
                if not name.startswith("_")
            }
            return all(hasattr(concrete_type, name) for name in members)
        return False


class BindingTable:
    """Holds explicit bindings and registered implementers of abstract types."""

    def __init__(self) -> None:
        self._bindings: dict[Any, TypeBinding] = {}
        self._implementers: dict[Any, list[type[Any]]] = {}
        self._validator = BindingValidator()

    def add(
        self,
        abstract_type: Any,
        concrete_type: type[Any],
        factory: BindingFactory | None = None,
        arguments: Sequence[Any] = (),
        *,
        replace: bool = False,
    ) -> TypeBinding:
        """Bind ``abstract_type`` to ``concrete_type``.

        Raises:
            MockWireConfigurationError: If ``concrete_type`` is abstract or not
                assignable to ``abstract_type``.
            MockWireBindingConflictError: If ``abstract_type`` is already bound
                and ``replace`` is false.

        """
        self._validator.validate(abstract_type, concrete_type)
        if abstract_type in self._bindings and not replace:
            raise MockWireBindingConflictError(abstract_type)

        binding = TypeBinding(
            abstract_type=abstract_type,
            concrete_type=concrete_type,
            factory=factory,
            fixed_arguments=tuple(arguments),
        )
        self._bindings[abstract_type] = binding
        return binding

    def get(self, abstract_type: Any) -> TypeBinding | None:
        return self._bindings.get(abstract_type)

    def remove(self, abstract_type: Any) -> bool:
        return self._bindings.pop(abstract_type, None) is not None

    def add_implementer(self, abstract_type: Any, concrete_type: type[Any]) -> None:
        """Declare ``concrete_type`` as a candidate realization of ``abstract_type``."""
        self._validator.validate(abstract_type, concrete_type)
        implementers = self._implementers.setdefault(abstract_type, [])
        if concrete_type not in implementers:
            implementers.append(concrete_type)

    def implementers(self, abstract_type: Any) -> tuple[type[Any], ...]:
        return tuple(self._implementers.get(abstract_type, ()))

    def __contains__(self, abstract_type: object) -> bool:
        return abstract_type in self._bindings

    def __iter__(self) -> Iterator[TypeBinding]:
        return iter(list(self._bindings.values()))

    def __len__(self) -> int:
        return len(self._bindings)
