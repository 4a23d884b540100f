from __future__ import annotations

import enum
from typing import Any
from unittest.mock import NonCallableMagicMock

from mockwire._internal.type_checks import (
    is_container_type,
    is_runtime_class,
    is_value_type,
    runtime_origin,
)
from mockwire.defaults import DEFAULT_VALUE_FACTORIES


def zero_value(dependency: Any) -> Any:
    """Return the zero value of a value-like type.

    Enums yield their first member. Subclasses of the built-in value types
    use the nearest registered factory and are converted when possible.
    """
    origin = runtime_origin(dependency)
    if issubclass(origin, enum.Enum):
        return next(iter(origin), None)

    factory = DEFAULT_VALUE_FACTORIES.get(origin)
    if factory is not None:
        return factory()

    for base in origin.__mro__[1:]:
        base_factory = DEFAULT_VALUE_FACTORIES.get(base)
        if base_factory is None:
            continue
        try:
            return origin(base_factory())
        except (TypeError, ValueError):
            return base_factory()
    return None


def empty_container(dependency: Any) -> Any:
    origin = runtime_origin(dependency)
    return origin()


def cycle_placeholder(dependency: Any) -> Any:
    """Return the stand-in handed out when ``dependency`` is already under construction."""
    if is_value_type(dependency):
        return zero_value(dependency)
    if is_container_type(dependency):
        return empty_container(dependency)
    origin = runtime_origin(dependency)
    if is_runtime_class(origin):
        return NonCallableMagicMock(spec=origin)
    return None


__all__ = ["cycle_placeholder", "empty_container", "zero_value"]
