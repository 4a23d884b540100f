from __future__ import annotations

import inspect
import types
from typing import Annotated, Any, TypeGuard, Union, get_args, get_origin

from mockwire.defaults import (
    DEFAULT_ABSTRACT_SUBSTITUTIONS,
    DEFAULT_EMPTY_CONTAINERS,
    DEFAULT_VALUE_BASE_TYPES,
)

_UNION_ORIGINS: tuple[Any, ...] = (Union, types.UnionType)


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def strip_annotated(annotation: Any) -> Any:
    """Return the inner type of ``Annotated[T, ...]``, or the annotation itself."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def runtime_origin(annotation: Any) -> Any:
    """Return the runtime class behind a possibly parameterized annotation."""
    annotation = strip_annotated(annotation)
    origin = get_origin(annotation)
    if origin is None or origin in _UNION_ORIGINS:
        return annotation
    return origin


def split_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``Optional[T]`` into ``(T, True)``; other annotations map to ``(annotation, False)``."""
    annotation = strip_annotated(annotation)
    if get_origin(annotation) not in _UNION_ORIGINS:
        return annotation, False
    members = [member for member in get_args(annotation) if member is not type(None)]
    if len(members) == len(get_args(annotation)):
        return annotation, False
    if len(members) == 1:
        return members[0], True
    return Union[tuple(members)], True  # noqa: UP007


def is_protocol(candidate: object) -> bool:
    return is_runtime_class(candidate) and bool(getattr(candidate, "_is_protocol", False))


def is_abstract_type(candidate: object) -> bool:
    """Return true for interfaces: abstract classes, protocols and built-in abstract shapes."""
    origin = runtime_origin(candidate)
    if not is_runtime_class(origin):
        return False
    if origin in DEFAULT_ABSTRACT_SUBSTITUTIONS:
        return True
    return inspect.isabstract(origin) or is_protocol(origin)


def is_concrete_type(candidate: object) -> bool:
    origin = runtime_origin(candidate)
    return is_runtime_class(origin) and not is_abstract_type(origin)


def is_value_type(candidate: object) -> bool:
    """Return true for value-like types that resolve to a zero value instead of a double."""
    origin = runtime_origin(candidate)
    return is_runtime_class(origin) and issubclass(origin, DEFAULT_VALUE_BASE_TYPES)


def is_container_type(candidate: object) -> bool:
    origin = runtime_origin(candidate)
    return is_runtime_class(origin) and issubclass(origin, DEFAULT_EMPTY_CONTAINERS)


def is_generic_shape(candidate: object) -> bool:
    """Return true for parameterized aliases and classes that declare type parameters."""
    if get_origin(strip_annotated(candidate)) is not None:
        return True
    return bool(getattr(candidate, "__parameters__", ()))


def is_public_name(name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return True
    return not name.startswith("_")


def is_public_type(candidate: type[Any]) -> bool:
    return all(is_public_name(part) for part in candidate.__qualname__.split(".") if part != "<locals>")


def is_assignable(value: object, annotation: Any) -> bool:
    """Return true when ``value`` may be passed for a parameter annotated with ``annotation``."""
    if annotation is inspect.Parameter.empty or annotation is Any:
        return True
    inner, optional = split_optional(annotation)
    if value is None:
        return optional or not is_value_type(inner)
    inner = strip_annotated(inner)
    if get_origin(inner) in _UNION_ORIGINS:
        return any(is_assignable(value, member) for member in get_args(inner))
    origin = runtime_origin(inner)
    if not is_runtime_class(origin):
        return True
    try:
        return isinstance(value, origin)
    except TypeError:
        # non runtime-checkable protocols
        return True


def abstract_bases(candidate: type[Any]) -> tuple[type[Any], ...]:
    """Return the abstract types a class implements, nearest first."""
    return tuple(
        base
        for base in inspect.getmro(candidate)[1:]
        if base is not object and is_abstract_type(base) and base.__module__ != "typing"
    )


__all__ = [
    "abstract_bases",
    "is_abstract_type",
    "is_assignable",
    "is_concrete_type",
    "is_container_type",
    "is_generic_shape",
    "is_protocol",
    "is_public_name",
    "is_public_type",
    "is_runtime_class",
    "is_value_type",
    "runtime_origin",
    "split_optional",
    "strip_annotated",
]
