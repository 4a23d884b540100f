import collections.abc
import datetime
import decimal
import enum
import logging
import pathlib
import uuid
from collections.abc import Callable
from typing import Any

DEFAULT_ABSTRACT_SUBSTITUTIONS: dict[Any, type[Any]] = {
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    logging.Handler: logging.NullHandler,
}
"""Built-in shapes replaced by a default concrete type when nothing else is bound."""

DEFAULT_VALUE_FACTORIES: dict[type[Any], Callable[[], Any]] = {
    bool: bool,
    int: int,
    float: float,
    complex: complex,
    str: str,
    bytes: bytes,
    bytearray: bytearray,
    decimal.Decimal: decimal.Decimal,
    uuid.UUID: lambda: uuid.UUID(int=0),
    datetime.timedelta: datetime.timedelta,
    datetime.datetime: lambda: datetime.datetime.min,
    datetime.date: lambda: datetime.date.min,
    datetime.time: datetime.time,
    pathlib.PurePath: pathlib.PurePath,
    pathlib.Path: pathlib.Path,
}
"""Zero values handed out for value-like parameters and cycle placeholders."""

DEFAULT_VALUE_BASE_TYPES: tuple[type[Any], ...] = (
    *DEFAULT_VALUE_FACTORIES,
    enum.Enum,
)

DEFAULT_EMPTY_CONTAINERS: tuple[type[Any], ...] = (
    list,
    tuple,
    dict,
    set,
    frozenset,
)

DEFAULT_STRICT = False
DEFAULT_INNER_RESOLUTION = True
DEFAULT_MATERIALIZE_OPTIONAL = False
DEFAULT_SCAN_SUBCLASSES = True
