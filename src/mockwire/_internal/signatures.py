from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, get_type_hints

from mockwire.exceptions import MockWireSignatureError

_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class ParameterInfo:
    """Information about a constructor or function parameter."""

    name: str
    annotation: Any
    kind: inspect._ParameterKind
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def is_annotated(self) -> bool:
        return self.annotation is not inspect.Parameter.empty

    @property
    def is_keyword_only(self) -> bool:
        return self.kind is inspect.Parameter.KEYWORD_ONLY


class SignatureExtractor:
    """Extract type-hinted parameters from classes, alternate constructors and functions."""

    def __init__(self) -> None:
        self._cache: dict[Any, tuple[ParameterInfo, ...]] = {}

    def extract_from_class(self, cls: type[Any]) -> tuple[ParameterInfo, ...]:
        """Return the parameters of calling ``cls(...)`` directly."""
        cached = self._cache.get(cls)
        if cached is not None:
            return cached

        hints_source = cls.__init__ if cls.__init__ is not object.__init__ else cls.__new__
        try:
            signature = inspect.signature(cls)
        except (TypeError, ValueError):
            signature = inspect.Signature()
        result = self._build(owner=cls, signature=signature, hints_source=hints_source)
        self._cache[cls] = result
        return result

    def extract_from_callable(self, func: Any, *, owner: Any = None) -> tuple[ParameterInfo, ...]:
        """Return the parameters of a bound method, classmethod or plain function."""
        cache_key = (owner, getattr(func, "__func__", func))
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            signature = inspect.Signature()
        result = self._build(
            owner=owner if owner is not None else func,
            signature=signature,
            hints_source=getattr(func, "__func__", func),
        )
        self._cache[cache_key] = result
        return result

    def _build(
        self,
        *,
        owner: Any,
        signature: inspect.Signature,
        hints_source: Any,
    ) -> tuple[ParameterInfo, ...]:
        try:
            type_hints = get_type_hints(hints_source, include_extras=True)
        except (TypeError, NameError) as error:
            raise MockWireSignatureError(owner, error) from error

        return tuple(
            ParameterInfo(
                name=name,
                annotation=type_hints.get(name, inspect.Parameter.empty),
                kind=parameter.kind,
                default=parameter.default,
            )
            for name, parameter in signature.parameters.items()
            if parameter.kind not in _SKIPPED_KINDS
        )


__all__ = ["ParameterInfo", "SignatureExtractor"]
