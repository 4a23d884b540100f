from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from mockwire._internal.signatures import ParameterInfo, SignatureExtractor
from mockwire._internal.type_checks import (
    is_assignable,
    is_public_name,
    runtime_origin,
    split_optional,
)
from mockwire.exceptions import (
    MockWireAmbiguousResolutionError,
    MockWireConfigurationError,
    MockWireConstructionError,
)
from mockwire.markers import get_constructor_marker, strip_inject_annotation
from mockwire.options import EngineOptions
from mockwire.resolution_log import DiagnosticLog

logger = logging.getLogger(__name__)

PRIMARY_CONSTRUCTOR = "__init__"

ParameterResolver = Callable[[Any], Any]
"""Resolves the value for a parameter annotation through the engine."""

# Errors that describe the caller's setup rather than a failed attempt. They
# are never swallowed by constructor fallbacks.
_PROPAGATED_ERRORS = (MockWireAmbiguousResolutionError, MockWireConfigurationError)


@dataclass(frozen=True, slots=True)
class ConstructorCandidate:
    """One way of building ``declaring_type``.

    ``name`` is ``"__init__"`` for calling the class itself, otherwise the name
    of the ``@constructor`` tagged classmethod. ``arguments`` is empty until
    the candidate has been invoked successfully.
    """

    declaring_type: type[Any]
    name: str
    parameters: tuple[ParameterInfo, ...]
    bound_callable: Callable[..., Any]
    public: bool = True
    arguments: tuple[Any, ...] = ()

    @property
    def parameter_types(self) -> tuple[Any, ...]:
        return tuple(parameter.annotation for parameter in self.parameters)

    @property
    def is_primary(self) -> bool:
        return self.name == PRIMARY_CONSTRUCTOR

    def invoke(self, values: Sequence[Any]) -> Any:
        """Call the constructor, passing keyword-only parameters by name."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for parameter, value in zip(self.parameters, values, strict=False):
            if parameter.is_keyword_only:
                kwargs[parameter.name] = value
            else:
                args.append(value)
        return self.bound_callable(*args, **kwargs)

    def __str__(self) -> str:
        names = ", ".join(parameter.name for parameter in self.parameters)
        if self.is_primary:
            return f"{self.declaring_type.__qualname__}({names})"
        return f"{self.declaring_type.__qualname__}.{self.name}({names})"


@dataclass(frozen=True, slots=True)
class Construction:
    """The instance built by the selector together with the winning candidate."""

    candidate: ConstructorCandidate
    instance: Any


class ConstructorSelector:
    """Choose and invoke a constructor of a concrete class.

    With explicit arguments the best matching constructor is invoked once.
    Without arguments every viable constructor is attempted, most parameters
    first, and the first one that succeeds wins.
    """

    def __init__(
        self,
        signatures: SignatureExtractor,
        options: EngineOptions,
        diagnostics: DiagnosticLog,
        resolve_parameter: ParameterResolver,
    ) -> None:
        self._signatures = signatures
        self._options = options
        self._diagnostics = diagnostics
        self._resolve_parameter = resolve_parameter

    def candidates(self, concrete_type: type[Any], *, include_non_public: bool = True) -> list[ConstructorCandidate]:
        """Return viable constructors ordered by ascending parameter count.

        Constructors taking a parameter of ``concrete_type`` itself are never
        viable. Equal counts keep declaration order with the primary
        constructor first.
        """
        found = [self._primary_candidate(concrete_type)]
        for name, attribute in vars(concrete_type).items():
            if not isinstance(attribute, (classmethod, staticmethod)):
                continue
            marker = get_constructor_marker(attribute)
            if marker is None:
                continue
            bound = getattr(concrete_type, name)
            found.append(
                ConstructorCandidate(
                    declaring_type=concrete_type,
                    name=name,
                    parameters=self._signatures.extract_from_callable(bound, owner=concrete_type),
                    bound_callable=bound,
                    public=marker.public if marker.public is not None else is_public_name(name),
                ),
            )

        viable = [
            candidate
            for candidate in found
            if not self._takes_own_type(candidate) and (include_non_public or candidate.public)
        ]
        return sorted(viable, key=lambda candidate: len(candidate.parameters))

    def select(
        self,
        concrete_type: type[Any],
        args: Sequence[Any] | None = None,
        *,
        allow_non_public: bool = False,
    ) -> Construction:
        """Build ``concrete_type`` and report which constructor did it.

        Raises:
            MockWireConstructionError: If no constructor is viable or every
                attempted constructor failed.
            MockWireAmbiguousResolutionError: In strict mode, when more than one
                constructor takes parameters.

        """
        if args:
            return self._select_explicit(concrete_type, tuple(args), allow_non_public=allow_non_public)
        return self._select_auto(concrete_type, allow_non_public=allow_non_public)

    def parameter_values(
        self,
        parameters: Sequence[ParameterInfo],
        explicit: Sequence[Any] = (),
    ) -> list[Any]:
        """Return the values to pass for ``parameters``.

        Explicit arguments fill the leading parameters. Remaining parameters
        keep their defaults unless ``materialize_optional`` is set, unannotated
        ones receive ``None`` and everything else is resolved.
        """
        values = list(explicit)
        for parameter in parameters[len(values) :]:
            if parameter.has_default and not self._options.materialize_optional:
                values.append(parameter.default)
            elif not parameter.is_annotated:
                values.append(parameter.default if parameter.has_default else None)
            else:
                values.append(self._resolve_parameter(parameter.annotation))
        return values

    def _select_explicit(
        self,
        concrete_type: type[Any],
        args: tuple[Any, ...],
        *,
        allow_non_public: bool,
    ) -> Construction:
        matching = self._match_arguments(concrete_type, args, include_non_public=allow_non_public)
        if not matching and not allow_non_public and not self._options.strict:
            matching = self._match_arguments(concrete_type, args, include_non_public=True)
        if not matching:
            msg = f"no constructor accepts arguments {args!r}."
            raise MockWireConstructionError(concrete_type, msg)
        return self._attempt(concrete_type, matching, args)

    def _match_arguments(
        self,
        concrete_type: type[Any],
        args: tuple[Any, ...],
        *,
        include_non_public: bool,
    ) -> list[ConstructorCandidate]:
        """Return the constructors ``args`` fit, equal parameter counts first."""
        matching = [
            candidate
            for candidate in self.candidates(concrete_type, include_non_public=include_non_public)
            if len(candidate.parameters) >= len(args)
            and all(
                is_assignable(value, strip_inject_annotation(parameter.annotation))
                for parameter, value in zip(candidate.parameters, args, strict=False)
            )
        ]
        return sorted(matching, key=lambda candidate: len(candidate.parameters) != len(args))

    def _select_auto(self, concrete_type: type[Any], *, allow_non_public: bool) -> Construction:
        candidates = self.candidates(concrete_type, include_non_public=allow_non_public)
        if not candidates and not allow_non_public and not self._options.strict:
            logger.debug("No public constructor for %r, trying non-public ones", concrete_type)
            candidates = self.candidates(concrete_type, include_non_public=True)
        if not candidates:
            raise MockWireConstructionError(concrete_type, "no viable constructor.")

        if self._options.strict:
            parameterized = [candidate for candidate in candidates if candidate.parameters]
            if len(parameterized) > 1:
                raise MockWireAmbiguousResolutionError(
                    concrete_type,
                    parameterized,
                    reason="Strict mode does not pick between constructors; pass explicit arguments.",
                )

        return self._attempt(concrete_type, list(reversed(candidates)))

    def _attempt(
        self,
        concrete_type: type[Any],
        candidates: Sequence[ConstructorCandidate],
        args: tuple[Any, ...] = (),
    ) -> Construction:
        failures: list[tuple[ConstructorCandidate, BaseException]] = []
        for candidate in candidates:
            logger.debug("Attempting %s", candidate)
            try:
                return self._invoke(candidate, self.parameter_values(candidate.parameters, args))
            except _PROPAGATED_ERRORS:
                raise
            except Exception as error:
                self._diagnostics.add(concrete_type, f"{candidate} failed: {error}", error)
                failures.append((candidate, error))

        first_error = failures[0][1]
        if len(failures) == 1:
            candidate = failures[0][0]
            msg = f"{candidate} raised {type(first_error).__name__}: {first_error}"
        else:
            attempted = ", ".join(str(candidate) for candidate, _ in failures)
            msg = f"every constructor failed ({attempted})."
        raise MockWireConstructionError(concrete_type, msg, failures) from first_error

    @staticmethod
    def _invoke(candidate: ConstructorCandidate, values: list[Any]) -> Construction:
        instance = candidate.invoke(values)
        return Construction(
            candidate=dataclasses.replace(candidate, arguments=tuple(values)),
            instance=instance,
        )

    def _primary_candidate(self, concrete_type: type[Any]) -> ConstructorCandidate:
        marker = get_constructor_marker(vars(concrete_type).get(PRIMARY_CONSTRUCTOR))
        public = True
        if marker is not None and marker.public is not None:
            public = marker.public
        return ConstructorCandidate(
            declaring_type=concrete_type,
            name=PRIMARY_CONSTRUCTOR,
            parameters=self._signatures.extract_from_class(concrete_type),
            bound_callable=concrete_type,
            public=public,
        )

    @staticmethod
    def _takes_own_type(candidate: ConstructorCandidate) -> bool:
        for parameter in candidate.parameters:
            if not parameter.is_annotated:
                continue
            inner, _ = split_optional(strip_inject_annotation(parameter.annotation))
            if runtime_origin(inner) is candidate.declaring_type:
                return True
        return False


__all__ = [
    "PRIMARY_CONSTRUCTOR",
    "Construction",
    "ConstructorCandidate",
    "ConstructorSelector",
    "ParameterResolver",
]