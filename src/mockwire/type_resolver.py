from __future__ import annotations

import collections.abc
import logging
from collections.abc import Callable
from typing import Any, get_origin

from mockwire._internal.type_checks import (
    abstract_bases,
    is_abstract_type,
    is_concrete_type,
    is_generic_shape,
    is_public_type,
    is_runtime_class,
    runtime_origin,
    split_optional,
    strip_annotated,
)
from mockwire.bindings import BindingTable
from mockwire.defaults import DEFAULT_ABSTRACT_SUBSTITUTIONS
from mockwire.exceptions import MockWireAmbiguousResolutionError
from mockwire.options import EngineOptions
from mockwire.resolution_log import ImplicitSubstitution, ResolutionLog

logger = logging.getLogger(__name__)

TieBreak = Callable[[Any, Any, type[Any]], bool]


class TypeResolver:
    """Turn a requested type into the concrete class that should be built.

    Resolution order is: explicit binding, the type itself when concrete,
    built-in default shapes, then a scan of known implementers narrowed by
    tie-break rules. A type without implementers is returned unchanged so the
    caller can fall back to a test double.
    """

    def __init__(self, bindings: BindingTable, log: ResolutionLog, options: EngineOptions) -> None:
        self._bindings = bindings
        self._log = log
        self._options = options
        self._tie_breaks: tuple[tuple[str, TieBreak], ...] = (
            ("generic shape", self._matches_generic_shape),
            ("same name", self._has_same_name),
            ("public", self._is_public),
            ("single interface", self._implements_only),
        )

    def resolve_concrete_type(self, dependency: Any) -> Any:
        """Return the concrete class for ``dependency`` or ``dependency`` itself when unresolved.

        Raises:
            MockWireAmbiguousResolutionError: If several implementers survive
                every tie-break (or, in strict mode, if there is more than one).

        """
        binding = self._bindings.get(dependency)
        if binding is None and get_origin(strip_annotated(dependency)) is not None:
            binding = self._bindings.get(runtime_origin(dependency))
        if binding is not None:
            return binding.concrete_type

        if is_concrete_type(dependency):
            return runtime_origin(dependency)

        if not self._options.strict:
            substitute = self._default_substitute(dependency)
            if substitute is not None:
                return substitute

        origin = runtime_origin(dependency)
        if not is_runtime_class(origin):
            return dependency

        candidates = self.find_implementers(origin)
        if not candidates:
            logger.debug("No implementers found for %r", dependency)
            return dependency
        if len(candidates) == 1:
            return candidates[0]
        if self._options.strict:
            raise MockWireAmbiguousResolutionError(
                dependency,
                candidates,
                reason="Strict mode does not break ties; register a binding.",
            )
        return self._break_ties(dependency, origin, candidates)

    def find_implementers(self, origin: type[Any]) -> list[type[Any]]:
        """Return concrete implementers of ``origin`` in a deterministic order.

        Registered implementers come first in registration order, followed by
        scanned subclasses in definition order. Scanned classes that realize a
        more specific interface derived from ``origin`` are left out.
        """
        registered = list(self._bindings.implementers(origin))
        scanned: list[type[Any]] = []
        if self._options.scan_subclasses:
            scanned = self._walk_subclasses(origin)

        sub_interfaces = [candidate for candidate in scanned if is_abstract_type(candidate)]
        result = list(registered)
        for candidate in scanned:
            if candidate in result or not is_concrete_type(candidate):
                continue
            if any(issubclass(candidate, interface) for interface in sub_interfaces):
                continue
            result.append(candidate)
        return result

    def _default_substitute(self, dependency: Any) -> Any | None:
        inner, optional = split_optional(dependency)
        if optional:
            self.record_substitution(dependency, runtime_origin(inner))
            return self.resolve_concrete_type(inner)

        substitute = DEFAULT_ABSTRACT_SUBSTITUTIONS.get(runtime_origin(dependency))
        if substitute is None:
            return None
        self.record_substitution(dependency, substitute)
        return substitute

    def record_substitution(self, dependency: Any, substitute: Any) -> None:
        logger.warning(
            "Implicitly substituting %r for %r; register a binding to choose explicitly",
            substitute,
            dependency,
        )
        self._log.record(dependency, ImplicitSubstitution(requested=dependency, substitute=substitute))

    def _break_ties(self, dependency: Any, origin: type[Any], candidates: list[type[Any]]) -> type[Any]:
        for rule_name, rule in self._tie_breaks:
            narrowed = [candidate for candidate in candidates if rule(dependency, origin, candidate)]
            if narrowed:
                candidates = narrowed
            if len(candidates) == 1:
                logger.debug("Resolved %r to %r by %s tie-break", dependency, candidates[0], rule_name)
                return candidates[0]

        if issubclass(origin, collections.abc.Iterable):
            logger.debug("Resolved iterable %r to first candidate %r", dependency, candidates[0])
            return candidates[0]

        raise MockWireAmbiguousResolutionError(dependency, candidates)

    @staticmethod
    def _walk_subclasses(origin: type[Any]) -> list[type[Any]]:
        seen: list[type[Any]] = []
        pending = list(origin.__subclasses__())
        while pending:
            candidate = pending.pop(0)
            if candidate in seen:
                continue
            seen.append(candidate)
            pending.extend(candidate.__subclasses__())
        return seen

    @staticmethod
    def _matches_generic_shape(dependency: Any, origin: type[Any], candidate: type[Any]) -> bool:
        requested = strip_annotated(dependency)
        if get_origin(requested) is not None:
            return requested in getattr(candidate, "__orig_bases__", ())
        return is_generic_shape(candidate) == is_generic_shape(origin)

    @staticmethod
    def _has_same_name(dependency: Any, origin: type[Any], candidate: type[Any]) -> bool:
        return candidate.__name__ == origin.__name__

    @staticmethod
    def _is_public(dependency: Any, origin: type[Any], candidate: type[Any]) -> bool:
        return is_public_type(candidate)

    @staticmethod
    def _implements_only(dependency: Any, origin: type[Any], candidate: type[Any]) -> bool:
        interfaces = abstract_bases(candidate)
        return len(interfaces) == 1 and interfaces[0] is origin
