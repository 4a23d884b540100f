from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar, get_type_hints, overload
from unittest.mock import NonCallableMock

from typing_extensions import Self

from mockwire._internal.placeholders import cycle_placeholder, zero_value
from mockwire._internal.signatures import SignatureExtractor
from mockwire._internal.type_checks import (
    is_abstract_type,
    is_concrete_type,
    is_runtime_class,
    is_value_type,
    runtime_origin,
    split_optional,
    strip_annotated,
)
from mockwire.bindings import BindingFactory, BindingTable, TypeBinding
from mockwire.constructors import ConstructorSelector
from mockwire.defaults import (
    DEFAULT_INNER_RESOLUTION,
    DEFAULT_MATERIALIZE_OPTIONAL,
    DEFAULT_SCAN_SUBCLASSES,
    DEFAULT_STRICT,
)
from mockwire.doubles import DoubleFactory, DoubleRecord, DoubleRegistry
from mockwire.exceptions import MockWireConstructionError
from mockwire.markers import is_inject_annotation
from mockwire.options import EngineOptions
from mockwire.resolution_context import ResolutionContext, resolution_context
from mockwire.resolution_log import (
    BindingDecision,
    ConstructorDecision,
    CycleBrokenWithDefault,
    DiagnosticLog,
    DoubleDecision,
    ResolutionLog,
    ZeroValueDecision,
)
from mockwire.type_resolver import TypeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Engine:
    """Build instances of arbitrary classes for tests, doubling what cannot be built.

    Abstract types are mapped to concrete implementers, constructors are
    chosen automatically and every parameter and ``Inject[...]`` member is
    resolved recursively. Cyclic graphs are cut with placeholders. One engine
    is meant to serve a single test case.

    Examples:
        .. code-block:: python

            engine = Engine()
            engine.register_binding(Repository, InMemoryRepository)
            service = engine.resolve(ReportService)
            clock = engine.get_required_double(Clock)

    """

    __slots__ = (
        "_bindings",
        "_constructors",
        "_diagnostics",
        "_doubles",
        "_inject_members_cache",
        "_log",
        "_options",
        "_signatures",
        "_type_resolver",
    )

    def __init__(
        self,
        *,
        strict: bool = DEFAULT_STRICT,
        inner_resolution: bool = DEFAULT_INNER_RESOLUTION,
        materialize_optional: bool = DEFAULT_MATERIALIZE_OPTIONAL,
        scan_subclasses: bool = DEFAULT_SCAN_SUBCLASSES,
    ) -> None:
        self._options = EngineOptions(
            strict=strict,
            inner_resolution=inner_resolution,
            materialize_optional=materialize_optional,
            scan_subclasses=scan_subclasses,
        )
        self._bindings = BindingTable()
        self._log = ResolutionLog()
        self._diagnostics = DiagnosticLog()
        self._signatures = SignatureExtractor()
        self._type_resolver = TypeResolver(self._bindings, self._log, self._options)
        self._constructors = ConstructorSelector(
            self._signatures,
            self._options,
            self._diagnostics,
            self._resolve_parameter,
        )
        self._doubles = DoubleRegistry(DoubleFactory(self._build_real, self._diagnostics), self._log)
        self._inject_members_cache: dict[type[Any], tuple[tuple[str, Any], ...]] = {}

    @property
    def strict(self) -> bool:
        return self._options.strict

    @strict.setter
    def strict(self, value: bool) -> None:
        self._options.strict = value

    @property
    def inner_resolution(self) -> bool:
        return self._options.inner_resolution

    @inner_resolution.setter
    def inner_resolution(self, value: bool) -> None:
        self._options.inner_resolution = value

    @property
    def materialize_optional(self) -> bool:
        return self._options.materialize_optional

    @materialize_optional.setter
    def materialize_optional(self, value: bool) -> None:
        self._options.materialize_optional = value

    @property
    def scan_subclasses(self) -> bool:
        return self._options.scan_subclasses

    @scan_subclasses.setter
    def scan_subclasses(self, value: bool) -> None:
        self._options.scan_subclasses = value

    @property
    def resolution_log(self) -> ResolutionLog:
        """Every resolution decision, in order."""
        return self._log

    @property
    def diagnostics(self) -> DiagnosticLog:
        """Failures swallowed by constructor fallbacks and double creation."""
        return self._diagnostics

    @property
    def bindings(self) -> BindingTable:
        return self._bindings

    @property
    def doubles(self) -> tuple[DoubleRecord, ...]:
        return self._doubles.records()

    def register_binding(
        self,
        abstract_type: Any,
        concrete_type: type[Any],
        factory: BindingFactory | None = None,
        arguments: Sequence[Any] = (),
        *,
        replace: bool = False,
    ) -> TypeBinding:
        """Map ``abstract_type`` to ``concrete_type``.

        Args:
            abstract_type: The type callers request.
            concrete_type: The class to build instead. Must not be abstract.
            factory: Called with the engine to produce the instance, bypassing
                constructor selection.
            arguments: Constructor arguments used when a resolve call passes none.
            replace: Overwrite an existing binding instead of failing.

        Raises:
            MockWireConfigurationError: If ``concrete_type`` is invalid for ``abstract_type``.
            MockWireBindingConflictError: If already bound and ``replace`` is false.

        """
        binding = self._bindings.add(abstract_type, concrete_type, factory, arguments, replace=replace)
        logger.debug("Bound %r to %r", abstract_type, concrete_type)
        return binding

    def register_implementer(self, abstract_type: Any, concrete_type: type[Any]) -> Self:
        """Make ``concrete_type`` a candidate for ``abstract_type`` without binding it.

        Returns the engine so registrations can be chained.
        """
        self._bindings.add_implementer(abstract_type, concrete_type)
        return self

    @overload
    def resolve(self, dependency: type[T], *args: Any) -> T: ...

    @overload
    def resolve(self, dependency: Any, *args: Any) -> Any: ...

    def resolve(self, dependency: Any, *args: Any) -> Any:
        """Build a fresh instance of ``dependency``.

        Explicit ``args`` are matched against the constructors of the concrete
        type. Without them the most parameterized constructor that succeeds
        wins. Registered doubles are not returned for ``dependency`` itself,
        only for its nested dependencies.

        Raises:
            MockWireAmbiguousResolutionError: If the implementer or constructor
                cannot be chosen.
            MockWireConstructionError: If no constructor could build the instance.

        """
        return self._resolve(dependency, args, allow_non_public=False)

    def resolve_non_public(self, dependency: Any, *args: Any) -> Any:
        """Like :meth:`resolve`, with non-public constructors considered from the start."""
        return self._resolve(dependency, args, allow_non_public=True)

    def resolve_concrete_type(self, dependency: Any) -> Any:
        """Return the class that :meth:`resolve` would build for ``dependency``.

        An abstract type without implementers is returned unchanged.
        """
        return self._type_resolver.resolve_concrete_type(dependency)

    def get_or_create_double(self, dependency: Any, *args: Any) -> Any:
        """Return the double registered for ``dependency``, creating it on first use."""
        with self._context():
            return self._doubles.get_or_create(dependency, *args)

    def initialize_double(
        self,
        dependency: Any,
        configure: Callable[[Any], object],
        *,
        reset: bool = True,
    ) -> Any:
        """Pass the double for ``dependency`` to ``configure`` and return it.

        The double is created on first use. With ``reset`` its recorded calls,
        return values and side effects are cleared before ``configure`` runs.
        """
        double = self.get_or_create_double(dependency)
        if reset and isinstance(double, NonCallableMock):
            double.reset_mock(return_value=True, side_effect=True)
        configure(double)
        return double

    def add_double(self, dependency: Any, double: Any, *, overwrite: bool = False) -> DoubleRecord:
        """Register ``double`` for ``dependency``.

        Raises:
            MockWireDoubleConflictError: If a double exists and ``overwrite`` is false.

        """
        return self._doubles.add(dependency, double, overwrite=overwrite)

    def contains(self, dependency: Any) -> bool:
        """Return whether a double is registered for ``dependency``."""
        return self._doubles.contains(dependency)

    def get_required_double(self, dependency: Any) -> Any:
        """Return the registered double for ``dependency``.

        Raises:
            MockWireDoubleNotFoundError: If no double is registered.

        """
        return self._doubles.get_required(dependency)

    def remove_double(self, dependency: Any) -> bool:
        return self._doubles.remove(dependency)

    def add_injections(self, instance: T) -> T:
        """Fill the unset ``Inject[...]`` members of an existing object."""
        with self._context():
            self._inject_members(instance)
        return instance

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` with resolved values for every parameter not supplied.

        Parameters are filled the same way as constructor parameters.
        """
        with self._context():
            parameters = self._signatures.extract_from_callable(func)
            remaining = [
                parameter for parameter in parameters[len(args) :] if parameter.name not in kwargs
            ]
            values = self._constructors.parameter_values(remaining)

            call_args = list(args)
            call_kwargs = dict(kwargs)
            for parameter, value in zip(remaining, values, strict=True):
                if parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                    call_args.append(value)
                else:
                    call_kwargs[parameter.name] = value
        return func(*call_args, **call_kwargs)

    @contextmanager
    def _context(self) -> Generator[ResolutionContext, None, None]:
        with resolution_context(
            self,
            bindings=self._bindings,
            doubles=self._doubles,
            log=self._log,
            diagnostics=self._diagnostics,
        ) as context:
            yield context

    def _resolve(self, dependency: Any, args: Sequence[Any], *, allow_non_public: bool) -> Any:
        with self._context() as context:
            if context.is_active(dependency):
                placeholder = cycle_placeholder(dependency)
                logger.debug("Cycle on %r, using placeholder %r", dependency, placeholder)
                self._log.record(
                    dependency,
                    CycleBrokenWithDefault(placeholder=placeholder, active=tuple(context.active)),
                )
                return placeholder

            with context.constructing(dependency):
                instance = self._build(dependency, args, allow_non_public=allow_non_public)
                if self._options.inner_resolution:
                    self._inject_members(instance)
                return instance

    def _build(self, dependency: Any, args: Sequence[Any], *, allow_non_public: bool) -> Any:
        binding = self._bindings.get(dependency)
        if binding is not None and binding.factory is not None:
            instance = binding.factory(self)
            self._log.record(dependency, BindingDecision(binding=binding))
            return instance

        concrete_type = self._type_resolver.resolve_concrete_type(dependency)
        if not is_concrete_type(concrete_type):
            if is_abstract_type(concrete_type):
                logger.debug("No implementer for %r, using a double", dependency)
                record = self._doubles.find(dependency)
                if record is None:
                    return self._doubles.get_or_create(dependency)
                self._log.record(
                    dependency,
                    DoubleDecision(
                        double=record.instance,
                        wraps_real_instance=record.wraps_real_instance,
                        reused=True,
                    ),
                )
                return record.instance
            msg = f"{concrete_type!r} is not a class."
            raise MockWireConstructionError(dependency, msg)

        if not args and binding is not None:
            args = binding.fixed_arguments
        if not args and is_value_type(concrete_type):
            value = zero_value(concrete_type)
            self._log.record(dependency, ZeroValueDecision(value=value))
            return value

        construction = self._constructors.select(concrete_type, args, allow_non_public=allow_non_public)
        logger.debug("Built %r with %s", dependency, construction.candidate)
        self._log.record(dependency, ConstructorDecision(candidate=construction.candidate))
        return construction.instance

    def _build_real(self, concrete_type: type[Any], args: Sequence[Any], allow_non_public: bool) -> Any:  # noqa: FBT001
        return self._resolve(concrete_type, args, allow_non_public=allow_non_public)

    def _resolve_parameter(self, annotation: Any) -> Any:
        annotation = strip_annotated(annotation)
        inner, optional = split_optional(annotation)
        if optional:
            if self._options.strict:
                return None
            self._type_resolver.record_substitution(annotation, inner)
            annotation = inner

        if not is_runtime_class(runtime_origin(annotation)):
            return None
        if is_value_type(annotation):
            return zero_value(annotation)
        if self._doubles.contains(annotation):
            return self._doubles.get_required(annotation)
        return self._resolve(annotation, (), allow_non_public=False)

    def _inject_members(self, instance: Any) -> None:
        if isinstance(instance, NonCallableMock):
            return
        for name, annotation in self._injectable_members(type(instance)):
            if getattr(instance, name, None) is not None:
                continue
            value = self._resolve_parameter(annotation)
            try:
                setattr(instance, name, value)
            except AttributeError as error:
                self._diagnostics.add(type(instance), f"Unable to set member {name!r}: {error}", error)

    def _injectable_members(self, cls: type[Any]) -> tuple[tuple[str, Any], ...]:
        cached = self._inject_members_cache.get(cls)
        if cached is not None:
            return cached

        try:
            hints = get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as error:
            self._diagnostics.add(cls, f"Unable to read member annotations: {error}", error)
            hints = {}
        members = tuple((name, hint) for name, hint in hints.items() if is_inject_annotation(hint))
        self._inject_members_cache[cls] = members
        return members
