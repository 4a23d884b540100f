from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any
from unittest.mock import NonCallableMagicMock, create_autospec

from mockwire._internal.type_checks import is_abstract_type, is_runtime_class, runtime_origin
from mockwire.exceptions import (
    MockWireAmbiguousResolutionError,
    MockWireConfigurationError,
    MockWireDoubleConflictError,
    MockWireDoubleNotFoundError,
)
from mockwire.resolution_log import DiagnosticLog, DoubleDecision, ResolutionLog

logger = logging.getLogger(__name__)

RealInstanceBuilder = Callable[[type[Any], Sequence[Any], bool], Any]
"""Builds a real instance of a class: ``(cls, args, allow_non_public) -> instance``."""


@dataclass(slots=True)
class DoubleRecord:
    """The test double registered for one type."""

    type: Any
    instance: Any
    allows_non_public: bool = False
    wraps_real_instance: bool = False


class DoubleFactory:
    """Create ``unittest.mock`` doubles.

    Abstract types get an autospec double. Concrete classes get a double that
    wraps a real instance so unconfigured calls reach the real object. When the
    real instance cannot be built the failure goes to the diagnostic log and an
    autospec double is used instead. Configuration and ambiguity errors are
    raised.
    """

    def __init__(self, build_real: RealInstanceBuilder, diagnostics: DiagnosticLog) -> None:
        self._build_real = build_real
        self._diagnostics = diagnostics

    def create(self, dependency: Any, args: Sequence[Any] = (), *, allow_non_public: bool = False) -> tuple[Any, bool]:
        """Return ``(double, wraps_real_instance)`` for ``dependency``."""
        origin = runtime_origin(dependency)
        if not is_runtime_class(origin):
            return NonCallableMagicMock(), False
        if is_abstract_type(origin):
            return create_autospec(origin, instance=True), False

        try:
            real = self._build_real(origin, args, allow_non_public)
        except (MockWireAmbiguousResolutionError, MockWireConfigurationError):
            raise
        except Exception as error:  # noqa: BLE001
            self._diagnostics.add(dependency, f"Unable to build a real instance to wrap: {error}", error)
            return create_autospec(origin, instance=True), False
        return NonCallableMagicMock(spec=real, wraps=real), True


class DoubleRegistry:
    """One test double per type, stable until removed or overwritten."""

    def __init__(self, factory: DoubleFactory, log: ResolutionLog) -> None:
        self._factory = factory
        self._log = log
        self._records: dict[Any, DoubleRecord] = {}

    def get_or_create(self, dependency: Any, *args: Any) -> Any:
        """Return the registered double for ``dependency``, creating it on first use.

        Supplying ``args`` lets a non-public constructor build the wrapped
        real instance.
        """
        record = self._records.get(dependency)
        if record is not None:
            return record.instance

        allows_non_public = bool(args)
        double, wraps_real = self._factory.create(dependency, args, allow_non_public=allows_non_public)
        self._records[dependency] = DoubleRecord(
            type=dependency,
            instance=double,
            allows_non_public=allows_non_public,
            wraps_real_instance=wraps_real,
        )
        self._log.record(dependency, DoubleDecision(double=double, wraps_real_instance=wraps_real))
        logger.debug("Created double for %r", dependency)
        return double

    def add(
        self,
        dependency: Any,
        instance: Any,
        *,
        overwrite: bool = False,
        allows_non_public: bool = False,
    ) -> DoubleRecord:
        """Register ``instance`` as the double for ``dependency``.

        Raises:
            MockWireDoubleConflictError: If a double exists and ``overwrite`` is false.

        """
        record = self._records.get(dependency)
        if record is None:
            record = DoubleRecord(type=dependency, instance=instance, allows_non_public=allows_non_public)
            self._records[dependency] = record
            return record
        if not overwrite:
            raise MockWireDoubleConflictError(dependency)

        record.instance = instance
        record.allows_non_public = allows_non_public
        return record

    def find(self, dependency: Any) -> DoubleRecord | None:
        return self._records.get(dependency)

    def contains(self, dependency: Any) -> bool:
        return dependency in self._records

    def get_required(self, dependency: Any) -> Any:
        record = self._records.get(dependency)
        if record is None:
            raise MockWireDoubleNotFoundError(dependency)
        return record.instance

    def remove(self, dependency: Any) -> bool:
        return self._records.pop(dependency, None) is not None

    def records(self) -> tuple[DoubleRecord, ...]:
        return tuple(self._records.values())

    def __contains__(self, dependency: object) -> bool:
        return dependency in self._records

    def __iter__(self) -> Iterator[DoubleRecord]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)
