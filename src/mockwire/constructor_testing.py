"""Helpers for asserting that constructors reject invalid arguments.

Build the type through an engine first, then probe the constructor that was
actually used:

.. code-block:: python

    engine.resolve(ReportService)
    assert_constructor_parameters_checked(engine, ReportService)

"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mockwire._internal.signatures import ParameterInfo
from mockwire.constructors import ConstructorCandidate
from mockwire.exceptions import MockWireConstructionError

if TYPE_CHECKING:
    from mockwire.engine import Engine

DEFAULT_EXPECTED_ERRORS: tuple[type[BaseException], ...] = (TypeError, ValueError)


@dataclass(frozen=True, slots=True)
class ParameterProbe:
    """Outcome of invoking a constructor with one parameter replaced by an invalid value."""

    parameter: ParameterInfo
    raised: bool
    """Whether the constructor raised one of the expected errors."""
    error: BaseException | None = None


def constructor_used(engine: Engine, dependency: Any) -> ConstructorCandidate:
    """Return the constructor the engine last used to build ``dependency``.

    Raises:
        MockWireConstructionError: If ``dependency`` was never built by a constructor.

    """
    candidate = engine.resolution_log.latest_constructor(dependency)
    if candidate is None:
        raise MockWireConstructionError(dependency, "it was never built by a constructor.")
    return candidate


def probe_constructor_parameters(
    engine: Engine,
    dependency: Any,
    *,
    invalid_value: Any = None,
    expected: Sequence[type[BaseException]] = DEFAULT_EXPECTED_ERRORS,
) -> list[ParameterProbe]:
    """Invoke the used constructor once per parameter with that parameter invalid.

    Every other parameter keeps the value it received when the instance was
    first built.
    """
    candidate = constructor_used(engine, dependency)
    expected_errors = tuple(expected)

    probes: list[ParameterProbe] = []
    for index, parameter in enumerate(candidate.parameters):
        values = list(candidate.arguments)
        values[index] = invalid_value
        try:
            candidate.invoke(values)
        except expected_errors as error:
            probes.append(ParameterProbe(parameter=parameter, raised=True, error=error))
        except Exception as error:  # noqa: BLE001
            probes.append(ParameterProbe(parameter=parameter, raised=False, error=error))
        else:
            probes.append(ParameterProbe(parameter=parameter, raised=False))
    return probes


def assert_constructor_parameters_checked(
    engine: Engine,
    dependency: Any,
    *,
    invalid_value: Any = None,
    expected: Sequence[type[BaseException]] = DEFAULT_EXPECTED_ERRORS,
) -> list[ParameterProbe]:
    """Fail unless the used constructor rejects ``invalid_value`` for every parameter.

    Raises:
        AssertionError: Listing each parameter that was accepted or raised an
            unexpected error.

    """
    probes = probe_constructor_parameters(
        engine,
        dependency,
        invalid_value=invalid_value,
        expected=expected,
    )
    unchecked = [probe for probe in probes if not probe.raised]
    if unchecked:
        details = "; ".join(
            f"{probe.parameter.name} ({'no error' if probe.error is None else type(probe.error).__name__})"
            for probe in unchecked
        )
        candidate = constructor_used(engine, dependency)
        msg = f"{candidate} accepted {invalid_value!r} for: {details}"
        raise AssertionError(msg)
    return probes


__all__ = [
    "DEFAULT_EXPECTED_ERRORS",
    "ParameterProbe",
    "assert_constructor_parameters_checked",
    "constructor_used",
    "probe_constructor_parameters",
]
