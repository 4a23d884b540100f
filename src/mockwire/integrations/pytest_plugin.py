from __future__ import annotations

from typing import Any

import pytest

from mockwire.engine import Engine

_MARKER_NAME = "mockwire"
_ENGINE_OPTIONS = frozenset({"strict", "inner_resolution", "materialize_optional", "scan_subclasses"})


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        f"{_MARKER_NAME}(**options): engine switches for the mockwire_engine fixture "
        "(strict, inner_resolution, materialize_optional, scan_subclasses).",
    )


@pytest.fixture()
def mockwire_engine(request: pytest.FixtureRequest) -> Engine:
    """Create a per-test resolution engine.

    The fixture is function-scoped, so bindings and doubles are isolated
    between tests. Switches can be set with the ``mockwire`` marker:

    .. code-block:: python

        @pytest.mark.mockwire(strict=True)
        def test_strict(mockwire_engine: Engine) -> None: ...

    Returns:
        A new ``Engine`` instance.

    Raises:
        pytest.UsageError: If the marker names an unknown switch.

    """
    options: dict[str, Any] = {}
    marker = request.node.get_closest_marker(_MARKER_NAME)
    if marker is not None:
        unknown = set(marker.kwargs) - _ENGINE_OPTIONS
        if unknown:
            msg = f"Unknown mockwire marker options: {', '.join(sorted(unknown))}."
            raise pytest.UsageError(msg)
        options.update(marker.kwargs)
    return Engine(**options)
