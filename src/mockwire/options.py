from __future__ import annotations

from dataclasses import dataclass

from mockwire.defaults import (
    DEFAULT_INNER_RESOLUTION,
    DEFAULT_MATERIALIZE_OPTIONAL,
    DEFAULT_SCAN_SUBCLASSES,
    DEFAULT_STRICT,
)


@dataclass(slots=True)
class EngineOptions:
    """Switches consulted by the resolution algorithms.

    The engine exposes each field as a read/write attribute, so a test can
    flip a switch after the engine was created.
    """

    strict: bool = DEFAULT_STRICT
    """Disable implicit substitutions, ambiguity tie-breaks and non-public fallbacks."""

    inner_resolution: bool = DEFAULT_INNER_RESOLUTION
    """Populate ``Inject[...]`` members of built instances."""

    materialize_optional: bool = DEFAULT_MATERIALIZE_OPTIONAL
    """Resolve parameters that have defaults instead of keeping the default."""

    scan_subclasses: bool = DEFAULT_SCAN_SUBCLASSES
    """Discover implementers of abstract types through ``__subclasses__()``."""
