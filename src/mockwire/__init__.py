from mockwire.bindings import TypeBinding
from mockwire.constructor_testing import (
    ParameterProbe,
    assert_constructor_parameters_checked,
    constructor_used,
    probe_constructor_parameters,
)
from mockwire.constructors import Construction, ConstructorCandidate
from mockwire.doubles import DoubleRecord
from mockwire.engine import Engine
from mockwire.exceptions import (
    MockWireAmbiguousResolutionError,
    MockWireBindingConflictError,
    MockWireConfigurationError,
    MockWireConstructionError,
    MockWireDoubleConflictError,
    MockWireDoubleNotFoundError,
    MockWireError,
    MockWireSignatureError,
)
from mockwire.markers import Inject, constructor
from mockwire.resolution_log import (
    BindingDecision,
    ConstructorDecision,
    CycleBrokenWithDefault,
    DiagnosticLog,
    DoubleDecision,
    ImplicitSubstitution,
    ResolutionLog,
    ZeroValueDecision,
)

__all__ = [
    "BindingDecision",
    "Construction",
    "ConstructorCandidate",
    "ConstructorDecision",
    "CycleBrokenWithDefault",
    "DiagnosticLog",
    "DoubleDecision",
    "DoubleRecord",
    "Engine",
    "ImplicitSubstitution",
    "Inject",
    "MockWireAmbiguousResolutionError",
    "MockWireBindingConflictError",
    "MockWireConfigurationError",
    "MockWireConstructionError",
    "MockWireDoubleConflictError",
    "MockWireDoubleNotFoundError",
    "MockWireError",
    "MockWireSignatureError",
    "ParameterProbe",
    "ResolutionLog",
    "TypeBinding",
    "ZeroValueDecision",
    "assert_constructor_parameters_checked",
    "constructor",
    "constructor_used",
    "probe_constructor_parameters",
]
