from abc import ABC, abstractmethod
from collections.abc import Sequence
from unittest.mock import NonCallableMagicMock

import pytest
from typing_extensions import Self

from mockwire import Inject, constructor
from mockwire.engine import Engine
from mockwire.exceptions import (
    MockWireAmbiguousResolutionError,
    MockWireConstructionError,
    MockWireDoubleConflictError,
    MockWireDoubleNotFoundError,
)
from mockwire.resolution_log import (
    BindingDecision,
    ConstructorDecision,
    CycleBrokenWithDefault,
    DoubleDecision,
    ImplicitSubstitution,
    ZeroValueDecision,
)


class CycleLeft:
    def __init__(self, right: "CycleRight") -> None:
        self.right = right


class CycleRight:
    def __init__(self, left: CycleLeft) -> None:
        self.left = left


class LinkedNode:
    def __init__(self, value: int = 0) -> None:
        self.value = value

    @constructor
    @classmethod
    def after(cls, node: "LinkedNode") -> "LinkedNode":
        return cls(node.value + 1)


class SelfInjecting:
    peer: Inject["SelfInjecting"]


def test_resolves_class_with_dependencies(engine: Engine) -> None:
    class Repository:
        pass

    class Service:
        def __init__(self, repository: Repository) -> None:
            self.repository = repository

    service = engine.resolve(Service)

    assert isinstance(service, Service)
    assert isinstance(service.repository, Repository)


def test_resolve_builds_fresh_instances(engine: Engine) -> None:
    class Service:
        pass

    assert engine.resolve(Service) is not engine.resolve(Service)


def test_resolve_is_deterministic() -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self) -> None:
            pass

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            return cls()

    first = Engine()
    second = Engine()
    first.resolve(Widget)
    second.resolve(Widget)

    first_candidate = first.resolution_log.latest_constructor(Widget)
    second_candidate = second.resolution_log.latest_constructor(Widget)
    assert first_candidate is not None
    assert second_candidate is not None
    assert first_candidate.name == second_candidate.name == "with_gadget"


def test_resolves_abstract_type_to_single_implementer(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def get(self) -> str:
            return "sql"

    repository = engine.resolve(Repository)

    assert isinstance(repository, SqlRepository)
    assert engine.resolve_concrete_type(Repository) is SqlRepository


def test_public_implementer_wins_over_non_public(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class _HiddenRepository(Repository):
        def get(self) -> str:
            return "hidden"

    class PublicRepository(Repository):
        def get(self) -> str:
            return "public"

    assert isinstance(engine.resolve(Repository), PublicRepository)


def test_ambiguous_implementers_list_both_candidates(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def get(self) -> str:
            return "sql"

    class FileRepository(Repository):
        def get(self) -> str:
            return "file"

    with pytest.raises(MockWireAmbiguousResolutionError) as exc_info:
        engine.resolve(Repository)

    assert exc_info.value.candidates == (SqlRepository, FileRepository)
    assert "SqlRepository" in str(exc_info.value)
    assert "FileRepository" in str(exc_info.value)


def test_binding_resolves_ambiguity(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def get(self) -> str:
            return "sql"

    class FileRepository(Repository):
        def get(self) -> str:
            return "file"

    engine.register_binding(Repository, FileRepository)

    assert isinstance(engine.resolve(Repository), FileRepository)


def test_abstract_type_without_implementer_becomes_registered_double(engine: Engine) -> None:
    class Clock(ABC):
        @abstractmethod
        def now(self) -> int: ...

    class Service:
        def __init__(self, clock: Clock) -> None:
            self.clock = clock

    service = engine.resolve(Service)

    assert isinstance(service.clock, Clock)
    assert engine.contains(Clock)
    assert engine.get_required_double(Clock) is service.clock
    assert isinstance(engine.resolution_log.latest(Clock), DoubleDecision)


def test_nested_resolution_uses_registered_double(engine: Engine) -> None:
    class Clock:
        pass

    class Service:
        def __init__(self, clock: Clock) -> None:
            self.clock = clock

    clock_double = NonCallableMagicMock(spec=Clock)
    engine.add_double(Clock, clock_double)

    assert engine.resolve(Service).clock is clock_double
    assert engine.resolve(Clock) is not clock_double


def test_most_parameterized_constructor_wins(engine: Engine) -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self) -> None:
            self.gadget: Gadget | None = None

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            widget = cls()
            widget.gadget = gadget
            return widget

    widget = engine.resolve(Widget)

    assert isinstance(widget.gadget, Gadget)


def test_falls_back_when_most_parameterized_constructor_fails(engine: Engine) -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self) -> None:
            self.source = "plain"

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            msg = "gadget rejected"
            raise RuntimeError(msg)

    widget = engine.resolve(Widget)

    assert widget.source == "plain"
    candidate = engine.resolution_log.latest_constructor(Widget)
    assert candidate is not None
    assert candidate.name == "__init__"
    assert any("gadget rejected" in message for message in engine.diagnostics.messages())


def test_unresolvable_parameter_falls_back_to_next_most_parameterized(engine: Engine) -> None:
    class Gadget:
        pass

    class Motor:
        def __init__(self) -> None:
            msg = "no power"
            raise RuntimeError(msg)

    class Widget:
        def __init__(self) -> None:
            self.source = "plain"

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            widget = cls()
            widget.source = "gadget"
            return widget

        @constructor
        @classmethod
        def with_motor(cls, gadget: Gadget, motor: Motor) -> Self:
            widget = cls()
            widget.source = "motor"
            return widget

    widget = engine.resolve(Widget)

    assert widget.source == "gadget"
    candidate = engine.resolution_log.latest_constructor(Widget)
    assert candidate is not None
    assert candidate.name == "with_gadget"
    assert [entry.dependency for entry in engine.diagnostics.for_type(Widget)] == [Widget]
    assert "with_motor" in engine.diagnostics.for_type(Widget)[0].message


def test_all_constructors_failing_chains_first_failure(engine: Engine) -> None:
    class Broken:
        def __init__(self) -> None:
            msg = "primary"
            raise RuntimeError(msg)

        @constructor
        @classmethod
        def create(cls, value: int) -> Self:
            msg = "alternate"
            raise ValueError(msg)

    with pytest.raises(MockWireConstructionError) as exc_info:
        engine.resolve(Broken)

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert [type(error) for _, error in exc_info.value.failures] == [ValueError, RuntimeError]


def test_constructor_taking_own_type_is_never_used(engine: Engine) -> None:
    node = engine.resolve(LinkedNode)

    assert node.value == 0
    candidate = engine.resolution_log.latest_constructor(LinkedNode)
    assert candidate is not None
    assert candidate.name == "__init__"


def test_indirect_cycle_terminates_with_placeholder(engine: Engine) -> None:
    left = engine.resolve(CycleLeft)

    assert isinstance(left.right, CycleRight)
    assert left.right.left is not left
    assert isinstance(left.right.left, CycleLeft)

    decisions = engine.resolution_log.query(CycleLeft)
    cycle_decisions = [decision for decision in decisions if isinstance(decision, CycleBrokenWithDefault)]
    assert len(cycle_decisions) == 1
    assert cycle_decisions[0].active == (CycleLeft, CycleRight)
    assert not engine.contains(CycleLeft)


def test_self_referencing_member_gets_placeholder(engine: Engine) -> None:
    instance = engine.resolve(SelfInjecting)

    assert instance.peer is not instance
    assert isinstance(instance.peer, SelfInjecting)


def test_explicit_arguments_select_matching_constructor(engine: Engine) -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self) -> None:
            self.gadget: Gadget | None = None

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            widget = cls()
            widget.gadget = gadget
            return widget

    gadget = Gadget()

    assert engine.resolve(Widget, gadget).gadget is gadget


def test_explicit_arguments_without_match_raise(engine: Engine) -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self, gadget: Gadget) -> None:
            self.gadget = gadget

    with pytest.raises(MockWireConstructionError, match="no constructor accepts"):
        engine.resolve(Widget, 42)


def test_explicit_arguments_fill_leading_parameters(engine: Engine) -> None:
    class Clock:
        pass

    class Report:
        def __init__(self, title: str, clock: Clock) -> None:
            self.title = title
            self.clock = clock

    report = engine.resolve(Report, "weekly")

    assert report.title == "weekly"
    assert isinstance(report.clock, Clock)


def test_non_public_primary_constructor_is_used_as_fallback(engine: Engine) -> None:
    class Hidden:
        @constructor(public=False)
        def __init__(self) -> None:
            self.built = True

    assert engine.resolve(Hidden).built


def test_strict_engine_refuses_non_public_fallback(strict_engine: Engine) -> None:
    class Hidden:
        @constructor(public=False)
        def __init__(self) -> None:
            self.built = True

    with pytest.raises(MockWireConstructionError):
        strict_engine.resolve(Hidden)

    assert strict_engine.resolve_non_public(Hidden).built


def test_strict_engine_rejects_several_parameterized_constructors(strict_engine: Engine) -> None:
    class Gadget:
        pass

    class Widget:
        def __init__(self, name: str) -> None:
            self.name = name

        @constructor
        @classmethod
        def with_gadget(cls, gadget: Gadget) -> Self:
            return cls("gadget")

    with pytest.raises(MockWireAmbiguousResolutionError):
        strict_engine.resolve(Widget)


def test_strict_engine_does_not_break_implementer_ties(strict_engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class _HiddenRepository(Repository):
        def get(self) -> str:
            return "hidden"

    class PublicRepository(Repository):
        def get(self) -> str:
            return "public"

    with pytest.raises(MockWireAmbiguousResolutionError):
        strict_engine.resolve(Repository)


def test_abstract_collection_is_substituted(engine: Engine) -> None:
    class Inbox:
        def __init__(self, messages: Sequence[str]) -> None:
            self.messages = messages

    inbox = engine.resolve(Inbox)

    assert inbox.messages == []
    substitutions = [
        decision
        for decision in engine.resolution_log.query(Sequence[str])
        if isinstance(decision, ImplicitSubstitution)
    ]
    assert [substitution.substitute for substitution in substitutions] == [list]


def test_value_parameters_get_zero_values(engine: Engine) -> None:
    class Settings:
        def __init__(self, name: str, retries: int, ratio: float, enabled: bool) -> None:
            self.values = (name, retries, ratio, enabled)

    assert engine.resolve(Settings).values == ("", 0, 0.0, False)


def test_defaults_are_kept_unless_materialized() -> None:
    class Clock:
        pass

    class Service:
        def __init__(self, clock: Clock | None = None, label: str = "default") -> None:
            self.clock = clock
            self.label = label

    kept = Engine().resolve(Service)
    materialized = Engine(materialize_optional=True).resolve(Service)

    assert kept.clock is None
    assert kept.label == "default"
    assert isinstance(materialized.clock, Clock)
    assert materialized.label == ""


def test_unannotated_parameters_receive_none(engine: Engine) -> None:
    class Legacy:
        def __init__(self, anything) -> None:  # noqa: ANN001
            self.anything = anything

    assert engine.resolve(Legacy).anything is None


def test_inject_members_are_populated(engine: Engine) -> None:
    class Clock:
        pass

    class Report:
        clock: Inject[Clock]

    report = engine.resolve(Report)

    assert isinstance(report.clock, Clock)


def test_inject_members_left_alone_without_inner_resolution() -> None:
    class Clock:
        pass

    class Report:
        clock: Inject[Clock]

    report = Engine(inner_resolution=False).resolve(Report)

    assert not hasattr(report, "clock")


def test_inject_members_keep_existing_values(engine: Engine) -> None:
    class Clock:
        pass

    existing = Clock()

    class Report:
        clock: Inject[Clock]

        def __init__(self) -> None:
            self.clock = existing

    assert engine.resolve(Report).clock is existing


def test_add_injections_fills_existing_object(engine: Engine) -> None:
    class Clock:
        pass

    class Report:
        clock: Inject[Clock]

    report = Report()

    assert engine.add_injections(report) is report
    assert isinstance(report.clock, Clock)


def test_binding_factory_is_used(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def __init__(self, dsn: str) -> None:
            self.dsn = dsn

        def get(self) -> str:
            return self.dsn

    engine.register_binding(Repository, SqlRepository, factory=lambda _: SqlRepository("sqlite://"))

    repository = engine.resolve(Repository)

    assert repository.get() == "sqlite://"
    assert isinstance(engine.resolution_log.latest(Repository), BindingDecision)


def test_binding_factory_reenters_engine(engine: Engine) -> None:
    class Clock:
        pass

    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def __init__(self, clock: Clock) -> None:
            self.clock = clock

        def get(self) -> str:
            return "sql"

    engine.register_binding(
        Repository,
        SqlRepository,
        factory=lambda current: SqlRepository(current.resolve(Clock)),
    )

    assert isinstance(engine.resolve(Repository).clock, Clock)


def test_binding_fixed_arguments_are_used(engine: Engine) -> None:
    class Repository(ABC):
        @abstractmethod
        def get(self) -> str: ...

    class SqlRepository(Repository):
        def __init__(self, dsn: str) -> None:
            self.dsn = dsn

        def get(self) -> str:
            return self.dsn

    engine.register_binding(Repository, SqlRepository, arguments=("postgres://",))

    assert engine.resolve(Repository).get() == "postgres://"
    assert isinstance(engine.resolution_log.latest(Repository), ConstructorDecision)


def test_call_fills_missing_parameters(engine: Engine) -> None:
    class Clock:
        pass

    def handler(clock: Clock, count: int, label: str = "x", *, flag: bool) -> tuple[object, ...]:
        return clock, count, label, flag

    clock, count, label, flag = engine.call(handler)

    assert isinstance(clock, Clock)
    assert (count, label, flag) == (0, "x", False)


def test_call_keeps_supplied_arguments(engine: Engine) -> None:
    class Clock:
        pass

    def handler(clock: Clock, count: int) -> tuple[object, int]:
        return clock, count

    clock = Clock()

    assert engine.call(handler, clock, count=3) == (clock, 3)


def test_get_or_create_double_is_stable(engine: Engine) -> None:
    class Clock:
        def now(self) -> int:
            return 42

    first = engine.get_or_create_double(Clock)
    second = engine.get_or_create_double(Clock)

    assert first is second
    assert first.now() == 42
    first.now.assert_called_once_with()


def test_double_conflict_keeps_first_double(engine: Engine) -> None:
    class Clock:
        pass

    first = NonCallableMagicMock(spec=Clock)
    second = NonCallableMagicMock(spec=Clock)
    engine.add_double(Clock, first)

    with pytest.raises(MockWireDoubleConflictError):
        engine.add_double(Clock, second)

    assert engine.get_required_double(Clock) is first


def test_double_overwrite_replaces_instance(engine: Engine) -> None:
    class Clock:
        pass

    first = NonCallableMagicMock(spec=Clock)
    second = NonCallableMagicMock(spec=Clock)
    engine.add_double(Clock, first)
    engine.add_double(Clock, second, overwrite=True)

    assert engine.get_required_double(Clock) is second


def test_removed_double_is_not_found(engine: Engine) -> None:
    class Clock:
        pass

    engine.get_or_create_double(Clock)

    assert engine.remove_double(Clock)
    assert not engine.remove_double(Clock)
    with pytest.raises(MockWireDoubleNotFoundError):
        engine.get_required_double(Clock)


def test_switches_can_be_changed_after_creation(engine: Engine) -> None:
    engine.strict = True
    engine.inner_resolution = False
    engine.materialize_optional = True
    engine.scan_subclasses = False

    assert engine.strict
    assert not engine.inner_resolution
    assert engine.materialize_optional
    assert not engine.scan_subclasses


def test_explicit_arguments_try_next_matching_constructor(engine: Engine) -> None:
    class Motor:
        def __init__(self) -> None:
            msg = "no power"
            raise RuntimeError(msg)

    class Widget:
        def __init__(self, size: int, motor: Motor) -> None:
            self.size = size
            self.source = "motor"

        @constructor
        @classmethod
        def sized(cls, size: int, depth: int, label: str = "") -> Self:
            widget = cls.__new__(cls)
            widget.size = size
            widget.source = "sized"
            return widget

    widget = engine.resolve(Widget, 5)

    assert widget.size == 5
    assert widget.source == "sized"
    assert any("Widget(size, motor)" in message for message in engine.diagnostics.messages())


def test_explicit_arguments_chain_first_failure_when_all_matches_fail(engine: Engine) -> None:
    class Motor:
        def __init__(self) -> None:
            msg = "no power"
            raise RuntimeError(msg)

    class Widget:
        def __init__(self, size: int, motor: Motor) -> None:
            self.size = size

        @constructor
        @classmethod
        def sized(cls, size: int, depth: int) -> Self:
            msg = "depth required"
            raise ValueError(msg)

    with pytest.raises(MockWireConstructionError, match="every constructor failed") as exc_info:
        engine.resolve(Widget, 5)

    assert isinstance(exc_info.value.__cause__, MockWireConstructionError)
    assert [candidate.name for candidate, _ in exc_info.value.failures] == ["__init__", "sized"]


def test_abstract_type_without_implementer_logs_every_resolution(engine: Engine) -> None:
    class Clock(ABC):
        @abstractmethod
        def now(self) -> int: ...

    first = engine.resolve(Clock)
    second = engine.resolve(Clock)

    assert first is second
    decisions = engine.resolution_log.query(Clock)
    assert decisions == (
        DoubleDecision(double=first, wraps_real_instance=False),
        DoubleDecision(double=first, wraps_real_instance=False, reused=True),
    )


def test_value_type_resolution_is_logged(engine: Engine) -> None:
    assert engine.resolve(int) == 0
    assert engine.resolution_log.query(int) == (ZeroValueDecision(value=0),)
