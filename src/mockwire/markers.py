from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin, overload

T = TypeVar("T")
F = TypeVar("F")
_ANNOTATED_MARKER_MIN_ARGS = 2
CONSTRUCTOR_MARKER_ATTR = "__mockwire_constructor__"


class InjectMarker:
    """A marker used to indicate a class attribute should be filled by the engine.

    Attributes annotated with ``Inject[T]`` are populated after construction
    when they are still unset.
    """


class ConstructorMarker(NamedTuple):
    """Metadata attached to functions tagged with ``@constructor``."""

    public: bool | None


if TYPE_CHECKING:
    Inject = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class attribute for engine-driven population.

    At runtime ``Inject[T]`` becomes ``Annotated[T, InjectMarker()]``.

    Examples:
        .. code-block:: python

            class ReportService:
                clock: Inject[Clock]

                def __init__(self, repository: Repository) -> None:
                    self.repository = repository
    """

else:

    class Inject:
        """Mark a class attribute for engine-driven population.

        At runtime ``Inject[T]`` resolves to ``Annotated[T, InjectMarker()]``.

        Examples:
            .. code-block:: python

                class ReportService:
                    clock: Inject[Clock]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return _build_annotated((inner, *metadata, InjectMarker()))
            return _build_annotated((item, InjectMarker()))


@overload
def constructor(func: F, /) -> F: ...


@overload
def constructor(*, public: bool | None = None) -> Callable[[F], F]: ...


def constructor(func: Any = None, /, *, public: bool | None = None) -> Any:
    """Declare an alternate constructor for automatic construction.

    Tag a ``classmethod`` so the engine treats it as one more way to build the
    class. Visibility follows the method name (a leading underscore makes it
    non-public) unless ``public`` is given. Tagging ``__init__`` with
    ``public=False`` makes the primary constructor non-public.

    Examples:
        .. code-block:: python

            class Service:
                def __init__(self) -> None: ...

                @constructor
                @classmethod
                def with_gadget(cls, gadget: Gadget) -> "Service": ...

    """

    def decorator(target: Any) -> Any:
        inner = getattr(target, "__func__", target)
        setattr(inner, CONSTRUCTOR_MARKER_ATTR, ConstructorMarker(public=public))
        return target

    if func is None:
        return decorator
    return decorator(func)


def get_constructor_marker(target: Any) -> ConstructorMarker | None:
    inner = getattr(target, "__func__", target)
    marker = getattr(inner, CONSTRUCTOR_MARKER_ATTR, None)
    if isinstance(marker, ConstructorMarker):
        return marker
    return None


def is_inject_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., InjectMarker()]."""
    if get_origin(annotation) is not Annotated:
        return False
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return False
    return any(isinstance(item, InjectMarker) for item in annotation_args[1:])


def strip_inject_annotation(annotation: Any) -> Any:
    """Strip the Inject marker while preserving other Annotated metadata."""
    if not is_inject_annotation(annotation):
        return annotation

    annotation_args = get_args(annotation)
    member_type = annotation_args[0]
    metadata = annotation_args[1:]
    filtered_metadata = tuple(item for item in metadata if not isinstance(item, InjectMarker))
    if not filtered_metadata:
        return member_type
    return _build_annotated((member_type, *filtered_metadata))


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
