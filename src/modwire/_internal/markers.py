from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2
CONSTRUCTOR_MARKER_ATTR = "__modwire_constructor__"


class Component(NamedTuple):
    """Name a registration inside a type annotation.

    Attach ``Component`` metadata to ``typing.Annotated`` so a constructor
    parameter asks for the registration stored under that name. The annotated
    key ``Annotated[Database, Component("replica")]`` is the same key as
    ``(Database, "replica")`` passed to ``resolve``.

    Examples:
        .. code-block:: python

            from typing import Annotated, TypeAlias


            class Database: ...


            ReplicaDb: TypeAlias = Annotated[Database, Component("replica")]


            class Reports:
                def __init__(self, db: ReplicaDb) -> None:
                    self.db = db

    """

    value: Any


class RefMarker:
    """Marker that flags a parameter as passed by reference.

    The container never supplies a value for such a parameter, so any
    constructor declaring one is excluded from dependency-injected selection.
    """


if TYPE_CHECKING:
    Ref = Union[T, T]  # noqa: UP007,PYI016
    """Mark a constructor parameter as an output/by-reference parameter.

    At runtime ``Ref[T]`` becomes ``Annotated[T, RefMarker()]``.
    """

else:

    class Ref:
        """Mark a constructor parameter as an output/by-reference parameter.

        At runtime ``Ref[T]`` resolves to ``Annotated[T, RefMarker()]``.

        Examples:
            .. code-block:: python

                class Collector:
                    def __init__(self, sink: Ref[list[str]]) -> None:
                        sink.append("created")

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, RefMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return build_annotated_key((inner, *metadata, RefMarker()))
            return build_annotated_key((item, RefMarker()))


def constructor(method: Callable[..., Any] | classmethod[Any, Any, Any]) -> Any:
    """Declare an alternative public constructor on a class.

    Accepts a plain function (wrapped into a ``classmethod``) or an existing
    ``classmethod``. The constructor selector considers decorated methods after
    the primary ``__init__``, in class body order.

    Examples:
        .. code-block:: python

            class Client:
                def __init__(self) -> None:
                    self.transport = None

                @constructor
                def with_transport(cls, transport: Transport) -> Client:
                    client = cls()
                    client.transport = transport
                    return client

    """
    if isinstance(method, classmethod):
        setattr(method.__func__, CONSTRUCTOR_MARKER_ATTR, True)
        return method
    setattr(method, CONSTRUCTOR_MARKER_ATTR, True)
    return classmethod(method)


def is_constructor_member(member: object) -> bool:
    """Return True when a class ``__dict__`` member was marked with ``@constructor``."""
    if not isinstance(member, classmethod):
        return False
    return bool(getattr(member.__func__, CONSTRUCTOR_MARKER_ATTR, False))


def is_ref_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., RefMarker()]."""
    return any(isinstance(item, RefMarker) for item in _annotated_metadata(annotation))


def strip_ref_annotation(annotation: Any) -> Any:
    """Strip Ref marker while preserving other Annotated metadata."""
    if not is_ref_annotation(annotation):
        return annotation

    annotation_args = get_args(annotation)
    parameter_type = annotation_args[0]
    metadata = annotation_args[1:]
    filtered_metadata = tuple(item for item in metadata if not isinstance(item, RefMarker))
    if not filtered_metadata:
        return parameter_type
    return build_annotated_key((parameter_type, *filtered_metadata))


def split_component_key(annotation: Any) -> tuple[Any, str | None]:
    """Split ``Annotated[Base, Component(name)]`` into ``(Base, name)``.

    Returns ``(annotation, None)`` when no ``Component`` metadata is present.
    """
    component = next(
        (item for item in _annotated_metadata(annotation) if isinstance(item, Component)),
        None,
    )
    if component is None:
        return annotation, None
    return get_args(annotation)[0], str(component.value)


def _annotated_metadata(annotation: Any) -> tuple[Any, ...]:
    if get_origin(annotation) is not Annotated:
        return ()
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return ()
    return annotation_args[1:]


def build_annotated_key(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
