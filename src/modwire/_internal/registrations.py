from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, TypeAlias

from modwire._internal.markers import split_component_key
from modwire._internal.type_checks import type_name
from modwire.exceptions import DuplicateRegistrationError, InvalidRegistrationError

logger = logging.getLogger(__name__)

UserDependency: TypeAlias = Any
"""A service type registered or requested by user code."""

FactoryProvider: TypeAlias = Callable[[], Any]
"""A parameterless function that produces a service instance on demand."""


class Lifetime(Enum):
    """Define cache behavior for resolved values."""

    TRANSIENT = auto()
    """Disable caching and build a new value for every resolution call."""

    SINGLETON = auto()
    """Build once on first resolution and return the cached value afterwards."""


class RegistrationKind(Enum):
    """Construction strategy stored by a registration."""

    INSTANCE = auto()
    FACTORY = auto()
    TYPE_MAP = auto()


class ServiceKind(Enum):
    """Ownership regime of the values a registration produces.

    Interface-kind values are left to the garbage collector. Class-kind
    singletons may be disposed by the container on teardown.
    """

    INTERFACE = auto()
    CLASS = auto()


@dataclass(frozen=True, slots=True)
class RegistrationKey:
    """Identify one registration by service type and optional name.

    Names compare case-insensitively. The original spelling is kept for
    diagnostics only.
    """

    service: UserDependency
    name: str = field(default="", compare=False)
    folded_name: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "folded_name", self.name.casefold())

    @classmethod
    def create(cls, service: UserDependency, name: str = "") -> RegistrationKey:
        """Build a key, folding ``Annotated[T, Component(...)]`` into ``(T, name)``.

        Args:
            service: Service type, optionally annotated with a ``Component``.
            name: Explicit registration name. ``""`` selects the default registration.

        Raises:
            InvalidRegistrationError: If ``name`` is not a string, or both an
                explicit name and a different ``Component`` name are given.

        """
        if not isinstance(name, str):
            msg = f"Registration name must be a string, got {type(name).__name__}."
            raise InvalidRegistrationError(msg)

        base_service, component_name = split_component_key(service)
        if component_name is None:
            return cls(service=service, name=name)
        if name and name.casefold() != component_name.casefold():
            msg = (
                f"Conflicting names for {type_name(base_service)}: "
                f"explicit name {name!r} and Component({component_name!r})."
            )
            raise InvalidRegistrationError(msg)
        return cls(service=base_service, name=component_name)

    def describe(self) -> str:
        """Return ``Service (name="...")`` with ``<default>`` for the unnamed key."""
        shown_name = f'"{self.name}"' if self.name.strip() else '"<default>"'
        return f"{type_name(self.service)} (name={shown_name})"


@dataclass(kw_only=True, slots=True)
class Registration:
    """Describe how one service key is produced and cached.

    Exactly one of ``instance``, ``factory`` or ``implementation`` is set,
    matching ``kind``. ``owns_instance`` is only honored for class-kind
    singletons.
    """

    key: RegistrationKey
    kind: RegistrationKind
    service_kind: ServiceKind
    lifetime: Lifetime

    instance: Any = None
    """The pre-built value for instance registrations."""
    factory: FactoryProvider | None = None
    """The factory function for factory registrations."""
    implementation: type[Any] | None = None
    """The concrete class built by constructor injection for type-map registrations."""
    owns_instance: bool = True
    """Whether the container disposes the cached value on teardown."""

    @property
    def is_singleton(self) -> bool:
        return self.lifetime is Lifetime.SINGLETON

    @property
    def is_disposable(self) -> bool:
        """Return True when the container is responsible for disposing the cached value."""
        return (
            self.is_singleton and self.service_kind is ServiceKind.CLASS and self.owns_instance
        )


class Registrations:
    """Store registrations indexed by key, in registration order.

    Keys are unique: adding a registration for an existing key fails instead
    of replacing it.
    """

    def __init__(self) -> None:
        self._registrations: dict[RegistrationKey, Registration] = {}

    @dataclass(frozen=True, slots=True)
    class Snapshot:
        """Capture registration state for transactional rollback."""

        registrations: dict[RegistrationKey, Registration]

    def snapshot(self) -> Snapshot:
        """Capture current registrations for rollback."""
        return self.Snapshot(registrations=dict(self._registrations))

    def restore(self, snapshot: Snapshot) -> None:
        """Restore registrations from a previous snapshot.

        Args:
            snapshot: Previously captured snapshot state to restore into the registry.

        """
        self._registrations = dict(snapshot.registrations)

    def add(self, registration: Registration) -> None:
        """Add a new registration.

        Args:
            registration: Registration to store.

        Raises:
            DuplicateRegistrationError: If the key is already registered.

        """
        if registration.key in self._registrations:
            msg = f"Duplicate registration: {registration.key.describe()}."
            raise DuplicateRegistrationError(msg)
        self._registrations[registration.key] = registration
        logger.debug(
            "Registered %s as %s/%s/%s",
            registration.key.describe(),
            registration.kind.name,
            registration.service_kind.name,
            registration.lifetime.name,
        )

    def find(self, key: RegistrationKey) -> Registration | None:
        """Get a registration by key, if it exists.

        Args:
            key: Registration key to look up.

        """
        return self._registrations.get(key)

    def clear(self) -> None:
        """Remove every registration."""
        self._registrations.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._registrations

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations.values()))

    def __len__(self) -> int:
        return len(self._registrations)
