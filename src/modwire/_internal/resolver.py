from __future__ import annotations

import logging
from typing import Any

from modwire._internal.lifetime_cache import EMPTY, LifetimeCache
from modwire._internal.registrations import (
    Registration,
    RegistrationKind,
    Registrations,
    RegistrationKey,
)
from modwire._internal.selection import ConstructorSelector, InstanceBuilder
from modwire._internal.type_checks import type_name
from modwire.exceptions import (
    CircularDependencyError,
    UnbuildableServiceError,
    UnregisteredServiceError,
)

logger = logging.getLogger(__name__)


class Resolver:
    """Turn registration keys into values.

    Instance registrations return their stored value. Factory and type-map
    registrations build a new value on every call for transient lifetimes and
    exactly once for singletons, whose value is then served from the
    ``LifetimeCache``. Keys re-entered while still under construction fail
    fast with ``CircularDependencyError``.
    """

    def __init__(
        self,
        *,
        registrations: Registrations,
        cache: LifetimeCache,
        selector: ConstructorSelector,
        builder: InstanceBuilder,
    ) -> None:
        self._registrations = registrations
        self._cache = cache
        self._selector = selector
        self._builder = builder
        self._resolving: list[RegistrationKey] = []

    def resolve(self, key: RegistrationKey) -> Any:
        """Resolve ``key``.

        Args:
            key: Registration key to resolve.

        Raises:
            UnregisteredServiceError: If the key is not registered.
            UnbuildableServiceError: If the registration cannot produce a value.
            CircularDependencyError: If the key is already being built.

        """
        registration = self._registrations.find(key)
        if registration is None:
            msg = f"Service not registered: {key.describe()}."
            raise UnregisteredServiceError(msg)

        if registration.kind is RegistrationKind.INSTANCE:
            return registration.instance

        if registration.is_singleton:
            cached = self._cache.get(key)
            if cached is not EMPTY:
                return cached

        value = self._create(registration)
        if registration.is_singleton:
            self._cache.put(registration, value)
            logger.debug("Cached singleton %s", key.describe())
        return value

    def _create(self, registration: Registration) -> Any:
        key = registration.key
        if key in self._resolving:
            chain = " -> ".join(
                item.describe() for item in [*self._resolving[self._resolving.index(key) :], key]
            )
            msg = f"Circular dependency detected: {chain}."
            raise CircularDependencyError(msg)

        self._resolving.append(key)
        try:
            if registration.kind is RegistrationKind.FACTORY:
                value = registration.factory()  # type: ignore[misc]
            else:
                value = self._build(registration)
        finally:
            self._resolving.pop()

        if value is None:
            msg = f"Provider for {key.describe()} returned None."
            raise UnbuildableServiceError(msg)
        return value

    def _build(self, registration: Registration) -> Any:
        implementation = registration.implementation
        choice = self._selector.select(implementation, self._registrations.__contains__)  # type: ignore[arg-type]
        if choice is None:
            msg = (
                f"Cannot build {registration.key.describe()}: no constructor of "
                f"{type_name(implementation)} is resolvable and none takes zero arguments."
            )
            raise UnbuildableServiceError(msg)
        return self._builder.build(choice, self.resolve)
