from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from types import TracebackType
from typing import TYPE_CHECKING, Any, Literal, TypeVar, cast, overload

from modwire._internal.descriptors import TypeDescriptorProvider
from modwire._internal.lifetime_cache import LifetimeCache
from modwire._internal.modules import ModuleSource, collect_modules
from modwire._internal.registrations import (
    Lifetime,
    Registration,
    RegistrationKey,
    RegistrationKind,
    Registrations,
    ServiceKind,
)
from modwire._internal.resolver import Resolver
from modwire._internal.selection import ConstructorSelector, InstanceBuilder
from modwire._internal.type_checks import (
    is_protocol_class,
    is_runtime_class,
    supports_instance_checks,
    type_name,
)
from modwire.exceptions import (
    InvalidRegistrationError,
    UnbuildableServiceError,
    UnregisteredServiceError,
)

if TYPE_CHECKING:
    from typing_extensions import Self

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Register services, resolve object graphs, and own cached singletons.

    Services are keyed by a type plus an optional case-insensitive name.
    Registrations come in three kinds (instance, factory, type mapping built
    through constructor injection) and two lifetimes (transient, singleton).
    ``add*`` calls never override: a second registration for the same key
    raises ``DuplicateRegistrationError``.

    The ``add_class*`` / ``resolve_class`` family registers class-kind
    services. Singletons of that kind are disposed by ``close`` unless
    registered with ``owns_instance=False``. Interface-kind values and
    transient values are never disposed by the container.

    The container performs no locking. Populate it from a single composition
    root before resolving from several threads, and do not race first
    resolutions of the same singleton.
    """

    def __init__(self, *, default_lifetime: Lifetime = Lifetime.TRANSIENT) -> None:
        """Initialize an empty container.

        Args:
            default_lifetime: Lifetime used by registrations that pass
                ``lifetime="from_container"`` (the default).

        Examples:
            .. code-block:: python

                container = Container()
                singleton_container = Container(default_lifetime=Lifetime.SINGLETON)

        """
        if not isinstance(default_lifetime, Lifetime):
            msg = f"default_lifetime must be a Lifetime, got {default_lifetime!r}."
            raise InvalidRegistrationError(msg)

        self._default_lifetime = default_lifetime
        self._registrations = Registrations()
        self._cache = LifetimeCache()
        self._resolver = Resolver(
            registrations=self._registrations,
            cache=self._cache,
            selector=ConstructorSelector(TypeDescriptorProvider()),
            builder=InstanceBuilder(),
        )
        self._registration_mutation_depth: int = 0
        self._registration_mutation_snapshot: Registrations.Snapshot | None = None

    # region Registration Methods
    def add_instance(self, service: Any, instance: Any, *, name: str = "") -> None:
        """Register a pre-built interface-kind instance.

        The value is returned as-is by every resolution and is never disposed
        by the container.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``).
            instance: Value to return on resolution.
            name: Optional registration name.

        Raises:
            InvalidRegistrationError: If ``instance`` is ``None``.
            DuplicateRegistrationError: If the key is already registered.

        """
        self._add_instance(
            service=service,
            instance=instance,
            name=name,
            service_kind=ServiceKind.INTERFACE,
            owns_instance=False,
            method_name="add_instance",
        )

    def add_factory(
        self,
        service: Any,
        factory: Callable[[], Any],
        *,
        lifetime: Lifetime | Literal["from_container"] = "from_container",
        name: str = "",
    ) -> None:
        """Register a parameterless factory for an interface-kind service.

        Singleton factories run at most once per container; transient factories
        run on every resolution.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``).
            factory: Callable producing the service. Returning ``None`` is a
                resolution failure.
            lifetime: Lifetime, or ``"from_container"`` for the container default.
            name: Optional registration name.

        Raises:
            InvalidRegistrationError: If ``factory`` is not callable.
            DuplicateRegistrationError: If the key is already registered.

        """
        self._add_factory(
            service=service,
            factory=factory,
            lifetime=lifetime,
            name=name,
            service_kind=ServiceKind.INTERFACE,
            owns_instance=False,
            method_name="add_factory",
        )

    def add(
        self,
        service: Any,
        implementation: type[Any],
        *,
        lifetime: Lifetime | Literal["from_container"] = "from_container",
        name: str = "",
    ) -> None:
        """Map an interface-kind service to an implementation class.

        Nothing is built at registration time. On resolution the best
        constructor of ``implementation`` is selected against the current
        registrations and its dependencies are resolved recursively.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``),
                typically an ABC or ``Protocol``.
            implementation: Concrete class to build.
            lifetime: Lifetime, or ``"from_container"`` for the container default.
            name: Optional registration name.

        Raises:
            InvalidRegistrationError: If ``implementation`` is not a concrete
                class, or is not a subclass of a nominal ``service`` class.
            DuplicateRegistrationError: If the key is already registered.

        Examples:
            .. code-block:: python

                container.add(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)
                repository = container.resolve(Repository)

        """
        self._add_type_map(
            service=service,
            implementation=implementation,
            lifetime=lifetime,
            name=name,
            service_kind=ServiceKind.INTERFACE,
            method_name="add",
        )

    def add_class_instance(
        self,
        cls: type[Any],
        instance: Any,
        *,
        name: str = "",
        owns_instance: bool = True,
    ) -> None:
        """Register a pre-built class-kind instance.

        Args:
            cls: Service class.
            instance: Value to return on resolution.
            name: Optional registration name.
            owns_instance: When true the container disposes ``instance`` on
                ``close``/``clear``; when false the caller keeps ownership.

        Raises:
            InvalidRegistrationError: If ``cls`` is not a class or ``instance``
                is ``None``.
            DuplicateRegistrationError: If the key is already registered.

        """
        self._require_class(cls, method_name="add_class_instance")
        self._add_instance(
            service=cls,
            instance=instance,
            name=name,
            service_kind=ServiceKind.CLASS,
            owns_instance=owns_instance,
            method_name="add_class_instance",
        )

    def add_class_factory(
        self,
        cls: type[Any],
        factory: Callable[[], Any],
        *,
        lifetime: Lifetime | Literal["from_container"] = "from_container",
        name: str = "",
        owns_instance: bool = True,
    ) -> None:
        """Register a parameterless factory for a class-kind service.

        A singleton built by the factory is disposed on ``close`` unless
        ``owns_instance`` is false. Transient values belong to the caller.

        Args:
            cls: Service class.
            factory: Callable producing the service.
            lifetime: Lifetime, or ``"from_container"`` for the container default.
            name: Optional registration name.
            owns_instance: Whether the container disposes the cached singleton.

        Raises:
            InvalidRegistrationError: If ``cls`` is not a class or ``factory``
                is not callable.
            DuplicateRegistrationError: If the key is already registered.

        """
        self._require_class(cls, method_name="add_class_factory")
        self._add_factory(
            service=cls,
            factory=factory,
            lifetime=lifetime,
            name=name,
            service_kind=ServiceKind.CLASS,
            owns_instance=owns_instance,
            method_name="add_class_factory",
        )

    def add_class_type(
        self,
        cls: type[Any],
        *,
        lifetime: Lifetime | Literal["from_container"] = "from_container",
        name: str = "",
    ) -> None:
        """Register a concrete class as its own implementation.

        Equivalent to mapping ``cls`` to ``cls`` as a class-kind service; a
        cached singleton is owned and disposed by the container.

        Args:
            cls: Concrete class to build.
            lifetime: Lifetime, or ``"from_container"`` for the container default.
            name: Optional registration name.

        Raises:
            InvalidRegistrationError: If ``cls`` is not a concrete class.
            DuplicateRegistrationError: If the key is already registered.

        """
        self._require_class(cls, method_name="add_class_type")
        self._add_type_map(
            service=cls,
            implementation=cls,
            lifetime=lifetime,
            name=name,
            service_kind=ServiceKind.CLASS,
            method_name="add_class_type",
        )

    def add_module(self, module: ModuleSource) -> None:
        """Apply one module, a sequence of modules, or a module class.

        Every element is validated before the first one is applied. Modules
        run in order and may call ``add_module`` themselves. If any
        registration made while applying fails, the registry is restored to
        its state before the outermost ``add_module`` call.

        Args:
            module: A ``ContainerModule`` instance, a module class constructible
                without arguments, or a sequence of those.

        Raises:
            InvalidModuleError: If ``module`` or any element is ``None`` or not
                a module.
            DuplicateRegistrationError: If a module registers an existing key.

        Examples:
            .. code-block:: python

                container.add_module([DataModule(), ParsingModule()])
                container.add_module(UseCaseModule)

        """
        modules = collect_modules(module)
        with self._registration_mutation():
            for item in modules:
                logger.debug("Applying module %s", type_name(type(item)))
                item.register_services(self)

    # endregion Registration Methods

    # region Resolution
    @overload
    def resolve(self, service: type[T], name: str = "") -> T: ...

    @overload
    def resolve(self, service: Any, name: str = "") -> Any: ...

    def resolve(self, service: Any, name: str = "") -> Any:
        """Resolve a service.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``).
            name: Optional registration name.

        Returns:
            The stored instance, the cached singleton, or a newly built value.

        Raises:
            UnregisteredServiceError: If the key is not registered.
            UnbuildableServiceError: If no constructor can be invoked or a
                factory returned ``None``.
            CircularDependencyError: If the dependency graph has a cycle.

        Examples:
            .. code-block:: python

                container.add(Service, ServiceImpl)
                service = container.resolve(Service)

        """
        return self._resolver.resolve(RegistrationKey.create(service, name))

    @overload
    def try_resolve(self, service: type[T], name: str = "") -> T | None: ...

    @overload
    def try_resolve(self, service: Any, name: str = "") -> Any | None: ...

    def try_resolve(self, service: Any, name: str = "") -> Any | None:
        """Resolve a service, returning ``None`` when it is missing or unbuildable.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``).
            name: Optional registration name.

        Notes:
            Only ``UnregisteredServiceError`` (including unbuildable services)
            is converted to ``None``; circular dependencies and errors raised
            by user constructors propagate.

        """
        try:
            return self.resolve(service, name)
        except UnregisteredServiceError:
            return None

    def resolve_class(self, cls: type[T], name: str = "") -> T:
        """Resolve a class-kind service and check the result type.

        Args:
            cls: Service class.
            name: Optional registration name.

        Raises:
            InvalidRegistrationError: If ``cls`` is not a class or is a protocol
                without ``@runtime_checkable``.
            UnregisteredServiceError: If the key is not registered.
            UnbuildableServiceError: If the value cannot be built or is not an
                instance of ``cls``.

        """
        self._require_class(cls, method_name="resolve_class")
        key = RegistrationKey.create(cls, name)
        value = self._resolver.resolve(key)
        if not isinstance(value, key.service):
            msg = (
                f"Resolved value for {key.describe()} is a "
                f"{type_name(type(value))}, not an instance of {type_name(key.service)}."
            )
            raise UnbuildableServiceError(msg)
        return value

    def try_resolve_class(self, cls: type[T], name: str = "") -> T | None:
        """Resolve a class-kind service, returning ``None`` on missing or mismatched values.

        Args:
            cls: Service class.
            name: Optional registration name.

        """
        try:
            return self.resolve_class(cls, name)
        except UnregisteredServiceError:
            return None

    def is_registered(self, service: Any, name: str = "") -> bool:
        """Return True when ``(service, name)`` has a registration.

        Args:
            service: Service type (or ``Annotated[T, Component(name)]``).
            name: Optional registration name.

        """
        return RegistrationKey.create(service, name) in self._registrations

    # endregion Resolution

    # region Teardown
    def clear(self) -> None:
        """Dispose owned singletons and remove every registration.

        Afterwards ``is_registered`` is false for every key.
        """
        try:
            self._cache.release()
        finally:
            self._registrations.clear()
        logger.debug("Container cleared")

    def close(self) -> None:
        """Tear the container down.

        Class-kind singletons owned by the container are disposed in reverse
        creation order; registrations made with ``owns_instance=False``,
        interface-kind values, and transient values are left alone.
        """
        self.clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._registrations)

    # endregion Teardown

    def _add_instance(
        self,
        *,
        service: Any,
        instance: Any,
        name: str,
        service_kind: ServiceKind,
        owns_instance: bool,
        method_name: str,
    ) -> None:
        if instance is None:
            msg = f"{method_name}() instance for {type_name(service)} must not be None."
            raise InvalidRegistrationError(msg)

        registration = Registration(
            key=RegistrationKey.create(service, name),
            kind=RegistrationKind.INSTANCE,
            service_kind=service_kind,
            lifetime=Lifetime.SINGLETON,
            instance=instance,
            owns_instance=owns_instance,
        )
        with self._registration_mutation():
            self._registrations.add(registration)
            self._cache.put(registration, instance)

    def _add_factory(
        self,
        *,
        service: Any,
        factory: Callable[[], Any],
        lifetime: Lifetime | Literal["from_container"],
        name: str,
        service_kind: ServiceKind,
        owns_instance: bool,
        method_name: str,
    ) -> None:
        if not callable(factory):
            msg = f"{method_name}() factory for {type_name(service)} must be callable."
            raise InvalidRegistrationError(msg)

        registration = Registration(
            key=RegistrationKey.create(service, name),
            kind=RegistrationKind.FACTORY,
            service_kind=service_kind,
            lifetime=self._resolve_registration_lifetime(lifetime, method_name=method_name),
            factory=factory,
            owns_instance=owns_instance,
        )
        with self._registration_mutation():
            self._registrations.add(registration)

    def _add_type_map(
        self,
        *,
        service: Any,
        implementation: type[Any],
        lifetime: Lifetime | Literal["from_container"],
        name: str,
        service_kind: ServiceKind,
        method_name: str,
    ) -> None:
        key = RegistrationKey.create(service, name)
        self._validate_implementation(
            service=key.service,
            implementation=implementation,
            method_name=method_name,
        )
        registration = Registration(
            key=key,
            kind=RegistrationKind.TYPE_MAP,
            service_kind=service_kind,
            lifetime=self._resolve_registration_lifetime(lifetime, method_name=method_name),
            implementation=implementation,
        )
        with self._registration_mutation():
            self._registrations.add(registration)

    def _resolve_registration_lifetime(
        self,
        lifetime: Lifetime | Literal["from_container"],
        *,
        method_name: str,
    ) -> Lifetime:
        if lifetime == "from_container":
            return self._default_lifetime
        if isinstance(lifetime, Lifetime):
            return lifetime
        msg = f"{method_name}() parameter 'lifetime' must be a Lifetime or 'from_container'."
        raise InvalidRegistrationError(msg)

    def _require_class(self, cls: Any, *, method_name: str) -> None:
        base_service = RegistrationKey.create(cls).service
        if not is_runtime_class(base_service):
            msg = f"{method_name}() requires a class, got {cls!r}."
            raise InvalidRegistrationError(msg)
        if not supports_instance_checks(base_service):
            msg = (
                f"{method_name}() requires a class usable with isinstance(); "
                f"decorate protocol {type_name(base_service)} with @runtime_checkable."
            )
            raise InvalidRegistrationError(msg)

    def _validate_implementation(
        self,
        *,
        service: Any,
        implementation: Any,
        method_name: str,
    ) -> None:
        if not is_runtime_class(implementation):
            msg = f"{method_name}() implementation must be a class, got {implementation!r}."
            raise InvalidRegistrationError(msg)
        if inspect.isabstract(implementation) or is_protocol_class(implementation):
            msg = f"{method_name}() implementation {type_name(implementation)} is abstract."
            raise InvalidRegistrationError(msg)
        if (
            is_runtime_class(service)
            and not is_protocol_class(service)
            and not issubclass(implementation, service)
        ):
            msg = (
                f"{method_name}() implementation {type_name(implementation)} is not a "
                f"subclass of {type_name(service)}."
            )
            raise InvalidRegistrationError(msg)

    @contextmanager
    def _registration_mutation(self) -> Generator[None, None, None]:
        is_outermost = self._registration_mutation_depth == 0
        if is_outermost:
            self._registration_mutation_snapshot = self._registrations.snapshot()

        self._registration_mutation_depth += 1
        try:
            yield
        except Exception:
            if is_outermost:
                self._rollback_registrations()
            raise
        finally:
            self._registration_mutation_depth -= 1
            if is_outermost:
                self._registration_mutation_snapshot = None

    def _rollback_registrations(self) -> None:
        snapshot = cast("Registrations.Snapshot", self._registration_mutation_snapshot)
        self._registrations.restore(snapshot)
        self._cache.forget(
            key for key in self._cache.keys() if key not in snapshot.registrations
        )
        logger.debug(
            "Registration failed; restored %d registrations",
            len(self._registrations),
        )
