from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, TypeVar, overload

from modwire._internal.container import Container
from modwire._internal.modules import ModuleSource
from modwire.exceptions import ContainerAlreadySetError, ContainerNotSetError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ContainerContext:
    """Hold the process-wide current container of a composition root.

    The current container is bound exactly once at startup with
    ``set_current`` and unbound once at shutdown with ``reset``. Everything
    else in an application should receive its dependencies through
    constructors; this accessor exists for entry points that cannot.

    The binding is process-global for this instance (not task-local or
    thread-local), which matters for tests that run in parallel.
    """

    def __init__(self) -> None:
        self._container: Container | None = None

    def set_current(self, container: Container) -> None:
        """Bind the current container.

        Args:
            container: Container to expose.

        Raises:
            ContainerAlreadySetError: If a container is already bound.

        """
        if self._container is not None:
            msg = (
                "A container is already bound to container_context. "
                "Call container_context.reset() before binding another one."
            )
            raise ContainerAlreadySetError(msg)
        self._container = container
        logger.debug("Bound current container")

    def get_current(self) -> Container:
        """Return the bound container.

        Raises:
            ContainerNotSetError: If no container has been bound yet.

        """
        if self._container is None:
            msg = (
                "Container is not set for container_context. "
                "Call container_context.set_current(container) before using container_context."
            )
            raise ContainerNotSetError(msg)
        return self._container

    def is_set(self) -> bool:
        """Return True when a container is bound."""
        return self._container is not None

    def reset(self, *, close: bool = True) -> None:
        """Unbind the current container.

        Args:
            close: Also close the unbound container, disposing its owned
                singletons.

        """
        container = self._container
        self._container = None
        if container is not None and close:
            container.close()
        logger.debug("Unbound current container")

    @contextmanager
    def bootstrap(
        self,
        *modules: ModuleSource,
        container: Container | None = None,
    ) -> Generator[Container, None, None]:
        """Own the whole lifetime of the current container.

        Creates (or takes) a container, applies ``modules``, binds it, and on
        exit unbinds and closes it.

        Args:
            *modules: Module arguments forwarded to ``Container.add_module``.
            container: Existing container to use instead of a new one.

        Examples:
            .. code-block:: python

                with container_context.bootstrap(AppModule) as container:
                    container.resolve(Application).run()

        """
        root = container if container is not None else Container()
        try:
            for module in modules:
                root.add_module(module)
            self.set_current(root)
        except Exception:
            root.close()
            raise
        try:
            yield root
        finally:
            self.reset(close=True)

    @overload
    def resolve(self, service: type[T], name: str = "") -> T: ...

    @overload
    def resolve(self, service: Any, name: str = "") -> Any: ...

    def resolve(self, service: Any, name: str = "") -> Any:
        """Resolve from the current container."""
        return self.get_current().resolve(service, name)

    def try_resolve(self, service: Any, name: str = "") -> Any | None:
        """Resolve from the current container, returning ``None`` when missing."""
        return self.get_current().try_resolve(service, name)

    def resolve_class(self, cls: type[T], name: str = "") -> T:
        """Resolve a class-kind service from the current container."""
        return self.get_current().resolve_class(cls, name)

    def is_registered(self, service: Any, name: str = "") -> bool:
        """Check a registration on the current container."""
        return self.get_current().is_registered(service, name)


container_context = ContainerContext()
