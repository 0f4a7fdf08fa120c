from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

from modwire._internal.type_checks import is_runtime_class, type_name
from modwire.exceptions import InvalidModuleError

if TYPE_CHECKING:
    from modwire._internal.container import Container


@runtime_checkable
class ContainerModule(Protocol):
    """Register a related group of services on a container.

    Modules are plain objects; any class defining ``register_services`` fits.
    A module may call ``container.add_module`` itself to compose other
    modules.

    Examples:
        .. code-block:: python

            class DataModule:
                def register_services(self, container: Container) -> None:
                    container.add(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)

    """

    def register_services(self, container: Container) -> None:
        """Add this module's registrations to ``container``."""


ModuleSource: TypeAlias = "ContainerModule | type[Any] | Sequence[ContainerModule | type[Any]]"
"""Anything accepted by ``Container.add_module``."""


def collect_modules(source: Any) -> list[ContainerModule]:
    """Validate an ``add_module`` argument and return module instances in order.

    Module classes are instantiated with no arguments. Nothing is applied
    here, so a failure leaves the container untouched.

    Args:
        source: A module, a module class, or a sequence of either.

    Raises:
        InvalidModuleError: If the argument or any element is ``None`` or does
            not define a callable ``register_services``.

    """
    if source is None:
        msg = "add_module() requires a module, got None."
        raise InvalidModuleError(msg)

    if isinstance(source, Sequence) and not isinstance(source, (str, bytes)):
        items = list(source)
        for index, item in enumerate(items):
            if item is None:
                msg = f"add_module() sequence element {index} is None."
                raise InvalidModuleError(msg)
        return [_coerce_module(item) for item in items]

    return [_coerce_module(source)]


def _coerce_module(item: Any) -> ContainerModule:
    module = item
    if is_runtime_class(item):
        try:
            module = item()
        except TypeError as error:
            msg = f"Module class {type_name(item)} must be constructible without arguments."
            raise InvalidModuleError(msg) from error

    if not callable(getattr(module, "register_services", None)):
        msg = f"{type_name(type(module))} is not a container module: missing register_services()."
        raise InvalidModuleError(msg)
    return module
