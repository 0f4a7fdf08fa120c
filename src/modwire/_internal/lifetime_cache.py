from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import ExitStack
from typing import Any

from modwire._internal.registrations import Registration, RegistrationKey

logger = logging.getLogger(__name__)

EMPTY: Any = object()
"""Sentinel returned by ``LifetimeCache.get`` for an unfilled slot."""


class LifetimeCache:
    """Hold realized singleton values and the disposal callbacks of owned ones.

    A slot is filled once and stays filled until ``release``. Only class-kind
    singletons with ``owns_instance`` get a disposal callback: context managers
    are exited, other values with a ``close()`` method are closed. Callbacks
    run in reverse fill order.
    """

    def __init__(self) -> None:
        self._values: dict[RegistrationKey, Any] = {}
        self._cleanups: dict[RegistrationKey, tuple[Any, Callable[[ExitStack], None]]] = {}

    def get(self, key: RegistrationKey) -> Any:
        """Return the cached value for ``key`` or ``EMPTY``."""
        return self._values.get(key, EMPTY)

    def put(self, registration: Registration, value: Any) -> None:
        """Fill the slot of ``registration`` and track ownership.

        Args:
            registration: Singleton registration owning the slot.
            value: Realized value to cache.

        """
        self._values[registration.key] = value
        if registration.is_disposable:
            self._track_disposal(registration, value)

    def forget(self, keys: Iterable[RegistrationKey]) -> None:
        """Drop slots without disposing their values.

        Used when registrations are rolled back.
        """
        for key in keys:
            self._values.pop(key, None)
            self._cleanups.pop(key, None)

    def release(self) -> None:
        """Dispose owned values and empty every slot.

        Errors raised by disposal callbacks propagate after all callbacks ran.
        """
        cleanups = list(self._cleanups.values())
        self._values.clear()
        self._cleanups.clear()
        registered_ids: set[int] = set()
        with ExitStack() as exit_stack:
            for value, register_cleanup in cleanups:
                # One object cached under several keys is disposed once.
                if id(value) in registered_ids:
                    continue
                registered_ids.add(id(value))
                register_cleanup(exit_stack)

    def keys(self) -> list[RegistrationKey]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def _track_disposal(self, registration: Registration, value: Any) -> None:
        value_type = type(value)
        if hasattr(value_type, "__enter__") and hasattr(value_type, "__exit__"):
            self._cleanups[registration.key] = (value, lambda exit_stack: exit_stack.push(value))
        elif callable(getattr(value, "close", None)):
            self._cleanups[registration.key] = (
                value,
                lambda exit_stack: exit_stack.callback(value.close),
            )
        else:
            return
        logger.debug("Tracking disposal of %s", registration.key.describe())
