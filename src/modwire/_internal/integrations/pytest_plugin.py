from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

import pytest

from modwire._internal.container import Container
from modwire._internal.container_context import ContainerContext, container_context


@pytest.fixture()
def modwire_modules() -> Sequence[Any]:
    """Fixture hook listing the modules applied to ``modwire_container``.

    Override this fixture in a test module or ``conftest.py`` to compose the
    per-test container from application modules. The default is no modules.

    """
    return ()


@pytest.fixture()
def modwire_container(modwire_modules: Sequence[Any]) -> Iterator[Container]:
    """Create a per-test container with ``modwire_modules`` applied.

    The container is closed after the test, so owned singletons are disposed
    between tests.

    Yields:
        A new ``Container`` instance.

    """
    container = Container()
    if modwire_modules:
        container.add_module(list(modwire_modules))
    try:
        yield container
    finally:
        container.close()


@pytest.fixture()
def modwire_context(modwire_container: Container) -> Iterator[ContainerContext]:
    """Bind ``modwire_container`` as the current container for one test.

    The binding is reset after the test even if the test rebinds it.

    Yields:
        The process-wide ``container_context``.

    """
    if container_context.is_set():
        msg = "container_context is already bound; reset it before using modwire_context."
        raise RuntimeError(msg)
    container_context.set_current(modwire_container)
    try:
        yield container_context
    finally:
        container_context.reset(close=False)
