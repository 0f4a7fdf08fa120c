"""Shared pytest fixtures for modwire tests."""

from collections.abc import Iterator

import pytest

from modwire import Container, Lifetime


@pytest.fixture()
def container() -> Iterator[Container]:
    """Default container with transient registrations, closed after the test."""
    container = Container()
    yield container
    container.close()


@pytest.fixture()
def container_singleton() -> Iterator[Container]:
    """Container with lifetime singleton as default."""
    container = Container(default_lifetime=Lifetime.SINGLETON)
    yield container
    container.close()
