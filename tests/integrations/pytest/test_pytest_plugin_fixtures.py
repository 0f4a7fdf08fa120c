from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, ClassVar

import pytest

from modwire import Container, ContainerContext, Lifetime, container_context

pytest_plugins = ["modwire.integrations.pytest_plugin"]


class _Service:
    def __init__(self, value: str = "service") -> None:
        self.value = value


class _Resource:
    created: ClassVar[list[_Resource]] = []

    def __init__(self) -> None:
        self.closed = False
        type(self).created.append(self)

    def close(self) -> None:
        self.closed = True


class _ServiceModule:
    def register_services(self, container: Container) -> None:
        container.add_class_type(_Service, lifetime=Lifetime.SINGLETON)


class _ResourceModule:
    def register_services(self, container: Container) -> None:
        container.add_class_type(_Resource, lifetime=Lifetime.SINGLETON)


@pytest.fixture()
def resources_closed_after_test() -> Iterator[None]:
    _Resource.created.clear()
    yield
    assert _Resource.created
    assert all(resource.closed for resource in _Resource.created)


def test_default_container_has_no_registrations(modwire_container: Container) -> None:
    assert isinstance(modwire_container, Container)
    assert len(modwire_container) == 0


def test_context_is_unbound_outside_modwire_context_fixture() -> None:
    assert not container_context.is_set()


class TestWithModules:
    @pytest.fixture()
    def modwire_modules(self) -> Sequence[Any]:
        return [_ServiceModule, _ResourceModule()]

    def test_modules_are_applied(self, modwire_container: Container) -> None:
        assert modwire_container.resolve(_Service).value == "service"
        assert modwire_container.is_registered(_Resource)

    def test_container_is_closed_after_test(
        self,
        resources_closed_after_test: None,
        modwire_container: Container,
    ) -> None:
        resource = modwire_container.resolve(_Resource)

        assert not resource.closed

    def test_context_binds_fixture_container(
        self,
        modwire_context: ContainerContext,
        modwire_container: Container,
    ) -> None:
        assert modwire_context is container_context
        assert modwire_context.get_current() is modwire_container
        assert modwire_context.resolve(_Service) is modwire_container.resolve(_Service)
