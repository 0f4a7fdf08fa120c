from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Annotated

import pytest

from modwire import Component, Container, Lifetime, constructor
from modwire.exceptions import (
    CircularDependencyError,
    DependencyInferenceError,
    UnbuildableServiceError,
    UnregisteredServiceError,
)


class _Dependency(ABC):
    @abstractmethod
    def value(self) -> int:
        """Return the dependency value."""


class _Dependency99(_Dependency):
    def value(self) -> int:
        return 99


class _Service(ABC):
    @abstractmethod
    def dependency_value(self) -> int:
        """Return the value observed from the injected dependency."""


class _ServiceWithoutDependency(_Service):
    def dependency_value(self) -> int:
        return -1


class _ServiceWithDependency(_Service):
    def __init__(self, dependency: _Dependency) -> None:
        self.dependency = dependency

    def dependency_value(self) -> int:
        return self.dependency.value()


class _MultiConstructorService(_Service):
    def __init__(self) -> None:
        self.dependency: _Dependency | None = None

    @constructor
    def with_dependency(cls, dependency: _Dependency) -> _MultiConstructorService:
        service = cls()
        service.dependency = dependency
        return service

    def dependency_value(self) -> int:
        return -1 if self.dependency is None else self.dependency.value()


class _PrimitiveOnly:
    def __init__(self, label: str) -> None:
        self.label = label


class _NeedsDependency:
    def __init__(self, dependency: _Dependency) -> None:
        self.dependency = dependency


class _Reports:
    def __init__(self, database: Annotated[_Dependency, Component("replica")]) -> None:
        self.database = database


class _Holder:
    def __init__(self, dependency: _Dependency, service: _Service) -> None:
        self.dependency = dependency
        self.service = service


class _CycleA:
    def __init__(self, other: _CycleB) -> None:
        self.other = other


class _CycleB:
    def __init__(self, other: _CycleA) -> None:
        self.other = other


class _Unannotated:
    def __init__(self, value) -> None:  # noqa: ANN001
        self.value = value


def test_transient_type_map_builds_distinct_instances(container: Container) -> None:
    container.add(_Service, _ServiceWithoutDependency)

    first = container.resolve(_Service)
    second = container.resolve(_Service)

    assert first is not second
    assert first.dependency_value() == -1
    assert second.dependency_value() == -1


def test_singleton_type_map_returns_same_instance(container: Container) -> None:
    container.add(_Service, _ServiceWithoutDependency, lifetime=Lifetime.SINGLETON)

    assert container.resolve(_Service) is container.resolve(_Service)


def test_default_lifetime_comes_from_container(container_singleton: Container) -> None:
    container_singleton.add(_Service, _ServiceWithoutDependency)

    assert container_singleton.resolve(_Service) is container_singleton.resolve(_Service)


def test_instance_registration_returns_stored_value(container: Container) -> None:
    dependency = _Dependency99()
    container.add_instance(_Dependency, dependency)

    assert container.resolve(_Dependency) is dependency


def test_type_map_injects_registered_dependency(container: Container) -> None:
    container.add_instance(_Dependency, _Dependency99())
    container.add(_Service, _ServiceWithDependency)

    assert container.resolve(_Service).dependency_value() == 99


def test_injectable_constructor_wins_over_parameterless_one(container: Container) -> None:
    container.add_instance(_Dependency, _Dependency99())
    container.add(_Service, _MultiConstructorService)

    assert container.resolve(_Service).dependency_value() == 99


def test_parameterless_constructor_used_when_dependency_missing(container: Container) -> None:
    container.add(_Service, _MultiConstructorService)

    assert container.resolve(_Service).dependency_value() == -1


def test_unregistered_primitive_parameter_still_builds(container: Container) -> None:
    container.add_class_type(_PrimitiveOnly)

    assert container.resolve(_PrimitiveOnly).label == ""


def test_transient_factory_runs_on_every_resolution(container: Container) -> None:
    calls: list[int] = []

    def factory() -> _Dependency:
        calls.append(1)
        return _Dependency99()

    container.add_factory(_Dependency, factory)

    assert container.resolve(_Dependency) is not container.resolve(_Dependency)
    assert len(calls) == 2


def test_singleton_factory_runs_once(container: Container) -> None:
    calls: list[int] = []

    def factory() -> _Dependency:
        calls.append(1)
        return _Dependency99()

    container.add_factory(_Dependency, factory, lifetime=Lifetime.SINGLETON)

    assert container.resolve(_Dependency) is container.resolve(_Dependency)
    assert len(calls) == 1


def test_singleton_dependency_is_shared_by_transient_consumers(container: Container) -> None:
    container.add(_Dependency, _Dependency99, lifetime=Lifetime.SINGLETON)
    container.add(_Service, _ServiceWithDependency)

    first = container.resolve(_Service)
    second = container.resolve(_Service)

    assert first is not second
    assert isinstance(first, _ServiceWithDependency)
    assert isinstance(second, _ServiceWithDependency)
    assert first.dependency is second.dependency


def test_deep_graph_resolves_recursively(container: Container) -> None:
    container.add(_Dependency, _Dependency99)
    container.add(_Service, _ServiceWithDependency)
    container.add_class_type(_Holder)

    holder = container.resolve(_Holder)

    assert holder.service.dependency_value() == 99
    assert holder.dependency is not holder.service.dependency  # type: ignore[attr-defined]


def test_named_registrations_resolve_case_insensitively(container: Container) -> None:
    container.add(_Dependency, _Dependency99, name="Primary")

    assert isinstance(container.resolve(_Dependency, "primary"), _Dependency99)
    assert container.is_registered(_Dependency, "PRIMARY")
    assert not container.is_registered(_Dependency)


def test_names_a_and_b_leave_default_registration_absent(container: Container) -> None:
    container.add(_Service, _ServiceWithoutDependency, name="A")
    container.add(_Service, _ServiceWithoutDependency, name="B")

    assert container.is_registered(_Service, "A")
    assert container.is_registered(_Service, "B")
    assert not container.is_registered(_Service)
    assert not container.is_registered(_Service, "C")
    assert container.try_resolve(_Service) is None


def test_component_annotated_parameter_uses_named_registration(container: Container) -> None:
    replica = _Dependency99()
    container.add_instance(_Dependency, replica, name="replica")
    container.add_class_type(_Reports)

    assert container.resolve(_Reports).database is replica
    assert container.resolve(Annotated[_Dependency, Component("Replica")]) is replica


def test_unregistered_service_raises(container: Container) -> None:
    with pytest.raises(
        UnregisteredServiceError,
        match=re.escape('Service not registered: _Service (name="<default>")'),
    ):
        container.resolve(_Service)


def test_try_resolve_returns_none_for_unregistered_service(container: Container) -> None:
    assert container.try_resolve(_Service) is None
    assert container.try_resolve(_Service, "named") is None


def test_unbuildable_type_map_raises_unbuildable_error(container: Container) -> None:
    container.add_class_type(_NeedsDependency)

    with pytest.raises(UnbuildableServiceError, match="no constructor of _NeedsDependency"):
        container.resolve(_NeedsDependency)


def test_try_resolve_returns_none_for_unbuildable_service(container: Container) -> None:
    container.add_class_type(_NeedsDependency)

    assert container.try_resolve(_NeedsDependency) is None


def test_factory_returning_none_is_a_build_failure(container: Container) -> None:
    container.add_factory(_Dependency, lambda: None)

    with pytest.raises(UnbuildableServiceError, match="returned None"):
        container.resolve(_Dependency)
    assert container.try_resolve(_Dependency) is None


def test_failed_singleton_is_not_cached(container: Container) -> None:
    attempts: list[int] = []

    def flaky_factory() -> _Dependency:
        attempts.append(1)
        if len(attempts) == 1:
            msg = "first attempt fails"
            raise RuntimeError(msg)
        return _Dependency99()

    container.add_factory(_Dependency, flaky_factory, lifetime=Lifetime.SINGLETON)

    with pytest.raises(RuntimeError, match="first attempt fails"):
        container.try_resolve(_Dependency)
    first = container.resolve(_Dependency)

    assert container.resolve(_Dependency) is first
    assert len(attempts) == 2


def test_circular_dependency_fails_fast(container: Container) -> None:
    container.add_class_type(_CycleA)
    container.add_class_type(_CycleB)

    with pytest.raises(CircularDependencyError, match=r"_CycleA .* -> _CycleB .* -> _CycleA"):
        container.resolve(_CycleA)


def test_try_resolve_propagates_circular_dependency(container: Container) -> None:
    container.add_class_type(_CycleA)
    container.add_class_type(_CycleB)

    with pytest.raises(CircularDependencyError):
        container.try_resolve(_CycleB)


def test_resolution_recovers_after_circular_dependency(container: Container) -> None:
    container.add_class_type(_CycleA)
    container.add_class_type(_CycleB)
    container.add(_Service, _ServiceWithoutDependency)

    with pytest.raises(CircularDependencyError):
        container.resolve(_CycleA)

    assert container.resolve(_Service).dependency_value() == -1


def test_unannotated_required_parameter_fails_at_resolution(container: Container) -> None:
    container.add_class_type(_Unannotated)

    with pytest.raises(DependencyInferenceError, match="parameter 'value'"):
        container.resolve(_Unannotated)


def test_resolve_class_checks_resolved_type(container: Container) -> None:
    container.add_class_factory(_PrimitiveOnly, lambda: _PrimitiveOnly("built"))

    assert container.resolve_class(_PrimitiveOnly).label == "built"


def test_resolve_class_rejects_mismatched_value(container: Container) -> None:
    container.add_class_factory(_PrimitiveOnly, lambda: object())

    with pytest.raises(UnbuildableServiceError, match="not an instance of _PrimitiveOnly"):
        container.resolve_class(_PrimitiveOnly)
    assert container.try_resolve_class(_PrimitiveOnly) is None


def test_try_resolve_class_returns_none_when_missing(container: Container) -> None:
    assert container.try_resolve_class(_PrimitiveOnly) is None


class _Widget:
    def __init__(self) -> None:
        self.count = -1

    @constructor
    def with_count(cls, count: int) -> _Widget:
        widget = cls()
        widget.count = count
        return widget


class _NamedLikeClassArgument:
    def __init__(self, cls: _Dependency) -> None:
        self.dependency = cls


def test_parameterless_constructor_wins_over_primitive_only_constructor(
    container: Container,
) -> None:
    container.add_class_type(_Widget)

    assert container.resolve_class(_Widget).count == -1


def test_registered_primitive_selects_primitive_constructor(container: Container) -> None:
    container.add_instance(int, 7)
    container.add_class_type(_Widget)

    assert container.resolve_class(_Widget).count == 7


def test_dependency_named_cls_is_injected(container: Container) -> None:
    dependency = _Dependency99()
    container.add_instance(_Dependency, dependency)
    container.add_class_type(_NamedLikeClassArgument)

    assert container.resolve_class(_NamedLikeClassArgument).dependency is dependency
