from __future__ import annotations

import inspect

import pytest

import modwire
from modwire import exceptions
from modwire.integrations import pytest_plugin

_EXPECTED_SIGNATURES = {
    "add_instance": "(self, service: 'Any', instance: 'Any', *, name: 'str' = '') -> 'None'",
    "add_module": "(self, module: 'ModuleSource') -> 'None'",
    "resolve": "(self, service: 'Any', name: 'str' = '') -> 'Any'",
    "try_resolve": "(self, service: 'Any', name: 'str' = '') -> 'Any | None'",
    "is_registered": "(self, service: 'Any', name: 'str' = '') -> 'bool'",
    "clear": "(self) -> 'None'",
    "close": "(self) -> 'None'",
}


def test_all_exports_exist() -> None:
    for name in modwire.__all__:
        assert hasattr(modwire, name), name


def test_lifetime_members() -> None:
    assert [member.name for member in modwire.Lifetime] == ["TRANSIENT", "SINGLETON"]


@pytest.mark.parametrize(
    ("error", "base"),
    [
        (exceptions.InvalidRegistrationError, exceptions.ModwireError),
        (exceptions.DuplicateRegistrationError, exceptions.InvalidRegistrationError),
        (exceptions.InvalidModuleError, exceptions.InvalidRegistrationError),
        (exceptions.UnregisteredServiceError, exceptions.ModwireError),
        (exceptions.UnbuildableServiceError, exceptions.UnregisteredServiceError),
        (exceptions.CircularDependencyError, exceptions.ModwireError),
        (exceptions.DependencyInferenceError, exceptions.ModwireError),
        (exceptions.ContainerNotSetError, exceptions.ModwireError),
        (exceptions.ContainerAlreadySetError, exceptions.ModwireError),
    ],
)
def test_exception_hierarchy(error: type[Exception], base: type[Exception]) -> None:
    assert issubclass(error, base)


def test_circular_dependency_is_not_an_unregistered_service_error() -> None:
    assert not issubclass(exceptions.CircularDependencyError, exceptions.UnregisteredServiceError)


@pytest.mark.parametrize(("method_name", "expected"), sorted(_EXPECTED_SIGNATURES.items()))
def test_container_method_signatures(method_name: str, expected: str) -> None:
    method = getattr(modwire.Container, method_name)

    assert str(inspect.signature(method)) == expected


@pytest.mark.parametrize(
    "method_name",
    ["add_factory", "add", "add_class_factory", "add_class_type"],
)
def test_lifetime_defaults_to_container_setting(method_name: str) -> None:
    parameter = inspect.signature(getattr(modwire.Container, method_name)).parameters["lifetime"]

    assert parameter.default == "from_container"
    assert parameter.kind is inspect.Parameter.KEYWORD_ONLY


def test_public_callables_are_documented() -> None:
    for name in modwire.__all__:
        value = getattr(modwire, name)
        if inspect.isclass(value) or inspect.isfunction(value):
            assert inspect.getdoc(value), name


def test_pytest_plugin_exports_fixtures() -> None:
    assert pytest_plugin.__all__ == ["modwire_container", "modwire_context", "modwire_modules"]
