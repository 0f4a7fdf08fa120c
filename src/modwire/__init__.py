from modwire._internal.container import Container
from modwire._internal.container_context import ContainerContext, container_context
from modwire._internal.descriptors import (
    ConstructorDescriptor,
    ParameterDescriptor,
    PassMode,
    TypeDescriptorProvider,
)
from modwire._internal.markers import Component, Ref, constructor
from modwire._internal.modules import ContainerModule
from modwire._internal.registrations import Lifetime
from modwire.exceptions import (
    CircularDependencyError,
    ContainerAlreadySetError,
    ContainerNotSetError,
    DependencyInferenceError,
    DuplicateRegistrationError,
    InvalidModuleError,
    InvalidRegistrationError,
    ModwireError,
    UnbuildableServiceError,
    UnregisteredServiceError,
)

__all__ = [
    "CircularDependencyError",
    "Component",
    "ConstructorDescriptor",
    "Container",
    "ContainerAlreadySetError",
    "ContainerContext",
    "ContainerModule",
    "ContainerNotSetError",
    "DependencyInferenceError",
    "DuplicateRegistrationError",
    "InvalidModuleError",
    "InvalidRegistrationError",
    "Lifetime",
    "ModwireError",
    "ParameterDescriptor",
    "PassMode",
    "Ref",
    "TypeDescriptorProvider",
    "UnbuildableServiceError",
    "UnregisteredServiceError",
    "constructor",
    "container_context",
]
