class ModwireError(Exception):
    """Represent a base class for all modwire-specific failures.

    Catch this type when you want to handle any container error path without
    matching each concrete exception class individually.
    """


class InvalidRegistrationError(ModwireError):
    """Signal invalid registration arguments.

    Raised by ``Container.add_instance``, ``Container.add_factory``,
    ``Container.add``, and the ``add_class*`` family when the instance is
    ``None``, the factory is not callable, or the implementation is not a
    concrete subclass of the service.
    """


class DuplicateRegistrationError(InvalidRegistrationError):
    """Signal a second registration for an existing ``(service, name)`` key.

    Registrations never override each other. The error is raised regardless of
    the registration kind or lifetime of either the existing or the new entry.

    Typical fixes include registering the second binding under a different
    name or removing one of the conflicting module registrations.
    """


class InvalidModuleError(InvalidRegistrationError):
    """Signal an invalid ``Container.add_module`` argument.

    Raised for a ``None`` module, a sequence containing ``None``, or an object
    without a callable ``register_services``. Validation happens before any
    module is applied, so the container is left unchanged.
    """


class UnregisteredServiceError(ModwireError):
    """Signal that a service key has no registration.

    Raised by ``resolve`` and ``resolve_class``. The ``try_resolve`` variants
    return ``None`` instead.
    """


class UnbuildableServiceError(UnregisteredServiceError):
    """Signal that a registered service could not be built.

    Raised when no constructor of the implementation can be invoked with the
    current registrations, when a factory returns ``None``, or when the built
    value is not an instance of the class requested by ``resolve_class``.
    """


class CircularDependencyError(ModwireError):
    """Signal a dependency cycle detected during resolution.

    The container never breaks cycles lazily. The message lists the resolution
    chain that re-entered a key still under construction.
    """


class DependencyInferenceError(ModwireError):
    """Signal that a constructor parameter cannot be mapped to a service key.

    Common triggers are required parameters without type annotations or
    annotations that cannot be evaluated.
    """


class ContainerNotSetError(ModwireError):
    """Signal use of ``container_context`` before a container is bound.

    Typical fix is calling ``container_context.set_current(container)`` once
    in the composition root before any resolution call.
    """


class ContainerAlreadySetError(ModwireError):
    """Signal a second ``container_context.set_current`` without a ``reset``."""
