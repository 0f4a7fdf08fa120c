from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from inspect import Parameter
from typing import Any, get_type_hints

from modwire._internal.markers import is_constructor_member, is_ref_annotation, strip_ref_annotation
from modwire._internal.registrations import RegistrationKey
from modwire._internal.type_checks import type_name
from modwire.exceptions import DependencyInferenceError

_MISSING_ANNOTATION: Any = object()
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)
PRIMARY_CONSTRUCTOR_NAME = "__init__"


class PassMode(Enum):
    """How a constructor parameter receives its argument."""

    BY_VALUE = auto()
    BY_REFERENCE = auto()


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """Describe one constructor parameter in declaration order."""

    name: str
    key: RegistrationKey | None
    """Service key requested by the annotation; ``None`` when unannotated."""
    annotation: Any
    pass_mode: PassMode
    default: Any
    kind: Any

    @property
    def has_default(self) -> bool:
        return self.default is not Parameter.empty


@dataclass(frozen=True, slots=True)
class ConstructorDescriptor:
    """Describe one public constructor of a class."""

    name: str
    factory: Callable[..., Any]
    parameters: tuple[ParameterDescriptor, ...] = field(default=())

    @property
    def is_parameterless(self) -> bool:
        """Return True when the constructor can be invoked without any argument."""
        return all(parameter.has_default for parameter in self.parameters)


class TypeDescriptorProvider:
    """Enumerate the public constructors of a class.

    The primary constructor (calling the class itself) comes first, followed
    by every ``@constructor`` classmethod in class body order, walking the MRO
    from the class towards its bases. Descriptors are cached per class.
    """

    def __init__(self) -> None:
        self._cache: dict[type[Any], tuple[ConstructorDescriptor, ...]] = {}

    def get_public_constructors(self, cls: type[Any]) -> tuple[ConstructorDescriptor, ...]:
        """Return ordered constructor descriptors for ``cls``.

        Args:
            cls: Concrete class to inspect.

        Raises:
            DependencyInferenceError: If a required parameter has no usable
                type annotation.

        """
        cached = self._cache.get(cls)
        if cached is not None:
            return cached

        constructors = [
            ConstructorDescriptor(
                name=PRIMARY_CONSTRUCTOR_NAME,
                factory=cls,
                parameters=self._describe_parameters(
                    provider=cls,
                    provider_name=cls.__qualname__,
                    annotations_source=cls,
                ),
            ),
        ]
        seen_names: set[str] = set()
        for base in cls.__mro__:
            if base is object:
                continue
            for member_name, member in vars(base).items():
                if member_name in seen_names or not is_constructor_member(member):
                    continue
                seen_names.add(member_name)
                bound = getattr(cls, member_name)
                constructors.append(
                    ConstructorDescriptor(
                        name=member_name,
                        factory=bound,
                        parameters=self._describe_parameters(
                            provider=bound,
                            provider_name=f"{cls.__qualname__}.{member_name}",
                            annotations_source=member.__func__,
                        ),
                    ),
                )

        descriptors = tuple(constructors)
        self._cache[cls] = descriptors
        return descriptors

    def _describe_parameters(
        self,
        *,
        provider: Callable[..., Any],
        provider_name: str,
        annotations_source: Any,
    ) -> tuple[ParameterDescriptor, ...]:
        annotations, annotation_error = self._resolved_type_hints(annotations_source)
        descriptors: list[ParameterDescriptor] = []

        for parameter in self._provider_parameters(provider):
            annotation = self._resolve_parameter_annotation(
                parameter=parameter,
                annotations=annotations,
                annotation_error=annotation_error,
                provider_name=provider_name,
            )
            if annotation is _MISSING_ANNOTATION:
                descriptors.append(
                    ParameterDescriptor(
                        name=parameter.name,
                        key=None,
                        annotation=None,
                        pass_mode=PassMode.BY_VALUE,
                        default=parameter.default,
                        kind=parameter.kind,
                    ),
                )
                continue

            pass_mode = PassMode.BY_VALUE
            if is_ref_annotation(annotation):
                pass_mode = PassMode.BY_REFERENCE
                annotation = strip_ref_annotation(annotation)

            descriptors.append(
                ParameterDescriptor(
                    name=parameter.name,
                    key=RegistrationKey.create(annotation),
                    annotation=annotation,
                    pass_mode=pass_mode,
                    default=parameter.default,
                    kind=parameter.kind,
                ),
            )

        return tuple(descriptors)

    def _provider_parameters(self, provider: Callable[..., Any]) -> tuple[Parameter, ...]:
        try:
            signature = inspect.signature(provider)
        except (TypeError, ValueError):
            # Builtin classes without introspectable signatures take no arguments here.
            return ()
        return tuple(
            parameter
            for parameter in signature.parameters.values()
            if parameter.kind not in _VARIADIC_KINDS
        )

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
        annotation_error: Exception | None,
        provider_name: str,
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
            return raw_annotation

        if parameter.default is not Parameter.empty:
            return _MISSING_ANNOTATION

        error_message = (
            f"Unable to infer dependency for required parameter '{parameter.name}' "
            f"in constructor '{provider_name}'. Add a type annotation or register a factory."
        )
        if annotation_error is None:
            raise DependencyInferenceError(error_message)
        msg = f"{error_message} Original annotation error: {annotation_error}"
        raise DependencyInferenceError(msg) from annotation_error

    def _resolved_type_hints(self, source: Any) -> tuple[dict[str, Any], Exception | None]:
        annotations: dict[str, Any] = {}
        annotation_error: Exception | None = None

        if inspect.isclass(source):
            for callable_member_name in ("__new__", "__init__"):
                callable_member = getattr(source, callable_member_name)
                if not inspect.isfunction(callable_member):
                    continue
                try:
                    member_annotations = get_type_hints(callable_member, include_extras=True)
                except (AttributeError, NameError, TypeError) as error:
                    if annotation_error is None:
                        annotation_error = error
                    continue
                for parameter_name, parameter_annotation in member_annotations.items():
                    annotations.setdefault(parameter_name, parameter_annotation)
            annotations.pop("return", None)
            return annotations, annotation_error

        try:
            annotations = get_type_hints(source, include_extras=True)
        except (AttributeError, NameError, TypeError) as error:
            annotation_error = error
        annotations.pop("return", None)
        return annotations, annotation_error


def describe_constructor(descriptor: ConstructorDescriptor, owner: type[Any]) -> str:
    """Return ``Owner.name(a, b)`` for log and error messages."""
    parameter_names = ", ".join(parameter.name for parameter in descriptor.parameters)
    return f"{type_name(owner)}.{descriptor.name}({parameter_names})"
