from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from inspect import Parameter
from typing import Any

from modwire._internal.descriptors import (
    ConstructorDescriptor,
    ParameterDescriptor,
    PassMode,
    TypeDescriptorProvider,
    describe_constructor,
)
from modwire._internal.registrations import RegistrationKey
from modwire._internal.type_checks import is_primitive_type

logger = logging.getLogger(__name__)


class ParameterSource(Enum):
    """Where the builder takes a parameter value from."""

    REGISTERED = auto()
    """Resolved recursively through the container."""
    DEFAULT = auto()
    """Left to the signature default."""
    PRIMITIVE = auto()
    """Builtin scalar default literal, e.g. ``str()``. Only used by fallback constructors."""
    UNRESOLVABLE = auto()


@dataclass(frozen=True, slots=True)
class ConstructorChoice:
    """A selected constructor and the source of each of its arguments."""

    constructor: ConstructorDescriptor
    sources: tuple[ParameterSource, ...]
    is_fallback: bool = False


def parameter_source(
    parameter: ParameterDescriptor,
    is_registered: Callable[[RegistrationKey], bool],
) -> ParameterSource:
    """Classify a parameter against the current registrations.

    By-reference parameters are never resolvable, whatever their default.
    """
    if parameter.pass_mode is PassMode.BY_REFERENCE:
        return ParameterSource.UNRESOLVABLE
    if parameter.key is not None and is_registered(parameter.key):
        return ParameterSource.REGISTERED
    if parameter.has_default:
        return ParameterSource.DEFAULT
    if is_primitive_type(parameter.annotation):
        return ParameterSource.PRIMITIVE
    return ParameterSource.UNRESOLVABLE


def choose_constructor(
    candidates: Sequence[ConstructorDescriptor],
    sources: Sequence[tuple[ParameterSource, ...]],
) -> ConstructorChoice | None:
    """Pick the best constructor from candidates and their parameter sources.

    Among fully resolvable candidates the one with the most parameters wins;
    ties keep the earliest declaration. A parameter that would only receive a
    primitive default literal does not count as resolvable here. Without any
    fully resolvable candidate the first constructor callable with zero
    arguments is used, then the first one whose remaining parameters are all
    primitives. Returns ``None`` when none of these exists.

    Args:
        candidates: Constructors in declaration order.
        sources: Per-candidate parameter sources, aligned with ``candidates``.

    """
    best: ConstructorChoice | None = None
    for candidate, candidate_sources in zip(candidates, sources, strict=True):
        if (
            ParameterSource.UNRESOLVABLE in candidate_sources
            or ParameterSource.PRIMITIVE in candidate_sources
        ):
            continue
        if best is None or len(candidate.parameters) > len(best.constructor.parameters):
            best = ConstructorChoice(constructor=candidate, sources=candidate_sources)
    if best is not None:
        return best

    for candidate in candidates:
        if candidate.is_parameterless:
            return ConstructorChoice(
                constructor=candidate,
                sources=tuple(ParameterSource.DEFAULT for _ in candidate.parameters),
                is_fallback=True,
            )

    for candidate, candidate_sources in zip(candidates, sources, strict=True):
        if ParameterSource.UNRESOLVABLE not in candidate_sources:
            return ConstructorChoice(
                constructor=candidate,
                sources=candidate_sources,
                is_fallback=True,
            )
    return None


class ConstructorSelector:
    """Select the constructor used to build a type-mapped implementation."""

    def __init__(self, descriptor_provider: TypeDescriptorProvider | None = None) -> None:
        self._descriptor_provider = descriptor_provider or TypeDescriptorProvider()

    def select(
        self,
        cls: type[Any],
        is_registered: Callable[[RegistrationKey], bool],
    ) -> ConstructorChoice | None:
        """Return the best constructor of ``cls`` or ``None`` when nothing is buildable.

        Args:
            cls: Concrete implementation class.
            is_registered: Registry membership predicate.

        """
        candidates = self._descriptor_provider.get_public_constructors(cls)
        sources = [
            tuple(parameter_source(parameter, is_registered) for parameter in candidate.parameters)
            for candidate in candidates
        ]
        choice = choose_constructor(candidates, sources)
        if choice is None:
            logger.debug("No constructor of %s is resolvable", cls.__qualname__)
        else:
            logger.debug(
                "Selected %s%s",
                describe_constructor(choice.constructor, cls),
                " (fallback)" if choice.is_fallback else "",
            )
        return choice


class InstanceBuilder:
    """Invoke a selected constructor with recursively resolved arguments.

    The builder performs no caching; lifetime handling stays in the resolver.
    """

    def build(
        self,
        choice: ConstructorChoice,
        resolve: Callable[[RegistrationKey], Any],
    ) -> Any:
        """Build a new instance from ``choice``.

        Args:
            choice: Constructor and parameter sources from the selector.
            resolve: Callback resolving a registered dependency key.

        """
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for parameter, source in zip(choice.constructor.parameters, choice.sources, strict=True):
            is_positional_only = parameter.kind is Parameter.POSITIONAL_ONLY
            if source is ParameterSource.REGISTERED:
                value = resolve(parameter.key)  # type: ignore[arg-type]
            elif source is ParameterSource.PRIMITIVE:
                value = parameter.annotation()
            elif is_positional_only:
                value = parameter.default
            else:
                continue

            if is_positional_only:
                args.append(value)
            else:
                kwargs[parameter.name] = value

        return choice.constructor.factory(*args, **kwargs)
