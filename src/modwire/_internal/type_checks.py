from __future__ import annotations

import types
from typing import Any, TypeGuard

PRIMITIVE_TYPES: tuple[type[Any], ...] = (bool, int, float, complex, str, bytes)
"""Builtin scalar types whose no-argument call yields a default literal."""


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_primitive_type(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is one of the builtin scalar types.

    Args:
        candidate: Annotation being checked.

    """
    return is_runtime_class(candidate) and candidate in PRIMITIVE_TYPES


def is_protocol_class(candidate: object) -> bool:
    """Return true when candidate is a ``typing.Protocol`` class."""
    return is_runtime_class(candidate) and bool(getattr(candidate, "_is_protocol", False))


def supports_instance_checks(candidate: object) -> bool:
    """Return true when ``isinstance`` accepts candidate as its class argument.

    Plain protocols reject instance checks unless decorated with
    ``@runtime_checkable``.
    """
    if not is_runtime_class(candidate):
        return False
    if not is_protocol_class(candidate):
        return True
    return bool(getattr(candidate, "_is_runtime_protocol", False))


def type_name(candidate: object) -> str:
    """Return a short human-readable name for a dependency key."""
    return getattr(candidate, "__qualname__", None) or repr(candidate)


__all__ = [
    "PRIMITIVE_TYPES",
    "is_primitive_type",
    "is_protocol_class",
    "is_runtime_class",
    "supports_instance_checks",
    "type_name",
]
