from modwire._internal.integrations.pytest_plugin import (
    modwire_container,
    modwire_context,
    modwire_modules,
)

__all__ = ["modwire_container", "modwire_context", "modwire_modules"]
