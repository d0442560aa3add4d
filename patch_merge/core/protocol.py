"""Property handler protocol.

A handler transforms one source property's value before the engine writes
it onto the target. Handler classes are instantiated with no arguments for
every property they handle, so they must not need constructor arguments;
collaborators are injected through ``Dependency``-marked annotations.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

V = TypeVar("V", contravariant=True)


@runtime_checkable
class PropertyHandler(Protocol[V]):
    """Base property handler protocol."""

    def process(self, value: V) -> Any:
        """Return the value to write on the target."""
        ...


class DefaultPropertyHandler:
    """Handler that returns the value unchanged."""

    def process(self, value: Any) -> Any:
        return value
