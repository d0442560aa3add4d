"""Property handler pipeline.

Creates a handler, injects the dependencies it declares, and runs it on one
raw property value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, get_origin

from patch_merge.core.introspection import TypeIntrospector

LOGGER = logging.getLogger(__name__)

_UNSET = object()


class HandlerPipeline:
    """Instantiates handlers and feeds them values.

    A fresh handler instance is created for every property it handles, so
    injected dependencies never leak from one update call into another.

    Args:
        introspector: Cache used to look up the handler's dependency slots.
    """

    def __init__(self, introspector: TypeIntrospector) -> None:
        self._introspector = introspector

    def process(
        self,
        handler_type: type,
        value: Any,
        dependencies: Mapping[Any, Any],
    ) -> Any:
        """Run ``handler_type`` on ``value`` and return its result."""
        handler = handler_type()
        self.inject(handler, dependencies)
        return handler.process(value)

    def inject(self, handler: Any, dependencies: Mapping[Any, Any]) -> None:
        """Write every available dependency into the handler's marked attributes.

        Attributes whose dependency is missing from the bag are left as they are.
        """
        for name, kind in self._introspector.dependency_fields(type(handler)):
            dependency = self._lookup(dependencies, kind)
            if dependency is _UNSET:
                LOGGER.debug(
                    "No dependency for %s.%s (%r)", type(handler).__qualname__, name, kind
                )
                continue
            accessor = self._introspector.field_for(handler, name)
            if accessor is None:
                raise AttributeError(
                    f"{type(handler).__qualname__} has no writable attribute '{name}'"
                )
            accessor.write(handler, dependency)

    @staticmethod
    def _lookup(dependencies: Mapping[Any, Any], kind: Any) -> Any:
        if kind in dependencies:
            return dependencies[kind]
        origin = get_origin(kind)
        if origin is not None and origin in dependencies:
            return dependencies[origin]
        return _UNSET
