"""Update engine.

The Engine walks the properties of a source object and merges their values
onto a target object through setters, direct field writes, or both,
according to the configured AccessStrategy.
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from patch_merge.core.config import MergeConfig
from patch_merge.core.enums import AccessStrategy
from patch_merge.core.exceptions import PropertyUpdateError
from patch_merge.core.handlers import HandlerPipeline
from patch_merge.core.introspection import TypeIntrospector
from patch_merge.core.metadata import PropertyDescriptor
from patch_merge.mapping.builder import UpdateBuilder

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_SKIP = object()
_MISSING = object()


def _is_unassigned(source: Any, name: str) -> bool:
    """Declared on the type but never set on the instance."""
    attribute = inspect.getattr_static(source, name, _MISSING)
    return attribute is _MISSING or inspect.ismemberdescriptor(attribute)


class Engine:
    """Synchronous partial-update engine.

    An engine is safe to share between threads. Its only shared state is the
    introspection cache; everything else lives for one ``update`` call.

    Args:
        config: Engine configuration. Defaults to ``MergeConfig.defaults()``.
    """

    def __init__(self, config: MergeConfig | None = None) -> None:
        self._config = config or MergeConfig.defaults()
        self._introspector = TypeIntrospector()
        self._handlers = HandlerPipeline(self._introspector)

    @classmethod
    def from_config(cls, config: MergeConfig) -> Engine:
        """Create an Engine from a MergeConfig."""
        return cls(config)

    @property
    def config(self) -> MergeConfig:
        return self._config

    @property
    def introspector(self) -> TypeIntrospector:
        return self._introspector

    def for_target(self, target: T) -> UpdateBuilder[T]:
        """Start a fluent update of ``target``."""
        return UpdateBuilder(self, target)

    def update(
        self,
        target: T,
        source: Any,
        dependencies: Mapping[Any, Any] | None = None,
    ) -> T:
        """Merge the non-None properties of ``source`` into ``target``.

        Returns ``target`` itself, unchanged when either object is None.

        Raises:
            PropertyUpdateError: If a property cannot be read, handled or
                written. Properties written before the failure stay written.
        """
        if target is None or source is None:
            return target

        dependencies = dependencies or {}
        properties = [
            descriptor
            for descriptor in self._introspector.properties_of(source)
            if self._is_eligible(descriptor)
        ]
        resolved: dict[str, Any] = {}

        strategy = self._config.access_strategy
        if strategy is AccessStrategy.METHOD:
            self._apply_setters(target, source, properties, dependencies, resolved)
        elif strategy is AccessStrategy.FIELD:
            self._apply_fields(target, source, properties, dependencies, resolved, set())
        else:
            written = self._apply_setters(target, source, properties, dependencies, resolved)
            self._apply_fields(target, source, properties, dependencies, resolved, written)

        return target

    def _is_eligible(self, descriptor: PropertyDescriptor) -> bool:
        if self._config.is_ignored(descriptor.name):
            return False
        if descriptor.constant:
            return False
        return not descriptor.transient or self._config.include_transient

    def _apply_setters(
        self,
        target: Any,
        source: Any,
        properties: Iterable[PropertyDescriptor],
        dependencies: Mapping[Any, Any],
        resolved: dict[str, Any],
    ) -> set[str]:
        """Write every property that has a matching setter.

        Returns the effective names that were written.
        """
        written: set[str] = set()
        target_type = type(target)

        for descriptor in properties:
            name = descriptor.effective_name
            try:
                value = self._resolve(source, descriptor, dependencies, resolved)
                if value is _SKIP:
                    continue
                setter = self._introspector.resolve_setter(target_type, name, type(value))
                if setter is None:
                    LOGGER.debug("No setter for %s.%s", target_type.__qualname__, name)
                    continue
                setter.write(target, value)
            except PropertyUpdateError:
                raise
            except Exception as e:
                raise PropertyUpdateError(descriptor.name, str(e) or type(e).__name__) from e

            LOGGER.debug("Set %s.%s via setter", target_type.__qualname__, name)
            written.add(name)

        return written

    def _apply_fields(
        self,
        target: Any,
        source: Any,
        properties: Iterable[PropertyDescriptor],
        dependencies: Mapping[Any, Any],
        resolved: dict[str, Any],
        skip: set[str],
    ) -> None:
        """Write every property not in ``skip`` directly into a target field."""
        target_type = type(target)

        for descriptor in properties:
            name = descriptor.effective_name
            if name in skip:
                continue
            try:
                value = self._resolve(source, descriptor, dependencies, resolved)
                if value is _SKIP:
                    continue
                accessor = self._introspector.field_for(target, name)
                if accessor is None:
                    LOGGER.debug("No field for %s.%s", target_type.__qualname__, name)
                    continue
                accessor.write(target, value)
            except PropertyUpdateError:
                raise
            except Exception as e:
                raise PropertyUpdateError(descriptor.name, str(e) or type(e).__name__) from e

            LOGGER.debug("Wrote field %s.%s", target_type.__qualname__, name)

    def _resolve(
        self,
        source: Any,
        descriptor: PropertyDescriptor,
        dependencies: Mapping[Any, Any],
        resolved: dict[str, Any],
    ) -> Any:
        """Value to write for ``descriptor``, or _SKIP.

        Computed once per call; both AUTO passes share the result.
        """
        if descriptor.name in resolved:
            return resolved[descriptor.name]

        try:
            value = getattr(source, descriptor.name)
        except AttributeError:
            if not _is_unassigned(source, descriptor.name):
                raise
            value = None

        if value is None and self._config.ignore_null and not descriptor.include_null:
            LOGGER.debug("Skipping None property %s", descriptor.name)
            outcome: Any = _SKIP
        else:
            if descriptor.has_handler:
                value = self._handlers.process(descriptor.handler, value, dependencies)  # type: ignore[arg-type]
            if self._config.deep_copy:
                value = copy.deepcopy(value)
            outcome = value

        resolved[descriptor.name] = outcome
        return outcome
