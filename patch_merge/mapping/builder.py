"""Fluent update builder.

Collects per-call dependencies, renames and transformers, then runs one
update through the engine.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from patch_merge.mapping.view import wrap

if TYPE_CHECKING:
    from patch_merge.core.engine import Engine

T = TypeVar("T")


class UpdateBuilder(Generic[T]):
    """Fluent builder for a single target.

    Usage:
        engine.for_target(student) \\
            .with_dependency(CourseService, courses) \\
            .with_mapping("email", "contact_email") \\
            .with_transformer("email", str.lower) \\
            .update(dto)
    """

    def __init__(self, engine: Engine, target: T) -> None:
        self._engine = engine
        self._target = target
        self._dependencies: dict[Any, Any] = {}
        self._renames: dict[str, str] = {}
        self._transformers: dict[str, Callable[[Any], Any]] = {}

    def with_dependency(self, kind: Any, dependency: Any) -> UpdateBuilder[T]:
        """Make ``dependency`` available to handlers that declare ``kind``."""
        self._dependencies[kind] = dependency
        return self

    def with_mapping(self, source_property: str, target_property: str) -> UpdateBuilder[T]:
        """Write ``source_property`` onto ``target_property``."""
        self._renames[source_property] = target_property
        return self

    def with_transformer(
        self, property_name: str, transformer: Callable[[Any], Any]
    ) -> UpdateBuilder[T]:
        """Transform the source's ``property_name`` before it is merged.

        The transformer only receives non-None values.
        """
        self._transformers[property_name] = transformer
        return self

    def update(self, source: Any) -> T:
        """Merge ``source`` into the target and return the target."""
        if source is None or self._target is None:
            return self._target

        if self._renames or self._transformers:
            source = wrap(
                source,
                self._renames,
                self._transformers,
                introspector=self._engine.introspector,
            )
        return self._engine.update(self._target, source, self._dependencies)
