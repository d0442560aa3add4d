"""Engine configuration.

MergeConfig is a frozen Pydantic model shared read-only by every update an
engine performs. MergeConfigBuilder offers the fluent construction style.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from patch_merge.core.enums import AccessStrategy


class MergeConfig(BaseModel):
    """Configuration for update engines."""

    model_config = ConfigDict(frozen=True)

    access_strategy: AccessStrategy = AccessStrategy.AUTO
    ignore_null: bool = True
    include_transient: bool = False
    deep_copy: bool = False
    ignored_properties: frozenset[str] = frozenset()

    @classmethod
    def defaults(cls) -> MergeConfig:
        """Default configuration: AUTO strategy, None values ignored."""
        return cls()

    @classmethod
    def builder(cls) -> MergeConfigBuilder:
        return MergeConfigBuilder()

    def is_ignored(self, property_name: str) -> bool:
        return property_name in self.ignored_properties


class MergeConfigBuilder:
    """Fluent builder for MergeConfig."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._ignored: set[str] = set()

    def with_access_strategy(self, strategy: AccessStrategy | str) -> MergeConfigBuilder:
        """Set the access strategy (enum member or its value, e.g. ``"field"``)."""
        self._values["access_strategy"] = strategy
        return self

    def with_ignore_null(self, ignore_null: bool) -> MergeConfigBuilder:
        """Set whether None source values are skipped."""
        self._values["ignore_null"] = ignore_null
        return self

    def with_include_transient(self, include_transient: bool) -> MergeConfigBuilder:
        """Set whether properties marked Transient are merged."""
        self._values["include_transient"] = include_transient
        return self

    def with_deep_copy(self, deep_copy: bool) -> MergeConfigBuilder:
        """Set whether values are deep-copied before being written."""
        self._values["deep_copy"] = deep_copy
        return self

    def ignore_property(self, property_name: str) -> MergeConfigBuilder:
        """Add a source property name that is never merged."""
        self._ignored.add(property_name)
        return self

    def build(self) -> MergeConfig:
        """Validate and freeze the configuration."""
        return MergeConfig(**self._values, ignored_properties=frozenset(self._ignored))
