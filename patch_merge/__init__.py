"""patch-merge - reflective partial updates of Python objects."""

from __future__ import annotations

from patch_merge.core.config import MergeConfig, MergeConfigBuilder
from patch_merge.core.engine import Engine
from patch_merge.core.enums import AccessStrategy
from patch_merge.core.exceptions import (
    PatchMergeError,
    PropertyUpdateError,
    ProviderError,
    SourceViewError,
)
from patch_merge.core.introspection import TypeIntrospector
from patch_merge.core.metadata import (
    Dependency,
    PropertyDescriptor,
    Transient,
    UpdateProperty,
)
from patch_merge.core.protocol import DefaultPropertyHandler, PropertyHandler
from patch_merge.core.provider import EngineProvider, create
from patch_merge.mapping.builder import UpdateBuilder
from patch_merge.mapping.view import wrap

__all__ = [
    # Factory
    "create",
    "EngineProvider",
    # Engine
    "Engine",
    "UpdateBuilder",
    "TypeIntrospector",
    # Config
    "MergeConfig",
    "MergeConfigBuilder",
    "AccessStrategy",
    # Metadata
    "UpdateProperty",
    "Transient",
    "Dependency",
    "PropertyDescriptor",
    # Handlers
    "PropertyHandler",
    "DefaultPropertyHandler",
    # Views
    "wrap",
    # Exceptions
    "PatchMergeError",
    "PropertyUpdateError",
    "SourceViewError",
    "ProviderError",
]
