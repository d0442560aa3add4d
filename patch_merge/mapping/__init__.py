"""Mapping layer - transformation views and the fluent update builder."""

from __future__ import annotations

from patch_merge.mapping.builder import UpdateBuilder
from patch_merge.mapping.view import (
    PassThroughView,
    SourceView,
    TransformingDelegate,
    interfaces_of,
    wrap,
)

__all__ = [
    "UpdateBuilder",
    "SourceView",
    "PassThroughView",
    "TransformingDelegate",
    "interfaces_of",
    "wrap",
]
