"""Access strategy enumeration."""

from __future__ import annotations

from enum import Enum


class AccessStrategy(Enum):
    """How the engine writes properties onto the target."""

    AUTO = "auto"  # setters first, direct field writes for the rest
    METHOD = "method"
    FIELD = "field"
