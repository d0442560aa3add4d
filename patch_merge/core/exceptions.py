"""patch-merge exception hierarchy.

All exceptions are patch-merge specific. Failures raised by handlers,
transformers or target setters are chained as ``__cause__`` of a
PropertyUpdateError and never escape an update unwrapped.
"""

from __future__ import annotations


class PatchMergeError(Exception):
    """Base exception for all patch-merge errors."""


# --- Update ---


class PropertyUpdateError(PatchMergeError):
    """Raised when a property cannot be read, transformed or written.

    The update that raised it is aborted. Properties written earlier in the
    same call are not rolled back.
    """

    def __init__(self, property_name: str | None, detail: str) -> None:
        self.property_name = property_name
        self.detail = detail
        if property_name is None:
            super().__init__(detail)
        else:
            super().__init__(f"Error updating property '{property_name}': {detail}")


class SourceViewError(PropertyUpdateError):
    """Raised when a transformation view of a source object cannot be built."""

    def __init__(self, source_type: str, detail: str) -> None:
        self.source_type = source_type
        super().__init__(None, f"Failed to create source view for {source_type}: {detail}")


# --- Provider ---


class ProviderError(PatchMergeError):
    """Raised when an engine provider entry point cannot be loaded."""

    def __init__(self, provider_name: str, detail: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"Failed to load engine provider '{provider_name}': {detail}")
