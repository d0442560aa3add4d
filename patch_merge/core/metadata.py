"""Declarative per-property metadata.

Markers are attached with ``typing.Annotated``::

    @dataclass
    class StudentDTO:
        email: str | None = None
        course_ids: Annotated[
            list[int] | None,
            UpdateProperty(handler=CourseIdHandler, target_property="enrolled_courses"),
        ] = None
        password: Annotated[str | None, Transient] = None

PropertyDescriptor is the compiled, immutable form the engine works with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Final, get_args, get_origin

from patch_merge.core.protocol import DefaultPropertyHandler

_CONSTANT_PREFIXES = ("ClassVar", "typing.ClassVar", "Final", "typing.Final")


@dataclass(frozen=True)
class UpdateProperty:
    """Per-property update options.

    Args:
        target_property: Name to write on the target instead of the source name.
        handler: PropertyHandler class used to transform the value.
        include_null: Write None onto the target even when nulls are ignored.
    """

    target_property: str | None = None
    handler: type | None = None
    include_null: bool = False


class Transient:
    """Marks a property as non-persistable; skipped unless the config opts in."""


class Dependency:
    """Marks a handler attribute to be filled from the call's dependency bag."""


@dataclass(frozen=True)
class PropertyDescriptor:
    """Resolved metadata for one source property."""

    name: str
    handler: type | None = None
    target_property: str | None = None
    include_null: bool = False
    transient: bool = False
    constant: bool = False

    @property
    def effective_name(self) -> str:
        """Name written on the target."""
        return self.target_property or self.name

    @property
    def has_handler(self) -> bool:
        return self.handler is not None and self.handler is not DefaultPropertyHandler


def has_marker(metadata: tuple[Any, ...], marker: type) -> bool:
    """Check Annotated metadata for a marker class or an instance of it."""
    return any(item is marker or isinstance(item, marker) for item in metadata)


def split_annotated(hint: Any) -> tuple[Any, tuple[Any, ...]]:
    """Return ``(inner_type, metadata)`` for an Annotated hint."""
    if get_origin(hint) is Annotated:
        return get_args(hint)[0], tuple(hint.__metadata__)
    return hint, ()


def is_constant(hint: Any) -> bool:
    """ClassVar and Final annotations carry no per-instance data."""
    if isinstance(hint, str):
        return hint.startswith(_CONSTANT_PREFIXES)
    inner, _ = split_annotated(hint)
    return inner is ClassVar or inner is Final or get_origin(inner) in (ClassVar, Final)


def describe_property(name: str, hint: Any, field_info: Any = None) -> PropertyDescriptor:
    """Build a descriptor from a class annotation.

    ``field_info`` is the Pydantic FieldInfo for model fields; a field
    declared with ``exclude=True`` is treated as transient.
    """
    if is_constant(hint):
        return PropertyDescriptor(name=name, constant=True)

    _, metadata = split_annotated(hint)
    if field_info is not None:
        metadata = metadata + tuple(
            item for item in getattr(field_info, "metadata", ()) if item not in metadata
        )

    options = next((item for item in metadata if isinstance(item, UpdateProperty)), None)
    transient = has_marker(metadata, Transient) or getattr(field_info, "exclude", None) is True

    if options is None:
        return PropertyDescriptor(name=name, transient=transient)
    return PropertyDescriptor(
        name=name,
        handler=options.handler,
        target_property=options.target_property or None,
        include_null=options.include_null,
        transient=transient,
    )
