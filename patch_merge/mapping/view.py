"""Transformation views of source objects.

``wrap`` returns an object the engine reads exactly like the source, except
that transformed properties report their transformed value and renamed
properties are published under their new name. The source itself is never
modified.

Two kinds of view exist:

* PassThroughView subclasses are generated for sources implementing
  interfaces (abstract base classes or ``typing.Protocol`` classes). They
  derive from the same interfaces, forward every call to the source, and
  transform lazily on read.
* TransformingDelegate is used for every other source. It reads and
  transforms all readable properties once, when the view is built.
"""

from __future__ import annotations

import abc
import functools
import inspect
import logging
import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from patch_merge.core.exceptions import PatchMergeError, SourceViewError
from patch_merge.core.introspection import PROPERTIES_HOOK, TypeIntrospector
from patch_merge.core.metadata import PropertyDescriptor

LOGGER = logging.getLogger(__name__)

Transformer = Callable[[Any], Any]

_GETTER_PREFIXES = ("get_", "is_")
_NOT_INTERFACES = (object, abc.ABC, typing.Generic, typing.Protocol)


def _apply(transformer: Transformer | None, value: Any) -> Any:
    """Transformers never see None."""
    if transformer is None or value is None:
        return value
    return transformer(value)


def accessor_property(method_name: str, transformers: Mapping[str, Any]) -> str | None:
    """Property a zero-argument accessor reads, if that property is transformed.

    ``email()``, ``get_email()`` and ``is_email()`` all read ``email``.
    """
    if method_name in transformers:
        return method_name
    for prefix in _GETTER_PREFIXES:
        if method_name.startswith(prefix) and method_name[len(prefix):] in transformers:
            return method_name[len(prefix):]
    return None


def _is_interface(klass: type) -> bool:
    if klass in _NOT_INTERFACES:
        return False
    if getattr(klass, "_is_protocol", False):
        return True
    return any(
        getattr(member, "__isabstractmethod__", False) is True
        for member in vars(klass).values()
    )


def interfaces_of(cls: type) -> tuple[type, ...]:
    """Interfaces ``cls`` implements, in MRO order."""
    return tuple(klass for klass in cls.__mro__[1:] if _is_interface(klass))


def _renamed(
    descriptors: tuple[PropertyDescriptor, ...], renames: Mapping[str, str]
) -> tuple[PropertyDescriptor, ...]:
    """Publish renamed properties under their new name.

    A renamed property keeps its handler and null flag, loses any declared
    target override, and shadows a source property already using the name.
    """
    if not renames:
        return descriptors
    taken = {renames[d.name] for d in descriptors if d.name in renames}
    result = []
    for descriptor in descriptors:
        if descriptor.name in renames:
            result.append(
                replace(descriptor, name=renames[descriptor.name], target_property=None)
            )
        elif descriptor.name not in taken:
            result.append(descriptor)
    return tuple(result)


class SourceView:
    """Common surface of both view kinds.

    Equality, hashing and string conversion always go to the wrapped source.
    """

    def __init__(
        self,
        source: Any,
        renames: Mapping[str, str],
        transformers: Mapping[str, Transformer],
        descriptors: tuple[PropertyDescriptor, ...],
    ) -> None:
        self.__wrapped__ = source
        self._view_aliases = {new: old for old, new in renames.items()}
        self._view_transformers = dict(transformers)
        setattr(self, PROPERTIES_HOOK, descriptors)

    def _view_source_name(self, name: str) -> str:
        return self._view_aliases.get(name, name)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SourceView):
            other = other.__wrapped__
        return self.__wrapped__ == other  # type: ignore[no-any-return]

    def __hash__(self) -> int:
        return hash(self.__wrapped__)

    def __str__(self) -> str:
        return str(self.__wrapped__)

    def __repr__(self) -> str:
        return repr(self.__wrapped__)


class PassThroughView(SourceView):
    """Lazy forwarding view; generated subclasses add the source's interfaces."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_view_") or name == "__wrapped__":
            raise AttributeError(name)
        return self._view_read(name)

    def _view_read(self, name: str) -> Any:
        source_name = self._view_source_name(name)
        value = getattr(self.__wrapped__, source_name)
        if inspect.ismethod(value):
            return functools.partial(self._view_invoke, source_name)
        return _apply(self._view_transformers.get(source_name), value)

    def _view_invoke(self, method_name: str, *args: Any, **kwargs: Any) -> Any:
        result = getattr(self.__wrapped__, method_name)(*args, **kwargs)
        if args or kwargs:
            return result
        property_name = accessor_property(method_name, self._view_transformers)
        if property_name is None:
            return result
        return _apply(self._view_transformers[property_name], result)


def _forward_property(name: str) -> property:
    def read(self: PassThroughView) -> Any:
        return self._view_read(name)

    read.__name__ = name
    return property(read)


def _forward_method(name: str) -> Callable[..., Any]:
    def forward(self: PassThroughView, *args: Any, **kwargs: Any) -> Any:
        return self._view_invoke(name, *args, **kwargs)

    forward.__name__ = name
    return forward


def _interface_members(source_type: type, interfaces: tuple[type, ...]) -> dict[str, Any]:
    """Forwarders for the public and abstract members of every interface.

    Abstract class-level members (class and static methods) are taken from
    the source type as they are.
    """
    members: dict[str, Any] = {}
    for interface in interfaces:
        for klass in interface.__mro__:
            if klass in _NOT_INTERFACES:
                continue
            for name, member in vars(klass).items():
                if name in members:
                    continue
                abstract = getattr(member, "__isabstractmethod__", False) is True
                if name.startswith("_") and not abstract:
                    continue
                if isinstance(member, property):
                    members[name] = _forward_property(name)
                elif inspect.isfunction(member):
                    members[name] = _forward_method(name)
                elif abstract:
                    members[name] = inspect.getattr_static(source_type, name)
    return members


def _pass_through_class(source_type: type, interfaces: tuple[type, ...]) -> type:
    members = _interface_members(source_type, interfaces)
    view_class = types.new_class(
        f"{source_type.__name__}View",
        (PassThroughView, *interfaces),
        exec_body=lambda namespace: namespace.update(members),
    )
    LOGGER.debug(
        "Generated %s implementing %s",
        view_class.__name__,
        [interface.__qualname__ for interface in interfaces],
    )
    return view_class


def _readable_properties(cls: type, declared: tuple[str, ...]) -> list[str]:
    names = list(declared)
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if isinstance(member, property) and not name.startswith("_") and name not in names:
                names.append(name)
    return names


def _is_accessor(function: Any) -> bool:
    """Public function callable with no arguments that is not declared ``-> None``."""
    if not inspect.isfunction(function) or function.__name__.startswith("_"):
        return False
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return False
    if len(signature.parameters) != 1:
        return False
    return signature.return_annotation not in (None, "None")


class TransformingDelegate(SourceView):
    """Eager view: every readable property is read and transformed up front."""

    def __init__(
        self,
        source: Any,
        renames: Mapping[str, str],
        transformers: Mapping[str, Transformer],
        descriptors: tuple[PropertyDescriptor, ...],
        source_properties: tuple[str, ...],
    ) -> None:
        super().__init__(source, renames, transformers, descriptors)
        self._view_overlay: dict[str, Any] = {}
        self._view_accessors: dict[str, Any] = {}
        self._view_precompute(source_properties)

    def _view_precompute(self, source_properties: tuple[str, ...]) -> None:
        source = self.__wrapped__
        transformers = self._view_transformers

        for name in _readable_properties(type(source), source_properties):
            try:
                value = getattr(source, name)
            except Exception as e:
                LOGGER.debug("Leaving %s out of the overlay: %s", name, e)
                continue
            self._view_overlay[name] = _apply(transformers.get(name), value)

        for klass in type(source).__mro__:
            for name, member in vars(klass).items():
                if name in self._view_accessors or not _is_accessor(member):
                    continue
                property_name = accessor_property(name, transformers)
                if property_name is not None:
                    result = getattr(source, name)()
                    self._view_accessors[name] = _apply(transformers[property_name], result)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_view_") or name == "__wrapped__":
            raise AttributeError(name)
        source_name = self._view_source_name(name)
        if source_name in self._view_overlay:
            return self._view_overlay[source_name]
        if source_name in self._view_accessors:
            result = self._view_accessors[source_name]
            return lambda: result
        return getattr(self.__wrapped__, source_name)


def wrap(
    source: Any,
    renames: Mapping[str, str] | None = None,
    transformers: Mapping[str, Transformer] | None = None,
    *,
    introspector: TypeIntrospector | None = None,
) -> SourceView:
    """Build a transformation view of ``source``.

    Args:
        source: Object to view. Never modified.
        renames: Source property name -> name the view publishes it under.
        transformers: Source property name -> function applied to its
            non-None value.
        introspector: Cache used to describe the source and to keep
            generated view classes; a private one is used when omitted.

    Raises:
        SourceViewError: If the view cannot be built, including when a
            transformer fails while an eager view is precomputed.
    """
    if introspector is None:
        introspector = TypeIntrospector()
    renames = dict(renames or {})
    transformers = dict(transformers or {})
    source_type = type(source)

    try:
        properties = introspector.properties_of(source)
        descriptors = _renamed(properties, renames)
        interfaces = interfaces_of(source_type)
        if interfaces:
            view_class = introspector.memoize(
                ("view", source_type),
                lambda: _pass_through_class(source_type, interfaces),
            )
            return view_class(source, renames, transformers, descriptors)  # type: ignore[no-any-return]
        return TransformingDelegate(
            source,
            renames,
            transformers,
            descriptors,
            tuple(descriptor.name for descriptor in properties),
        )
    except PatchMergeError:
        raise
    except Exception as e:
        raise SourceViewError(source_type.__qualname__, str(e) or type(e).__name__) from e
