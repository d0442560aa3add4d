"""Type introspection cache.

Resolves, once per key, everything the engine needs to know about a type:
the properties a source type declares, the setter or field a target type
exposes for a property name, and the dependency slots of a handler class.

Lookups walk the MRO from the most-derived class down, never including
``object``. Misses are cached as ``None`` just like hits, so a type is
introspected at most once per key for the lifetime of the cache.
"""

from __future__ import annotations

import inspect
import logging
import threading
import types
import typing
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

from patch_merge.core.metadata import (
    Dependency,
    PropertyDescriptor,
    describe_property,
    has_marker,
    is_constant,
    split_annotated,
)

LOGGER = logging.getLogger(__name__)

PROPERTIES_HOOK = "__update_properties__"

_NONE_TYPE = type(None)
_NOT_A_SETTER = object()
_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)

R = TypeVar("R")


@dataclass(frozen=True)
class SetterAccessor:
    """A property setter or ``set_<name>`` method on a target type."""

    owner: type
    name: str
    function: Callable[[Any, Any], Any]
    parameter_type: Any
    via_property: bool

    def write(self, target: Any, value: Any) -> None:
        self.function(target, value)


@dataclass(frozen=True)
class FieldAccessor:
    """A field written directly, bypassing properties and ``__setattr__``."""

    owner: type | None
    name: str
    slot: Any = None

    def write(self, target: Any, value: Any) -> None:
        if self.slot is not None:
            self.slot.__set__(target, value)
        else:
            vars(target)[self.name] = value


class OnceCache:
    """Memo table where each key is computed exactly once.

    Reads of populated keys take no lock. A miss takes a re-entrant lock,
    re-checks, and computes; concurrent callers for the same key block until
    the first one stores its result, then all of them return that value.
    Entries are never replaced or evicted.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, Any] = {}
        self._lock = threading.RLock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], R]) -> R:
        try:
            return self._entries[key]  # type: ignore[no-any-return]
        except KeyError:
            pass
        with self._lock:
            if key in self._entries:
                return self._entries[key]  # type: ignore[no-any-return]
            value = compute()
            self._entries[key] = value
            return value

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _hierarchy(cls: type) -> tuple[type, ...]:
    """MRO of ``cls`` without ``object``."""
    return tuple(klass for klass in cls.__mro__ if klass is not object)


def _lookup(cls: type, attribute: str) -> tuple[type | None, Any]:
    """Find the class attribute Python itself would resolve, and its owner."""
    for klass in _hierarchy(cls):
        if attribute in vars(klass):
            return klass, vars(klass)[attribute]
    return None, None


def _own_annotations(klass: type, evaluate: bool = True) -> dict[str, Any]:
    if not evaluate:
        return dict(inspect.get_annotations(klass))
    try:
        return dict(inspect.get_annotations(klass, eval_str=True))
    except Exception as e:  # unresolvable forward reference
        LOGGER.debug("Using raw annotations of %s: %s", klass.__qualname__, e)
        return dict(inspect.get_annotations(klass))


def _own_slots(klass: type) -> tuple[str, ...]:
    slots = vars(klass).get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return tuple(name for name in slots if name not in ("__dict__", "__weakref__"))


def _class_hints(cls: type) -> dict[str, Any]:
    """Annotations across the MRO, base classes first, derived classes winning."""
    hints: dict[str, Any] = {}
    for klass in reversed(_hierarchy(cls)):
        hints.update(_own_annotations(klass))
    return hints


def _slot_names(cls: type) -> Iterator[str]:
    for klass in reversed(_hierarchy(cls)):
        yield from _own_slots(klass)


def _instance_dict(obj: Any) -> dict[str, Any] | None:
    try:
        instance_dict = object.__getattribute__(obj, "__dict__")
    except AttributeError:
        return None
    return instance_dict if isinstance(instance_dict, dict) else None


def _properties_hook(obj: Any) -> Any:
    instance_dict = _instance_dict(obj)
    if instance_dict is not None and PROPERTIES_HOOK in instance_dict:
        return instance_dict[PROPERTIES_HOOK]
    return inspect.getattr_static(type(obj), PROPERTIES_HOOK, None)


def _setter_parameter(function: Callable[..., Any]) -> Any:
    """Annotation of a setter's value parameter, or _NOT_A_SETTER."""
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return _NOT_A_SETTER
    parameters = list(signature.parameters.values())[1:]
    if len(parameters) != 1 or parameters[0].kind not in _POSITIONAL:
        return _NOT_A_SETTER
    parameter = parameters[0]
    try:
        hints = typing.get_type_hints(function)
    except Exception:  # unresolvable forward reference
        hints = {}
    return hints.get(parameter.name, parameter.annotation)


def accepts(annotation: Any, value_type: type) -> bool:
    """Whether a parameter annotated ``annotation`` can take a ``value_type``."""
    if annotation in (inspect.Parameter.empty, Any, object):
        return True
    if isinstance(annotation, (str, TypeVar)):
        return True
    origin = get_origin(annotation)
    if origin is typing.Annotated:
        return accepts(get_args(annotation)[0], value_type)
    if origin in (Union, types.UnionType):
        return any(accepts(arg, value_type) for arg in get_args(annotation))
    if value_type is _NONE_TYPE:
        return annotation is None or annotation is _NONE_TYPE
    if origin is not None:
        annotation = origin
    if not isinstance(annotation, type):
        return False
    try:
        return issubclass(value_type, annotation)
    except TypeError:  # non runtime-checkable protocol
        return False


def _dependency_key(hint: Any) -> Any:
    """``Optional[Service]`` is looked up as ``Service``."""
    if get_origin(hint) in (Union, types.UnionType):
        arms = [arg for arg in get_args(hint) if arg is not _NONE_TYPE]
        if len(arms) == 1:
            return arms[0]
    return hint


class TypeIntrospector:
    """Per-engine cache of resolved properties and accessors."""

    def __init__(self) -> None:
        self._cache = OnceCache()

    def describe(self, cls: type) -> tuple[PropertyDescriptor, ...]:
        """Declared properties of a source type."""
        return self._cache.get_or_compute(("describe", cls), lambda: self._describe(cls))

    def properties_of(self, obj: Any) -> tuple[PropertyDescriptor, ...]:
        """Properties of a source instance.

        An ``__update_properties__`` sequence on the instance or its type
        replaces introspection entirely. Otherwise the declared properties
        of the type are followed by any undeclared public instance
        attributes.
        """
        hook = _properties_hook(obj)
        if hook is not None:
            return tuple(hook)

        declared = self.describe(type(obj))
        known = {descriptor.name for descriptor in declared}
        instance_dict = _instance_dict(obj) or {}
        extras = tuple(
            PropertyDescriptor(name=name)
            for name in instance_dict
            if not name.startswith("_") and name not in known
        )
        return declared + extras

    def resolve_setter(
        self, cls: type, name: str, value_type: type
    ) -> SetterAccessor | None:
        """Setter on ``cls`` for ``name`` accepting ``value_type``.

        Exact annotation matches win over merely compatible ones.
        """
        return self._cache.get_or_compute(
            ("setter", cls, name, value_type),
            lambda: self._find_setter(cls, name, value_type),
        )

    def resolve_field(self, cls: type, name: str) -> FieldAccessor | None:
        """Field named ``name`` declared anywhere in the MRO of ``cls``."""
        return self._cache.get_or_compute(
            ("field", cls, name), lambda: self._find_field(cls, name)
        )

    def field_for(self, obj: Any, name: str) -> FieldAccessor | None:
        """Declared field, else an attribute already present on the instance."""
        accessor = self.resolve_field(type(obj), name)
        if accessor is not None:
            return accessor
        instance_dict = _instance_dict(obj)
        if instance_dict is not None and name in instance_dict:
            return FieldAccessor(owner=None, name=name)
        return None

    def dependency_fields(self, handler_type: type) -> tuple[tuple[str, Any], ...]:
        """``(attribute, dependency key)`` pairs marked with Dependency."""
        return self._cache.get_or_compute(
            ("dependencies", handler_type),
            lambda: self._find_dependency_fields(handler_type),
        )

    def memoize(self, key: Hashable, compute: Callable[[], R]) -> R:
        """Cache an arbitrary per-type computation alongside the lookups."""
        return self._cache.get_or_compute(key, compute)

    def __len__(self) -> int:
        """Number of cached lookups."""
        return len(self._cache)

    def __bool__(self) -> bool:
        return True

    def _describe(self, cls: type) -> tuple[PropertyDescriptor, ...]:
        if issubclass(cls, BaseModel):
            declared = [
                describe_property(name, info.annotation, info)
                for name, info in cls.model_fields.items()
            ]
        else:
            declared = [
                describe_property(name, hint) for name, hint in _class_hints(cls).items()
            ]

        known = {descriptor.name for descriptor in declared}
        declared.extend(
            PropertyDescriptor(name=name) for name in _slot_names(cls) if name not in known
        )
        descriptors = tuple(d for d in declared if not d.name.startswith("_"))
        LOGGER.debug(
            "Described %s: %s", cls.__qualname__, [d.name for d in descriptors]
        )
        return descriptors

    def _find_setter(
        self, cls: type, name: str, value_type: type
    ) -> SetterAccessor | None:
        candidates: list[SetterAccessor] = []

        owner, attribute = _lookup(cls, name)
        if isinstance(attribute, property) and attribute.fset is not None:
            parameter_type = _setter_parameter(attribute.fset)
            if parameter_type is not _NOT_A_SETTER:
                candidates.append(
                    SetterAccessor(owner, name, attribute.fset, parameter_type, True)  # type: ignore[arg-type]
                )

        owner, method = _lookup(cls, f"set_{name}")
        if inspect.isfunction(method):
            parameter_type = _setter_parameter(method)
            if parameter_type is not _NOT_A_SETTER:
                candidates.append(
                    SetterAccessor(owner, name, method, parameter_type, False)  # type: ignore[arg-type]
                )

        for candidate in candidates:
            if candidate.parameter_type is value_type:
                return candidate
        for candidate in candidates:
            if accepts(candidate.parameter_type, value_type):
                return candidate
        return None

    def _find_field(self, cls: type, name: str) -> FieldAccessor | None:
        for klass in _hierarchy(cls):
            annotations = _own_annotations(klass, evaluate=False)
            declared = name in _own_slots(klass) or (
                name in annotations and not is_constant(annotations[name])
            )
            if not declared:
                continue
            slot = vars(klass).get(name)
            if not inspect.ismemberdescriptor(slot):
                slot = None
            return FieldAccessor(owner=klass, name=name, slot=slot)
        return None

    def _find_dependency_fields(self, handler_type: type) -> tuple[tuple[str, Any], ...]:
        fields = []
        for name, hint in _class_hints(handler_type).items():
            inner, metadata = split_annotated(hint)
            if has_marker(metadata, Dependency):
                fields.append((name, _dependency_key(inner)))
        return tuple(fields)
