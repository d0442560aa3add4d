"""Unit tests for source transformation views."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Annotated, Any, Protocol, runtime_checkable

import pytest

from patch_merge.core.engine import Engine
from patch_merge.core.exceptions import PropertyUpdateError, SourceViewError
from patch_merge.core.introspection import TypeIntrospector
from patch_merge.core.metadata import PropertyDescriptor, UpdateProperty
from patch_merge.mapping.view import (
    PassThroughView,
    TransformingDelegate,
    accessor_property,
    interfaces_of,
    wrap,
)


# --- Plain sources ---


@dataclass
class Contact:
    name: str | None = None
    email: str | None = None

    @property
    def display(self) -> str:
        return f"{self.name} <{self.email}>"

    def get_email(self) -> str | None:
        return self.email


@dataclass
class Note:
    text: str | None = None


@dataclass(frozen=True)
class Tag:
    label: str


@dataclass
class TwoEmails:
    email: str | None = None
    backup_email: str | None = None


@dataclass
class AliasedPatch:
    mail: Annotated[str | None, UpdateProperty(target_property="email", include_null=True)] = None


class Counter:
    def __init__(self) -> None:
        self.reads = 0

    @property
    def value(self) -> int:
        self.reads += 1
        return self.reads


# --- Interface sources ---


class Named(abc.ABC):
    @abc.abstractmethod
    def display_name(self) -> str: ...


@dataclass
class ContactCard(Named):
    name: str
    email: str | None = None

    def display_name(self) -> str:
        return f"{self.name} <{self.email}>"


@runtime_checkable
class HasEmail(Protocol):
    def get_email(self) -> str | None: ...


class Subscriber(HasEmail):
    def __init__(self, email: str | None) -> None:
        self.email = email

    def get_email(self) -> str | None:
        return self.email


class PluginMeta(type):
    pass


class Plugin(metaclass=PluginMeta):
    def run(self) -> None: ...

    run.__isabstractmethod__ = True  # type: ignore[attr-defined]


class CombinedMeta(PluginMeta, abc.ABCMeta):
    pass


class Tool(Plugin, Named, metaclass=CombinedMeta):
    def run(self) -> None:
        pass

    def display_name(self) -> str:
        return "tool"


# --- Targets ---


class Person:
    name: str | None
    email: str | None
    contact_email: str | None

    def __init__(self) -> None:
        self.name = None
        self.email = None
        self.contact_email = None


def _never(value: Any) -> Any:
    raise AssertionError(f"transformer called with {value!r}")


def _reject(value: Any) -> Any:
    raise ValueError("bad value")


def _names(view: Any) -> list[str]:
    return [descriptor.name for descriptor in view.__update_properties__]


class TestAccessorProperty:
    @pytest.mark.parametrize(
        ("method_name", "expected"),
        [
            ("email", "email"),
            ("get_email", "email"),
            ("is_active", "active"),
            ("get_name", None),
            ("display", None),
        ],
    )
    def test_accessor_property(self, method_name: str, expected: str | None) -> None:
        transformers = {"email": str.upper, "active": bool}
        assert accessor_property(method_name, transformers) == expected


class TestInterfacesOf:
    def test_abstract_base(self) -> None:
        assert interfaces_of(ContactCard) == (Named,)

    def test_protocol(self) -> None:
        assert interfaces_of(Subscriber) == (HasEmail,)

    def test_plain_class(self) -> None:
        assert interfaces_of(Contact) == ()


class TestTransformingDelegate:
    def test_transforms_property(self) -> None:
        contact = Contact(name="Ann", email="ann@x.com")
        view = wrap(contact, transformers={"email": str.upper})

        assert isinstance(view, TransformingDelegate)
        assert view.email == "ANN@X.COM"
        assert view.name == "Ann"
        assert contact.email == "ann@x.com"

    def test_untransformed_computed_property(self) -> None:
        view = wrap(Contact(name="Ann", email="ann@x.com"), transformers={"email": str.upper})
        assert view.display == "Ann <ann@x.com>"

    def test_transforms_accessor_method(self) -> None:
        view = wrap(Contact(name="Ann", email="ann@x.com"), transformers={"email": str.upper})
        assert view.get_email() == "ANN@X.COM"

    def test_publishes_source_properties(self) -> None:
        view = wrap(Contact(name="Ann"), transformers={"email": str.upper})
        assert _names(view) == ["name", "email"]

    def test_transformer_never_sees_none(self) -> None:
        view = wrap(Contact(name="Ann"), transformers={"email": _never})
        assert view.email is None
        assert view.get_email() is None

    def test_transformer_runs_once(self) -> None:
        calls: list[str] = []

        def record(value: str) -> str:
            calls.append(value)
            return value.upper()

        view = wrap(Note("hi"), transformers={"text": record})
        assert [view.text, view.text, view.text] == ["HI", "HI", "HI"]
        assert calls == ["hi"]

    def test_properties_read_once(self) -> None:
        counter = Counter()
        view = wrap(counter, transformers={"reads": str})
        assert view.value == 1
        assert view.value == 1
        assert counter.reads == 1

    def test_transformer_failure(self) -> None:
        with pytest.raises(SourceViewError) as exc_info:
            wrap(Note("hi"), transformers={"text": _reject})

        error = exc_info.value
        assert isinstance(error, PropertyUpdateError)
        assert isinstance(error.__cause__, ValueError)
        assert "Note" in str(error)

    def test_identity_delegated(self) -> None:
        tag = Tag("python")
        view = wrap(tag, transformers={"label": str.upper})

        assert view == tag
        assert hash(view) == hash(tag)
        assert str(view) == str(tag)
        assert repr(view) == repr(tag)
        assert view.__wrapped__ is tag


class TestRenames:
    def test_rename_publishes_new_name(self) -> None:
        view = wrap(Contact(name="Ann", email="ann@x.com"), renames={"email": "contact_email"})
        assert _names(view) == ["name", "contact_email"]
        assert view.contact_email == "ann@x.com"

    def test_rename_and_transform_compose(self) -> None:
        view = wrap(
            Contact(name="Ann", email="ann@x.com"),
            renames={"email": "contact_email"},
            transformers={"email": str.upper},
        )
        assert view.contact_email == "ANN@X.COM"

    def test_rename_drops_declared_target(self) -> None:
        view = wrap(AliasedPatch(mail="a@x.com"), renames={"mail": "contact"})
        assert view.__update_properties__ == (
            PropertyDescriptor(name="contact", include_null=True),
        )

    def test_rename_shadows_existing_property(self) -> None:
        view = wrap(TwoEmails("a@x.com", "b@x.com"), renames={"backup_email": "email"})
        assert _names(view) == ["email"]
        assert view.email == "b@x.com"

    def test_engine_reads_renamed_property(self, engine: Engine) -> None:
        view = wrap(Contact(email="ann@x.com"), renames={"email": "contact_email"})
        target = engine.update(Person(), view)
        assert target.contact_email == "ann@x.com"
        assert target.email is None


class TestPassThroughView:
    def test_generated_for_abstract_base(self) -> None:
        view = wrap(ContactCard("Ann", "ann@x.com"), transformers={"email": str.upper})

        assert isinstance(view, PassThroughView)
        assert isinstance(view, Named)
        assert view.email == "ANN@X.COM"
        assert view.name == "Ann"

    def test_forwards_interface_methods(self) -> None:
        view = wrap(ContactCard("Ann", "ann@x.com"), transformers={"email": str.upper})
        assert view.display_name() == "Ann <ann@x.com>"

    def test_transforms_interface_accessor(self) -> None:
        view = wrap(ContactCard("Ann", "ann@x.com"), transformers={"display_name": str.upper})
        assert view.display_name() == "ANN <ANN@X.COM>"

    def test_generated_for_protocol(self) -> None:
        view = wrap(Subscriber("ann@x.com"), transformers={"email": str.upper})

        assert isinstance(view, HasEmail)
        assert view.get_email() == "ANN@X.COM"
        assert view.email == "ANN@X.COM"

    def test_lazy(self) -> None:
        calls: list[str] = []

        def record(value: str) -> str:
            calls.append(value)
            return value

        view = wrap(ContactCard("Ann", "ann@x.com"), transformers={"email": record})
        assert calls == []
        view.email
        view.email
        assert calls == ["ann@x.com", "ann@x.com"]

    def test_sees_later_source_changes(self) -> None:
        card = ContactCard("Ann", "ann@x.com")
        view = wrap(card, transformers={"email": str.upper})
        card.email = "new@x.com"
        assert view.email == "NEW@X.COM"

    def test_identity_delegated(self) -> None:
        card = ContactCard("Ann", "ann@x.com")
        view = wrap(card, transformers={"email": str.upper})
        assert view == card
        assert str(view) == str(card)

    def test_view_class_cached(self, introspector: TypeIntrospector) -> None:
        first = wrap(ContactCard("Ann"), transformers={"email": str}, introspector=introspector)
        second = wrap(ContactCard("Bob"), transformers={"email": str}, introspector=introspector)
        assert type(first) is type(second)
        assert type(first).__name__ == "ContactCardView"

    def test_supplied_introspector_used_while_empty(self) -> None:
        introspector = TypeIntrospector()
        assert bool(introspector) is True

        wrap(Note("x"), transformers={"text": str.upper}, introspector=introspector)
        assert len(introspector) > 0

    def test_engine_reads_through_view(self, engine: Engine) -> None:
        view = wrap(ContactCard("Ann", "ann@x.com"), transformers={"email": str.upper})
        target = engine.update(Person(), view)
        assert (target.name, target.email) == ("Ann", "ANN@X.COM")

    def test_metaclass_conflict(self) -> None:
        with pytest.raises(SourceViewError) as exc_info:
            wrap(Tool(), transformers={"name": str})
        assert isinstance(exc_info.value.__cause__, TypeError)
