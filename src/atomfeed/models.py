"""Typed entities produced by :func:`atomfeed.parse`."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

ZERO_TIMESTAMP = datetime.datetime(1, 1, 1, tzinfo=datetime.timezone.utc)


class TextType(str, Enum):
    TEXT = "text"
    HTML = "html"
    XHTML = "xhtml"


class PersonRole(str, Enum):
    AUTHOR = "author"
    CONTRIBUTOR = "contributor"


@dataclass(frozen=True)
class Text:
    """A text construct: a value tagged with how it should be rendered."""

    value: str
    type: TextType = TextType.TEXT


@dataclass(frozen=True)
class Content:
    value: Optional[str] = None
    src: Optional[str] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class Person:
    """Shared shape of authors and contributors.

    ``role`` is ``None`` until the person is placed in an ``authors`` or
    ``contributors`` collection.
    """

    name: str
    email: Optional[str] = None
    uri: Optional[str] = None
    role: Optional[PersonRole] = None


@dataclass(frozen=True)
class Link:
    href: str
    rel: Optional[str] = None
    type: Optional[str] = None
    hreflang: Optional[str] = None
    title: Optional[str] = None
    length: Optional[int] = None


@dataclass(frozen=True)
class Category:
    term: str
    scheme: Optional[str] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class Generator:
    value: str
    uri: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class Source:
    """Identity of the feed an entry was copied from."""

    id: str
    title: Text
    updated: datetime.datetime = ZERO_TIMESTAMP


@dataclass
class Entry:
    id: str
    # Plain string; unlike the feed title this is not a text construct.
    title: str
    updated: datetime.datetime
    authors: list[Person] = field(default_factory=list)
    content: Optional[Content] = None
    links: list[Link] = field(default_factory=list)
    summary: Optional[Text] = None
    categories: list[Category] = field(default_factory=list)
    contributors: list[Person] = field(default_factory=list)
    published: Optional[datetime.datetime] = None
    rights: Optional[Text] = None
    source: Optional[Source] = None


@dataclass
class Feed:
    id: str
    title: Text
    updated: datetime.datetime
    entries: list[Entry] = field(default_factory=list)
    authors: list[Person] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    contributors: list[Person] = field(default_factory=list)
    generator: Optional[Generator] = None
    icon: Optional[str] = None
    logo: Optional[str] = None
    rights: Optional[Text] = None
    subtitle: Optional[Text] = None
