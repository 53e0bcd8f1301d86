from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import IO, Callable, Mapping, Optional, TYPE_CHECKING, TypeVar, Union

from lxml import etree

from .dates import parse_date
from .exceptions import (
    ConstraintError,
    EmptyInputError,
    InvalidTextTypeError,
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
)
from .models import (
    ZERO_TIMESTAMP,
    Category,
    Content,
    Entry,
    Feed,
    Generator,
    Link,
    Person,
    PersonRole,
    Source,
    Text,
    TextType,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

Readable = Union[str, bytes, bytearray, memoryview, IO[bytes], IO[str]]
_T = TypeVar("_T")

logger = logging.getLogger(__name__)

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
NAMESPACES: Mapping[str, str] = {"atom": ATOM_NAMESPACE}

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_UTF8_BOM = b"\xef\xbb\xbf"

_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
    no_network=True,
)

# Concatenation of all descendant text nodes; comments and PIs are skipped.
_string_value = etree.XPath("string()")

_TEXT_TYPES: dict[str, TextType] = {
    "text": TextType.TEXT,
    "html": TextType.HTML,
    "xhtml": TextType.XHTML,
}


class Search(Enum):
    """How a construct is located relative to its owning element.

    CHILD matches Atom-namespaced direct children only. DESCENDANT matches any
    element below the owner by local name, whatever its namespace or depth.
    DESCENDANT is permissive: an entry lookup for ``id`` also sees the ``id``
    of a nested ``source`` and takes it when that element comes first.
    """

    CHILD = "child"
    DESCENDANT = "descendant"


@dataclass(frozen=True)
class _Context:
    strict: bool
    namespaces: Mapping[str, str] = dataclasses.field(
        default_factory=lambda: NAMESPACES
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[1] if "}" in tag else tag


def _text_content(element: _Element) -> str:
    return str(_string_value(element))


def _find_all(
    element: _Element, name: str, search: Search, ctx: _Context
) -> list[_Element]:
    if search is Search.CHILD:
        return element.findall(f"atom:{name}", namespaces=ctx.namespaces)
    return [
        child
        for child in element.iterdescendants()
        if isinstance(child.tag, str) and _local_name(child.tag) == name
    ]


def _find(
    element: _Element, name: str, search: Search, ctx: _Context
) -> Optional[_Element]:
    if search is Search.CHILD:
        return element.find(f"atom:{name}", namespaces=ctx.namespaces)
    for child in element.iterdescendants():
        if isinstance(child.tag, str) and _local_name(child.tag) == name:
            return child
    return None


def _has_attributes(element: _Element) -> bool:
    return len(element.attrib) > 0


def _has_child_elements(element: _Element) -> bool:
    return any(isinstance(child.tag, str) for child in element)


def _reject(ctx: _Context, error: ConstraintError) -> None:
    """Raise ``error`` in strict mode; otherwise note it and carry on."""
    if ctx.strict:
        raise error
    logger.debug("Ignoring constraint violation: %s", error)


def _collect(
    candidates: list[_Element],
    accept: Callable[[_Element], bool],
    mapper: Callable[[_Element], Optional[_T]],
) -> list[_T]:
    results: list[_T] = []
    for candidate in candidates:
        if not accept(candidate):
            continue
        value = mapper(candidate)
        if value is not None:
            results.append(value)
    return results


def _collect_persons(
    element: _Element,
    role: PersonRole,
    search: Search,
    ctx: _Context,
    parent: str,
) -> list[Person]:
    persons = _collect(
        _find_all(element, role.value, search, ctx),
        _has_child_elements,
        lambda node: _map_person(node, ctx, parent),
    )
    return [dataclasses.replace(person, role=role) for person in persons]


def _collect_links(
    element: _Element, search: Search, ctx: _Context, parent: str
) -> list[Link]:
    return _collect(
        _find_all(element, "link", search, ctx),
        _has_attributes,
        lambda node: _map_link(node, ctx, parent),
    )


def _collect_categories(
    element: _Element, search: Search, ctx: _Context, parent: str
) -> list[Category]:
    return _collect(
        _find_all(element, "category", search, ctx),
        _has_attributes,
        lambda node: _map_category(node, ctx, parent),
    )


def _optional_text(element: Optional[_Element]) -> Optional[str]:
    return _text_content(element) if element is not None else None


def _parse_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value)
    except (ValueError, TypeError):
        return None
    return length if length >= 0 else None


def _map_text(element: _Element, ctx: _Context, scope: str) -> Text:
    """Map a text construct (title, subtitle, summary, rights).

    A missing ``type`` means plain text. An unknown ``type`` is an error in
    strict mode and plain text otherwise.
    """
    value = _text_content(element)
    type_attr = element.get("type")
    if type_attr is None:
        return Text(value)

    text_type = _TEXT_TYPES.get(type_attr)
    if text_type is None:
        _reject(
            ctx, InvalidTextTypeError(scope, _local_name(element.tag), type_attr)
        )
        text_type = TextType.TEXT
    return Text(value, text_type)


def _map_content(element: _Element) -> Content:
    has_children = element.text is not None or len(element) > 0
    return Content(
        value=_text_content(element) if has_children else None,
        src=element.get("src"),
        type=element.get("type"),
    )


def _map_person(element: _Element, ctx: _Context, parent: str) -> Optional[Person]:
    """Map an author or contributor element to a role-less ``Person``.

    ``parent`` names the owner ("feed" or "entry") for error messages only.
    """
    scope = f"{parent} {_local_name(element.tag)}"
    name = _find(element, "name", Search.DESCENDANT, ctx)
    if name is None:
        return _reject(ctx, MissingFieldError(scope, "name"))

    return Person(
        name=_text_content(name),
        email=_optional_text(_find(element, "email", Search.DESCENDANT, ctx)),
        uri=_optional_text(_find(element, "uri", Search.DESCENDANT, ctx)),
    )


def _map_link(element: _Element, ctx: _Context, parent: str) -> Optional[Link]:
    href = element.get("href")
    if href is None:
        return _reject(ctx, MissingFieldError(f"{parent} link", "href"))

    return Link(
        href=href,
        rel=element.get("rel"),
        type=element.get("type"),
        hreflang=element.get("hreflang"),
        title=element.get("title"),
        # An unreadable length is dropped in both modes.
        length=_parse_length(element.get("length")),
    )


def _map_category(
    element: _Element, ctx: _Context, parent: str
) -> Optional[Category]:
    term = element.get("term")
    if term is None:
        return _reject(ctx, MissingFieldError(f"{parent} category", "term"))

    return Category(
        term=term, scheme=element.get("scheme"), label=element.get("label")
    )


def _map_generator(
    element: _Element, ctx: _Context, parent: str = "feed"
) -> Optional[Generator]:
    value = _text_content(element)
    if not value:
        return _reject(ctx, MissingFieldError(f"{parent} generator", "value"))

    return Generator(
        value=value, uri=element.get("uri"), version=element.get("version")
    )


def _map_source(element: _Element, ctx: _Context) -> Optional[Source]:
    """Map the ``source`` of a relocated entry.

    ``id``, ``title`` and ``updated`` must be present, but an ``updated`` that
    cannot be parsed falls back to ``ZERO_TIMESTAMP`` in both modes.
    """
    scope = "entry source"
    id_el = _find(element, "id", Search.DESCENDANT, ctx)
    if id_el is None:
        return _reject(ctx, MissingFieldError(scope, "id"))

    title_el = _find(element, "title", Search.DESCENDANT, ctx)
    if title_el is None:
        return _reject(ctx, MissingFieldError(scope, "title"))
    title = _map_text(title_el, ctx, scope)

    updated_el = _find(element, "updated", Search.DESCENDANT, ctx)
    if updated_el is None:
        return _reject(ctx, MissingFieldError(scope, "updated"))

    return Source(
        id=_text_content(id_el),
        title=title,
        updated=parse_date(_text_content(updated_el)) or ZERO_TIMESTAMP,
    )


def _map_entry(element: _Element, ctx: _Context) -> Optional[Entry]:
    """Map one ``entry``; in lenient mode an invalid entry yields ``None``.

    Every lookup below the entry uses ``Search.DESCENDANT``.
    """
    search = Search.DESCENDANT

    id_el = _find(element, "id", search, ctx)
    if id_el is None:
        return _reject(ctx, MissingFieldError("entry", "id"))

    title_el = _find(element, "title", search, ctx)
    if title_el is None:
        return _reject(ctx, MissingFieldError("entry", "title"))

    updated_el = _find(element, "updated", search, ctx)
    if updated_el is None:
        return _reject(ctx, MissingFieldError("entry", "updated"))
    updated = parse_date(_text_content(updated_el))
    if updated is None:
        return _reject(ctx, InvalidValueError("entry", "updated"))

    content_el = _find(element, "content", search, ctx)
    summary_el = _find(element, "summary", search, ctx)
    published_el = _find(element, "published", search, ctx)
    rights_el = _find(element, "rights", search, ctx)
    source_el = _find(element, "source", search, ctx)

    return Entry(
        id=_text_content(id_el),
        title=_text_content(title_el),
        updated=updated,
        authors=_collect_persons(element, PersonRole.AUTHOR, search, ctx, "entry"),
        content=_map_content(content_el) if content_el is not None else None,
        links=_collect_links(element, search, ctx, "entry"),
        summary=(
            _map_text(summary_el, ctx, "entry") if summary_el is not None else None
        ),
        categories=_collect_categories(element, search, ctx, "entry"),
        contributors=_collect_persons(
            element, PersonRole.CONTRIBUTOR, search, ctx, "entry"
        ),
        published=(
            parse_date(_text_content(published_el))
            if published_el is not None
            else None
        ),
        rights=_map_text(rights_el, ctx, "entry") if rights_el is not None else None,
        source=_map_source(source_el, ctx) if source_el is not None else None,
    )


def _map_feed(root: _Element, ctx: _Context) -> Feed:
    """Map the document element to a ``Feed``.

    Missing mandatory fields raise in strict mode and are defaulted otherwise:
    ``id`` to ``""``, ``title`` to an empty text and ``updated`` to
    ``ZERO_TIMESTAMP``. Entries and sub-constructs that fail their own checks
    are dropped one by one.
    """
    search = Search.CHILD

    id_el = _find(root, "id", search, ctx)
    if id_el is None:
        _reject(ctx, MissingFieldError("feed", "id"))
    feed_id = _optional_text(id_el) or ""

    title_el = _find(root, "title", search, ctx)
    if title_el is None:
        _reject(ctx, MissingFieldError("feed", "title"))
        title = Text("")
    else:
        title = _map_text(title_el, ctx, "feed")

    updated_el = _find(root, "updated", search, ctx)
    if updated_el is None:
        _reject(ctx, MissingFieldError("feed", "updated"))
        updated = ZERO_TIMESTAMP
    else:
        updated = parse_date(_text_content(updated_el))
        if updated is None:
            _reject(ctx, InvalidValueError("feed", "updated"))
            updated = ZERO_TIMESTAMP

    entries = _collect(
        _find_all(root, "entry", search, ctx),
        _has_child_elements,
        lambda node: _map_entry(node, ctx),
    )

    # The generator is optional at feed level, so an empty one is omitted
    # whatever the mode.
    generator_el = _find(root, "generator", search, ctx)
    generator = (
        _map_generator(generator_el, dataclasses.replace(ctx, strict=False))
        if generator_el is not None
        else None
    )
    rights_el = _find(root, "rights", search, ctx)
    subtitle_el = _find(root, "subtitle", search, ctx)

    return Feed(
        id=feed_id,
        title=title,
        updated=updated,
        entries=entries,
        authors=_collect_persons(root, PersonRole.AUTHOR, search, ctx, "feed"),
        links=_collect_links(root, search, ctx, "feed"),
        categories=_collect_categories(root, search, ctx, "feed"),
        contributors=_collect_persons(
            root, PersonRole.CONTRIBUTOR, search, ctx, "feed"
        ),
        generator=generator,
        icon=_optional_text(_find(root, "icon", search, ctx)),
        logo=_optional_text(_find(root, "logo", search, ctx)),
        rights=_map_text(rights_el, ctx, "feed") if rights_el is not None else None,
        subtitle=(
            _map_text(subtitle_el, ctx, "feed") if subtitle_el is not None else None
        ),
    )


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Ensure the XML declaration's encoding matches the UTF-8 bytes we emit."""
    if not content.lstrip().startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _prepare_xml_bytes(xml_content: str | bytes) -> bytes:
    if isinstance(xml_content, str):
        xml_content = _ensure_utf8_xml_declaration(xml_content).encode(
            "utf-8", errors="replace"
        )

    # libxml2 rejects anything before the XML declaration
    cleaned = xml_content.lstrip()
    if cleaned.startswith(_UTF8_BOM):
        cleaned = cleaned[len(_UTF8_BOM) :].lstrip()
    return cleaned


def _read_source(source: Optional[Readable]) -> tuple[str, str | bytes]:
    if source is None:
        return "source", b""
    if isinstance(source, str):
        return "string", source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return "buffer", bytes(source)
    if hasattr(source, "read"):
        return "stream", source.read()
    raise TypeError(f"Unsupported feed source type: {type(source).__name__}")


def _is_missing_root(error: etree.XMLSyntaxError, xml_content: bytes) -> bool:
    # libxml2 reports a prolog-only document (declaration, comments, doctype)
    # as empty; text that is not markup at all is reported the same way.
    return (
        error.code == etree.ErrorTypes.ERR_DOCUMENT_EMPTY
        and xml_content.startswith(b"<")
    )


def _load_document(source: Optional[Readable], ctx: _Context) -> Optional[_Element]:
    kind, data = _read_source(source)
    if not data:
        if ctx.strict:
            raise EmptyInputError(kind)
        logger.debug("Empty xml %s, nothing to parse", kind)
        return None

    xml_content = _prepare_xml_bytes(data)
    if not xml_content:
        logger.debug("Document has no root element")
        return None

    try:
        root = etree.fromstring(xml_content, parser=_XML_PARSER)
    except etree.XMLSyntaxError as e:
        if _is_missing_root(e, xml_content):
            logger.debug("Document has no root element: %s", e)
            return None
        if ctx.strict:
            raise MalformedDocumentError(
                f"AtomFeed: failed to parse XML content: {e}"
            ) from e
        logger.debug("Failed to parse XML content: %s", e)
        return None
    return root


def parse(source: Optional[Readable], *, strict: bool = False) -> Optional[Feed]:
    """Parse an Atom feed document.

    Args:
        source: XML as a string, a bytes-like buffer or a readable stream
        strict: Raise on the first missing or malformed mandatory construct
            instead of defaulting it or dropping the construct that holds it

    Returns:
        The parsed Feed, or None in lenient mode when the input is empty or
        not well-formed. None is also returned, in both modes, for a document
        without a root element.

    Raises:
        EmptyInputError: If strict and the input is empty
        MalformedDocumentError: If strict and the input is not well-formed XML
        ConstraintError: If strict and a mandatory construct is missing or
            invalid (MissingFieldError, InvalidValueError, InvalidTextTypeError)
        TypeError: If ``source`` is of an unsupported type
    """
    ctx = _Context(strict=strict)
    root = _load_document(source, ctx)
    if root is None:
        return None
    return _map_feed(root, ctx)
