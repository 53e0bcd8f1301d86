import datetime

import pytest

from atomfeed import (
    ZERO_TIMESTAMP,
    Category,
    Feed,
    Generator,
    InvalidTextTypeError,
    InvalidValueError,
    Link,
    MissingFieldError,
    Person,
    PersonRole,
    Text,
    TextType,
    parse,
)

ATOM = "http://www.w3.org/2005/Atom"
UTC = datetime.timezone.utc


def _feed(body: str) -> str:
    return f'<feed xmlns="{ATOM}">{body}</feed>'


HEADER = "<id>urn:feed</id><title>T</title><updated>2024-01-01T00:00:00Z</updated>"

FULL_FEED = _feed(
    """
    <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
    <title type="html">Example &lt;b&gt;Feed&lt;/b&gt;</title>
    <subtitle type="text">A subtitle.</subtitle>
    <updated>2003-12-13T18:30:02Z</updated>
    <link href="http://example.org/"/>
    <link rel="self" type="application/atom+xml" hreflang="en"
          title="Self" length="1024" href="http://example.org/feed.atom"/>
    <author>
      <name>John Doe</name>
      <email>johndoe@example.com</email>
      <uri>http://example.org/~john</uri>
    </author>
    <author><name>Jane Roe</name></author>
    <contributor><name>Sam Helper</name></contributor>
    <category term="tech" scheme="http://example.org/cats" label="Technology"/>
    <category term="news"/>
    <generator uri="http://example.org/gen" version="1.0">Example Toolkit</generator>
    <icon>http://example.org/icon.png</icon>
    <logo>http://example.org/logo.png</logo>
    <rights type="xhtml">Copyright 2003</rights>
    <entry>
      <title>Atom-Powered Robots Run Amok</title>
      <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
      <updated>2003-12-13T18:30:02Z</updated>
      <summary>Some text.</summary>
    </entry>
    <entry>
      <title>Second</title>
      <id>urn:entry:2</id>
      <updated>2003-12-14T10:00:00+02:00</updated>
    </entry>
    """
)


def test_scenario_minimal_feed():
    feed = parse(_feed(HEADER))
    assert feed == Feed(
        id="urn:feed",
        title=Text("T", TextType.TEXT),
        updated=datetime.datetime(2024, 1, 1, tzinfo=UTC),
    )
    assert feed.entries == []
    assert feed.authors == []
    assert feed.links == []
    assert feed.categories == []
    assert feed.contributors == []
    assert feed.generator is None
    assert feed.icon is None
    assert feed.logo is None
    assert feed.rights is None
    assert feed.subtitle is None


def test_full_feed():
    feed = parse(FULL_FEED, strict=True)

    assert feed.id == "urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6"
    assert feed.title == Text("Example <b>Feed</b>", TextType.HTML)
    assert feed.subtitle == Text("A subtitle.", TextType.TEXT)
    assert feed.updated == datetime.datetime(2003, 12, 13, 18, 30, 2, tzinfo=UTC)
    assert feed.links == [
        Link(href="http://example.org/"),
        Link(
            href="http://example.org/feed.atom",
            rel="self",
            type="application/atom+xml",
            hreflang="en",
            title="Self",
            length=1024,
        ),
    ]
    assert feed.authors == [
        Person(
            name="John Doe",
            email="johndoe@example.com",
            uri="http://example.org/~john",
            role=PersonRole.AUTHOR,
        ),
        Person(name="Jane Roe", role=PersonRole.AUTHOR),
    ]
    assert feed.contributors == [
        Person(name="Sam Helper", role=PersonRole.CONTRIBUTOR)
    ]
    assert feed.categories == [
        Category(term="tech", scheme="http://example.org/cats", label="Technology"),
        Category(term="news"),
    ]
    assert feed.generator == Generator(
        value="Example Toolkit", uri="http://example.org/gen", version="1.0"
    )
    assert feed.icon == "http://example.org/icon.png"
    assert feed.logo == "http://example.org/logo.png"
    assert feed.rights == Text("Copyright 2003", TextType.XHTML)
    assert [entry.id for entry in feed.entries] == [
        "urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a",
        "urn:entry:2",
    ]
    assert feed.entries[1].updated == datetime.datetime(
        2003, 12, 14, 8, 0, tzinfo=UTC
    )


def test_strict_and_lenient_agree_on_valid_feed():
    assert parse(FULL_FEED, strict=True) == parse(FULL_FEED, strict=False)


def test_parsing_is_repeatable():
    first = parse(FULL_FEED)
    second = parse(FULL_FEED)
    assert first == second
    assert first is not second
    assert first.entries[0] is not second.entries[0]


@pytest.mark.parametrize("field", ["id", "title", "updated"])
def test_missing_mandatory_feed_field_strict(field):
    parts = {
        "id": "<id>urn:feed</id>",
        "title": "<title>T</title>",
        "updated": "<updated>2024-01-01T00:00:00Z</updated>",
    }
    del parts[field]
    with pytest.raises(MissingFieldError) as excinfo:
        parse(_feed("".join(parts.values())), strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == ("feed", field)


def test_missing_mandatory_feed_fields_are_defaulted_when_lenient():
    feed = parse(_feed(""))
    assert feed.id == ""
    assert feed.title == Text("")
    assert feed.updated == ZERO_TIMESTAMP


def test_missing_id_only():
    xml = _feed("<title>T</title><updated>2024-01-01T00:00:00Z</updated>")
    with pytest.raises(MissingFieldError, match="feed id is missing"):
        parse(xml, strict=True)
    feed = parse(xml)
    assert feed.id == ""
    assert feed.title == Text("T")


def test_unparsable_updated():
    xml = _feed("<id>u1</id><title>T</title><updated>not-a-date</updated>")
    with pytest.raises(InvalidValueError) as excinfo:
        parse(xml, strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == ("feed", "updated")
    assert not isinstance(excinfo.value, MissingFieldError)

    feed = parse(xml)
    assert feed.updated == ZERO_TIMESTAMP
    assert feed.id == "u1"


def test_feed_fields_must_be_atom_namespaced_direct_children():
    xml = (
        f'<feed xmlns="{ATOM}" xmlns:x="urn:other">'
        "<x:id>foreign</x:id>"
        "<wrapper><id>nested</id></wrapper>"
        "<title>T</title><updated>2024-01-01T00:00:00Z</updated>"
        "</feed>"
    )
    with pytest.raises(MissingFieldError):
        parse(xml, strict=True)
    assert parse(xml).id == ""


def test_prefixed_atom_namespace_is_recognized():
    xml = (
        '<a:feed xmlns:a="http://www.w3.org/2005/Atom">'
        "<a:id>urn:feed</a:id><a:title>T</a:title>"
        "<a:updated>2024-01-01T00:00:00Z</a:updated>"
        "</a:feed>"
    )
    feed = parse(xml, strict=True)
    assert feed.id == "urn:feed"
    assert feed.title == Text("T")


def test_feed_without_atom_namespace():
    xml = "<feed><id>u1</id><title>T</title><updated>2024-01-01T00:00:00Z</updated></feed>"
    with pytest.raises(MissingFieldError):
        parse(xml, strict=True)
    feed = parse(xml)
    assert feed.id == ""
    assert feed.updated == ZERO_TIMESTAMP


def test_first_of_repeated_singletons_wins():
    xml = _feed(
        "<id>first</id><id>second</id><title>T</title>"
        "<updated>2024-01-01T00:00:00Z</updated>"
    )
    assert parse(xml).id == "first"


def test_prefilter_skips_bare_candidates_even_when_strict():
    xml = _feed(
        HEADER
        + "<link/><category/><author/><contributor>text only</contributor><entry/>"
    )
    feed = parse(xml, strict=True)
    assert feed.links == []
    assert feed.categories == []
    assert feed.authors == []
    assert feed.contributors == []
    assert feed.entries == []


def test_invalid_children_are_dropped_when_lenient():
    xml = _feed(
        HEADER
        + '<link rel="alternate"/><link href="http://a"/>'
        + '<category scheme="s"/><category term="kept"/>'
        + "<author><email>x@example.org</email></author><author><name>A</name></author>"
        + "<contributor><uri>http://c</uri></contributor>"
    )
    feed = parse(xml)
    assert feed.links == [Link(href="http://a")]
    assert feed.categories == [Category(term="kept")]
    assert feed.authors == [Person(name="A", role=PersonRole.AUTHOR)]
    assert feed.contributors == []


@pytest.mark.parametrize(
    "body,scope,field",
    [
        ('<link rel="alternate"/>', "feed link", "href"),
        ('<category scheme="s"/>', "feed category", "term"),
        ("<author><email>x@example.org</email></author>", "feed author", "name"),
        ("<contributor><uri>http://c</uri></contributor>", "feed contributor", "name"),
    ],
)
def test_invalid_children_fail_when_strict(body, scope, field):
    with pytest.raises(MissingFieldError) as excinfo:
        parse(_feed(HEADER + body), strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == (scope, field)


def test_collections_keep_document_order():
    xml = _feed(
        HEADER
        + '<link href="1"/><category term="a"/><link href="2"/>'
        + '<category term="b"/><link href="3"/>'
    )
    feed = parse(xml)
    assert [link.href for link in feed.links] == ["1", "2", "3"]
    assert [category.term for category in feed.categories] == ["a", "b"]


def test_empty_generator_is_omitted_in_both_modes():
    xml = _feed(HEADER + '<generator uri="http://gen"/>')
    assert parse(xml).generator is None
    assert parse(xml, strict=True).generator is None


@pytest.mark.parametrize("element", ["title", "subtitle", "rights"])
def test_unknown_text_type(element):
    fields = {"title": "<title>T</title>", "subtitle": "", "rights": ""}
    fields[element] = f'<{element} type="markdown">*x*</{element}>'
    xml = _feed(
        "<id>u1</id><updated>2024-01-01T00:00:00Z</updated>"
        + "".join(fields.values())
    )
    with pytest.raises(InvalidTextTypeError) as excinfo:
        parse(xml, strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == ("feed", element)
    assert excinfo.value.value == "markdown"

    feed = parse(xml)
    assert getattr(feed, element) == Text("*x*", TextType.TEXT)


def test_empty_icon_and_logo_are_kept():
    feed = parse(_feed(HEADER + "<icon/><logo></logo>"))
    assert feed.icon == ""
    assert feed.logo == ""


def test_mixed_entry_validity_keeps_good_entries():
    xml = _feed(
        HEADER
        + "<entry><id>1</id><title>One</title><updated>2024-01-02T00:00:00Z</updated></entry>"
        + "<entry><id>2</id><updated>2024-01-02T00:00:00Z</updated></entry>"
        + "<entry><id>3</id><title>Three</title><updated>2024-01-03T00:00:00Z</updated></entry>"
    )
    feed = parse(xml)
    assert [entry.id for entry in feed.entries] == ["1", "3"]

    with pytest.raises(MissingFieldError) as excinfo:
        parse(xml, strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == ("entry", "title")


@pytest.mark.parametrize("value", ["May", "10:30"])
def test_updated_without_a_full_date(value):
    xml = _feed(f"<id>u1</id><title>T</title><updated>{value}</updated>")
    with pytest.raises(InvalidValueError) as excinfo:
        parse(xml, strict=True)
    assert (excinfo.value.scope, excinfo.value.field) == ("feed", "updated")
    assert parse(xml).updated == ZERO_TIMESTAMP
