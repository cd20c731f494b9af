from datetime import date, datetime, timedelta, timezone

from inkwell.utils import (
    absolute_url,
    ensure_clean_dir,
    extract_date_from_name,
    parse_attributes,
    parse_date,
    render_attributes,
    slugify,
    titleize,
)


def test_slugify_and_titleize():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("  spaced   out_text ") == "spaced-out-text"
    assert titleize("2024-01-15-hello-world.md") == "Hello World"
    assert titleize("---.md") == "Untitled"


def test_extract_date_from_name():
    assert extract_date_from_name("2024-01-15-post") == datetime(
        2024, 1, 15, tzinfo=timezone.utc
    )
    assert extract_date_from_name("2024-01-15") == datetime(
        2024, 1, 15, tzinfo=timezone.utc
    )
    assert extract_date_from_name("2024-13-40-post") is None
    assert extract_date_from_name("post") is None


def test_parse_date_variants():
    utc = timezone.utc
    assert parse_date(date(2024, 2, 3)) == datetime(2024, 2, 3, tzinfo=utc)
    assert parse_date("2024-02-03T10:30:00") == datetime(2024, 2, 3, 10, 30, tzinfo=utc)
    offset = parse_date("2024-02-03T10:30:00+02:00")
    assert offset.utcoffset() == timedelta(hours=2)
    assert parse_date("yesterday") is None
    assert parse_date(None) is None


def test_absolute_url():
    assert absolute_url("/blog/", "https://example.com") == "https://example.com/blog/"
    assert absolute_url("feed.xml", "https://example.com/sub/") == "https://example.com/sub/feed.xml"
    assert absolute_url("/x/", "") == "/x/"


def test_attributes_round_trip():
    attrs = parse_attributes('<img src="a.png" alt=\'A "quote"\' hidden>')
    assert attrs == {"src": "a.png", "alt": 'A "quote"', "hidden": None}
    assert render_attributes(attrs) == 'src="a.png" alt="A &quot;quote&quot;" hidden'


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "out"
    target.mkdir()
    (target / "stale.txt").write_text("x", encoding="utf-8")

    ensure_clean_dir(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []
