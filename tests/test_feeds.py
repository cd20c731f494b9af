import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from inkwell.collections import Collections
from inkwell.config import DEFAULT_CONFIG, ConfigError
from inkwell.content import Page
from inkwell.feeds import (
    AtomFeedGenerator,
    JSONFeedGenerator,
    RSSFeedGenerator,
    create_feed_generator,
    feed_navigation,
    write_feed,
)


def make_post(slug, day, tags=("posts",)):
    return Page(
        title=f"Post {slug}",
        body="",
        content="",
        url=f"/blog/{slug}/",
        slug=slug,
        date=datetime(2024, 3, day, tzinfo=timezone.utc),
        tags=list(tags),
        draft=False,
        layout="",
        path=Path(f"content/blog/{slug}.md"),
        source_type="markdown",
        rendered=f"<p>{slug} & more</p>",
    )


def feed_config(**overrides):
    config = json.loads(json.dumps(DEFAULT_CONFIG["feed"]))
    config.update(overrides)
    return config


def test_atom_feed_structure(tmp_path):
    collections = Collections([make_post("a", 1), make_post("b", 2), make_post("x", 3, [])])

    path = write_feed(tmp_path, collections, feed_config())

    assert path == tmp_path / "feed" / "feed.xml"
    xml = path.read_text(encoding="utf-8")
    assert xml.startswith('<?xml version="1.0" encoding="utf-8"?>\n')
    assert '<?xml-stylesheet href="pretty-atom-feed.xsl" type="text/xsl"?>' in xml
    assert '<link href="https://example.com/feed/feed.xml" rel="self"/>' in xml
    assert "<updated>2024-03-02T00:00:00Z</updated>" in xml
    assert "<name>Your Name</name>" in xml
    assert xml.index("Post b") < xml.index("Post a")
    assert "Post x" not in xml
    assert "&lt;p&gt;a &amp; more&lt;/p&gt;" in xml


def test_limit_keeps_newest_entries(tmp_path):
    posts = [make_post(str(day), day) for day in range(1, 6)]
    config = feed_config(collection={"name": "posts", "limit": 2})

    xml = write_feed(tmp_path, Collections(posts), config).read_text(encoding="utf-8")

    assert xml.count("<entry>") == 2
    assert "Post 5" in xml and "Post 4" in xml


def test_empty_collection_writes_nothing(tmp_path):
    assert write_feed(tmp_path, Collections([]), feed_config()) is None
    assert not (tmp_path / "feed").exists()


def test_generator_selection():
    assert isinstance(create_feed_generator(feed_config()), AtomFeedGenerator)
    assert isinstance(create_feed_generator(feed_config(type="RSS")), RSSFeedGenerator)
    json_gen = create_feed_generator(feed_config(type="json", output_path="feed.json"))
    assert isinstance(json_gen, JSONFeedGenerator)
    assert json_gen.stylesheet is None
    assert json_gen.output_path == "/feed.json"
    with pytest.raises(ConfigError, match="Unknown feed type"):
        create_feed_generator(feed_config(type="gopher"))


def test_rss_feed(tmp_path):
    config = feed_config(type="rss", output_path="/rss.xml", stylesheet=None)
    xml = write_feed(tmp_path, Collections([make_post("a", 1)]), config).read_text(
        encoding="utf-8"
    )

    assert "xml-stylesheet" not in xml
    assert "<link>https://example.com/</link>" in xml
    assert "<guid>https://example.com/blog/a/</guid>" in xml
    assert "<pubDate>Fri, 01 Mar 2024 00:00:00 +0000</pubDate>" in xml


def test_json_feed(tmp_path):
    config = feed_config(type="json", output_path="/feed.json")
    path = write_feed(tmp_path, Collections([make_post("a", 1)]), config)

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["version"] == "https://jsonfeed.org/version/1.1"
    assert document["feed_url"] == "https://example.com/feed.json"
    assert document["items"][0]["content_html"] == "<p>a & more</p>"
    assert document["items"][0]["date_published"] == "2024-03-01T00:00:00Z"


def test_feed_navigation_entry():
    assert feed_navigation(feed_config()) == [
        {"key": "Feed", "title": "Feed", "order": 4, "url": "/feed/feed.xml"}
    ]
    custom = feed_config(navigation={"key": "RSS", "title": "Subscribe"}, output_path="rss.xml")
    assert feed_navigation(custom)[0]["url"] == "/rss.xml"
    assert feed_navigation(custom)[0]["title"] == "Subscribe"
    assert feed_navigation(feed_config(navigation=None)) == []
