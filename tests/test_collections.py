from datetime import datetime, timezone
from pathlib import Path

from inkwell.collections import Collections, PageCollection, build_navigation
from inkwell.content import Page


def make_page(url, day, tags=(), navigation=None):
    data = {"navigation": navigation} if navigation else {}
    return Page(
        title=url.strip("/") or "home",
        body="",
        content="",
        url=url,
        slug=url.strip("/").split("/")[-1] or "index",
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        tags=list(tags),
        draft=False,
        layout="",
        path=Path(url.strip("/") or "index"),
        source_type="markdown",
        data=data,
    )


def test_collections_group_by_tag_oldest_first():
    pages = [
        make_page("/b/", 3, ["posts"]),
        make_page("/a/", 1, ["posts", "python"]),
        make_page("/about/", 2),
    ]

    collections = Collections(pages)

    assert [p.url for p in collections["all"]] == ["/a/", "/about/", "/b/"]
    assert [p.url for p in collections["posts"]] == ["/a/", "/b/"]
    assert [p.url for p in collections["python"]] == ["/a/"]
    assert set(collections) == {"all", "posts", "python"}


def test_missing_collection_is_empty():
    assert len(Collections([]).get_collection("posts")) == 0


def test_newest_with_limit():
    pages = PageCollection(make_page(f"/p{i}/", i) for i in range(1, 6))
    assert [p.url for p in pages.newest(2)] == ["/p5/", "/p4/"]
    assert len(pages.newest()) == 5


def test_navigation_orders_entries():
    pages = [
        make_page("/blog/", 1, navigation={"key": "Archive", "order": 3}),
        make_page("/", 1, navigation={"key": "Home", "order": 1}),
        make_page("/about/", 1, navigation={"key": "About", "title": "About me"}),
        make_page("/hidden/", 1),
    ]

    nav = build_navigation(pages)

    assert [e["key"] for e in nav] == ["Home", "Archive", "About"]
    assert nav[2]["title"] == "About me"
    assert nav[0]["title"] == "Home"
    assert nav[1]["url"] == "/blog/"


def test_navigation_merges_extra_entries():
    pages = [
        make_page("/", 1, navigation={"key": "Home", "order": 1}),
        make_page("/about/", 1, navigation={"key": "About", "order": 5}),
    ]
    feed = {"key": "Feed", "title": "Feed", "order": 4, "url": "/feed/feed.xml"}

    nav = build_navigation(pages, [feed])

    assert [e["key"] for e in nav] == ["Home", "Feed", "About"]
    assert nav[1]["url"] == "/feed/feed.xml"
