from datetime import datetime, timezone
from pathlib import Path

from inkwell.config import RunMode
from inkwell.content import ContentProcessor, extract_frontmatter
from inkwell.preprocessors import PreprocessorRegistry


def create_site(tmp_path: Path) -> Path:
    content = tmp_path / "content"
    (content / "blog").mkdir(parents=True)
    (content / "_includes" / "layouts").mkdir(parents=True)
    (content / "_data").mkdir()
    (content / "_includes" / "layouts" / "base.html").write_text(
        "{{ content }}", encoding="utf-8"
    )

    (content / "index.html").write_text(
        "---\ntitle: Home\nlayout: base\nnavigation:\n  key: Home\n  order: 1\n---\n"
        "<h1>{{ title }}</h1>",
        encoding="utf-8",
    )
    (content / "about.md").write_text(
        "---\ntitle: About Me\ndate: 2023-05-01\n---\n# About\n", encoding="utf-8"
    )
    (content / "blog" / "2024-01-15-first-post.md").write_text(
        "---\ntags: [posts, python]\n---\nFirst body\n", encoding="utf-8"
    )
    (content / "blog" / "wip.md").write_text(
        "---\ntitle: Work in progress\ndraft: true\ntags: posts\n---\nSoon\n",
        encoding="utf-8",
    )
    (content / "blog" / "notes.txt").write_text("not content", encoding="utf-8")
    (content / "_data" / "site.md").write_text("# hidden", encoding="utf-8")
    return content


def test_extract_frontmatter():
    data, body = extract_frontmatter("---\ntitle: Hi\n---\nBody")
    assert data == {"title": "Hi"}
    assert body == "Body"


def test_extract_frontmatter_without_block():
    assert extract_frontmatter("Just text") == ({}, "Just text")


def test_invalid_frontmatter_is_ignored():
    text = "---\ntitle: [unclosed\n---\nBody"
    assert extract_frontmatter(text) == ({}, text)


def test_build_mode_excludes_drafts(tmp_path):
    content = create_site(tmp_path)

    result = ContentProcessor(content).load(RunMode.BUILD)

    urls = sorted(p.url for p in result.pages)
    assert urls == ["/", "/about/", "/blog/first-post/"]
    assert result.excluded == [content / "blog" / "wip.md"]


def test_serve_mode_keeps_drafts(tmp_path):
    content = create_site(tmp_path)

    result = ContentProcessor(content).load(RunMode.SERVE)

    draft = next(p for p in result.pages if p.url == "/blog/wip/")
    assert draft.draft is True
    assert draft.tags == ["posts"]
    assert result.excluded == []


def test_page_fields(tmp_path):
    content = create_site(tmp_path)
    pages = {p.url: p for p in ContentProcessor(content).load(RunMode.BUILD).pages}

    post = pages["/blog/first-post/"]
    assert post.title == "First Post"
    assert post.slug == "first-post"
    assert post.date == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert post.tags == ["posts", "python"]
    assert post.source_type == "markdown"
    assert "<p>First body</p>" in post.content

    about = pages["/about/"]
    assert about.date == datetime(2023, 5, 1, tzinfo=timezone.utc)
    assert '<h1 id="about">About</h1>' in about.content

    home = pages["/"]
    assert home.source_type == "template"
    assert home.layout == "base"
    assert home.navigation == {"key": "Home", "order": 1}
    assert home.content == "<h1>{{ title }}</h1>"


def test_permalink_overrides_url(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "feed.html").write_text(
        "---\npermalink: feed/pretty.xml\n---\nx", encoding="utf-8"
    )

    page = ContentProcessor(content).load(RunMode.BUILD).pages[0]
    assert page.url == "/feed/pretty.xml"


def test_custom_preprocessor_rewrites_body(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "note.md").write_text("hello", encoding="utf-8")
    registry = PreprocessorRegistry()
    registry.add("upper", "md", lambda data, body, mode: body.upper())

    page = ContentProcessor(content, preprocessors=registry).load(RunMode.BUILD).pages[0]
    assert page.body == "HELLO"
    assert "<p>HELLO</p>" in page.content
