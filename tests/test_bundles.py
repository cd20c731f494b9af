import re
from datetime import datetime, timezone
from pathlib import Path

from inkwell.bundles import BundleTransform
from inkwell.content import Page

PAGE = Page(
    title="Home",
    body="",
    content="",
    url="/",
    slug="index",
    date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    tags=[],
    draft=False,
    layout="",
    path=Path("content/index.html"),
    source_type="template",
)


def test_styles_are_bundled_at_first_block(tmp_path):
    html = (
        "<head><style>body { color: red; }</style></head>"
        "<body><p>x</p><style>p { margin: 0; }</style></body>"
    )

    result = BundleTransform(tmp_path).transform(html, PAGE)

    match = re.search(r'<link rel="stylesheet" href="/dist/([0-9a-f]{10})\.css">', result)
    assert match
    assert result.index("<link") < result.index("<body>")
    assert "<style" not in result
    css = (tmp_path / "dist" / f"{match.group(1)}.css").read_text(encoding="utf-8")
    assert css == "body{color:red}p{margin:0}"


def test_scripts_are_bundled_at_last_block(tmp_path):
    html = (
        "<script>var a = 1;</script><p>x</p>"
        '<script src="/vendor.js"></script>'
        '<script type="application/ld+json">{"a": 1}</script>'
        "<script>console.log( a );</script><footer></footer>"
    )

    result = BundleTransform(tmp_path).transform(html, PAGE)

    assert result.startswith("<p>x</p>")
    assert '<script src="/vendor.js"></script>' in result
    assert '<script type="application/ld+json">{"a": 1}</script>' in result
    match = re.search(r'<script src="/dist/([0-9a-f]{10})\.js"></script><footer>', result)
    assert match
    js = (tmp_path / "dist" / f"{match.group(1)}.js").read_text(encoding="utf-8")
    assert "var a=1;" in js
    assert "console.log(a);" in js


def test_ignored_blocks_stay_inline(tmp_path):
    html = '<style inkwell:ignore media="print">a{}</style><script inkwell:ignore>go()</script>'

    result = BundleTransform(tmp_path).transform(html, PAGE)

    assert result == '<style media="print">a{}</style><script>go()</script>'
    assert not (tmp_path / "dist").exists()


def test_page_without_blocks_is_unchanged(tmp_path):
    html = "<p>plain</p>"
    assert BundleTransform(tmp_path).transform(html, PAGE) == html


def test_identical_bundles_share_a_file(tmp_path):
    transform = BundleTransform(tmp_path, directory="/bundles/")
    transform.transform("<style>a { b: c }</style>", PAGE)
    transform.transform("<style>a{b:c}</style>", PAGE)

    assert len(list((tmp_path / "bundles").iterdir())) == 1
