from pathlib import Path

from folio.utils import (
    first_paragraph,
    is_content_file,
    is_internal_path,
    is_markdown,
    join_root_url,
    slugify,
    titleize,
)


def test_slugify_and_titleize():
    assert slugify("2025-09-25-Hello World!") == "hello-world"
    assert slugify("About_Us") == "about-us"
    assert slugify("---") == "index"
    assert titleize("2025-01-15-hello-world.md") == "Hello World"
    assert titleize("___.md") == "Untitled"


def test_first_paragraph_skips_headings_and_markup():
    text = "# Title\n\n![img](x.png)\n\nHello <em>there</em> {{ name }}\nworld.\n\nMore."
    assert first_paragraph(text) == "Hello there world."
    assert first_paragraph("a" * 300, limit=10) == "a" * 10
    assert first_paragraph("# Only a heading") == ""


def test_path_classification():
    assert is_markdown(Path("post.MD"))
    assert not is_markdown(Path("page.html"))
    assert is_content_file(Path("feed.xml"))
    assert not is_content_file(Path("logo.png"))
    assert is_internal_path(Path("_layouts/default.html"))
    assert is_internal_path(Path("posts/.DS_Store"))
    assert not is_internal_path(Path("posts/hello.md"))


def test_join_root_url():
    assert join_root_url("https://example.com/", "about/") == "https://example.com/about/"
    assert join_root_url("https://example.com", "/feed.xml") == "https://example.com/feed.xml"
    assert join_root_url("", "about/") == "/about/"
