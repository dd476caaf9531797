from datetime import datetime
from pathlib import Path

import pytest

from folio.content import ContentUnit, FileContentLoader, Site, UrlDeriver
from folio.errors import LoadError


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_site(tmp_path: Path) -> Path:
    site = tmp_path / "site"
    write(site / "_layouts" / "default.html", "{{ content }}")
    write(
        site / "posts" / "2025-09-25-new-engagement.md",
        "---\ndate: 2025-09-25\nlayout: post\ntitle: New Engagement\ncategories: consulting\n---\nHello.\n",
    )
    write(
        site / "posts" / "2025-01-10-hello.md",
        "---\ndate: 2025-01-10\ntitle: Hello\n---\nFirst post.\n",
    )
    write(
        site / "posts" / "2025-10-01-upcoming.md",
        "---\ndate: 2025-10-01\ntitle: Upcoming\ndraft: true\n---\nNot yet.\n",
    )
    write(site / "about.md", "---\ntitle: About\nlayout: default\n---\n# About\n")
    write(site / "blog" / "index.md", "---\ntitle: Blog\n---\n")
    write(site / "contact.html", "<h1>Contact</h1>\n")
    write(site / "custom.md", "---\npermalink: special/\n---\nCustom\n")
    write(site / ".hidden.md", "---\ntitle: hidden\n---\n")
    (site / "images").mkdir()
    (site / "images" / "logo.png").write_bytes(b"\x89PNG")
    return site


def test_site_load_partitions_posts_and_pages(tmp_path):
    site = Site().load([create_site(tmp_path)])
    assert [u.identifier for u in site.posts()] == [
        "posts/2025-01-10-hello.md",
        "posts/2025-09-25-new-engagement.md",
    ]
    assert [u.identifier for u in site.pages()] == [
        "about.md",
        "blog/index.md",
        "contact.html",
        "custom.md",
    ]
    assert len(site) == 7
    assert site.get("about.md").title == "About"
    assert site.get("missing.md") is None
    assert [s.url for s in site.static_files] == ["/images/logo.png"]


def test_drafts_are_loaded_but_not_published(tmp_path):
    site_dir = create_site(tmp_path)
    site = Site().load([site_dir])
    draft = site.get("posts/2025-10-01-upcoming.md")
    assert draft is not None and draft.draft
    assert draft in site.all()
    assert draft not in site.published()
    assert draft not in site.posts()

    preview = Site(include_drafts=True).load([site_dir])
    assert "posts/2025-10-01-upcoming.md" in [u.identifier for u in preview.posts()]


def test_urls_follow_permalink_or_convention(tmp_path):
    site = Site().load([create_site(tmp_path)])
    urls = {u.identifier: u.url for u in site.all()}
    assert urls["posts/2025-09-25-new-engagement.md"] == "/consulting/2025/09/25/new-engagement.html"
    assert urls["posts/2025-01-10-hello.md"] == "/2025/01/10/hello.html"
    assert urls["about.md"] == "/about.html"
    assert urls["blog/index.md"] == "/blog/"
    assert urls["contact.html"] == "/contact.html"
    assert urls["custom.md"] == "/special/"


def test_front_matter_date_makes_a_post(tmp_path):
    site_dir = tmp_path / "site"
    write(site_dir / "notes.md", "---\ndate: 2024-02-03 10:30\n---\nDated page.\n")
    site = Site().load([site_dir])
    unit = site.get("notes.md")
    assert unit.is_post
    assert unit.date == datetime(2024, 2, 3, 10, 30)
    assert unit.url == "/2024/02/03/notes.html"


def test_date_prefix_alone_does_not_make_a_post(tmp_path):
    site_dir = tmp_path / "site"
    write(site_dir / "2025-05-05-changelog.md", "---\ntitle: Changelog\n---\nNotes.\n")
    site = Site().load([site_dir])
    unit = site.get("2025-05-05-changelog.md")
    assert not unit.is_post
    assert unit.date is None
    assert unit.slug == "changelog"
    assert site.posts() == []
    assert unit.url == "/2025-05-05-changelog.html"


def test_file_without_front_matter_is_a_unit(tmp_path):
    site = Site().load([create_site(tmp_path)])
    contact = site.get("contact.html")
    assert contact.front_matter == {}
    assert contact.body == "<h1>Contact</h1>\n"
    assert not contact.has_front_matter
    assert contact.source_type == "text"
    assert site.get("about.md").source_type == "markdown"


def test_load_collects_every_parse_error(tmp_path):
    site_dir = create_site(tmp_path)
    write(site_dir / "broken.md", "---\ntitle: [unclosed\n---\n")
    write(site_dir / "posts" / "2025-02-02-unterminated.md", "---\ndate: 2025-02-02\ntitle: x\n")
    (site_dir / "binary.txt").write_bytes(b"\xff\xfe\x00bad")

    with pytest.raises(LoadError) as excinfo:
        Site().load([site_dir])

    error = excinfo.value
    failed = sorted(path.name for path, _ in error.errors)
    assert failed == ["2025-02-02-unterminated.md", "binary.txt", "broken.md"]
    assert error.message == "3 files failed to load"
    assert all(parse_error.path == path for path, parse_error in error.errors)
    assert len(error.describe()) == 3
    # The files that parsed are still available.
    assert error.site.get("about.md") is not None
    assert error.site.get("broken.md") is None


def test_site_loads_only_once(tmp_path):
    site = Site().load([create_site(tmp_path)])
    with pytest.raises(RuntimeError):
        site.load([tmp_path])


def test_unit_fields_and_context():
    unit = ContentUnit(
        identifier="posts/2025-09-25-my-post.md",
        source_path=Path("posts/2025-09-25-my-post.md"),
        front_matter={
            "category": "a b",
            "date": datetime(2025, 9, 25),
            "draft": "yes",
            "subtitle": "More",
        },
        body="# Heading\n\nThe first paragraph.\n",
        url="/a/b/2025/09/25/my-post.html",
    )
    assert unit.title == "My Post"
    assert unit.categories == ["a", "b"]
    assert unit.draft is False
    assert unit.slug == "my-post"
    assert unit.excerpt == "The first paragraph."
    assert unit.layout is None
    context = unit.to_context()
    assert context["subtitle"] == "More"
    assert context["date"] == datetime(2025, 9, 25)
    assert unit["url"] == "/a/b/2025/09/25/my-post.html"
    with pytest.raises(KeyError):
        unit["missing"]


def test_page_context_has_no_date():
    unit = ContentUnit("about.md", Path("about.md"), {}, "")
    assert "date" not in unit.to_context()
    assert not unit.is_post


def test_url_deriver_adds_leading_slash_to_permalink():
    unit = ContentUnit("a.md", Path("a.md"), {"permalink": "feeds/all.xml"}, "")
    assert UrlDeriver().derive(unit, ".html") == "/feeds/all.xml"


def test_file_loader_skips_internal_paths(tmp_path):
    site_dir = create_site(tmp_path)
    loader = FileContentLoader(site_dir)
    names = [p.relative_to(site_dir).as_posix() for p in loader.content_files()]
    assert "_layouts/default.html" not in names
    assert ".hidden.md" not in names
    assert names == sorted(names)
    assert [p.name for p in loader.static_files()] == ["logo.png"]


def test_units_are_hashable():
    unit = ContentUnit("a.md", Path("a.md"), {"tags": ["x"]}, "")
    same = ContentUnit("a.md", Path("a.md"), {"tags": ["x"]}, "")
    assert hash(unit) == hash(same)
    assert len({unit, same}) == 1
