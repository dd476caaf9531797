from datetime import datetime
from pathlib import Path

from folio.content import ContentUnit
from folio.feeds import (
    FeedGenerator,
    FeedRegistry,
    RSSGenerator,
    SitemapGenerator,
    create_default_feed_registry,
)

CONFIG = {"url": "https://example.com/", "title": "Tom & Jerry", "description": "A blog"}


def make_unit(identifier: str, url: str, **front_matter) -> ContentUnit:
    return ContentUnit(identifier, Path(identifier), front_matter, "Summary text.\n", url=url)


def sample_units() -> list[ContentUnit]:
    return [
        make_unit("about.md", "/about.html", title="About"),
        make_unit(
            "posts/2025-01-10-hello.md",
            "/2025/01/10/hello.html",
            title="Hello",
            date=datetime(2025, 1, 10),
        ),
        make_unit(
            "posts/2025-09-25-news.md",
            "/2025/09/25/news.html",
            title="News <1>",
            date=datetime(2025, 9, 25),
        ),
    ]


def test_sitemap_lists_every_unit():
    sitemap = SitemapGenerator().generate(sample_units(), CONFIG)
    assert sitemap.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<url><loc>https://example.com/about.html</loc></url>" in sitemap
    assert (
        "<url><loc>https://example.com/2025/09/25/news.html</loc>"
        "<lastmod>2025-09-25</lastmod></url>"
    ) in sitemap


def test_rss_feed_lists_recent_posts():
    feed = RSSGenerator().generate(sample_units(), CONFIG)
    assert "<title>Tom &amp; Jerry</title>" in feed
    assert "<lastBuildDate>Thu, 25 Sep 2025 00:00:00 +0000</lastBuildDate>" in feed
    assert feed.index("News &lt;1&gt;") < feed.index("<title>Hello</title>")
    assert "About" not in feed
    assert "<description>Summary text.</description>" in feed


def test_rss_feed_limit():
    feed = RSSGenerator().generate(sample_units(), {**CONFIG, "feed_limit": 1})
    assert feed.count("<item>") == 1
    assert "News &lt;1&gt;" in feed


def test_generators_skip_without_url():
    assert SitemapGenerator().generate(sample_units(), {}) is None
    assert RSSGenerator().generate(sample_units(), {"url": ""}) is None


def test_registry_generates_by_url():
    generated = create_default_feed_registry().generate_all(sample_units(), CONFIG)
    assert set(generated) == {"/sitemap.xml", "/feed.xml"}
    assert create_default_feed_registry().generate_all(sample_units(), {}) == {}


def test_custom_generator():
    class JsonFeed(FeedGenerator):
        @property
        def url(self) -> str:
            return "/feed.json"

        def generate(self, units, config):
            return str(len(units))

    registry = FeedRegistry()
    registry.register(JsonFeed())
    assert registry.generate_all(iter(sample_units()), CONFIG) == {"/feed.json": "3"}


def test_feed_dates_use_post_date():
    unit = make_unit("2024-02-03-x.md", "/x.html", date=datetime(2024, 5, 6, 7, 8))
    feed = RSSGenerator().generate([unit], CONFIG)
    assert "<pubDate>Mon, 06 May 2024 07:08:00 +0000</pubDate>" in feed
