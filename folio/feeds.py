"""Feed generation for Folio.

This module generates site-wide files (RSS feed, sitemap) from the published
units. Feed generation is kept out of the build orchestration; the build asks
the registry for the generated files and hands them to the emitter with the
rest of the output tree.

Feeds never include the build time, so rebuilding unchanged content produces
identical files.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml.
    RSSGenerator: Generates an RSS 2.0 feed of the most recent posts.
    FeedRegistry: Registry for managing feed generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any

from markupsafe import escape

from .collections import recent
from .content import ContentUnit

DEFAULT_FEED_LIMIT = 20


def _rfc822(date: datetime) -> str:
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return format_datetime(date)


class FeedGenerator(ABC):
    """Abstract base class for feed generators.

    Subclasses implement specific feed formats. A generator returns None when
    the site configuration lacks what it needs (usually ``url``).
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Return the URL path the feed is published at."""
        ...

    @abstractmethod
    def generate(
        self, units: Sequence[ContentUnit], config: dict[str, Any]
    ) -> str | None:
        """Generate feed content from the published units.

        Args:
            units: Published units with their resolved URLs.
            config: Site configuration containing ``url`` and ``title``.

        Returns:
            Feed content, or None if the feed cannot be generated.
        """
        ...


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml listing every published unit."""

    @property
    def url(self) -> str:
        return "/sitemap.xml"

    def generate(
        self, units: Sequence[ContentUnit], config: dict[str, Any]
    ) -> str | None:
        base_url = str(config.get("url") or "").rstrip("/")
        if not base_url:
            return None
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for unit in sorted(units, key=lambda u: u.url):
            loc = escape(f"{base_url}{unit.url}")
            if unit.date is not None:
                lastmod = unit.date.strftime("%Y-%m-%d")
                lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the most recent posts.

    ``feed_limit`` in the configuration caps the number of items (default 20).
    ``lastBuildDate`` is the date of the newest post.
    """

    @property
    def url(self) -> str:
        return "/feed.xml"

    def generate(
        self, units: Sequence[ContentUnit], config: dict[str, Any]
    ) -> str | None:
        base_url = str(config.get("url") or "").rstrip("/")
        if not base_url:
            return None
        title = config.get("title") or "Folio Feed"
        limit = int(config.get("feed_limit", DEFAULT_FEED_LIMIT))
        posts = recent([unit for unit in units if unit.is_post], limit)

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(title)}</title>",
            f"<link>{escape(base_url)}/</link>",
            f"<description>{escape(config.get('description') or title)}</description>",
        ]
        if posts:
            rss.append(f"<lastBuildDate>{_rfc822(posts[0].date)}</lastBuildDate>")
        for post in posts:
            link = escape(f"{base_url}{post.url}")
            description = escape(post.excerpt or post.title)
            rss.append(
                f"<item><title>{escape(post.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid><description>{description}</description>"
                f"<pubDate>{_rfc822(post.date)}</pubDate></item>"
            )
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for managing feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, units: Sequence[ContentUnit], config: dict[str, Any]
    ) -> dict[str, str]:
        """Run every generator.

        Returns:
            Generated content keyed by URL path; skipped feeds are absent.
        """
        units = list(units)
        generated: dict[str, str] = {}
        for generator in self._generators:
            content = generator.generate(units, config)
            if content is not None:
                generated[generator.url] = content
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
