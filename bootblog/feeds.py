"""Feed generation for bootblog.

This module generates the RSS feed and the sitemap from the post collection.
Feed generation is separate from page generation; the static page generator
asks the registry for every feed and adds them to its output.

Timestamps are taken from the newest post, never from the clock, so two
builds of the same content produce identical feeds.

Classes:
    FeedGenerator: Abstract base class for feed generators.
    SitemapGenerator: Generates sitemap.xml.
    RSSGenerator: Generates feed.xml (RSS 2.0).
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date, datetime, timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING, Any

from markupsafe import escape

from .html_utils import join_root_url

if TYPE_CHECKING:
    from .collections import PostCollection


def rfc822(value: date) -> str:
    """Format a date as an RFC 822 timestamp at midnight UTC."""
    moment = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return format_datetime(moment, usegmt=True)


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, posts: PostCollection, site: Mapping[str, Any]) -> str | None:
        """Generate feed content from posts.

        Args:
            posts: Ordered post collection.
            site: Site settings containing at least ``url``.

        Returns:
            Feed content as a string, or None if the feed cannot be generated
            (e.g., no site URL configured).
        """
        ...


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml covering the home page, blog listing, posts and tags.

    Requires ``url`` in site settings to generate absolute URLs.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, posts: PostCollection, site: Mapping[str, Any]) -> str | None:
        base_url = str(site.get("url") or "").rstrip("/")
        if not base_url:
            return None

        newest = posts[0].date.isoformat() if len(posts) else None
        entries: list[tuple[str, str | None, str, str]] = [
            ("/", newest, "weekly", "1.0"),
            ("/blog/", newest, "daily", "0.9"),
        ]
        for post in posts:
            entries.append((post.url, post.date.isoformat(), "monthly", "0.7"))
        for group in posts.tags().values():
            entries.append((group.url, group.posts[0].date.isoformat(), "weekly", "0.5"))

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for path, lastmod, changefreq, priority in entries:
            loc = escape(join_root_url(base_url, path))
            parts = [f"<loc>{loc}</loc>"]
            if lastmod:
                parts.append(f"<lastmod>{lastmod}</lastmod>")
            parts.append(f"<changefreq>{changefreq}</changefreq>")
            parts.append(f"<priority>{priority}</priority>")
            lines.append(f"  <url>{''.join(parts)}</url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed with all posts, newest first.

    Requires ``url`` in site settings. Uses ``title``, ``description``,
    ``language`` and ``author`` for channel and item metadata.
    """

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, posts: PostCollection, site: Mapping[str, Any]) -> str | None:
        base_url = str(site.get("url") or "").rstrip("/")
        if not base_url:
            return None

        author = site.get("author") or {}
        author_line = ""
        if author.get("email"):
            author_line = escape(f"{author['email']} ({author.get('name', '')})")

        items = []
        for post in posts:
            link = escape(join_root_url(base_url, post.url))
            item = [
                "    <item>",
                f"      <title>{escape(post.title)}</title>",
                f"      <link>{link}</link>",
                f'      <guid isPermaLink="true">{link}</guid>',
                f"      <description>{escape(post.summary)}</description>",
                f"      <pubDate>{rfc822(post.date)}</pubDate>",
            ]
            item.extend(
                f"      <category>{escape(tag)}</category>" for tag in post.sorted_tags
            )
            if author_line:
                item.append(f"      <author>{author_line}</author>")
            item.append("    </item>")
            items.append("\n".join(item))

        channel = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{escape(str(site.get('title', '')))}</title>",
            f"    <link>{escape(base_url)}</link>",
            f"    <description>{escape(str(site.get('description', '')))}</description>",
            f"    <language>{escape(str(site.get('language', 'en')))}</language>",
        ]
        if len(posts):
            channel.append(f"    <lastBuildDate>{rfc822(posts[0].date)}</lastBuildDate>")
        channel.append(
            f'    <atom:link href="{escape(base_url)}/{self.filename}" '
            'rel="self" type="application/rss+xml"/>'
        )
        channel.extend(items)
        channel.extend(["  </channel>", "</rss>"])
        return "\n".join(channel) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        """Register a feed generator."""
        self._generators.append(generator)

    def generate_all(
        self, posts: PostCollection, site: Mapping[str, Any]
    ) -> dict[str, str]:
        """Generate all registered feeds.

        Returns:
            Mapping of filename to content for every feed that was generated.
        """
        generated: dict[str, str] = {}
        for generator in self._generators:
            content = generator.generate(posts, site)
            if content is not None:
                generated[generator.filename] = content
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the RSS and sitemap generators."""
    registry = FeedRegistry()
    registry.register(RSSGenerator())
    registry.register(SitemapGenerator())
    return registry
