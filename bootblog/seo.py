"""schema.org structured data for bootblog pages.

Each function returns a plain dict ready to be serialized as JSON-LD and
embedded with the ``json_ld`` template global. URLs are made absolute against
``site.url`` when it is set.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .html_utils import join_root_url

if TYPE_CHECKING:
    from .posts import Post

SCHEMA_CONTEXT = "https://schema.org"


def absolute_url(site: Mapping[str, Any], path: str) -> str:
    """Join ``path`` onto the site URL; root-relative when no URL is set."""
    if path.startswith(("http://", "https://")):
        return path
    return join_root_url(str(site.get("url") or ""), path)


def _author(site: Mapping[str, Any]) -> dict[str, Any]:
    author = site.get("author") or {}
    person: dict[str, Any] = {"@type": "Person", "name": author.get("name", "")}
    if author.get("url"):
        person["url"] = author["url"]
    return person


def website_schema(site: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "WebSite",
        "name": site.get("title", ""),
        "url": absolute_url(site, "/"),
        "description": site.get("description", ""),
        "author": _author(site),
    }


def person_schema(site: Mapping[str, Any]) -> dict[str, Any]:
    person = _author(site)
    person["@context"] = SCHEMA_CONTEXT
    person["description"] = site.get("description", "")
    return person


def blog_schema(site: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Blog",
        "name": f"{site.get('title', '')} Blog",
        "url": absolute_url(site, "/blog/"),
        "description": site.get("description", ""),
        "author": _author(site),
    }


def blog_posting_schema(site: Mapping[str, Any], post: Post) -> dict[str, Any]:
    """Describe one post as a ``BlogPosting``.

    The first tag in display order is used as the article section, and the
    post's date doubles as the modification date.
    """
    url = absolute_url(site, post.url)
    tags = post.sorted_tags
    schema: dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "BlogPosting",
        "headline": post.title,
        "description": post.summary,
        "datePublished": post.date.isoformat(),
        "dateModified": post.date.isoformat(),
        "author": _author(site),
        "publisher": {"@type": "Person", "name": _author(site)["name"]},
        "url": url,
        "mainEntityOfPage": {"@type": "WebPage", "@id": url},
        "keywords": ", ".join(tags),
        "articleSection": tags[0] if tags else "Technology",
        "wordCount": len(re.findall(r"\S+", post.body)),
        "timeRequired": post.reading_time,
    }
    if post.cover_image:
        schema["image"] = absolute_url(site, post.cover_image)
    return schema


def breadcrumb_schema(
    site: Mapping[str, Any], items: list[tuple[str, str]]
) -> dict[str, Any]:
    """Build a ``BreadcrumbList`` from ``(name, path)`` pairs, outermost first."""
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": [
            {
                "@type": "ListItem",
                "position": position,
                "name": name,
                "item": absolute_url(site, path),
            }
            for position, (name, path) in enumerate(items, start=1)
        ],
    }
