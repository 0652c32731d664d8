"""Static page generation for bootblog.

Turns a PostCollection into the documents of the site:

- ``index.html``: featured posts and the latest few posts.
- ``blog/index.html``: every post, plus the tag cloud.
- ``blog/<slug>/index.html``: one page per post.
- ``blog/tags/<tag>/index.html``: one page per tag.
- ``feed.xml`` and ``sitemap.xml`` when the site URL is known.

Generation is a pure function of the posts, the site settings and the
templates; writing to disk is a separate step.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .collections import PostCollection
from .feeds import FeedRegistry, create_default_feed_registry
from .html_utils import absolutize_html_urls
from .protocols import TemplateRenderer

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = "index.html.jinja"
POST_TEMPLATE = "post.html.jinja"
TAG_TEMPLATE = "tag.html.jinja"
BLOG_TEMPLATE = "blog.html.jinja"


class PageRenderError(Exception):
    """A template failed while rendering one output document.

    Attributes:
        path: Output path of the document being rendered.
        source: Source file of the post involved, if any.
        original_error: The exception raised by the template renderer.
    """

    def __init__(self, path: str, source: Path | None, original_error: Exception):
        self.path = path
        self.source = source
        self.original_error = original_error
        super().__init__(f"{path}: {original_error}")


@dataclass(frozen=True)
class GeneratedPage:
    """One output document.

    Attributes:
        path: Output path relative to the output directory (posix style).
        content: Document text.
    """

    path: str
    content: str


class StaticPageGenerator:
    """Generates every document of the site from a post collection.

    Attributes:
        renderer: Template collaborator producing final markup.
        site: Site settings passed to templates and feeds.
        root_url: When set, root-relative URLs in HTML are made absolute.
        feeds: Registry of feed generators.
        latest_count: Number of recent posts shown on the home page.
    """

    def __init__(
        self,
        renderer: TemplateRenderer,
        site: Mapping[str, Any],
        root_url: str = "",
        feeds: FeedRegistry | None = None,
        latest_count: int = 3,
    ):
        self.renderer = renderer
        self.site = site
        self.root_url = root_url
        self.feeds = feeds or create_default_feed_registry()
        self.latest_count = latest_count

    def generate(self, posts: PostCollection) -> list[GeneratedPage]:
        """Generate all documents.

        Args:
            posts: Validated, ordered posts.

        Returns:
            Generated documents sorted by output path.

        Raises:
            PageRenderError: If a template fails.
        """
        tags = posts.tags()
        pages = [
            self._render(
                "index.html",
                INDEX_TEMPLATE,
                {
                    "posts": posts,
                    "latest": posts.latest(self.latest_count),
                    "featured": posts.featured(),
                    "tags": tags,
                    "page_path": "/",
                },
            ),
            self._render(
                "blog/index.html",
                BLOG_TEMPLATE,
                {"posts": posts, "tags": tags, "page_path": "/blog/"},
            ),
        ]
        for post in posts:
            pages.append(
                self._render(
                    f"blog/{post.slug}/index.html",
                    POST_TEMPLATE,
                    {"post": post, "posts": posts, "tags": tags, "page_path": post.url},
                    source=post.source,
                )
            )
        for group in tags.values():
            pages.append(
                self._render(
                    f"blog/tags/{group.slug}/index.html",
                    TAG_TEMPLATE,
                    {"tag": group, "posts": posts, "tags": tags, "page_path": group.url},
                )
            )
        for filename, content in self.feeds.generate_all(posts, self.site).items():
            pages.append(GeneratedPage(path=filename, content=content))
        return sorted(pages, key=lambda page: page.path)

    def _render(
        self,
        path: str,
        template_name: str,
        context: dict[str, Any],
        source: Path | None = None,
    ) -> GeneratedPage:
        try:
            content = self.renderer.render(template_name, context)
        except Exception as exc:
            raise PageRenderError(path, source, exc) from exc
        if self.root_url:
            content = absolutize_html_urls(content, self.root_url)
        return GeneratedPage(path=path, content=content)

    def write(self, output_dir: Path, pages: list[GeneratedPage]) -> None:
        """Write generated documents below ``output_dir``.

        Args:
            output_dir: Base output directory.
            pages: Documents from ``generate``.
        """
        for page in pages:
            target = output_dir / page.path
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8", newline="\n") as f:
                f.write(page.content)
            logger.debug("Wrote %s", target)
