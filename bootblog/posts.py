"""Post loading for bootblog.

This module discovers post files, runs each through the front-matter parser
and the Markdown renderer, and assembles the validated, ordered collection.

Key classes:
- Post: Dataclass representing one blog post.
- FileContentLoader: Discovers post files in the content directory.
- PostBuilder: Builds a Post from one source file.
- PostRepository: Loads every post and enforces collection invariants.

Errors:
- MalformedFrontMatterError (per file) aborts the load unless the repository
  runs with ErrorPolicy.SKIP.
- DuplicateSlugError (collection) lists every colliding slug and file.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from .collections import PostCollection
from .frontmatter import ContentError, MalformedFrontMatterError, parse_front_matter
from .renderers import Heading, RendererRegistry
from .utils import (
    first_paragraph,
    is_draft,
    is_internal_path,
    post_url,
    reading_time,
    slugify,
    tag_slug,
)

logger = logging.getLogger(__name__)


class DuplicateSlugError(ContentError):
    """Two or more files resolve to the same slug.

    Attributes:
        conflicts: Mapping of slug to every file claiming it.
    """

    def __init__(self, conflicts: Mapping[str, list[Path]]):
        self.conflicts = {slug: sorted(paths) for slug, paths in sorted(conflicts.items())}
        lines = [
            f"  {slug}: {', '.join(str(p) for p in paths)}"
            for slug, paths in self.conflicts.items()
        ]
        super().__init__("duplicate slugs:\n" + "\n".join(lines))


class ErrorPolicy(str, enum.Enum):
    """What the repository does with a file whose front-matter is malformed."""

    FAIL = "fail"
    SKIP = "skip"


@dataclass(frozen=True)
class Post:
    """One blog post, immutable for the duration of a build.

    Attributes:
        slug: Unique identifier derived from the filename.
        title: Post title from front-matter.
        date: Publication date.
        excerpt: Short summary from front-matter, may be empty.
        tags: Set of tag names.
        featured: Whether the post is highlighted on the index.
        body: Markdown body after front-matter removal.
        rendered: HTML rendered from body.
        source: Path to the source file.
        toc: Headings collected while rendering.
        reading_time: Reading time label, e.g. "4 min read".
        cover_image: Optional cover image URL.
        extra: Unrecognized front-matter keys.
    """

    slug: str
    title: str
    date: date
    excerpt: str
    tags: frozenset[str]
    featured: bool
    body: str
    rendered: str
    source: Path
    toc: tuple[Heading, ...] = ()
    reading_time: str = "1 min read"
    cover_image: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def url(self) -> str:
        return post_url(self.slug)

    @property
    def summary(self) -> str:
        """Excerpt, falling back to the first paragraph of the body."""
        return self.excerpt or first_paragraph(self.body)

    @property
    def sorted_tags(self) -> list[str]:
        """Tags in case-insensitive order; tags with no usable slug are dropped."""
        return sorted(
            (tag for tag in self.tags if tag_slug(tag)), key=lambda t: (t.lower(), t)
        )


class FileContentLoader:
    """Discovers post files in a content directory.

    Files under directories starting with ``_`` are ignored; files whose
    name starts with ``_`` are drafts.

    Attributes:
        content_dir: Directory containing posts.
        extensions: Accepted file suffixes.
    """

    def __init__(self, content_dir: Path, extensions: tuple[str, ...] = (".md", ".mdx")):
        self.content_dir = content_dir
        self.extensions = tuple(ext.lower() for ext in extensions)

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """List every post file, sorted by path.

        Args:
            include_drafts: Whether to include draft files.

        Returns:
            List of paths to post files.
        """
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir() or path.suffix.lower() not in self.extensions:
                continue
            rel = path.relative_to(self.content_dir)
            if is_internal_path(rel):
                continue
            if is_draft(rel) and not include_drafts:
                continue
            files.append(path)
        return files


class PostBuilder:
    """Builds Post objects from source files.

    Attributes:
        renderer_registry: Registry of content renderers.
    """

    def __init__(self, renderer_registry: RendererRegistry | None = None):
        self.renderer_registry = renderer_registry or RendererRegistry()

    def build(self, path: Path) -> Post:
        """Build a Post from a source file.

        Args:
            path: Path to the source file.

        Returns:
            Post object.

        Raises:
            MalformedFrontMatterError: If the front-matter is invalid.
        """
        raw = path.read_text(encoding="utf-8")
        meta, body = parse_front_matter(raw, path)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer is None:
            raise ContentError(f"{path}: no renderer for '{path.suffix}' files")
        rendered = renderer.render(body)

        return Post(
            slug=slugify(path.stem),
            title=meta.title,
            date=meta.date,
            excerpt=meta.excerpt,
            tags=meta.tags,
            featured=meta.featured,
            body=body,
            rendered=rendered.html,
            source=path,
            toc=rendered.toc,
            reading_time=reading_time(body),
            cover_image=meta.cover_image,
            extra=meta.extra,
        )


class PostRepository:
    """Loads every post under a content directory.

    Attributes:
        content_dir: Directory containing posts.
        policy: What to do with files whose front-matter is malformed.
        skipped: Errors for files left out under ErrorPolicy.SKIP.
    """

    def __init__(
        self,
        content_dir: Path,
        policy: ErrorPolicy = ErrorPolicy.FAIL,
        content_loader: FileContentLoader | None = None,
        post_builder: PostBuilder | None = None,
    ):
        self.content_dir = content_dir
        self.policy = ErrorPolicy(policy)
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._post_builder = post_builder or PostBuilder()
        self.skipped: list[MalformedFrontMatterError] = []

    def load(self, include_drafts: bool = False) -> PostCollection:
        """Load all posts.

        Args:
            include_drafts: Whether to include draft posts.

        Returns:
            PostCollection ordered by date descending, then slug.

        Raises:
            FileNotFoundError: If the content directory does not exist.
            MalformedFrontMatterError: Under ErrorPolicy.FAIL, for the first bad file.
            DuplicateSlugError: If slugs collide.
        """
        if not self.content_dir.is_dir():
            raise FileNotFoundError(f"Expected content directory at {self.content_dir}")

        self.skipped = []
        posts: list[Post] = []
        for path in self._content_loader.iter_files(include_drafts):
            try:
                post = self._post_builder.build(path)
            except MalformedFrontMatterError as exc:
                if self.policy is ErrorPolicy.FAIL:
                    raise
                logger.warning("Skipping %s: %s", path, exc.message)
                self.skipped.append(exc)
                continue
            logger.debug("Loaded %s as '%s'", path, post.slug)
            posts.append(post)

        _check_unique_slugs(posts)
        return PostCollection(posts)


def _check_unique_slugs(posts: list[Post]) -> None:
    by_slug: dict[str, list[Path]] = {}
    for post in posts:
        by_slug.setdefault(post.slug, []).append(post.source)
    conflicts = {slug: paths for slug, paths in by_slug.items() if len(paths) > 1}
    if conflicts:
        raise DuplicateSlugError(conflicts)
