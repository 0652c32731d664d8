from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .utils import tag_slug, tag_url

if TYPE_CHECKING:
    from .posts import Post


def _sort_key(post: Post):
    # Newest first; ties broken by slug ascending.
    return (-post.date.toordinal(), post.slug)


class PostCollection(Sequence["Post"]):
    """Immutable, ordered list of Posts for templates and code.

    Posts are always kept sorted by date descending, ties broken by slug.
    """

    def __init__(self, posts: Iterable[Post]):
        self._posts = tuple(sorted(posts, key=_sort_key))

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PostCollection(self._posts[item])
        return self._posts[item]

    def __eq__(self, other) -> bool:
        if isinstance(other, PostCollection):
            return self._posts == other._posts
        return NotImplemented

    __hash__ = None

    def get(self, slug: str) -> Post | None:
        return next((p for p in self._posts if p.slug == slug), None)

    def with_tag(self, tag: str) -> PostCollection:
        """Posts carrying ``tag``, compared case-insensitively."""
        wanted = tag_slug(tag)
        if not wanted:
            return PostCollection([])
        return PostCollection(
            p for p in self._posts if any(tag_slug(t) == wanted for t in p.tags)
        )

    def featured(self) -> PostCollection:
        return PostCollection(p for p in self._posts if p.featured)

    def latest(self, count: int = 5) -> PostCollection:
        return PostCollection(self._posts[:count])

    def tags(self) -> TagCollection:
        """Group posts by tag; spellings differing only in case merge."""
        names: dict[str, str] = {}
        grouped: dict[str, list[Post]] = {}
        for post in self._posts:
            seen: set[str] = set()
            for tag in post.sorted_tags:
                key = tag_slug(tag)
                if key in seen:
                    continue
                seen.add(key)
                names.setdefault(key, tag)
                grouped.setdefault(key, []).append(post)
        return TagCollection(
            TagGroup(slug=key, name=names[key], posts=PostCollection(posts))
            for key, posts in grouped.items()
        )

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"


@dataclass(frozen=True)
class TagGroup:
    """All posts sharing one tag."""

    slug: str
    name: str
    posts: PostCollection

    @property
    def url(self) -> str:
        return tag_url(self.slug)


class TagCollection(Mapping[str, TagGroup]):
    """Mapping of tag slug to TagGroup, iterated in slug order."""

    def __init__(self, groups: Iterable[TagGroup]):
        self._mapping = {g.slug: g for g in sorted(groups, key=lambda g: g.slug)}

    def __getitem__(self, key: str) -> TagGroup:
        return self._mapping[tag_slug(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __contains__(self, key) -> bool:
        return isinstance(key, str) and tag_slug(key) in self._mapping

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
