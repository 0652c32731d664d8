"""Front-matter parsing for bootblog.

Every post starts with a YAML block delimited by ``---`` marker lines:

    ---
    title: "Hardening SSH"
    date: 2026-01-02
    tags: [security, linux]
    ---
    Body markdown...

This module splits that block from the body and validates it into a typed
FrontMatter record.

Key functions:
- split_front_matter: Separate the raw YAML block from the body.
- extract_front_matter: Parse the block into an untyped dict.
- parse_front_matter: Parse and validate into a FrontMatter record.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

MARKER = "---"

REQUIRED_KEYS = ("title", "date")
OPTIONAL_KEYS = ("excerpt", "tags", "featured", "cover_image", "coverImage")


class ContentError(Exception):
    """Base class for errors in blog content."""


class MalformedFrontMatterError(ContentError):
    """Front-matter block is unterminated, unparsable, or missing required keys.

    Attributes:
        source: Path to the offending file, when known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source: Path | None = None):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}" if source else message)


class InvalidDateError(MalformedFrontMatterError):
    """The ``date`` key does not parse to a calendar date."""


@dataclass(frozen=True)
class FrontMatter:
    """Validated post metadata.

    Attributes:
        title: Post title, never empty.
        date: Publication date.
        excerpt: Short summary, may be empty.
        tags: Set of tag names.
        featured: Whether the post is highlighted on the index.
        cover_image: Optional cover image URL.
        extra: Unrecognized keys, kept as parsed.
    """

    title: str
    date: date
    excerpt: str = ""
    tags: frozenset[str] = frozenset()
    featured: bool = False
    cover_image: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


def _is_marker(line: str) -> bool:
    return line.rstrip() == MARKER


def split_front_matter(
    text: str, source: Path | None = None
) -> tuple[str | None, str]:
    """Split raw file text into the front-matter block and the body.

    Args:
        text: Raw file content.
        source: Path used in error messages.

    Returns:
        Tuple of (raw YAML block or None when absent, body).

    Raises:
        MalformedFrontMatterError: If the block is opened but never closed.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or not _is_marker(lines[0]):
        return None, text
    for index in range(1, len(lines)):
        if _is_marker(lines[index]):
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return block, body
    raise MalformedFrontMatterError(
        f"front-matter opened with '{MARKER}' but never closed", source
    )


def extract_front_matter(
    text: str, source: Path | None = None
) -> tuple[dict[str, Any], str]:
    """Extract YAML front-matter from content without validating keys.

    Args:
        text: Raw file content.
        source: Path used in error messages.

    Returns:
        Tuple of (front-matter dict, remaining content).

    Raises:
        MalformedFrontMatterError: If the block is unterminated, is not
            valid YAML, or is not a mapping.
    """
    block, body = split_front_matter(text, source)
    if block is None:
        return {}, body
    try:
        data = yaml.safe_load(block)
    except (yaml.YAMLError, ValueError) as exc:
        # PyYAML raises ValueError for timestamps like 2026-13-45
        raise MalformedFrontMatterError(
            f"invalid YAML in front-matter: {exc}", source
        ) from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise MalformedFrontMatterError(
            f"front-matter must be a mapping, got {type(data).__name__}", source
        )
    return data, body


def parse_date(value: Any, source: Path | None = None) -> date:
    """Coerce a front-matter ``date`` value to a calendar date.

    Accepts YAML dates and datetimes, and ISO 8601 strings
    (``2026-01-02`` or ``2026-01-02T10:00:00Z``).

    Raises:
        InvalidDateError: For anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        try:
            return date.fromisoformat(candidate)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise InvalidDateError(f"invalid date {value!r}, expected YYYY-MM-DD", source)


def _parse_tags(value: Any, source: Path | None) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise MalformedFrontMatterError(
            f"'tags' must be a list of strings, got {type(value).__name__}", source
        )
    tags = set()
    for item in value:
        if isinstance(item, (dict, list)) or item is None:
            raise MalformedFrontMatterError(f"invalid tag {item!r}", source)
        name = str(item).strip()
        if name:
            tags.add(name)
    return frozenset(tags)


def _optional_str(data: Mapping[str, Any], key: str, source: Path | None) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise MalformedFrontMatterError(f"'{key}' must be a string", source)
    return str(value).strip()


def validate_front_matter(
    data: Mapping[str, Any], source: Path | None = None
) -> FrontMatter:
    """Validate an untyped front-matter mapping into a FrontMatter record.

    Raises:
        MalformedFrontMatterError: If a required key is missing or a value
            has the wrong shape.
        InvalidDateError: If ``date`` does not parse.
    """
    missing = [key for key in REQUIRED_KEYS if data.get(key) in (None, "")]
    if missing:
        raise MalformedFrontMatterError(
            f"missing required front-matter key(s): {', '.join(missing)}", source
        )

    title = _optional_str(data, "title", source)
    if not title:
        raise MalformedFrontMatterError("'title' must not be empty", source)

    featured = data.get("featured", False)
    if featured is None:
        featured = False
    if not isinstance(featured, bool):
        raise MalformedFrontMatterError(
            f"'featured' must be true or false, got {featured!r}", source
        )

    known = set(REQUIRED_KEYS) | set(OPTIONAL_KEYS)
    extra = {key: value for key, value in data.items() if key not in known}
    for key in extra:
        logger.warning("%s: unrecognized front-matter key '%s'", source or "<text>", key)

    return FrontMatter(
        title=title,
        date=parse_date(data["date"], source),
        excerpt=_optional_str(data, "excerpt", source),
        tags=_parse_tags(data.get("tags"), source),
        featured=featured,
        cover_image=_optional_str(data, "cover_image", source)
        or _optional_str(data, "coverImage", source),
        extra=extra,
    )


def parse_front_matter(
    text: str, source: Path | None = None
) -> tuple[FrontMatter, str]:
    """Parse and validate the front-matter of a post.

    Args:
        text: Raw file content.
        source: Path used in error messages.

    Returns:
        Tuple of (FrontMatter, body markdown).
    """
    data, body = extract_front_matter(text, source)
    return validate_front_matter(data, source), body
