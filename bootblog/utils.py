"""Utility functions for bootblog.

This module contains string and path helpers used throughout the bootblog codebase.

Key functions:
    slugify: Convert filenames to URL slugs.
    tag_slug: Normalize a tag into its URL segment.
    reading_time: Estimate reading time for a markdown body.
    first_paragraph: Extract a plain-text summary from markdown.
    ensure_clean_dir: Recreate the output directory empty.
"""

from __future__ import annotations

import math
import re
import shutil
from pathlib import Path

WORDS_PER_MINUTE = 200

_CODE_FENCE_RE = re.compile(r"^(```|~~~).*?(^\1|\Z)", re.DOTALL | re.MULTILINE)


def _strip_date_prefix(name: str) -> str:
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        return "-".join(parts[3:])
    return name


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.
    """
    cleaned = _strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def tag_slug(tag: str) -> str:
    """Normalize a tag for URLs and case-insensitive grouping.

    Examples:
        >>> tag_slug("Web Security")
        'web-security'
        >>> tag_slug("C++")
        'c++'
    """
    cleaned = re.sub(r"[^\w+.]+", "-", tag.strip().lower())
    return cleaned.strip("-.")


def reading_time(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> str:
    """Estimate reading time as a short label like ``"3 min read"``.

    Args:
        text: Markdown body.
        words_per_minute: Reading speed.

    Returns:
        Reading time label, never less than one minute.
    """
    words = len(re.findall(r"\S+", text))
    minutes = max(1, math.ceil(words / words_per_minute))
    return f"{minutes} min read"


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first prose paragraph from markdown.

    Skips headings, images, code fences and rules. Strips HTML tags,
    collapses whitespace and truncates to the specified limit.

    Args:
        text: Markdown content to extract from.
        limit: Maximum character length of result.

    Returns:
        Cleaned first paragraph, truncated to limit characters.
    """
    text = _CODE_FENCE_RE.sub("", text)
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "---", "<")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]", "", para)
        collapsed = " ".join(para.split())
        return collapsed[:limit]
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Create ``path`` as an empty directory, removing whatever was there."""
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
    path.mkdir(parents=True)


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (contains components starting with _).

    Args:
        path: Relative path to check.

    Returns:
        True if any directory component starts with underscore.
    """
    return any(part.startswith("_") for part in path.parts[:-1])


def is_draft(path: Path) -> bool:
    """Check if a file is a draft (its name starts with _)."""
    return path.name.startswith("_")


def post_url(slug: str) -> str:
    """Return the URL path of a post detail page."""
    return f"/blog/{slug}/"


def tag_url(tag: str) -> str:
    """Return the URL path of a tag listing page."""
    return f"/blog/tags/{tag_slug(tag)}/"
