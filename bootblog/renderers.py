"""Content renderers for bootblog.

This module contains implementations of the ContentRenderer protocol.
Markdown is rendered with mistune; fenced code blocks are highlighted with
Pygments and keep their language tag either way.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- RendererRegistry: Maps source files to renderers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


@dataclass(frozen=True)
class Heading:
    """Represents a heading extracted from markdown content for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass(frozen=True)
class RenderedContent:
    """Output of a content renderer."""

    html: str
    toc: tuple[Heading, ...] = ()


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


def code_language(info: str | None) -> str:
    """Return the language tag from a fence info string ('rust title=x' -> 'rust')."""
    parts = (info or "").split()
    return parts[0] if parts else ""


class _HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors and syntax highlighting.

    Attributes:
        headings: List of Heading objects extracted during rendering.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with auto-generated ID and track for TOC."""
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        self.headings.append(Heading(id=heading_id, text=text, level=level))

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Unknown languages are rendered as plain text; the language tag is
        kept in the class attribute in both cases.

        Args:
            code: The code content.
            info: Fence info string (e.g., 'python', 'rust ignore').

        Returns:
            HTML string with highlighted code.
        """
        lang = str(escape(code_language(info)))
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(cssclass=f"highlight language-{lang}")
                return highlight(code, lexer, formatter)
        escaped = escape(code)
        lang_class = f' class="language-{lang}"' if lang else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A fresh mistune parser is built for every call so heading ids never leak
    between posts.
    """

    def __init__(self, extensions: tuple[str, ...] = (".md", ".mdx")):
        self.extensions = tuple(ext.lower() for ext in extensions)

    @property
    def source_type(self) -> str:
        """Return the source type identifier."""
        return "markdown"

    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file."""
        return path.suffix.lower() in self.extensions

    def render(self, content: str) -> RenderedContent:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source content.

        Returns:
            RenderedContent with the HTML and collected headings.
        """
        renderer = _HighlightRenderer()
        markdown = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
        html = markdown(content)
        return RenderedContent(html=html, toc=tuple(renderer.headings))


class RendererRegistry:
    """Registry for content renderers.

    New content types can be registered without modifying the repository.
    """

    def __init__(self, renderers: list | None = None):
        self._renderers: list = []
        for renderer in renderers if renderers is not None else [MarkdownRenderer()]:
            self.register(renderer)

    def register(self, renderer) -> None:
        """Register a new renderer.

        Args:
            renderer: A ContentRenderer implementation.
        """
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Get the appropriate renderer for a file.

        Args:
            path: Path to the source file.

        Returns:
            The first renderer that can handle the file, or None.
        """
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None

    def extensions(self) -> tuple[str, ...]:
        """Return every suffix a registered renderer accepts."""
        found: list[str] = []
        for renderer in self._renderers:
            for ext in getattr(renderer, "extensions", ()):
                if ext not in found:
                    found.append(ext)
        return tuple(found)
