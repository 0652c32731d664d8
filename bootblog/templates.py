"""Template rendering engine for bootblog.

This module uses Jinja2 to render the page templates handed to it by the
static page generator. A project's own templates directory is searched
before the built-in templates shipped with the package.

Key class:
- JinjaTemplates: TemplateRenderer implementation over a Jinja2 environment.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    select_autoescape,
)
from markupsafe import Markup, escape
from pygments.formatters import HtmlFormatter

from .renderers import Heading
from .seo import (
    absolute_url,
    blog_posting_schema,
    blog_schema,
    breadcrumb_schema,
    person_schema,
    website_schema,
)
from .utils import post_url, tag_url

BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "templates" / "default"

__all__ = [
    "BUILTIN_TEMPLATES_DIR",
    "JinjaTemplates",
    "format_date",
    "render_toc",
    "script_json",
]


def format_date(value: date) -> str:
    """Format a date like ``Jan 02, 2026`` with English month names."""
    months = (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    )
    return f"{months[value.month - 1]} {value.day:02d}, {value.year}"


def script_json(value: Any) -> Markup:
    """Serialize ``value`` as JSON that cannot close an enclosing <script> tag."""
    payload = json.dumps(value, sort_keys=True, ensure_ascii=True)
    return Markup(payload.replace("</", "<\\/"))


def render_toc(headings: tuple[Heading, ...] | list[Heading]) -> Markup:
    """Render a table of contents as nested HTML from post headings.

    Generates properly nested `<ul><li><a href="#id">text</a></li></ul>` structure
    based on heading levels.

    Args:
        headings: Headings collected by the Markdown renderer.

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape(heading.id)}">{escape(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class JinjaTemplates:
    """Page template renderer using Jinja2.

    Attributes:
        templates_dir: Project templates directory, searched first.
        site: Site settings (title, url, author, ...).
        env: Jinja2 environment.
    """

    def __init__(
        self,
        site: Mapping[str, Any],
        templates_dir: Path | None = None,
        boot_config: Mapping[str, Any] | None = None,
    ):
        """Initialize the template engine.

        Args:
            site: Site settings exposed to templates as ``site``.
            templates_dir: Optional project templates directory.
            boot_config: Serialized boot script, or None to disable the animation.
        """
        self.site = dict(site)
        self.templates_dir = templates_dir
        loaders = []
        if templates_dir is not None and templates_dir.is_dir():
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(FileSystemLoader(str(BUILTIN_TEMPLATES_DIR)))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.boot_config = dict(boot_config) if boot_config else None
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables and functions in the Jinja environment."""
        self.env.globals["site"] = self.site
        self.env.globals["url_for"] = self._url_for
        self.env.globals["post_url"] = post_url
        self.env.globals["tag_url"] = tag_url
        self.env.globals["render_toc"] = render_toc
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["boot_config"] = self._boot_json
        self.env.globals["absolute_url"] = self._absolute_url
        self.env.globals["json_ld"] = self._json_ld
        self.env.globals["website_schema"] = lambda: website_schema(self.site)
        self.env.globals["person_schema"] = lambda: person_schema(self.site)
        self.env.globals["blog_schema"] = lambda: blog_schema(self.site)
        self.env.globals["blog_posting_schema"] = lambda post: blog_posting_schema(
            self.site, post
        )
        self.env.globals["breadcrumb_schema"] = lambda items: breadcrumb_schema(
            self.site, items
        )
        self.env.filters["format_date"] = format_date

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for syntax highlighting."""
        return Markup(HtmlFormatter(style="monokai").get_style_defs(".highlight"))

    def _boot_json(self) -> Markup | None:
        """Return the boot script as JSON safe to embed in a <script> tag."""
        if self.boot_config is None:
            return None
        return script_json(self.boot_config)

    @staticmethod
    def _json_ld(*schemas: Mapping[str, Any]) -> Markup:
        """Render schema.org data as a JSON-LD <script> element."""
        data = schemas[0] if len(schemas) == 1 else list(schemas)
        return Markup('<script type="application/ld+json">%s</script>') % script_json(data)

    def _absolute_url(self, path: str) -> str:
        """Return ``path`` joined onto ``site.url``."""
        return absolute_url(self.site, path)

    def _url_for(self, path: str) -> str:
        """Generate a root-relative URL for a path; absolute URLs pass through."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return path if path.startswith("/") else f"/{path}"

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Render a named page template.

        Args:
            template_name: Template file name (e.g., 'post.html.jinja').
            context: Variables to make available in the template.

        Returns:
            Rendered document.
        """
        template = self.env.get_template(template_name)
        return template.render(**context)

