"""URL rewriting for generated documents.

When ``root_url`` is configured the site is served from another host or below
a path prefix, so root-relative links in every page are made absolute.
"""

from __future__ import annotations

import re

# Only values starting with a single slash are root-relative; "//host" is not.
_ROOT_RELATIVE_ATTR_RE = re.compile(
    r"""\b(?P<attr>href|src|action)=(?P<quote>["'])(?P<url>/(?!/)[^"']*)(?P=quote)"""
)


def join_root_url(root_url: str, path: str) -> str:
    """Join ``root_url`` and ``path`` with exactly one slash between them.

    Examples:
        >>> join_root_url("https://example.com/blog/", "/about/")
        'https://example.com/blog/about/'
        >>> join_root_url("", "/about/")
        '/about/'
    """
    if not root_url:
        return path
    return f"{root_url.rstrip('/')}/{path.lstrip('/')}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Prefix root-relative ``href``, ``src`` and ``action`` values with ``root_url``.

    Absolute, protocol-relative, fragment, scheme (``mailto:``, ``data:``) and
    document-relative URLs are left as they are.
    """
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        quote = match.group("quote")
        url = join_root_url(root_url, match.group("url"))
        return f"{match.group('attr')}={quote}{url}{quote}"

    return _ROOT_RELATIVE_ATTR_RE.sub(repl, html)
