"""Site building functionality for bootblog.

This module drives a full build: it loads configuration, loads and validates
every post, generates the pages and writes them to the output directory.
Every build starts from scratch; nothing is carried over between builds.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from bootblog.yaml.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError

from .boot import BootScript
from .collections import PostCollection
from .generator import GeneratedPage, PageRenderError, StaticPageGenerator
from .posts import ErrorPolicy, FileContentLoader, PostBuilder, PostRepository
from .renderers import MarkdownRenderer, RendererRegistry
from .templates import JinjaTemplates
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "bootblog.yaml"


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content/posts",
    "templates_dir": "templates",
    "output_dir": "output",
    "root_url": "",
    "on_error": "fail",
    "extensions": [".md", ".mdx"],
    "log_level": "WARNING",
    "index_posts": 3,
    "site": {
        "title": "0x55aa",
        "description": "",
        "url": "",
        "language": "en",
        "keywords": [],
        "author": {"name": "", "email": "", "url": ""},
    },
    "boot": {
        "enabled": True,
        "min_delay": 0.8,
        "max_delay": 1.5,
        "final_delay": 2.0,
        "log_window": 3,
    },
}


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: Every post in the site, newest first.
        pages: Every document written.
        output_dir: Directory where the site was built.
        skipped: Files left out because their front-matter was malformed.
    """

    posts: PostCollection
    pages: list[GeneratedPage]
    output_dir: Path
    skipped: list[Path]


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _check_config(config: dict[str, Any], config_path: Path) -> None:
    """Reject settings whose shape the build cannot use."""
    for section in ("site", "boot"):
        if not isinstance(config.get(section), dict):
            raise BuildError(config_path, f"'{section}' must be a mapping")
    site = config["site"]
    if not isinstance(site.get("author"), dict):
        raise BuildError(
            config_path, "'site.author' must be a mapping with 'name', 'email' and 'url'"
        )
    keywords = site.get("keywords")
    if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
        raise BuildError(config_path, "'site.keywords' must be a list of strings")
    count = config.get("index_posts")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise BuildError(config_path, "'index_posts' must be a non-negative integer")


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from bootblog.yaml.

    Nested ``site`` and ``boot`` sections are merged key by key over the
    defaults.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        BuildError: If the file is not valid YAML, not a mapping, or a
            section has the wrong shape.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise BuildError(config_path, f"Invalid YAML: {exc}", exc) from exc
    if not isinstance(loaded, dict):
        raise BuildError(config_path, "Configuration must be a mapping")
    config = _merge(DEFAULT_CONFIG, loaded)
    _check_config(config, config_path)
    return config


def _boot_script(config: dict[str, Any], project_root: Path) -> BootScript | None:
    boot = config.get("boot") or {}
    if not boot.get("enabled", True):
        return None
    try:
        return BootScript.from_config(boot)
    except (TypeError, ValueError) as exc:
        raise BuildError(
            project_root / CONFIG_FILENAME, f"Invalid boot settings: {exc}", exc
        ) from exc


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft posts (starting with _).
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing all posts, pages and the output directory.

    Raises:
        MalformedFrontMatterError: A post is malformed and on_error is "fail".
        DuplicateSlugError: Two or more posts share a slug.
        BuildError: Invalid configuration or a template failure.
    """
    config = load_config(project_root)
    config_path = project_root / CONFIG_FILENAME

    try:
        policy = ErrorPolicy(config.get("on_error", "fail"))
    except ValueError as exc:
        raise BuildError(
            config_path,
            f"on_error must be 'fail' or 'skip', got {config.get('on_error')!r}",
            exc,
        ) from exc

    extensions = tuple(config.get("extensions") or DEFAULT_CONFIG["extensions"])
    content_dir = project_root / config["content_dir"]
    repository = PostRepository(
        content_dir,
        policy=policy,
        content_loader=FileContentLoader(content_dir, extensions),
        post_builder=PostBuilder(RendererRegistry([MarkdownRenderer(extensions)])),
    )
    posts = repository.load(include_drafts=include_drafts)

    boot = _boot_script(config, project_root)
    templates = JinjaTemplates(
        config["site"],
        templates_dir=project_root / config["templates_dir"],
        boot_config=boot.to_config() if boot else None,
    )
    generator = StaticPageGenerator(
        templates,
        config["site"],
        root_url=str(config.get("root_url") or ""),
        latest_count=config["index_posts"],
    )
    try:
        pages = generator.generate(posts)
    except PageRenderError as exc:
        original = exc.original_error
        source = exc.source or project_root / config["templates_dir"]
        if isinstance(original, TemplateSyntaxError) and original.filename:
            source = Path(original.filename)
        raise BuildError(source, _format_error_message(original), original) from exc

    output_dir = output_dir_override or (project_root / config["output_dir"])
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)
    generator.write(output_dir, pages)

    logger.info("Built %d posts, %d pages into %s", len(posts), len(pages), output_dir)
    return BuildResult(
        posts=posts,
        pages=pages,
        output_dir=output_dir,
        skipped=[exc.source for exc in repository.skipped if exc.source is not None],
    )


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error on line {exc.lineno}: {exc.message}"

    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"

    return f"{error_type}: {error_msg}"
