"""Command-line interface for bootblog.

This module defines the CLI commands using Click framework.

Commands:
- new: Scaffold a new blog project.
- build: Rebuild the whole site into the output directory.
- post: Create a new post interactively.
- boot: Play the boot sequence in the terminal.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from datetime import date
from pathlib import Path
from typing import Any

import click
import questionary
import yaml

from . import __version__
from .boot import BootScript, BootSequencer
from .build import CONFIG_FILENAME, BuildError, load_config
from .frontmatter import ContentError, MalformedFrontMatterError
from .posts import DuplicateSlugError, FileContentLoader
from .templates import BUILTIN_TEMPLATES_DIR
from .utils import slugify

logger = logging.getLogger(__name__)

# Path to the files copied into new projects
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


@click.group()
@click.version_option(version=__version__, prog_name="bootblog")
def cli():
    """bootblog static blog generator."""


def _configure_logging(config: dict[str, Any], verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(
        logging, str(config.get("log_level", "WARNING")).upper(), logging.WARNING
    )
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config_or_exit(project_root: Path) -> dict[str, Any]:
    try:
        return load_config(project_root)
    except BuildError as exc:
        _report_failure([exc.source_path], exc.message, project_root)
        raise SystemExit(1) from None


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new blog project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New blog created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the site here instead of output_dir from bootblog.yaml",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every file read and written")
def build(drafts: bool, output_dir: Path | None, verbose: bool):
    """Rebuild the whole site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    _configure_logging(_load_config_or_exit(project_root), verbose)
    try:
        result = build_site(
            project_root, include_drafts=drafts, output_dir_override=output_dir
        )
    except BuildError as exc:
        _report_failure([exc.source_path], exc.message, project_root)
        raise SystemExit(1) from None
    except MalformedFrontMatterError as exc:
        _report_failure([exc.source] if exc.source else [], exc.message, project_root)
        raise SystemExit(1) from None
    except DuplicateSlugError as exc:
        files = [path for paths in exc.conflicts.values() for path in paths]
        slugs = ", ".join(exc.conflicts)
        _report_failure(files, f"Duplicate slugs: {slugs}", project_root)
        raise SystemExit(1) from None
    except (ContentError, FileNotFoundError) as exc:
        _report_failure([], str(exc), project_root)
        raise SystemExit(1) from None

    for path in result.skipped:
        click.echo(
            click.style(f"Skipped {_display_path(path, project_root)}", fg="yellow"),
            err=True,
        )
    click.echo(
        f"Built {len(result.posts)} posts, {len(result.pages)} pages into {result.output_dir}"
    )


def _display_path(path: Path, project_root: Path) -> str:
    try:
        return str(path.relative_to(project_root))
    except ValueError:
        return str(path)


def _report_failure(files: list[Path], message: str, project_root: Path) -> None:
    """Print a user-friendly build failure."""
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    for path in files:
        click.echo(
            click.style(f"  File: {_display_path(path, project_root)}", fg="yellow"),
            err=True,
        )
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    if not (project_root / CONFIG_FILENAME).exists():
        raise click.ClickException(
            f"No {CONFIG_FILENAME} found. Run this command from a bootblog project root."
        )
    config = _load_config_or_exit(project_root)
    content_dir = project_root / config["content_dir"]

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    tags = questionary.text(
        "Tags (comma separated):", style=_questionary_style()
    ).ask()
    if tags is None:
        raise click.Abort()

    excerpt = questionary.text("Excerpt:", style=_questionary_style()).ask()
    if excerpt is None:
        raise click.Abort()

    featured = questionary.confirm(
        "Feature this post on the index?", default=False, style=_questionary_style()
    ).ask()
    if featured is None:
        raise click.Abort()

    slug = slugify(title)
    existing = _get_existing_slugs(content_dir, tuple(config["extensions"]))
    if slug in existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {existing[slug].name}"
        )

    target_path = content_dir / f"{slug}.md"
    content_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(
        _post_template(title, date.today(), tags, excerpt.strip(), featured),
        encoding="utf-8",
    )
    click.echo(f"Created {_display_path(target_path, project_root)}")


def _get_existing_slugs(content_dir: Path, extensions: tuple[str, ...]) -> dict[str, Path]:
    """Map the slug of every post file (drafts included) to its path."""
    if not content_dir.exists():
        return {}
    loader = FileContentLoader(content_dir, extensions)
    return {slugify(path.stem): path for path in loader.iter_files(include_drafts=True)}


def _post_template(
    title: str, day: date, tags: str, excerpt: str, featured: bool
) -> str:
    """Render the front-matter and starter body of a new post."""
    meta: dict[str, Any] = {
        "title": title,
        "date": day,
        "excerpt": excerpt,
        "tags": [t.strip() for t in tags.split(",") if t.strip()],
        "featured": featured,
    }
    header = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    return f"---\n{header}---\n\nWrite something worth booting for.\n"


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:green bold"),
            ("question", "bold"),
            ("answer", "fg:green"),
            ("pointer", "fg:green bold"),
            ("highlighted", "fg:green bold"),
            ("selected", "fg:green"),
        ]
    )


@cli.command()
@click.option("--fast", is_flag=True, help="Play without delays")
def boot(fast: bool):
    """Play the boot sequence in the terminal."""
    config = _load_config_or_exit(Path.cwd())
    try:
        script = BootScript.from_config(config.get("boot") or {})
    except (TypeError, ValueError) as exc:
        raise click.ClickException(f"Invalid boot settings: {exc}") from exc
    if fast:
        script = BootScript(
            lines=script.lines,
            logs=script.logs,
            min_delay=0.0,
            max_delay=0.0,
            final_delay=0.0,
            log_window=script.log_window,
        )
    try:
        asyncio.run(play_boot_sequence(script))
    except KeyboardInterrupt:
        click.echo("\nBoot interrupted.")


async def play_boot_sequence(script: BootScript) -> None:
    """Play ``script`` on the running event loop, echoing each line."""
    loop = asyncio.get_running_loop()
    done = loop.create_future()

    def finish() -> None:
        if not done.done():
            done.set_result(None)

    sequencer = BootSequencer(
        script,
        loop,
        on_line=lambda index, line: click.echo(click.style(f"> {line}", fg="green")),
        on_log=lambda message: click.echo(click.style(f"  {message}", dim=True)),
        on_complete=finish,
    )
    sequencer.mount()
    try:
        await done
    finally:
        sequencer.unmount()


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new blog project.

    Args:
        root: Root directory for the new project.
    """
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        dest_path = root / src_path.relative_to(_SCAFFOLD_DIR)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    # Templates are copied so they can be customized in place
    for src_path in BUILTIN_TEMPLATES_DIR.glob("*.jinja"):
        dest_path = root / "templates" / src_path.name
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("BOOTBLOG_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        logger.debug("git init failed in %s", root)
