"""bootblog static blog generator.

This package turns a directory of markdown posts with YAML front-matter into a
static site: one page per post, one page per tag, a home index, an RSS feed and
a sitemap. Every page plays a short terminal boot sequence before the content
is revealed.

The main entry point is the CLI module, which provides commands for scaffolding
a new blog, creating posts, building the site and previewing the boot sequence.

Pipeline:
- frontmatter: split and validate the metadata block of each post
- renderers: Markdown to HTML with highlighted code blocks
- posts: load every post into an ordered, validated collection
- generator: render pages through the template collaborator
- boot: the boot sequence state machine
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
