"""Protocol definitions for bootblog.

This module defines the interfaces (protocols) at the seams of the pipeline:
content renderers, the page template collaborator, and the timer scheduler
driving the boot sequence.

These protocols enable:
- Loose coupling between components
- Easy testing through fake implementations
- Swapping the template engine or event loop without touching the pipeline
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .renderers import RenderedContent


@runtime_checkable
class ContentRenderer(Protocol):
    """Protocol for rendering post bodies.

    Implementations handle one content type (Markdown, MDX, ...).
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file.

        Args:
            path: Path to the source file.

        Returns:
            True if this renderer can process the file.
        """
        ...

    @abstractmethod
    def render(self, content: str) -> RenderedContent:
        """Render a post body.

        Args:
            content: Body text with front-matter already removed.

        Returns:
            RenderedContent with HTML and table-of-contents headings.
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown')."""
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for the page template collaborator.

    The static page generator hands over a template name and a context of
    validated posts; implementations turn that into final markup.
    """

    @abstractmethod
    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Render a named page template.

        Args:
            template_name: Template to render (e.g., 'post.html.jinja').
            context: Variables to make available in the template.

        Returns:
            Rendered document.
        """
        ...


@runtime_checkable
class TimerHandle(Protocol):
    """A pending timer that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Schedules callbacks after a delay.

    ``asyncio.AbstractEventLoop`` satisfies this protocol.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds.

        Returns:
            Handle whose ``cancel()`` prevents the callback from running.
        """
        ...
