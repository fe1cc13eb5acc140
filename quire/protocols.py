"""Protocol definitions for Quire.

These are the seams where a build can be extended: new content types plug
in as a ContentRenderer, alternative discovery as a ContentLoader, and a
theme supplies its templates and static files through the Theme protocol.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from jinja2 import BaseLoader

if TYPE_CHECKING:
    from .renderers import Heading


@runtime_checkable
class ContentRenderer(Protocol):
    """Renders one content type to sanitized HTML."""

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer handles the given file."""
        ...

    @abstractmethod
    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        """Render content to HTML.

        Args:
            content: Source body without frontmatter.
            folder: Content folder of the document (for relative images).

        Returns:
            Tuple of (sanitized HTML, headings for the TOC).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Source type identifier, e.g. 'markdown' or 'html'."""
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers content files."""

    @abstractmethod
    def iter_files(self) -> list[Path]:
        """Return every content file in a stable order."""
        ...


@runtime_checkable
class Theme(Protocol):
    """Templates and static files used to present a site."""

    name: str

    @abstractmethod
    def loader(self) -> BaseLoader:
        """Jinja2 loader for the theme's templates."""
        ...

    @abstractmethod
    def static_dir(self) -> Path | None:
        """Folder of static files copied into the output, if any."""
        ...
