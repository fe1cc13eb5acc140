"""Error types raised by Quire.

Per-document problems (ParseError, TemplateError) are collected by the build
and reported to the operator while the rest of the site still builds.
Everything else (ConfigError, BuildError, PublishError) aborts the build.
"""

from __future__ import annotations

from pathlib import Path


class QuireError(Exception):
    """Base class for all Quire errors."""


class ConfigError(QuireError):
    """Raised when quire.yaml cannot be loaded or holds invalid values."""


class DocumentError(QuireError):
    """Error tied to a single source document.

    Attributes:
        source_path: Path to the document that caused the error.
        message: Human-readable error message.
    """

    kind = "document"

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


class ParseError(DocumentError):
    """Malformed frontmatter: the document is skipped."""

    kind = "parse"


class TemplateError(DocumentError):
    """Template rendering failed: the page is skipped."""

    kind = "template"


class BuildError(QuireError):
    """Fatal error during a site build with file context.

    Attributes:
        source_path: Path to the file or directory involved.
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


class PublishError(BuildError):
    """Writing the output directory failed."""
