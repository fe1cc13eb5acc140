"""Content store for Quire.

This module discovers content files, parses their frontmatter, renders their
bodies, and returns Document objects. A file whose frontmatter is malformed
is reported and skipped; the remaining documents still load.

Key classes:
- Document: A published (or draft) piece of content with its metadata.
- SectionIndex: Title and intro of a folder's list page (``_index.md``).
- FileContentLoader: Discovers content files under the content directory.
- DocumentBuilder: Builds a Document from one source file.
- ContentStore: Loads every document and section index, collecting errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import BuildError, ParseError
from .frontmatter import parse_frontmatter
from .protocols import ContentLoader
from .renderers import Heading, RendererRegistry, default_renderer_registry
from .utils import (
    extract_date_from_name,
    first_paragraph,
    is_internal_path,
    slugify,
    titleize,
)

__all__ = [
    "ContentStore",
    "Document",
    "DocumentBuilder",
    "FileContentLoader",
    "Heading",
    "LoadResult",
    "SectionIndex",
    "UrlDeriver",
]

logger = logging.getLogger(__name__)

SECTION_INDEX_STEM = "_index"


@dataclass
class Document:
    """A content document with its metadata and rendered body.

    Attributes:
        path: Path to the source file (unique key).
        title: Human-readable title.
        date: Publication date (timezone-aware).
        draft: Whether the document is excluded from default output.
        body: Markdown body without the frontmatter.
        content: Rendered, sanitized HTML.
        slug: URL-friendly slug.
        url: Permalink, e.g. ``/posts/hello/``.
        section: First folder under the content root ('' for root files).
        folder: Folder path relative to the content root.
        tags: Ordered unique tags.
        categories: Ordered unique categories.
        author: Author name, if any.
        description: Short description, from frontmatter or first paragraph.
        lastmod: Last modification date, defaults to ``date``.
        layout: Optional template name override.
        source_type: "markdown" or "html".
        frontmatter: Full parsed frontmatter, unknown keys included.
        toc: Headings for the table of contents.
    """

    path: Path
    title: str
    date: datetime
    draft: bool
    body: str
    content: str
    slug: str
    url: str
    section: str
    folder: str
    tags: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    author: str = ""
    description: str = ""
    lastmod: datetime | None = None
    layout: str = ""
    source_type: str = "markdown"
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)

    @property
    def output_path(self) -> str:
        """Output file path relative to the output directory."""
        return f"{self.url.strip('/')}/index.html".lstrip("/")

    @property
    def params(self) -> dict[str, Any]:
        return self.frontmatter

    def is_future(self, now: datetime) -> bool:
        return self.date > now


@dataclass
class SectionIndex:
    """Heading and intro for a list page, taken from an ``_index.md`` file."""

    path: Path
    folder: str
    title: str
    description: str = ""
    content: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadResult:
    """Everything the content store produced in one pass.

    Attributes:
        documents: Documents that loaded successfully.
        sections: Section indexes keyed by folder ('' for the home page).
        errors: Per-document parse errors, in discovery order.
    """

    documents: list[Document] = field(default_factory=list)
    sections: dict[str, SectionIndex] = field(default_factory=dict)
    errors: list[ParseError] = field(default_factory=list)


class FileContentLoader:
    """Discovers content files in a directory.

    Folders starting with ``_`` or ``.`` are skipped. Files are returned in
    sorted path order so every run sees them in the same sequence.
    """

    def __init__(self, content_dir: Path, registry: RendererRegistry | None = None):
        self.content_dir = content_dir
        self.registry = registry or default_renderer_registry

    def iter_files(self) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.content_dir)
            if is_internal_path(rel) or rel.name.startswith("."):
                continue
            if self.registry.accepts(path):
                files.append(path)
        return files


class UrlDeriver:
    """Derives permalinks from a document's folder and slug."""

    def derive(self, folder: str, slug: str) -> str:
        segments = [p for p in Path(folder).parts if p] if folder else []
        segments = [slugify(segment) for segment in segments]
        return "/" + "/".join(segments + [slug]) + "/"


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        content_dir: Content root directory.
        renderer_registry: Registry of content renderers.
        url_deriver: Permalink generator.
        default_author: Author for documents that name none.
    """

    def __init__(
        self,
        content_dir: Path,
        renderer_registry: RendererRegistry | None = None,
        default_author: str = "",
    ):
        self.content_dir = content_dir
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.default_author = default_author
        self.url_deriver = UrlDeriver()

    def read(self, path: Path) -> tuple[dict[str, Any], str, str]:
        """Read a file and split it into (frontmatter, body, folder).

        Raises:
            ParseError: If the frontmatter is malformed.
            BuildError: If the file cannot be read.
        """
        rel = path.relative_to(self.content_dir)
        folder = rel.parent.as_posix() if rel.parent != Path(".") else ""
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(path, f"File is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise BuildError(path, f"Cannot read content file: {exc}", exc) from exc
        frontmatter, body = parse_frontmatter(raw, path)
        return frontmatter, body, folder

    def build(self, path: Path) -> Document:
        """Build a Document from a source file.

        Raises:
            ParseError: If the frontmatter is malformed.
            BuildError: If the file cannot be read.
        """
        frontmatter, body, folder = self.read(path)
        renderer = self.renderer_registry.get_renderer(path)
        content, toc = renderer.render(body, folder)

        slug = slugify(frontmatter.get("slug") or path.stem)
        date = (
            frontmatter.get("date")
            or extract_date_from_name(path.stem)
            or datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        )
        description = frontmatter.get("description") or first_paragraph(body)

        return Document(
            path=path,
            title=frontmatter.get("title") or self._title_from_body(body, path),
            date=date,
            draft=frontmatter.get("draft", False),
            body=body,
            content=content,
            slug=slug,
            url=self.url_deriver.derive(folder, slug),
            section=Path(folder).parts[0] if folder else "",
            folder=folder,
            tags=frontmatter.get("tags", []),
            categories=frontmatter.get("categories", []),
            author=frontmatter.get("author") or self.default_author,
            description=description,
            lastmod=frontmatter.get("lastmod") or date,
            layout=frontmatter.get("layout") or "",
            source_type=renderer.source_type,
            frontmatter=frontmatter,
            toc=toc,
        )

    def build_section(self, path: Path) -> SectionIndex:
        """Build the SectionIndex described by an ``_index`` file."""
        frontmatter, body, folder = self.read(path)
        renderer = self.renderer_registry.get_renderer(path)
        content, _ = renderer.render(body, folder)
        default_title = titleize(Path(folder).name) if folder else ""
        return SectionIndex(
            path=path,
            folder=folder,
            title=frontmatter.get("title") or default_title,
            description=frontmatter.get("description") or "",
            content=content,
            frontmatter=frontmatter,
        )

    @staticmethod
    def _title_from_body(body: str, path: Path) -> str:
        for line in body.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return stripped[2:].strip()
        return titleize(path.name)


class ContentStore:
    """Loads every content file into Documents.

    Attributes:
        content_dir: Content root directory.
    """

    def __init__(
        self,
        content_dir: Path,
        content_loader: ContentLoader | None = None,
        document_builder: DocumentBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._document_builder = document_builder or DocumentBuilder(content_dir)

    def load(self) -> LoadResult:
        """Load all documents and section indexes.

        Malformed documents are logged, recorded in ``errors`` and skipped.

        Raises:
            BuildError: If the content directory is missing or a file is
                unreadable.
        """
        if not self.content_dir.is_dir():
            raise BuildError(self.content_dir, "Content directory does not exist")
        result = LoadResult()
        for path in self._content_loader.iter_files():
            try:
                if path.stem == SECTION_INDEX_STEM:
                    section = self._document_builder.build_section(path)
                    result.sections[section.folder] = section
                else:
                    result.documents.append(self._document_builder.build(path))
            except ParseError as exc:
                logger.warning("Skipping %s: %s", exc.source_path, exc.message)
                result.errors.append(exc)
        logger.debug(
            "Loaded %d documents and %d section indexes from %s",
            len(result.documents),
            len(result.sections),
            self.content_dir,
        )
        return result
