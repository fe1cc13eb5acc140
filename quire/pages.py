"""Page composition for Quire.

The composer turns the visible documents into RenderedPage objects: one
single page per document, then the home page, section lists, taxonomy
overviews, taxonomy term lists and the 404 page. List pages are newest
first (ties by source path) and paginated.

Key classes:
- RenderedPage: Output of composition, ready to be written.
- Paginator: Position of one list page within its pagination.
- ListPage / TermsPage: Template context objects for list templates.
- PageComposer: Builds every page of the site.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .collections import DocumentCollection, Taxonomy, Term
from .config import SiteConfig
from .content import Document, SectionIndex
from .errors import BuildError, TemplateError
from .templates import TemplateEngine
from .utils import slugify, titleize

logger = logging.getLogger(__name__)

TAXONOMIES = {"tags": "tags", "categories": "categories"}


@dataclass(frozen=True)
class RenderedPage:
    """A composed page.

    Attributes:
        url: Public URL path, e.g. ``/posts/hello/``.
        output_path: Path relative to the output directory.
        html: Full HTML document.
        source: Source document path, or None for generated list pages.
    """

    url: str
    output_path: str
    html: str
    source: Path | None = None


@dataclass(frozen=True)
class Paginator:
    """Position of a list page within its pagination."""

    number: int
    total_pages: int
    base_url: str

    @staticmethod
    def page_url(base_url: str, number: int) -> str:
        if number <= 1:
            return base_url
        return f"{base_url}page/{number}/"

    @property
    def url(self) -> str:
        return self.page_url(self.base_url, self.number)

    @property
    def prev_url(self) -> str | None:
        return self.page_url(self.base_url, self.number - 1) if self.number > 1 else None

    @property
    def next_url(self) -> str | None:
        if self.number >= self.total_pages:
            return None
        return self.page_url(self.base_url, self.number + 1)


@dataclass
class ListPage:
    """Template context for a home, section or taxonomy term list."""

    kind: str
    title: str
    documents: DocumentCollection
    paginator: Paginator
    description: str = ""
    content: str = ""
    section: str = ""
    taxonomy: str = ""
    term: Term | None = None

    @property
    def url(self) -> str:
        return self.paginator.url


@dataclass
class TermsPage:
    """Template context for a taxonomy overview page."""

    taxonomy: str
    title: str
    terms: list[Term] = field(default_factory=list)
    url: str = ""


def _output_path(url: str) -> str:
    return f"{url.strip('/')}/index.html".lstrip("/")


class PageComposer:
    """Builds every page of the site from the visible documents.

    Attributes:
        config: Site configuration.
        engine: Template engine used for rendering.
        errors: Template errors collected while composing.
    """

    def __init__(self, config: SiteConfig, engine: TemplateEngine, content_dir: Path):
        self.config = config
        self.engine = engine
        self.content_dir = content_dir
        self.errors: list[TemplateError] = []

    def compose(
        self,
        documents: DocumentCollection,
        sections: dict[str, SectionIndex] | None = None,
    ) -> list[RenderedPage]:
        """Compose all pages.

        Single pages are rendered first (in a thread pool when
        ``config.workers > 1``); list pages are composed once every single
        page has finished.

        Raises:
            BuildError: If two documents claim the same URL.
        """
        sections = sections or {}
        self._check_unique_urls(documents)
        ordered = documents.sorted()
        self.engine.set_navigation(ordered, ordered.sections())

        pages = self._render_singles(ordered)
        pages.extend(self._home_pages(ordered, sections.get("")))
        for name in ordered.sections():
            pages.extend(
                self._section_pages(name, ordered.section(name), sections.get(name))
            )
        for taxonomy, attribute in TAXONOMIES.items():
            index = Taxonomy(taxonomy, ordered, attribute)
            pages.extend(self._taxonomy_pages(taxonomy, index))
        not_found = self._safe(
            lambda: self.engine.render_not_found(self.content_dir / "404"),
        )
        if not_found is not None:
            pages.append(RenderedPage("/404.html", "404.html", not_found))
        self._check_unique_outputs(pages)
        return pages

    @staticmethod
    def _check_unique_outputs(pages: list[RenderedPage]) -> None:
        seen: dict[str, RenderedPage] = {}
        for page in pages:
            previous = seen.setdefault(page.output_path, page)
            if previous is not page:
                raise BuildError(
                    page.source or previous.source or Path(page.url),
                    f"URL {page.url} is produced by more than one page",
                )

    def _check_unique_urls(self, documents: DocumentCollection) -> None:
        seen: dict[str, Path] = {}
        for document in sorted(documents, key=lambda d: d.path.as_posix()):
            previous = seen.setdefault(document.url, document.path)
            if previous != document.path:
                raise BuildError(
                    document.path,
                    f"URL {document.url} is already used by {previous}",
                )

    def _render_single(self, document: Document) -> RenderedPage | None:
        html = self._safe(lambda: self.engine.render_document(document))
        if html is None:
            return None
        return RenderedPage(document.url, document.output_path, html, document.path)

    def _render_singles(self, documents: DocumentCollection) -> list[RenderedPage]:
        if self.config.workers > 1 and len(documents) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                rendered = list(executor.map(self._render_single, documents))
        else:
            rendered = [self._render_single(d) for d in documents]
        return [page for page in rendered if page is not None]

    def _safe(self, render):
        try:
            return render()
        except TemplateError as exc:
            logger.error("Template error in %s: %s", exc.source_path, exc.message)
            self.errors.append(exc)
            return None

    def _paginate(
        self,
        base_url: str,
        documents: DocumentCollection,
        make_page,
        source: Path,
    ) -> list[RenderedPage]:
        size = self.config.paginate
        total = max(1, math.ceil(len(documents) / size))
        pages = []
        for number in range(1, total + 1):
            chunk = documents[(number - 1) * size : number * size]
            context = make_page(chunk, Paginator(number, total, base_url))
            html = self._safe(lambda: self.engine.render_list(context, source))
            if html is not None:
                pages.append(RenderedPage(context.url, _output_path(context.url), html))
        return pages

    def _home_pages(
        self, documents: DocumentCollection, index: SectionIndex | None
    ) -> list[RenderedPage]:
        listed = documents.in_sections(self.config.main_sections)

        def make_page(chunk, paginator):
            return ListPage(
                kind="home",
                title=index.title if index else "",
                description=(index.description if index else "") or self.config.description,
                content=index.content if index else "",
                documents=chunk,
                paginator=paginator,
            )

        source = index.path if index else self.content_dir
        return self._paginate("/", listed, make_page, source)

    def _section_pages(
        self, name: str, documents: DocumentCollection, index: SectionIndex | None
    ) -> list[RenderedPage]:
        def make_page(chunk, paginator):
            return ListPage(
                kind="section",
                title=index.title if index else titleize(name),
                description=index.description if index else "",
                content=index.content if index else "",
                section=name,
                documents=chunk,
                paginator=paginator,
            )

        source = index.path if index else self.content_dir / name
        return self._paginate(f"/{slugify(name)}/", documents, make_page, source)

    def _taxonomy_pages(self, taxonomy: str, index: Taxonomy) -> list[RenderedPage]:
        if not index:
            return []
        pages = []
        overview = TermsPage(
            taxonomy=taxonomy,
            title=taxonomy.title(),
            terms=index.by_count(),
            url=f"/{taxonomy}/",
        )
        source = self.content_dir / taxonomy
        html = self._safe(lambda: self.engine.render_terms(overview, source))
        if html is not None:
            pages.append(RenderedPage(overview.url, _output_path(overview.url), html))

        for term in index.values():

            def make_page(chunk, paginator, term=term):
                return ListPage(
                    kind="term",
                    title=term.name,
                    taxonomy=taxonomy,
                    term=term,
                    documents=chunk,
                    paginator=paginator,
                )

            pages.extend(
                self._paginate(f"/{taxonomy}/{term.slug}/", term.documents, make_page, source)
            )
        return pages
