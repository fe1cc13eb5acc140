"""Template rendering engine for Quire.

This module uses Jinja2 to merge documents and list pages into the active
theme's templates. Templates in the project's ``layouts/`` folder override
theme templates of the same name.

Key class:
- TemplateEngine: Resolves templates and renders pages with site context.

Templates run under ``StrictUndefined``: referencing a missing field is an
error for that page rather than silently rendering an empty string.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError as JinjaTemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup, escape
from pygments.formatters import HtmlFormatter

from .config import SiteConfig
from .content import Document
from .errors import TemplateError
from .protocols import Theme
from .renderers import Heading
from .utils import join_root_url, slugify

__all__ = ["TemplateEngine", "render_toc", "term_url"]


def term_url(taxonomy: str, term: str) -> str:
    """Return the list URL of a taxonomy term, e.g. ``/tags/python/``."""
    return f"/{taxonomy}/{slugify(term)}/"


def render_toc(page: Document) -> Markup:
    """Render a table of contents as nested HTML from page headings.

    Generates properly nested ``<ul><li><a href="#id">text</a></li></ul>``
    structure based on heading levels.
    """
    if not page.toc:
        return Markup("")
    return _render_toc_from_headings(page.toc)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
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


def _format_error_message(exc: Exception) -> str:
    """Format a template exception into a user-friendly message."""
    error_type = type(exc).__name__
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error in {exc.name or exc.filename} on line {exc.lineno}: {exc.message}"
    if isinstance(exc, TemplateNotFound):
        return f"Template not found: {exc.name}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    return f"{error_type}: {exc}"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration.
        env: Jinja2 environment.
        nav: Navigation entries (root documents and sections).
    """

    def __init__(
        self,
        config: SiteConfig,
        theme: Theme,
        layouts_dir: Path | None = None,
    ):
        """Initialize the template engine.

        Args:
            config: Site configuration.
            theme: Theme providing the base template loader.
            layouts_dir: Optional project folder overriding theme templates.
        """
        self.config = config
        loaders = []
        if layouts_dir is not None and layouts_dir.is_dir():
            loaders.append(FileSystemLoader(str(layouts_dir)))
        loaders.append(theme.loader())
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.nav: list[dict[str, str]] = []
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.config
        self.env.globals["nav"] = self.nav
        self.env.globals["url_for"] = self.url_for
        self.env.globals["term_url"] = term_url
        self.env.globals["render_toc"] = render_toc
        self.env.globals["pygments_css"] = self._pygments_css

    @staticmethod
    def _pygments_css() -> Markup:
        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def set_navigation(self, documents: Iterable[Document], sections: Iterable[str]) -> None:
        """Build the navigation menu: root documents, then sections."""
        entries = [
            {"title": d.title, "url": d.url}
            for d in sorted(documents, key=lambda d: d.path.as_posix())
            if not d.section
        ]
        entries.extend(
            {"title": section.replace("-", " ").title(), "url": f"/{slugify(section)}/"}
            for section in sections
        )
        self.nav[:] = entries

    def url_for(self, path: str) -> str:
        """Generate a URL for a site path, prefixed with base_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(self.config.base_url, path)

    def render_document(self, document: Document) -> str:
        """Render a document's single page.

        Raises:
            TemplateError: If the template is missing or fails to render.
        """
        candidates = []
        if document.layout:
            candidates.append(f"{document.layout}.html")
        if document.section:
            candidates.append(f"{document.section}/single.html")
        candidates.append("single.html")
        context = {"page": document, "description": document.description}
        return self._render(document.path, candidates, context)

    def render_list(self, page, source: Path) -> str:
        """Render a list page (home, section or taxonomy term)."""
        candidates = []
        if page.kind == "home":
            candidates.append("index.html")
        elif page.kind == "section":
            candidates.append(f"{page.section}/list.html")
        else:
            candidates.append(f"{page.taxonomy}/list.html")
        candidates.append("list.html")
        context = {"page": page, "description": page.description}
        return self._render(source, candidates, context)

    def render_terms(self, page, source: Path) -> str:
        """Render a taxonomy overview page."""
        context = {"page": page, "description": ""}
        return self._render(source, [f"{page.taxonomy}/terms.html", "terms.html"], context)

    def render_not_found(self, source: Path) -> str:
        return self._render(source, ["404.html"], {"description": ""})

    def _render(self, source: Path, candidates: list[str], context: dict[str, Any]) -> str:
        try:
            template = self.env.select_template(candidates)
            return template.render(**context)
        except JinjaTemplateError as exc:
            raise TemplateError(source, _format_error_message(exc)) from exc
        except (TypeError, AttributeError, ValueError) as exc:
            raise TemplateError(source, _format_error_message(exc)) from exc
