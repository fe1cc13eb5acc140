"""Content renderers for Quire.

This module converts document bodies into sanitized HTML fragments. Each
renderer handles a single content type and reports the headings it saw so
templates can build a table of contents.

Key classes:
- Heading: A heading collected during rendering.
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- HTMLRenderer: Passes HTML content files through the sanitizer.
- RendererRegistry: Picks a renderer by file suffix.

Rendering is deterministic and side-effect free: the same text always
produces the same HTML, and nothing is fetched or executed.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import bleach
import mistune
from mistune.util import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .protocols import ContentRenderer
from .utils import is_html, is_markdown

ALLOWED_TAGS = [
    "a",
    "abbr",
    "b",
    "blockquote",
    "br",
    "code",
    "dd",
    "del",
    "div",
    "dl",
    "dt",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "i",
    "img",
    "li",
    "ol",
    "p",
    "pre",
    "s",
    "section",
    "span",
    "strong",
    "sub",
    "sup",
    "table",
    "tbody",
    "td",
    "tfoot",
    "th",
    "thead",
    "tr",
    "ul",
]

ALLOWED_ATTRIBUTES = {
    "*": ["class", "id", "title"],
    "a": ["href", "rel"],
    "img": ["src", "alt", "width", "height"],
    "th": ["align"],
    "td": ["align"],
    "ol": ["start"],
}

ALLOWED_PROTOCOLS = ["http", "https", "mailto"]

_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class Heading:
    """A heading extracted from rendered content for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: Plain text of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def sanitize_html(html: str) -> str:
    """Strip every tag, attribute and URL scheme outside the allow-lists."""
    return bleach.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def anchor_id(text: str) -> str:
    """Anchor id for a heading: lowercase words joined by hyphens."""
    words = (word.strip("-") for word in re.findall(r"[\w-]+", text.lower()))
    return "-".join(word for word in words if word) or "section"


def image_url(src: str, folder: str) -> str:
    """Map a relative image source into ``/images/<folder>/``.

    Absolute paths, external URLs and data URIs are returned unchanged.
    """
    if not src or "://" in src or src.startswith(("/", "data:")):
        return src
    return "/" + PurePosixPath("images", folder, src).as_posix()


def _highlight(code: str, lang: str) -> str | None:
    try:
        lexer = get_lexer_by_name(lang, stripall=True)
    except ClassNotFound:
        return None
    return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))


class _SiteRenderer(mistune.HTMLRenderer):
    """mistune renderer that anchors headings, relocates images and highlights code.

    Attributes:
        folder: Content folder of the document being rendered.
        headings: Headings in document order.
    """

    def __init__(self, folder: str):
        super().__init__(escape=False)
        self.folder = folder
        self.headings: list[Heading] = []
        self._anchors: Counter[str] = Counter()
        self._issued: set[str] = set()

    def heading(self, text: str, level: int, **attrs) -> str:
        plain = _TAG_RE.sub("", text).strip()
        base = anchor = anchor_id(plain)
        while anchor in self._issued:
            self._anchors[base] += 1
            anchor = f"{base}-{self._anchors[base]}"
        self._issued.add(anchor)
        self.headings.append(Heading(anchor, plain, level))
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def image(self, text: str, url: str | None = None, title: str | None = None):
        return super().image(text, image_url(url or "", self.folder), title)

    def block_code(self, code: str, info: str | None = None) -> str:
        words = (info or "").split()
        lang = words[0] if words else ""
        if not lang:
            return f"<pre><code>{escape(code)}</code></pre>\n"
        highlighted = _highlight(code, lang)
        if highlighted is not None:
            return highlighted
        return f'<pre><code class="language-{escape(lang)}">{escape(code)}</code></pre>\n'


class MarkdownRenderer:
    """Renders Markdown content to sanitized HTML."""

    source_type = "markdown"
    plugins = ("strikethrough", "footnotes", "table", "url")

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        """Render Markdown content to HTML.

        Each call builds its own mistune instance; pages may be rendered
        on several threads at once.

        Args:
            content: Markdown source.
            folder: Content folder of the document.

        Returns:
            Tuple of (sanitized HTML, headings for the TOC).
        """
        renderer = _SiteRenderer(folder)
        markdown = mistune.create_markdown(renderer=renderer, plugins=list(self.plugins))
        return sanitize_html(markdown(content)), renderer.headings


class HTMLRenderer:
    """Passes HTML content files through the sanitizer."""

    source_type = "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        return sanitize_html(content), []


class RendererRegistry:
    """Registry of content renderers, checked in registration order."""

    def __init__(self):
        self._renderers: list[ContentRenderer] = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer: ContentRenderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path) -> ContentRenderer | None:
        """Return the first renderer that accepts ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None

    def accepts(self, path: Path) -> bool:
        return self.get_renderer(path) is not None


default_renderer_registry = RendererRegistry()
