"""Feed generation for Quire.

This module generates sitemap.xml and rss.xml from the published documents.
Both feeds need absolute URLs, so they are skipped when no ``base_url`` is
configured.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates RSS 2.0 feed files.
    FeedRegistry: Registry for managing feed generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from email.utils import format_datetime
from xml.sax.saxutils import escape

from .collections import DocumentCollection
from .config import SiteConfig
from .pages import RenderedPage


class FeedGenerator(ABC):
    """Base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output filename, such as 'sitemap.xml'."""
        ...

    @abstractmethod
    def generate(
        self,
        documents: DocumentCollection,
        pages: list[RenderedPage],
        config: SiteConfig,
    ) -> str | None:
        """Generate feed content, or None when the feed cannot be built."""
        ...

    def render(
        self,
        documents: DocumentCollection,
        pages: list[RenderedPage],
        config: SiteConfig,
    ) -> RenderedPage | None:
        content = self.generate(documents, pages, config)
        if content is None:
            return None
        return RenderedPage(f"/{self.filename}", self.filename, content)


class SitemapGenerator(FeedGenerator):
    """Lists every HTML page with its last modification date."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(
        self,
        documents: DocumentCollection,
        pages: list[RenderedPage],
        config: SiteConfig,
    ) -> str | None:
        base_url = config.root_url
        if not base_url:
            return None
        lastmods = {d.url: d.lastmod or d.date for d in documents}
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for page in sorted(pages, key=lambda p: p.url):
            if not page.output_path.endswith("index.html"):
                continue
            loc = escape(f"{base_url}{page.url}")
            lastmod = lastmods.get(page.url)
            if lastmod is not None:
                lines.append(
                    f"  <url><loc>{loc}</loc><lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod></url>"
                )
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """RSS 2.0 feed of the newest documents.

    ``lastBuildDate`` is the newest document date so that unchanged content
    produces an unchanged feed.
    """

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(
        self,
        documents: DocumentCollection,
        pages: list[RenderedPage],
        config: SiteConfig,
    ) -> str | None:
        base_url = config.root_url
        if not base_url:
            return None
        published = {p.url for p in pages}
        listed = DocumentCollection(
            d for d in documents.in_sections(config.main_sections) if d.url in published
        ).latest(config.rss_limit)

        items = []
        for document in listed:
            link = escape(f"{base_url}{document.url}")
            description = escape(document.description or document.title)
            items.append(
                f"<item><title>{escape(document.title)}</title><link>{link}</link>"
                f'<guid isPermaLink="true">{link}</guid>'
                f"<description>{description}</description>"
                f"<pubDate>{format_datetime(document.date)}</pubDate></item>"
            )

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(config.title)}</title>",
            f"<link>{escape(base_url)}/</link>",
            f"<description>{escape(config.description or config.title)}</description>",
            f"<language>{escape(config.language)}</language>",
        ]
        if listed:
            rss.append(f"<lastBuildDate>{format_datetime(listed[0].date)}</lastBuildDate>")
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry of feed generators run after page composition."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def render_all(
        self,
        documents: Iterable,
        pages: list[RenderedPage],
        config: SiteConfig,
    ) -> list[RenderedPage]:
        """Render every registered feed that has enough configuration."""
        collection = DocumentCollection(documents)
        feeds = []
        for generator in self._generators:
            feed = generator.render(collection, pages, config)
            if feed is not None:
                feeds.append(feed)
        return feeds


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
