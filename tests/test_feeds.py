from datetime import datetime, timezone
from pathlib import Path

from quire.collections import DocumentCollection
from quire.config import SiteConfig
from quire.content import Document
from quire.feeds import RSSGenerator, SitemapGenerator, create_default_feed_registry
from quire.pages import RenderedPage


def make_doc(name, day, section="posts", title=None):
    return Document(
        path=Path("content") / section / f"{name}.md",
        title=title or name.title(),
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        draft=False,
        body="",
        content="",
        slug=name,
        url=f"/{section}/{name}/" if section else f"/{name}/",
        section=section,
        folder=section,
        description=f"About {name}",
    )


def pages_for(docs):
    pages = [RenderedPage(d.url, d.output_path, "", d.path) for d in docs]
    pages.append(RenderedPage("/", "index.html", ""))
    pages.append(RenderedPage("/404.html", "404.html", ""))
    return pages


CONFIG = SiteConfig(title="Q & A", base_url="https://example.com/", rss_limit=2)


def test_rss_lists_newest_documents():
    docs = DocumentCollection(
        [make_doc("a", 1), make_doc("b", 3, title="Fish & Chips"), make_doc("c", 2), make_doc("me", 9, section="")]
    )
    rss = RSSGenerator().generate(docs, pages_for(docs), CONFIG)

    assert "<title>Q &amp; A</title>" in rss
    assert "<title>Fish &amp; Chips</title>" in rss
    assert rss.index("/posts/b/") < rss.index("/posts/c/")
    assert "/posts/a/" not in rss
    assert "/me/" not in rss
    assert "<lastBuildDate>Wed, 03 Jan 2024 00:00:00 +0000</lastBuildDate>" in rss
    assert "<pubDate>Tue, 02 Jan 2024 00:00:00 +0000</pubDate>" in rss


def test_rss_skips_documents_without_pages():
    docs = DocumentCollection([make_doc("a", 1), make_doc("b", 2)])
    rss = RSSGenerator().generate(docs, pages_for(docs[:1]), CONFIG)
    assert "/posts/a/" in rss
    assert "/posts/b/" not in rss


def test_sitemap_lists_html_pages_sorted():
    docs = DocumentCollection([make_doc("b", 2), make_doc("a", 1)])
    sitemap = SitemapGenerator().generate(docs, pages_for(docs), CONFIG)
    lines = sitemap.splitlines()
    assert lines[2] == "  <url><loc>https://example.com/</loc></url>"
    assert lines[3] == (
        "  <url><loc>https://example.com/posts/a/</loc><lastmod>2024-01-01</lastmod></url>"
    )
    assert "404.html" not in sitemap


def test_registry_skips_feeds_without_base_url():
    docs = DocumentCollection([make_doc("a", 1)])
    registry = create_default_feed_registry()
    assert registry.render_all(docs, pages_for(docs), SiteConfig()) == []
    feeds = registry.render_all(docs, pages_for(docs), CONFIG)
    assert [f.output_path for f in feeds] == ["sitemap.xml", "rss.xml"]
