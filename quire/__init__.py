"""Quire static site builder.

This package turns a folder of Markdown documents with frontmatter into a
static website: a home page, section and taxonomy listings, one page per
document, an RSS feed and a sitemap.

The pipeline is strictly linear:
- content: discover documents and parse their frontmatter.
- renderers: convert Markdown bodies into sanitized HTML.
- pages: compose documents into Jinja2 templates.
- publisher: write the composed site into the output directory.

The CLI module is the main entry point and exposes the build, serve, new
and init commands.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
