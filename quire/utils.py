"""Utility functions for Quire.

String and path helpers shared by the content, page and publishing modules.

Key functions:
    slugify: Convert filenames and taxonomy terms to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract date from a YYYY-MM-DD- filename prefix.
    first_paragraph: Plain-text summary of a Markdown body.
    unique_strings: Order-preserving de-duplication of string lists.
    join_root_url: Join a base URL with a path.
    is_markdown / is_html: Content file type checks.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:-|$)")


def _strip_date_prefix(name: str) -> str:
    match = _DATE_PREFIX_RE.match(name)
    if match and len(name) > match.end():
        return name[match.end() :]
    return name


def _fold_latin_accents(text: str) -> str:
    # Only marks on ASCII letters are dropped; kana voicing marks stay.
    kept: list[str] = []
    for char in unicodedata.normalize("NFKD", text):
        if unicodedata.combining(char) and kept and kept[-1].isascii():
            continue
        kept.append(char)
    return unicodedata.normalize("NFC", "".join(kept))


def slugify(name: str) -> str:
    """Convert a filename stem or term to a slug, dropping any date prefix.

    Args:
        name: Filename stem or free text.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2024-01-15-Hello World")
        'hello-world'

        >>> slugify("Café & Crème")
        'cafe-creme'

        >>> slugify("日本 語")
        '日本-語'
    """
    cleaned = _fold_latin_accents(_strip_date_prefix(name))
    cleaned = re.sub(r"[\W_]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = _strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a UTC date from a filename with a YYYY-MM-DD prefix.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)

        >>> extract_date_from_name("hello-world") is None
        True
    """
    match = _DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        year, month, day = (int(part) for part in match.groups())
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first prose paragraph from Markdown text.

    Skips headings, images, fences and rules, strips HTML tags and inline
    Markdown markers, collapses whitespace and truncates to ``limit``.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "~~~", "---", "|", "<")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        if len(collapsed) <= limit:
            return collapsed
        return collapsed[: limit - 1].rstrip() + "…"
    return ""


def unique_strings(values: Iterable[str]) -> list[str]:
    """Strip and de-duplicate strings, keeping first-seen order."""
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about/')
        'https://example.com/about/'
    """
    if not root_url:
        return path if path.startswith("/") else f"/{path}"
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file."""
    return path.suffix.lower() in (".md", ".markdown")


def is_html(path: Path) -> bool:
    """Check if a path is an HTML content file."""
    return path.suffix.lower() in (".html", ".htm")


def is_internal_path(path: Path) -> bool:
    """Check if any directory component starts with an underscore or dot."""
    return any(part.startswith(("_", ".")) for part in path.parts[:-1])
