from datetime import datetime, timezone
from pathlib import Path

import pytest

from quire.utils import (
    extract_date_from_name,
    first_paragraph,
    is_html,
    is_internal_path,
    is_markdown,
    join_root_url,
    slugify,
    titleize,
    unique_strings,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-15-Hello World", "hello-world"),
        ("Café & Crème", "cafe-creme"),
        ("  spaced__out  ", "spaced-out"),
        ("2024-01-15", "2024-01-15"),
        ("???", "index"),
        ("日本", "日本"),
        ("2024-03-01-Привет Мир", "привет-мир"),
        ("がっこう", "がっこう"),
    ],
)
def test_slugify(value, expected):
    assert slugify(value) == expected


def test_titleize():
    assert titleize("2024-01-15-hello-world.md") == "Hello World"
    assert titleize("my_notes.md") == "My Notes"
    assert titleize("2024-01-15.md") == "2024 01 15"


def test_extract_date_from_name():
    assert extract_date_from_name("2024-01-15-post") == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert extract_date_from_name("2024-13-40-post") is None
    assert extract_date_from_name("post") is None


def test_first_paragraph():
    text = "# Title\n\n![img](a.png)\n\nSome *bold* [link](x) text\nwrapped.\n\nSecond."
    assert first_paragraph(text) == "Some bold link text wrapped."
    assert first_paragraph("word " * 50, limit=20).endswith("…")
    assert len(first_paragraph("word " * 50, limit=20)) <= 20
    assert first_paragraph("# Only a heading") == ""


def test_unique_strings():
    assert unique_strings([" a", "b", "a ", "", "c"]) == ["a", "b", "c"]


def test_join_root_url():
    assert join_root_url("https://example.com/", "/about/") == "https://example.com/about/"
    assert join_root_url("", "about/") == "/about/"


def test_path_helpers():
    assert is_markdown(Path("a.MD"))
    assert is_markdown(Path("a.markdown"))
    assert is_html(Path("a.htm"))
    assert not is_html(Path("a.md"))
    assert is_internal_path(Path("_drafts/a.md"))
    assert is_internal_path(Path("posts/.git/a.md"))
    assert not is_internal_path(Path("_index.md"))
