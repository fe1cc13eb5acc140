from datetime import datetime, timezone
from pathlib import Path

import pytest

from quire.content import ContentStore, DocumentBuilder, FileContentLoader, UrlDeriver
from quire.errors import BuildError, ParseError


def create_content(tmp_path: Path) -> Path:
    content = tmp_path / "content"
    (content / "posts").mkdir(parents=True)
    (content / "_private").mkdir()
    (content / "docs" / "guides").mkdir(parents=True)

    (content / "_index.md").write_text(
        "---\ntitle: Welcome\ndescription: Home intro\n---\nHello **there**.\n",
        encoding="utf-8",
    )
    (content / "about.md").write_text("# About Us\n\nWho we are.\n", encoding="utf-8")
    (content / "posts" / "_index.md").write_text("Recent writing.\n", encoding="utf-8")
    (content / "posts" / "2024-01-15-my-post.md").write_text(
        "---\ntags: [python, web]\nauthor: Ada\n---\n# Post Title\n\nBody text.\n",
        encoding="utf-8",
    )
    (content / "posts" / "hello.md").write_text(
        '---\ntitle: "Hello"\ndate: 2024-01-01\ndraft: false\n---\n# Hi\n',
        encoding="utf-8",
    )
    (content / "docs" / "guides" / "setup.html").write_text(
        "<h2>Setup</h2><p>Install it.</p>", encoding="utf-8"
    )
    (content / "_private" / "secret.md").write_text("# Secret", encoding="utf-8")
    (content / "notes.txt").write_text("ignore", encoding="utf-8")
    (content / ".hidden.md").write_text("# Hidden", encoding="utf-8")
    return content


def test_loader_skips_internal_and_unknown_files(tmp_path):
    content = create_content(tmp_path)
    files = [p.relative_to(content).as_posix() for p in FileContentLoader(content).iter_files()]
    assert files == [
        "_index.md",
        "about.md",
        "docs/guides/setup.html",
        "posts/2024-01-15-my-post.md",
        "posts/_index.md",
        "posts/hello.md",
    ]


def test_store_builds_documents_and_sections(tmp_path):
    content = create_content(tmp_path)
    result = ContentStore(content).load()

    assert result.errors == []
    by_url = {d.url: d for d in result.documents}
    assert set(by_url) == {"/about/", "/docs/guides/setup/", "/posts/my-post/", "/posts/hello/"}

    about = by_url["/about/"]
    assert about.title == "About Us"
    assert about.section == ""
    assert about.description == "Who we are."

    post = by_url["/posts/my-post/"]
    assert post.title == "Post Title"
    assert post.date == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert post.lastmod == post.date
    assert post.tags == ["python", "web"]
    assert post.author == "Ada"
    assert post.section == "posts"
    assert post.output_path == "posts/my-post/index.html"

    hello = by_url["/posts/hello/"]
    assert hello.title == "Hello"
    assert '<h1 id="hi">Hi</h1>' in hello.content
    assert hello.draft is False

    guide = by_url["/docs/guides/setup/"]
    assert guide.source_type == "html"
    assert guide.section == "docs"
    assert guide.folder == "docs/guides"

    assert set(result.sections) == {"", "posts"}
    assert result.sections[""].title == "Welcome"
    assert "<strong>there</strong>" in result.sections[""].content
    assert result.sections["posts"].title == "Posts"


def test_malformed_document_is_skipped(tmp_path, caplog):
    content = create_content(tmp_path)
    broken = content / "posts" / "broken.md"
    broken.write_text("---\ntitle: Oops\n\nNo closing fence\n", encoding="utf-8")

    with caplog.at_level("WARNING", logger="quire"):
        result = ContentStore(content).load()

    assert len(result.documents) == 4
    assert len(result.errors) == 1
    assert isinstance(result.errors[0], ParseError)
    assert result.errors[0].source_path == broken
    assert "Skipping" in caplog.text


def test_invalid_utf8_is_a_parse_error(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "latin.md").write_bytes(b"# Caf\xe9\n")
    result = ContentStore(content).load()
    assert result.documents == []
    assert "UTF-8" in result.errors[0].message


def test_missing_content_dir_raises(tmp_path):
    with pytest.raises(BuildError):
        ContentStore(tmp_path / "nope").load()


def test_slug_override_and_mtime_date(tmp_path):
    content = tmp_path / "content"
    (content / "notes").mkdir(parents=True)
    path = content / "notes" / "Some File.md"
    path.write_text("---\nslug: Custom Slug\n---\nText\n", encoding="utf-8")
    document = DocumentBuilder(content).build(path)
    assert document.url == "/notes/custom-slug/"
    assert document.title == "Some File"
    assert document.date.tzinfo is not None


def test_url_deriver_slugifies_folders():
    deriver = UrlDeriver()
    assert deriver.derive("", "about") == "/about/"
    assert deriver.derive("Blog Posts/2024", "x") == "/blog-posts/2024/x/"


def test_unknown_frontmatter_keys_are_kept(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    path = content / "page.md"
    path.write_text("---\nhero: big.png\n---\nText\n", encoding="utf-8")
    document = DocumentBuilder(content).build(path)
    assert document.params["hero"] == "big.png"


def test_default_author_fills_in(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    anonymous = content / "anonymous.md"
    anonymous.write_text("Text\n", encoding="utf-8")
    signed = content / "signed.md"
    signed.write_text("---\nauthor: Robin\n---\nText\n", encoding="utf-8")
    builder = DocumentBuilder(content, default_author="Daniel")
    assert builder.build(anonymous).author == "Daniel"
    assert builder.build(signed).author == "Robin"
