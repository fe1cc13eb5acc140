from pathlib import Path

from quire.renderers import (
    HTMLRenderer,
    MarkdownRenderer,
    RendererRegistry,
    anchor_id,
    image_url,
    sanitize_html,
)


def test_headings_get_ids_and_toc():
    html, toc = MarkdownRenderer().render("# Hi\n\n## Setup\n\n## Setup\n", "")
    assert '<h1 id="hi">Hi</h1>' in html
    assert '<h2 id="setup">Setup</h2>' in html
    assert '<h2 id="setup-1">Setup</h2>' in html
    assert [(h.id, h.level) for h in toc] == [("hi", 1), ("setup", 2), ("setup-1", 2)]


def test_heading_ids_never_repeat():
    _, toc = MarkdownRenderer().render("## A\n\n## A\n\n## A-1\n\n## A\n", "")
    ids = [h.id for h in toc]
    assert ids == ["a", "a-1", "a-1-1", "a-2"]
    assert len(set(ids)) == len(ids)


def test_common_constructs_render():
    source = (
        "Some *emphasis* and **strong** and ~~gone~~ with a [link](https://example.com).\n\n"
        "- one\n- two\n\n"
        "> quoted\n\n"
        "| a | b |\n|---|---|\n| 1 | 2 |\n"
    )
    html, _ = MarkdownRenderer().render(source, "")
    assert "<em>emphasis</em>" in html
    assert "<strong>strong</strong>" in html
    assert "<del>gone</del>" in html
    assert '<a href="https://example.com">link</a>' in html
    assert "<li>one</li>" in html
    assert "<blockquote>" in html
    assert "<table>" in html and "<td>1</td>" in html


def test_fenced_code_is_highlighted():
    html, _ = MarkdownRenderer().render("```python\ndef f():\n    return 1\n```\n", "")
    assert 'class="highlight"' in html
    assert "def" in html


def test_unknown_language_falls_back_to_escaped_code():
    html, _ = MarkdownRenderer().render("```nosuchlang\n<b>x</b>\n```\n", "")
    assert '<code class="language-nosuchlang">' in html
    assert "&lt;b&gt;x&lt;/b&gt;" in html


def test_scripts_and_event_handlers_are_removed():
    source = (
        "<script>alert(1)</script>\n\n"
        '<img src="x.png" onerror="alert(2)">\n\n'
        "[bad](javascript:alert(3))\n"
    )
    html, _ = MarkdownRenderer().render(source, "")
    assert "<script" not in html
    assert "onerror" not in html
    assert "javascript:" not in html


def test_images_are_rewritten_relative_to_folder():
    html, _ = MarkdownRenderer().render("![Logo](logo.png)", "posts")
    assert 'src="/images/posts/logo.png"' in html
    assert image_url("/static/a.png", "posts") == "/static/a.png"
    assert image_url("https://cdn/x.png", "") == "https://cdn/x.png"
    assert image_url("a.png", "") == "/images/a.png"


def test_rendering_is_deterministic():
    source = "# Title\n\nText with `code`.\n\n```js\nlet x = 1;\n```\n"
    first = MarkdownRenderer().render(source, "posts")
    second = MarkdownRenderer().render(source, "posts")
    assert first == second


def test_html_renderer_sanitizes():
    html, toc = HTMLRenderer().render('<p onclick="x()">Hi</p><script>x()</script>', "")
    assert html.startswith("<p>Hi</p>")
    assert "<script" not in html
    assert toc == []


def test_registry_selects_by_suffix():
    registry = RendererRegistry()
    assert registry.get_renderer(Path("a.md")).source_type == "markdown"
    assert registry.get_renderer(Path("a.html")).source_type == "html"
    assert registry.get_renderer(Path("a.txt")) is None
    assert not registry.accepts(Path("notes.txt"))


def test_heading_id_generation():
    assert anchor_id("Hello, World!") == "hello-world"
    assert anchor_id("!!!") == "section"


def test_sanitize_keeps_allowed_markup():
    assert sanitize_html('<h2 id="x">T</h2>') == '<h2 id="x">T</h2>'
    link = sanitize_html('<a href="mailto:me@example.com">m</a>')
    assert 'href="mailto:me@example.com"' in link
