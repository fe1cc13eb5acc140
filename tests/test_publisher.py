import pytest

from quire.assets import AssetPipeline
from quire.errors import PublishError
from quire.pages import RenderedPage
from quire.publisher import Publisher


def page(url, html):
    rel = f"{url.strip('/')}/index.html".lstrip("/")
    return RenderedPage(url, rel, html)


def test_publish_writes_pages_and_swaps_output(tmp_path):
    output = tmp_path / "public"
    output.mkdir()
    (output / "stale.html").write_text("old", encoding="utf-8")

    count = Publisher(output).publish([page("/", "home"), page("/posts/a/", "a")])

    assert count == 2
    assert (output / "index.html").read_text(encoding="utf-8") == "home"
    assert (output / "posts" / "a" / "index.html").read_text(encoding="utf-8") == "a"
    assert not (output / "stale.html").exists()
    assert not (tmp_path / "public.staging").exists()
    assert not (tmp_path / "public.previous").exists()


def test_pages_win_over_assets(tmp_path):
    static = tmp_path / "static"
    static.mkdir()
    (static / "index.html").write_text("asset", encoding="utf-8")
    (static / "favicon.ico").write_bytes(b"\x00\x01")
    output = tmp_path / "public"

    Publisher(output).publish([page("/", "page")], AssetPipeline([static]))

    assert (output / "index.html").read_text(encoding="utf-8") == "page"
    assert (output / "favicon.ico").read_bytes() == b"\x00\x01"


def test_failed_publish_keeps_previous_output(monkeypatch, tmp_path):
    output = tmp_path / "public"
    Publisher(output).publish([page("/", "v1")])

    def failing_write(root, rendered):
        raise PermissionError(13, "Permission denied", str(root / rendered.output_path))

    monkeypatch.setattr(Publisher, "_write_page", staticmethod(failing_write))
    with pytest.raises(PublishError) as excinfo:
        Publisher(output).publish([page("/", "v2")])

    assert "Permission denied" in excinfo.value.message
    assert (output / "index.html").read_text(encoding="utf-8") == "v1"
    assert not (tmp_path / "public.staging").exists()


def test_unix_newlines_are_written(tmp_path):
    output = tmp_path / "public"
    Publisher(output).publish([page("/", "a\nb\n")])
    assert (output / "index.html").read_bytes() == b"a\nb\n"


def test_failed_publish_removes_staging(monkeypatch, tmp_path):
    output = tmp_path / "public"
    Publisher(output).publish([page("/", "v1")])

    def unencodable(root, rendered):
        raise UnicodeEncodeError("utf-8", "\udcff", 0, 1, "surrogates not allowed")

    monkeypatch.setattr(Publisher, "_write_page", staticmethod(unencodable))
    with pytest.raises(PublishError) as excinfo:
        Publisher(output).publish([page("/", "v2")])

    assert "Cannot encode output" in excinfo.value.message
    assert not (tmp_path / "public.staging").exists()
    assert (output / "index.html").read_text(encoding="utf-8") == "v1"
