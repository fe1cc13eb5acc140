import random
from pathlib import Path

from PIL import Image

from quire.assets import (
    AssetPipeline,
    ImageProcessor,
    JSProcessor,
    StaticAssetProcessor,
    create_default_registry,
)


def test_registry_orders_processors_by_priority():
    registry = create_default_registry()
    assert isinstance(registry.get_processor(Path("a.png")), ImageProcessor)
    assert isinstance(registry.get_processor(Path("app.js")), JSProcessor)
    assert isinstance(registry.get_processor(Path("app.min.js")), StaticAssetProcessor)
    assert isinstance(registry.get_processor(Path("style.css")), StaticAssetProcessor)


def test_js_is_minified(tmp_path):
    source = tmp_path / "app.js"
    source.write_text("function add(a, b) {\n  // sum\n  return a + b;\n}\n", encoding="utf-8")
    dest = tmp_path / "out" / "js" / "app.js"
    JSProcessor().process(source, dest)
    minified = dest.read_text(encoding="utf-8")
    assert "// sum" not in minified
    assert "return a+b" in minified


def test_png_is_reencoded(tmp_path):
    source = tmp_path / "pixel.png"
    Image.new("RGB", (4, 4), color=(255, 0, 0)).save(source, format="PNG")
    dest = tmp_path / "out" / "pixel.png"
    ImageProcessor().process(source, dest)
    with Image.open(dest) as img:
        assert img.format == "PNG"
        assert img.size == (4, 4)


def test_broken_image_is_copied(tmp_path, caplog):
    source = tmp_path / "broken.jpg"
    source.write_bytes(b"not really a jpeg")
    dest = tmp_path / "out" / "broken.jpg"
    with caplog.at_level("WARNING", logger="quire"):
        ImageProcessor().process(source, dest)
    assert dest.read_bytes() == b"not really a jpeg"
    assert "unoptimized" in caplog.text


def test_pipeline_lets_later_folders_win(tmp_path):
    theme = tmp_path / "theme" / "static"
    project = tmp_path / "static"
    (theme / "css").mkdir(parents=True)
    (project / "css").mkdir(parents=True)
    (theme / "css" / "style.css").write_text("theme", encoding="utf-8")
    (theme / "css" / "extra.css").write_text("extra", encoding="utf-8")
    (project / "css" / "style.css").write_text("project", encoding="utf-8")
    (project / ".DS_Store").write_text("x", encoding="utf-8")

    output = tmp_path / "public"
    written = AssetPipeline([theme, project, tmp_path / "missing"]).run(output)

    assert written == ["css/extra.css", "css/style.css"]
    assert (output / "css" / "style.css").read_text(encoding="utf-8") == "project"
    assert not (output / ".DS_Store").exists()


def test_truncated_image_is_copied(tmp_path, caplog):
    source = tmp_path / "cut.png"
    pixels = random.Random(3).randbytes(48 * 48)
    Image.frombytes("L", (48, 48), pixels).save(source, format="PNG")
    data = source.read_bytes()[:-40]
    source.write_bytes(data)
    dest = tmp_path / "out" / "cut.png"
    with caplog.at_level("WARNING", logger="quire"):
        ImageProcessor().process(source, dest)
    assert dest.read_bytes() == data
    assert "unoptimized" in caplog.text


def test_non_utf8_js_is_copied(tmp_path, caplog):
    source = tmp_path / "legacy.js"
    source.write_bytes(b"var name = 'caf\xe9';\n")
    dest = tmp_path / "out" / "legacy.js"
    with caplog.at_level("WARNING", logger="quire"):
        JSProcessor().process(source, dest)
    assert dest.read_bytes() == b"var name = 'caf\xe9';\n"
    assert "unminified" in caplog.text
