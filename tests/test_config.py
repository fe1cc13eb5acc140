import pytest

from quire.config import SiteConfig, load_config
from quire.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config == SiteConfig()
    assert config.output_dir == "public"
    assert config.paginate == 10


def test_values_are_loaded(tmp_path):
    (tmp_path / "quire.yaml").write_text(
        "title: Field Notes\n"
        "base_url: https://example.com/notes/\n"
        "paginate: 5\n"
        "main_sections: posts\n"
        "params:\n  twitter: fieldnotes\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.title == "Field Notes"
    assert config.root_url == "https://example.com/notes"
    assert config.paginate == 5
    assert config.main_sections == ("posts",)
    assert config.params["twitter"] == "fieldnotes"


def test_unknown_keys_warn(tmp_path, caplog):
    (tmp_path / "quire.yaml").write_text("colour: blue\n", encoding="utf-8")
    with caplog.at_level("WARNING", logger="quire"):
        config = load_config(tmp_path)
    assert config == SiteConfig()
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "text",
    [
        "title: [unclosed\n",
        "- a\n- b\n",
        "paginate: 0\n",
        "paginate: many\n",
        "workers: true\n",
        "title: {a: 1}\n",
        "params: [1, 2]\n",
        "main_sections: {a: 1}\n",
    ],
)
def test_invalid_config_raises(tmp_path, text):
    (tmp_path / "quire.yaml").write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_overrides_ignore_none():
    config = SiteConfig(base_url="https://a.example/")
    assert config.with_overrides(base_url=None) is config
    assert config.with_overrides(base_url="https://b.example/").base_url == "https://b.example/"


def test_config_is_immutable():
    config = SiteConfig()
    with pytest.raises(AttributeError):
        config.title = "changed"
    with pytest.raises(TypeError):
        config.params["x"] = 1
