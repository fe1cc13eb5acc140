"""Site configuration for Quire.

The configuration is read once from ``quire.yaml`` at the start of a build
and handed to every stage as an immutable SiteConfig.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "quire.yaml"


@dataclass(frozen=True)
class SiteConfig:
    """Immutable site-wide settings.

    Attributes:
        title: Site title.
        base_url: Absolute base URL, used for feeds, sitemap and links.
        description: Site description for feeds and meta tags.
        author: Default author when a document names none.
        language: Value of the ``lang`` attribute on ``<html>``.
        theme: Theme name: builtin ``default`` or a folder under ``themes/``.
        content_dir: Content root, relative to the project.
        output_dir: Output root, relative to the project.
        paginate: Number of documents per list page.
        main_sections: Sections listed on the home page (empty means all).
        rss_limit: Maximum number of RSS items.
        workers: Threads used to render single pages.
        port: Dev server HTTP port.
        ws_port: Dev server live-reload websocket port.
        params: Free-form values exposed to templates.
    """

    title: str = "My Site"
    base_url: str = ""
    description: str = ""
    author: str = ""
    language: str = "en"
    theme: str = "default"
    content_dir: str = "content"
    output_dir: str = "public"
    paginate: int = 10
    main_sections: tuple[str, ...] = ()
    rss_limit: int = 20
    workers: int = 1
    port: int = 1313
    ws_port: int = 1314
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SiteConfig:
        """Build a config from a parsed mapping, validating value types.

        Args:
            raw: Mapping loaded from quire.yaml.

        Returns:
            A SiteConfig with defaults applied for missing keys.

        Raises:
            ConfigError: If a value has the wrong type or range.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in raw.items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            values[key] = _coerce(key, value)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> SiteConfig:
        """Return a copy with the given non-None values replaced."""
        changes = {k: _coerce(k, v) for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @property
    def root_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.base_url.rstrip("/")


_STRING_KEYS = {
    "title",
    "base_url",
    "description",
    "author",
    "language",
    "theme",
    "content_dir",
    "output_dir",
}
_POSITIVE_INT_KEYS = {"paginate", "rss_limit", "workers", "port", "ws_port"}


def _coerce(key: str, value: Any) -> Any:
    if key in _STRING_KEYS:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
        return str(value)
    if key in _POSITIVE_INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{key} must be a positive integer, got {value!r}")
        return value
    if key == "main_sections":
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        if not isinstance(value, (list, tuple)):
            raise ConfigError("main_sections must be a list of section names")
        return tuple(str(item) for item in value)
    if key == "params":
        if value is None:
            return MappingProxyType({})
        if not isinstance(value, Mapping):
            raise ConfigError("params must be a mapping")
        return MappingProxyType(dict(value))
    return value


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from quire.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with defaults applied. A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        logger.debug("No %s found in %s; using defaults", CONFIG_FILENAME, project_root)
        return SiteConfig()
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return SiteConfig.from_mapping(loaded)
