"""Theme resolution for Quire.

A theme supplies the Jinja2 templates and static files of a site. The theme
is chosen once at build start from ``SiteConfig.theme``; templates are never
looked up from anywhere else during rendering.

Key classes:
- BuiltinTheme: The ``default`` theme shipped inside the package.
- DirectoryTheme: A theme living in ``themes/<name>/`` in the project.

Functions:
    resolve_theme: Pick the theme named by the configuration.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, FileSystemLoader, PackageLoader

from .config import SiteConfig
from .errors import ConfigError
from .protocols import Theme

BUILTIN_THEMES = ("default",)


class BuiltinTheme:
    """A theme packaged under ``quire/builtin/<name>``."""

    def __init__(self, name: str = "default"):
        self.name = name
        self.root = Path(__file__).parent / "builtin" / name

    def loader(self) -> BaseLoader:
        return PackageLoader("quire", f"builtin/{self.name}/templates")

    def static_dir(self) -> Path | None:
        static = self.root / "static"
        return static if static.is_dir() else None


class DirectoryTheme:
    """A theme directory with ``templates/`` and optional ``static/`` folders."""

    def __init__(self, root: Path):
        self.name = root.name
        self.root = root

    def loader(self) -> BaseLoader:
        return FileSystemLoader(str(self.root / "templates"))

    def static_dir(self) -> Path | None:
        static = self.root / "static"
        return static if static.is_dir() else None


def resolve_theme(project_root: Path, config: SiteConfig) -> Theme:
    """Return the theme named in the configuration.

    A ``themes/<name>`` folder in the project takes precedence over a
    builtin theme of the same name.

    Raises:
        ConfigError: If no theme with that name exists.
    """
    candidate = project_root / "themes" / config.theme
    if (candidate / "templates").is_dir():
        return DirectoryTheme(candidate)
    if config.theme in BUILTIN_THEMES:
        return BuiltinTheme(config.theme)
    raise ConfigError(
        f"Unknown theme {config.theme!r}: expected {candidate}/templates "
        f"or one of {', '.join(BUILTIN_THEMES)}"
    )
