"""Site building for Quire.

This module runs the whole pipeline once: load the configuration, load the
documents, compose every page, render feeds, and publish the result.

Key functions:
- build_site: Build the entire site.

Per-document problems (malformed frontmatter, template failures) are logged
and returned in ``BuildResult.errors`` while the rest of the site builds.
Configuration, input and output failures raise and abort the build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .assets import AssetPipeline
from .collections import DocumentCollection
from .config import CONFIG_FILENAME, SiteConfig, load_config
from .content import ContentStore, DocumentBuilder
from .errors import BuildError, ConfigError, DocumentError
from .feeds import create_default_feed_registry
from .pages import PageComposer, RenderedPage
from .publisher import Publisher
from .templates import TemplateEngine
from .themes import resolve_theme

__all__ = ["BuildError", "BuildResult", "build_site", "load_config"]

logger = logging.getLogger(__name__)

# Project folders a build reads besides the content folder
SOURCE_FOLDERS = ("layouts", "static", "themes")


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        pages: Every page and feed that was written.
        output_dir: Directory the site was written to.
        documents: Documents that were published.
        config: Configuration the build ran with.
        errors: Per-document errors that were reported and skipped.
    """

    pages: list[RenderedPage]
    output_dir: Path
    documents: DocumentCollection
    config: SiteConfig
    errors: list[DocumentError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def check_output_dir(project_root: Path, content_dir: Path, output_dir: Path) -> None:
    """Refuse an output directory that holds or sits inside project sources.

    Publishing replaces the output directory wholesale, so it must never be
    the project root, one of its parents, or a folder the build reads.

    Raises:
        ConfigError: If publishing to ``output_dir`` would delete sources.
    """
    output = output_dir.resolve()
    root = project_root.resolve()
    sources = [content_dir.resolve(), root / CONFIG_FILENAME]
    sources.extend(root / name for name in SOURCE_FOLDERS)
    if root.is_relative_to(output):
        raise ConfigError(f"Output directory {output_dir} contains the project {project_root}")
    for source in sources:
        if source.is_relative_to(output) or output.is_relative_to(source):
            raise ConfigError(f"Output directory {output_dir} overlaps project source {source}")


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    include_future: bool = False,
    base_url: str | None = None,
    output_dir_override: Path | None = None,
    now: datetime | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to publish documents marked ``draft``.
        include_future: Whether to publish documents dated after ``now``.
        base_url: Optional override for the configured base URL.
        output_dir_override: Optional directory to write the build to.
        now: Reference time for future-dated documents (defaults to now).

    Returns:
        BuildResult describing what was published.

    Raises:
        ConfigError: If quire.yaml or the theme is invalid, or the output
            directory would overwrite project sources.
        BuildError: If content cannot be read or URLs collide.
        PublishError: If the output cannot be written.
    """
    config = load_config(project_root).with_overrides(base_url=base_url)
    output_dir = output_dir_override or (project_root / config.output_dir)
    check_output_dir(project_root, project_root / config.content_dir, output_dir)
    theme = resolve_theme(project_root, config)
    logger.debug("Building %s with theme %s", project_root, theme.name)

    content_dir = project_root / config.content_dir
    builder = DocumentBuilder(content_dir, default_author=config.author)
    loaded = ContentStore(content_dir, document_builder=builder).load()
    now = now or datetime.now(timezone.utc)
    documents = DocumentCollection(loaded.documents).visible(
        include_drafts=include_drafts, include_future=include_future, now=now
    )
    skipped = len(loaded.documents) - len(documents)
    if skipped:
        logger.info("Skipped %d draft or future documents", skipped)

    engine = TemplateEngine(config, theme, layouts_dir=project_root / "layouts")
    composer = PageComposer(config, engine, content_dir)
    pages = composer.compose(documents, loaded.sections)
    pages.extend(create_default_feed_registry().render_all(documents, pages, config))

    assets = AssetPipeline([theme.static_dir(), project_root / "static"])
    Publisher(output_dir).publish(pages, assets)

    errors: list[DocumentError] = [*loaded.errors, *composer.errors]
    return BuildResult(
        pages=pages,
        output_dir=output_dir,
        documents=documents,
        config=config,
        errors=errors,
    )
