"""Publishing of the composed site.

The publisher writes pages and static assets into a staging directory next
to the output directory and swaps it into place only when every write has
succeeded. A failed run therefore leaves the previous output untouched and
raises PublishError; a successful run replaces the output entirely, so no
stale page survives.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path

from .assets import AssetPipeline
from .errors import PublishError
from .pages import RenderedPage

logger = logging.getLogger(__name__)


class Publisher:
    """Writes a full build into the output directory.

    Attributes:
        output_dir: Final output directory.
        staging_dir: Sibling directory the build is written to first.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.staging_dir = output_dir.with_name(output_dir.name + ".staging")

    def publish(
        self,
        pages: Iterable[RenderedPage],
        assets: AssetPipeline | None = None,
    ) -> int:
        """Write every page and asset, then activate the new output.

        Static assets are written first so that a page can replace an asset
        at the same path.

        Returns:
            Number of pages written.

        Raises:
            PublishError: If anything cannot be written.
        """
        staging = self._prepare_staging_dir()
        count = 0
        try:
            if assets is not None:
                assets.run(staging)
            for page in pages:
                self._write_page(staging, page)
                count += 1
            self._activate(staging)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            target = Path(exc.filename) if exc.filename else staging
            raise PublishError(target, f"Cannot write output: {exc.strerror or exc}", exc) from exc
        except UnicodeError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise PublishError(staging, f"Cannot encode output: {exc}", exc) from exc
        logger.info("Published %d pages to %s", count, self.output_dir)
        return count

    def _prepare_staging_dir(self) -> Path:
        staging = self.staging_dir
        try:
            if staging.exists():
                shutil.rmtree(staging)
            staging.mkdir(parents=True)
        except OSError as exc:
            raise PublishError(staging, f"Cannot prepare staging directory: {exc}", exc) from exc
        return staging

    @staticmethod
    def _write_page(root: Path, page: RenderedPage) -> None:
        target = root / page.output_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(page.html)

    def _activate(self, staging: Path) -> None:
        """Replace the output directory with the staging directory."""
        if self.output_dir.exists():
            previous = self.output_dir.with_name(self.output_dir.name + ".previous")
            if previous.exists():
                shutil.rmtree(previous)
            os.replace(self.output_dir, previous)
            os.replace(staging, self.output_dir)
            shutil.rmtree(previous, ignore_errors=True)
        else:
            self.output_dir.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staging, self.output_dir)
