"""Static asset processing for Quire.

Static files come from the theme's ``static/`` folder and then the project's
``static/`` folder, so a project file replaces a theme file at the same
path. Each file is handed to the first processor that accepts it.

Key classes:
- JSProcessor: Minifies JavaScript with rjsmin.
- ImageProcessor: Re-encodes PNG and JPEG files with Pillow.
- StaticAssetProcessor: Copies any other file unchanged.
- AssetProcessorRegistry: Picks a processor by priority.
- AssetPipeline: Walks the static folders into the output directory.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image
from rjsmin import jsmin

logger = logging.getLogger(__name__)


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> None:
        """Write the processed ``source`` to ``dest``.

        Raises:
            OSError: If reading or writing fails.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Re-encodes PNG and JPEG images with Pillow's optimizer.

    Files Pillow cannot decode, truncated ones included, are copied unchanged.
    """

    extensions = {".png", ".jpg", ".jpeg"}

    @property
    def priority(self) -> int:
        return 20

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                options = {"optimize": True}
                if img.format == "JPEG":
                    options["quality"] = "keep"
                img.save(dest, format=img.format, **options)
        except (OSError, ValueError) as exc:
            # UnidentifiedImageError and truncated files both land here
            logger.warning("Copying %s unoptimized: %s", source, exc)
            shutil.copy2(source, dest)


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript; ``*.min.js`` files are already minified.

    Files that are not UTF-8 are copied unchanged.
    """

    @property
    def priority(self) -> int:
        return 10

    def can_process(self, path: Path) -> bool:
        return path.suffix == ".js" and not path.name.endswith(".min.js")

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Copying %s unminified: %s", source, exc)
            shutil.copy2(source, dest)
            return
        dest.write_text(jsmin(text), encoding="utf-8")


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies files without modification."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)


class AssetProcessorRegistry:
    """Registry of asset processors, checked from highest priority down."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process ``source`` into ``dest``; False when no processor applies."""
        processor = self.get_processor(source)
        if processor is None:
            return False
        processor.process(source, dest)
        return True


def create_default_registry() -> AssetProcessorRegistry:
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    registry.register(JSProcessor())
    registry.register(StaticAssetProcessor())
    return registry


class AssetPipeline:
    """Copies and processes static folders into the output directory.

    Attributes:
        source_dirs: Static folders, lowest precedence first.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        source_dirs: list[Path],
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.source_dirs = [d for d in source_dirs if d is not None]
        self.processor_registry = processor_registry or create_default_registry()

    def collect(self) -> dict[str, Path]:
        """Map each output-relative path to the source file that wins."""
        files: dict[str, Path] = {}
        for source_dir in self.source_dirs:
            if not source_dir.is_dir():
                continue
            for item in sorted(source_dir.rglob("*")):
                if item.is_dir() or item.name.startswith("."):
                    continue
                files[item.relative_to(source_dir).as_posix()] = item
        return files

    def run(self, output_dir: Path) -> list[str]:
        """Process every static file into ``output_dir``.

        Returns:
            Output-relative paths that were written.

        Raises:
            OSError: If a file cannot be read or written.
        """
        written = []
        for rel, source in sorted(self.collect().items()):
            if self.processor_registry.process(source, output_dir / rel):
                written.append(rel)
        logger.debug("Processed %d static files", len(written))
        return written
