"""Temp file area for "paste as file".

Clipboard text and images are materialized as files with fixed names in a
single directory, so repeated exports overwrite the previous file instead of
accumulating.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from PIL import Image

from clipsmith.clipboard.types import Bitmap

logger = logging.getLogger(__name__)

TEXT_FILE_NAME = "clipboard.txt"
IMAGE_FILE_NAME = "clipboard.png"


class TempFileArea:
    """Writes clipboard content to files in a temp directory."""

    def __init__(self, directory: Path | None = None) -> None:
        """Initialize the file area.

        Args:
            directory: Target directory. Defaults to the system temp dir.
        """
        self._directory = directory or Path(tempfile.gettempdir())

    @property
    def directory(self) -> Path:
        return self._directory

    def write_text(self, content: str, name: str = TEXT_FILE_NAME) -> Path:
        """Write content as UTF-8 text and return the file path."""
        path = self._prepare(name)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote %d chars to %s", len(content), path)
        return path

    def write_image(self, bitmap: Bitmap, name: str = IMAGE_FILE_NAME) -> Path:
        """Encode bitmap as PNG and return the file path."""
        path = self._prepare(name)
        image = bitmap_to_image(bitmap)
        image.save(path, format="PNG")
        logger.debug("Wrote %dx%d image to %s", bitmap.width, bitmap.height, path)
        return path

    def _prepare(self, name: str) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory / name


def bitmap_to_image(bitmap: Bitmap) -> Image.Image:
    """Convert a raw Bitmap to a Pillow image."""
    size = (bitmap.width, bitmap.height)
    if bitmap.pixel_format == "BGRA":
        return Image.frombytes("RGBA", size, bitmap.data, "raw", "BGRA")
    return Image.frombytes(bitmap.pixel_format, size, bitmap.data)
