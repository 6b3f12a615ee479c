"""Clipboard snapshot types and dataclasses."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath


class ClipboardFormat(Enum):
    """Clipboard content kinds. Values are the names reported to agents."""

    TEXT = "Text"
    HTML = "Html"
    IMAGE = "Image"
    FILE = "File"


class FileKind(Enum):
    """Kind of a storage item on the clipboard."""

    FILE = "file"
    FOLDER = "folder"


# Extension token reported for folders
FOLDER_EXTENSION = "folder"


@dataclass(frozen=True)
class FileRef:
    """A file or folder reference on the clipboard."""

    path: str
    kind: FileKind = FileKind.FILE

    @property
    def extension(self) -> str:
        """Lower-cased suffix (".txt") for files, "folder" for folders."""
        if self.kind == FileKind.FOLDER:
            return FOLDER_EXTENSION
        return PurePath(self.path).suffix.lower()


# Bytes per pixel for supported raw pixel formats
PIXEL_FORMATS: dict[str, int] = {
    "RGBA": 4,
    "BGRA": 4,
    "RGB": 3,
    "L": 1,
}


@dataclass(frozen=True)
class Bitmap:
    """An uncompressed bitmap: raw pixel buffer plus dimensions.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        pixel_format: One of PIXEL_FORMATS (BGRA is what Windows hands out).
        data: Row-major pixel bytes, no padding.
    """

    width: int
    height: int
    pixel_format: str
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        bpp = PIXEL_FORMATS.get(self.pixel_format)
        if bpp is None:
            valid = ", ".join(PIXEL_FORMATS)
            raise ValueError(f"Unsupported pixel format '{self.pixel_format}'. Must be one of: {valid}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid bitmap size {self.width}x{self.height}")
        expected = self.width * self.height * bpp
        if len(self.data) != expected:
            raise ValueError(
                f"Pixel buffer is {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height} {self.pixel_format}"
            )


@dataclass(frozen=True)
class FormatDescriptor:
    """One available clipboard format. Derived on every query, never stored.

    Attributes:
        kind: The clipboard format.
        extensions: For File, the extension of every storage item in order
            (lower-cased, "folder" for folders). Empty for other kinds.
    """

    kind: ClipboardFormat
    extensions: tuple[str, ...] = ()
