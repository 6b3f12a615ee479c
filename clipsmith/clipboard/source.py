"""Clipboard bridge protocols and the in-memory clipboard.

The snapshot never talks to the operating system clipboard directly. It reads
from a ClipboardSource and writes back to a ClipboardSink; platform bridges
implement these two small protocols. MemoryClipboard implements both and is
used by the CLI and by tests.
"""
from __future__ import annotations

from typing import Any, Protocol

from clipsmith.clipboard.types import Bitmap, ClipboardFormat, FileRef


class ClipboardSource(Protocol):
    """Read side of a clipboard bridge."""

    def contains(self, fmt: ClipboardFormat) -> bool:
        """Whether content of this format is available (no materialization)."""
        ...

    async def read(self, fmt: ClipboardFormat) -> Any:
        """Materialize content of fmt.

        Returns str for TEXT and HTML, Bitmap for IMAGE and a list of
        FileRef for FILE. May raise when the platform cannot enumerate the
        content.
        """
        ...


class ClipboardSink(Protocol):
    """Write side of a clipboard bridge."""

    def clear(self) -> None:
        """Remove all content."""
        ...

    async def write(self, fmt: ClipboardFormat, value: Any) -> None:
        """Put content of fmt on the clipboard."""
        ...


class MemoryClipboard:
    """A process-local clipboard holding at most one value per format."""

    def __init__(
        self,
        *,
        text: str | None = None,
        html: str | None = None,
        image: Bitmap | None = None,
        files: list[FileRef] | None = None,
    ) -> None:
        self._data: dict[ClipboardFormat, Any] = {}
        if text is not None:
            self._data[ClipboardFormat.TEXT] = text
        if html is not None:
            self._data[ClipboardFormat.HTML] = html
        if image is not None:
            self._data[ClipboardFormat.IMAGE] = image
        if files:
            self._data[ClipboardFormat.FILE] = list(files)

    def contains(self, fmt: ClipboardFormat) -> bool:
        return fmt in self._data

    async def read(self, fmt: ClipboardFormat) -> Any:
        if fmt not in self._data:
            raise KeyError(f"No {fmt.value} content on the clipboard")
        value = self._data[fmt]
        return list(value) if fmt == ClipboardFormat.FILE else value

    def clear(self) -> None:
        self._data.clear()

    async def write(self, fmt: ClipboardFormat, value: Any) -> None:
        self._data[fmt] = list(value) if fmt == ClipboardFormat.FILE else value
