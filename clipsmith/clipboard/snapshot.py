"""ClipboardSnapshot and the format probe.

The snapshot is the core's private multi-format copy of the clipboard,
decoupled from the live OS clipboard. It is replaced wholesale by reset(),
mutated one field at a time by the clipboard tools, and pushed back to the
OS clipboard by the host.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from clipsmith.clipboard.html_format import ensure_html_format, extract_fragment
from clipsmith.clipboard.source import ClipboardSink, ClipboardSource
from clipsmith.clipboard.types import Bitmap, ClipboardFormat, FileRef, FormatDescriptor

logger = logging.getLogger(__name__)

# Probe order; also the order formats are reported in
FORMAT_ORDER: tuple[ClipboardFormat, ...] = (
    ClipboardFormat.TEXT,
    ClipboardFormat.HTML,
    ClipboardFormat.IMAGE,
    ClipboardFormat.FILE,
)


async def probe(source: ClipboardSource | None) -> list[FormatDescriptor]:
    """List the formats a clipboard source exposes.

    Never raises. A format whose detection or enumeration fails (typically
    storage items that cannot be listed) is logged and left out; formats
    detected before it are kept.

    Args:
        source: The clipboard source, or None.

    Returns:
        Descriptors in Text, Html, Image, File order.
    """
    if source is None:
        return []

    descriptors: list[FormatDescriptor] = []
    for fmt in FORMAT_ORDER:
        try:
            if not source.contains(fmt):
                continue
            if fmt == ClipboardFormat.FILE:
                items = await source.read(fmt)
                extensions = tuple(item.extension for item in items)
                descriptors.append(FormatDescriptor(fmt, extensions))
            else:
                descriptors.append(FormatDescriptor(fmt))
        except Exception as e:
            logger.warning("Could not probe %s clipboard format: %s", fmt.value, e)
    return descriptors


@dataclass(frozen=True)
class _SnapshotState:
    """Immutable field set; mutators publish a new state."""

    text: str | None = None
    html: str | None = None
    image: Bitmap | None = None
    storage_items: tuple[FileRef, ...] = field(default_factory=tuple)


class ClipboardSnapshot:
    """An in-memory, multi-format copy of the clipboard.

    Each field is independently settable and clearable (pass None). The
    snapshot implements ClipboardSource itself, so probe() works against it
    exactly as against a live clipboard.
    """

    def __init__(self) -> None:
        self._state = _SnapshotState()
        self._generation = 0

    # --- Replacement ---

    async def reset(self, source: ClipboardSource | None) -> bool:
        """Replace the snapshot with a fresh copy of source.

        Every format is copied independently; a failing copy is logged and
        skipped without affecting the others. The new content is published
        in one step once copying finishes. When a later reset starts before
        this one finishes, the later one wins.

        Args:
            source: The clipboard to copy, or None.

        Returns:
            False if source is None (the snapshot is left empty), else True.
        """
        self._generation += 1
        generation = self._generation

        if source is None:
            self._state = _SnapshotState()
            return False

        fields: dict[str, Any] = {}
        for fmt in FORMAT_ORDER:
            try:
                if not source.contains(fmt):
                    continue
                value = await source.read(fmt)
            except Exception as e:
                logger.warning("Could not copy %s from clipboard: %s", fmt.value, e)
                continue

            if fmt == ClipboardFormat.TEXT:
                fields["text"] = value
            elif fmt == ClipboardFormat.HTML:
                fields["html"] = ensure_html_format(value)
            elif fmt == ClipboardFormat.IMAGE:
                fields["image"] = value
            else:
                fields["storage_items"] = tuple(value)

        if generation != self._generation:
            logger.debug("Discarding superseded snapshot reset")
            return True

        self._state = _SnapshotState(**fields)
        logger.debug("Snapshot reset with %s", sorted(fields))
        return True

    def clear(self) -> None:
        """Drop all content."""
        self._generation += 1
        self._state = _SnapshotState()

    @property
    def is_empty(self) -> bool:
        return not any(self.contains(fmt) for fmt in FORMAT_ORDER)

    # --- Accessors ---

    def get_text(self) -> str | None:
        return self._state.text

    def set_text(self, text: str | None) -> None:
        self._state = replace(self._state, text=text)

    def get_html(self) -> str | None:
        """Return the stored HTML in its CF_HTML envelope."""
        return self._state.html

    def get_html_fragment(self) -> str | None:
        """Return the HTML payload without the CF_HTML envelope."""
        html = self._state.html
        return extract_fragment(html) if html is not None else None

    def set_html(self, html: str | None) -> None:
        """Store html, wrapping it in the CF_HTML envelope if needed."""
        self._state = replace(
            self._state, html=ensure_html_format(html) if html is not None else None
        )

    def get_image(self) -> Bitmap | None:
        return self._state.image

    def set_image(self, image: Bitmap | None) -> None:
        self._state = replace(self._state, image=image)

    def get_storage_items(self) -> list[FileRef]:
        return list(self._state.storage_items)

    def set_storage_items(self, items: list[FileRef] | None, *, exclusive: bool = False) -> None:
        """Set the file references.

        Args:
            items: New storage items; None or empty clears them.
            exclusive: Replace the whole snapshot with just these items, as
                one write (used by "paste as file").
        """
        stored = tuple(items or ())
        if exclusive:
            self._state = _SnapshotState(storage_items=stored)
        else:
            self._state = replace(self._state, storage_items=stored)

    # --- ClipboardSource ---

    def contains(self, fmt: ClipboardFormat) -> bool:
        state = self._state
        if fmt == ClipboardFormat.TEXT:
            return state.text is not None
        if fmt == ClipboardFormat.HTML:
            return state.html is not None
        if fmt == ClipboardFormat.IMAGE:
            return state.image is not None
        return bool(state.storage_items)

    async def read(self, fmt: ClipboardFormat) -> Any:
        if not self.contains(fmt):
            raise KeyError(f"No {fmt.value} content in snapshot")
        state = self._state
        if fmt == ClipboardFormat.TEXT:
            return state.text
        if fmt == ClipboardFormat.HTML:
            return state.html
        if fmt == ClipboardFormat.IMAGE:
            return state.image
        return list(state.storage_items)

    # --- Queries ---

    async def formats(self) -> list[FormatDescriptor]:
        """Probe the snapshot. Recomputed on every call."""
        return await probe(self)

    async def format_names(self) -> list[str]:
        """Names of the available formats ("Text", "Html", "Image", "File")."""
        return [d.kind.value for d in await self.formats()]

    async def file_extensions(self) -> list[str]:
        """Extensions of the storage items ("folder" for folders)."""
        for descriptor in await self.formats():
            if descriptor.kind == ClipboardFormat.FILE:
                return list(descriptor.extensions)
        return []

    # --- Write back ---

    async def push_to(self, sink: ClipboardSink) -> bool:
        """Replace the sink's content with this snapshot.

        Returns:
            True if every present format was written, False otherwise.
        """
        state = self._state
        try:
            sink.clear()
            if state.text is not None:
                await sink.write(ClipboardFormat.TEXT, state.text)
            if state.html is not None:
                await sink.write(ClipboardFormat.HTML, state.html)
            if state.image is not None:
                await sink.write(ClipboardFormat.IMAGE, state.image)
            if state.storage_items:
                await sink.write(ClipboardFormat.FILE, list(state.storage_items))
        except Exception as e:
            logger.error("Failed to write snapshot to clipboard: %s", e)
            return False
        return True
