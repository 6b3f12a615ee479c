"""Clipboard tools exposed to direct callers and to the agent.

Each tool reads the snapshot when called and writes back through the
snapshot's mutators only after its transformation succeeded. Every tool
reports the snapshot's formats after the operation as a JSON array, on
failure too, so the agent can see that nothing changed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

from clipsmith.clipboard.convert import to_json_from_xml_or_csv
from clipsmith.clipboard.files import TempFileArea
from clipsmith.clipboard.snapshot import ClipboardSnapshot
from clipsmith.clipboard.types import FileRef
from clipsmith.core.errors import ClipsmithError, ToolError
from clipsmith.core.types import ToolResult
from clipsmith.skill.base import EMPTY_PARAMETERS, ToolSpec
from clipsmith.skill.registry import ToolRegistry

logger = logging.getLogger(__name__)

# (instructions, clipboard text) -> rewritten text; raises on failure
TextCompleter = Callable[[str, str], Awaitable[str]]

FORMATS_AFTER = "JSON array of the clipboard formats available after the operation"


class ClipboardTools:
    """The fixed catalogue of clipboard tools, bound to one snapshot."""

    def __init__(
        self,
        snapshot: ClipboardSnapshot,
        completer: TextCompleter | None = None,
        file_area: TempFileArea | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._completer = completer
        self._file_area = file_area or TempFileArea()

    async def _formats_json(self) -> str:
        return json.dumps(await self._snapshot.format_names())

    async def _fail(self, message: str) -> ToolResult:
        logger.info("Clipboard tool failed: %s", message)
        return ToolResult(output=await self._formats_json(), error=message)

    def _require_text(self) -> str:
        text = self._snapshot.get_text()
        if text is None:
            raise ToolError("No text on the clipboard")
        return text

    async def get_clipboard_formats(self) -> ToolResult:
        return ToolResult(output=await self._formats_json())

    async def transform_to_json(self) -> ToolResult:
        """Replace XML or CSV clipboard text with its JSON rendering."""
        try:
            converted = to_json_from_xml_or_csv(self._require_text())
        except ClipsmithError as e:
            return await self._fail(e.message)

        self._snapshot.set_text(converted)
        return ToolResult(output=await self._formats_json())

    async def transform_text_with_custom_instructions(self, instructions: str) -> ToolResult:
        """Rewrite the clipboard text with the cloud completion backend."""
        if self._completer is None:
            return await self._fail("AI transformation is not available")
        try:
            text = self._require_text()
            rewritten = await self._completer(instructions, text)
        except ClipsmithError as e:
            return await self._fail(e.message)

        self._snapshot.set_text(rewritten)
        return ToolResult(output=await self._formats_json())

    async def transform_to_file(self) -> ToolResult:
        """Turn text (preferred) or image content into a single file reference.

        Content that is neither text nor image leaves the snapshot unchanged.
        """
        text = self._snapshot.get_text()
        image = self._snapshot.get_image()

        try:
            if text is not None:
                path = await asyncio.to_thread(self._file_area.write_text, text)
            elif image is not None:
                path = await asyncio.to_thread(self._file_area.write_image, image)
            else:
                return ToolResult(output=await self._formats_json())
        except OSError as e:
            return await self._fail(f"Could not write clipboard file: {e}")

        self._snapshot.set_storage_items([FileRef(str(path))], exclusive=True)
        return ToolResult(output=await self._formats_json())


def register_clipboard_tools(registry: ToolRegistry, tools: ClipboardTools) -> None:
    """Register the clipboard tool catalogue with a registry."""
    registry.register(ToolSpec(
        name="get_clipboard_formats",
        description="Get what formats are currently on the clipboard.",
        handler=tools.get_clipboard_formats,
        parameters=EMPTY_PARAMETERS,
        returns="JSON array of available formats",
    ))
    registry.register(ToolSpec(
        name="transform_to_json",
        description=(
            "Takes clipboard text and transforms it to JSON. "
            "Clipboard text needs to be XML or CSV for this to work."
        ),
        handler=tools.transform_to_json,
        parameters=EMPTY_PARAMETERS,
        returns=FORMATS_AFTER,
    ))
    registry.register(ToolSpec(
        name="transform_text_with_custom_instructions",
        description=(
            "Takes an input instruction and formats any text on the clipboard with "
            "that custom input instruction. This uses AI to accomplish the task. "
            "All requests must be phrased as: 'Paste as...', like 'Paste as markdown "
            "table' or 'Paste as bulleted list' and should be as descriptive as is "
            "reasonable."
        ),
        handler=tools.transform_text_with_custom_instructions,
        parameters={
            "type": "object",
            "properties": {
                "instructions": {
                    "type": "string",
                    "minLength": 1,
                    "description": "The 'Paste as...' instruction to apply",
                },
            },
            "required": ["instructions"],
        },
        returns=FORMATS_AFTER,
    ))
    registry.register(ToolSpec(
        name="transform_to_file",
        description=(
            "If the clipboard has text or image data on it, this function will "
            "transform it into file data instead. Allows user to paste things as a file."
        ),
        handler=tools.transform_to_file,
        parameters=EMPTY_PARAMETERS,
        returns=FORMATS_AFTER,
    ))
