"""XML and CSV to JSON conversion for clipboard text.

XML is tried first. Elements become objects keyed by tag: attributes are
stored as "@name", repeated children become lists, and element text is a
plain string for leaf elements or "#text" when the element also has
attributes or children. CSV is accepted when every non-empty row has the same
number of columns (at least two); it converts to a list of rows.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any

from clipsmith.core.errors import ConversionError

logger = logging.getLogger(__name__)

CSV_DELIMITERS = ",;\t|"


def to_json_from_xml_or_csv(text: str) -> str:
    """Convert XML or CSV text to indented JSON.

    Raises:
        ConversionError: If text is empty, already JSON, or neither XML nor CSV.
    """
    stripped = text.strip()
    if not stripped:
        raise ConversionError("Clipboard text is empty")

    if _is_json(stripped):
        raise ConversionError("Clipboard text is already JSON")

    if stripped.startswith("<"):
        try:
            return json.dumps(xml_to_dict(stripped), indent=2, ensure_ascii=False)
        except ET.ParseError as e:
            logger.debug("Text is not well-formed XML: %s", e)

    rows = parse_csv(stripped)
    if rows is None:
        raise ConversionError("Clipboard text is neither XML nor CSV")
    return json.dumps(rows, indent=2, ensure_ascii=False)


def _is_json(text: str) -> bool:
    if text[0] not in "[{":
        return False
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def xml_to_dict(text: str) -> dict[str, Any]:
    """Parse an XML document into a JSON-ready dict.

    Raises:
        xml.etree.ElementTree.ParseError: If text is not well-formed XML.
    """
    root = ET.fromstring(text)
    return {_local_name(root.tag): _element_to_value(root)}


def _local_name(tag: str) -> str:
    # "{namespace}tag" -> "tag"
    return tag.rsplit("}", 1)[-1]


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    text = (element.text or "").strip()

    if not children and not element.attrib:
        return text or None

    result: dict[str, Any] = {f"@{_local_name(k)}": v for k, v in element.attrib.items()}
    for child in children:
        name = _local_name(child.tag)
        value = _element_to_value(child)
        if name in result:
            existing = result[name]
            if not isinstance(existing, list):
                result[name] = [existing]
            result[name].append(value)
        else:
            result[name] = value

    if text:
        result["#text"] = text
    return result


def parse_csv(text: str) -> list[list[str]] | None:
    """Parse delimited text into rows.

    Returns:
        The rows, or None when text does not look like a table.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return None

    try:
        dialect = csv.Sniffer().sniff("\n".join(lines[:20]), delimiters=CSV_DELIMITERS)
    except csv.Error:
        return None

    rows = list(csv.reader(io.StringIO("\n".join(lines)), dialect))
    if len(rows) < 2:
        return None
    widths = {len(row) for row in rows}
    if len(widths) != 1 or widths.pop() < 2:
        return None
    # A trailing delimiter ("Dear Bob,") is prose punctuation, not a column
    if any(not row[-1].strip() for row in rows):
        return None
    return rows
