"""Clipboard snapshot, format probing and content conversion."""
from clipsmith.clipboard.convert import to_json_from_xml_or_csv
from clipsmith.clipboard.files import TempFileArea
from clipsmith.clipboard.html_format import create_html_format, extract_fragment
from clipsmith.clipboard.snapshot import ClipboardSnapshot, probe
from clipsmith.clipboard.source import ClipboardSink, ClipboardSource, MemoryClipboard
from clipsmith.clipboard.types import (
    Bitmap,
    ClipboardFormat,
    FileKind,
    FileRef,
    FormatDescriptor,
)

__all__ = [
    "Bitmap",
    "ClipboardFormat",
    "ClipboardSink",
    "ClipboardSnapshot",
    "ClipboardSource",
    "FileKind",
    "FileRef",
    "FormatDescriptor",
    "MemoryClipboard",
    "TempFileArea",
    "create_html_format",
    "extract_fragment",
    "probe",
    "to_json_from_xml_or_csv",
]
