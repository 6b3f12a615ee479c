"""CF_HTML clipboard wrapper.

HTML on the clipboard is stored in the Windows "HTML Format" envelope: a
small ASCII header with byte offsets followed by a document whose payload sits
between StartFragment/EndFragment comment markers. Offsets are UTF-8 byte
positions from the start of the envelope.
"""

import re

START_FRAGMENT_MARKER = "<!--StartFragment-->"
END_FRAGMENT_MARKER = "<!--EndFragment-->"

_HEADER_TEMPLATE = (
    "Version:0.9\r\n"
    "StartHTML:{start_html:010d}\r\n"
    "EndHTML:{end_html:010d}\r\n"
    "StartFragment:{start_fragment:010d}\r\n"
    "EndFragment:{end_fragment:010d}\r\n"
)
_HEADER_LENGTH = len(_HEADER_TEMPLATE.format(
    start_html=0, end_html=0, start_fragment=0, end_fragment=0
))

_OFFSET_PATTERN = re.compile(r"^(StartHTML|EndHTML|StartFragment|EndFragment):(-?\d+)\s*$", re.M)


def is_html_format(value: str) -> bool:
    """Check whether value already carries the CF_HTML header."""
    return value.startswith("Version:") and "StartFragment:" in value[:_HEADER_LENGTH + 64]


def create_html_format(fragment: str) -> str:
    """Wrap an HTML fragment in the CF_HTML envelope.

    Args:
        fragment: HTML markup to place on the clipboard.

    Returns:
        The full envelope string with correct byte offsets.
    """
    prefix = "<html>\r\n<body>\r\n" + START_FRAGMENT_MARKER
    suffix = END_FRAGMENT_MARKER + "\r\n</body>\r\n</html>"

    start_html = _HEADER_LENGTH
    start_fragment = start_html + len(prefix.encode("utf-8"))
    end_fragment = start_fragment + len(fragment.encode("utf-8"))
    end_html = end_fragment + len(suffix.encode("utf-8"))

    header = _HEADER_TEMPLATE.format(
        start_html=start_html,
        end_html=end_html,
        start_fragment=start_fragment,
        end_fragment=end_fragment,
    )
    return header + prefix + fragment + suffix


def extract_fragment(value: str) -> str:
    """Return the HTML fragment carried by a CF_HTML envelope.

    Falls back to the comment markers when the offsets are missing or
    inconsistent, and returns value unchanged when it is plain HTML.
    """
    if not is_html_format(value):
        return value

    offsets = {name: int(num) for name, num in _OFFSET_PATTERN.findall(value)}
    raw = value.encode("utf-8")
    start = offsets.get("StartFragment", -1)
    end = offsets.get("EndFragment", -1)
    if 0 <= start <= end <= len(raw):
        return raw[start:end].decode("utf-8", errors="replace")

    begin = value.find(START_FRAGMENT_MARKER)
    finish = value.find(END_FRAGMENT_MARKER)
    if begin != -1 and finish > begin:
        return value[begin + len(START_FRAGMENT_MARKER):finish]

    body_start = offsets.get("StartHTML", -1)
    if 0 <= body_start <= len(raw):
        return raw[body_start:].decode("utf-8", errors="replace")
    return value


def ensure_html_format(value: str) -> str:
    """Wrap value in CF_HTML unless it already is."""
    if is_html_format(value):
        return value
    return create_html_format(value)
