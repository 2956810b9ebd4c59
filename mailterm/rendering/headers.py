"""
Header selection and formatting for rendered messages.
"""

import re
from collections.abc import Mapping
from email.errors import HeaderParseError
from email.header import decode_header
from email.message import Message
from typing import Dict, Iterator, List

DISPLAY_ORDER = ("From", "To", "Cc", "Date", "Subject")

_FOLDED_LINE = re.compile(r"\r?\n[ \t]+")


def _decode_header_value(value: str) -> str:
    """Unfold a raw header value and decode any RFC 2047 encoded words."""
    # Raw 8-bit header bytes arrive surrogate-escaped from the bytes parser
    value = value.encode('utf-8', errors='surrogateescape').decode('utf-8', errors='replace')
    value = _FOLDED_LINE.sub(" ", value)
    if "=?" not in value:
        return value
    try:
        words = decode_header(value)
    except HeaderParseError:
        # Broken encoded words are shown as written
        return value
    result = []
    for content, charset in words:
        if isinstance(content, bytes):
            try:
                result.append(content.decode(charset or 'utf-8', errors='replace'))
            except LookupError:
                result.append(content.decode('utf-8', errors='replace'))
        else:
            result.append(content)
    return ''.join(result)


class HeaderSet(Mapping):
    """
    Read-only, case-insensitive view of a message's header block.

    Headers that occur more than once are joined into a single value
    separated by ", ".
    """

    def __init__(self, headers: Dict[str, str]):
        self._headers = {name.lower(): value for name, value in headers.items()}

    @classmethod
    def from_message(cls, message: Message) -> "HeaderSet":
        collected: Dict[str, List[str]] = {}
        names: Dict[str, str] = {}
        for name, value in message.raw_items():
            key = name.lower()
            names.setdefault(key, name)
            collected.setdefault(key, []).append(_decode_header_value(str(value)))
        return cls({names[key]: ", ".join(values) for key, values in collected.items()})

    def __getitem__(self, name: str) -> str:
        return self._headers[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderSet({self._headers!r})"


def format_headers(headers: Mapping) -> str:
    """
    Render the display headers in fixed order, one "Name: value" per line.

    Headers that are missing or blank are left out entirely.
    """
    lines = []
    for name in DISPLAY_ORDER:
        value = (headers.get(name) or "").strip()
        if value:
            lines.append(f"{name}: {value}")
    return "\n".join(lines).strip()
