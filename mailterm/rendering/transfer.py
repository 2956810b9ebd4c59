"""
Content-Transfer-Encoding decoding for MIME leaf parts.
"""

import base64
import binascii
import re
from typing import Optional

from .errors import EncodingError

_B64_WHITESPACE = re.compile(rb"[ \t\r\n]+")
_QP_ESCAPE = re.compile(rb"=([0-9A-Fa-f]{2})?")


def decode_transfer(data: bytes, encoding: Optional[str]) -> bytes:
    """
    Decode a content block according to its declared transfer encoding.

    Args:
        data: Raw part content as found in the message
        encoding: Value of the Content-Transfer-Encoding header (any case)

    Returns:
        Decoded bytes. Unknown or absent encodings return data unchanged.

    Raises:
        EncodingError: If a base64 or quoted-printable payload is invalid
    """
    name = (encoding or "").strip().lower()
    if name == "base64":
        return _decode_base64(data)
    if name == "quoted-printable":
        return _decode_quoted_printable(data)
    return data


def _decode_base64(data: bytes) -> bytes:
    compact = _B64_WHITESPACE.sub(b"", data)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"invalid base64 payload: {e}") from e


def _unescape(match) -> bytes:
    if match.group(1) is None:
        snippet = match.string[match.start():match.start() + 3]
        raise EncodingError(f"invalid quoted-printable escape: {snippet!r}")
    return bytes([int(match.group(1), 16)])


def _decode_quoted_printable(data: bytes) -> bytes:
    decoded = bytearray()
    lines = data.split(b"\n")
    for index, line in enumerate(lines):
        has_lf = index < len(lines) - 1
        has_cr = line.endswith(b"\r")
        # Trailing whitespace is transport padding (RFC 2045 6.7 rule 3)
        line = line.rstrip(b" \t\r")

        soft_break = line.endswith(b"=")
        if soft_break:
            line = line[:-1]

        decoded += _QP_ESCAPE.sub(_unescape, line)

        if has_lf and not soft_break:
            decoded += b"\r\n" if has_cr else b"\n"

    return bytes(decoded)
