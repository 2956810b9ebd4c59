"""
Message decoder: turns raw RFC-822 bytes from any backend into the text shown
in the message view.
"""

import logging
from dataclasses import dataclass
from email.parser import BytesParser
from email.policy import compat32

from .errors import MalformedMessageError
from .headers import HeaderSet, format_headers
from .mime import check_header_block, get_transfer_encoding, parse_content_type, resolve_body

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedMessage:
    """Display form of a message: header block, one blank line, body."""
    header_block: str
    body: str

    @property
    def text(self) -> str:
        return self.header_block + "\n\n" + self.body

    def __str__(self) -> str:
        return self.text


def decode_message(raw: bytes) -> RenderedMessage:
    """
    Decode a complete RFC-822 message into its rendered form.

    Args:
        raw: Message bytes exactly as returned by the backend

    Returns:
        RenderedMessage with the selected headers and the cleaned text body

    Raises:
        MalformedMessageError: If the header block or multipart structure is broken
        EncodingError: If a rendered part's transfer encoding is invalid
    """
    if not raw or not raw.strip():
        raise MalformedMessageError("empty message")

    message = BytesParser(policy=compat32).parsebytes(raw)
    check_header_block(message)

    content_type, params, valid = parse_content_type(message)
    transfer_encoding = ""
    if valid:
        transfer_encoding = get_transfer_encoding(message)
    logger.debug(f"Decoding {len(raw)} byte message as {content_type} ({transfer_encoding or 'identity'})")

    body = resolve_body(message, content_type, params, transfer_encoding)
    return RenderedMessage(format_headers(HeaderSet.from_message(message)), body)
