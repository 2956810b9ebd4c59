"""
Message decoding and rendering pipeline shared by every mail backend.
"""

from .decoder import RenderedMessage, decode_message
from .errors import EncodingError, MalformedMessageError, MessageDecodeError
from .headers import HeaderSet, format_headers
from .html_text import extract_text
from .mime import BodyPart, resolve_body
from .normalize import normalize_text
from .transfer import decode_transfer

__all__ = [
    'RenderedMessage',
    'decode_message',
    'EncodingError',
    'MalformedMessageError',
    'MessageDecodeError',
    'HeaderSet',
    'format_headers',
    'extract_text',
    'BodyPart',
    'resolve_body',
    'normalize_text',
    'decode_transfer',
]
