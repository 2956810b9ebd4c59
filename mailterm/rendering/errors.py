"""
Errors raised by the message decoding pipeline.
"""


class MessageDecodeError(Exception):
    """Base class for all message decoding errors"""
    pass


class MalformedMessageError(MessageDecodeError):
    """Raised when the header block or the MIME structure cannot be parsed"""
    pass


class EncodingError(MessageDecodeError):
    """Raised when a declared transfer encoding's payload is invalid"""
    pass
