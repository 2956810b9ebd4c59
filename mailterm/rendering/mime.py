"""
MIME tree resolution: walks a (possibly multipart) message body and renders
its textual parts.
"""

import re
from dataclasses import dataclass
from email import errors as email_errors
from email.message import Message
from email.utils import collapse_rfc2231_value
from typing import Dict, Mapping, Optional, Tuple

from .errors import MalformedMessageError
from .html_text import extract_text
from .normalize import normalize_text
from .transfer import decode_transfer

DEFAULT_CONTENT_TYPE = "text/plain"
RENDERABLE_TYPES = ("text/plain", "text/html")

# Encodings email.message.Message.get_payload(decode=True) would decode itself
_PARSER_DECODED_ENCODINGS = ("base64", "quoted-printable", "x-uuencode", "uuencode", "uue", "x-uue")

# Defects the email parser records instead of failing on a broken header block
_HEADER_BLOCK_DEFECTS = (
    email_errors.MissingHeaderBodySeparatorDefect,
    email_errors.FirstHeaderLineIsContinuationDefect,
)

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_PARAMETER = re.compile(rf'({_TOKEN})\s*=\s*(?:{_TOKEN}|"(?:[^"\\]|\\.)*")\s*(?:;|$)')
_PARAM_SEPARATORS = "; \t\r\n"


@dataclass(frozen=True)
class BodyPart:
    """
    A renderable node of the MIME tree.

    Leaves carry their undecoded content, multipart nodes carry their
    renderable children in document order. Exactly one of the two is set.
    """
    content_type: str
    params: Mapping[str, str]
    transfer_encoding: str = ""
    content: Optional[bytes] = None
    children: Optional[Tuple["BodyPart", ...]] = None

    def __post_init__(self):
        if (self.content is None) == (self.children is None):
            raise ValueError("BodyPart needs exactly one of content or children")

    @property
    def is_multipart(self) -> bool:
        return self.children is not None


def check_header_block(part: Message) -> None:
    """Raise MalformedMessageError if the parser could not read the part's headers."""
    for defect in part.defects:
        if isinstance(defect, _HEADER_BLOCK_DEFECTS):
            raise MalformedMessageError(f"unparseable header block: {defect.__class__.__name__}")


def _params_parse(section: str) -> bool:
    """
    Check a Content-Type parameter section strictly.

    Every parameter must be name=value with a token or a terminated quoted
    string as value, and no name may repeat.
    """
    seen = set()
    pos = 0
    while pos < len(section):
        if section[pos] in _PARAM_SEPARATORS:
            pos += 1
            continue
        match = _PARAMETER.match(section, pos)
        if not match:
            return False
        name = match.group(1).lower()
        if name in seen:
            return False
        seen.add(name)
        pos = match.end()
    return True


def parse_content_type(part: Message) -> Tuple[str, Dict[str, str], bool]:
    """
    Read a part's media type and parameters.

    Returns:
        (content_type, params, valid). An absent header gives the parser's
        default type; a present header whose media type or parameters cannot
        be parsed gives text/plain with valid=False, meaning the part is
        treated as identity-encoded.
    """
    raw = part.get("Content-Type")
    if raw is None:
        # text/plain, or message/rfc822 inside multipart/digest
        return part.get_content_type(), {}, True

    media_type, _, param_section = str(raw).partition(";")
    media_type = media_type.strip().lower()
    maintype, _, subtype = media_type.partition("/")
    if not maintype or not subtype or "/" in subtype or " " in media_type:
        return DEFAULT_CONTENT_TYPE, {}, False
    if not _params_parse(param_section):
        return DEFAULT_CONTENT_TYPE, {}, False

    params = {}
    for key, value in (part.get_params() or [])[1:]:
        params[key.lower()] = collapse_rfc2231_value(value)
    return media_type, params, True


def get_transfer_encoding(part: Message) -> str:
    return str(part.get("Content-Transfer-Encoding", "")).strip().lower()


def _raw_content(part: Message, content_type: str) -> bytes:
    if not content_type.startswith("text/") or part.is_multipart():
        # Only text leaves are ever rendered
        return b""
    if get_transfer_encoding(part) in _PARSER_DECODED_ENCODINGS:
        # Left to decode_transfer. get_payload() would charset-decode 8-bit
        # bytes, so the undecoded payload is read as the parser stored it.
        payload = part._payload
        if not isinstance(payload, str):
            return b""
        return payload.encode("utf-8", errors="surrogateescape")
    # Identity bodies come back byte for byte, 8-bit content included
    return part.get_payload(decode=True) or b""


def build_part(part: Message, content_type: str, params: Mapping[str, str],
               transfer_encoding: str = "") -> BodyPart:
    """
    Build the renderable BodyPart tree rooted at an email.message node.

    Sub-parts that are neither text/plain, text/html nor multipart are skipped
    before their headers or content are inspected.
    """
    if not content_type.startswith("multipart/"):
        return BodyPart(content_type, params, transfer_encoding, content=_raw_content(part, content_type))

    boundary = params.get("boundary")
    if not boundary:
        raise MalformedMessageError(f"{content_type} part has no boundary parameter")

    payload = part.get_payload()
    if not isinstance(payload, list):
        raise MalformedMessageError(f"boundary {boundary!r} not found in {content_type} body")

    children = []
    for sub in payload:
        sub_type, sub_params, valid = parse_content_type(sub)
        if not (sub_type.startswith("multipart/") or sub_type.startswith(RENDERABLE_TYPES)):
            continue
        check_header_block(sub)
        encoding = get_transfer_encoding(sub) if valid else ""
        children.append(build_part(sub, sub_type, sub_params, encoding))

    return BodyPart(content_type, params, children=tuple(children))


def render_leaf(content: bytes, content_type: str, transfer_encoding: str) -> str:
    """Transfer-decode a leaf, convert HTML to text and normalize the result."""
    text = decode_transfer(content, transfer_encoding).decode("utf-8", errors="replace")
    if content_type.startswith("text/html"):
        text = extract_text(text)
    return normalize_text(text)


def render_part(part: BodyPart) -> str:
    if not part.is_multipart:
        if not part.content_type.startswith("text/"):
            return ""
        return render_leaf(part.content, part.content_type, part.transfer_encoding)

    rendered = []
    for child in part.children:
        if child.is_multipart:
            rendered.append(render_part(child))
        else:
            rendered.append(render_part(child) + "\n\n")
    return "".join(rendered)


def resolve_body(message: Message, content_type: str, params: Mapping[str, str],
                 transfer_encoding: str = "") -> str:
    """
    Resolve a message body into display text.

    Args:
        message: Parsed message (or part) whose body is resolved
        content_type: Its media type, e.g. "multipart/mixed" or "text/html"
        params: Its content-type parameters; multipart types need "boundary"
        transfer_encoding: Its Content-Transfer-Encoding, for leaf bodies

    Returns:
        Rendered text. Multipart bodies yield every text part followed by one
        blank line.

    Raises:
        MalformedMessageError: If a multipart body has no usable boundary
        EncodingError: If a rendered part's transfer encoding is invalid
    """
    return render_part(build_part(message, content_type, params, transfer_encoding))
