import email
from email.policy import compat32

import pytest

from mailterm.rendering import BodyPart, MalformedMessageError, resolve_body
from mailterm.rendering.mime import build_part, parse_content_type

NESTED = (
    b"Content-Type: multipart/mixed; boundary=\"outer\"\n"
    b"\n"
    b"--outer\n"
    b"Content-Type: multipart/alternative; boundary=\"inner\"\n"
    b"\n"
    b"--inner\n"
    b"Content-Type: text/plain\n"
    b"\n"
    b"Plain version\n"
    b"--inner\n"
    b"Content-Type: text/html\n"
    b"\n"
    b"<p>HTML version</p>\n"
    b"--inner--\n"
    b"--outer\n"
    b"Content-Type: image/png\n"
    b"Content-Transfer-Encoding: base64\n"
    b"\n"
    b"not base64 at all!!\n"
    b"--outer\n"
    b"\n"
    b"Untyped part\n"
    b"--outer--\n"
)


def _parse(raw: bytes):
    message = email.message_from_bytes(raw, policy=compat32)
    content_type, params, _ = parse_content_type(message)
    return message, content_type, params


def test_nested_alternative_renders_every_text_part():
    message, content_type, params = _parse(NESTED)

    assert resolve_body(message, content_type, params) == (
        "Plain version\n\nHTML version\n\nUntyped part\n\n"
    )


def test_skipped_parts_are_not_in_the_tree():
    message, content_type, params = _parse(NESTED)
    root = build_part(message, content_type, params)

    assert root.is_multipart
    assert [child.content_type for child in root.children] == ["multipart/alternative", "text/plain"]
    assert [leaf.content_type for leaf in root.children[0].children] == ["text/plain", "text/html"]


def test_skipped_part_headers_are_never_inspected():
    raw = (
        b"Content-Type: multipart/mixed; boundary=b\n"
        b"\n"
        b"--b\n"
        b"Content-Type: application/octet-stream\n"
        b"broken header line\n"
        b"\n"
        b"data\n"
        b"--b\n"
        b"Content-Type: text/plain\n"
        b"\n"
        b"ok\n"
        b"--b--\n"
    )
    message, content_type, params = _parse(raw)

    assert resolve_body(message, content_type, params) == "ok\n\n"


def test_rendered_part_with_broken_headers_is_malformed():
    raw = (
        b"Content-Type: multipart/mixed; boundary=b\n"
        b"\n"
        b"--b\n"
        b"Content-Type: text/plain\n"
        b"broken header line\n"
        b"\n"
        b"text\n"
        b"--b--\n"
    )
    message, content_type, params = _parse(raw)

    with pytest.raises(MalformedMessageError):
        resolve_body(message, content_type, params)


def test_declared_boundary_missing_from_body():
    message, content_type, params = _parse(
        b"Content-Type: multipart/mixed; boundary=\"zzz\"\n\njust some text\n"
    )

    with pytest.raises(MalformedMessageError, match="zzz"):
        resolve_body(message, content_type, params)


def test_content_type_parameters():
    message, content_type, params = _parse(
        b"Content-Type: Text/HTML; Charset=\"utf-8\"; format=flowed\n\n<p>x</p>\n"
    )

    assert content_type == "text/html"
    assert params == {"charset": "utf-8", "format": "flowed"}


def test_missing_content_type_defaults_to_plain_text():
    message, content_type, params = _parse(b"Subject: x\n\nbody\n")

    assert (content_type, params) == ("text/plain", {})
    assert parse_content_type(message)[2] is True


def test_body_part_requires_exactly_one_of_content_or_children():
    with pytest.raises(ValueError):
        BodyPart("text/plain", {})
    with pytest.raises(ValueError):
        BodyPart("multipart/mixed", {}, content=b"x", children=())

    leaf = BodyPart("text/plain", {}, content=b"x")
    assert not leaf.is_multipart


@pytest.mark.parametrize("header", [
    b"text/plain; charset",
    b"text/plain; charset=\"utf-8",
    b"text/plain; charset=utf-8; Charset=ascii",
    b"text/plain; charset=utf-8 format=flowed",
])
def test_unparseable_parameters_mean_identity_plain_text(header):
    message = email.message_from_bytes(b"Content-Type: " + header + b"\n\nbody\n", policy=compat32)

    assert parse_content_type(message) == ("text/plain", {}, False)


@pytest.mark.parametrize("header", [
    b"text/plain; charset=utf-8;",
    b"text/plain;\n\tcharset=\"a;b\"; format=flowed",
    b"text/plain; name*0=\"long\"; name*1=\"name\"",
])
def test_parameter_forms_that_parse(header):
    message = email.message_from_bytes(b"Content-Type: " + header + b"\n\nbody\n", policy=compat32)

    content_type, _, valid = parse_content_type(message)
    assert (content_type, valid) == ("text/plain", True)


def test_untyped_digest_parts_are_messages_and_skipped():
    message, content_type, params = _parse(
        b"Content-Type: multipart/digest; boundary=d\n"
        b"\n"
        b"--d\n"
        b"\n"
        b"Subject: inner\n"
        b"\n"
        b"digested body\n"
        b"--d\n"
        b"Content-Type: text/plain\n"
        b"\n"
        b"note\n"
        b"--d--\n"
    )

    assert resolve_body(message, content_type, params) == "note\n\n"
