import base64
import quopri

import pytest

from mailterm.rendering import EncodingError, decode_transfer


def test_base64_round_trip():
    payload = "Grüße aus Köln\n".encode("utf-8") + bytes(range(256))
    encoded = base64.encodebytes(payload)

    assert decode_transfer(encoded, "base64") == payload


def test_encoding_name_is_case_insensitive():
    assert decode_transfer(b"SGVsbG8=", "BASE64") == b"Hello"
    assert decode_transfer(b"caf=C3=A9", " Quoted-Printable ") == "café".encode("utf-8")


def test_base64_ignores_line_breaks():
    assert decode_transfer(b"SGVs\r\nbG8g\r\nd29y\r\nbGQ=\r\n", "base64") == b"Hello world"


@pytest.mark.parametrize("data", [b"SGVsbG8", b"@@@@", b"SGVs!G8="])
def test_invalid_base64(data):
    with pytest.raises(EncodingError):
        decode_transfer(data, "base64")


def test_quoted_printable_round_trip():
    payload = (
        "Prix: 10 € = dix euros\n"
        + "long line " * 20 + "\n"
        + "trailing space \n"
        + "end"
    ).encode("utf-8")
    encoded = quopri.encodestring(payload)

    assert decode_transfer(encoded, "quoted-printable") == payload


def test_quoted_printable_soft_line_break():
    assert decode_transfer(b"hello=\r\nworld", "quoted-printable") == b"helloworld"
    assert decode_transfer(b"hello=\nworld\n", "quoted-printable") == b"helloworld\n"


def test_quoted_printable_keeps_hard_line_breaks():
    assert decode_transfer(b"one\r\ntwo\nthree", "quoted-printable") == b"one\r\ntwo\nthree"


def test_quoted_printable_accepts_lowercase_hex():
    assert decode_transfer(b"caf=c3=a9", "quoted-printable") == "café".encode("utf-8")


def test_quoted_printable_drops_transport_padding():
    assert decode_transfer(b"padded   \nline", "quoted-printable") == b"padded\nline"


@pytest.mark.parametrize("data", [b"bad =ZZ escape", b"truncated =4", b"lone = sign"])
def test_invalid_quoted_printable(data):
    with pytest.raises(EncodingError):
        decode_transfer(data, "quoted-printable")


@pytest.mark.parametrize("encoding", [None, "", "7bit", "8bit", "binary", "x-unknown"])
def test_other_encodings_are_identity(encoding):
    data = b"=ZZ not *decoded* \xff"
    assert decode_transfer(data, encoding) == data
