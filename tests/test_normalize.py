import pytest

from mailterm.rendering import normalize_text


def test_collapses_blank_line_runs():
    assert normalize_text("a\n\n\n\nb") == "a\n\nb"


def test_collapses_horizontal_whitespace_and_trims_lines():
    assert normalize_text("  hello \t  world  \n\n  next\t") == "hello world\n\nnext"


def test_trims_blank_lines_around_text():
    assert normalize_text("\n\n\nbody\n\n") == "body"


def test_whitespace_only_lines_do_not_leave_blank_runs():
    assert normalize_text("a\n \n\t\n  \nb") == "a\n\nb"


def test_carriage_returns_are_trimmed_with_the_line():
    assert normalize_text("a\r\n\r\n\r\nb\r\n") == "a\n\nb"


def test_empty_text():
    assert normalize_text("") == ""
    assert normalize_text(" \n\t\n ") == ""


@pytest.mark.parametrize("text", [
    "a\n\n\n\nb",
    "a\n \n \n \nb",
    "  x  \n\n\n  y  ",
    "\r\n\r\nline\r\n \r\n\r\nmore \t text\r\n",
    "\t\n\n\n",
    "single",
])
def test_normalization_is_idempotent(text):
    once = normalize_text(text)
    assert normalize_text(once) == once
