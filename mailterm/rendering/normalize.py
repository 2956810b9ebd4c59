"""
Whitespace and line-structure normalization for extracted message text.
"""

import re

_BLANK_LINE_RUNS = re.compile(r"\n{3,}")
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")


def normalize_text(text: str) -> str:
    """
    Canonicalize the whitespace of plain or HTML-extracted text.

    Steps run in a fixed order: collapse 3+ newlines to 2, collapse runs of
    spaces/tabs, trim every line, trim blank lines around the whole text,
    then collapse blank-line runs again since trimming whitespace-only lines
    (or stray carriage returns) can produce new ones.
    """
    text = _BLANK_LINE_RUNS.sub("\n\n", text)
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = text.strip("\n")
    return _BLANK_LINE_RUNS.sub("\n\n", text)
