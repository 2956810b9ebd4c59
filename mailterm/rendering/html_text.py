"""
HTML to text extraction for text/html message parts.
"""

import logging

from bs4 import BeautifulSoup, ParserRejectedMarkup

logger = logging.getLogger(__name__)


def extract_text(html: str) -> str:
    """
    Convert an HTML document into flat visible text.

    <style> elements are dropped with their content and every style attribute
    is removed before the text nodes are concatenated. Malformed markup never
    raises: whatever the parser recovered is returned, or an empty string if
    the parser rejected the document outright.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as e:
        logger.warning(f"HTML body rejected by parser, rendering empty text: {e}")
        return ""

    for style in soup.find_all("style"):
        style.decompose()

    for tag in soup.find_all(style=True):
        del tag["style"]

    return soup.get_text()
