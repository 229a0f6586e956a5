"""HTML cleaner for removing non-content markup from clipped pages."""

import logging
import re

from bs4 import BeautifulSoup, Comment, Tag

logger = logging.getLogger('markdown_clipper.converters.htmlcleaner')

NON_CONTENT_TAGS = ['script', 'style', 'noscript', 'template']

# Characters editors show as placeholders (C0/C1 controls except tab/newline/CR,
# soft hyphen, zero-width and bidi marks, line/paragraph separators, BOM)
NON_PRINTING_PATTERN = re.compile(
    '[\u0000-\u0008\u000b\u000c\u000e-\u001f\u007f-\u009f\u00ad\u061c'
    '\u200b-\u200f\u2028\u2029\ufeff\ufff9-\ufffc]'
)


class HtmlCleaner:
    """Removes script-like and invisible markup before markdown conversion."""

    def __init__(self, logger: logging.Logger = None):
        """Initialize HTML cleaner with optional logger."""
        self.logger = logger or logging.getLogger('markdown_clipper.converters.htmlcleaner')

    def clean(self, soup: BeautifulSoup) -> BeautifulSoup:
        """
        Clean parsed article HTML in place.

        Args:
            soup: BeautifulSoup object with the article body

        Returns:
            The same, cleaned BeautifulSoup object
        """
        self.logger.debug("Cleaning HTML")

        removed = 0
        for element in soup.find_all(NON_CONTENT_TAGS):
            element.decompose()
            removed += 1

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        for element in soup.find_all(True):
            self._remove_event_handlers(element)

        self._remove_empty_elements(soup)

        if removed:
            self.logger.debug(f"Removed {removed} non-content elements")
        return soup

    def _remove_event_handlers(self, element: Tag) -> None:
        """Drop on* attributes; they never contribute to markdown output."""
        if not element.attrs:
            return
        for attr in [a for a in element.attrs if a.lower().startswith('on')]:
            del element[attr]

    def _remove_empty_elements(self, soup: BeautifulSoup) -> None:
        """Remove empty elements that serve no purpose."""
        removed_count = 0

        # br/img are void elements and must be kept
        for element in soup.find_all(['div', 'span', 'p']):
            if element.find():
                continue

            has_text = len(element.get_text(strip=True)) > 0
            if not has_text and not element.attrs:
                element.decompose()
                removed_count += 1

        if removed_count > 0:
            self.logger.debug(f"Removed {removed_count} empty elements")


def strip_non_printing(markdown: str) -> str:
    """Strip non-printing special characters from generated markdown."""
    return NON_PRINTING_PATTERN.sub('', markdown)


__all__ = ['HtmlCleaner', 'strip_non_printing']
