"""Converters package for turning clipped article HTML into Markdown."""

import logging

from .filename_sanitizer import generate_valid_file_name, sanitize_path
from .html_cleaner import HtmlCleaner
from .link_processor import LinkProcessor
from .markdown_converter import MarkdownRenderer
from .template_engine import text_replace

logger = logging.getLogger('markdown_clipper.converters')


def convert_html(html, options=None, article=None, logger=None):
    """
    Convenience function to convert article HTML to Markdown.

    This runs the full rendering pipeline:
    1. HTML cleaning (removes scripts, styles and comments)
    2. Code block, image and link rules on top of markdownify
    3. Reference definitions and non-printing character cleanup

    Args:
        html: Article body HTML
        options: Optional clipping options (camelCase keys)
        article: Optional Article used to resolve relative URLs
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        ConversionResult with ``markdown`` and ``image_list``

    Example:
        >>> from converters import convert_html
        >>> result = convert_html('<h1>Hello</h1>')
        >>> result.markdown
        '# Hello'
    """
    if logger is None:
        logger = logging.getLogger('markdown_clipper.converters')

    renderer = MarkdownRenderer(logger=logger)
    return renderer.convert(html, options, article)


__all__ = [
    'convert_html',
    'generate_valid_file_name',
    'sanitize_path',
    'text_replace',
    'HtmlCleaner',
    'LinkProcessor',
    'MarkdownRenderer'
]
