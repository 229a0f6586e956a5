"""Markdown renderer for converting clipped article HTML to Markdown."""

import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional, Union

from bs4 import BeautifulSoup, Tag
from markdownify import ATX, STRIP, UNDERLINED, abstract_inline_conversion, chomp
from markdownify import MarkdownConverter as MarkdownifyConverter

from models import Article, ConversionResult, ImageStyle, LinkStyle
from .formatters import (
    CodeBlockFormatter,
    ConversionContext,
    ImageFormatter,
    ImageNamer,
    ReferencedLinkFormatter,
    clean_attribute,
    code_language,
    code_text,
    link_style,
    select_code_block_formatter,
    select_image_formatter
)
from .html_cleaner import HtmlCleaner, strip_non_printing
from .link_processor import SAFE_PLACEHOLDER, LinkProcessor

logger = logging.getLogger('markdown_clipper.converters.markdownconverter')

KEPT_HTML_TAGS = ('iframe', 'sub', 'sup', 'u', 'ins', 'del', 'small', 'big')

_TAG_RE = re.compile(r'<[^>]+>')


class ArticleMarkdownConverter(MarkdownifyConverter):
    """
    markdownify converter with the clipping rules for code blocks, images and links.

    A new instance is built for every conversion. It writes image filenames
    and reference definitions into the ConversionContext it was given and
    keeps no other state.
    """

    def __init__(
        self,
        context: ConversionContext,
        code_formatter: CodeBlockFormatter,
        image_formatter: ImageFormatter,
        image_namer: ImageNamer,
        link_processor: LinkProcessor,
        options: Dict[str, Any],
        embed_image: Optional[Callable[[str], Optional[str]]] = None,
        **kwargs
    ):
        """Initialize converter with per-call collaborators and clipping options."""
        escape = bool(options.get('turndownEscape', True))
        markdownify_options = {
            'heading_style': UNDERLINED if options.get('headingStyle') == 'setext' else ATX,
            'bullets': options.get('bulletListMarker') or '-',
            'escape_asterisks': escape,
            'escape_underscores': escape,
            'escape_misc': escape,
            'strip_document': STRIP
        }
        markdownify_options.update(kwargs)
        super().__init__(**markdownify_options)

        self.context = context
        self.code_formatter = code_formatter
        self.image_formatter = image_formatter
        self.image_namer = image_namer
        self.link_processor = link_processor
        self.embed_image = embed_image

        self.download_images = bool(options.get('downloadImages'))
        self.image_style = ImageStyle(options.get('imageStyle', ImageStyle.MARKDOWN.value))
        self.link_style = link_style(options)
        self.link_formatter = ReferencedLinkFormatter(options.get('linkReferenceStyle', 'full'))
        self.hr = options.get('hr') or '___'
        self.em_delimiter = options.get('emDelimiter') or '_'
        self.strong_delimiter = options.get('strongDelimiter') or '**'

    convert_em = abstract_inline_conversion(lambda self: self.em_delimiter)
    convert_i = convert_em
    convert_strong = abstract_inline_conversion(lambda self: self.strong_delimiter)
    convert_b = convert_strong

    def convert_hr(self, el, text, parent_tags=None, **kwargs):
        return f'\n\n{self.hr}\n\n'

    def convert_noscript(self, el, text, parent_tags=None, **kwargs):
        return ''

    def _keep_html(self, el, text, parent_tags=None, **kwargs):
        """Emit the element unchanged as raw HTML."""
        return str(el)

    convert_iframe = _keep_html
    convert_sub = _keep_html
    convert_sup = _keep_html
    convert_u = _keep_html
    convert_ins = _keep_html
    convert_del = _keep_html
    convert_small = _keep_html
    convert_big = _keep_html

    def convert_pre(self, el, text, parent_tags=None, **kwargs):
        """Render pre elements as code blocks, keeping the language of the code."""
        code = self._sole_code_child(el)
        if code is not None:
            return self.code_formatter.format(code_text(code), code_language(code))

        if el.find('img'):
            # Not a code listing; keep the converted children (images included)
            text = text.strip('\n')
            return f'\n\n{text}\n\n' if text else ''

        return self.code_formatter.format(code_text(el), code_language(el))

    def convert_img(self, el, text, parent_tags=None, **kwargs):
        """Render images with the configured style, registering downloads."""
        parent_tags = parent_tags or set()
        if 'pre' in parent_tags and 'code' in parent_tags:
            return ''

        src = el.get('src')
        if not src:
            return ''

        resolved = self.link_processor.resolve_url(src, allow_data=True)
        if not resolved or resolved == SAFE_PLACEHOLDER:
            return ''

        rendered_src = resolved
        if self.download_images:
            filename = self.image_namer.register(resolved, self.context)
            if self.image_style not in (ImageStyle.ORIGINAL_SOURCE, ImageStyle.BASE64):
                rendered_src = self.image_namer.local_src(filename)
            elif self.image_style == ImageStyle.BASE64 and self.embed_image is not None:
                rendered_src = self.embed_image(resolved) or resolved

        return self.image_formatter.format(
            rendered_src,
            clean_attribute(el.get('alt')),
            clean_attribute(el.get('title')),
            self.context
        )

    def convert_a(self, el, text, parent_tags=None, **kwargs):
        """Render links inline, as references, or as plain text."""
        parent_tags = parent_tags or set()
        if '_noformat' in parent_tags:
            return text

        href = el.get('href')
        if not href:
            return text
        if self.link_style == LinkStyle.STRIP_LINKS:
            return text

        resolved = self.link_processor.resolve_url(href)
        if self.link_style == LinkStyle.REFERENCED:
            prefix, suffix, text = chomp(text)
            if not text:
                return ''
            link = self.link_formatter.format(text, resolved, clean_attribute(el.get('title')), self.context)
            return f'{prefix}{link}{suffix}'

        el['href'] = resolved
        return super().convert_a(el, text, parent_tags)

    @staticmethod
    def _sole_code_child(el: Tag) -> Optional[Tag]:
        """The code element when it is the only content of ``el``."""
        code = None
        for child in el.children:
            if isinstance(child, Tag):
                if code is not None or child.name != 'code':
                    return None
                code = child
            elif str(child).strip():
                return None
        return code


class MarkdownRenderer:
    """
    Converts article HTML into Markdown plus the list of images to download.

    Every call to ``convert`` builds its own ConversionContext and converter,
    so concurrent or repeated conversions never see each other's image
    lists or reference numbering.
    """

    def __init__(self, logger: logging.Logger = None):
        """Initialize renderer with optional logger."""
        self.logger = logger or logging.getLogger('markdown_clipper.converters.markdownconverter')
        self.html_cleaner = HtmlCleaner(self.logger)

    def convert(
        self,
        html_content: Optional[str],
        options: Optional[Dict[str, Any]] = None,
        article: Union[Article, Mapping[str, Any], None] = None,
        embed_image: Optional[Callable[[str], Optional[str]]] = None
    ) -> ConversionResult:
        """
        Convert HTML to Markdown.

        Args:
            html_content: Article body HTML (may be malformed or empty)
            options: Clipping options (camelCase keys)
            article: Article supplying baseURI for link/image resolution
            embed_image: Returns a data URL for an image source, or None to
                keep the URL; used by the base64 image style

        Returns:
            ConversionResult with the markdown body and the image map
        """
        options = options or {}
        context = ConversionContext()

        try:
            soup = self._parse_html(html_content or '')
            soup = self.html_cleaner.clean(soup)
            converter = self._build_converter(options, context, self._base_uri(article), embed_image)
            markdown = converter.convert_soup(soup)

            references = context.references_block()
            if references:
                markdown = markdown.rstrip('\n') + '\n\n' + references
        except Exception as e:
            self.logger.warning(f"Markdown conversion failed, falling back to plain text: {e}")
            context = ConversionContext()
            markdown = self._plain_text(html_content or '')

        markdown = self._post_process_markdown(markdown)
        self.logger.debug(
            f"Converted {len(html_content or '')} chars of HTML to {len(markdown)} chars of markdown "
            f"({len(context.image_list)} images)"
        )
        return ConversionResult(markdown=markdown, image_list=context.image_list)

    def _build_converter(
        self,
        options: Dict[str, Any],
        context: ConversionContext,
        base_uri: Optional[str],
        embed_image: Optional[Callable[[str], Optional[str]]] = None
    ) -> ArticleMarkdownConverter:
        image_namer = ImageNamer(
            ImageStyle(options.get('imageStyle', ImageStyle.MARKDOWN.value)),
            prefix=options.get('imagePrefix') or '',
            disallowed_chars=options.get('disallowedChars')
        )
        return ArticleMarkdownConverter(
            context=context,
            code_formatter=select_code_block_formatter(options),
            image_formatter=select_image_formatter(options),
            image_namer=image_namer,
            link_processor=LinkProcessor(base_uri, self.logger),
            options=options,
            embed_image=embed_image
        )

    def _parse_html(self, html_content: str) -> BeautifulSoup:
        """Parse HTML content with BeautifulSoup."""
        return BeautifulSoup(html_content, 'lxml')

    def _plain_text(self, html_content: str) -> str:
        try:
            return BeautifulSoup(html_content, 'lxml').get_text()
        except Exception as e:
            self.logger.warning(f"Could not parse HTML for plain text fallback: {e}")
            return _TAG_RE.sub('', html_content)

    def _post_process_markdown(self, markdown: str) -> str:
        """Strip non-printing characters and normalize line endings."""
        markdown = strip_non_printing(markdown)
        markdown = markdown.replace('\xa0', ' ')
        markdown = markdown.replace('\r\n', '\n').replace('\r', '\n')
        return markdown.strip()

    @staticmethod
    def _base_uri(article: Union[Article, Mapping[str, Any], None]) -> Optional[str]:
        if article is None:
            return None
        if isinstance(article, Article):
            return article.base_uri or None
        return article.get('baseURI') or None


__all__ = ['ArticleMarkdownConverter', 'KEPT_HTML_TAGS', 'MarkdownRenderer']
