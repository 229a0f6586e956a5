"""Code block, image and link formatting strategies used by the markdown renderer."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote, urlparse

from bs4 import Comment, NavigableString, Tag

from models import ImageRefStyle, ImageStyle, LinkStyle
from .filename_sanitizer import generate_valid_file_name

logger = logging.getLogger('markdown_clipper.converters.formatters')

DEFAULT_FENCE = '```'
MIN_FENCE_LENGTH = 3
INDENT = '    '

DATA_URL_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/gif': 'gif',
    'image/webp': 'webp',
    'image/svg+xml': 'svg',
    'image/bmp': 'bmp'
}
DEFAULT_DATA_URL_EXTENSION = 'png'
DEFAULT_IMAGE_EXTENSION = '.jpg'
DEFAULT_IMAGE_NAME = 'image'

# Characters encodeURI leaves untouched, besides alphanumerics
URI_SAFE_CHARACTERS = "/;,?:@&=+$-_.!~*'()#"

_EXTENSION_RE = re.compile(r'\.[A-Za-z0-9]+$')
_DATA_MIME_RE = re.compile(r'^data:([^;,]+)')
_ATTRIBUTE_NEWLINES_RE = re.compile(r'(\n+\s*)+')


@dataclass
class ConversionContext:
    """State collected during a single conversion; never shared between calls."""

    image_list: Dict[str, str] = field(default_factory=dict)
    image_references: List[str] = field(default_factory=list)
    link_references: List[str] = field(default_factory=list)

    def references_block(self) -> str:
        """Reference definitions to append after the body, images first."""
        blocks = [refs for refs in (self.image_references, self.link_references) if refs]
        return '\n\n'.join('\n'.join(refs) for refs in blocks)


def clean_attribute(value: Optional[str]) -> str:
    """Collapse blank-line runs inside alt/title attributes."""
    return _ATTRIBUTE_NEWLINES_RE.sub('\n', value) if value else ''


def title_part(title: str) -> str:
    return ' "%s"' % title.replace('"', r'\"') if title else ''


# --- code blocks -----------------------------------------------------------

def code_text(element: Tag) -> str:
    """Text of a code element with ``<br>`` turned into newlines."""
    parts = []
    for node in element.descendants:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif node.name == 'br':
            parts.append('\n')
    return ''.join(parts)


def code_language(element: Optional[Tag]) -> str:
    """
    Detect the language of a code element.

    ``language-X`` classes win over ``lang-X`` classes; the ``code-lang-X``
    id is only consulted when no class names a language.
    """
    if element is None:
        return ''

    classes = [str(cls) for cls in element.get('class', []) or []]
    for prefix in ('language-', 'lang-'):
        for cls in classes:
            if cls.startswith(prefix) and len(cls) > len(prefix):
                return cls[len(prefix):]

    match = re.search(r'code-lang-(.+)', str(element.get('id') or ''))
    return match.group(1) if match else ''


class CodeBlockFormatter:
    """Base class for block code rendering."""

    def format(self, code: str, language: str = '') -> str:
        raise NotImplementedError


class FencedCodeBlockFormatter(CodeBlockFormatter):
    """Fenced blocks whose fence is always longer than any fence inside the code."""

    def __init__(self, fence: Optional[str] = None):
        self.fence_char = (fence or DEFAULT_FENCE)[0]
        self._fence_in_code = re.compile(
            '^' + re.escape(self.fence_char) + '{%d,}' % MIN_FENCE_LENGTH, re.MULTILINE
        )

    def fence_for(self, code: str) -> str:
        size = MIN_FENCE_LENGTH
        for match in self._fence_in_code.finditer(code):
            if len(match.group(0)) >= size:
                size = len(match.group(0)) + 1
        return self.fence_char * size

    def format(self, code: str, language: str = '') -> str:
        fence = self.fence_for(code)
        if code.endswith('\n'):
            code = code[:-1]
        return f"\n\n{fence}{language}\n{code}\n{fence}\n\n"


class IndentedCodeBlockFormatter(CodeBlockFormatter):
    """Classic four-space indented blocks; the language is not representable."""

    def format(self, code: str, language: str = '') -> str:
        if code.endswith('\n'):
            code = code[:-1]
        indented = '\n'.join(INDENT + line if line else line for line in code.split('\n'))
        return f"\n\n{indented}\n\n"


def select_code_block_formatter(options: Dict[str, Any]) -> CodeBlockFormatter:
    if options.get('codeBlockStyle') == 'indented':
        return IndentedCodeBlockFormatter()
    return FencedCodeBlockFormatter(options.get('fence'))


# --- images ----------------------------------------------------------------

class ImageFormatter:
    """Base class for image rendering."""

    def format(self, src: str, alt: str, title: str, context: ConversionContext) -> str:
        raise NotImplementedError


class InlineImageFormatter(ImageFormatter):

    def format(self, src, alt, title, context):
        if not src:
            return ''
        return f'![{alt}]({src}{title_part(title)})'


class ReferencedImageFormatter(ImageFormatter):
    """``![alt][figN]`` with ``[figN]: src "title"`` collected in the context."""

    def format(self, src, alt, title, context):
        ref_id = len(context.image_references) + 1
        context.image_references.append(f'[fig{ref_id}]: {src}{title_part(title)}')
        return f'![{alt}][fig{ref_id}]'


class ObsidianImageFormatter(ImageFormatter):

    def format(self, src, alt, title, context):
        return f'![[{src}]]'


class NoImageFormatter(ImageFormatter):

    def format(self, src, alt, title, context):
        return ''


def select_image_formatter(options: Dict[str, Any]) -> ImageFormatter:
    style = ImageStyle(options.get('imageStyle', ImageStyle.MARKDOWN.value))
    if style == ImageStyle.NO_IMAGE:
        return NoImageFormatter()
    if style.is_obsidian:
        return ObsidianImageFormatter()
    if ImageRefStyle(options.get('imageRefStyle', ImageRefStyle.INLINED.value)) == ImageRefStyle.REFERENCED:
        return ReferencedImageFormatter()
    return InlineImageFormatter()


class ImageNamer:
    """Assigns unique local filenames to images that will be downloaded."""

    def __init__(self, image_style: ImageStyle, prefix: str = '', disallowed_chars: Optional[str] = None):
        self.image_style = image_style
        self.prefix = prefix or ''
        self.disallowed_chars = disallowed_chars

    def base_name(self, src: str) -> str:
        """Sanitized filename derived from an image URL, without prefix."""
        if src.startswith('data:'):
            match = _DATA_MIME_RE.match(src)
            mime = match.group(1).strip().lower() if match else ''
            return f"{DEFAULT_IMAGE_NAME}.{DATA_URL_EXTENSIONS.get(mime, DEFAULT_DATA_URL_EXTENSION)}"

        try:
            path = urlparse(src).path
        except ValueError:
            path = src.split('?')[0].split('#')[0]
        name = unquote(path.rstrip('/').split('/')[-1]) or DEFAULT_IMAGE_NAME
        if not _EXTENSION_RE.search(name):
            name += DEFAULT_IMAGE_EXTENSION

        name = generate_valid_file_name(name, self.disallowed_chars)
        if not name or name.startswith('.'):
            name = DEFAULT_IMAGE_NAME + (name or DEFAULT_IMAGE_EXTENSION)
        return name

    def register(self, src: str, context: ConversionContext) -> str:
        """Record ``src`` in the context's image list and return its local filename."""
        filename = self.prefix + self.base_name(src)
        if context.image_list.get(src) == filename:
            return filename

        taken = set(context.image_list.values())
        if filename in taken:
            folder, slash, name = filename.rpartition('/')
            stem, dot, extension = name.rpartition('.')
            if not dot:
                stem, extension = name, ''
            counter = 1
            while filename in taken:
                candidate = f"{stem}.{counter}" + (f".{extension}" if extension else '')
                filename = folder + slash + candidate
                counter += 1

        context.image_list[src] = filename
        return filename

    def local_src(self, filename: str) -> str:
        """Src to write into the markdown for a downloaded image."""
        if self.image_style == ImageStyle.OBSIDIAN_NOFOLDER:
            return filename.rsplit('/', 1)[-1]
        if self.image_style.is_obsidian:
            return filename
        return '/'.join(quote(segment, safe=URI_SAFE_CHARACTERS) for segment in filename.split('/'))


# --- links -----------------------------------------------------------------

class ReferencedLinkFormatter:
    """Reference-style links: full ``[text][N]``, collapsed ``[text][]`` or shortcut ``[text]``."""

    def __init__(self, reference_style: str = 'full'):
        self.reference_style = reference_style or 'full'

    def format(self, text: str, href: str, title: str, context: ConversionContext) -> str:
        suffix = title_part(title)
        if self.reference_style == 'collapsed':
            context.link_references.append(f'[{text}]: {href}{suffix}')
            return f'[{text}][]'
        if self.reference_style == 'shortcut':
            context.link_references.append(f'[{text}]: {href}{suffix}')
            return f'[{text}]'
        ref_id = len(context.link_references) + 1
        context.link_references.append(f'[{ref_id}]: {href}{suffix}')
        return f'[{text}][{ref_id}]'


def link_style(options: Dict[str, Any]) -> LinkStyle:
    return LinkStyle(options.get('linkStyle', LinkStyle.INLINED.value))


__all__ = [
    'CodeBlockFormatter',
    'ConversionContext',
    'FencedCodeBlockFormatter',
    'ImageFormatter',
    'ImageNamer',
    'IndentedCodeBlockFormatter',
    'InlineImageFormatter',
    'NoImageFormatter',
    'ObsidianImageFormatter',
    'ReferencedImageFormatter',
    'ReferencedLinkFormatter',
    'code_language',
    'code_text',
    'select_code_block_formatter',
    'select_image_formatter'
]
