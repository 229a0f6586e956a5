"""Placeholder template engine for titles, front-matter and back-matter.

Templates contain ``{field}`` placeholders that are replaced with Article
metadata. Supported forms::

    {pageTitle}            plain substitution
    {pageTitle:kebab}      substitution with a case/format modifier
    {date:YYYY-MM-DD}      current (or supplied) timestamp
    {publishedTime:YYYY}   the article's publish date in a date format
    {keywords}             keywords joined with ", "
    {keywords: | }         keywords joined with a custom separator
    {domain}               hostname of baseURI
    \\{literal\\}            escaped braces, kept as "{literal}"
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union
from urllib.parse import urlparse

from models import Article
from .filename_sanitizer import character_class

logger = logging.getLogger('markdown_clipper.converters.template_engine')

DEFAULT_TEMPLATE = '{pageTitle}'
DEFAULT_DATE_FORMAT = 'YYYY-MM-DDTHH:mm:ss'
DEFAULT_KEYWORD_SEPARATOR = ', '
FALLBACK_TITLE = 'download'

# Private-use code points stand in for escaped braces during substitution
ESC_OPEN = '\ue000'
ESC_CLOSE = '\ue001'

PLACEHOLDER_PATTERN = re.compile(r'\{([A-Za-z_][\w.-]*)(?::([^{}]*))?\}')

UNSAFE_VALUE_PATTERNS = [
    re.compile(r'<script\b[^>]*>.*?</script\s*>', re.IGNORECASE | re.DOTALL),
    re.compile(r'<style\b[^>]*>.*?</style\s*>', re.IGNORECASE | re.DOTALL),
    re.compile(r'\b(?:java|vb)script\s*:', re.IGNORECASE),
    re.compile(r'\bon\w+\s*=\s*"[^"]*"', re.IGNORECASE),
    re.compile(r"\bon\w+\s*=\s*'[^']*'", re.IGNORECASE),
]


def _split_words(value: str):
    return value.split()


def _camel(value: str) -> str:
    words = _split_words(value)
    if not words:
        return ''
    head = words[0][:1].lower() + words[0][1:]
    return head + ''.join(w[:1].upper() + w[1:] for w in words[1:])


def _pascal(value: str) -> str:
    return ''.join(w[:1].upper() + w[1:] for w in _split_words(value))


MODIFIERS: Dict[str, Callable[[str], str]] = {
    'upper': str.upper,
    'lower': str.lower,
    'kebab': lambda s: '-'.join(_split_words(s)).lower(),
    'mixed-kebab': lambda s: '-'.join(_split_words(s)),
    'snake': lambda s: '_'.join(_split_words(s)).lower(),
    'mixed_snake': lambda s: '_'.join(_split_words(s)),
    'obsidian-cal': lambda s: re.sub(r'-{2,}', '-', s.replace(' ', '-')),
    'camel': _camel,
    'pascal': _pascal,
}


class MomentFormatter:
    """Renders datetimes using the moment.js token vocabulary used in templates."""

    TOKEN_PATTERN = re.compile(
        r'\[[^\]]*\]|YYYY|YY|MMMM|MMM|MM|M|Do|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|A|a|ZZ|Z|X|x'
    )

    def format(self, when: datetime, fmt: str) -> str:
        """Format ``when``; formats without any recognized token use the default."""
        if not self.has_tokens(fmt):
            logger.debug(f"Unrecognized date format '{fmt}', using {DEFAULT_DATE_FORMAT}")
            fmt = DEFAULT_DATE_FORMAT
        return self.TOKEN_PATTERN.sub(lambda m: self._render_token(when, m.group(0)), fmt)

    def has_tokens(self, fmt: str) -> bool:
        """True when ``fmt`` is made of tokens, bracketed literals and punctuation.

        Letters left over after removing tokens (other than the ISO ``T``
        separator) mean the string is not a date format at all.
        """
        fmt = fmt or ''
        tokens = [m.group(0) for m in self.TOKEN_PATTERN.finditer(fmt) if not m.group(0).startswith('[')]
        leftover = self.TOKEN_PATTERN.sub('', fmt).replace('T', '')
        return bool(tokens) and not any(ch.isalpha() for ch in leftover)

    def _render_token(self, when: datetime, token: str) -> str:
        if token.startswith('['):
            return token[1:-1]
        if token == 'YYYY':
            return '%04d' % when.year
        if token == 'YY':
            return '%02d' % (when.year % 100)
        if token == 'MMMM':
            return when.strftime('%B')
        if token == 'MMM':
            return when.strftime('%b')
        if token == 'MM':
            return '%02d' % when.month
        if token == 'M':
            return str(when.month)
        if token == 'Do':
            return str(when.day) + self._ordinal_suffix(when.day)
        if token == 'DD':
            return '%02d' % when.day
        if token == 'D':
            return str(when.day)
        if token == 'dddd':
            return when.strftime('%A')
        if token == 'ddd':
            return when.strftime('%a')
        if token == 'HH':
            return '%02d' % when.hour
        if token == 'H':
            return str(when.hour)
        if token in ('hh', 'h'):
            hour = when.hour % 12 or 12
            return '%02d' % hour if token == 'hh' else str(hour)
        if token == 'mm':
            return '%02d' % when.minute
        if token == 'm':
            return str(when.minute)
        if token == 'ss':
            return '%02d' % when.second
        if token == 's':
            return str(when.second)
        if token == 'A':
            return 'AM' if when.hour < 12 else 'PM'
        if token == 'a':
            return 'am' if when.hour < 12 else 'pm'
        if token in ('Z', 'ZZ'):
            return self._utc_offset(when, ':' if token == 'Z' else '')
        if token == 'X':
            return str(int(when.timestamp()))
        if token == 'x':
            return str(int(when.timestamp() * 1000))
        return token

    @staticmethod
    def _ordinal_suffix(day: int) -> str:
        if 11 <= day % 100 <= 13:
            return 'th'
        return {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th')

    @staticmethod
    def _utc_offset(when: datetime, separator: str) -> str:
        offset = when.utcoffset()
        minutes = int(offset.total_seconds() // 60) if offset is not None else 0
        sign = '-' if minutes < 0 else '+'
        hours, minutes = divmod(abs(minutes), 60)
        return f"{sign}{hours:02d}{separator}{minutes:02d}"


_moment = MomentFormatter()


def strip_unsafe_content(value: str) -> str:
    """Remove script blocks, script URL schemes and inline event handlers."""
    for pattern in UNSAFE_VALUE_PATTERNS:
        value = pattern.sub('', value)
    return value


def _decode_separator(raw: str) -> str:
    if not raw:
        return DEFAULT_KEYWORD_SEPARATOR
    return raw.replace('\\n', '\n').replace('\\t', '\t')


def _domain(base_uri: Any) -> str:
    if not base_uri:
        return ''
    try:
        return urlparse(str(base_uri)).hostname or ''
    except ValueError:
        return ''


def _fields_of(article: Union[Article, Mapping[str, Any], None]) -> Dict[str, Any]:
    if article is None:
        return {}
    if isinstance(article, Article):
        return article.template_fields()
    return {key: value for key, value in dict(article).items() if key != 'content'}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; a bare date or a trailing Z are accepted."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _has_alphanumeric(value: str) -> bool:
    return any(ch.isalnum() for ch in value)


def text_replace(
    template: Any,
    article: Union[Article, Mapping[str, Any], None],
    disallowed_chars: Optional[str] = None,
    now: Optional[datetime] = None
) -> str:
    """
    Substitute Article metadata into a template string.

    Args:
        template: Template text; ``None``, non-strings and blank strings
            are replaced by ``{pageTitle}``
        article: Article (or camelCase mapping) supplying the values
        disallowed_chars: Characters removed from the rendered result
        now: Timestamp for ``{date:...}`` placeholders (default: current UTC time)

    Returns:
        Rendered text; falls back to pageTitle, title or "download" when the
        rendering contains no alphanumeric character
    """
    if not isinstance(template, str) or not template.strip():
        template = DEFAULT_TEMPLATE

    fields = _fields_of(article)
    when = now or datetime.now(timezone.utc)

    text = template.replace('\\{', ESC_OPEN).replace('\\}', ESC_CLOSE)

    def substitute(match: 're.Match') -> str:
        name, modifier = match.group(1), match.group(2)

        if name == 'date' and modifier is not None:
            value = _moment.format(when, modifier)
        elif name == 'publishedTime' and modifier is not None and modifier not in MODIFIERS:
            published = _parse_timestamp(fields.get(name))
            if published is None:
                logger.debug(f"Cannot format publishedTime '{fields.get(name)}' as a date")
                raw = fields.get(name)
                value = '' if raw is None else str(raw)
            else:
                value = _moment.format(published, modifier)
        elif name == 'keywords':
            keywords = fields.get('keywords')
            if not isinstance(keywords, (list, tuple)):
                return ''
            value = _decode_separator(modifier).join(str(k) for k in keywords)
        elif name == 'domain' and name not in fields:
            value = _domain(fields.get('baseURI'))
        elif name in fields:
            raw = fields[name]
            value = '' if raw is None else str(raw)
            if modifier is not None:
                transform = MODIFIERS.get(modifier)
                if transform is None:
                    logger.debug(f"Ignoring unknown modifier '{modifier}' on {{{name}}}")
                else:
                    value = transform(value)
        else:
            return match.group(0)

        return strip_unsafe_content(value)

    text = PLACEHOLDER_PATTERN.sub(substitute, text)

    pattern = character_class(disallowed_chars or '')
    if pattern is not None:
        text = pattern.sub('', text)

    if not _has_alphanumeric(text.strip()):
        fallback = fields.get('pageTitle') or fields.get('title') or FALLBACK_TITLE
        logger.debug(f"Template '{template}' rendered no content, falling back to '{fallback}'")
        return strip_unsafe_content(str(fallback))

    return text.replace(ESC_OPEN, '{').replace(ESC_CLOSE, '}')


__all__ = [
    'DEFAULT_TEMPLATE',
    'MODIFIERS',
    'MomentFormatter',
    'strip_unsafe_content',
    'text_replace'
]
