"""Filesystem-safe filename generation.

Sanitization is an ordered list of small named passes. Each pass takes the
current name and the optional set of user-disallowed characters and returns
the new name; ``generate_valid_file_name`` runs them in order. The passes are
total: any string input produces a string, possibly empty.
"""

import logging
import re
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger('markdown_clipper.converters.filename_sanitizer')

ILLEGAL_CHARACTERS = '/\\?*:<>|"'
MAX_FILENAME_LENGTH = 255
MAX_EXTENSION_LENGTH = 10

RESERVED_NAMES = frozenset(
    ['CON', 'PRN', 'AUX', 'NUL']
    + ['COM%d' % i for i in range(1, 10)]
    + ['LPT%d' % i for i in range(1, 10)]
)
RESERVED_SUFFIXES = ('_', '-', '~')

_ILLEGAL_RE = re.compile('[' + re.escape(ILLEGAL_CHARACTERS) + ']')
_WHITESPACE_RE = re.compile(r'\s+')

SanitizationPass = Callable[[str, Optional[str]], str]


def character_class(chars: str) -> Optional['re.Pattern']:
    """Compile a regex matching any character of ``chars`` (metacharacters escaped)."""
    if not chars:
        return None
    return re.compile('[' + ''.join(re.escape(c) for c in chars) + ']')


def remove_illegal_characters(name: str, disallowed_chars: Optional[str] = None) -> str:
    return _ILLEGAL_RE.sub('', name)


def replace_non_breaking_spaces(name: str, disallowed_chars: Optional[str] = None) -> str:
    return name.replace('\u00a0', ' ')


def collapse_whitespace(name: str, disallowed_chars: Optional[str] = None) -> str:
    return _WHITESPACE_RE.sub(' ', name)


def trim_whitespace(name: str, disallowed_chars: Optional[str] = None) -> str:
    return name.strip()


def remove_disallowed_characters(name: str, disallowed_chars: Optional[str] = None) -> str:
    pattern = character_class(disallowed_chars or '')
    if pattern is None:
        return name
    # Removal can leave doubled or edge whitespace behind
    return _WHITESPACE_RE.sub(' ', pattern.sub('', name)).strip()


def drop_dot_only_names(name: str, disallowed_chars: Optional[str] = None) -> str:
    """'.' and '..' (or any run of dots) are directory references, not names."""
    if name and not name.strip('.'):
        return ''
    return name


def suffix_reserved_names(name: str, disallowed_chars: Optional[str] = None) -> str:
    """Append a suffix to Windows device names such as ``CON`` or ``lpt1.txt``."""
    base = name.split('.')[0].upper()
    if base not in RESERVED_NAMES:
        return name
    for suffix in RESERVED_SUFFIXES:
        if not disallowed_chars or suffix not in disallowed_chars:
            head, dot, tail = name.partition('.')
            return head + suffix + dot + tail
    logger.debug(f"No allowed suffix for reserved name '{name}'")
    return name


def truncate_length(name: str, disallowed_chars: Optional[str] = None) -> str:
    """Cut names longer than MAX_FILENAME_LENGTH, keeping a short extension."""
    if len(name) <= MAX_FILENAME_LENGTH:
        return name

    last_dot = name.rfind('.')
    ext_length = len(name) - last_dot - 1
    if last_dot > 0 and 0 < ext_length <= MAX_EXTENSION_LENGTH:
        extension = name[last_dot:]
        stem = name[:MAX_FILENAME_LENGTH - len(extension)].rstrip()
        return stem + extension
    return name[:MAX_FILENAME_LENGTH].rstrip()


SANITIZATION_PASSES: List[Tuple[str, SanitizationPass]] = [
    ('remove_illegal_characters', remove_illegal_characters),
    ('replace_non_breaking_spaces', replace_non_breaking_spaces),
    ('collapse_whitespace', collapse_whitespace),
    ('trim_whitespace', trim_whitespace),
    ('remove_disallowed_characters', remove_disallowed_characters),
    ('drop_dot_only_names', drop_dot_only_names),
    ('suffix_reserved_names', suffix_reserved_names),
    ('truncate_length', truncate_length),
]


def generate_valid_file_name(raw: Any, disallowed_chars: Optional[str] = None) -> Optional[str]:
    """
    Turn an arbitrary title into a name that is safe to use as a file name.

    Args:
        raw: Title or other text; ``None`` is returned unchanged
        disallowed_chars: Extra characters that must not appear in the result

    Returns:
        The sanitized name, ``''`` when nothing survives, or ``None``
    """
    if raw is None:
        return None

    name = str(raw)
    for _, sanitization_pass in SANITIZATION_PASSES:
        name = sanitization_pass(name, disallowed_chars)
    return name


def sanitize_path(path: str, disallowed_chars: Optional[str] = None) -> str:
    """Sanitize every ``/``-separated segment of a relative path, dropping empty ones."""
    segments = [generate_valid_file_name(s, disallowed_chars) for s in (path or '').split('/')]
    return '/'.join(s for s in segments if s)


__all__ = [
    'ILLEGAL_CHARACTERS',
    'MAX_FILENAME_LENGTH',
    'RESERVED_NAMES',
    'SANITIZATION_PASSES',
    'generate_valid_file_name',
    'sanitize_path'
]
