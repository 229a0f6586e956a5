"""Clipping options with defaults, validation and YAML file loading."""

import copy
import logging
import os
import re
from typing import Any, Dict, Mapping, Optional

import yaml

from models import DownloadMode, ImageRefStyle, ImageStyle, LinkStyle

logger = logging.getLogger('markdown_clipper.config')

DEFAULT_FRONTMATTER = (
    "---\n"
    "created: {date:YYYY-MM-DDTHH:mm:ss} (UTC {date:Z})\n"
    "tags: [{keywords}]\n"
    "source: {baseURI}\n"
    "author: {byline}\n"
    "---\n"
    "\n"
    "# {pageTitle}\n"
    "\n"
    "> ## Excerpt\n"
    "> {excerpt}\n"
    "\n"
    "---"
)

DEFAULT_OPTIONS: Dict[str, Any] = {
    'headingStyle': 'atx',
    'hr': '___',
    'bulletListMarker': '-',
    'codeBlockStyle': 'fenced',
    'fence': '```',
    'emDelimiter': '_',
    'strongDelimiter': '**',
    'linkStyle': LinkStyle.INLINED.value,
    'linkReferenceStyle': 'full',
    'imageStyle': ImageStyle.MARKDOWN.value,
    'imageRefStyle': ImageRefStyle.INLINED.value,
    'frontmatter': DEFAULT_FRONTMATTER,
    'backmatter': '',
    'title': '{pageTitle}',
    'includeTemplate': False,
    'saveAs': False,
    'downloadImages': False,
    'imagePrefix': '{pageTitle}/',
    'mdClipsFolder': None,
    'disallowedChars': '[]#^',
    'downloadMode': DownloadMode.DOWNLOADS_API.value,
    'turndownEscape': True
}

# Option name -> accepted values; anything else falls back to the default
CHOICE_OPTIONS = {
    'headingStyle': ('atx', 'setext'),
    'bulletListMarker': ('-', '+', '*'),
    'codeBlockStyle': ('fenced', 'indented'),
    'emDelimiter': ('_', '*'),
    'strongDelimiter': ('**', '__'),
    'linkStyle': tuple(s.value for s in LinkStyle),
    'linkReferenceStyle': ('full', 'collapsed', 'shortcut'),
    'imageStyle': tuple(s.value for s in ImageStyle),
    'imageRefStyle': tuple(s.value for s in ImageRefStyle),
    'downloadMode': tuple(m.value for m in DownloadMode),
}

BOOLEAN_OPTIONS = ('includeTemplate', 'saveAs', 'downloadImages', 'turndownEscape')

# Template options that must be non-empty strings
REQUIRED_STRING_OPTIONS = ('title', 'disallowedChars')

TEMPLATE_OPTIONS = ('frontmatter', 'backmatter', 'imagePrefix')


def load_options(
    stored: Optional[Mapping[str, Any]] = None,
    direct_download_available: bool = True
) -> Dict[str, Any]:
    """
    Merge stored options over the defaults and repair invalid values.

    Invalid values never raise: each one is replaced with its default and a
    warning is logged. Keys without a default are kept as given.

    Args:
        stored: Options loaded from a file or store (camelCase keys)
        direct_download_available: Whether a direct download capability
            exists; when it does not, ``downloadMode`` is forced to
            ``contentLink``

    Returns:
        A new, complete options dictionary
    """
    options = copy.deepcopy(DEFAULT_OPTIONS)
    if stored is not None and not isinstance(stored, Mapping):
        logger.warning("Invalid stored options, using defaults")
        stored = None
    if stored:
        options.update(copy.deepcopy(dict(stored)))

    for key in REQUIRED_STRING_OPTIONS:
        value = options.get(key)
        if not value or not isinstance(value, str):
            logger.warning(f"Invalid {key} option, using default")
            options[key] = DEFAULT_OPTIONS[key]

    for key in TEMPLATE_OPTIONS:
        value = options.get(key)
        if value is None and key == 'imagePrefix':
            options[key] = ''
        elif not isinstance(value, str):
            logger.warning(f"Invalid {key} option, using default")
            options[key] = DEFAULT_OPTIONS[key]

    for key, choices in CHOICE_OPTIONS.items():
        if options.get(key) not in choices:
            logger.warning(f"Invalid {key} option '{options.get(key)}', using '{DEFAULT_OPTIONS[key]}'")
            options[key] = DEFAULT_OPTIONS[key]

    for key in BOOLEAN_OPTIONS:
        if not isinstance(options.get(key), bool):
            logger.warning(f"Invalid {key} option '{options.get(key)}', using {DEFAULT_OPTIONS[key]}")
            options[key] = DEFAULT_OPTIONS[key]

    fence = options.get('fence')
    if not isinstance(fence, str) or not fence or fence[0] not in '`~':
        logger.warning(f"Invalid fence option '{fence}', using default")
        options['fence'] = DEFAULT_OPTIONS['fence']

    if not isinstance(options.get('hr'), str) or not options['hr'].strip():
        options['hr'] = DEFAULT_OPTIONS['hr']

    folder = options.get('mdClipsFolder')
    if folder is not None and not isinstance(folder, str):
        logger.warning("Invalid mdClipsFolder option, ignoring it")
        options['mdClipsFolder'] = None

    if not direct_download_available and options['downloadMode'] != DownloadMode.CONTENT_LINK.value:
        logger.info("No direct download capability, switching to contentLink mode")
        options['downloadMode'] = DownloadMode.CONTENT_LINK.value

    return options


class ConfigLoader:
    """Handles loading of option files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load options from a YAML file with environment variable substitution.

        The file may hold the options at the top level or below an
        ``options:`` key.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Raw options dictionary (not merged with defaults)

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file does not contain a mapping
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        options = config_data.get('options', config_data)
        if not isinstance(options, dict):
            raise ValueError("'options' section must be a dictionary")
        return options

    @classmethod
    def merge_with_args(cls, options: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge options with CLI arguments; CLI arguments take precedence.

        Args:
            options: Base options dictionary
            args: Parsed CLI arguments

        Returns:
            Merged options dictionary
        """
        merged = copy.deepcopy(options)

        if getattr(args, 'download_images', None) is not None:
            merged['downloadImages'] = args.download_images

        if getattr(args, 'include_template', None) is not None:
            merged['includeTemplate'] = args.include_template

        if getattr(args, 'image_style', None):
            merged['imageStyle'] = args.image_style

        if getattr(args, 'folder', None):
            merged['mdClipsFolder'] = args.folder

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "options.imageStyle")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config

    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULT_OPTIONS', 'get_nested', 'load_options']
