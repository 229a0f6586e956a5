"""Data models for the web clipping to Markdown pipeline."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger('markdown_clipper')


class ImageStyle(Enum):
    """How images are written into the Markdown body."""
    MARKDOWN = "markdown"
    ORIGINAL_SOURCE = "originalSource"
    BASE64 = "base64"
    OBSIDIAN = "obsidian"
    OBSIDIAN_NOFOLDER = "obsidian-nofolder"
    NO_IMAGE = "noImage"

    @property
    def is_obsidian(self) -> bool:
        return self in (ImageStyle.OBSIDIAN, ImageStyle.OBSIDIAN_NOFOLDER)


class ImageRefStyle(Enum):
    """Inline image links or numbered reference definitions."""
    INLINED = "inlined"
    REFERENCED = "referenced"


class LinkStyle(Enum):
    """How anchors are rendered."""
    INLINED = "inlined"
    REFERENCED = "referenced"
    STRIP_LINKS = "stripLinks"


class DownloadMode(Enum):
    """Which host capability performs the export."""
    DOWNLOADS_API = "downloadsApi"
    CONTENT_LINK = "contentLink"


class ErrorKind(Enum):
    """Failure categories reported in export outcomes."""
    VALIDATION = "validation"
    RENDER = "render"
    EXPORT = "export"
    NETWORK = "network"
    UNSAFE_PATH = "unsafe_path"


class ExportError(Exception):
    """Raised by a download capability when a single export request fails."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.EXPORT):
        super().__init__(message)
        self.kind = kind


# Extractor keys (camelCase) -> Article attribute names
_ARTICLE_KEYS = {
    'title': 'title',
    'pageTitle': 'page_title',
    'content': 'content',
    'textContent': 'text_content',
    'excerpt': 'excerpt',
    'byline': 'byline',
    'baseURI': 'base_uri',
    'keywords': 'keywords',
    'siteName': 'site_name',
    'publishedTime': 'published_time',
}


@dataclass(frozen=True)
class Article:
    """An extracted web page, as produced by the readability step."""

    title: str = ''
    page_title: str = ''
    content: str = ''
    text_content: str = ''
    excerpt: str = ''
    byline: str = ''
    base_uri: str = ''
    keywords: Optional[List[str]] = None
    site_name: str = ''
    published_time: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Article':
        """Build an Article from the extractor's camelCase mapping.

        Keys that are not Article attributes are kept in ``extra`` so that
        templates can still reference them.
        """
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            attr = _ARTICLE_KEYS.get(key)
            if attr is None and key in _ARTICLE_KEYS.values():
                attr = key
            if attr is None:
                extra[key] = value
            else:
                known[attr] = value
        for attr in ('title', 'page_title', 'content', 'text_content', 'excerpt',
                     'byline', 'base_uri', 'site_name'):
            if known.get(attr) is None:
                known.pop(attr, None)
        return cls(extra=extra, **known)

    def template_fields(self) -> Dict[str, Any]:
        """Return the placeholder name -> value mapping used by templates."""
        fields: Dict[str, Any] = dict(self.extra)
        for key, attr in _ARTICLE_KEYS.items():
            if key == 'content':
                continue
            fields[key] = getattr(self, attr)
        return fields

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the extractor's camelCase layout."""
        data = {key: getattr(self, attr) for key, attr in _ARTICLE_KEYS.items()}
        data.update(self.extra)
        return data


@dataclass
class ConversionResult:
    """Markdown produced by one conversion and the images it references."""

    markdown: str
    image_list: Dict[str, str] = field(default_factory=dict)


@dataclass
class ResourceResult:
    """Outcome of exporting one resource (the document or one image)."""

    resource: str
    success: bool
    filename: Optional[str] = None
    download_id: Optional[Any] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            'resource': self.resource,
            'success': self.success,
            'filename': self.filename,
            'download_id': self.download_id,
            'error': self.error.value if self.error else None,
            'message': self.message
        }


@dataclass
class ExportOutcome:
    """Structured report of a document-plus-images export."""

    success: bool
    document_filename: str
    download_id: Optional[Any] = None
    error: Optional[str] = None
    resource_results: List[ResourceResult] = field(default_factory=list)

    @property
    def failed_resources(self) -> List[ResourceResult]:
        """Resources whose export failed."""
        return [r for r in self.resource_results if not r.success]

    @property
    def partial_failure(self) -> bool:
        """True when the document was exported but some images were not."""
        return self.success and bool(self.failed_resources)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize outcome to dictionary."""
        return {
            'success': self.success,
            'filename': self.document_filename,
            'download_id': self.download_id,
            'error': self.error,
            'resources': [r.to_dict() for r in self.resource_results]
        }


__all__ = [
    'Article',
    'ConversionResult',
    'DownloadMode',
    'ErrorKind',
    'ExportError',
    'ExportOutcome',
    'ImageRefStyle',
    'ImageStyle',
    'LinkStyle',
    'ResourceResult'
]
