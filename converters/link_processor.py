"""Link processor for resolving anchor and image URLs against the page address."""

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

logger = logging.getLogger('markdown_clipper.converters.linkprocessor')


MAX_URL_LENGTH = 8192
BLOCKED_SCHEMES = ('javascript', 'vbscript')
SAFE_PLACEHOLDER = '#'

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')


class LinkProcessor:
    """Resolves relative hrefs/srcs and neutralizes script URLs."""

    def __init__(self, base_uri: Optional[str] = None, logger: logging.Logger = None):
        """Initialize link processor with the URL the article was clipped from."""
        self.logger = logger or logging.getLogger('markdown_clipper.converters.linkprocessor')
        self.base_uri = base_uri or None

    def resolve_url(self, href: Optional[str], allow_data: bool = False) -> str:
        """
        Resolve ``href`` against the base URI.

        Absolute URLs are returned as written. Relative, protocol-relative and
        fragment URLs are joined with the base URI when there is one. Script
        schemes are replaced with ``#``; ``data:`` URLs are only kept when
        ``allow_data`` is set (images).

        Args:
            href: Raw attribute value
            allow_data: Whether data URLs are acceptable

        Returns:
            The resolved URL, ``''`` for empty input
        """
        if not href:
            return ''

        url = _CONTROL_CHARS.sub('', str(href)).strip()
        if len(url) > MAX_URL_LENGTH and not url.startswith('data:'):
            self.logger.warning(f"Truncating overlong URL ({len(url)} chars)")
            url = url[:MAX_URL_LENGTH]

        scheme = self._scheme(url)
        if scheme in BLOCKED_SCHEMES:
            self.logger.warning(f"Blocked {scheme}: URL")
            return SAFE_PLACEHOLDER
        if scheme == 'data':
            return url if allow_data else SAFE_PLACEHOLDER
        if scheme:
            return url

        if not self.base_uri:
            return url
        try:
            return urljoin(self.base_uri, url)
        except ValueError as e:
            self.logger.debug(f"Could not resolve '{url}' against '{self.base_uri}': {e}")
            return url

    def is_external(self, url: str) -> bool:
        """Check whether ``url`` points to a different host than the base URI."""
        if not self.base_uri:
            return True
        try:
            return urlparse(url).hostname != urlparse(self.base_uri).hostname
        except ValueError:
            return True

    def extract_links(self, soup: Any) -> List[Dict[str, Any]]:
        """Extract all links from HTML for conversion statistics."""
        links = []

        for a in soup.find_all('a', href=True):
            href = self.resolve_url(a['href'])
            links.append({
                'href': href,
                'text': a.get_text(strip=True),
                'is_external': self.is_external(href)
            })

        return links

    def extract_images(self, soup: Any) -> List[Dict[str, str]]:
        """Extract all images from HTML for conversion statistics."""
        images = []

        for img in soup.find_all('img', src=True):
            images.append({
                'src': self.resolve_url(img['src'], allow_data=True),
                'alt': img.get('alt', '') or img.get('title', ''),
                'title': img.get('title', '')
            })

        return images

    @staticmethod
    def _scheme(url: str) -> str:
        match = re.match(r'^([A-Za-z][A-Za-z0-9+.-]*):', url)
        return match.group(1).lower() if match else ''


__all__ = ['LinkProcessor']
