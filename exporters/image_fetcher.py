"""HTTP and data: URL fetcher for image resources, with retry logic."""

import base64
import binascii
import logging
import time
from typing import Optional, Tuple
from urllib.parse import unquote_to_bytes

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('markdown_clipper.exporters.image_fetcher')

DEFAULT_CONTENT_TYPE = 'application/octet-stream'
TRANSIENT_STATUS_CODES = [429, 500, 502, 503, 504]
PERMANENT_STATUS_CODES = [400, 401, 403, 404, 410]


class ImageFetcher:
    """Fetches image bytes over HTTP(S) or decodes them from data: URLs."""

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 1.0,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize fetcher with a pooled session and retry configuration.

        Args:
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            user_agent: Optional User-Agent header
            session: Pre-configured session (tests, custom auth)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=retry_backoff_factor,
                status_forcelist=TRANSIENT_STATUS_CODES,
                allowed_methods=["HEAD", "GET", "OPTIONS"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        if user_agent:
            session.headers['User-Agent'] = user_agent
        self.session = session

        logger.debug(f"Fetcher configured with timeout={timeout}s, max_retries={max_retries}, "
                     f"backoff_factor={retry_backoff_factor}")

    def fetch(self, url: str) -> Tuple[bytes, str]:
        """
        Fetch a resource.

        Args:
            url: http(s) or data: URL

        Returns:
            Tuple of (content bytes, content type)

        Raises:
            ValueError: For malformed data URLs or unsupported schemes
            requests.exceptions.RequestException: For HTTP errors after retries
        """
        if url.startswith('data:'):
            return decode_data_url(url)
        if not url.lower().startswith(('http://', 'https://')):
            raise ValueError(f"Unsupported URL scheme: {url[:40]}")
        return self._download_with_retry(url)

    def _download_with_retry(self, url: str) -> Tuple[bytes, str]:
        """Download with exponential backoff on transient failures."""
        max_attempts = self.max_retries + 1

        for attempt in range(max_attempts):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                content_type = response.headers.get('Content-Type', DEFAULT_CONTENT_TYPE)
                return response.content, content_type.split(';')[0].strip()

            except requests.exceptions.RequestException as e:
                if not self._is_transient_error(e) or attempt >= self.max_retries:
                    if attempt > 0:
                        logger.error(f"Download failed after {attempt + 1} attempts: {url}")
                    raise

                wait_time = self.retry_backoff_factor * (2 ** attempt)
                logger.warning(
                    f"Download attempt {attempt + 1} failed ({str(e)}), "
                    f"retrying in {wait_time:.1f}s: {url}"
                )
                time.sleep(wait_time)

        raise requests.exceptions.RequestException(f"Download failed after {max_attempts} attempts: {url}")

    def _is_transient_error(self, exception: Exception) -> bool:
        """Determine if an error is transient (retry) or permanent (fail fast)."""
        response = getattr(exception, 'response', None)
        if response is not None:
            if response.status_code in TRANSIENT_STATUS_CODES:
                return True
            if response.status_code in PERMANENT_STATUS_CODES:
                return False

        if isinstance(exception, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
            return True

        return False

    def close(self) -> None:
        self.session.close()


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """
    Decode a ``data:`` URL.

    Args:
        url: URL of the form ``data:[<mime>][;base64],<payload>``

    Returns:
        Tuple of (decoded bytes, MIME type)

    Raises:
        ValueError: If the URL has no payload separator or invalid base64
    """
    header, sep, payload = url[len('data:'):].partition(',')
    if not sep:
        raise ValueError("Malformed data URL: missing ','")

    params = [p.strip() for p in header.split(';')]
    mime = params[0] or 'text/plain'
    if 'base64' in (p.lower() for p in params[1:]):
        try:
            return base64.b64decode(unquote_to_bytes(payload), validate=False), mime
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 payload in data URL: {e}") from e
    return unquote_to_bytes(payload), mime


def encode_data_url(content: bytes, content_type: str) -> str:
    """Encode bytes as a base64 ``data:`` URL."""
    return f"data:{content_type or DEFAULT_CONTENT_TYPE};base64,{base64.b64encode(content).decode('ascii')}"


__all__ = ['ImageFetcher', 'decode_data_url', 'encode_data_url']
