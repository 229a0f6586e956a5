"""Export package for persisting clipped Markdown documents and their images.

Package Structure:
- download_capabilities: Backends that store or hand out exported resources
- image_fetcher: Resolves http(s) and data: URLs to bytes with retries

Key Features:
- File system export with path-escape protection and name de-duplication
- Content-link export that records links for a UI to trigger
- Retrying HTTP downloads on a pooled requests session
"""

from .download_capabilities import (
    ContentLinkDownloader,
    DownloadCapability,
    DownloadLink,
    ExportRequest,
    FileSystemDownloader
)
from .image_fetcher import ImageFetcher, decode_data_url, encode_data_url

__all__ = [
    'ContentLinkDownloader',
    'DownloadCapability',
    'DownloadLink',
    'ExportRequest',
    'FileSystemDownloader',
    'ImageFetcher',
    'decode_data_url',
    'encode_data_url'
]
