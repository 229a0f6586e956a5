"""Download capabilities that persist exported documents and images.

A capability receives ExportRequest objects and returns a download id. The
orchestrator does not know where the bytes end up: ``FileSystemDownloader``
writes them below an output directory, ``ContentLinkDownloader`` only records
links for a UI to trigger.
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import requests

from models import ErrorKind, ExportError
from .image_fetcher import ImageFetcher

logger = logging.getLogger('markdown_clipper.exporters.download_capabilities')


@dataclass(frozen=True)
class ExportRequest:
    """One resource to export."""

    url: str
    filename: str
    save_as: bool = False


@dataclass(frozen=True)
class DownloadLink:
    """A link the UI should click to save ``href`` as ``filename``."""

    href: str
    filename: str


class DownloadCapability:
    """Interface implemented by every download backend."""

    name = 'capability'
    supports_subfolders = True

    def export(self, request: ExportRequest) -> int:
        """
        Export one resource.

        Returns:
            An id identifying the download

        Raises:
            ExportError: When the resource cannot be exported
        """
        raise NotImplementedError


class FileSystemDownloader(DownloadCapability):
    """Writes exported resources under an output directory."""

    name = 'downloadsApi'
    supports_subfolders = True

    def __init__(
        self,
        output_dir,
        fetcher: Optional[ImageFetcher] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the downloader.

        Args:
            output_dir: Directory that receives every exported file
            fetcher: Fetcher used to resolve request URLs to bytes
            logger: Logger instance
        """
        self.output_directory = Path(output_dir)
        self.fetcher = fetcher or ImageFetcher()
        self.logger = logger or logging.getLogger('markdown_clipper.exporters.download_capabilities')

        self.downloads: Dict[int, Path] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def export(self, request: ExportRequest) -> int:
        target = self._target_path(request.filename)
        if request.save_as:
            self.logger.info(f"Save-as requested for '{request.filename}'; writing without prompting")

        content = self._fetch(request)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            saved_path = self._write_unique(target, content)
        except OSError as e:
            raise ExportError(f"Failed to write '{request.filename}': {e}", ErrorKind.EXPORT) from e

        with self._lock:
            download_id = next(self._ids)
            self.downloads[download_id] = saved_path

        self.logger.debug(f"Saved {len(content)} bytes -> {saved_path}")
        return download_id

    def _target_path(self, filename: str) -> Path:
        """Resolve ``filename`` below the output directory, rejecting escapes."""
        if not filename or not filename.strip():
            raise ExportError("Empty filename", ErrorKind.VALIDATION)

        root = self.output_directory.resolve()
        target = (root / filename).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            raise ExportError(f"Refusing to write outside {root}: '{filename}'", ErrorKind.UNSAFE_PATH)
        if target == root:
            raise ExportError(f"Filename resolves to the output directory: '{filename}'", ErrorKind.UNSAFE_PATH)
        return target

    def _fetch(self, request: ExportRequest) -> bytes:
        try:
            content, _ = self.fetcher.fetch(request.url)
        except requests.exceptions.RequestException as e:
            raise ExportError(f"Failed to fetch '{request.url[:100]}': {e}", ErrorKind.NETWORK) from e
        except ValueError as e:
            raise ExportError(f"Invalid resource URL for '{request.filename}': {e}", ErrorKind.EXPORT) from e
        return content

    def _write_unique(self, target: Path, content: bytes) -> Path:
        """Create ``target``, or ``name (N).ext`` when the name is taken."""
        candidate = target
        counter = 1
        while True:
            try:
                with open(candidate, 'xb') as f:
                    f.write(content)
                return candidate
            except FileExistsError:
                candidate = target.with_name(f"{target.stem} ({counter}){target.suffix}")
                counter += 1


class ContentLinkDownloader(DownloadCapability):
    """Records links for the UI to click; subfolders are not supported."""

    name = 'contentLink'
    supports_subfolders = False

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize with an empty link list."""
        self.logger = logger or logging.getLogger('markdown_clipper.exporters.download_capabilities')
        self.links: List[DownloadLink] = []
        self._lock = threading.Lock()

    def export(self, request: ExportRequest) -> int:
        if not request.url:
            raise ExportError(f"No URL for '{request.filename}'", ErrorKind.VALIDATION)

        filename = request.filename.rsplit('/', 1)[-1]
        if not filename:
            raise ExportError(f"Empty filename in '{request.filename}'", ErrorKind.VALIDATION)

        with self._lock:
            self.links.append(DownloadLink(href=request.url, filename=filename))
            download_id = len(self.links)

        self.logger.debug(f"Recorded download link for '{filename}'")
        return download_id


__all__ = [
    'ContentLinkDownloader',
    'DownloadCapability',
    'DownloadLink',
    'ExportRequest',
    'FileSystemDownloader'
]
