"""
Export orchestrator for turning an Article into a Markdown document plus images.

This module sequences the clipping pipeline: Template → Render → Export. The
document is exported first; images follow on a thread pool and are reported
one by one, so a failed image never cancels the document or its siblings.
"""

import base64
import logging
import mimetypes
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

import requests

from config_loader import load_options
from converters.filename_sanitizer import generate_valid_file_name, sanitize_path
from converters.markdown_converter import MarkdownRenderer
from converters.template_engine import FALLBACK_TITLE, text_replace
from exporters.download_capabilities import (
    ContentLinkDownloader,
    DownloadCapability,
    ExportRequest,
    FileSystemDownloader
)
from exporters.image_fetcher import ImageFetcher, encode_data_url
from logger import ProgressTracker
from models import (
    Article,
    ConversionResult,
    DownloadMode,
    ErrorKind,
    ExportError,
    ExportOutcome,
    ImageStyle,
    ResourceResult
)

logger = logging.getLogger('markdown_clipper.orchestrator.export_orchestrator')

DOCUMENT_RESOURCE = 'document'
MARKDOWN_EXTENSION = '.md'
MARKDOWN_MIME = 'text/markdown;charset=utf-8'
DEFAULT_MAX_WORKERS = 4


class ExportOrchestrator:
    """Central coordinator for converting and exporting clipped articles."""

    def __init__(
        self,
        capability: DownloadCapability,
        renderer: Optional[MarkdownRenderer] = None,
        fetcher: Optional[ImageFetcher] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        logger: Optional[logging.Logger] = None,
        now: Optional[datetime] = None
    ):
        """
        Initialize export orchestrator.

        Args:
            capability: Backend that receives export requests
            renderer: Markdown renderer (a default one is created if omitted)
            fetcher: Fetcher used to embed images for the base64 image style
            max_workers: Thread pool size for image exports
            logger: Optional logger instance
            now: Fixed timestamp for {date:...} placeholders
        """
        self.capability = capability
        self.logger = logger or logging.getLogger('markdown_clipper.orchestrator.export_orchestrator')
        self.renderer = renderer or MarkdownRenderer()
        self.fetcher = fetcher
        self.max_workers = max(1, int(max_workers))
        self.now = now

    @classmethod
    def from_options(
        cls,
        options: Optional[Mapping[str, Any]],
        output_dir,
        fetcher: Optional[ImageFetcher] = None,
        **kwargs
    ) -> 'ExportOrchestrator':
        """
        Build an orchestrator whose capability matches ``downloadMode``.

        Args:
            options: Clipping options
            output_dir: Output directory for the file system capability
            fetcher: Shared fetcher for downloads and base64 embedding
            **kwargs: Passed to the constructor

        Returns:
            ExportOrchestrator instance
        """
        options = load_options(options)
        if options['downloadMode'] == DownloadMode.CONTENT_LINK.value:
            capability = ContentLinkDownloader()
        else:
            fetcher = fetcher or ImageFetcher()
            capability = FileSystemDownloader(output_dir, fetcher=fetcher)
        return cls(capability, fetcher=fetcher, **kwargs)

    def convert_article_to_markdown(
        self,
        article: Union[Article, Mapping[str, Any]],
        options: Optional[Mapping[str, Any]] = None,
        download_images: Optional[bool] = None
    ) -> ConversionResult:
        """
        Convert an article into Markdown with optional front and back matter.

        Args:
            article: Article or extractor mapping
            options: Clipping options (merged over the defaults)
            download_images: Overrides the ``downloadImages`` option when set

        Returns:
            ConversionResult with the full document and the images to export
        """
        article = _as_article(article)
        options = load_options(options)
        if download_images is not None:
            options['downloadImages'] = bool(download_images)

        if options['includeTemplate']:
            frontmatter = self._render_template(options['frontmatter'], article) + '\n'
            backmatter = '\n' + self._render_template(options['backmatter'], article)
        else:
            frontmatter = backmatter = ''

        disallowed = options['disallowedChars']
        prefix = options['imagePrefix']
        if prefix:
            prefix = sanitize_path(text_replace(prefix, article, disallowed, now=self.now), disallowed)
            if prefix and options['imagePrefix'].endswith('/'):
                prefix += '/'
        if prefix and not self._uses_subfolders(options):
            prefix = prefix.rpartition('/')[2]
        options['imagePrefix'] = prefix

        embed = options['downloadImages'] and options['imageStyle'] == ImageStyle.BASE64.value
        result = self.renderer.convert(
            article.content, options, article,
            embed_image=self._image_embedder() if embed else None
        )
        image_list = {} if embed else dict(result.image_list)

        return ConversionResult(markdown=frontmatter + result.markdown + backmatter, image_list=image_list)

    def download(
        self,
        markdown: str,
        title: Optional[str],
        image_list: Optional[Dict[str, str]] = None,
        md_clips_folder: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None
    ) -> ExportOutcome:
        """
        Export the document, then its images.

        Args:
            markdown: Full Markdown document
            title: Document title; sanitized into the filename
            image_list: Source URL -> local filename
            md_clips_folder: Folder prefix, honoured when the capability supports
                subfolders and the mode is downloadsApi
            options: Clipping options

        Returns:
            ExportOutcome; ``success`` reflects the document export alone
        """
        options = load_options(options)
        disallowed = options['disallowedChars']

        if not title or not str(title).strip():
            title = FALLBACK_TITLE
        filename = generate_valid_file_name(title, disallowed) or FALLBACK_TITLE
        if not filename.lower().endswith(MARKDOWN_EXTENSION):
            filename += MARKDOWN_EXTENSION

        folder = ''
        if md_clips_folder and self._uses_subfolders(options):
            folder = md_clips_folder if md_clips_folder.endswith('/') else md_clips_folder + '/'
        document_filename = folder + filename

        document = self._export_resource(
            DOCUMENT_RESOURCE,
            ExportRequest(url=_markdown_data_url(markdown), filename=document_filename,
                          save_as=bool(options['saveAs']))
        )
        outcome = ExportOutcome(
            success=document.success,
            document_filename=document_filename,
            download_id=document.download_id,
            error=document.message,
            resource_results=[document]
        )

        if not document.success:
            self.logger.error(f"Export of '{document_filename}' failed: {document.message}")
            return outcome
        self.logger.info(f"Exported '{document_filename}'")

        if image_list:
            outcome.resource_results.extend(self._export_images(image_list, folder))

        return outcome

    def export_article(
        self,
        article: Union[Article, Mapping[str, Any]],
        options: Optional[Mapping[str, Any]] = None
    ) -> ExportOutcome:
        """
        Convert and export an article in one call.

        Args:
            article: Article or extractor mapping
            options: Clipping options

        Returns:
            ExportOutcome for the document and its images
        """
        article = _as_article(article)
        options = load_options(options)
        disallowed = options['disallowedChars']

        result = self.convert_article_to_markdown(article, options)
        title = text_replace(options['title'], article, disallowed, now=self.now)

        folder = ''
        if options['mdClipsFolder'] and self._uses_subfolders(options):
            folder = sanitize_path(text_replace(options['mdClipsFolder'], article, disallowed, now=self.now),
                                   disallowed)

        return self.download(result.markdown, title, result.image_list, folder, options)

    def _uses_subfolders(self, options: Mapping[str, Any]) -> bool:
        """True when exported filenames may contain folders."""
        return (options['downloadMode'] == DownloadMode.DOWNLOADS_API.value
                and getattr(self.capability, 'supports_subfolders', True))

    def _render_template(self, template: str, article: Article) -> str:
        if not template:
            return ''
        return text_replace(template, article, now=self.now)

    def _export_images(self, image_list: Dict[str, str], folder: str) -> List[ResourceResult]:
        """Export images concurrently; results keep the order of ``image_list``."""
        requests_by_src = [
            (src, ExportRequest(url=src, filename=folder + filename))
            for src, filename in image_list.items()
        ]

        with ProgressTracker(total_items=len(requests_by_src), item_type='images', logger=self.logger) as tracker:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._export_resource, src, request)
                    for src, request in requests_by_src
                ]
                results = []
                for future in futures:
                    result = future.result()
                    tracker.increment(success=result.success)
                    results.append(result)

        return results

    def _export_resource(self, resource: str, request: ExportRequest) -> ResourceResult:
        """Export one resource, converting failures into a ResourceResult."""
        try:
            download_id = self.capability.export(request)
            return ResourceResult(resource=resource, success=True, filename=request.filename,
                                  download_id=download_id)
        except ExportError as e:
            kind, message = e.kind, str(e)
        except Exception as e:
            kind, message = ErrorKind.EXPORT, f"{type(e).__name__}: {e}"

        if resource != DOCUMENT_RESOURCE:
            self.logger.warning(f"Failed to export image '{request.filename}': {message}")
        return ResourceResult(resource=resource, success=False, filename=request.filename,
                              error=kind, message=message)

    def _image_embedder(self) -> Callable[[str], Optional[str]]:
        """Build a callback turning an image URL into a base64 data URL.

        Each URL is fetched once per conversion. Failures return None so the
        renderer keeps the remote URL.
        """
        fetcher = self.fetcher or ImageFetcher()
        embedded: Dict[str, Optional[str]] = {}

        def embed(src: str) -> Optional[str]:
            if src in embedded:
                return embedded[src]
            try:
                content, content_type = fetcher.fetch(src)
            except (requests.exceptions.RequestException, ValueError) as e:
                self.logger.warning(f"Could not embed image {src[:100]}: {e}")
                embedded[src] = None
                return None
            if not content_type.startswith('image/'):
                content_type = mimetypes.guess_type(urlparse(src).path)[0] or content_type
            embedded[src] = encode_data_url(content, content_type)
            return embedded[src]

        return embed


def _as_article(article: Union[Article, Mapping[str, Any], None]) -> Article:
    if isinstance(article, Article):
        return article
    return Article.from_dict(article or {})


def _markdown_data_url(markdown: str) -> str:
    payload = base64.b64encode((markdown or '').encode('utf-8')).decode('ascii')
    return f"data:{MARKDOWN_MIME};base64,{payload}"


__all__ = ['ExportOrchestrator']
