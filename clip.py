#!/usr/bin/env python3
"""
Markdown Clipper - Command Line Entry Point

Exports extracted web articles (JSON as produced by a readability step) to
Markdown files, optionally downloading the images they reference.
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config_loader import ConfigLoader, load_options
from exporters import ContentLinkDownloader
from logger import log_options, log_section, setup_logging
from models import Article, ExportOutcome, ImageStyle
from orchestrator import ExportOrchestrator, ExportReport

__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Export clipped web articles to Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export one article with default options
  python clip.py article.json

  # Use an options file and write below ./clips
  python clip.py article.json --config options.yaml --output-dir clips

  # Download images and include the front-matter template
  python clip.py *.json --download-images --include-template

  # Save a JSON report, verbose logging
  python clip.py article.json --report report.json -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        'articles',
        nargs='+',
        help='Article JSON files (an object or a list of objects each)'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to an options YAML file'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        default='.',
        help='Directory receiving exported files (default: current directory)'
    )

    parser.add_argument(
        '--folder',
        type=str,
        help='Sub-folder template for documents (overrides mdClipsFolder)'
    )

    parser.add_argument(
        '--download-images',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Download referenced images next to the document'
    )

    parser.add_argument(
        '--include-template',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Add the front-matter and back-matter templates'
    )

    parser.add_argument(
        '--image-style',
        choices=[s.value for s in ImageStyle],
        help='How images are written into the document'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        default=4,
        help='Parallel image downloads (default: 4)'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write a JSON report to this path'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def read_articles(path: str) -> List[Dict[str, Any]]:
    """
    Read article mappings from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the JSON is neither an object nor a list of objects
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    raise ValueError(f"{path}: expected an article object or a list of article objects")


def run_export(
    options: Dict[str, Any],
    args: argparse.Namespace,
    logger: logging.Logger
) -> Tuple[List[Tuple[str, ExportOutcome]], float, ExportOrchestrator]:
    """Export every article named on the command line."""
    orchestrator = ExportOrchestrator.from_options(options, args.output_dir, max_workers=args.max_workers)
    outcomes = []
    start_time = time.time()

    for path in args.articles:
        try:
            articles = read_articles(path)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read {path}: {e}")
            outcomes.append((path, ExportOutcome(success=False, document_filename='', error=str(e))))
            continue

        for index, data in enumerate(articles):
            source = path if len(articles) == 1 else f"{path}[{index}]"
            article = Article.from_dict(data)
            logger.info(f"Exporting '{article.page_title or article.title or source}'")
            outcomes.append((source, orchestrator.export_article(article, options)))

    return outcomes, time.time() - start_time, orchestrator


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(verbosity=args.verbose, log_file=args.log_file)
        logger = logging.getLogger('markdown_clipper.cli')

        log_section("Markdown Clipper")
        logger.info(f"Version: {__version__}")

        stored: Dict[str, Any] = {}
        if args.config:
            logger.info(f"Loading options from {args.config}")
            stored = ConfigLoader.load(args.config)

        options = load_options(ConfigLoader.merge_with_args(stored, args))
        log_options(options)

        Path(args.output_dir).mkdir(parents=True, exist_ok=True)
        outcomes, duration, orchestrator = run_export(options, args, logger)

        report_generator = ExportReport(logger)
        report = report_generator.generate_report(outcomes, duration, args.output_dir)
        print("\n" + report_generator.format_console_report(report))

        if isinstance(orchestrator.capability, ContentLinkDownloader):
            for link in orchestrator.capability.links:
                print(f"{link.filename}\t{link.href[:80]}")

        if args.report:
            report_generator.export_json_report(report, args.report)

        failed = report['summary']['documents_failed']
        if failed > 0:
            logger.warning(f"Export completed with {failed} failed documents")
            return 1
        logger.info("Export completed successfully")
        return 0

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
