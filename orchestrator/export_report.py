"""
Export report generator for aggregating clip outcomes and formatting reports.

Outcomes of one CLI run are collected into a report dictionary that can be
printed to the console or written as JSON or CSV.
"""

import csv
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models import ExportOutcome

logger = logging.getLogger('markdown_clipper.orchestrator.export_report')


class ExportReport:
    """Generates reports aggregating the outcomes of several article exports."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize export report generator.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('markdown_clipper.orchestrator.export_report')

    def generate_report(
        self,
        outcomes: Sequence[Tuple[str, ExportOutcome]],
        duration: float,
        output_dir: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Generate a report for a batch of exports.

        Args:
            outcomes: (source name, outcome) pairs, one per article
            duration: Total run time in seconds
            output_dir: Where documents were written, if anywhere

        Returns:
            Report dictionary
        """
        articles = [self._build_article_entry(source, outcome) for source, outcome in outcomes]

        report = {
            'summary': self._build_summary(articles, duration),
            'articles': articles,
            'errors': self._build_error_summary(articles),
            'output_dir': output_dir,
            'timestamp': datetime.now().isoformat()
        }

        self.logger.info(
            f"Report generated: {report['summary']['documents_exported']}/{len(articles)} documents, "
            f"{report['summary']['images_failed']} failed images"
        )
        return report

    def _build_article_entry(self, source: str, outcome: ExportOutcome) -> Dict[str, Any]:
        images = [r for r in outcome.resource_results if r.resource != 'document']
        entry = outcome.to_dict()
        entry['source'] = source
        entry['images_total'] = len(images)
        entry['images_failed'] = len([r for r in images if not r.success])
        entry['partial_failure'] = outcome.partial_failure
        return entry

    def _build_summary(self, articles: List[Dict[str, Any]], duration: float) -> Dict[str, Any]:
        """Build high-level summary section."""
        exported = len([a for a in articles if a['success']])
        return {
            'articles': len(articles),
            'documents_exported': exported,
            'documents_failed': len(articles) - exported,
            'images_total': sum(a['images_total'] for a in articles),
            'images_failed': sum(a['images_failed'] for a in articles),
            'partial_failures': len([a for a in articles if a['partial_failure']]),
            'success_rate': (exported / len(articles)) if articles else 0.0,
            'duration_seconds': duration,
            'duration_formatted': self._format_duration(duration)
        }

    def _build_error_summary(self, articles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Flatten every failed resource into one list."""
        errors = []
        for article in articles:
            for resource in article['resources']:
                if not resource['success']:
                    errors.append({
                        'source': article['source'],
                        'resource': resource['resource'],
                        'filename': resource['filename'],
                        'error': resource['error'],
                        'message': resource['message']
                    })
        return errors

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            secs = int(seconds % 60)
            return f"{minutes}m {secs}s"
        else:
            hours = int(seconds // 3600)
            minutes = int((seconds % 3600) // 60)
            secs = int(seconds % 60)
            return f"{hours}h {minutes}m {secs}s"

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Report dictionary

        Returns:
            Formatted console string
        """
        summary = report.get('summary', {})
        sections = [
            "=" * 60,
            "CLIP EXPORT REPORT",
            "=" * 60,
            "",
            "Summary:",
            f"  Articles:   {summary.get('articles', 0)}",
            f"  Exported:   {summary.get('documents_exported', 0)}",
            f"  Failed:     {summary.get('documents_failed', 0)}",
            f"  Images:     {summary.get('images_total', 0)} ({summary.get('images_failed', 0)} failed)",
            f"  Success:    {summary.get('success_rate', 0) * 100:.1f}%",
            f"  Duration:   {summary.get('duration_formatted', '0s')}",
            ""
        ]

        if report.get('output_dir'):
            sections.append(f"Output directory: {report['output_dir']}")
            sections.append("")

        errors = report.get('errors', [])
        if errors:
            sections.append("Errors:")
            sections.append("-" * 60)
            for error in errors:
                sections.append(
                    f"  [{error['error']}] {error['source']}: {error['filename']} - {error['message']}"
                )
            sections.append("")

        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Report dictionary
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"JSON report exported to {filepath}")

        except OSError as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")

    def export_csv_summary(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export one row per article to CSV.

        Args:
            report: Report dictionary
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(['source', 'filename', 'success', 'images_total', 'images_failed', 'error'])

                for article in report.get('articles', []):
                    writer.writerow([
                        article['source'],
                        article['filename'],
                        article['success'],
                        article['images_total'],
                        article['images_failed'],
                        article['error'] or ''
                    ])

            self.logger.info(f"CSV summary exported to {filepath}")

        except OSError as e:
            self.logger.error(f"Failed to export CSV summary: {str(e)}")


__all__ = ['ExportReport']
