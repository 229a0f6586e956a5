"""Tests for export report generation."""

import csv
import json

import pytest

from models import ErrorKind, ExportOutcome, ResourceResult
from orchestrator import ExportReport


@pytest.fixture
def outcomes():
    partial = ExportOutcome(
        success=True,
        document_filename='A.md',
        download_id=1,
        resource_results=[
            ResourceResult(resource='document', success=True, filename='A.md', download_id=1),
            ResourceResult(resource='https://x.test/1.png', success=True, filename='A/1.png', download_id=2),
            ResourceResult(resource='https://x.test/2.png', success=False, filename='A/2.png',
                           error=ErrorKind.NETWORK, message='timed out'),
        ]
    )
    failed = ExportOutcome(
        success=False,
        document_filename='B.md',
        error='disk full',
        resource_results=[
            ResourceResult(resource='document', success=False, filename='B.md',
                           error=ErrorKind.EXPORT, message='disk full')
        ]
    )
    return [('a.json', partial), ('b.json', failed)]


class TestExportReport:

    def test_summary(self, outcomes):
        report = ExportReport().generate_report(outcomes, 75.0, 'clips')
        summary = report['summary']
        assert summary['articles'] == 2
        assert summary['documents_exported'] == 1
        assert summary['documents_failed'] == 1
        assert summary['images_total'] == 2
        assert summary['images_failed'] == 1
        assert summary['partial_failures'] == 1
        assert summary['success_rate'] == 0.5
        assert summary['duration_formatted'] == '1m 15s'
        assert report['output_dir'] == 'clips'

    def test_errors_are_flattened(self, outcomes):
        report = ExportReport().generate_report(outcomes, 1.0)
        assert report['errors'] == [
            {'source': 'a.json', 'resource': 'https://x.test/2.png', 'filename': 'A/2.png',
             'error': 'network', 'message': 'timed out'},
            {'source': 'b.json', 'resource': 'document', 'filename': 'B.md',
             'error': 'export', 'message': 'disk full'},
        ]

    def test_empty_run(self):
        report = ExportReport().generate_report([], 0.2)
        assert report['summary']['success_rate'] == 0.0
        assert report['errors'] == []

    def test_console_report(self, outcomes):
        generator = ExportReport()
        text = generator.format_console_report(generator.generate_report(outcomes, 3.0, 'clips'))
        assert 'CLIP EXPORT REPORT' in text
        assert 'Exported:   1' in text
        assert 'Images:     2 (1 failed)' in text
        assert '[network] a.json: A/2.png - timed out' in text
        assert 'Output directory: clips' in text

    def test_json_report(self, outcomes, tmp_path):
        generator = ExportReport()
        path = tmp_path / 'report.json'
        generator.export_json_report(generator.generate_report(outcomes, 1.0), str(path))
        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['summary']['documents_failed'] == 1
        assert data['articles'][0]['resources'][2]['error'] == 'network'

    def test_csv_summary(self, outcomes, tmp_path):
        generator = ExportReport()
        path = tmp_path / 'summary.csv'
        generator.export_csv_summary(generator.generate_report(outcomes, 1.0), str(path))
        with open(path, newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))
        assert rows[0] == ['source', 'filename', 'success', 'images_total', 'images_failed', 'error']
        assert rows[1] == ['a.json', 'A.md', 'True', '2', '1', '']
        assert rows[2] == ['b.json', 'B.md', 'False', '0', '0', 'disk full']

    def test_unwritable_report_is_logged(self, outcomes, tmp_path, caplog):
        generator = ExportReport()
        generator.export_json_report(generator.generate_report(outcomes, 1.0), str(tmp_path / 'no' / 'r.json'))
        assert 'Failed to export JSON report' in caplog.text
