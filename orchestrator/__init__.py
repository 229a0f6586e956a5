"""
Orchestration package for coordinating the clipping pipeline.

This package sequences Template → Render → Export for a single article and
aggregates the outcomes of several exports into reports.
"""

from .export_orchestrator import ExportOrchestrator
from .export_report import ExportReport

__all__ = [
    'ExportOrchestrator',
    'ExportReport'
]
