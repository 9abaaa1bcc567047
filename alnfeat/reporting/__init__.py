"""
Reporting module for turning feature counters into output rows and files.
"""

from .report_builder import ReportBuilder, FeatureReportRow

__all__ = ['ReportBuilder', 'FeatureReportRow']
