"""
TSV formatter for feature coverage reports.

This module provides the TSVFormatter class for writing per-feature rows
and paired-feature rows as Tab-Separated Values (TSV).
"""

import os
import sys
import csv
import logging
from contextlib import contextmanager
from typing import IO, Iterable, Iterator, Optional

from alnfeat.analysis.paired import PairedFeatureCounts
from alnfeat.core.models import RecordDiagnostic
from alnfeat.reporting.report_builder import FeatureReportRow

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = [
    ('feature.name', 'feature_name'),
    ('side', 'side'),
    ('sequence', 'sequence_name'),
    ('feature.start', 'start'),
    ('feature.end', 'end'),
    ('feature.strand', 'strand'),
    ('feature.length', 'feature_length'),
    ('aligned.bp', 'aligned_bp'),
    ('indel.bp', 'indel_bp'),
    ('large.gap.bp', 'large_gap_bp'),
    ('uncovered.bp', 'uncovered_bp'),
]

PAIRED_COLUMNS = [
    'feature.name', 'query', 'query.feature.start', 'query.feature.end', 'query.strand',
    'target', 'target.feature.start', 'target.feature.end', 'aligned.bp',
    'not.aligned.in.query.bp', 'not.aligned.in.target.bp',
    'indels.in.query.bp', 'indels.in.target.bp',
    'ignored.in.query.bp', 'ignored.in.target.bp',
]


@contextmanager
def open_output(output_file: Optional[str]) -> Iterator[IO[str]]:
    """Open an output file for writing, or yield stdout for None or '-'."""
    if output_file in (None, '-'):
        yield sys.stdout
        return
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)
    with open(output_file, 'w', newline='') as f:
        yield f


class TSVFormatter:
    """
    Formats report rows as Tab-Separated Values (TSV).

    Rows are written as they are consumed, so paired-mode output can be
    streamed without holding every row in memory.
    """

    def format(self, rows: Iterable[FeatureReportRow], output_file: Optional[str] = None,
               metadata: Optional[dict] = None) -> Optional[str]:
        """
        Write per-feature report rows.

        Args:
            rows: Report rows from ReportBuilder
            output_file: Path to output file; None or '-' writes to stdout
            metadata: Accepted for interface parity with JSONFormatter; not written

        Returns:
            Path to the generated file, or None for stdout
        """
        count = 0
        with open_output(output_file) as f:
            writer = csv.writer(f, delimiter='\t', lineterminator='\n')
            writer.writerow([header for header, _ in FEATURE_COLUMNS])
            for row in rows:
                writer.writerow([getattr(row, attribute) for _, attribute in FEATURE_COLUMNS])
                count += 1

        logger.info(f"Wrote {count} feature rows to {output_file or 'stdout'}")
        return output_file

    def format_paired(self, rows: Iterable[PairedFeatureCounts],
                      output_file: Optional[str] = None) -> Optional[str]:
        """
        Write paired-feature rows with dotted column names.

        Args:
            rows: Counts from PairedFeatureProcessor
            output_file: Path to output file; None or '-' writes to stdout

        Returns:
            Path to the generated file, or None for stdout
        """
        count = 0
        with open_output(output_file) as f:
            writer = csv.writer(f, delimiter='\t', lineterminator='\n')
            writer.writerow(PAIRED_COLUMNS)
            for row in rows:
                writer.writerow(row.values())
                count += 1

        logger.info(f"Wrote {count} paired-feature rows to {output_file or 'stdout'}")
        return output_file

    def format_diagnostics(self, diagnostics: Iterable[RecordDiagnostic],
                           output_file: Optional[str] = None) -> Optional[str]:
        """Write rejected-record diagnostics, one row per rejected record."""
        with open_output(output_file) as f:
            writer = csv.writer(f, delimiter='\t', lineterminator='\n')
            writer.writerow(['line', 'error', 'record', 'message'])
            for diagnostic in diagnostics:
                writer.writerow([diagnostic.line_number, diagnostic.error_kind,
                                 diagnostic.record_label or '', diagnostic.message])
        return output_file
