"""
Record processing loop.

Each record is parsed, walked and accumulated independently. A record that
fails is turned into a RecordDiagnostic and the loop moves on, so one bad line
never aborts a long batch run and never leaves partial counts behind.

With more than one worker, lines are cut into batches; every batch is handled
by a worker into its own partial FeatureStatsTable, and the partial tables are
merged by span union as results arrive.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from tqdm import tqdm

from alnfeat.analysis.accumulator import OverlapAccumulator
from alnfeat.analysis.indel_classifier import IndelClassifier
from alnfeat.analysis.stats import FeatureStatsTable
from alnfeat.core.errors import AlignmentRecordError
from alnfeat.core.io import iter_data_lines, parse_paf_line
from alnfeat.core.models import AlignmentRecord, RecordDiagnostic
from alnfeat.features.index import FeatureIndex
from alnfeat.parallel.task_manager import create_worker_pool, iter_batches

logger = logging.getLogger(__name__)

NumberedLine = Tuple[int, str]


@dataclass
class ProcessingResult:
    """Accumulated table plus per-record bookkeeping for one run."""
    table: FeatureStatsTable = field(default_factory=FeatureStatsTable)
    diagnostics: List[RecordDiagnostic] = field(default_factory=list)
    records_processed: int = 0

    @property
    def records_rejected(self) -> int:
        return len(self.diagnostics)

    @property
    def records_seen(self) -> int:
        return self.records_processed + self.records_rejected

    def merge(self, other: 'ProcessingResult') -> 'ProcessingResult':
        self.table.merge(other.table)
        self.diagnostics.extend(other.diagnostics)
        self.records_processed += other.records_processed
        return self

    def error_counts(self) -> dict:
        counts = {}
        for diagnostic in self.diagnostics:
            counts[diagnostic.error_kind] = counts.get(diagnostic.error_kind, 0) + 1
        return counts


@dataclass
class WorkerContext:
    """
    Read-only state every worker needs to handle a batch on its own.

    Sent to each worker once, by the pool initializer, so batches only carry
    their lines.
    """
    query_index: Optional[FeatureIndex]
    target_index: Optional[FeatureIndex]
    max_indel_size: Optional[int] = None


# Set in each worker by _init_worker
_worker_context: Optional[WorkerContext] = None


def _init_worker(context: WorkerContext) -> None:
    global _worker_context
    _worker_context = context


def _diagnostic(error: AlignmentRecordError, line_number: Optional[int],
                record: Optional[AlignmentRecord] = None) -> RecordDiagnostic:
    return RecordDiagnostic(
        line_number=line_number,
        error_kind=error.kind,
        message=str(error),
        record_label=record.label() if record is not None else None,
    )


def process_line(accumulator: OverlapAccumulator, line_number: Optional[int],
                 line: str) -> Optional[RecordDiagnostic]:
    """
    Parse and accumulate one PAF line.

    Returns:
        None on success, or the diagnostic describing why the line was rejected.
    """
    record = None
    try:
        record = parse_paf_line(line, line_number)
        accumulator.add_record(record)
    except AlignmentRecordError as e:
        return _diagnostic(e, line_number, record)
    return None


def _process_record_batch(lines: List[NumberedLine]) -> ProcessingResult:
    """
    Process a batch of lines into a partial result, using the worker's context.

    Defined at module level so it can be pickled for a process pool.
    """
    context = _worker_context
    result = ProcessingResult()
    accumulator = OverlapAccumulator(
        query_index=context.query_index,
        target_index=context.target_index,
        classifier=IndelClassifier(context.max_indel_size),
        table=result.table,
    )
    for line_number, line in lines:
        diagnostic = process_line(accumulator, line_number, line)
        if diagnostic is None:
            result.records_processed += 1
        else:
            result.diagnostics.append(diagnostic)
    return result


def log_diagnostic(diagnostic: RecordDiagnostic) -> None:
    logger.warning(f"Skipping record at line {diagnostic.line_number} "
                   f"({diagnostic.error_kind}): {diagnostic.message}")


class FeatureCoverageCounter:
    """
    Runs the accumulation over a stream of alignment records.

    This class handles:
    - Per-record error isolation
    - Optional fan-out of record batches over a worker pool
    - Merging partial tables into one result
    """

    def __init__(self,
                 query_index: Optional[FeatureIndex] = None,
                 target_index: Optional[FeatureIndex] = None,
                 max_indel_size: Optional[int] = None,
                 workers: int = 1,
                 batch_size: int = 1000,
                 pool_type: str = 'process',
                 show_progress: bool = False):
        """
        Initialize the counter.

        Args:
            query_index: Index of query-side features
            target_index: Index of target-side features
            max_indel_size: Largest indel counted as an indel; None for no limit
            workers: Number of workers; 1 processes records in this process
            batch_size: Lines per worker batch
            pool_type: 'process' or 'thread'
            show_progress: Show a tqdm progress bar over records
        """
        self.query_index = query_index
        self.target_index = target_index
        self.classifier = IndelClassifier(max_indel_size)
        self.workers = workers
        self.batch_size = batch_size
        self.pool_type = pool_type
        self.show_progress = show_progress

    @property
    def max_indel_size(self) -> Optional[int]:
        return self.classifier.max_indel_size

    def process_records(self, records: Iterable[AlignmentRecord]) -> ProcessingResult:
        """
        Accumulate already-parsed records in this process.

        Args:
            records: AlignmentRecord objects with decoded CIGAR operations

        Returns:
            ProcessingResult with the table and any rejections
        """
        result = ProcessingResult()
        accumulator = OverlapAccumulator(self.query_index, self.target_index,
                                         self.classifier, table=result.table)
        for record in records:
            try:
                accumulator.add_record(record)
            except AlignmentRecordError as e:
                diagnostic = _diagnostic(e, record.line_number, record)
                log_diagnostic(diagnostic)
                result.diagnostics.append(diagnostic)
                continue
            result.records_processed += 1
        return result

    def process_lines(self, lines: Iterable[NumberedLine]) -> ProcessingResult:
        """
        Parse and accumulate numbered PAF lines.

        Args:
            lines: (line number, line) pairs

        Returns:
            ProcessingResult with the merged table and any rejections
        """
        lines = tqdm(lines, desc="Processing alignments", unit=" records",
                     disable=not self.show_progress)
        if self.workers and self.workers > 1:
            result = self._process_parallel(lines)
        else:
            result = self._process_sequential(lines)

        logger.info(f"Processed {result.records_processed} records, rejected {result.records_rejected}")
        for kind, count in sorted(result.error_counts().items()):
            logger.info(f"  {kind}: {count}")
        return result

    def process_file(self, path: Union[str, Path]) -> ProcessingResult:
        """Process a PAF file, optionally gzipped."""
        logger.info(f"Processing alignments from {path}")
        return self.process_lines(iter_data_lines(path))

    def _process_sequential(self, lines: Iterable[NumberedLine]) -> ProcessingResult:
        result = ProcessingResult()
        accumulator = OverlapAccumulator(self.query_index, self.target_index,
                                         self.classifier, table=result.table)
        for line_number, line in lines:
            diagnostic = process_line(accumulator, line_number, line)
            if diagnostic is None:
                result.records_processed += 1
            else:
                log_diagnostic(diagnostic)
                result.diagnostics.append(diagnostic)
        return result

    def _process_parallel(self, lines: Iterable[NumberedLine]) -> ProcessingResult:
        context = WorkerContext(self.query_index, self.target_index, self.max_indel_size)
        logger.info(f"Processing record batches of {self.batch_size} with {self.workers} {self.pool_type} workers")

        result = ProcessingResult()
        with create_worker_pool(self.pool_type, self.workers,
                                initializer=_init_worker, initargs=(context,)) as pool:
            for partial in pool.imap(_process_record_batch, iter_batches(lines, self.batch_size)):
                for diagnostic in partial.diagnostics:
                    log_diagnostic(diagnostic)
                result.merge(partial)
        return result
