"""
Paired-feature mode.

Each input row joins one PAF alignment with one feature on the query and one
feature on the target (as produced by intersecting the alignment's two ends
with a BED file, e.g. with bedtools). Per row, the alignment is walked once
and the bases of the two features are split into aligned, indel, not-aligned
(large gap) and ignored (not touched by the alignment) counts.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from tqdm import tqdm

from alnfeat.alignment.walker import BlockKind, walk_record
from alnfeat.analysis.indel_classifier import IndelClass, IndelClassifier
from alnfeat.core.errors import AlignmentRecordError, FeaturePairError, MalformedRecordError
from alnfeat.core.io import PAF_MIN_COLUMNS, iter_data_lines, parse_paf_fields
from alnfeat.core.models import AlignmentRecord, Feature, Range, RecordDiagnostic, Side

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = 7
QUERY_FEATURE_OFFSET = PAF_MIN_COLUMNS + 1
TARGET_FEATURE_OFFSET = QUERY_FEATURE_OFFSET + FEATURE_COLUMNS
JOINED_MIN_COLUMNS = TARGET_FEATURE_OFFSET + FEATURE_COLUMNS


@dataclass
class PairedFeatureRecord:
    """An alignment joined with the same feature on its query and target."""
    alignment: AlignmentRecord
    query_feature: Feature
    target_feature: Feature


@dataclass
class PairedFeatureCounts:
    """Per-row output of paired-feature mode."""
    feature_name: str
    query: str
    query_feature_start: int
    query_feature_end: int
    query_strand: str
    target: str
    target_feature_start: int
    target_feature_end: int
    aligned_bp: int = 0
    not_aligned_in_query_bp: int = 0
    not_aligned_in_target_bp: int = 0
    indels_in_query_bp: int = 0
    indels_in_target_bp: int = 0
    ignored_in_query_bp: int = 0
    ignored_in_target_bp: int = 0

    def values(self) -> List:
        return [getattr(self, f.name) for f in fields(self)]


def _parse_feature(parts: List[str], side: Side) -> Feature:
    sequence_name, start, end, name, _score, strand, _feature_class = parts[:FEATURE_COLUMNS]
    try:
        return Feature(name=name, sequence_name=sequence_name, start=int(start),
                       end=int(end), strand=strand, side=side)
    except ValueError as e:
        raise MalformedRecordError(f"Invalid {side.value} feature columns: {e}")


def parse_joined_line(line: str, line_number: Optional[int] = None) -> PairedFeatureRecord:
    """
    Parse a joined row: 12 PAF columns, the cg:Z: column, then a 7-column
    query feature and a 7-column target feature.

    Raises:
        MalformedRecordError: Too few columns or unparseable fields.
        MalformedCigarError: The CIGAR column does not parse.
    """
    parts = line.rstrip('\r\n').split('\t')
    if len(parts) < JOINED_MIN_COLUMNS:
        raise MalformedRecordError(
            f"Expected at least {JOINED_MIN_COLUMNS} columns, found {len(parts)}")
    alignment = parse_paf_fields(parts, line_number, tags=[parts[PAF_MIN_COLUMNS]])
    return PairedFeatureRecord(
        alignment=alignment,
        query_feature=_parse_feature(parts[QUERY_FEATURE_OFFSET:TARGET_FEATURE_OFFSET], Side.QUERY),
        target_feature=_parse_feature(parts[TARGET_FEATURE_OFFSET:JOINED_MIN_COLUMNS], Side.TARGET),
    )


def check_pair(paired: PairedFeatureRecord) -> None:
    """
    Reject rows whose alignment and features do not belong together.

    Raises:
        FeaturePairError: Sequence names differ from the alignment's, the two
            feature names differ, or the features sit on different strands
            while the alignment is on the forward strand.
    """
    aln = paired.alignment
    qf, tf = paired.query_feature, paired.target_feature
    if aln.query_name != qf.sequence_name or aln.target_name != tf.sequence_name or qf.name != tf.name:
        raise FeaturePairError(
            f"query, target, and/or feature name do not match: {qf.name} {aln.query_name} "
            f"{qf.start} {qf.end} {aln.strand} {aln.target_name} {tf.start} {tf.end}")
    if qf.strand != tf.strand and aln.strand == '+':
        # Features on opposite strands can only match through a reverse alignment
        raise FeaturePairError(
            f"feature {qf.name} is on different strands in query and target, "
            f"but query and target are in the same orientation")


def _overlap(block_range: Optional[Range], feature: Feature) -> int:
    if block_range is None:
        return 0
    return max(0, min(block_range[1], feature.end) - max(block_range[0], feature.start))


def count_paired_feature(paired: PairedFeatureRecord,
                         classifier: Optional[IndelClassifier] = None) -> PairedFeatureCounts:
    """
    Count how the bases of a feature pair are aligned by one alignment.

    Match blocks contribute min(query overlap, target overlap) aligned bases,
    so a base counts as aligned only when both its ends fall inside the pair.
    Insertions count against the query feature and deletions against the
    target feature, as indels or as not-aligned depending on the classifier.

    Raises:
        CoordinateMismatchError: The alignment's CIGAR does not match its spans.
    """
    classifier = classifier or IndelClassifier()
    aln = paired.alignment
    qf, tf = paired.query_feature, paired.target_feature
    counts = PairedFeatureCounts(
        feature_name=qf.name, query=aln.query_name,
        query_feature_start=qf.start, query_feature_end=qf.end, query_strand=aln.strand,
        target=aln.target_name, target_feature_start=tf.start, target_feature_end=tf.end,
    )

    for block in walk_record(aln):
        if block.kind is BlockKind.MATCH:
            counts.aligned_bp += min(_overlap(block.query_range, qf), _overlap(block.target_range, tf))
            continue
        is_indel = classifier.classify(block.length) is IndelClass.INDEL
        if block.kind is BlockKind.INSERTION:
            overlap = _overlap(block.query_range, qf)
            if is_indel:
                counts.indels_in_query_bp += overlap
            else:
                counts.not_aligned_in_query_bp += overlap
        else:
            overlap = _overlap(block.target_range, tf)
            if is_indel:
                counts.indels_in_target_bp += overlap
            else:
                counts.not_aligned_in_target_bp += overlap

    counts.ignored_in_query_bp = (qf.length - counts.aligned_bp - counts.indels_in_query_bp
                                  - counts.not_aligned_in_query_bp)
    counts.ignored_in_target_bp = (tf.length - counts.aligned_bp - counts.indels_in_target_bp
                                   - counts.not_aligned_in_target_bp)
    return counts


class PairedFeatureProcessor:
    """Runs paired-feature counting over a joined file, one output row per input row."""

    def __init__(self, max_indel_size: Optional[int] = None, show_progress: bool = False):
        self.classifier = IndelClassifier(max_indel_size)
        self.show_progress = show_progress
        self.diagnostics: List[RecordDiagnostic] = []
        self.rows_processed = 0

    def process_line(self, line_number: Optional[int], line: str) -> Optional[PairedFeatureCounts]:
        """Return the counts for one row, or None if the row was rejected."""
        paired = None
        try:
            paired = parse_joined_line(line, line_number)
            check_pair(paired)
            counts = count_paired_feature(paired, self.classifier)
        except AlignmentRecordError as e:
            label = paired.alignment.label() if paired is not None else None
            diagnostic = RecordDiagnostic(line_number, e.kind, str(e), label)
            logger.warning(f"Skipping row at line {line_number} ({e.kind}): {e}")
            self.diagnostics.append(diagnostic)
            return None
        self.rows_processed += 1
        return counts

    def iter_counts(self, lines: Iterable[Tuple[int, str]]) -> Iterator[PairedFeatureCounts]:
        for line_number, line in tqdm(lines, desc="Processing feature pairs", unit=" rows",
                                      disable=not self.show_progress):
            counts = self.process_line(line_number, line)
            if counts is not None:
                yield counts

    def iter_file(self, path: Union[str, Path]) -> Iterator[PairedFeatureCounts]:
        logger.info(f"Processing joined alignment/feature rows from {path}")
        yield from self.iter_counts(iter_data_lines(path))
        logger.info(f"Processed {self.rows_processed} rows, rejected {len(self.diagnostics)}")
