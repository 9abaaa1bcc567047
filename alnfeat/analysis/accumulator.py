"""
Overlap accumulation of alignment blocks against feature indexes.

Every block is intersected with the features of the record's query sequence
(query range) and target sequence (target range). Each hit adds only its own
intersection length to the feature's counter bucket, chosen by block kind and,
for indels, by the IndelClassifier.
"""

import logging
from typing import Iterable, Optional

from alnfeat.alignment.walker import AlignmentBlock, BlockKind, walk_record
from alnfeat.analysis.indel_classifier import IndelClass, IndelClassifier
from alnfeat.analysis.stats import CoverageClass, FeatureStatsTable
from alnfeat.core.models import AlignmentRecord, Side
from alnfeat.features.index import FeatureIndex

logger = logging.getLogger(__name__)


class OverlapAccumulator:
    """
    Accumulates per-feature coverage for a stream of alignment records.

    The indexes are only read. The stats table is owned by the accumulator
    until it is handed to the report builder.
    """

    def __init__(self,
                 query_index: Optional[FeatureIndex] = None,
                 target_index: Optional[FeatureIndex] = None,
                 classifier: Optional[IndelClassifier] = None,
                 table: Optional[FeatureStatsTable] = None):
        """
        Initialize the accumulator.

        Args:
            query_index: Features anchored on query sequences (may be None)
            target_index: Features anchored on target sequences (may be None)
            classifier: Indel policy; defaults to an unlimited threshold
            table: Existing table to add to; a new one is created otherwise
        """
        self.query_index = query_index
        self.target_index = target_index
        self.classifier = classifier or IndelClassifier()
        self.table = table if table is not None else FeatureStatsTable()

    def _coverage_class(self, block: AlignmentBlock) -> CoverageClass:
        if block.kind is BlockKind.MATCH:
            return CoverageClass.ALIGNED
        if self.classifier.classify(block.length) is IndelClass.INDEL:
            return CoverageClass.INDEL
        return CoverageClass.LARGE_GAP

    def add_blocks(self, record: AlignmentRecord, blocks: Iterable[AlignmentBlock]) -> None:
        """Add the overlaps of already-walked blocks to the table."""
        for block in blocks:
            coverage_class = self._coverage_class(block)
            if block.query_range is not None and self.query_index is not None:
                for hit in self.query_index.query(record.query_name, *block.query_range):
                    self.table.add(Side.QUERY, hit.feature_id, hit.feature.length,
                                   coverage_class, hit.overlap_start, hit.overlap_end)
            if block.target_range is not None and self.target_index is not None:
                for hit in self.target_index.query(record.target_name, *block.target_range):
                    self.table.add(Side.TARGET, hit.feature_id, hit.feature.length,
                                   coverage_class, hit.overlap_start, hit.overlap_end)

    def add_record(self, record: AlignmentRecord) -> None:
        """
        Walk a record and accumulate its overlaps.

        Raises:
            CoordinateMismatchError: If the record's CIGAR does not match its
                spans. Nothing is added to the table in that case.
        """
        blocks = walk_record(record)
        logger.debug(f"{record.label()}: {len(blocks)} blocks")
        self.add_blocks(record, blocks)

    def touches_features(self, record: AlignmentRecord) -> bool:
        """Whether either side of the record has indexed features at all."""
        return ((self.query_index is not None and self.query_index.has_sequence(record.query_name)) or
                (self.target_index is not None and self.target_index.has_sequence(record.target_name)))
