"""
Report rows from finalised feature counters.

One row is produced per (feature, side). Features that no alignment touched
still get a row with zero counters and their full length uncovered.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from alnfeat.analysis.stats import FeatureStatsTable
from alnfeat.core.models import Feature, Side
from alnfeat.features.index import FeatureIndex

logger = logging.getLogger(__name__)


@dataclass
class FeatureReportRow:
    """Counters for one feature in one coordinate system."""
    feature_name: str
    side: str
    sequence_name: str
    start: int
    end: int
    strand: str
    feature_length: int
    aligned_bp: int = 0
    indel_bp: int = 0
    large_gap_bp: int = 0
    uncovered_bp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReportBuilder:
    """
    Builds report rows from a FeatureStatsTable.

    Large-gap bases are kept in their own column; they are neither merged
    into the indel count nor into the uncovered count.
    """

    def build(self, table: FeatureStatsTable,
              query_index: Optional[FeatureIndex] = None,
              target_index: Optional[FeatureIndex] = None) -> List[FeatureReportRow]:
        """
        Create rows for every indexed feature, query side first.

        Args:
            table: Finalised counters
            query_index: Index the query-side feature ids refer to
            target_index: Index the target-side feature ids refer to

        Returns:
            Rows in feature input order within each side
        """
        rows = []
        for side, index in ((Side.QUERY, query_index), (Side.TARGET, target_index)):
            if index is None:
                continue
            untouched = 0
            for feature_id, feature in enumerate(index.features):
                row = self._row(feature, side)
                stats = table.get(side, feature_id)
                if stats is None:
                    untouched += 1
                    row.uncovered_bp = feature.length
                else:
                    row.aligned_bp = stats.aligned_bases
                    row.indel_bp = stats.indel_bases
                    row.large_gap_bp = stats.large_gap_bases
                    row.uncovered_bp = stats.uncovered_bases
                rows.append(row)
            if untouched:
                logger.info(f"{untouched} of {len(index)} {side.value} features were not covered by any alignment")
        return rows

    @staticmethod
    def _row(feature: Feature, side: Side) -> FeatureReportRow:
        return FeatureReportRow(
            feature_name=feature.name,
            side=side.value,
            sequence_name=feature.sequence_name,
            start=feature.start,
            end=feature.end,
            strand=feature.strand,
            feature_length=feature.length,
        )
