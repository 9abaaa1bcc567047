"""
Per-sequence feature index with overlap queries.

Features are grouped by sequence name and sorted by start. An overlap query
binary-searches the start array, backing off by the longest feature on that
sequence so that long features starting well before the query are found,
then scans forward until feature starts pass the query end.
"""

import logging
from bisect import bisect_left
from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional

from alnfeat.core.models import Feature, Side

logger = logging.getLogger(__name__)


class FeatureHit(NamedTuple):
    """A feature intersecting a query range, with the intersection."""
    feature_id: int
    feature: Feature
    overlap_start: int
    overlap_end: int

    @property
    def overlap_length(self) -> int:
        return self.overlap_end - self.overlap_start


class _SequenceBin:
    __slots__ = ("starts", "entries", "max_length")

    def __init__(self, entries: List[tuple]):
        # entries are (feature_id, feature), already sorted by start
        self.entries = entries
        self.starts = [feature.start for _, feature in entries]
        self.max_length = max((feature.length for _, feature in entries), default=0)


class FeatureIndex:
    """
    Read-only index of features for one coordinate side.

    Feature ids are positions in the input list, so two identical features
    stay distinct and are reported separately.
    """

    def __init__(self, features: List[Feature], side: Optional[Side] = None):
        self.features = list(features)
        self.side = side
        grouped: Dict[str, List[tuple]] = defaultdict(list)
        for feature_id, feature in enumerate(self.features):
            grouped[feature.sequence_name].append((feature_id, feature))
        # Stable sort keeps input order for features sharing a start
        self._bins = {
            name: _SequenceBin(sorted(entries, key=lambda entry: entry[1].start))
            for name, entries in grouped.items()
        }
        logger.debug(f"Indexed {len(self.features)} {self.side.value if self.side else ''} features "
                     f"on {len(self._bins)} sequences")

    @classmethod
    def build(cls, features: Iterable[Feature], side: Optional[Side] = None) -> 'FeatureIndex':
        return cls(list(features), side=side)

    def __len__(self) -> int:
        return len(self.features)

    @property
    def sequence_names(self) -> List[str]:
        return list(self._bins)

    def has_sequence(self, sequence_name: str) -> bool:
        return sequence_name in self._bins

    def query(self, sequence_name: str, start: int, end: int) -> List[FeatureHit]:
        """
        Find every feature on a sequence that intersects [start, end).

        Args:
            sequence_name: Sequence to search
            start: Range start (0-based, inclusive)
            end: Range end (exclusive)

        Returns:
            FeatureHit objects ordered by feature start. Features that only
            touch the range boundary are not reported.
        """
        seq_bin = self._bins.get(sequence_name)
        if seq_bin is None or start >= end:
            return []

        hits = []
        first = bisect_left(seq_bin.starts, start - seq_bin.max_length)
        for i in range(first, len(seq_bin.entries)):
            feature_id, feature = seq_bin.entries[i]
            if feature.start >= end:
                break
            overlap_start = max(start, feature.start)
            overlap_end = min(end, feature.end)
            if overlap_end > overlap_start:
                hits.append(FeatureHit(feature_id, feature, overlap_start, overlap_end))
        return hits
