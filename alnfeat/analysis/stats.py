"""
Per-feature coverage counters.

FeatureStats keeps, for one feature in one coordinate system, the spans
covered by each coverage class. Counts are derived from the span unions, so a
base covered by several records is counted once, in the first class that
covers it in the order aligned, indel, large gap. Unions do not depend on the
order spans arrive in, so partial tables built by independent workers can be
merged in any order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from alnfeat.core.models import Range, Side


class CoverageClass(Enum):
    """Counter bucket a covered base is added to, highest precedence first."""
    ALIGNED = "aligned"
    INDEL = "indel"
    LARGE_GAP = "large_gap"


def merge_spans(spans: List[Range]) -> List[Range]:
    """Union of half-open spans, sorted and non-overlapping."""
    merged: List[Range] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def subtract_spans(spans: List[Range], removed: List[Range]) -> List[Range]:
    """
    Parts of spans not covered by removed.

    Both arguments must already be merged (sorted, non-overlapping).
    """
    result: List[Range] = []
    j = 0
    for start, end in spans:
        while j < len(removed) and removed[j][1] <= start:
            j += 1
        cursor = start
        k = j
        while k < len(removed) and removed[k][0] < end:
            removed_start, removed_end = removed[k]
            if removed_start > cursor:
                result.append((cursor, removed_start))
            cursor = max(cursor, removed_end)
            k += 1
        if cursor < end:
            result.append((cursor, end))
    return result


def span_length(spans: List[Range]) -> int:
    return sum(end - start for start, end in spans)


def _empty_spans() -> Dict[CoverageClass, List[Range]]:
    return {coverage_class: [] for coverage_class in CoverageClass}


@dataclass
class FeatureStats:
    """
    Coverage of one feature in one coordinate system.

    aligned_bases + indel_bases + large_gap_bases + uncovered_bases always
    equals feature_length.
    """
    feature_length: int
    spans: Dict[CoverageClass, List[Range]] = field(default_factory=_empty_spans)
    # Span list sizes right after their last compaction
    compacted_sizes: Dict[CoverageClass, int] = field(default_factory=dict, repr=False)

    # Span lists are never compacted below this size
    COMPACT_THRESHOLD = 256

    def add(self, coverage_class: CoverageClass, start: int, end: int) -> None:
        if end <= start:
            return
        spans = self.spans[coverage_class]
        spans.append((start, end))
        # Compact once the list has doubled, so disjoint spans are not re-sorted on every add
        limit = max(self.COMPACT_THRESHOLD, 2 * self.compacted_sizes.get(coverage_class, 0))
        if len(spans) > limit:
            self._compact(coverage_class)

    def _compact(self, coverage_class: CoverageClass) -> None:
        merged = merge_spans(self.spans[coverage_class])
        self.spans[coverage_class] = merged
        self.compacted_sizes[coverage_class] = len(merged)

    def compact(self) -> None:
        """Collapse every class's spans to their union."""
        for coverage_class in CoverageClass:
            self._compact(coverage_class)

    def merge(self, other: 'FeatureStats') -> 'FeatureStats':
        for coverage_class, spans in other.spans.items():
            self.spans[coverage_class].extend(spans)
        self.compact()
        return self

    def copy(self) -> 'FeatureStats':
        return FeatureStats(
            feature_length=self.feature_length,
            spans={coverage_class: list(spans) for coverage_class, spans in self.spans.items()},
            compacted_sizes=dict(self.compacted_sizes),
        )

    def class_spans(self) -> Dict[CoverageClass, List[Range]]:
        """Disjoint spans per class after applying precedence."""
        aligned = merge_spans(self.spans[CoverageClass.ALIGNED])
        indel_all = merge_spans(self.spans[CoverageClass.INDEL])
        indel = subtract_spans(indel_all, aligned)
        large_gap = subtract_spans(
            subtract_spans(merge_spans(self.spans[CoverageClass.LARGE_GAP]), aligned), indel_all)
        return {
            CoverageClass.ALIGNED: aligned,
            CoverageClass.INDEL: indel,
            CoverageClass.LARGE_GAP: large_gap,
        }

    @property
    def aligned_bases(self) -> int:
        return span_length(self.class_spans()[CoverageClass.ALIGNED])

    @property
    def indel_bases(self) -> int:
        return span_length(self.class_spans()[CoverageClass.INDEL])

    @property
    def large_gap_bases(self) -> int:
        return span_length(self.class_spans()[CoverageClass.LARGE_GAP])

    @property
    def covered_spans(self) -> List[Range]:
        return merge_spans([span for spans in self.spans.values() for span in spans])

    @property
    def covered_bases(self) -> int:
        return span_length(self.covered_spans)

    @property
    def uncovered_bases(self) -> int:
        return max(0, self.feature_length - self.covered_bases)


StatsKey = Tuple[Side, int]


class FeatureStatsTable:
    """Running per-feature coverage, keyed by (side, feature id)."""

    def __init__(self):
        self._stats: Dict[StatsKey, FeatureStats] = {}

    def add(self, side: Side, feature_id: int, feature_length: int,
            coverage_class: CoverageClass, start: int, end: int) -> None:
        key = (side, feature_id)
        stats = self._stats.get(key)
        if stats is None:
            stats = self._stats[key] = FeatureStats(feature_length=feature_length)
        stats.add(coverage_class, start, end)

    def get(self, side: Side, feature_id: int) -> Optional[FeatureStats]:
        """Coverage for a feature, or None if nothing touched it."""
        return self._stats.get((side, feature_id))

    def merge(self, other: 'FeatureStatsTable') -> 'FeatureStatsTable':
        for key, stats in other._stats.items():
            if key in self._stats:
                self._stats[key].merge(stats)
            else:
                self._stats[key] = stats.copy()
        return self

    def items(self) -> Iterator[Tuple[StatsKey, FeatureStats]]:
        return iter(self._stats.items())

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, key: StatsKey) -> bool:
        return key in self._stats
