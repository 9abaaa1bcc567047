import pytest

from conftest import make_record

from alnfeat.analysis.accumulator import OverlapAccumulator
from alnfeat.analysis.indel_classifier import IndelClassifier
from alnfeat.analysis.stats import CoverageClass, FeatureStats, FeatureStatsTable, merge_spans, subtract_spans
from alnfeat.core.errors import CoordinateMismatchError
from alnfeat.core.models import Feature, Side
from alnfeat.features.index import FeatureIndex


def _index(side, *intervals):
    seq = "q1" if side is Side.QUERY else "t1"
    features = [Feature(name=f"f{i}", sequence_name=seq, start=s, end=e, side=side)
                for i, (s, e) in enumerate(intervals)]
    return FeatureIndex(features, side=side)


def test_deletion_larger_than_threshold_is_a_large_gap():
    target_index = _index(Side.TARGET, (4, 8))
    accumulator = OverlapAccumulator(target_index=target_index, classifier=IndelClassifier(1))
    accumulator.add_record(make_record("5M2D5M"))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert stats.aligned_bases == 2
    assert stats.indel_bases == 0
    assert stats.large_gap_bases == 2
    assert stats.uncovered_bases == 0


def test_deletion_within_threshold_is_an_indel():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (4, 8)))
    accumulator.add_record(make_record("5M2D5M"))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert (stats.aligned_bases, stats.indel_bases, stats.large_gap_bases) == (2, 2, 0)


def test_indel_classified_by_whole_block_length():
    # Only 1 base of the 4-base deletion lands in the feature, still a large gap
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (8, 20)),
                                     classifier=IndelClassifier(3))
    accumulator.add_record(make_record("5M4D5M"))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert stats.large_gap_bases == 1
    assert stats.indel_bases == 0


def test_query_and_target_features_both_counted():
    accumulator = OverlapAccumulator(
        query_index=_index(Side.QUERY, (3, 7)),
        target_index=_index(Side.TARGET, (0, 3)),
    )
    accumulator.add_record(make_record("5M2I5M"))

    query_stats = accumulator.table.get(Side.QUERY, 0)
    assert query_stats.aligned_bases == 2
    assert query_stats.indel_bases == 2
    target_stats = accumulator.table.get(Side.TARGET, 0)
    assert target_stats.aligned_bases == 3
    assert target_stats.indel_bases == 0


def test_insertion_never_touches_target_features():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (0, 20)))
    accumulator.add_record(make_record("5M3I5M", target_start=2))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert stats.aligned_bases == 10
    assert stats.indel_bases == 0
    assert stats.uncovered_bases == 10


def test_reverse_strand_query_feature():
    # Query [2, 12) on '-': the first 4 CIGAR bases land on query [8, 12)
    accumulator = OverlapAccumulator(query_index=_index(Side.QUERY, (8, 12)))
    accumulator.add_record(make_record("4M2I4M", query_start=2, query_end=12,
                                       strand='-', query_len=20))
    stats = accumulator.table.get(Side.QUERY, 0)
    assert stats.aligned_bases == 4
    assert stats.indel_bases == 0


def test_unknown_sequence_counts_nothing():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (0, 10)))
    record = make_record("10M", target_name="chrUn")
    accumulator.add_record(record)
    assert len(accumulator.table) == 0
    assert not accumulator.touches_features(record)


def test_mismatched_record_leaves_table_unchanged():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (0, 10)))
    with pytest.raises(CoordinateMismatchError):
        accumulator.add_record(make_record("5M2D5M", target_end=10))
    assert len(accumulator.table) == 0


def _assert_conserved(stats):
    total = stats.aligned_bases + stats.indel_bases + stats.large_gap_bases
    assert total <= stats.feature_length
    assert total + stats.uncovered_bases == stats.feature_length


def test_overlapping_records_count_each_base_once():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (0, 10)))
    accumulator.add_record(make_record("6M", target_start=0))
    accumulator.add_record(make_record("6M", target_start=2))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert stats.aligned_bases == 8
    assert stats.uncovered_bases == 2
    _assert_conserved(stats)


def test_identical_records_do_not_exceed_feature_length():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (0, 10)))
    accumulator.add_record(make_record("10M"))
    accumulator.add_record(make_record("10M"))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert stats.aligned_bases == 10
    assert stats.uncovered_bases == 0
    _assert_conserved(stats)


def test_alignment_in_another_record_outranks_a_gap():
    accumulator = OverlapAccumulator(target_index=_index(Side.TARGET, (4, 8)),
                                     classifier=IndelClassifier(1))
    accumulator.add_record(make_record("5M2D5M"))
    accumulator.add_record(make_record("12M"))

    stats = accumulator.table.get(Side.TARGET, 0)
    assert (stats.aligned_bases, stats.indel_bases, stats.large_gap_bases) == (4, 0, 0)
    _assert_conserved(stats)


def test_class_precedence():
    stats = FeatureStats(feature_length=10)
    stats.add(CoverageClass.LARGE_GAP, 0, 6)
    stats.add(CoverageClass.INDEL, 3, 8)
    stats.add(CoverageClass.ALIGNED, 5, 7)

    assert stats.aligned_bases == 2
    assert stats.indel_bases == 3
    assert stats.large_gap_bases == 3
    assert stats.uncovered_bases == 2
    _assert_conserved(stats)


def test_merge_spans():
    assert merge_spans([(5, 8), (0, 3), (2, 4), (8, 9)]) == [(0, 4), (5, 9)]
    assert merge_spans([]) == []


def test_subtract_spans():
    assert subtract_spans([(0, 10)], [(2, 4), (6, 7)]) == [(0, 2), (4, 6), (7, 10)]
    assert subtract_spans([(0, 3), (5, 9)], [(2, 6)]) == [(0, 2), (6, 9)]
    assert subtract_spans([(0, 3)], []) == [(0, 3)]
    assert subtract_spans([(1, 3)], [(0, 5)]) == []


def test_feature_stats_ignores_empty_spans():
    stats = FeatureStats(feature_length=10)
    stats.add(CoverageClass.ALIGNED, 4, 4)
    assert stats.covered_bases == 0
    assert stats.covered_spans == []


def test_table_merge_matches_single_table():
    whole = FeatureStatsTable()
    left, right = FeatureStatsTable(), FeatureStatsTable()
    adds = [
        (Side.TARGET, 0, 10, CoverageClass.ALIGNED, 0, 4),
        (Side.TARGET, 0, 10, CoverageClass.INDEL, 4, 6),
        (Side.QUERY, 1, 5, CoverageClass.LARGE_GAP, 0, 5),
        (Side.TARGET, 0, 10, CoverageClass.ALIGNED, 2, 8),
    ]
    for i, args in enumerate(adds):
        whole.add(*args)
        (left if i % 2 else right).add(*args)

    merged = left.merge(right)
    assert len(merged) == len(whole)
    for key, stats in whole.items():
        other = merged.get(*key)
        assert other.aligned_bases == stats.aligned_bases
        assert other.indel_bases == stats.indel_bases
        assert other.large_gap_bases == stats.large_gap_bases
        assert other.uncovered_bases == stats.uncovered_bases
        _assert_conserved(other)
    assert merged.get(Side.TARGET, 0).aligned_bases == 8
    assert merged.get(Side.TARGET, 0).indel_bases == 0
    assert (Side.QUERY, 1) in merged


def test_touching_spans_compact_to_one():
    stats = FeatureStats(feature_length=1000)
    for i in range(FeatureStats.COMPACT_THRESHOLD + 1):
        stats.add(CoverageClass.ALIGNED, i, i + 1)
    assert stats.spans[CoverageClass.ALIGNED] == [(0, FeatureStats.COMPACT_THRESHOLD + 1)]
    assert stats.aligned_bases == FeatureStats.COMPACT_THRESHOLD + 1


def test_disjoint_spans_compact_only_after_doubling():
    threshold = FeatureStats.COMPACT_THRESHOLD
    stats = FeatureStats(feature_length=10 * threshold)
    for i in range(threshold + 1):
        stats.add(CoverageClass.ALIGNED, 2 * i, 2 * i + 1)
    spans = stats.spans[CoverageClass.ALIGNED]
    assert len(spans) == threshold + 1
    assert stats.compacted_sizes[CoverageClass.ALIGNED] == threshold + 1

    # Further adds are appended until the list doubles again
    for i in range(threshold + 1, 2 * threshold + 2):
        stats.add(CoverageClass.ALIGNED, 2 * i, 2 * i + 1)
    assert stats.compacted_sizes[CoverageClass.ALIGNED] == threshold + 1
    stats.add(CoverageClass.ALIGNED, 0, 1)
    assert stats.compacted_sizes[CoverageClass.ALIGNED] == 2 * threshold + 2
    assert stats.aligned_bases == 2 * threshold + 2
