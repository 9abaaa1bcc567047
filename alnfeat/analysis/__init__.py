"""
Analysis module: indel classification, overlap accumulation and
paired-feature counting.
"""

from alnfeat.analysis.indel_classifier import IndelClassifier, IndelClass, classify_indel
from alnfeat.analysis.stats import FeatureStats, FeatureStatsTable, CoverageClass
from alnfeat.analysis.accumulator import OverlapAccumulator

__all__ = [
    'IndelClassifier',
    'IndelClass',
    'classify_indel',
    'FeatureStats',
    'FeatureStatsTable',
    'CoverageClass',
    'OverlapAccumulator',
]
