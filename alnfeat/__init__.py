"""
alnfeat: per-feature alignment statistics from CIGAR-encoded alignments.
"""

__version__ = "0.1.0"

from .core.cigar import parse_cigar
from .alignment.walker import walk_record, AlignmentBlock, BlockKind
from .features.index import FeatureIndex
from .analysis.indel_classifier import IndelClassifier, IndelClass
from .analysis.accumulator import OverlapAccumulator
from .pipeline import FeatureCoverageCounter

__all__ = [
    "parse_cigar",
    "walk_record",
    "AlignmentBlock",
    "BlockKind",
    "FeatureIndex",
    "IndelClassifier",
    "IndelClass",
    "OverlapAccumulator",
    "FeatureCoverageCounter",
]
