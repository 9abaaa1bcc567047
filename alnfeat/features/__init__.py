"""
Feature loading and per-sequence overlap index.
"""

from alnfeat.features.index import FeatureIndex, FeatureHit
from alnfeat.features.readers import load_features, read_bed, read_gff3

__all__ = ['FeatureIndex', 'FeatureHit', 'load_features', 'read_bed', 'read_gff3']
