"""
Feature file readers.

BED files are read directly (0-based half-open). GFF3 lines are parsed with
gffutils and converted from 1-based closed to 0-based half-open coordinates.
Both accept gzip-compressed input.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from gffutils.feature import feature_from_line

from alnfeat.core.errors import FeatureFileError
from alnfeat.core.io import iter_data_lines
from alnfeat.core.models import Feature, Side

logger = logging.getLogger(__name__)

FEATURE_FORMATS = ("bed", "gff3")


def _default_name(sequence_name: str, start: int, end: int) -> str:
    return f"{sequence_name}:{start}-{end}"


def read_bed(path: Union[str, Path], side: Side) -> List[Feature]:
    """
    Read features from a BED file.

    Columns used: chrom, start, end, and optionally name (4th) and strand
    (6th). Track and browser lines are skipped.

    Raises:
        FeatureFileError: On a line with fewer than 3 columns, non-integer
            coordinates, or an empty interval.
    """
    features = []
    for line_number, line in iter_data_lines(path):
        if line.startswith(('track', 'browser')):
            continue
        parts = line.split('\t')
        if len(parts) < 3:
            raise FeatureFileError(f"{path}:{line_number}: expected at least 3 BED columns")
        try:
            start, end = int(parts[1]), int(parts[2])
        except ValueError:
            raise FeatureFileError(f"{path}:{line_number}: invalid coordinates {parts[1]!r}-{parts[2]!r}")
        name = parts[3] if len(parts) > 3 and parts[3] not in ('', '.') else _default_name(parts[0], start, end)
        strand = parts[5] if len(parts) > 5 and parts[5] in ('+', '-') else '.'
        try:
            features.append(Feature(name=name, sequence_name=parts[0], start=start,
                                    end=end, strand=strand, side=side))
        except ValueError as e:
            raise FeatureFileError(f"{path}:{line_number}: {e}")
    return features


def read_gff3(path: Union[str, Path], side: Side,
              feature_types: Optional[Iterable[str]] = None) -> List[Feature]:
    """
    Read features from a GFF3 file.

    Args:
        path: GFF3 file, optionally gzipped
        side: Coordinate system the features belong to
        feature_types: Only keep these feature types (e.g. gene, exon);
            None keeps everything.

    Returns:
        Features named from the Name attribute, then ID, then their location.
    """
    wanted = set(feature_types) if feature_types else None
    features = []
    for line_number, line in iter_data_lines(path):
        if line.startswith(">"):
            # Embedded ##FASTA section
            break
        if len(line.split("\t")) < 9:
            raise FeatureFileError(f"{path}:{line_number}: expected 9 GFF3 columns")
        try:
            gff_feature = feature_from_line(line)
        except Exception as e:
            raise FeatureFileError(f"{path}:{line_number}: cannot parse GFF3 line: {e}")
        if wanted is not None and gff_feature.featuretype not in wanted:
            continue

        start, end = gff_feature.start - 1, gff_feature.end
        attributes = gff_feature.attributes
        names = attributes.get('Name', []) or attributes.get('ID', [])
        name = names[0] if names else _default_name(gff_feature.seqid, start, end)
        strand = gff_feature.strand if gff_feature.strand in ('+', '-') else '.'
        try:
            features.append(Feature(name=name, sequence_name=gff_feature.seqid, start=start,
                                    end=end, strand=strand, side=side))
        except ValueError as e:
            raise FeatureFileError(f"{path}:{line_number}: {e}")
    return features


def load_features(path: Union[str, Path], side: Side, feature_format: str = "bed",
                  feature_types: Optional[Iterable[str]] = None) -> List[Feature]:
    """
    Load a feature file in the given format.

    Raises:
        FeatureFileError: For unknown formats, missing files or bad content.
    """
    if feature_format not in FEATURE_FORMATS:
        raise FeatureFileError(f"Unsupported feature format: {feature_format}")
    if not Path(path).exists():
        raise FeatureFileError(f"Feature file not found: {path}")

    logger.info(f"Loading {side.value} features from {path} ({feature_format})")
    if feature_format == "bed":
        features = read_bed(path, side)
    else:
        features = read_gff3(path, side, feature_types=feature_types)

    if not features:
        logger.warning(f"No features loaded from {path}")
    else:
        sequences = {feature.sequence_name for feature in features}
        logger.info(f"Loaded {len(features)} {side.value} features on {len(sequences)} sequences")
    return features
