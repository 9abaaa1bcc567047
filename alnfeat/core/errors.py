"""
Error types raised while reading and processing alignment records.

Per-record errors derive from AlignmentRecordError and are collected by the
processing loop instead of aborting the run. FeatureFileError is raised for
unusable feature input and is fatal at the I/O boundary.
"""


class AlignmentRecordError(Exception):
    """Base class for errors that reject a single alignment record."""
    kind = "record_error"


class MalformedRecordError(AlignmentRecordError):
    """A record line could not be split into the expected fields."""
    kind = "malformed_record"


class MalformedCigarError(AlignmentRecordError):
    """A CIGAR token failed to parse."""
    kind = "malformed_cigar"


class CoordinateMismatchError(AlignmentRecordError):
    """CIGAR lengths disagree with the record's declared spans."""
    kind = "coordinate_mismatch"


class FeaturePairError(AlignmentRecordError):
    """A joined alignment/feature row is internally inconsistent."""
    kind = "feature_pair_mismatch"


class FeatureFileError(Exception):
    """Custom exception for unreadable or invalid feature files."""
    pass
