"""
Indel classification.

Decides whether an insertion or deletion block counts as a regular indel or,
when longer than the configured maximum, as a large gap.
"""

from enum import Enum
from typing import Optional


class IndelClass(Enum):
    """How an indel block's bases are counted."""
    INDEL = "indel"
    LARGE_GAP = "large_gap"


def classify_indel(length: int, max_indel_size: Optional[int]) -> IndelClass:
    """
    Classify an indel block by its length.

    Args:
        length: Length of the whole insertion or deletion block
        max_indel_size: Largest length still counted as an indel; None means
            unlimited

    Returns:
        IndelClass.INDEL when max_indel_size is None or length <= max_indel_size,
        IndelClass.LARGE_GAP otherwise.
    """
    if max_indel_size is None or length <= max_indel_size:
        return IndelClass.INDEL
    return IndelClass.LARGE_GAP


class IndelClassifier:
    """
    Threshold policy for indel blocks.

    A block is always classified as a whole, using the length of the CIGAR
    operation it came from, never the part of it overlapping a feature.
    """

    def __init__(self, max_indel_size: Optional[int] = None):
        """
        Initialize the IndelClassifier.

        Args:
            max_indel_size: Largest indel length counted as an indel; None for
                no limit.

        Raises:
            ValueError: If max_indel_size is negative.
        """
        if max_indel_size is not None and max_indel_size < 0:
            raise ValueError(f"max_indel_size must be non-negative, got {max_indel_size}")
        self.max_indel_size = max_indel_size

    @property
    def unlimited(self) -> bool:
        return self.max_indel_size is None

    def classify(self, length: int) -> IndelClass:
        return classify_indel(length, self.max_indel_size)

    def __repr__(self) -> str:
        return f"IndelClassifier(max_indel_size={self.max_indel_size})"
