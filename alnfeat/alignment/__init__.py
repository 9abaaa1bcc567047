"""
Alignment walking: CIGAR operations to coordinate blocks.
"""

__all__ = ['AlignmentBlock', 'BlockKind', 'walk_record', 'walk_operations', 'reflect_query_ranges']

from alnfeat.alignment.walker import AlignmentBlock, BlockKind, walk_record, walk_operations, reflect_query_ranges
