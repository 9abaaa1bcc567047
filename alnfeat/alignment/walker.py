"""
Coordinate walker for CIGAR-encoded alignments.

Converts a record's CIGAR operations into an ordered list of AlignmentBlock
objects, each carrying the query and/or target range it consumes. The walk
itself knows nothing about strands; reverse-strand records are walked in
reverse-complement query space and mapped back with reflect_query_ranges.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence

from alnfeat.core.cigar import MATCH_OPS, query_length, target_length
from alnfeat.core.errors import CoordinateMismatchError
from alnfeat.core.models import AlignmentRecord, CigarOperation, Range


class BlockKind(Enum):
    """Classification of a contiguous run of CIGAR-derived bases."""
    MATCH = "match"
    INSERTION = "insertion"
    DELETION = "deletion"


@dataclass(frozen=True)
class AlignmentBlock:
    """A run of one kind with the coordinate range(s) it consumes."""
    kind: BlockKind
    query_range: Optional[Range] = None
    target_range: Optional[Range] = None

    @property
    def length(self) -> int:
        rng = self.query_range if self.query_range is not None else self.target_range
        return rng[1] - rng[0]


def walk_operations(operations: Sequence[CigarOperation],
                    query_start: int,
                    target_start: int) -> List[AlignmentBlock]:
    """
    Walk CIGAR operations from the given start coordinates.

    Adjacent match operations (M, = and X) are emitted as one block. Each
    insertion or deletion operation is its own block. N is a reference skip
    and is walked as a deletion; S, H and P consume no aligned bases.

    Args:
        operations: Decoded CIGAR operations in file order
        query_start: Query coordinate of the first aligned base
        target_start: Target coordinate of the first aligned base

    Returns:
        Blocks in alignment order
    """
    blocks: List[AlignmentBlock] = []
    q_pos = query_start
    t_pos = target_start
    match_q = match_t = None

    def flush_match():
        if match_q is not None and q_pos > match_q:
            blocks.append(AlignmentBlock(BlockKind.MATCH, (match_q, q_pos), (match_t, t_pos)))

    for op in operations:
        if op.operation in MATCH_OPS:
            if match_q is None:
                match_q, match_t = q_pos, t_pos
            q_pos += op.length
            t_pos += op.length
            continue

        if op.operation in ('S', 'H', 'P'):
            # Clips sit outside the aligned span and do not break a match run
            continue

        flush_match()
        match_q = match_t = None

        if op.operation == 'I':
            blocks.append(AlignmentBlock(BlockKind.INSERTION, query_range=(q_pos, q_pos + op.length)))
            q_pos += op.length
        elif op.operation in ('D', 'N'):
            blocks.append(AlignmentBlock(BlockKind.DELETION, target_range=(t_pos, t_pos + op.length)))
            t_pos += op.length

    flush_match()
    return blocks


def reflect_query_ranges(blocks: Sequence[AlignmentBlock], query_len: int) -> List[AlignmentBlock]:
    """
    Map query ranges from reverse-complement space to forward coordinates.

    Every query range [a, b) becomes [query_len - b, query_len - a). Applied
    once to the whole block list; target ranges are untouched.
    """
    reflected = []
    for block in blocks:
        if block.query_range is None:
            reflected.append(block)
            continue
        start, end = block.query_range
        reflected.append(replace(block, query_range=(query_len - end, query_len - start)))
    return reflected


def validate_record(record: AlignmentRecord) -> None:
    """
    Check a record's spans against its CIGAR before walking it.

    Raises:
        CoordinateMismatchError: If the spans are inverted, fall outside the
            declared sequence lengths, or disagree with the CIGAR lengths.
    """
    if not 0 <= record.query_start <= record.query_end:
        raise CoordinateMismatchError(
            f"Invalid query span {record.query_start}-{record.query_end}")
    if not 0 <= record.target_start <= record.target_end:
        raise CoordinateMismatchError(
            f"Invalid target span {record.target_start}-{record.target_end}")
    if record.query_end > record.query_len:
        raise CoordinateMismatchError(
            f"Query end {record.query_end} exceeds query length {record.query_len}")
    if record.target_end > record.target_len:
        raise CoordinateMismatchError(
            f"Target end {record.target_end} exceeds target length {record.target_len}")

    consumed_query = query_length(record.operations)
    if consumed_query != record.query_span:
        raise CoordinateMismatchError(
            f"CIGAR consumes {consumed_query} query bases but the record spans "
            f"{record.query_span} ({record.query_start}-{record.query_end})")
    consumed_target = target_length(record.operations)
    if consumed_target != record.target_span:
        raise CoordinateMismatchError(
            f"CIGAR consumes {consumed_target} target bases but the record spans "
            f"{record.target_span} ({record.target_start}-{record.target_end})")


def walk_record(record: AlignmentRecord) -> List[AlignmentBlock]:
    """
    Produce the alignment blocks of a record in forward query coordinates.

    Args:
        record: Alignment record with decoded CIGAR operations

    Returns:
        Blocks in alignment order; query ranges partition
        [query_start, query_end) and target ranges partition
        [target_start, target_end).

    Raises:
        CoordinateMismatchError: If the record fails validate_record.
    """
    validate_record(record)

    if not record.is_reverse:
        return walk_operations(record.operations, record.query_start, record.target_start)

    # Reverse strand: the CIGAR runs 5'->3' along the reverse complement of the query
    rc_start = record.query_len - record.query_end
    blocks = walk_operations(record.operations, rc_start, record.target_start)
    return reflect_query_ranges(blocks, record.query_len)
