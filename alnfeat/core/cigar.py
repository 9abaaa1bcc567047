"""
CIGAR string decoding.

Turns strings such as "10M2I5M3D" into ordered CigarOperation lists and
answers which operations consume query or target bases.
"""

import re
from typing import List, Iterable

from alnfeat.core.errors import MalformedCigarError
from alnfeat.core.models import CigarOperation

CIGAR_OPS = "MIDNSHP=X"
MATCH_OPS = frozenset("M=X")
QUERY_CONSUMERS = frozenset("MI=X")
TARGET_CONSUMERS = frozenset("MDN=X")

_TOKEN_PATTERN = re.compile(r'(\d+)([A-Za-z=])')


def parse_cigar(cigar_string: str) -> List[CigarOperation]:
    """
    Parse a CIGAR string into a list of CigarOperation objects.

    Unlike a plain findall, every character of the string must belong to a
    token, so stray characters are reported instead of skipped.

    Args:
        cigar_string: CIGAR string (e.g., "10M2I5M")

    Returns:
        List of CigarOperation objects

    Raises:
        MalformedCigarError: If the string is empty, contains a token that is
            not <length><op>, an unknown op or a zero length.
    """
    if not cigar_string:
        raise MalformedCigarError("Empty CIGAR string")

    operations = []
    position = 0
    for match in _TOKEN_PATTERN.finditer(cigar_string):
        if match.start() != position:
            raise MalformedCigarError(
                f"Unparseable CIGAR token {cigar_string[position:match.start()]!r} "
                f"at offset {position} in {cigar_string!r}"
            )
        length_str, op = match.groups()
        if op not in CIGAR_OPS:
            raise MalformedCigarError(f"Unknown CIGAR operation {op!r} in {cigar_string!r}")
        length = int(length_str)
        if length == 0:
            raise MalformedCigarError(f"Zero-length CIGAR operation {length_str}{op} in {cigar_string!r}")
        operations.append(CigarOperation(operation=op, length=length))
        position = match.end()

    if position != len(cigar_string):
        raise MalformedCigarError(
            f"Unparseable CIGAR token {cigar_string[position:]!r} "
            f"at offset {position} in {cigar_string!r}"
        )
    return operations


def query_length(operations: Iterable[CigarOperation]) -> int:
    return sum(op.length for op in operations if op.operation in QUERY_CONSUMERS)


def target_length(operations: Iterable[CigarOperation]) -> int:
    return sum(op.length for op in operations if op.operation in TARGET_CONSUMERS)


def format_cigar(operations: Iterable[CigarOperation]) -> str:
    return "".join(str(op) for op in operations)
