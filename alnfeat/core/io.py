"""
Input handling: transparent gzip opening and PAF record parsing.
"""

import gzip
import logging
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple, Union

from alnfeat.core.cigar import parse_cigar
from alnfeat.core.errors import MalformedRecordError
from alnfeat.core.models import AlignmentRecord

logger = logging.getLogger(__name__)

PAF_MIN_COLUMNS = 12
CIGAR_TAG = "cg:Z:"


def open_text(path: Union[str, Path]) -> IO[str]:
    """Open a plain or gzip-compressed text file for reading."""
    path = str(path)
    if path.endswith('.gz'):
        return gzip.open(path, 'rt')
    return open(path, 'r')


def iter_data_lines(path: Union[str, Path]) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, line) for non-empty, non-comment lines."""
    logger.debug(f"Reading records from {path}")
    with open_text(path) as handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.rstrip('\r\n')
            if not line or line.startswith('#'):
                continue
            yield line_number, line


def find_cigar_tag(tags: List[str]) -> Optional[str]:
    for tag in tags:
        if tag.startswith(CIGAR_TAG):
            return tag[len(CIGAR_TAG):]
    return None


def _parse_int(value: str, field_name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise MalformedRecordError(f"Invalid {field_name}: {value!r}")


def parse_paf_fields(parts: List[str], line_number: Optional[int] = None,
                     tags: Optional[List[str]] = None) -> AlignmentRecord:
    """
    Build an AlignmentRecord from split PAF columns.

    Args:
        parts: Tab-separated columns; the first 12 are the standard PAF fields
        line_number: Source line, kept on the record for diagnostics
        tags: Columns to search for the cg:Z: tag (defaults to parts[12:])

    Raises:
        MalformedRecordError: Missing columns, bad integers or strand, or no CIGAR tag.
        MalformedCigarError: The CIGAR tag does not parse.
    """
    if len(parts) < PAF_MIN_COLUMNS:
        raise MalformedRecordError(
            f"Expected at least {PAF_MIN_COLUMNS} columns, found {len(parts)}")

    strand = parts[4]
    if strand not in ('+', '-'):
        raise MalformedRecordError(f"Invalid strand: {strand!r}")

    cigar = find_cigar_tag(parts[PAF_MIN_COLUMNS:] if tags is None else tags)
    if cigar is None:
        raise MalformedRecordError("Missing cg:Z: CIGAR tag")

    return AlignmentRecord(
        query_name=parts[0],
        query_len=_parse_int(parts[1], "query length"),
        query_start=_parse_int(parts[2], "query start"),
        query_end=_parse_int(parts[3], "query end"),
        strand=strand,
        target_name=parts[5],
        target_len=_parse_int(parts[6], "target length"),
        target_start=_parse_int(parts[7], "target start"),
        target_end=_parse_int(parts[8], "target end"),
        operations=parse_cigar(cigar),
        line_number=line_number,
    )


def parse_paf_line(line: str, line_number: Optional[int] = None) -> AlignmentRecord:
    """Parse one PAF line carrying a cg:Z: CIGAR tag."""
    return parse_paf_fields(line.rstrip('\r\n').split('\t'), line_number)
