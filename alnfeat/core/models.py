from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple


class Side(Enum):
    """Coordinate system a feature is anchored in."""
    QUERY = "query"
    TARGET = "target"


@dataclass(frozen=True)
class CigarOperation:
    """Represents a single CIGAR operation."""
    operation: str  # M, I, D, N, S, H, P, =, X
    length: int

    def __str__(self) -> str:
        return f"{self.length}{self.operation}"


@dataclass
class AlignmentRecord:
    """One query span aligned to one target span."""
    query_name: str
    query_len: int
    query_start: int
    query_end: int
    strand: str
    target_name: str
    target_len: int
    target_start: int
    target_end: int
    operations: List[CigarOperation] = field(default_factory=list)
    line_number: Optional[int] = None

    @property
    def is_reverse(self) -> bool:
        return self.strand == '-'

    @property
    def query_span(self) -> int:
        return self.query_end - self.query_start

    @property
    def target_span(self) -> int:
        return self.target_end - self.target_start

    def label(self) -> str:
        """Short description used in log messages."""
        return (f"{self.query_name}:{self.query_start}-{self.query_end}({self.strand}) -> "
                f"{self.target_name}:{self.target_start}-{self.target_end}")


@dataclass(frozen=True)
class Feature:
    """A named 0-based half-open interval on a query or target sequence."""
    name: str
    sequence_name: str
    start: int
    end: int
    strand: str = '.'
    side: Side = Side.TARGET

    def __post_init__(self):
        if self.start < 0 or self.start >= self.end:
            raise ValueError(
                f"Invalid feature interval for {self.name}: "
                f"{self.sequence_name}:{self.start}-{self.end}"
            )

    @property
    def length(self) -> int:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'sequence_name': self.sequence_name,
            'start': self.start,
            'end': self.end,
            'strand': self.strand,
            'side': self.side.value,
        }


@dataclass
class RecordDiagnostic:
    """Why a record was rejected."""
    line_number: Optional[int]
    error_kind: str
    message: str
    record_label: Optional[str] = None


Range = Tuple[int, int]
