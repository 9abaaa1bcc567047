"""
Formatters for writing feature coverage reports:
- TSV (Tab-Separated Values)
- JSON (JavaScript Object Notation)
"""

from .tsv_formatter import TSVFormatter
from .json_formatter import JSONFormatter

__all__ = ['TSVFormatter', 'JSONFormatter', 'get_formatter']


def get_formatter(output_format: str):
    """Return a formatter instance for 'tsv' or 'json'."""
    if output_format == 'tsv':
        return TSVFormatter()
    elif output_format == 'json':
        return JSONFormatter()
    raise ValueError(f"Unsupported output format: {output_format}")
