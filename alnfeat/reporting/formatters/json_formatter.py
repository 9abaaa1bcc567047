"""
JSON formatter for feature coverage reports.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from alnfeat.reporting.formatters.tsv_formatter import open_output
from alnfeat.reporting.report_builder import FeatureReportRow

logger = logging.getLogger(__name__)


class JSONFormatter:
    """
    Formats report rows as JSON.

    The document has a 'metadata' block (run settings, record and rejection
    counts) and a 'features' list with one object per (feature, side).
    """

    def format(self, rows: Iterable[FeatureReportRow], output_file: Optional[str] = None,
               metadata: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Write report rows as a JSON document.

        Args:
            rows: Report rows from ReportBuilder
            output_file: Path to output file; None or '-' writes to stdout
            metadata: Extra metadata merged into the 'metadata' block

        Returns:
            Path to the generated file, or None for stdout
        """
        features = [row.to_dict() for row in rows]
        json_data = {
            'metadata': {
                'timestamp': datetime.now().isoformat(),
                'feature_rows': len(features),
                **(metadata or {}),
            },
            'features': features,
        }

        with open_output(output_file) as f:
            json.dump(json_data, f, indent=2)
            f.write('\n')

        logger.info(f"Generated JSON report at {output_file or 'stdout'}")
        return output_file
