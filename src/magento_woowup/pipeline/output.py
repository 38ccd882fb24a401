"""JSON output formatter for sync run summaries.

Example output structure:
{
    "phase": "orders",
    "started_at": "2024-05-02T10:00:00+00:00",
    "finished_at": "2024-05-02T10:03:12+00:00",
    "aborted": false,
    "error": null,
    "statistics": {
        "customers": {"created": 3, "updated": 9, "duplicated": 0, "failed": 1, "failures": [...]},
        "orders": {"created": 12, "updated": 0, "duplicated": 2, "failed": 0, "failures": []},
        "products": {...}
    },
    "order_statuses": {"complete": 14, "canceled": 3}
}
"""

import json
from pathlib import Path
from typing import Any, Dict

from magento_woowup.models.data_models import SyncResult
from magento_woowup.processor.aggregator import ENTITIES


class JSONOutputFormatter:
    """Formats sync results as JSON."""

    def format(self, result: SyncResult) -> Dict[str, Any]:
        """
        Format a sync result as a JSON-serializable dictionary.

        Args:
            result: Outcome of one import phase

        Returns:
            Dictionary with run metadata, per-entity statistics and order statuses
        """
        statistics = result.statistics
        return {
            "phase": result.phase,
            "started_at": result.started_at,
            "finished_at": result.finished_at,
            "aborted": result.aborted,
            "error": result.error,
            "statistics": {
                entity: statistics[entity]
                for entity in ENTITIES
                if entity in statistics
            },
            "order_statuses": statistics.get("order_statuses", {}),
        }

    def save(self, result: SyncResult, path: str = "out/summary.json") -> None:
        """
        Save formatted result to JSON file.

        Creates parent directories if they don't exist.

        Args:
            result: Sync result to save
            path: Output file path (default: out/summary.json)
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        formatted_data = self.format(result)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(formatted_data, f, indent=2, ensure_ascii=False)
