"""Run statistics accumulated while upserting records."""

from typing import Any, Dict, List, Optional

from magento_woowup.models.data_models import EntityStats, FailedRecord

ENTITIES = ("customers", "orders", "products")


class RunStatistics:
    """
    Created/updated/duplicated/failed counters per entity.

    One instance belongs to one run and is never shared across runs; it is
    an in-memory report, not persisted anywhere.
    """

    def __init__(self):
        self._entities: Dict[str, EntityStats] = {name: EntityStats() for name in ENTITIES}
        self.order_statuses: Dict[str, int] = {}

    def __getitem__(self, entity: str) -> EntityStats:
        return self._entities[entity]

    def record_created(self, entity: str) -> None:
        self._entities[entity].created += 1

    def record_updated(self, entity: str) -> None:
        self._entities[entity].updated += 1

    def record_duplicated(self, entity: str) -> None:
        self._entities[entity].duplicated += 1

    def record_failed(
        self,
        entity: str,
        key: str,
        record: Dict[str, Any],
        code: Optional[str] = None,
        message: str = ""
    ) -> None:
        self._entities[entity].failed.append(FailedRecord(key=key, record=record, code=code, message=message))

    def failed_records(self, entity: str) -> List[Dict[str, Any]]:
        return [failure.record for failure in self._entities[entity].failed]

    def merge_order_statuses(self, counts: Dict[str, int]) -> None:
        for status, count in counts.items():
            self.order_statuses[status] = self.order_statuses.get(status, 0) + count

    def reset_failed(self, entity: Optional[str] = None) -> None:
        """
        Clear the failed list of one entity, or of every entity.

        Raises:
            KeyError: If the entity is unknown
        """
        if entity is None:
            for stats in self._entities.values():
                stats.failed = []
            return

        if entity not in self._entities:
            raise KeyError(f"Unknown entity {entity}")
        self._entities[entity].failed = []

    def as_dict(self) -> Dict[str, Any]:
        """Snapshot of every counter, failed lists reduced to keys and errors."""
        snapshot: Dict[str, Any] = {
            name: {
                "created": stats.created,
                "updated": stats.updated,
                "duplicated": stats.duplicated,
                "failed": len(stats.failed),
                "failures": [
                    {"key": f.key, "code": f.code, "message": f.message}
                    for f in stats.failed
                ],
            }
            for name, stats in self._entities.items()
        }
        snapshot["order_statuses"] = dict(self.order_statuses)
        return snapshot
