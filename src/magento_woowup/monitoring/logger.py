"""Structured logging for sync monitoring."""

import json
import logging
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "magento_woowup", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, entity, key, code, message, date, count,
                      attempt, delay, store
        """
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def warning(self, event: str, **kwargs) -> None:
        self.log(event, level=logging.WARNING, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        self.log(event, level=logging.ERROR, **kwargs)

    def record_created(self, entity: str, key: str) -> None:
        self.log("record_created", entity=entity, key=key)

    def record_updated(self, entity: str, key: str) -> None:
        self.log("record_updated", entity=entity, key=key)

    def record_duplicated(self, entity: str, key: str) -> None:
        self.log("record_duplicated", entity=entity, key=key)

    def record_failed(self, entity: str, key: str, code: Optional[str], message: str) -> None:
        self.log("record_failed", entity=entity, key=key, code=code, message=message)

    def record_skipped(self, entity: str, key: Any, reason: str) -> None:
        self.log("record_skipped", entity=entity, key=key, reason=reason)

    def bucket_listed(self, entity: str, start: str, end: str, count: int) -> None:
        self.log("bucket_listed", entity=entity, start=start, end=end, count=count)

    def retry_scheduled(self, operation: str, attempt: int, delay: float, error: str) -> None:
        self.warning("retry_scheduled", operation=operation, attempt=attempt, delay=delay, error=error)

    def session_connected(self, host: Optional[str] = None) -> None:
        self.log("session_connected", host=host)

    def lookup_failed(self, operation: str, key: Any, error: str) -> None:
        self.warning("lookup_failed", operation=operation, key=key, error=error)

    def stats_summary(self, phase: str, stats: Dict[str, Any]) -> None:
        self.log("stats_summary", phase=phase, stats=stats)
