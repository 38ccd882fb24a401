"""Core data models for the Magento to WoowUp sync."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from magento_woowup.exceptions import RemoteFault


class SessionState(Enum):
    """Source session states."""
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    EXPIRED = "expired"


class BucketStep(Enum):
    """Size of one date bucket."""
    DAY = "day"
    MONTH = "month"


class ConflictKind(Enum):
    """Why a destination create/update was rejected."""
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    USER_NOT_FOUND = "user_not_found"
    DIFFERENT_CUSTOMER = "different_customer"
    OTHER = "other"


class Entity(Enum):
    """Entities tracked in run statistics."""
    CUSTOMERS = "customers"
    ORDERS = "orders"
    PRODUCTS = "products"


@dataclass
class Session:
    """Remote session handle issued by a login call."""
    token: str
    issued_at: float
    idle_timeout: float

    def is_expired(self, now: float) -> bool:
        return now - self.issued_at > self.idle_timeout


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential-backoff policy for remote calls.

    ``fault_filter`` narrows which transient faults are retried; when it is
    ``None`` every transient fault is retried up to ``max_attempts``.
    """
    base: float = 2.0
    max_attempts: int = 3
    fault_filter: Optional[Callable[[RemoteFault], bool]] = None

    def should_retry(self, fault: RemoteFault) -> bool:
        if self.fault_filter is None:
            return True
        return self.fault_filter(fault)

    @classmethod
    def filtered(
        cls,
        pattern: str = "not exists.",
        base: float = 2.0,
        max_attempts: int = 3
    ) -> "RetryPolicy":
        """Retry only faults whose message contains ``pattern``."""
        return cls(
            base=base,
            max_attempts=max_attempts,
            fault_filter=lambda fault: pattern in (fault.message or "")
        )

    @classmethod
    def unconditional(cls, base: float = 2.0, max_attempts: int = 3) -> "RetryPolicy":
        """Retry any transient fault until the ceiling is reached."""
        return cls(base=base, max_attempts=max_attempts, fault_filter=None)


@dataclass(frozen=True)
class Bucket:
    """One day- or month-long slice of a date window."""
    start: date
    end: date

    def from_timestamp(self) -> str:
        return f"{self.start.isoformat()} 00:00:00"

    def to_timestamp(self) -> str:
        return f"{self.end.isoformat()} 23:59:59"


@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive calendar window walked bucket by bucket.

    ``end`` is optional: an open window runs up to today and is walked
    backward from today.
    """
    start: date
    end: Optional[date] = None
    step: BucketStep = BucketStep.DAY

    def __post_init__(self):
        if self.end is not None and self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    @property
    def is_bounded(self) -> bool:
        return self.end is not None

    def resolved_end(self, today: Optional[date] = None) -> date:
        return self.end if self.end is not None else (today or date.today())

    def next_start(self, current: date) -> date:
        if self.step == BucketStep.MONTH:
            return current + relativedelta(months=1)
        return current + timedelta(days=1)

    def previous_start(self, current: date) -> date:
        if self.step == BucketStep.MONTH:
            return current - relativedelta(months=1)
        return current - timedelta(days=1)


@dataclass
class FilterSpec:
    """Range (and optional store) filter sent to a source list call."""
    field: str
    from_value: Optional[str] = None
    to_value: Optional[str] = None
    store_id: Optional[str] = None


@dataclass
class FailedRecord:
    """A destination record that could not be created or updated."""
    key: str
    record: Dict[str, Any]
    code: Optional[str]
    message: str


@dataclass
class EntityStats:
    """Counters for one entity type."""
    created: int = 0
    updated: int = 0
    duplicated: int = 0
    failed: List[FailedRecord] = field(default_factory=list)


@dataclass
class SyncResult:
    """Outcome of one import phase."""
    phase: str
    started_at: str  # ISO-8601 UTC
    finished_at: str  # ISO-8601 UTC
    statistics: Dict[str, Any]
    aborted: bool = False
    error: Optional[str] = None
