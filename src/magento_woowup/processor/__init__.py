"""Record enumeration and transformation module."""

from .aggregator import RunStatistics
from .enumerator import WindowedEnumerator
from .hooks import FilterChain, load_filters
from .transformer import RecordTransformer

__all__ = ["FilterChain", "RecordTransformer", "RunStatistics", "WindowedEnumerator", "load_filters"]
