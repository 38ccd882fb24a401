"""Per-deployment filter plugins.

A filter is any object implementing some of the hook protocols below. Hooks
are independent: each configured filter may provide any subset of them, and
hooks a filter does not provide are skipped. Filters are applied in the order
they are configured, each one receiving the previous filter's output.
"""

import importlib
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class FilterSkuHook(Protocol):
    def filter_sku(self, sku: str) -> str: ...


@runtime_checkable
class VariationsHook(Protocol):
    def filter_variations(self, variations: List[Dict]) -> List[Dict]: ...


@runtime_checkable
class UrlHook(Protocol):
    def filter_url(self, url: str) -> str: ...


@runtime_checkable
class PointsHook(Protocol):
    def get_purchase_points(self, order: Dict) -> Any: ...


@runtime_checkable
class CustomerAttributesHook(Protocol):
    def get_customer_custom_attributes(self, record: Dict) -> Dict: ...


@runtime_checkable
class CustomAttributesHook(Protocol):
    def get_custom_attributes(self, product_info: Dict) -> Dict: ...


@runtime_checkable
class ParentSkuHook(Protocol):
    def get_parent_sku(self, sku: str) -> Optional[str]: ...


@runtime_checkable
class StoreNameHook(Protocol):
    def get_store_name(self, order: Dict) -> str: ...


class FilterChain:
    """Ordered composition of the configured filters."""

    def __init__(self, filters: Optional[List[Any]] = None):
        self.filters = list(filters or [])

    def add(self, filter_obj: Any) -> None:
        self.filters.append(filter_obj)

    def _implementing(self, hook: type) -> List[Any]:
        return [f for f in self.filters if isinstance(f, hook)]

    def filter_sku(self, sku: str) -> str:
        for f in self._implementing(FilterSkuHook):
            sku = f.filter_sku(sku)
        return sku

    def filter_variations(self, variations: List[Dict]) -> List[Dict]:
        for f in self._implementing(VariationsHook):
            variations = f.filter_variations(variations)
        return variations

    def filter_url(self, url: str) -> str:
        for f in self._implementing(UrlHook):
            url = f.filter_url(url)
        return url

    # The hooks below return the last provided value, or None when no
    # configured filter implements them.

    def purchase_points(self, order: Dict) -> Any:
        points = None
        for f in self._implementing(PointsHook):
            points = f.get_purchase_points(order)
        return points

    def customer_custom_attributes(self, record: Dict) -> Optional[Dict]:
        attributes = None
        for f in self._implementing(CustomerAttributesHook):
            attributes = f.get_customer_custom_attributes(record)
        return attributes

    def custom_attributes(self, product_info: Dict) -> Optional[Dict]:
        attributes = None
        for f in self._implementing(CustomAttributesHook):
            attributes = f.get_custom_attributes(product_info)
        return attributes

    def parent_sku(self, sku: str) -> Optional[str]:
        parent = None
        for f in self._implementing(ParentSkuHook):
            parent = f.get_parent_sku(sku)
        return parent

    def store_name(self, order: Dict) -> Optional[str]:
        name = None
        for f in self._implementing(StoreNameHook):
            name = f.get_store_name(order)
        return name


def load_filters(dotted_paths: List[str]) -> FilterChain:
    """
    Instantiate filter classes from ``package.module.ClassName`` paths.

    Raises:
        ImportError: If a module cannot be imported
        AttributeError: If the class does not exist in its module
    """
    chain = FilterChain()
    for path in dotted_paths:
        module_name, _, class_name = path.rpartition(".")
        module = importlib.import_module(module_name)
        chain.add(getattr(module, class_name)())
    return chain
