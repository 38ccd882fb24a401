"""Magento source repository with one interface over both API generations."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from magento_woowup.exceptions import ConfigurationError, RemoteFault
from magento_woowup.fetcher.gateway import RpcGateway
from magento_woowup.models.data_models import FilterSpec


def as_list(result: Any) -> List[Any]:
    """Normalize a list response: never None, always a list."""
    if result is None:
        return []
    if isinstance(result, list):
        return result
    if isinstance(result, dict):
        return [result]
    return list(result)


class MagentoClient(ABC):
    """
    Read-only finders over the Magento API.

    Single-entity lookups used opportunistically during transformation
    (customer, product, stock, media, stores, category info) log and return
    None on an irrecoverable fault. Bulk list operations propagate the
    fault, since a skipped page would leave a silent gap in the run.

    Customer and product details are memoized per client instance.
    """

    ID_FIELD = "sku"

    def __init__(self, gateway: RpcGateway, store_id: Optional[str] = None, logger=None):
        """
        Initialize client.

        Args:
            gateway: Session-aware RPC gateway
            store_id: Store filter applied to list operations
            logger: Optional structured logger
        """
        self.gateway = gateway
        self.store_id = store_id or None
        self.logger = logger
        self._customers_info: Dict[Any, Dict] = {}
        self._products_info: Dict[Any, Dict] = {}

    def set_store(self, store_id: Optional[str]) -> None:
        self.store_id = store_id or None

    def _lookup(self, operation: str, key: Any, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except RemoteFault as e:
            if self.logger:
                self.logger.lookup_failed(operation=operation, key=key, error=str(e))
            return None

    # Memoized single-entity lookups

    def get_customer_info(self, customer_id: Any) -> Optional[Dict]:
        """
        Get customer detail with its default address attached as ``address_info``.

        Args:
            customer_id: Magento customer id

        Returns:
            Customer dict, or None if the lookup failed
        """
        if customer_id in self._customers_info:
            return self._customers_info[customer_id]

        def fetch() -> Optional[Dict]:
            info = self._fetch_customer_info(customer_id)
            if not info:
                return None

            info = dict(info)
            address_id = info.get("default_billing") or info.get("default_shipping")
            info["address_info"] = self._fetch_address_info(address_id) if address_id else None
            return info

        info = self._lookup("customer_info", customer_id, fetch)
        if info is not None:
            self._customers_info[customer_id] = info
        return info

    def find_product_info(self, product_id: Any, field: str = ID_FIELD) -> Optional[Dict]:
        """
        Get product detail by sku (or by id with ``field="id"``).

        Returns:
            Product dict, or None if the lookup failed
        """
        if product_id in self._products_info:
            return self._products_info[product_id]

        info = self._lookup(
            "product_info",
            product_id,
            lambda: self._fetch_product_info(product_id, field)
        )
        if info is not None:
            self._products_info[product_id] = info
        return info

    def get_stock_for_product(self, product_id: Any) -> List[Dict]:
        return as_list(self._lookup("stock", product_id, lambda: self._fetch_stock(product_id)))

    def get_media_for_product(self, product_id: Any) -> List[Dict]:
        return as_list(self._lookup("media", product_id, lambda: self._fetch_media(product_id)))

    def get_stores(self) -> List[Dict]:
        return as_list(self._lookup("stores", None, self._fetch_stores))

    def find_category(self, category_id: Any) -> Optional[Dict]:
        return self._lookup("category_info", category_id, lambda: self._fetch_category(category_id))

    # Bulk operations (faults propagate)

    def find_orders(self, from_date: str, to_date: str) -> List[Dict]:
        spec = FilterSpec("created_at", from_date, to_date, self.store_id)
        return as_list(self._list_orders(self.build_order_filter(spec)))

    def find_customers(
        self,
        from_date: Optional[str],
        to_date: Optional[str] = None,
        new: bool = False
    ) -> List[Dict]:
        field = "created_at" if new else "updated_at"
        spec = FilterSpec(field, from_date, to_date, self.store_id)
        return as_list(self._list_customers(self.build_customer_filter(spec)))

    def list_products(self, from_date: Optional[str] = None, to_date: Optional[str] = None) -> List[Dict]:
        spec = FilterSpec("updated_at", from_date, to_date, self.store_id)
        return as_list(self._list_products(self.build_product_filter(spec)))

    @abstractmethod
    def find_categories(self) -> Optional[Dict]:
        """Return the category tree root."""

    @abstractmethod
    def find_order_info(self, increment_id: str) -> Optional[Dict]:
        """Return full order detail (items, payment)."""

    @abstractmethod
    def find_product_attribute_sets(self) -> List[Dict]:
        ...

    @abstractmethod
    def find_product_attributes(self, set_id: Any) -> List[Dict]:
        ...

    # Generation-specific calls

    @abstractmethod
    def build_order_filter(self, spec: FilterSpec) -> Any:
        ...

    @abstractmethod
    def build_customer_filter(self, spec: FilterSpec) -> Any:
        ...

    @abstractmethod
    def build_product_filter(self, spec: FilterSpec) -> Any:
        ...

    @abstractmethod
    def _fetch_customer_info(self, customer_id: Any) -> Optional[Dict]:
        ...

    @abstractmethod
    def _fetch_address_info(self, address_id: Any) -> Optional[Dict]:
        ...

    @abstractmethod
    def _fetch_product_info(self, product_id: Any, field: str) -> Optional[Dict]:
        ...

    @abstractmethod
    def _fetch_stock(self, product_id: Any) -> Any:
        ...

    @abstractmethod
    def _fetch_media(self, product_id: Any) -> Any:
        ...

    @abstractmethod
    def _fetch_stores(self) -> Any:
        ...

    @abstractmethod
    def _fetch_category(self, category_id: Any) -> Optional[Dict]:
        ...

    @abstractmethod
    def _list_orders(self, filters: Any) -> Any:
        ...

    @abstractmethod
    def _list_customers(self, filters: Any) -> Any:
        ...

    @abstractmethod
    def _list_products(self, filters: Any) -> Any:
        ...


class MagentoV1Client(MagentoClient):
    """
    Generation A: every operation goes through ``call(session, method, params)``.

    The v1 filter syntax accepts a single condition per field name. A range
    is expressed by sending the lower bound on the lower-case field and the
    upper bound on the upper-case spelling of the same field.
    """

    def _call(self, method: str, *params) -> Any:
        return self.gateway.call("call", method, *params)

    def build_order_filter(self, spec: FilterSpec) -> Dict:
        filters: Dict[str, Any] = {}
        if spec.store_id:
            filters["store_id"] = {"=": spec.store_id}
        filters[spec.field] = {"gteq": spec.from_value}
        filters[spec.field.upper()] = {"lteq": spec.to_value}
        return filters

    def build_customer_filter(self, spec: FilterSpec) -> Dict:
        filters: Dict[str, Any] = {}
        if spec.from_value:
            filters[spec.field] = {"from": spec.from_value}
        if spec.to_value:
            filters[spec.field.upper()] = {"to": spec.to_value}
        if spec.store_id:
            filters["store_id"] = {"=": spec.store_id}
        return filters

    def build_product_filter(self, spec: FilterSpec) -> Dict:
        filters: Dict[str, Any] = {}
        if spec.from_value:
            filters[spec.field] = {"gteq": spec.from_value}
        if spec.to_value:
            filters[spec.field.upper()] = {"lteq": spec.to_value}
        return filters

    def find_categories(self) -> Optional[Dict]:
        return self._call("catalog_category.tree")

    def find_order_info(self, increment_id: str) -> Optional[Dict]:
        return self._call("sales_order.info", increment_id)

    def find_product_attribute_sets(self) -> List[Dict]:
        return as_list(self._call("catalog_product_attribute_set.list"))

    def find_product_attributes(self, set_id: Any) -> List[Dict]:
        return as_list(self._call("product_attribute.list", [set_id]))

    def _fetch_customer_info(self, customer_id: Any) -> Optional[Dict]:
        return self._call("customer.info", customer_id)

    def _fetch_address_info(self, address_id: Any) -> Optional[Dict]:
        return self._call("customer_address.info", address_id)

    def _fetch_product_info(self, product_id: Any, field: str) -> Optional[Dict]:
        return self._call("catalog_product.info", [product_id, None, None, field])

    def _fetch_stock(self, product_id: Any) -> Any:
        return self._call("cataloginventory_stock_item.list", [[product_id]])

    def _fetch_media(self, product_id: Any) -> Any:
        return self._call("catalog_product_attribute_media.list", [product_id, None, self.ID_FIELD])

    def _fetch_stores(self) -> Any:
        return self._call("store.list")

    def _fetch_category(self, category_id: Any) -> Optional[Dict]:
        return self._call("catalog_category.info", category_id)

    def _list_orders(self, filters: Any) -> Any:
        return self._call("order.list", [filters])

    def _list_customers(self, filters: Any) -> Any:
        return self._call("customer.list", [filters])

    def _list_products(self, filters: Any) -> Any:
        return self._call("catalog_product.list", [filters, self.store_id])


class MagentoV2Client(MagentoClient):
    """
    Generation B: one remote method per operation.

    Ranges are sent as ``complex_filter`` entries whose keys differ only in
    letter casing, the only way the v2 API accepts two conditions on one
    field.
    """

    @staticmethod
    def _complex(key: str, operator: str, value: Any) -> Dict:
        return {"key": key, "value": {"key": operator, "value": value}}

    def build_order_filter(self, spec: FilterSpec) -> Dict:
        filters: Dict[str, Any] = {}
        if spec.store_id:
            filters["filter"] = [{"key": "store_id", "value": spec.store_id}]
        filters["complex_filter"] = [
            self._complex(spec.field, "from", spec.from_value),
            self._complex(spec.field.upper(), "to", spec.to_value),
        ]
        return filters

    def build_customer_filter(self, spec: FilterSpec) -> Dict:
        complex_filter = [self._complex(spec.field, "from", spec.from_value)]
        if spec.to_value is not None:
            complex_filter.append(self._complex(spec.field.upper(), "to", spec.to_value))
        if spec.store_id:
            complex_filter.append(self._complex("store_id", "=", spec.store_id))
        return {"complex_filter": complex_filter}

    def build_product_filter(self, spec: FilterSpec) -> Dict:
        complex_filter = []
        if spec.from_value:
            complex_filter.append(self._complex(spec.field.upper(), "from", spec.from_value))
        if spec.to_value:
            complex_filter.append(self._complex(spec.field, "to", spec.to_value))
        return {"complex_filter": complex_filter}

    def find_categories(self) -> Optional[Dict]:
        return self.gateway.call("catalogCategoryTree")

    def find_order_info(self, increment_id: str) -> Optional[Dict]:
        return self.gateway.call("salesOrderInfo", increment_id)

    def find_product_attribute_sets(self) -> List[Dict]:
        return as_list(self.gateway.call("catalogProductAttributeSetList"))

    def find_product_attributes(self, set_id: Any) -> List[Dict]:
        return as_list(self.gateway.call("catalogProductAttributeList", set_id))

    def _fetch_customer_info(self, customer_id: Any) -> Optional[Dict]:
        return self.gateway.call("customerCustomerInfo", customer_id)

    def _fetch_address_info(self, address_id: Any) -> Optional[Dict]:
        return self.gateway.call("customerAddressInfo", address_id)

    def _fetch_product_info(self, product_id: Any, field: str) -> Optional[Dict]:
        return self.gateway.call("catalogProductInfo", product_id, None, None, field)

    def _fetch_stock(self, product_id: Any) -> Any:
        return self.gateway.call("catalogInventoryStockItemList", [product_id])

    def _fetch_media(self, product_id: Any) -> Any:
        return self.gateway.call("catalogProductAttributeMediaList", product_id, None, self.ID_FIELD)

    def _fetch_stores(self) -> Any:
        return self.gateway.call("storeList")

    def _fetch_category(self, category_id: Any) -> Optional[Dict]:
        return self.gateway.call("catalogCategoryInfo", category_id)

    def _list_orders(self, filters: Any) -> Any:
        return self.gateway.call("salesOrderList", filters)

    def _list_customers(self, filters: Any) -> Any:
        return self.gateway.call("customerCustomerList", filters)

    def _list_products(self, filters: Any) -> Any:
        return self.gateway.call("catalogProductList", filters, self.store_id)


CLIENT_VERSIONS = {
    1: MagentoV1Client,
    2: MagentoV2Client,
}


def create_magento_client(
    version: int,
    gateway: RpcGateway,
    store_id: Optional[str] = None,
    logger=None
) -> MagentoClient:
    """
    Build the client variant for an API generation.

    Raises:
        ConfigurationError: If the version is unknown
    """
    client_class = CLIENT_VERSIONS.get(version)
    if client_class is None:
        raise ConfigurationError(f"Unknown magento api version: {version}")
    return client_class(gateway, store_id=store_id, logger=logger)
