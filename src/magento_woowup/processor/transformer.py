"""Record transformer: Magento records to WoowUp records.

Field copying is delegated to the normalizer; this module resolves the
nested data that needs the source API (customer detail, order line product
detail, stock, media, category breadcrumbs) and applies the filter hooks.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from magento_woowup.fetcher.magento_client import MagentoClient
from magento_woowup.models.config import SyncConfig
from magento_woowup.processor.hooks import FilterChain
from magento_woowup.processor.normalizer import (
    PRODUCT_STATUS_ENABLED,
    VISIBLE,
    CategoryIndex,
    build_order_payment,
    build_prices,
    clean_empty,
    get_payment_type,
    map_gender,
    pick_media_url,
    title_case,
    to_float,
    to_int,
    valid_document,
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordTransformer:
    """
    Maps one source record to the destination schema.

    Every ``build_*`` method returns None for a record that must be skipped
    (no usable identity, wrong product type, ...); rejections are logged,
    never raised.
    """

    def __init__(
        self,
        client: MagentoClient,
        config: SyncConfig,
        filters: Optional[FilterChain] = None,
        category_index: Optional[CategoryIndex] = None,
        logger=None,
        now: Callable[[], str] = _utc_now
    ):
        """
        Initialize transformer.

        Args:
            client: Source repository used for nested lookups
            config: Sync configuration
            filters: Per-deployment filter hooks
            category_index: Flattened categories (loaded lazily when None)
            logger: Optional structured logger
            now: Clock for ``approvedtime`` on live (non-import) runs
        """
        self.client = client
        self.config = config
        self.filters = filters or FilterChain()
        self.category_index = category_index
        self.logger = logger
        self.now = now

    def _skip(self, entity: str, key: Any, reason: str) -> None:
        if self.logger:
            self.logger.record_skipped(entity=entity, key=key, reason=reason)

    # Categories

    def load_categories(self) -> CategoryIndex:
        """Fetch the category tree once and index it."""
        root = self.client.find_categories() or {}
        tree = self._build_category_tree(root.get("children") or [])
        self.category_index = CategoryIndex.from_tree(tree)
        return self.category_index

    def _build_category_tree(self, nodes: List[Dict]) -> List[Dict]:
        tree = []
        for node in nodes:
            info = self.client.find_category(node.get("category_id")) or {}
            url_path = info.get("url_path")
            tree.append({
                "id": node.get("category_id"),
                "name": node.get("name"),
                "children": self._build_category_tree(node.get("children") or []),
                "url_path": f"{self.config.host}/{url_path}" if url_path else None,
                "image": None,
            })
        return tree

    def _category_breadcrumb(self, info: Dict) -> Optional[List[Dict]]:
        if not self.config.categories:
            return None
        category_ids = info.get(self.config.categories_field)
        if not category_ids:
            return None
        if self.category_index is None:
            self.load_categories()
        return self.category_index.breadcrumb(list(category_ids))

    # Customers

    def build_customer(self, record: Optional[Dict]) -> Optional[Dict]:
        """
        Map a Magento customer to WoowUp's format.

        Args:
            record: Customer detail, optionally with ``address_info`` attached

        Returns:
            WoowUp customer, or None if it has neither email nor valid document
        """
        if not record:
            return None

        customer: Dict[str, Any] = {
            "first_name": title_case(record.get("firstname")),
            "last_name": title_case(record.get("lastname")),
            "tags": self.config.customer_tag,
        }

        email = (record.get("email") or "").strip()
        if email:
            customer["email"] = email.lower()

        document = valid_document(record.get("dni"))
        if document:
            customer["document"] = document
            customer["document_type"] = "DNI"

        address = record.get("address_info")
        if address:
            customer.update({
                "country": address.get("country_id"),
                "state": title_case(address.get("region")),
                "street": title_case(address.get("street")),
                "city": title_case(address.get("city")),
                "postcode": address.get("postcode"),
                "telephone": address.get("telephone"),
            })

        if record.get("dob"):
            customer["birthdate"] = str(record["dob"]).strip()

        customer["gender"] = map_gender(record.get("gender"))

        tags = [self.config.customer_tag] if self.config.customer_tag else []
        if record.get("group_id"):
            tags.append(f"group{record['group_id']}")
        customer["tags"] = ",".join(tags)

        custom_attributes = self.filters.customer_custom_attributes(record)
        if custom_attributes is not None:
            customer["custom_attributes"] = custom_attributes

        customer = clean_empty(customer)

        if not customer.get("email") and not customer.get("document"):
            self._skip("customers", record.get("customer_id"), "no valid document or email")
            return None

        return customer

    def build_customer_from_order(self, order: Dict) -> Dict:
        """Synthesize a customer from the ``customer_*`` fields of an order."""
        customer: Dict[str, Any] = {"email": (order.get("customer_email") or "").strip().lower()}

        first_name = title_case(order.get("customer_firstname"))
        if first_name:
            middle_name = title_case(order.get("customer_middlename"))
            customer["first_name"] = f"{first_name} {middle_name}" if middle_name else first_name

        last_name = title_case(order.get("customer_lastname"))
        if last_name:
            customer["last_name"] = last_name

        if order.get("customer_dob") and str(order["customer_dob"]).strip():
            customer["birthdate"] = str(order["customer_dob"]).strip()

        gender = map_gender(order.get("customer_gender"))
        if gender:
            customer["gender"] = gender

        custom_attributes = self.filters.customer_custom_attributes(order)
        if custom_attributes is not None:
            customer["custom_attributes"] = custom_attributes

        return customer

    # Orders

    def _resolve_order_customer(self, order: Dict) -> Optional[Dict]:
        if order.get("customer_id"):
            return self.build_customer(self.client.get_customer_info(order["customer_id"]))
        if (order.get("customer_email") or "").strip():
            return self.build_customer_from_order(order)
        return None

    def build_order(self, order: Dict, importing: bool = False) -> Optional[Dict]:
        """
        Map a Magento order to a WoowUp purchase.

        Args:
            order: Order as returned by the order list
            importing: Historic import; ``approvedtime`` is the creation time

        Returns:
            WoowUp purchase, or None if no customer identity can be established
        """
        invoice_number = order.get("increment_id")
        info = self.client.find_order_info(invoice_number) or {}

        customer = self._resolve_order_customer(order)

        payment = info.get("payment") or None
        additional = (payment or {}).get("additional_information") or {}
        if additional.get("docNumber") and str(additional["docNumber"]).strip():
            customer = customer if customer is not None else {}
            if not customer.get("document"):
                customer["document"] = str(additional["docNumber"]).strip()
                customer["document_type"] = str(additional.get("docType") or "").strip()

        if not customer or (not customer.get("email") and not customer.get("document")):
            self._skip("orders", invoice_number, "invalid customer")
            return None

        purchase: Dict[str, Any] = {
            "invoice_number": invoice_number,
            "customer": customer,
            "channel": "web",
        }
        if customer.get("document"):
            purchase["document"] = customer["document"]
        else:
            purchase["email"] = customer["email"]

        purchase["purchase_detail"] = [
            line for line in (self._build_order_line(item) for item in info.get("items") or []) if line
        ]

        purchase["createtime"] = order.get("created_at")
        purchase["approvedtime"] = order.get("created_at") if importing else self.now()
        purchase["branch_name"] = self.config.branch_name
        purchase["prices"] = build_prices(order)

        if payment:
            if additional:
                purchase["payment"] = build_order_payment(additional)
            purchase.setdefault("payment", {})["type"] = get_payment_type(payment.get("method"))

        points = self.filters.purchase_points(purchase)
        if points is not None:
            purchase["points"] = points

        store_name = self.filters.store_name(order)
        if store_name:
            purchase["branch_name"] = store_name

        return purchase

    def _build_order_line(self, item: Dict) -> Optional[Dict]:
        if not item.get("sku"):
            self._skip("order_lines", item.get("item_id"), "invalid sku")
            return None

        raw_sku = str(item["sku"])
        sku = self.filters.filter_sku(raw_sku.strip())
        quantity = to_int(item.get("qty_ordered"))
        unit_price = to_float(item.get("price"))

        if quantity == 0:
            self._skip("order_lines", sku, "quantity 0")
            return None

        if unit_price == 0:
            self._skip("order_lines", sku, "price 0")
            return None

        product = self.client.find_product_info(raw_sku) or {}
        image_url = self._image_url(raw_sku, product.get("image_label"))

        line: Dict[str, Any] = {
            "sku": sku,
            "product_name": title_case(item.get("name")),
            "quantity": quantity,
            "unit_price": unit_price,
            "variations": self._variations(product),
            "url": self._url(product),
            "image_url": image_url or "",
        }

        category = self._category_breadcrumb(product)
        if category:
            line["category"] = category

        return line

    def _variations(self, product: Dict) -> List[Dict]:
        variations = [
            {"name": title_case(name), "value": product[name]}
            for name in self.config.variations
            if product.get(name) is not None
        ]
        return self.filters.filter_variations(variations)

    # Products

    def build_product(self, sku: str, product_type: str, info: Optional[Dict]) -> Optional[Dict]:
        """
        Map a Magento product to WoowUp's format.

        Args:
            sku: Sku listed by the source
            product_type: Requested Magento type (simple, configurable, ...)
            info: Product detail

        Returns:
            WoowUp product, or None if it does not qualify
        """
        if not info or not info.get("sku"):
            self._skip("products", sku, "product not found")
            return None

        if info.get("type_id") != product_type:
            self._skip("products", sku, f"type {info.get('type_id')} does not match {product_type}")
            return None

        if not info.get("name"):
            self._skip("products", sku, "empty name")
            return None

        visible = to_int(info.get("visibility"), -1) in VISIBLE
        enabled = to_int(info.get("status"), -1) == PRODUCT_STATUS_ENABLED
        in_stock = visible
        stock = 0

        if visible and enabled:
            stock_info = self.client.get_stock_for_product(sku)
            if stock_info:
                stock = to_int(stock_info[0].get("qty"))
                in_stock = bool(to_int(stock_info[0].get("is_in_stock")))
                if in_stock and stock == 0:
                    # In stock without a counted quantity means available, not sold out
                    stock = 1

        product: Dict[str, Any] = {}

        custom_attributes = self.filters.custom_attributes(info)
        if custom_attributes is not None:
            product["custom_attributes"] = custom_attributes

        product_sku = self.filters.filter_sku(info["sku"])
        parent_sku = self.filters.parent_sku(product_sku)

        media_sku = parent_sku or sku
        url_source = info
        if parent_sku:
            url_source = self.client.find_product_info(parent_sku) or {}

        price = info.get("price")
        product.update({
            "sku": product_sku,
            "name": info["name"],
            "description": info.get("description") or info.get("short_description"),
            "price": to_float(price) if price is not None else None,
            "image_url": self._image_url(media_sku, info.get("image_label")) or "",
            "thumbnail_url": self._image_url(media_sku, info.get("thumbnail_label")) or "",
            "stock": stock,
            "available": bool(in_stock and enabled),
        })

        if info.get("special_price") is not None:
            product["offer_price"] = to_float(info["special_price"])

        category = self._category_breadcrumb(info)
        if category:
            product["category"] = category

        product["url"] = self._url(url_source)

        return product

    # Shared lookups

    def _image_url(self, sku: str, label: Optional[str]) -> Optional[str]:
        media = self.client.get_media_for_product(sku)
        return pick_media_url(media, label) if media else None

    def _url(self, product: Dict) -> str:
        path = product.get(self.config.url_field) or ""
        return self.filters.filter_url(f"{self.config.host}/{path}")
