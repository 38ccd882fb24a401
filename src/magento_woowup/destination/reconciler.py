"""Upserts of transformed records into WoowUp.

Every upsert absorbs destination errors: the outcome is recorded in the run
statistics and logged, and the caller only gets a success flag back.
"""

from typing import Any, Dict, Iterator, Optional

from magento_woowup.destination.woowup_client import WoowUpClient
from magento_woowup.exceptions import DestinationApiError
from magento_woowup.models.data_models import ConflictKind
from magento_woowup.processor.aggregator import RunStatistics

DUPLICATED_PURCHASE = "duplicated_purchase_number"
USER_NOT_FOUND = "user_not_found"
DIFFERENT_CUSTOMER = "different customer"


def classify_conflict(error: DestinationApiError) -> ConflictKind:
    """Map a destination error to the conflict it reports."""
    if error.code == DUPLICATED_PURCHASE:
        return ConflictKind.DUPLICATE
    if error.code == USER_NOT_FOUND:
        return ConflictKind.USER_NOT_FOUND
    if DIFFERENT_CUSTOMER in (error.message or "").lower():
        return ConflictKind.DIFFERENT_CUSTOMER
    if error.status_code == 404:
        return ConflictKind.NOT_FOUND
    return ConflictKind.OTHER


def customer_key(customer: Dict[str, Any]) -> str:
    return ",".join([customer.get("email") or "", customer.get("document") or ""])


class WoowUpReconciler:
    """
    Create-or-update logic for customers, purchases and products.

    Outcomes are counted in a RunStatistics owned by the current run.
    """

    def __init__(self, client: WoowUpClient, stats: Optional[RunStatistics] = None, logger=None):
        """
        Initialize reconciler.

        Args:
            client: WoowUp API client
            stats: Run statistics to record outcomes in (a fresh one if None)
            logger: Optional structured logger
        """
        self.client = client
        self.stats = stats if stats is not None else RunStatistics()
        self.logger = logger

    def _created(self, entity: str, key: str) -> None:
        self.stats.record_created(entity)
        if self.logger:
            self.logger.record_created(entity=entity, key=key)

    def _updated(self, entity: str, key: str) -> None:
        self.stats.record_updated(entity)
        if self.logger:
            self.logger.record_updated(entity=entity, key=key)

    def _failed(self, entity: str, key: str, record: Dict[str, Any], error: DestinationApiError) -> bool:
        self.stats.record_failed(entity, key, record, error.code, error.message)
        if self.logger:
            self.logger.record_failed(entity=entity, key=key, code=error.code, message=error.message)
        return False

    def upsert_customer(self, customer: Dict[str, Any]) -> bool:
        """
        Create the customer, or update it if its email or document exists.

        Returns:
            True if the customer was created or updated
        """
        key = customer_key(customer)
        identity = {
            "email": customer.get("email") or "",
            "document": customer.get("document") or "",
        }

        try:
            if not self.client.multiusers.exist(identity):
                self.client.users.create(customer)
                self._created("customers", key)
            else:
                self.client.multiusers.update(customer)
                self._updated("customers", key)
        except DestinationApiError as e:
            return self._failed("customers", key, customer, e)

        return True

    def upsert_order(self, order: Dict[str, Any], update: bool = False) -> bool:
        """
        Create the purchase; on a duplicate invoice number optionally update it.

        Args:
            order: WoowUp purchase
            update: Update purchases that already exist

        Returns:
            True if the purchase was created, already existed or was updated
        """
        key = str(order.get("invoice_number"))

        try:
            self.client.purchases.create(order)
            self._created("orders", key)
            return True
        except DestinationApiError as e:
            conflict = classify_conflict(e)
            if conflict != ConflictKind.DUPLICATE:
                return self._failed("orders", key, order, e)

        self.stats.record_duplicated("orders")
        if self.logger:
            self.logger.record_duplicated(entity="orders", key=key)

        if not update:
            return True

        try:
            self.client.purchases.update(order)
        except DestinationApiError as e:
            if classify_conflict(e) == ConflictKind.DIFFERENT_CUSTOMER:
                if self.logger:
                    self.logger.record_skipped(entity="orders", key=key, reason=e.message)
                return True
            return self._failed("orders", key, order, e)

        self._updated("orders", key)
        return True

    def upsert_product(self, product: Dict[str, Any]) -> bool:
        """
        Update the product, creating it when the destination does not know it.

        Returns:
            True if the product was updated or created
        """
        sku = str(product.get("sku"))

        try:
            self.client.products.update(sku, product)
            self._updated("products", sku)
            return True
        except DestinationApiError as e:
            if classify_conflict(e) != ConflictKind.NOT_FOUND:
                return self._failed("products", sku, product, e)

        try:
            self.client.products.create(product)
        except DestinationApiError as e:
            return self._failed("products", sku, product, e)

        self._created("products", sku)
        return True

    def search_products(self, filters: Optional[Dict[str, Any]] = None, limit: int = 100) -> Iterator[Dict]:
        """
        Yield destination products matching ``filters``, page by page.

        Paging stops at the first empty page. A failing page ends the search.
        """
        page = 0
        while True:
            try:
                products = self.client.products.search(filters, page=page, limit=limit)
            except DestinationApiError as e:
                if self.logger:
                    self.logger.warning("product_search_failed", page=page, code=e.code, message=e.message)
                return

            if not products:
                return

            yield from products
            page += 1

    def reset_failed(self, entity: Optional[str] = None) -> None:
        self.stats.reset_failed(entity)
