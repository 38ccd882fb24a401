"""Windowed enumeration of changed Magento records.

The source API can only filter by coarse date ranges, so a window is walked
one bucket (day or month) at a time and each bucket is listed separately.
Every stream is a generator: the next bucket is only listed once the
consumer has pulled every record of the current one.
"""

from datetime import date, timedelta
from typing import Callable, Dict, Iterator, List, Optional

from dateutil.relativedelta import relativedelta

from magento_woowup.fetcher.magento_client import MagentoClient
from magento_woowup.models.config import SyncConfig
from magento_woowup.models.data_models import Bucket, BucketStep, DateWindow
from magento_woowup.processor.transformer import RecordTransformer

ONE_DAY = timedelta(days=1)


def iter_buckets(window: DateWindow, today: Optional[date] = None) -> Iterator[Bucket]:
    """
    Split a window into buckets.

    Bounded windows are walked forward from ``start`` to ``end`` inclusive.
    Open windows are walked backward from today while the bucket is not
    older than ``start``. Month buckets are clipped to the window so no day
    is listed twice.

    Args:
        window: Date window to walk
        today: Reference date for open windows (defaults to date.today())

    Yields:
        Buckets in walk order
    """
    today = today or date.today()

    if window.is_bounded:
        current = window.start
        while current <= window.end:
            following = window.next_start(current)
            yield Bucket(current, min(following - ONE_DAY, window.end))
            current = following
        return

    current_end = today
    while current_end >= window.start:
        bucket_start = max(window.previous_start(current_end) + ONE_DAY, window.start)
        yield Bucket(bucket_start, current_end)
        current_end = bucket_start - ONE_DAY


class WindowedEnumerator:
    """
    Turns "everything changed between two dates" into lazy record streams.

    Responsibilities:
    - Walk date windows bucket by bucket through the source repository
    - Count every listed order by status, emit only importable ones
    - Hand qualifying records to the transformer and yield its output
    """

    def __init__(
        self,
        client: MagentoClient,
        transformer: RecordTransformer,
        config: SyncConfig,
        logger=None,
        today: Callable[[], date] = date.today
    ):
        """
        Initialize enumerator.

        Args:
            client: Source repository
            transformer: Record transformer
            config: Sync configuration (statuses, product types)
            logger: Optional structured logger
            today: Clock for open windows
        """
        self.client = client
        self.transformer = transformer
        self.config = config
        self.logger = logger
        self.today = today
        self.status_counts: Dict[str, int] = {}

    def _bucket_listed(self, entity: str, bucket: Bucket, count: int) -> None:
        if self.logger:
            self.logger.bucket_listed(
                entity=entity,
                start=bucket.start.isoformat(),
                end=bucket.end.isoformat(),
                count=count
            )

    def _ensure_categories(self) -> None:
        if self.config.categories and self.transformer.category_index is None:
            self.transformer.load_categories()

    def is_importable(self, order: Dict) -> bool:
        """Order status is importable and the order belongs to the current store."""
        if order.get("status") not in self.config.status:
            return False
        store_id = self.client.store_id
        return not store_id or str(order.get("store_id")) == str(store_id)

    def iter_orders(
        self,
        start: date,
        end: Optional[date] = None,
        importing: bool = False
    ) -> Iterator[Dict]:
        """
        Yield WoowUp purchases for orders created in the window.

        ``status_counts`` is reset on every call and counts every listed
        order, importable or not.

        Args:
            start: First day of the window
            end: Last day of the window (open window when None)
            importing: Historic import, forwarded to the transformer

        Raises:
            RemoteFault: If a bucket cannot be listed
        """
        self._ensure_categories()
        self.status_counts = {}
        window = DateWindow(start, end, BucketStep.DAY)

        for bucket in iter_buckets(window, self.today()):
            orders = self.client.find_orders(bucket.from_timestamp(), bucket.to_timestamp())
            self._bucket_listed("orders", bucket, len(orders))

            for order in orders:
                status = order.get("status")
                self.status_counts[status] = self.status_counts.get(status, 0) + 1

                if not self.is_importable(order):
                    continue

                purchase = self.transformer.build_order(order, importing)
                if purchase:
                    yield purchase

        if self.logger:
            self.logger.log(
                "orders_by_status",
                statuses=self.config.status,
                counts=self.status_counts
            )

    def iter_customers(
        self,
        start: date,
        end: Optional[date] = None,
        new: bool = False
    ) -> Iterator[Dict]:
        """
        Yield WoowUp customers updated (or created, with ``new``) in the window.

        Raises:
            RemoteFault: If a bucket cannot be listed
        """
        window = DateWindow(start, end, BucketStep.DAY)

        for bucket in iter_buckets(window, self.today()):
            customers = self.client.find_customers(bucket.from_timestamp(), bucket.to_timestamp(), new)
            self._bucket_listed("customers", bucket, len(customers))

            for record in customers:
                detail = self.client.get_customer_info(record.get("customer_id")) or record
                customer = self.transformer.build_customer(detail)
                if customer is not None:
                    yield customer

    def iter_products(self, months: Optional[int] = 6) -> Iterator[Dict]:
        """
        Yield WoowUp products updated during the last ``months`` months.

        With ``months=None`` the whole catalog is listed in one call.

        Raises:
            RemoteFault: If a bucket cannot be listed
        """
        self._ensure_categories()

        if months is None:
            yield from self._products_in(self.client.list_products(), None)
            return

        today = self.today()
        window = DateWindow(today - relativedelta(months=months), today, BucketStep.MONTH)

        for bucket in iter_buckets(window, today):
            listed = self.client.list_products(bucket.from_timestamp(), bucket.to_timestamp())
            yield from self._products_in(listed, bucket)

    def _products_in(self, listed: List[Dict], bucket: Optional[Bucket]) -> Iterator[Dict]:
        if bucket is not None:
            self._bucket_listed("products", bucket, len(listed))

        for record in listed:
            sku = record.get("sku")
            if not sku:
                continue

            info = self.client.find_product_info(sku)
            if not info:
                continue

            for product_type in self.config.product_types:
                product = self.transformer.build_product(sku, product_type, info)
                if product:
                    yield product
