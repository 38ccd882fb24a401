"""Sync orchestrator coordinating enumeration and destination upserts."""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

import httpx

from magento_woowup.destination.reconciler import WoowUpReconciler
from magento_woowup.destination.woowup_client import WoowUpClient
from magento_woowup.exceptions import RemoteFault
from magento_woowup.fetcher.gateway import RpcGateway
from magento_woowup.fetcher.magento_client import MagentoClient, create_magento_client
from magento_woowup.fetcher.transport import RpcTransport, SoapTransport
from magento_woowup.models.config import SyncConfig
from magento_woowup.models.data_models import SyncResult
from magento_woowup.monitoring.logger import StructuredLogger
from magento_woowup.processor.aggregator import RunStatistics
from magento_woowup.processor.enumerator import WindowedEnumerator
from magento_woowup.processor.hooks import load_filters
from magento_woowup.processor.transformer import RecordTransformer

DEFAULT_DAYS = 5
DEFAULT_MONTHS = 6


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncOrchestrator:
    """Runs one import phase (customers, orders or products) end to end."""

    def __init__(
        self,
        config: SyncConfig,
        client: MagentoClient,
        reconciler: WoowUpReconciler,
        enumerator: WindowedEnumerator,
        logger: Optional[StructuredLogger] = None,
        today: Callable[[], date] = date.today
    ):
        """
        Initialize orchestrator with already wired components.

        Args:
            config: Sync configuration
            client: Source repository
            reconciler: Destination reconciler (owns the run statistics)
            enumerator: Windowed enumerator over ``client``
            logger: Structured logger
            today: Clock used to turn ``days`` into a window start
        """
        self.config = config
        self.client = client
        self.reconciler = reconciler
        self.enumerator = enumerator
        self.logger = logger or StructuredLogger(level=config.log_level)
        self.today = today

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        transport: Optional[RpcTransport] = None,
        http_client: Optional[httpx.Client] = None,
        logger: Optional[StructuredLogger] = None,
        today: Callable[[], date] = date.today
    ) -> "SyncOrchestrator":
        """
        Wire every component from configuration.

        Args:
            config: Sync configuration
            transport: Source transport (a SoapTransport for ``config.host`` if None)
            http_client: HTTP client for the destination (e.g. a TestClient)
            logger: Structured logger
            today: Clock used for date windows

        Raises:
            ConfigurationError: If the API version is unknown
            ImportError: If a configured filter cannot be loaded
        """
        logger = logger or StructuredLogger(level=config.log_level)
        transport = transport or SoapTransport(
            config.host,
            version=config.version,
            user_agent=config.user_agent,
            timeout=config.read_timeout
        )
        gateway = RpcGateway(
            transport,
            config.apiuser,
            config.apikey,
            policy=config.retry_policy(),
            idle_timeout=config.session_timeout,
            logger=logger
        )
        client = create_magento_client(config.version, gateway, store_id=config.store_id, logger=logger)
        transformer = RecordTransformer(client, config, filters=load_filters(config.filters), logger=logger)
        enumerator = WindowedEnumerator(client, transformer, config, logger=logger, today=today)
        woowup = WoowUpClient(
            config.woowup_api_key,
            base_url=config.woowup_base_url,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            http_client=http_client
        )
        reconciler = WoowUpReconciler(woowup, RunStatistics(), logger=logger)
        return cls(config, client, reconciler, enumerator, logger=logger, today=today)

    @property
    def stats(self) -> RunStatistics:
        return self.reconciler.stats

    def _stores(self) -> List[Optional[str]]:
        return list(self.config.stores) or [self.config.store_id]

    def _in_stores(self, stream: Callable[[], Iterator]) -> Iterator:
        for store in self._stores():
            self.client.set_store(store)
            self.logger.log("store_selected", store=store)
            yield from stream()

    def _run(self, phase: str, body: Callable[[], None]) -> SyncResult:
        started_at = _utc_now()
        self.logger.log("phase_start", phase=phase)

        aborted = False
        error = None
        try:
            body()
        except RemoteFault as e:
            aborted = True
            error = str(e)
            self.logger.error("phase_aborted", phase=phase, code=e.code, message=e.message)

        statistics = self.stats.as_dict()
        self.logger.stats_summary(phase=phase, stats=statistics)
        return SyncResult(
            phase=phase,
            started_at=started_at,
            finished_at=_utc_now(),
            statistics=statistics,
            aborted=aborted,
            error=error
        )

    def import_customers(
        self,
        days: int = DEFAULT_DAYS,
        end: Optional[date] = None,
        new: bool = False
    ) -> SyncResult:
        """
        Upsert customers updated (or created, with ``new``) in the ``days`` days up to ``end`` (or today).

        Customers that failed are retried once after the first pass.
        """
        start = (end or self.today()) - timedelta(days=days)

        def body() -> None:
            stream = self._in_stores(lambda: self.enumerator.iter_customers(start, end, new))
            for customer in stream:
                self.reconciler.upsert_customer(customer)

            failed = self.stats.failed_records("customers")
            if failed:
                self.logger.log("retrying_failed", entity="customers", count=len(failed))
                self.reconciler.reset_failed("customers")
                for customer in failed:
                    self.reconciler.upsert_customer(customer)

        return self._run("customers", body)

    def import_orders(
        self,
        days: int = DEFAULT_DAYS,
        update: bool = False,
        importing: bool = False,
        end: Optional[date] = None
    ) -> SyncResult:
        """
        Upsert orders created in the ``days`` days up to ``end`` (or today), each after its customer.

        Args:
            days: Window length in days, ending today (or at ``end``)
            update: Update purchases that already exist
            importing: Historic import, ``approvedtime`` is the order creation time
            end: Last day of the window
        """
        start = (end or self.today()) - timedelta(days=days)

        def orders_for_store() -> Iterator:
            try:
                yield from self.enumerator.iter_orders(start, end, importing)
            finally:
                self.stats.merge_order_statuses(self.enumerator.status_counts)
                self.enumerator.status_counts = {}

        def body() -> None:
            for order in self._in_stores(orders_for_store):
                self.reconciler.upsert_customer(order["customer"])
                self.reconciler.upsert_order(order, update)

        return self._run("orders", body)

    def import_products(self, months: Optional[int] = DEFAULT_MONTHS) -> SyncResult:
        """
        Upsert products updated in the last ``months`` months.

        Destination products with stock that were not seen in this run are
        then marked unavailable.
        """
        def body() -> None:
            seen = set()
            for product in self.enumerator.iter_products(months):
                self.reconciler.upsert_product(product)
                seen.add(product["sku"])

            self.logger.log("searching_unavailable_products")
            # Collect first: products marked unavailable leave the with_stock results
            stale = [
                existing for existing in self.reconciler.search_products({"with_stock": True})
                if existing.get("sku") and existing["sku"] not in seen
            ]
            for existing in stale:
                sku = existing["sku"]
                self.logger.log("product_unavailable", sku=sku)
                self.reconciler.upsert_product({
                    "sku": sku,
                    "name": existing.get("name"),
                    "available": False,
                    "stock": 0,
                })

        return self._run("products", body)
