"""Unit tests for windowed enumeration."""

from datetime import date
from unittest.mock import Mock

import pytest

from magento_woowup.exceptions import TransientRemoteFault
from magento_woowup.fetcher.magento_client import MagentoClient
from magento_woowup.models.data_models import Bucket, BucketStep, DateWindow
from magento_woowup.processor.enumerator import WindowedEnumerator, iter_buckets
from magento_woowup.processor.transformer import RecordTransformer
from tests.fixtures.sample_data import magento_order

TODAY = date(2024, 5, 10)


class TestBuckets:

    def test_bounded_window_visits_each_day_once_ascending(self):
        window = DateWindow(date(2024, 5, 1), date(2024, 5, 3))

        buckets = list(iter_buckets(window, TODAY))

        assert buckets == [
            Bucket(date(2024, 5, 1), date(2024, 5, 1)),
            Bucket(date(2024, 5, 2), date(2024, 5, 2)),
            Bucket(date(2024, 5, 3), date(2024, 5, 3)),
        ]

    def test_single_day_window(self):
        window = DateWindow(date(2024, 5, 1), date(2024, 5, 1))

        assert len(list(iter_buckets(window, TODAY))) == 1

    def test_open_window_walks_backward_from_today(self):
        window = DateWindow(date(2024, 5, 8))

        starts = [bucket.start for bucket in iter_buckets(window, TODAY)]

        assert starts == [date(2024, 5, 10), date(2024, 5, 9), date(2024, 5, 8)]

    def test_month_buckets_do_not_overlap(self):
        window = DateWindow(date(2024, 1, 15), date(2024, 3, 20), BucketStep.MONTH)

        buckets = list(iter_buckets(window, TODAY))

        assert buckets == [
            Bucket(date(2024, 1, 15), date(2024, 2, 14)),
            Bucket(date(2024, 2, 15), date(2024, 3, 14)),
            Bucket(date(2024, 3, 15), date(2024, 3, 20)),
        ]

    def test_bucket_timestamps(self):
        bucket = Bucket(date(2024, 5, 1), date(2024, 5, 2))

        assert bucket.from_timestamp() == "2024-05-01 00:00:00"
        assert bucket.to_timestamp() == "2024-05-02 23:59:59"

    def test_inverted_window_is_rejected(self):
        with pytest.raises(ValueError):
            DateWindow(date(2024, 5, 3), date(2024, 5, 1))


@pytest.fixture
def client():
    client = Mock(spec=MagentoClient)
    client.store_id = None
    return client


@pytest.fixture
def transformer():
    transformer = Mock(spec=RecordTransformer)
    transformer.category_index = None
    transformer.build_order.side_effect = lambda order, importing=False: {"invoice_number": order["increment_id"]}
    transformer.build_customer.side_effect = lambda record: {"email": record.get("email")} if record else None
    return transformer


@pytest.fixture
def enumerator(client, transformer, sample_config):
    return WindowedEnumerator(client, transformer, sample_config, today=lambda: TODAY)


class TestOrders:

    def test_status_breakdown_counts_every_listed_order(self, enumerator, client):
        by_day = {
            "2024-05-01 00:00:00": [],
            "2024-05-02 00:00:00": [
                magento_order("1", status="complete"),
                magento_order("2", status="canceled"),
                magento_order("3", status="pending"),
            ],
            "2024-05-03 00:00:00": [],
        }
        client.find_orders.side_effect = lambda start, end: by_day[start]

        purchases = list(enumerator.iter_orders(date(2024, 5, 1), date(2024, 5, 3)))

        assert purchases == [{"invoice_number": "1"}]
        assert enumerator.status_counts == {"complete": 1, "canceled": 1, "pending": 1}
        assert client.find_orders.call_count == 3

    def test_orders_from_other_stores_are_not_emitted(self, enumerator, client):
        client.store_id = "2"
        client.find_orders.return_value = [
            magento_order("1", store_id="1"),
            magento_order("2", store_id="2"),
        ]

        purchases = list(enumerator.iter_orders(date(2024, 5, 10), date(2024, 5, 10)))

        assert purchases == [{"invoice_number": "2"}]
        assert enumerator.status_counts == {"complete": 2}

    def test_rejected_orders_are_not_yielded(self, enumerator, client, transformer):
        client.find_orders.return_value = [magento_order("1")]
        transformer.build_order.side_effect = lambda order, importing=False: None

        assert list(enumerator.iter_orders(date(2024, 5, 10), date(2024, 5, 10))) == []

    def test_importing_flag_is_forwarded(self, enumerator, client, transformer):
        client.find_orders.return_value = [magento_order("1")]

        list(enumerator.iter_orders(date(2024, 5, 10), date(2024, 5, 10), importing=True))

        transformer.build_order.assert_called_once_with(client.find_orders.return_value[0], True)

    def test_next_bucket_is_listed_only_after_consumer_pulls(self, enumerator, client):
        client.find_orders.return_value = [magento_order("1")]

        stream = enumerator.iter_orders(date(2024, 5, 1), date(2024, 5, 3))
        next(stream)

        assert client.find_orders.call_count == 1

    def test_list_fault_propagates(self, enumerator, client):
        client.find_orders.side_effect = TransientRemoteFault("Internal error")

        with pytest.raises(TransientRemoteFault):
            list(enumerator.iter_orders(date(2024, 5, 1), date(2024, 5, 3)))


class TestCustomers:

    def test_detail_is_resolved_per_customer(self, enumerator, client):
        client.find_customers.return_value = [{"customer_id": "1", "email": "list@example.com"}]
        client.get_customer_info.return_value = {"customer_id": "1", "email": "detail@example.com"}

        customers = list(enumerator.iter_customers(date(2024, 5, 10), date(2024, 5, 10)))

        assert customers == [{"email": "detail@example.com"}]
        client.find_customers.assert_called_once_with("2024-05-10 00:00:00", "2024-05-10 23:59:59", False)

    def test_list_record_is_used_when_detail_lookup_fails(self, enumerator, client):
        client.find_customers.return_value = [{"customer_id": "1", "email": "list@example.com"}]
        client.get_customer_info.return_value = None

        customers = list(enumerator.iter_customers(date(2024, 5, 10), date(2024, 5, 10)))

        assert customers == [{"email": "list@example.com"}]


class TestProducts:

    def test_month_buckets_over_last_months(self, enumerator, client):
        client.list_products.return_value = []

        list(enumerator.iter_products(months=2))

        assert [c.args for c in client.list_products.call_args_list] == [
            ("2024-03-10 00:00:00", "2024-04-09 23:59:59"),
            ("2024-04-10 00:00:00", "2024-05-09 23:59:59"),
            ("2024-05-10 00:00:00", "2024-05-10 23:59:59"),
        ]

    def test_whole_catalog_without_months(self, enumerator, client, transformer):
        client.list_products.return_value = [{"sku": "SKU-1"}, {"sku": None}]
        client.find_product_info.return_value = {"sku": "SKU-1", "type_id": "simple"}
        transformer.build_product.return_value = {"sku": "SKU-1"}

        products = list(enumerator.iter_products(months=None))

        assert products == [{"sku": "SKU-1"}]
        client.list_products.assert_called_once_with()
        transformer.build_product.assert_called_once_with("SKU-1", "simple", {"sku": "SKU-1", "type_id": "simple"})
