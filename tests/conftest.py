"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest

from tests.fixtures.sample_data import FakeClock, FakeTransport


@pytest.fixture
def sample_config():
    """Provide a sample configuration for testing."""
    from magento_woowup.models.config import SyncConfig

    return SyncConfig(
        host="https://shop.example.com",
        apiuser="woowup",
        apikey="secret",
        woowup_api_key="wu-key",
        woowup_base_url="http://testserver",
        retry_base=2.0,
        retry_max_attempts=3,
    )


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """Recorded sleep durations, in call order."""
    return []


@pytest.fixture
def gateway(fake_transport, fake_clock, sleeps):
    from magento_woowup.fetcher.gateway import RpcGateway

    return RpcGateway(
        fake_transport,
        "woowup",
        "secret",
        idle_timeout=300,
        clock=fake_clock,
        sleep=sleeps.append,
    )


@pytest.fixture
def v1_client(gateway):
    from magento_woowup.fetcher.magento_client import MagentoV1Client

    return MagentoV1Client(gateway)


@pytest.fixture
def today():
    return date(2024, 5, 10)
