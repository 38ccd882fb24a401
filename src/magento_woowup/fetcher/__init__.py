"""Magento SOAP access: transport, session gateway and repository clients."""

from .gateway import RpcGateway
from .magento_client import MagentoClient, MagentoV1Client, MagentoV2Client, create_magento_client
from .retry_handler import RetryHandler
from .transport import SoapTransport

__all__ = [
    "MagentoClient",
    "MagentoV1Client",
    "MagentoV2Client",
    "RetryHandler",
    "RpcGateway",
    "SoapTransport",
    "create_magento_client",
]
