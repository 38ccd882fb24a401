"""RPC transport to the Magento SOAP API."""

from typing import Any, Optional, Protocol

import requests
from zeep import Client, Settings
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault
from zeep.helpers import serialize_object
from zeep.transports import Transport

from magento_woowup.exceptions import (
    PermanentRemoteFault,
    SessionExpiredFault,
    TransientRemoteFault,
)

# Magento API fault codes
ACCESS_DENIED_FAULT = "2"
SESSION_EXPIRED_FAULT = "5"

WSDL_PATHS = {
    1: "/api/soap/?wsdl",
    2: "/api/v2_soap/?wsdl",
}


class RpcTransport(Protocol):
    """Request/response interface to the source system."""

    def login(self, username: str, api_key: str) -> str:
        """Authenticate and return a session token."""
        ...

    def invoke(self, method: str, *args) -> Any:
        """Call a remote method; the session token is the first argument."""
        ...


def unwrap_result(value: Any) -> Any:
    """
    Convert a decoded SOAP result to plain dicts and lists.

    SOAP v1 returns associative arrays as ``{"item": [{"key": k, "value": v}]}``
    maps; these become dicts. Every other structure is walked recursively.
    """
    if isinstance(value, dict):
        items = value.get("item") if len(value) == 1 else None
        if isinstance(items, list) and all(
            isinstance(i, dict) and set(i) == {"key", "value"} for i in items
        ):
            return {i["key"]: unwrap_result(i["value"]) for i in items}
        if isinstance(items, list):
            return [unwrap_result(i) for i in items]
        return {k: unwrap_result(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unwrap_result(v) for v in value]
    return value


class SoapTransport:
    """
    zeep-backed SOAP transport.

    A fresh zeep client is built on every login so a reconnect never reuses
    state from an expired session. WSDL caching is disabled and a custom
    User-Agent is sent with every request.
    """

    def __init__(
        self,
        host: str,
        version: int = 1,
        user_agent: str = "magento-woowup-sync",
        timeout: float = 60.0
    ):
        """
        Initialize transport.

        Args:
            host: Magento store base URL
            version: API generation (selects the WSDL)
            user_agent: User-Agent header value
            timeout: Operation timeout in seconds
        """
        self.wsdl = host.rstrip("/") + WSDL_PATHS[version]
        self.user_agent = user_agent
        self.timeout = timeout
        self._client: Optional[Client] = None

    def _build_client(self) -> Client:
        session = requests.Session()
        session.headers.update({"User-Agent": self.user_agent})
        transport = Transport(session=session, cache=None, operation_timeout=self.timeout)
        return Client(self.wsdl, transport=transport, settings=Settings(strict=False))

    def login(self, username: str, api_key: str) -> str:
        try:
            self._client = self._build_client()
        except (ZeepError, requests.RequestException) as e:
            raise TransientRemoteFault(f"Could not load WSDL {self.wsdl}: {e}") from e

        return self.invoke("login", username, api_key)

    def invoke(self, method: str, *args) -> Any:
        if self._client is None:
            raise SessionExpiredFault("Transport is not connected")

        try:
            result = getattr(self._client.service, method)(*args)
        except Fault as e:
            code = str(e.code) if e.code is not None else None
            if code == SESSION_EXPIRED_FAULT:
                raise SessionExpiredFault(e.message, code) from e
            if code == ACCESS_DENIED_FAULT:
                raise PermanentRemoteFault(e.message, code) from e
            raise TransientRemoteFault(e.message, code) from e
        except (ZeepError, requests.RequestException) as e:
            raise TransientRemoteFault(str(e)) from e

        return unwrap_result(serialize_object(result, dict))
