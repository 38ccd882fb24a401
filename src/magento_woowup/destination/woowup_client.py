"""HTTP client for the WoowUp API with resource-style operations."""

import base64
import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from magento_woowup.exceptions import DestinationApiError


def encode_sku(sku: str) -> str:
    """Products are addressed by their base64-encoded sku."""
    return quote(base64.b64encode(sku.encode("utf-8")).decode("ascii"), safe="")


class WoowUpClient:
    """
    WoowUp API client wrapper around httpx.Client.

    Provides:
    - Configurable connect and read timeouts
    - Resources: users, multiusers, purchases, products
    - DestinationApiError for every non-2xx response or transport failure
    - Context manager for proper lifecycle management
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.woowup.com/apiv3",
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize client.

        Args:
            api_key: WoowUp account API key
            base_url: API base URL
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            http_client: Pre-built client (e.g. a FastAPI TestClient)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Authorization": f"Basic {api_key}",
            "Accept": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout)
        )

        self.users = UsersResource(self)
        self.multiusers = MultiusersResource(self)
        self.purchases = PurchasesResource(self)
        self.products = ProductsResource(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Perform a request and decode its JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters
            data: JSON body

        Returns:
            Decoded response body ({} when empty)

        Raises:
            DestinationApiError: On non-2xx responses or transport errors
        """
        try:
            response = self._client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=data,
                headers=self.headers
            )
        except httpx.HTTPError as e:
            raise DestinationApiError(None, None, str(e)) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise DestinationApiError.from_body(response.status_code, body)

        if not response.content:
            return {}
        return response.json()


class _Resource:
    def __init__(self, client: WoowUpClient):
        self.client = client


class UsersResource(_Resource):

    def create(self, customer: Dict[str, Any]) -> Any:
        return self.client.request("POST", "/users", data=customer)


class MultiusersResource(_Resource):

    def exist(self, identity: Dict[str, str]) -> bool:
        """Check whether any customer matches the email or document."""
        params = {k: v for k, v in identity.items() if v}
        response = self.client.request("GET", "/multiusers/exist", params=params)
        payload = response.get("payload") or {}
        return bool(payload.get("exist"))

    def update(self, customer: Dict[str, Any]) -> Any:
        return self.client.request("PUT", "/multiusers", data=customer)


class PurchasesResource(_Resource):

    def create(self, purchase: Dict[str, Any]) -> Any:
        return self.client.request("POST", "/purchases", data=purchase)

    def update(self, purchase: Dict[str, Any]) -> Any:
        return self.client.request("PUT", "/purchases", data=purchase)


class ProductsResource(_Resource):

    def create(self, product: Dict[str, Any]) -> Any:
        return self.client.request("POST", "/products", data=product)

    def update(self, sku: str, product: Dict[str, Any]) -> Any:
        return self.client.request("PUT", f"/products/{encode_sku(sku)}", data=product)

    def search(self, filters: Optional[Dict[str, Any]] = None, page: int = 0, limit: int = 100) -> List[Dict]:
        """
        Get one page of products.

        Returns:
            Products on the page; an empty list means there are no more pages
        """
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if filters:
            params["search"] = json.dumps(filters)
        response = self.client.request("GET", "/products", params=params)
        return response.get("payload") or []
