"""FastAPI in-memory mock of the WoowUp API for local runs and tests."""

import base64
import json
import os
import random
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def _error(status_code: int, code: str, message: str, use_payload: bool = True) -> JSONResponse:
    """WoowUp reports errors either in ``payload.errors`` or in ``message``."""
    if use_payload:
        content = {"code": code, "payload": {"errors": [message]}}
    else:
        content = {"code": code, "message": message}
    return JSONResponse(status_code=status_code, content=content)


def _ok(payload: Any = None, status_code: int = 200) -> JSONResponse:
    content = {"code": "ok", "payload": payload if payload is not None else {}}
    return JSONResponse(status_code=status_code, content=content)


class WoowUpStore:
    """In-memory accounts, purchases and products."""

    def __init__(self):
        self.users: List[Dict[str, Any]] = []
        self.purchases: Dict[str, Dict[str, Any]] = {}
        self.products: Dict[str, Dict[str, Any]] = {}

    def find_user(self, email: Optional[str] = None, document: Optional[str] = None) -> Optional[Dict]:
        for user in self.users:
            if email and user.get("email") == email:
                return user
            if document and user.get("document") == document:
                return user
        return None

    def purchase_owner(self, purchase: Dict[str, Any]) -> Optional[Dict]:
        return self.find_user(purchase.get("email"), purchase.get("document"))


def create_mock_app(
    api_key: Optional[str] = None,
    store: Optional[WoowUpStore] = None,
    random_seed: Optional[int] = None,
    error_rate: float = 0.0
) -> FastAPI:
    """
    Create a FastAPI mock of the WoowUp API.

    Args:
        api_key: Expected API key (any ``Basic`` key is accepted when None)
        store: Backing store, exposed as ``app.state.store``
        random_seed: Seed for deterministic error simulation
        error_rate: Probability of returning a 500 error (0.0-1.0)

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Mock API - WoowUp")
    app.state.store = store or WoowUpStore()
    rng = random.Random(random_seed)

    @app.middleware("http")
    async def authenticate(request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)

        header = request.headers.get("Authorization", "")
        if not header.startswith("Basic ") or (api_key is not None and header != f"Basic {api_key}"):
            return _error(401, "unauthorized", "Invalid API key", use_payload=False)

        if error_rate and rng.random() < error_rate:
            return _error(500, "internal_error", "Simulated error", use_payload=False)

        return await call_next(request)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": "woowup"}

    @app.get("/multiusers/exist")
    async def user_exists(email: Optional[str] = None, document: Optional[str] = None):
        exists = app.state.store.find_user(email, document) is not None
        return _ok({"exist": exists})

    @app.post("/users")
    async def create_user(request: Request):
        customer = await request.json()
        if app.state.store.find_user(customer.get("email"), customer.get("document")):
            return _error(409, "user_already_exist", "User already exists")
        app.state.store.users.append(customer)
        return _ok(status_code=201)

    @app.put("/multiusers")
    async def update_user(request: Request):
        customer = await request.json()
        user = app.state.store.find_user(customer.get("email"), customer.get("document"))
        if user is None:
            return _error(404, "user_not_found", "User not found")
        user.update(customer)
        return _ok()

    @app.post("/purchases")
    async def create_purchase(request: Request):
        purchase = await request.json()
        invoice_number = str(purchase.get("invoice_number"))
        if app.state.store.purchase_owner(purchase) is None:
            return _error(404, "user_not_found", "Customer not found")
        if invoice_number in app.state.store.purchases:
            return _error(409, "duplicated_purchase_number", f"Purchase {invoice_number} already exists")
        app.state.store.purchases[invoice_number] = purchase
        return _ok(status_code=201)

    @app.put("/purchases")
    async def update_purchase(request: Request):
        purchase = await request.json()
        invoice_number = str(purchase.get("invoice_number"))
        existing = app.state.store.purchases.get(invoice_number)
        if existing is None:
            return _error(404, "purchase_not_found", "Purchase not found")
        if app.state.store.purchase_owner(existing) is not app.state.store.purchase_owner(purchase):
            return _error(
                400,
                "bad_request",
                "The purchase is associated with a different customer",
                use_payload=False
            )
        existing.update(purchase)
        return _ok()

    @app.post("/products")
    async def create_product(request: Request):
        product = await request.json()
        sku = product.get("sku")
        if not sku:
            return _error(400, "bad_request", "Missing sku")
        app.state.store.products[sku] = product
        return _ok(status_code=201)

    @app.put("/products/{encoded_sku:path}")
    async def update_product(encoded_sku: str, request: Request):
        sku = base64.b64decode(encoded_sku).decode("utf-8")
        existing = app.state.store.products.get(sku)
        if existing is None:
            return _error(404, "not_found", f"Product {sku} not found", use_payload=False)
        existing.update(await request.json())
        return _ok()

    @app.get("/products")
    async def search_products(page: int = 0, limit: int = 100, search: Optional[str] = None):
        filters = json.loads(search) if search else {}
        products = list(app.state.store.products.values())
        if filters.get("with_stock"):
            products = [p for p in products if (p.get("stock") or 0) > 0]
        start = page * limit
        return _ok(products[start:start + limit])

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads MOCK_API_KEY, RANDOM_SEED and ERROR_RATE from the environment.
    """
    seed = os.getenv("RANDOM_SEED")
    return create_mock_app(
        api_key=os.getenv("MOCK_API_KEY"),
        random_seed=int(seed) if seed else None,
        error_rate=float(os.getenv("ERROR_RATE", 0.0))
    )
