from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import httpx

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from shopie_client.auth_store import AuthStore  # noqa: E402
from shopie_client.config import ClientConfig  # noqa: E402
from shopie_client.http_client import HttpClient  # noqa: E402
from shopie_client.models import SessionData, User  # noqa: E402
from shopie_client.storefront import Storefront  # noqa: E402

BASE_URL = "https://shop.example.test/api"

Handler = Callable[[httpx.Request], "httpx.Response | Awaitable[httpx.Response]"]


def make_config(**overrides: Any) -> ClientConfig:
    values: dict[str, Any] = {
        "env_name": "test",
        "api_base_url": BASE_URL,
        "retries": 2,
        "retry_backoff_seconds": 0,
    }
    values.update(overrides)
    return ClientConfig(**values)


def make_http(handler: Handler, **config_overrides: Any) -> HttpClient:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpClient(make_config(**config_overrides), client=client)


def user_payload(user_id: int = 7, role: str = "USER", email: str = "lina@example.test") -> dict[str, Any]:
    return {"id": user_id, "nom": "Lina", "email": email, "role": role, "telephone": None, "adresse": None}


def product_payload(product_id: int, price: float = 10.0, name: str | None = None) -> dict[str, Any]:
    return {
        "id": product_id,
        "nom": name or f"Produit {product_id}",
        "prix": price,
        "stock": 12,
        "categorie": {"id": 1, "nom": "Épicerie"},
        "imageUrl": f"/images/p{product_id}.png",
    }


def line_payload(line_id: int, product_id: int, quantity: int, price: float = 10.0) -> dict[str, Any]:
    return {"id": line_id, "product": product_payload(product_id, price), "quantite": quantity}


def cart_payload(*lines: dict[str, Any]) -> dict[str, Any]:
    return {"id": 1, "items": list(lines)}


def body_of(request: httpx.Request) -> Any:
    if not request.content:
        return None
    return json.loads(request.content)


def make_storefront(
    handler: Handler,
    tmp_path: Path,
    *,
    token: str | None = "token-1",
    role: str = "USER",
) -> Storefront:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    store = AuthStore(directory=tmp_path)
    app = Storefront.create(make_config(), http_client=client, store=store)
    if token:
        store.save(SessionData(token=token, user=User.model_validate(user_payload(role=role)), base_url=BASE_URL))
        app.session.restore()
    return app


class Recorder:
    """Route table for ``httpx.MockTransport`` that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def add(self, method: str, path: str, *responses: Any) -> None:
        self._routes.setdefault((method.upper(), "/api" + path), []).extend(responses)

    def reset(self) -> None:
        self.calls.clear()
        self._routes.clear()

    def seen(self) -> list[str]:
        return [f"{request.method} {request.url.path.removeprefix('/api')}" for request in self.calls]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route for {request.method} {request.url.path}"})
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome = outcome(request)
            if not isinstance(outcome, httpx.Response):
                outcome = await outcome
        if isinstance(outcome, httpx.Response):
            # queued responses may be served more than once
            outcome = httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)
        return outcome
