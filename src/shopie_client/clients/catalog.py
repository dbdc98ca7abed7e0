from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from ..exceptions import ApiError, AuthError, NotAuthenticatedError
from ..logger import get_logger, log_action
from ..models import Category, Product
from .base import BaseClient, parse_list, parse_model

logger = get_logger(__name__)


def _product_body(payload: Mapping[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    renames = {"name": "nom", "price": "prix", "image_url": "imageUrl"}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, Decimal):
            value = float(value)
        body[renames.get(key, key)] = value
    category_id = body.pop("category_id", None)
    if category_id is not None:
        body["categorie"] = {"id": category_id}
    return body


def _category_body(payload: Mapping[str, Any]) -> dict[str, Any]:
    body = {("nom" if key == "name" else key): value for key, value in payload.items() if value is not None}
    return body


@dataclass
class CatalogClient(BaseClient):
    """Products and categories. Listing reads work with or without a session."""

    async def list_products(self) -> list[Product]:
        return parse_list(Product, await self._public("GET", "/products"))

    async def search_products(self, name: str) -> list[Product]:
        data = await self._public("GET", "/products/search", params={"nom": name})
        return parse_list(Product, data)

    async def products_by_category(self, category_id: int) -> list[Product]:
        return parse_list(Product, await self._public("GET", f"/products/category/{category_id}"))

    async def get_product(self, product_id: int) -> Product:
        return parse_model(Product, await self._public("GET", f"/products/{product_id}"))

    async def list_categories(self) -> list[Category]:
        """Category chips are decoration: a failure here must not block product display."""
        try:
            return parse_list(Category, await self._public("GET", "/categories"))
        except (AuthError, NotAuthenticatedError):
            raise
        except ApiError as exc:
            log_action(
                logger,
                "catalog",
                "list_categories",
                "soft_failed",
                level=logging.WARNING,
                code=exc.code,
                status_code=exc.status_code,
            )
            return []

    async def search_categories(self, name: str) -> list[Category]:
        data = await self._public("GET", "/categories/search", params={"nom": name})
        return parse_list(Category, data)

    async def get_category(self, category_id: int) -> Category:
        return parse_model(Category, await self._public("GET", f"/categories/{category_id}"))

    async def create_product(self, payload: Mapping[str, Any]) -> Product:
        data = await self._request("POST", "/products", json_body=_product_body(payload))
        return parse_model(Product, data)

    async def update_product(self, product_id: int, payload: Mapping[str, Any]) -> Product:
        data = await self._request("PUT", f"/products/{product_id}", json_body=_product_body(payload))
        return parse_model(Product, data)

    async def delete_product(self, product_id: int) -> None:
        await self._request("DELETE", f"/products/{product_id}")

    async def create_category(self, payload: Mapping[str, Any]) -> Category:
        data = await self._request("POST", "/categories", json_body=_category_body(payload))
        return parse_model(Category, data)

    async def update_category(self, category_id: int, payload: Mapping[str, Any]) -> Category:
        data = await self._request("PUT", f"/categories/{category_id}", json_body=_category_body(payload))
        return parse_model(Category, data)

    async def delete_category(self, category_id: int) -> None:
        await self._request("DELETE", f"/categories/{category_id}")
