from __future__ import annotations

from dataclasses import dataclass

from ..models import Order, OrderStatus, PaymentMethod
from .base import BaseClient, parse_list, parse_model


@dataclass
class OrdersClient(BaseClient):
    async def create_order(self, payment_method: PaymentMethod | str) -> Order:
        # the order total is computed by the server from its own cart; no body is sent
        method = PaymentMethod(payment_method)
        data = await self._request("POST", "/orders", params={"methodePaiement": method.value})
        return parse_model(Order, data)

    async def list_orders(self) -> list[Order]:
        return parse_list(Order, await self._request("GET", "/orders"))

    async def get_order(self, order_id: int) -> Order:
        return parse_model(Order, await self._request("GET", f"/orders/{order_id}"))

    async def list_all_orders(self) -> list[Order]:
        return parse_list(Order, await self._request("GET", "/orders/admin/all"))

    async def list_orders_by_status(self, status: OrderStatus | str) -> list[Order]:
        value = OrderStatus(status).value
        return parse_list(Order, await self._request("GET", f"/orders/admin/status/{value}"))

    async def update_order_status(self, order_id: int, status: OrderStatus | str) -> Order | None:
        value = OrderStatus(status).value
        data = await self._request("PUT", f"/orders/admin/{order_id}/status", params={"statut": value})
        return parse_model(Order, data) if data else None
