from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Callable, Iterable

from pydantic import ValidationError as ModelValidationError

from .error_mapper import to_cart_error
from .exceptions import ApiError, CartError, NetworkError
from .logger import get_logger, log_action
from .models import Cart, CartLine, Session
from .session import SessionManager

logger = get_logger(__name__)

CART_PATH = "/cart"
CART_ITEMS_PATH = "/cart/items"


@dataclass(frozen=True)
class CartState:
    items: tuple[CartLine, ...] = ()
    loading: bool = False
    last_synced_at: int = 0
    error: str | None = None


CartListener = Callable[[CartState], None]


class CartSynchronizer:
    """Client view of the authenticated user's cart.

    The server cart is the only source of truth: every successful call
    replaces ``items`` wholesale with what the server answered, and nothing
    is computed locally except the display queries. Each request takes a
    marker from a monotonic counter; an answer is applied only if its marker
    is still the latest one issued, so a slow older response can never
    overwrite a newer one.
    """

    def __init__(self, session: SessionManager) -> None:
        self.session = session
        self._state = CartState()
        self._issued = 0
        self._in_flight: set[int] = set()
        self._listeners: list[CartListener] = []
        session.add_listener(self._on_session_change)

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> tuple[CartLine, ...]:
        return self._state.items

    def add_listener(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # queries

    def is_product_in_cart(self, product_id: int) -> CartLine | None:
        for line in self._state.items:
            if line.product.id == product_id:
                return line
        return None

    def get_product_quantity_in_cart(self, product_id: int) -> int:
        line = self.is_product_in_cart(product_id)
        return line.quantity if line else 0

    def get_cart_items_count(self) -> int:
        return len(self._state.items)

    def get_cart_total(self) -> Decimal:
        return sum((line.subtotal for line in self._state.items), Decimal("0"))

    # server calls

    async def load_cart(self) -> CartState:
        marker = self._begin()
        try:
            payload = await self.session.authenticated_request("GET", CART_PATH)
            if not Cart.looks_like_cart(payload):
                # empty bodies and proxy error pages must not read as an empty cart
                raise NetworkError(
                    code="MALFORMED_RESPONSE",
                    message="The server answered without a cart",
                    details=type(payload).__name__,
                )
            cart = self._parse_cart(payload)
        except ApiError as exc:
            error = to_cart_error(exc)
            self._finish(marker, error=error.reason)
            log_action(logger, "cart", "load", "error", level=logging.WARNING, kind=error.kind)
            raise error from exc
        except asyncio.CancelledError:
            self._finish(marker)
            raise
        applied = self._finish(marker, items=cart.items)
        if not applied:
            logger.debug("discarded stale cart response #%s (latest #%s)", marker, self._issued)
        return self._state

    async def refresh(self) -> CartState:
        return await self.load_cart()

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> CartState:
        self._check_quantity(quantity)
        line = self.is_product_in_cart(product_id)
        if line is not None:
            return await self.update_cart_item(line.id, line.quantity + quantity)
        return await self._mutate(
            "add",
            "POST",
            CART_ITEMS_PATH,
            json_body={"productId": product_id, "quantite": quantity},
        )

    async def update_cart_item(self, line_id: int, new_quantity: int) -> CartState:
        if new_quantity <= 0:
            return await self.remove_from_cart(line_id)
        return await self._mutate(
            "update",
            "PUT",
            f"{CART_ITEMS_PATH}/{line_id}",
            json_body={"quantite": new_quantity},
        )

    async def remove_from_cart(self, line_id: int) -> CartState:
        return await self._mutate("remove", "DELETE", f"{CART_ITEMS_PATH}/{line_id}")

    async def remove_product_from_cart(self, product_id: int) -> CartState:
        line = self.is_product_in_cart(product_id)
        if line is None:
            raise CartError(
                code="NOT_IN_CART",
                message="Ce produit n'est pas dans le panier",
                details={"product_id": product_id},
                kind="not_found",
            )
        return await self.remove_from_cart(line.id)

    async def clear_cart(self) -> CartState:
        return await self._mutate("clear", "DELETE", CART_PATH, empty_when_blank=True)

    def reset(self) -> None:
        """Drop the cart and make every in-flight answer stale."""
        self._issued += 1
        self._in_flight.clear()
        self._commit(CartState(last_synced_at=self._issued))

    # internals

    async def _mutate(
        self,
        action: str,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        empty_when_blank: bool = False,
    ) -> CartState:
        marker = self._begin()
        try:
            payload = await self.session.authenticated_request(method, path, json_body=json_body)
        except ApiError as exc:
            error = to_cart_error(exc)
            self._finish(marker, error=error.reason)
            log_action(logger, "cart", action, "error", level=logging.WARNING, kind=error.kind, code=error.code)
            raise error from exc
        except asyncio.CancelledError:
            self._finish(marker)
            raise

        log_action(logger, "cart", action, "success")
        cart = self._cart_from_mutation(payload, empty_when_blank)
        if cart is None:
            self._finish(marker)
        elif self._finish(marker, items=cart.items):
            return self._state
        # the answer carried no usable cart or was overtaken; fetch the authoritative one
        try:
            return await self.load_cart()
        except CartError as exc:
            # the mutation was accepted; the failed reload is reported through state.error only
            log_action(logger, "cart", action, "refresh_failed", level=logging.WARNING, kind=exc.kind)
            return self._state

    def _cart_from_mutation(self, payload: Any, empty_when_blank: bool) -> Cart | None:
        if Cart.looks_like_cart(payload):
            try:
                return self._parse_cart(payload)
            except NetworkError:
                logger.warning("cart mutation answered with an unreadable cart")
                return None
        if empty_when_blank and not payload:
            return Cart()
        return None

    @staticmethod
    def _parse_cart(payload: Any) -> Cart:
        try:
            return Cart.from_payload(payload)
        except ModelValidationError as exc:
            raise NetworkError(
                code="MALFORMED_RESPONSE",
                message="Unexpected cart payload from the server",
                details=exc.errors(include_url=False),
            ) from exc

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise CartError(
                code="INVALID_QUANTITY",
                message="La quantité doit être un entier supérieur ou égal à 1",
                details={"quantity": quantity},
                kind="validation",
            )

    def _begin(self) -> int:
        self._issued += 1
        marker = self._issued
        self._in_flight.add(marker)
        self._commit(replace(self._state, loading=True))
        return marker

    def _finish(
        self,
        marker: int,
        *,
        items: Iterable[CartLine] | None = None,
        error: str | None = None,
    ) -> bool:
        """Close request ``marker``; return True when its items were applied."""
        self._in_flight.discard(marker)
        current = marker == self._issued
        changes: dict[str, Any] = {"loading": bool(self._in_flight)}
        applied = False
        if current and items is not None:
            changes.update(items=tuple(items), last_synced_at=marker, error=None)
            applied = True
        elif current and error is not None:
            changes["error"] = error
        self._commit(replace(self._state, **changes))
        return applied

    def _commit(self, state: CartState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _on_session_change(self, previous: Session, current: Session) -> None:
        if not previous.is_authenticated:
            return
        if not current.is_authenticated or (
            previous.user is not None and current.user is not None and previous.user.id != current.user.id
        ):
            self.reset()
