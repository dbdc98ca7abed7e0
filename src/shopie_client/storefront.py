from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import TracebackType

import httpx

from .auth_store import AuthStore
from .cart import CartState, CartSynchronizer
from .clients import AdminUsersClient, AnalyticsClient, CatalogClient, ImagesClient, OrdersClient, ProfileClient
from .config import ClientConfig, load_config
from .exceptions import ApiError, AuthError, CartError, NotAuthenticatedError, ValidationError
from .http_client import HttpClient
from .logger import get_logger, log_action
from .models import Order, PaymentMethod, Session
from .session import SessionManager

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]{8,15}$")
MIN_ADDRESS_LENGTH = 10


def validate_delivery_details(phone: str | None, address: str | None) -> dict[str, str]:
    errors: dict[str, str] = {}
    if phone is not None:
        if not phone.strip():
            errors["phone"] = "Le numéro de téléphone est obligatoire"
        elif not PHONE_PATTERN.match(phone.strip()):
            errors["phone"] = "Format de téléphone invalide"
    if address is not None:
        if not address.strip():
            errors["address"] = "L'adresse de livraison est obligatoire"
        elif len(address.strip()) < MIN_ADDRESS_LENGTH:
            errors["address"] = f"L'adresse doit contenir au moins {MIN_ADDRESS_LENGTH} caractères"
    return errors


@dataclass
class Storefront:
    """Process-lifetime container handed to the UI layer.

    Built once with explicit dependencies; the UI reads ``session`` and
    ``cart`` from it and calls :meth:`refresh` when a cart-dependent screen
    gains focus.
    """

    config: ClientConfig
    http: HttpClient
    session: SessionManager
    cart: CartSynchronizer
    catalog: CatalogClient
    orders: OrdersClient
    profile: ProfileClient
    admin_users: AdminUsersClient
    analytics: AnalyticsClient
    images: ImagesClient

    @classmethod
    def create(
        cls,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        store: AuthStore | None = None,
    ) -> "Storefront":
        config = config or load_config()
        http = HttpClient(config, client=http_client)
        session = SessionManager(http, store=store)
        return cls(
            config=config,
            http=http,
            session=session,
            cart=CartSynchronizer(session),
            catalog=CatalogClient(session),
            orders=OrdersClient(session),
            profile=ProfileClient(session),
            admin_users=AdminUsersClient(session),
            analytics=AnalyticsClient(session),
            images=ImagesClient(session),
        )

    async def start(self) -> Session:
        """Restore the persisted session and prime the cart.

        A stale token is only discovered here, by the first cart load: the
        401 logs the session out and the error is not re-raised.
        """
        restored = self.session.restore()
        if restored.is_authenticated:
            try:
                await self.cart.load_cart()
            except CartError as exc:
                log_action(logger, "storefront", "start", "cart_unavailable", level=logging.WARNING, kind=exc.kind)
        return self.session.session

    async def refresh(self) -> CartState | None:
        if not self.session.is_authenticated:
            return None
        return await self.cart.refresh()

    async def checkout(
        self,
        payment_method: PaymentMethod | str,
        phone: str | None = None,
        address: str | None = None,
    ) -> Order:
        method = PaymentMethod(payment_method)
        if not self.session.is_authenticated:
            raise NotAuthenticatedError(
                code="NOT_AUTHENTICATED",
                message="Vous devez être connecté pour passer commande.",
            )
        if not self.cart.items:
            raise ValidationError(code="EMPTY_CART", message="Votre panier est vide", status_code=0)
        errors = validate_delivery_details(phone, address)
        if errors:
            raise ValidationError(
                code="VALIDATION_ERROR",
                message="Veuillez corriger les erreurs dans le formulaire",
                details=errors,
                status_code=0,
            )

        if phone is not None or address is not None:
            try:
                await self.profile.update_profile(phone=phone, address=address)
            except AuthError:
                raise
            except ApiError as exc:
                # delivery details are a convenience; the order still goes through
                log_action(logger, "storefront", "update_profile", "soft_failed", level=logging.WARNING, code=exc.code)

        order = await self.orders.create_order(method)
        log_action(logger, "storefront", "checkout", "success", order_id=order.id, payment_method=method.value)
        try:
            await self.cart.load_cart()
        except CartError as exc:
            log_action(logger, "storefront", "checkout", "cart_reload_failed", level=logging.WARNING, kind=exc.kind)
        return order

    async def close(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "Storefront":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
