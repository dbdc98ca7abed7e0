from .auth_store import AuthStore
from .cart import CartState, CartSynchronizer
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    ApiError,
    AuthError,
    CartError,
    ConflictError,
    DuplicateEmailError,
    ForbiddenError,
    InvalidCredentialsError,
    NetworkError,
    NotAuthenticatedError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from .http_client import HttpClient
from .models import (
    AuthResponse,
    Cart,
    CartLine,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Page,
    PaymentMethod,
    Product,
    Session,
    SessionData,
    SessionStatus,
    User,
    UserRole,
)
from .session import SessionManager
from .storefront import Storefront

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AuthError",
    "AuthResponse",
    "AuthStore",
    "Cart",
    "CartError",
    "CartLine",
    "CartState",
    "CartSynchronizer",
    "Category",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "DuplicateEmailError",
    "ForbiddenError",
    "HttpClient",
    "InvalidCredentialsError",
    "NetworkError",
    "NotAuthenticatedError",
    "NotFoundError",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Page",
    "PaymentMethod",
    "Product",
    "ServerError",
    "Session",
    "SessionData",
    "SessionManager",
    "SessionStatus",
    "Storefront",
    "User",
    "UserRole",
    "ValidationError",
    "load_config",
]
