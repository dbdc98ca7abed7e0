from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")


class ShopieModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class UserRole(str, Enum):
    CUSTOMER = "USER"
    ADMIN = "ADMIN"

    @classmethod
    def _missing_(cls, value: object) -> "UserRole | None":
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized in {"CUSTOMER", "USER", "ROLE_USER"}:
                return cls.CUSTOMER
            if normalized in {"ADMIN", "ROLE_ADMIN"}:
                return cls.ADMIN
        return None


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class PaymentMethod(str, Enum):
    CARD = "CARTE"
    CASH = "ESPECES"


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    AUTHENTICATED = "AUTHENTICATED"


class User(ShopieModel):
    id: int
    name: str = Field(default="", validation_alias=AliasChoices("nom", "name"))
    email: str
    role: UserRole = UserRole.CUSTOMER
    phone: str | None = Field(default=None, validation_alias=AliasChoices("telephone", "phone"))
    address: str | None = Field(default=None, validation_alias=AliasChoices("adresse", "address"))
    enabled: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


class AuthResponse(ShopieModel):
    token: str = Field(validation_alias=AliasChoices("token", "accessToken", "access_token"))
    user: User

    @model_validator(mode="before")
    @classmethod
    def _flat_user(cls, data: Any) -> Any:
        # some auth endpoints return the user fields next to the token
        if isinstance(data, dict) and "user" not in data and "email" in data:
            data = dict(data)
            data["user"] = {key: value for key, value in data.items() if key not in {"token", "accessToken", "access_token", "type"}}
        return data


class SessionData(BaseModel):
    token: str
    user: User
    base_url: str | None = None


@dataclass(frozen=True)
class Session:
    token: str | None = None
    user: User | None = None
    status: SessionStatus = SessionStatus.UNAUTHENTICATED

    def __post_init__(self) -> None:
        if (self.user is not None) != (self.status is SessionStatus.AUTHENTICATED):
            raise ValueError("user must be present exactly when the session is authenticated")
        if (self.token is not None) != (self.user is not None):
            raise ValueError("token must be present exactly when a user is present")

    @classmethod
    def anonymous(cls, status: SessionStatus = SessionStatus.UNAUTHENTICATED) -> "Session":
        return cls(status=status)

    @classmethod
    def authenticated(cls, token: str, user: User) -> "Session":
        return cls(token=token, user=user, status=SessionStatus.AUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED


class Category(ShopieModel):
    id: int
    name: str = Field(default="", validation_alias=AliasChoices("nom", "name"))
    description: str | None = None


class Product(ShopieModel):
    id: int
    name: str = Field(default="", validation_alias=AliasChoices("nom", "name"))
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("prix", "price"))
    stock: int | None = None
    category: Category | None = Field(default=None, validation_alias=AliasChoices("categorie", "category"))
    image_url: str | None = Field(default=None, validation_alias=AliasChoices("imageUrl", "image_url"))


class CartLine(ShopieModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    id: int
    product: Product = Field(validation_alias=AliasChoices("product", "produit"))
    quantity: int = Field(validation_alias=AliasChoices("quantite", "quantity"))

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity


class Cart(ShopieModel):
    id: int | None = None
    items: List[CartLine] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "cartItems", "lignes"),
    )
    total: Decimal | None = None

    @field_validator("items")
    @classmethod
    def _drop_empty_lines(cls, items: List[CartLine]) -> List[CartLine]:
        return [line for line in items if line.quantity >= 1]

    @classmethod
    def from_payload(cls, payload: Any) -> "Cart":
        if isinstance(payload, list):
            return cls(items=payload)
        return cls.model_validate(payload or {})

    @staticmethod
    def looks_like_cart(payload: Any) -> bool:
        if isinstance(payload, list):
            return True
        return isinstance(payload, dict) and any(key in payload for key in ("items", "cartItems", "lignes"))


class OrderItem(ShopieModel):
    id: int | None = None
    product_name: str | None = Field(default=None, validation_alias=AliasChoices("productName", "product_name"))
    quantity: int = Field(default=0, validation_alias=AliasChoices("quantite", "quantity"))
    price: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("prix", "price"))


class Order(ShopieModel):
    id: int
    total: Decimal = Decimal("0")
    date: datetime | None = None
    status: OrderStatus = Field(default=OrderStatus.PENDING, validation_alias=AliasChoices("statut", "status"))
    payment_method: Optional[PaymentMethod] = Field(
        default=None,
        validation_alias=AliasChoices("methodePaiement", "payment_method"),
    )
    items: List[OrderItem] = Field(default_factory=list, validation_alias=AliasChoices("orderItems", "items"))


class Page(ShopieModel, Generic[T]):
    content: List[T] = Field(default_factory=list)
    total_elements: int = Field(default=0, validation_alias=AliasChoices("totalElements", "total_elements"))
    total_pages: int = Field(default=0, validation_alias=AliasChoices("totalPages", "total_pages"))
    number: int = 0
    size: int = 0
