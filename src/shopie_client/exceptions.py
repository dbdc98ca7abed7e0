from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.code}: {self.message}"


class NetworkError(ApiError):
    """Transport failure, timeout or unreadable response: no usable HTTP answer."""


class NotAuthenticatedError(ApiError):
    """No token held; the request was never sent."""


class AuthError(ApiError):
    """401/403. Receiving one through an authenticated call forces a logout."""


class ForbiddenError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    """Login rejected by the server."""


class ValidationError(ApiError):
    """400/422 with the server's message kept verbatim."""


class DuplicateEmailError(ValidationError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class ServerError(ApiError):
    """5xx server-side failures."""


@dataclass
class CartError(ApiError):
    kind: str = "network"

    @property
    def reason(self) -> str:
        return self.message
