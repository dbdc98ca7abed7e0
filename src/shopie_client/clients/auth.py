from __future__ import annotations

from dataclasses import dataclass

from ..error_mapper import looks_like_duplicate_email
from ..exceptions import ApiError, AuthError, DuplicateEmailError, InvalidCredentialsError, ValidationError
from ..http_client import HttpClient
from ..models import AuthResponse
from .base import parse_model


@dataclass
class AuthClient:
    """Credential exchange. These calls never carry a bearer token."""

    http: HttpClient

    async def login(self, email: str, password: str) -> AuthResponse:
        payload = {"email": email, "motDePasse": password}
        try:
            data = await self.http.request("POST", "/auth/login", json_body=payload)
        except (AuthError, ValidationError) as exc:
            raise InvalidCredentialsError(
                code="INVALID_CREDENTIALS",
                message=exc.message,
                details=exc.details,
                status_code=exc.status_code,
                raw_payload=exc.raw_payload,
            ) from exc
        return parse_model(AuthResponse, data)

    async def register(self, name: str, email: str, password: str) -> AuthResponse:
        payload = {"nom": name, "email": email, "motDePasse": password}
        try:
            data = await self.http.request("POST", "/auth/register", json_body=payload)
        except ApiError as exc:
            if looks_like_duplicate_email(exc):
                raise DuplicateEmailError(
                    code="DUPLICATE_EMAIL",
                    message=exc.message,
                    details=exc.details,
                    status_code=exc.status_code,
                    raw_payload=exc.raw_payload,
                ) from exc
            raise
        return parse_model(AuthResponse, data)
