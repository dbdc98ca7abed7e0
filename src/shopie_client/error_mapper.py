from __future__ import annotations

import re
from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    CartError,
    ConflictError,
    ForbiddenError,
    NetworkError,
    NotAuthenticatedError,
    NotFoundError,
    ServerError,
    ValidationError,
)

GENERIC_NETWORK_MESSAGE = "Impossible de joindre le serveur. Vérifiez votre connexion puis réessayez."
GENERIC_SERVER_MESSAGE = "Le serveur a rencontré une erreur. Réessayez plus tard."

_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
}


def _message_from_payload(payload: Mapping[str, object] | str | None) -> str | None:
    if isinstance(payload, str):
        return payload.strip() or None
    if not payload:
        return None
    for key in ("message", "error", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    errors = payload.get("errors")
    if isinstance(errors, Mapping) and errors:
        return "; ".join(f"{field}: {text}" for field, text in errors.items())
    return None


def map_error(status_code: int, payload: Mapping[str, object] | str | None) -> ApiError:
    message = _message_from_payload(payload)
    raw = dict(payload) if isinstance(payload, Mapping) else payload
    details = payload.get("details") if isinstance(payload, Mapping) else None
    code = None
    if isinstance(payload, Mapping) and payload.get("code"):
        code = str(payload["code"])
    mapped: type[ApiError]
    if status_code == 401:
        mapped = AuthError
    elif status_code == 403:
        mapped = ForbiddenError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code >= 500:
        mapped = ServerError
        message = message or GENERIC_SERVER_MESSAGE
        code = code or "SERVER_ERROR"
    else:
        mapped = ApiError
    return mapped(
        code=code or _STATUS_CODES.get(status_code, "HTTP_ERROR"),
        message=message or f"HTTP error {status_code}",
        details=details,
        status_code=status_code,
        raw_payload=raw,
    )


def error_kind(error: Exception) -> str:
    if isinstance(error, CartError):
        return error.kind
    if isinstance(error, NetworkError):
        return "network"
    if isinstance(error, (AuthError, NotAuthenticatedError)):
        return "auth"
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, NotFoundError):
        return "not_found"
    if isinstance(error, ConflictError):
        return "conflict"
    if isinstance(error, ServerError):
        return "server"
    return "internal"


def to_cart_error(error: ApiError) -> CartError:
    message = error.message
    if isinstance(error, NetworkError) or not message:
        message = GENERIC_NETWORK_MESSAGE
    return CartError(
        code=error.code,
        message=message,
        details=error.details,
        status_code=error.status_code,
        raw_payload=error.raw_payload,
        kind=error_kind(error),
    )


_EMAIL_TAKEN = re.compile(r"(email|e-mail).*(existe|exists|already|déjà|utilis)", re.IGNORECASE)


def looks_like_duplicate_email(error: ApiError) -> bool:
    if isinstance(error, ConflictError):
        return True
    return isinstance(error, ValidationError) and bool(_EMAIL_TAKEN.search(error.message))
