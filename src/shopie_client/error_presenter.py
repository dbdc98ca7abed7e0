from __future__ import annotations

from typing import Any

from .error_mapper import GENERIC_NETWORK_MESSAGE, error_kind
from .exceptions import ApiError, NetworkError

_ACTIONS = {
    "network": "Réessayer",
    "server": "Réessayer plus tard",
    "auth": "Se reconnecter",
    "validation": "Corriger la saisie",
    "not_found": "Actualiser",
    "conflict": "Actualiser",
}


def build_error_payload(error: Exception) -> dict[str, Any]:
    if isinstance(error, ApiError):
        kind = error_kind(error)
        return {
            "kind": kind,
            "code": error.code,
            "message": to_display_message(error),
            "status_code": error.status_code,
            "action": _ACTIONS.get(kind, "Contacter le support"),
        }
    return {
        "kind": "internal",
        "code": "INTERNAL_ERROR",
        "message": str(error),
        "status_code": None,
        "action": "Contacter le support",
    }


def to_display_message(error: Exception) -> str:
    if isinstance(error, NetworkError):
        return GENERIC_NETWORK_MESSAGE
    if isinstance(error, ApiError):
        return error.message
    return str(error)
