from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from ..exceptions import NetworkError

if TYPE_CHECKING:
    from ..session import SessionManager

M = TypeVar("M", bound=BaseModel)


def parse_model(model: type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except ModelValidationError as exc:
        raise NetworkError(
            code="MALFORMED_RESPONSE",
            message=f"Unexpected {model.__name__} payload from the server",
            details=exc.errors(include_url=False),
        ) from exc


def parse_list(model: type[M], payload: Any) -> list[M]:
    if isinstance(payload, dict) and isinstance(payload.get("content"), list):
        payload = payload["content"]
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise NetworkError(
            code="MALFORMED_RESPONSE",
            message=f"Expected a list of {model.__name__} from the server",
            details=type(payload).__name__,
        )
    return [parse_model(model, row) for row in payload]


@dataclass
class BaseClient:
    session: "SessionManager"

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self.session.authenticated_request(method, path, **kwargs)

    async def _public(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self.session.public_request(method, path, **kwargs)
