from __future__ import annotations

from dataclasses import dataclass

from ..models import User
from .base import BaseClient, parse_model


@dataclass
class ProfileClient(BaseClient):
    async def get_profile(self) -> User:
        return parse_model(User, await self._request("GET", "/users/profile"))

    async def update_profile(self, phone: str | None = None, address: str | None = None) -> User | None:
        body = {}
        if phone is not None:
            body["telephone"] = phone.strip()
        if address is not None:
            body["adresse"] = address.strip()
        data = await self._request("PUT", "/users/profile", json_body=body)
        return parse_model(User, data) if data else None
