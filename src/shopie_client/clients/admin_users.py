from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..models import Page, User, UserRole
from .base import BaseClient, parse_model


@dataclass
class AdminUsersClient(BaseClient):
    async def list_users(
        self,
        page: int = 0,
        size: int = 50,
        sort_by: str = "nom",
        sort_dir: str = "asc",
        search: str | None = None,
    ) -> Page[User]:
        params: dict[str, Any] = {"page": page, "size": size, "sortBy": sort_by, "sortDir": sort_dir}
        if search and search.strip():
            params["search"] = search.strip()
        data = await self._request("GET", "/admin/users", params=params)
        return parse_model(Page[User], data)

    async def get_user(self, user_id: int) -> User:
        return parse_model(User, await self._request("GET", f"/admin/users/{user_id}"))

    async def update_user(self, user_id: int, payload: Mapping[str, Any]) -> User:
        renames = {"name": "nom", "new_password": "nouveauMotDePasse", "phone": "telephone", "address": "adresse"}
        body = {renames.get(key, key): value for key, value in payload.items() if value not in (None, "")}
        return parse_model(User, await self._request("PUT", f"/admin/users/{user_id}", json_body=body))

    async def change_role(self, user_id: int, role: UserRole | str) -> User:
        value = UserRole(role).value
        data = await self._request("PUT", f"/admin/users/{user_id}/role", params={"role": value})
        return parse_model(User, data)

    async def toggle_status(self, user_id: int) -> User:
        return parse_model(User, await self._request("PUT", f"/admin/users/{user_id}/toggle-status"))

    async def delete_user(self, user_id: int) -> None:
        await self._request("DELETE", f"/admin/users/{user_id}")

    async def stats(self) -> dict[str, Any]:
        data = await self._request("GET", "/admin/users/stats")
        return data if isinstance(data, dict) else {}
