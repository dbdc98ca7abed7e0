from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .base import BaseClient

SALES_PERIODS = {"DAY", "WEEK", "MONTH", "YEAR"}


@dataclass
class AnalyticsClient(BaseClient):
    """Read-only admin statistics; payloads are server-shaped dictionaries."""

    async def dashboard(self) -> dict[str, Any]:
        return await self._read("/analytics/dashboard")

    async def sales(
        self,
        period: str = "MONTH",
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        normalized = period.strip().upper()
        if normalized not in SALES_PERIODS:
            raise ValueError(f"Unsupported sales period: {period!r}")
        params: dict[str, Any] = {"period": normalized}
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        return await self._read("/analytics/sales", params=params)

    async def products(self) -> dict[str, Any]:
        return await self._read("/analytics/products")

    async def customers(self) -> dict[str, Any]:
        return await self._read("/analytics/customers")

    async def top_products(self, limit: int = 5) -> list[dict[str, Any]]:
        data = await self._request("GET", "/analytics/top-products", params={"limit": limit})
        if isinstance(data, list):
            return [row for row in data if isinstance(row, dict)]
        return []

    async def _read(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        data = await self._request("GET", path, params=params)
        return data if isinstance(data, dict) else {}
