from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from typing import Any

from ..exceptions import NetworkError
from ..models import Product
from .base import BaseClient

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


@dataclass
class ImagesClient(BaseClient):
    async def upload(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        """Upload an image and return the server path to store on the product."""
        resolved_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        if resolved_type not in ALLOWED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type: {resolved_type}")
        data = await self._request("POST", "/images/upload", files={"file": (filename, content, resolved_type)})
        url = _uploaded_url(data)
        if not url:
            raise NetworkError(
                code="MALFORMED_RESPONSE",
                message="Image upload answered without an image URL",
                details=data,
            )
        return url

    async def download(self, filename: str) -> bytes:
        return await self.session.authenticated_download(f"/images/{filename}")

    async def delete(self, filename: str) -> None:
        await self._request("DELETE", f"/images/{filename}")

    def image_url(self, filename: str) -> str:
        return f"{self.session.http.base_url}/images/{filename}"

    def resolve_image_url(self, product: Product) -> str | None:
        if not product.image_url:
            return None
        if product.image_url.startswith(("http://", "https://")):
            return product.image_url
        return f"{self.session.http.base_url}/{product.image_url.lstrip('/')}"


def _uploaded_url(data: Any) -> str | None:
    if isinstance(data, dict):
        for key in ("imageUrl", "url", "path"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
        filename = data.get("filename")
        if isinstance(filename, str) and filename:
            return f"/images/{filename}"
    return None
