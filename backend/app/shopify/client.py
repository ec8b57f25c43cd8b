"""Клиент Shopify Admin REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class ShopifyError(RuntimeError):
    """Базовая ошибка взаимодействия с Shopify."""


class ShopifyConfigurationError(ShopifyError):
    """Не заданы магазин или токен доступа."""


class ShopifyRequestError(ShopifyError):
    """Ошибка сети, HTTP-статус или некорректный ответ Shopify."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShopifyClient:
    def __init__(
        self,
        *,
        store: str | None = None,
        token: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store if store is not None else settings.shopify_store
        self._token = token if token is not None else settings.shopify_api_token
        self._api_version = api_version or settings.shopify_api_version
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-Shopify-Access-Token": self._token,
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self._store}/admin/api/{self._api_version}"

    def is_configured(self) -> bool:
        return bool(self._store and self._token)

    async def close(self) -> None:
        await self._client.aclose()

    # ---- метаполя -------------------------------------------------------

    async def list_product_metafields(self, product_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/products/{product_id}/metafields.json")
        metafields = data.get("metafields")
        if not isinstance(metafields, list):
            raise ShopifyRequestError("Shopify response has no metafields list")
        return [item for item in metafields if isinstance(item, dict)]

    async def create_product_metafield(
        self,
        product_id: str,
        *,
        namespace: str,
        key: str,
        value: str,
        type_: str = "json",
    ) -> dict[str, Any]:
        payload = {
            "metafield": {
                "namespace": namespace,
                "key": key,
                "type": type_,
                "value": value,
            }
        }
        data = await self._request(
            "POST", f"/products/{product_id}/metafields.json", json=payload
        )
        return self._unwrap(data, "metafield")

    async def update_metafield(
        self, metafield_id: int | str, *, value: str, type_: str = "json"
    ) -> dict[str, Any]:
        payload = {"metafield": {"value": value, "type": type_}}
        data = await self._request("PUT", f"/metafields/{metafield_id}.json", json=payload)
        return self._unwrap(data, "metafield")

    # ---- каталог и заказы -----------------------------------------------

    async def get_product(self, product_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/products/{product_id}.json")
        return self._unwrap(data, "product")

    async def create_draft_order(self, draft_order: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "POST", "/draft_orders.json", json={"draft_order": draft_order}
        )
        return self._unwrap(data, "draft_order")

    # ---- общие HTTP-хелперы ---------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured():
            raise ShopifyConfigurationError("Shopify store or token is not configured")

        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.error("Shopify %s %s failed: %s", method, path, exc)
            raise ShopifyRequestError(str(exc)) from exc

        if response.status_code >= 400:
            logger.error(
                "Shopify HTTP %s at %s %s: %s",
                response.status_code,
                method,
                path,
                response.text,
            )
            raise ShopifyRequestError(
                f"HTTP_{response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ShopifyRequestError(
                f"Invalid JSON from Shopify at {path}", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise ShopifyRequestError(
                f"Unexpected payload from Shopify at {path}", status_code=response.status_code
            )
        return payload

    @staticmethod
    def _unwrap(data: dict[str, Any], key: str) -> dict[str, Any]:
        value = data.get(key)
        if not isinstance(value, dict):
            raise ShopifyRequestError(f"Shopify response has no {key!r} object")
        return value


__all__ = [
    "ShopifyClient",
    "ShopifyError",
    "ShopifyConfigurationError",
    "ShopifyRequestError",
]
