"""Outbound client for the connctd connector callback API."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx
from fastapi import status

from .errors import PlatformError
from .schemas import Thing

logger = logging.getLogger(__name__)

THINGS_ENDPOINT = "connectorhub/callback/instances/things"


def _extract_error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"unexpected status {response.status_code}"

    if isinstance(payload, dict):
        for key in ("description", "error", "detail"):
            detail = payload.get(key)
            if isinstance(detail, str) and detail:
                return detail
    return f"unexpected status {response.status_code}"


class ConnctdClient:
    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, read=timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, token: str, payload: dict, expected: int) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self._client.request(method, path, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise PlatformError(f"failed to contact connctd: {exc}") from exc
        if response.status_code != expected:
            detail = _extract_error_detail(response)
            logger.error(
                "connctd %s %s returned %s (expected %s): %s",
                method, path, response.status_code, expected, detail,
            )
            raise PlatformError(detail)
        return response

    async def create_thing(self, token: str, thing: Thing) -> str:
        """Create *thing* and return the platform-assigned id."""

        body = {"thing": thing.model_dump(mode="json", by_alias=True, exclude_none=True)}
        response = await self._request("POST", THINGS_ENDPOINT, token, body, status.HTTP_201_CREATED)
        try:
            data = response.json()
        except ValueError as exc:
            raise PlatformError("connctd returned invalid JSON for created thing") from exc
        thing_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(thing_id, str) or not thing_id:
            raise PlatformError("connctd response did not contain a thing id")
        return thing_id

    async def update_property_value(
        self,
        token: str,
        thing_id: str,
        component_id: str,
        property_id: str,
        value: str,
        last_update: datetime,
    ) -> None:
        path = f"{THINGS_ENDPOINT}/{thing_id}/components/{component_id}/properties/{property_id}"
        body = {"value": value, "lastUpdate": last_update.isoformat()}
        await self._request("PUT", path, token, body, status.HTTP_204_NO_CONTENT)
