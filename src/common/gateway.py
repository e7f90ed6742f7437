from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from state.models import PlantInfo
from .rate_limiter import AsyncSlidingWindowRateLimiter, RateLimitError


ENV_GATEWAY_URL = "GARDEN_GATEWAY_URL"


class GatewayError(RuntimeError):
    """Base error for the read gateway client."""


class GatewayApiError(GatewayError):
    """Gateway returned an error status or an unexpected payload."""


class GatewayRateLimitError(GatewayError):
    """Local rate limiting prevented the request."""


class _CountPayload(BaseModel):
    total: int = Field(..., ge=0)


class _PlantPayload(BaseModel):
    owner: str
    plantedAt: int
    isMature: bool


class _GrowthPayload(BaseModel):
    handle: Optional[str] = None


class _OwnerPlantsPayload(BaseModel):
    plantIds: List[int] = Field(default_factory=list)


class GardenGatewayClient:
    """
    Read-only client for a JSON gateway in front of the garden contract.

    Endpoints (relative to `base_url`)
    - GET /contracts/{address}/plants/count          -> {"total": n}
    - GET /contracts/{address}/plants/{id}           -> {"owner", "plantedAt", "isMature"}
    - GET /contracts/{address}/plants/{id}/growth    -> {"handle": "0x.." | null}
    - GET /contracts/{address}/owners/{owner}/plants -> {"plantIds": [...]}

    Notes
    - Implements the `ChainReader` interface used by the controller.
    - Enforces a local requests-per-second limit.
    - Timeouts, transport errors, 429 and 5xx are retried with exponential backoff.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        max_per_second: int = 10,
        max_attempts: int = 4,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        self._limiter = AsyncSlidingWindowRateLimiter(max_calls=max_per_second, per_seconds=1.0)

    @classmethod
    def from_env(cls) -> "GardenGatewayClient":
        url = os.environ.get(ENV_GATEWAY_URL)
        if not url:
            raise RuntimeError(f"Missing required configuration: {ENV_GATEWAY_URL}")
        return cls(url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GardenGatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- ChainReader ---------------
    async def total_plants(self, contract_address: str) -> int:
        data = await self._get(f"/contracts/{contract_address}/plants/count")
        return self._parse(_CountPayload, data).total

    async def get_plant_info(self, contract_address: str, plant_id: int) -> PlantInfo:
        data = await self._get(f"/contracts/{contract_address}/plants/{plant_id}")
        p = self._parse(_PlantPayload, data)
        return PlantInfo(plant_id=plant_id, owner=p.owner, planted_at=p.plantedAt, is_mature=p.isMature)

    async def get_growth(self, contract_address: str, plant_id: int) -> Optional[str]:
        data = await self._get(f"/contracts/{contract_address}/plants/{plant_id}/growth")
        handle = self._parse(_GrowthPayload, data).handle
        return handle or None

    # --------------- Extras ---------------
    async def owner_plants(self, contract_address: str, owner: str) -> List[int]:
        data = await self._get(f"/contracts/{contract_address}/owners/{owner}/plants")
        return self._parse(_OwnerPlantsPayload, data).plantIds

    # --------------- Internal ---------------
    @staticmethod
    def _parse(model: type[BaseModel], data: Dict[str, Any]) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as ve:
            raise GatewayApiError(f"Failed to parse gateway payload: {ve}") from ve

    async def _get(self, path: str) -> Dict[str, Any]:
        try:
            await self._limiter.acquire(blocking=True)
        except RateLimitError as rl:
            raise GatewayRateLimitError("Local rate limiter prevented request") from rl

        attempt = 0
        backoff = 0.5
        last_exc: Optional[Exception] = None
        while attempt < self._max_attempts:
            try:
                resp = await self._client.get(path)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
            else:
                if resp.status_code == 200:
                    try:
                        payload = resp.json()
                    except ValueError as exc:
                        raise GatewayApiError("Failed to parse JSON from gateway") from exc
                    if not isinstance(payload, dict):
                        raise GatewayApiError("Malformed response from gateway")
                    return payload
                if resp.status_code in (429, 500, 502, 503, 504):
                    last_exc = GatewayApiError(f"HTTP {resp.status_code} from gateway")
                else:
                    raise GatewayApiError(f"HTTP {resp.status_code} from gateway: {resp.text[:200]}")

            attempt += 1
            if attempt < self._max_attempts:
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, 8.0)

        if last_exc is not None:
            raise GatewayError("Failed request after retries") from last_exc
        raise GatewayError("Failed request after retries (unknown error)")


__all__ = [
    "GardenGatewayClient",
    "GatewayApiError",
    "GatewayError",
    "GatewayRateLimitError",
]
