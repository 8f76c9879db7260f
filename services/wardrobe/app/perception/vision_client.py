"""Client for the garment vision endpoint."""
from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from ..config import PerceptionSettings, get_settings

logger = structlog.get_logger(__name__)


class VisionClient:
    """Wrapper around an HTTP endpoint that labels garment photos."""

    def __init__(self, settings: PerceptionSettings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings or get_settings().perception
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._settings.vision_url)

    async def describe(self, image: bytes, filename: str = "upload", timeout: float = 30.0) -> dict[str, Any]:
        if not self._settings.vision_url:
            raise RuntimeError("Vision endpoint is not configured")
        headers = {}
        if self._settings.vision_api_key:
            headers["x-api-key"] = self._settings.vision_api_key

        start = time.perf_counter()
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                self._settings.vision_url,
                headers=headers,
                files={"image": (filename, image)},
                timeout=timeout,
            )
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info("vision.call", latency_ms=latency_ms, status_code=response.status_code, size=len(image))
        response.raise_for_status()
        data = response.json()

        attributes: dict[str, Any] | None = data.get("attributes", data)
        if not isinstance(attributes, dict) or "category" not in attributes:
            raise RuntimeError("Vision response missing garment attributes")
        return attributes


__all__ = ["VisionClient"]
