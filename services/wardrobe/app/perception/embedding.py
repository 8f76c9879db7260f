"""Image analysis and embeddings for wardrobe photos."""
from __future__ import annotations

import hashlib
import os
import random
from typing import Any

import httpx
import structlog

from ..config import PerceptionSettings, get_settings
from ..persistence.storage import ImageStorage
from ..tools.types import ImageAnalysis
from .vision_client import VisionClient

logger = structlog.get_logger(__name__)

COLORS = ["black", "white", "blue", "red", "green", "yellow", "purple", "pink", "orange", "brown", "gray"]
PATTERNS = ["solid", "striped", "polka-dot", "floral", "geometric", "plaid"]
FABRICS = ["cotton", "polyester", "wool", "silk", "denim", "leather"]
FORMALITIES = ["casual", "business", "formal", "sport", "party", "outdoor"]

_CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("shirt", ("shirt", "tee", "blouse", "top")),
    ("pants", ("pants", "jeans", "trousers", "chinos")),
    ("jacket", ("jacket", "coat", "blazer")),
    ("dress", ("dress",)),
    ("shoes", ("shoe", "sneaker", "boot", "loafer")),
    ("accessory", ("bag", "hat", "scarf", "belt", "watch")),
]


def category_from_filename(filename: str) -> str:
    lowered = filename.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "unknown"


class EmbeddingService:
    """Turns image bytes into an ``ImageAnalysis``.

    When a vision endpoint is configured its attributes are used; otherwise the
    analysis is derived from the image digest, so identical bytes always yield
    identical embeddings and perceptual hashes.
    """

    def __init__(
        self,
        settings: PerceptionSettings | None = None,
        vision: VisionClient | None = None,
        storage: ImageStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings().perception
        self._vision = vision or VisionClient(self._settings)
        self._storage = storage or ImageStorage()
        self._transport = transport

    @property
    def vision_enabled(self) -> bool:
        return self._vision.configured

    async def analyze_image(self, image_url: str) -> ImageAnalysis:
        image = await self._load(image_url)
        return await self.analyze_bytes(image, filename=os.path.basename(image_url))

    async def analyze_bytes(self, image: bytes, filename: str = "upload") -> ImageAnalysis:
        digest = hashlib.sha256(image).hexdigest()
        if self._vision.configured:
            try:
                attributes = await self._vision.describe(image, filename)
            except (httpx.HTTPError, RuntimeError) as exc:
                logger.warning("perception.vision_failed", filename=filename, error=str(exc))
            else:
                return self._from_attributes(attributes, digest)
        return self._derived_analysis(digest, filename)

    def generate_embedding(self, digest: str) -> list[float]:
        rng = random.Random(int(digest[:16], 16))
        return [rng.uniform(-1.0, 1.0) for _ in range(self._settings.embedding_dimension)]

    async def _load(self, image_url: str) -> bytes:
        if image_url.startswith(("http://", "https://")):
            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.get(image_url)
            response.raise_for_status()
            return response.content
        return await self._storage.get_image(image_url)

    def _derived_analysis(self, digest: str, filename: str) -> ImageAnalysis:
        # Seeded past the embedding prefix so attributes vary independently of it.
        rng = random.Random(int(digest[16:32], 16))
        return ImageAnalysis(
            colors=[rng.choice(COLORS)],
            patterns=[rng.choice(PATTERNS)],
            fabric=rng.choice(FABRICS),
            category=category_from_filename(filename),
            formality=rng.choice(FORMALITIES),
            confidence=round(0.7 + rng.random() * 0.3, 2),
            embedding=self.generate_embedding(digest),
            perceptual_hash=digest[:16],
        )

    def _from_attributes(self, attributes: dict[str, Any], digest: str) -> ImageAnalysis:
        return ImageAnalysis(
            colors=list(attributes.get("colors") or ["unknown"]),
            patterns=list(attributes.get("patterns") or ["unknown"]),
            fabric=attributes.get("fabric") or "unknown",
            category=attributes["category"],
            formality=attributes.get("formality") or "casual",
            confidence=float(attributes.get("confidence", 0.5)),
            embedding=list(attributes.get("embedding") or self.generate_embedding(digest)),
            perceptual_hash=digest[:16],
        )


__all__ = ["EmbeddingService", "category_from_filename"]
