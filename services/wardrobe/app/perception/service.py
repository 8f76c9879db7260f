"""Upload processing, duplicate detection and item enrichment."""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from ..config import PerceptionSettings, get_settings
from ..persistence.store import RecordNotFoundError, WardrobeStore
from ..tools.types import DuplicateDetection, EnrichmentResult, ImageAnalysis, SimilarItem
from .embedding import EmbeddingService

logger = structlog.get_logger(__name__)

DUPLICATE_SEARCH_LIMIT = 5


class PerceptionError(ValueError):
    """Raised when an upload cannot be analysed."""


@dataclass
class Upload:
    filename: str
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class UploadAnalysis(BaseModel):
    analysis: ImageAnalysis
    duplicate_detection: DuplicateDetection
    should_upload: bool


class ClientCapabilities(BaseModel):
    has_clip: bool
    has_image_processing: bool
    has_local_storage: bool


class PerceptionService:
    def __init__(
        self,
        store: WardrobeStore,
        settings: PerceptionSettings | None = None,
        embedding: EmbeddingService | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings().perception
        self.embedding = embedding or EmbeddingService(self._settings)

    async def process_upload(self, upload: Upload, user_id: str) -> UploadAnalysis:
        if upload.size > self._settings.max_file_size:
            raise PerceptionError("File too large")

        analysis = await self.embedding.analyze_bytes(upload.data, filename=upload.filename)
        duplicates = await self.detect_duplicates(analysis, user_id)
        should_upload = not self._settings.enable_client_side or not duplicates.is_duplicate
        logger.info(
            "perception.upload_processed",
            user_id=user_id,
            size=upload.size,
            category=analysis.category,
            is_duplicate=duplicates.is_duplicate,
        )
        return UploadAnalysis(analysis=analysis, duplicate_detection=duplicates, should_upload=should_upload)

    async def analyze_image(self, image_url: str) -> ImageAnalysis:
        return await self.embedding.analyze_image(image_url)

    async def detect_duplicates(self, analysis: ImageAnalysis, user_id: str) -> DuplicateDetection:
        if not analysis.embedding:
            return DuplicateDetection(is_duplicate=False)

        threshold = self._settings.similarity_threshold
        try:
            pairs = await self._store.find_similar_items(
                analysis.embedding,
                threshold=threshold,
                limit=DUPLICATE_SEARCH_LIMIT,
                user_id=user_id,
            )
        except SQLAlchemyError as exc:
            logger.warning("perception.duplicate_lookup_failed", user_id=user_id, error=str(exc))
            return DuplicateDetection(is_duplicate=False)

        similar = [
            SimilarItem(id=item.id, similarity=similarity, perceptual_hash=analysis.perceptual_hash)
            for item, similarity in pairs
            if similarity > threshold
        ]
        return DuplicateDetection(
            is_duplicate=bool(similar),
            similar_items=similar,
            confidence=max((entry.similarity for entry in similar), default=0.0),
        )

    async def enrich_item(self, item_id: str, user_id: str, analysis: ImageAnalysis | None = None) -> EnrichmentResult:
        """Refresh an item's visual attributes, re-analysing its stored photo when no analysis is supplied."""
        item = await self._store.get_item(item_id)
        if item is None or item.user_id != user_id:
            raise RecordNotFoundError("Item not found or access denied")

        if analysis is None:
            analysis = await self.embedding.analyze_image(item.image_url)
        await self._store.update_item(
            item_id,
            colors=analysis.colors,
            patterns=analysis.patterns,
            fabric=analysis.fabric,
            formality=analysis.formality,
            embedding=analysis.embedding or None,
            perceptual_hash=analysis.perceptual_hash or None,
        )
        logger.info("perception.item_enriched", item_id=item_id, user_id=user_id)
        return EnrichmentResult(item_id=item_id, enriched=True, message="Item enriched successfully")

    def get_client_capabilities(self) -> ClientCapabilities:
        return ClientCapabilities(
            has_clip=False,
            has_image_processing=self.embedding.vision_enabled,
            has_local_storage=self._settings.enable_client_side,
        )


__all__ = [
    "ClientCapabilities",
    "PerceptionError",
    "PerceptionService",
    "Upload",
    "UploadAnalysis",
]
