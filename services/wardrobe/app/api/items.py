"""Item ingestion API."""
from __future__ import annotations

import os

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ..agents.orchestrator import AgentOrchestrator
from ..config import get_settings
from ..perception.service import Upload
from ..persistence.storage import ImageStorage
from ..persistence.store import WardrobeStore
from ..tools.types import ImageAnalysis, utcnow
from .deps import get_image_storage, get_orchestrator, get_store

router = APIRouter(prefix="/items", tags=["items"])

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALL_SEASONS = ["Spring", "Summer", "Fall", "Winter"]


def infer_seasons(analysis: ImageAnalysis) -> list[str]:
    colors = set(analysis.colors)
    seasons: list[str] = []
    if colors & {"white", "light blue", "yellow"}:
        seasons += ["Spring", "Summer"]
    if colors & {"orange", "brown", "red"}:
        seasons.append("Fall")
    if colors & {"black", "navy", "gray"}:
        seasons.append("Winter")
    return seasons or list(ALL_SEASONS)


@router.post("/ingest", status_code=status.HTTP_201_CREATED)
async def ingest_item(
    file: UploadFile = File(...),
    user_id: str = Form(alias="userId", min_length=1),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    store: WardrobeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_image_storage),
):
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only JPEG, PNG, and WebP are allowed.",
        )
    data = await file.read()
    max_size = get_settings().perception.max_file_size
    if len(data) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB.",
        )

    filename = file.filename or "upload"
    result = await orchestrator.execute_perception_request(
        Upload(filename=filename, content_type=file.content_type, data=data),
        user_id,
    )
    if not result.success or result.result is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)

    outcome = result.result
    analysis = outcome.analysis
    image_url = await storage.put_image(data, file.content_type) if outcome.should_upload else ""
    item = await store.create_item(
        user_id,
        os.path.splitext(filename)[0],
        analysis.category,
        colors=analysis.colors,
        patterns=analysis.patterns,
        fabric=analysis.fabric,
        seasons=infer_seasons(analysis),
        formality=analysis.formality,
        image_url=image_url,
        embedding=analysis.embedding or None,
        perceptual_hash=analysis.perceptual_hash or None,
    )

    return {
        "success": True,
        "item": {
            "id": item.id,
            "title": item.title,
            "category": item.category,
            "colors": item.colors,
            "patterns": item.patterns,
            "fabric": item.fabric,
            "formality": item.formality.value,
            "imageUrl": item.image_url,
            "confidence": analysis.confidence,
        },
        "duplicateDetection": outcome.duplicate_detection.model_dump(mode="json"),
        "shouldUpload": outcome.should_upload,
        "analysis": {"confidence": analysis.confidence, "perceptualHash": analysis.perceptual_hash},
        "metadata": result.metadata.model_dump(mode="json"),
        "timestamp": utcnow().isoformat(),
    }


__all__ = ["router", "infer_seasons"]
