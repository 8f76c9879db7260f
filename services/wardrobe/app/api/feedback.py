"""Outfit feedback API."""
from __future__ import annotations

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..config import get_settings
from ..learning import apply_feedback, feedback_stats
from ..persistence.store import DEFAULT_STYLE, WardrobeStore
from ..tools.types import utcnow
from .deps import get_store

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/feedback", tags=["feedback"])


class FeedbackRequest(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    outfit_id: str | None = Field(default=None, alias="outfitId")
    decision: Literal["accepted", "rejected"]
    reason: str = Field(min_length=1)

    model_config = ConfigDict(populate_by_name=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_feedback(request: FeedbackRequest, store: WardrobeStore = Depends(get_store)):
    if request.outfit_id and await store.get_outfit(request.outfit_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Outfit {request.outfit_id} not found")

    feedback = await store.create_feedback(request.user_id, request.decision, request.reason, request.outfit_id)

    if get_settings().agent.enable_learning:
        preference = await store.get_preferences(request.user_id)
        style = preference.style if preference else dict(DEFAULT_STYLE)
        await store.update_preferences(request.user_id, style=apply_feedback(style, request.decision, request.reason))
        logger.info("feedback.preferences_updated", user_id=request.user_id, decision=request.decision)

    return {
        "success": True,
        "feedback": {
            "id": feedback.id,
            "decision": feedback.decision.value,
            "reason": feedback.reason,
            "timestamp": feedback.created_at.isoformat() if feedback.created_at else None,
        },
        "message": "Feedback recorded successfully",
        "timestamp": utcnow().isoformat(),
    }


@router.get("")
async def list_feedback(
    user_id: str = Query(alias="userId", min_length=1),
    limit: int = Query(default=50, ge=1, le=500),
    store: WardrobeStore = Depends(get_store),
):
    feedback = await store.get_user_feedback(user_id, limit)
    return {
        "success": True,
        "feedback": [
            {
                "id": entry.id,
                "outfitId": entry.outfit_id,
                "decision": entry.decision.value,
                "reason": entry.reason,
                "timestamp": entry.created_at.isoformat() if entry.created_at else None,
            }
            for entry in feedback
        ],
        "stats": feedback_stats(feedback),
        "timestamp": utcnow().isoformat(),
    }


__all__ = ["router"]
