"""Outfit suggestion API."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..agents.orchestrator import AgentOrchestrator
from ..agents.types import StylistConstraints, StylistContext
from ..persistence.models import FeedbackDecision
from ..persistence.store import WardrobeStore
from ..tools.types import utcnow
from .deps import get_orchestrator, get_store

router = APIRouter(prefix="/stylist", tags=["stylist"])

RECENT_FEEDBACK_LIMIT = 10
RECENT_OUTFITS_LIMIT = 10


class StylistRequest(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    prompt: str = Field(min_length=1)
    constraints: StylistConstraints = Field(default_factory=StylistConstraints)

    model_config = ConfigDict(populate_by_name=True)


@router.post("")
async def suggest_outfits(
    request: StylistRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    store: WardrobeStore = Depends(get_store),
):
    preference = await store.get_preferences(request.user_id)
    feedback = await store.get_user_feedback(request.user_id, RECENT_FEEDBACK_LIMIT)
    context = StylistContext(
        user_id=request.user_id,
        goal=request.prompt,
        constraints=request.constraints,
        preferences={"style": preference.style, "constraints": preference.constraints} if preference else {},
        feedback_history=[{"decision": entry.decision.value, "reason": entry.reason} for entry in feedback],
    )

    result = await orchestrator.execute_stylist_request(context)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)

    suggestions = result.suggestions or []
    for suggestion in suggestions:
        await store.create_outfit(
            request.user_id,
            [item.id for item in suggestion.items],
            context={"prompt": request.prompt},
            rationale=suggestion.rationale,
            score=suggestion.score,
        )
    await store.create_feedback(
        request.user_id,
        FeedbackDecision.generated,
        reason=f"Generated {len(suggestions)} outfit suggestions for: {request.prompt}",
    )

    return {
        "success": True,
        "outfits": [suggestion.model_dump(mode="json") for suggestion in suggestions],
        "rationale": [suggestion.rationale for suggestion in suggestions],
        "metadata": result.metadata.model_dump(mode="json"),
        "timestamp": utcnow().isoformat(),
    }


@router.get("")
async def recent_outfits(
    user_id: str = Query(alias="userId", min_length=1),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    store: WardrobeStore = Depends(get_store),
):
    outfits = await store.get_user_outfits(user_id, RECENT_OUTFITS_LIMIT)
    return {
        "success": True,
        "recentOutfits": [
            {
                "id": outfit.id,
                "itemIds": outfit.item_ids,
                "rationale": outfit.rationale,
                "score": float(outfit.score),
                "createdAt": outfit.created_at.isoformat() if outfit.created_at else None,
            }
            for outfit in outfits
        ],
        "agentStatus": orchestrator.get_agent_status(),
        "timestamp": utcnow().isoformat(),
    }


__all__ = ["router"]
