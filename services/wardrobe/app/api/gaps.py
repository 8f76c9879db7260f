"""Wardrobe gap analysis API."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..agents.orchestrator import AgentOrchestrator, InventoryResponse
from ..persistence.store import WardrobeStore
from ..tools.types import utcnow
from .deps import get_orchestrator, get_store

router = APIRouter(prefix="/gaps", tags=["gaps"])

USAGE_LIMIT = 5


class GapAnalysisRequest(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    capsule_goal: str = Field(default="versatile", alias="capsuleGoal")
    days: int = Field(default=30, ge=1)
    preferences: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


def _step_result(response: InventoryResponse, tool_name: str) -> Any:
    if response.execution is None:
        return None
    step = response.execution.completed_step(tool_name)
    return step.result if step is not None else None


async def _run(orchestrator: AgentOrchestrator, user_id: str, goal: str, constraints: dict[str, Any]) -> InventoryResponse:
    result = await orchestrator.execute_inventory_request(user_id, goal, constraints)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result


@router.get("")
async def wardrobe_gaps(
    user_id: str = Query(alias="userId", min_length=1),
    capsule_goal: str = Query(default="versatile", alias="capsuleGoal"),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    store: WardrobeStore = Depends(get_store),
):
    result = await _run(orchestrator, user_id, "analyze_wardrobe_gaps", {"capsule_goal": capsule_goal})
    report = _step_result(result, "detectGaps")
    wear = await store.get_wear_frequency(user_id, 30)
    colors = await store.get_most_used_colors(user_id)

    return {
        "success": True,
        "gaps": [gap.model_dump(mode="json") for gap in report.gaps] if report else [],
        "insights": report.summary.model_dump() if report else None,
        "usage": {
            "wearFrequency": [{"itemId": entry.item_id, "count": entry.count} for entry in wear[:USAGE_LIMIT]],
            "mostUsedColors": [{"color": entry.color, "count": entry.count} for entry in colors[:USAGE_LIMIT]],
        },
        "metadata": result.metadata.model_dump(mode="json"),
        "timestamp": utcnow().isoformat(),
    }


@router.post("")
async def comprehensive_gap_analysis(
    request: GapAnalysisRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
):
    result = await _run(
        orchestrator,
        request.user_id,
        "comprehensive_gap_analysis",
        {"capsule_goal": request.capsule_goal, "days": request.days, "preferences": request.preferences},
    )
    gaps = _step_result(result, "detectGaps")
    optimizations = _step_result(result, "suggestOptimizations")
    execution = result.execution

    return {
        "success": True,
        "gaps": [gap.model_dump(mode="json") for gap in gaps.gaps] if gaps else [],
        "optimizations": [s.model_dump(mode="json") for s in optimizations.suggestions] if optimizations else [],
        "plan": result.plan.model_dump(mode="json") if result.plan else None,
        "execution": {
            "status": execution.status.value,
            "steps": [
                {"toolName": step.tool_name, "status": step.status.value, "error": step.error}
                for step in execution.steps
            ],
        }
        if execution
        else None,
        "critique": result.critique.model_dump(mode="json") if result.critique else None,
        "metadata": result.metadata.model_dump(mode="json"),
        "timestamp": utcnow().isoformat(),
    }


__all__ = ["router"]
