"""Agent introspection API."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..agents.orchestrator import AgentOrchestrator
from .deps import get_orchestrator

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("/status")
async def agent_status(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_agent_status()


@router.get("/executions")
async def agent_executions(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    return {"executions": [execution.model_dump(mode="json") for execution in orchestrator.get_all_executions()]}


__all__ = ["router"]
