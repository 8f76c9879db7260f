"""Facade wiring the agents to one shared tool registry."""
from __future__ import annotations

import time
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from ..perception.service import PerceptionService, Upload, UploadAnalysis
from ..persistence.store import WardrobeStore
from ..tools.registry import ToolRegistry
from ..tools.types import utcnow
from .inventory import InventoryAgent
from .perception import PerceptionAgent
from .stylist import StylistAgent
from .types import AgentConfig, Critique, Execution, OutfitSuggestion, Plan, StylistContext

logger = structlog.get_logger(__name__)


class ResponseMetadata(BaseModel):
    agent: str
    timestamp: datetime = Field(default_factory=utcnow)
    execution_time_ms: float | None = None


class StylistResponse(BaseModel):
    success: bool
    suggestions: list[OutfitSuggestion] | None = None
    error: str | None = None
    metadata: ResponseMetadata


class PerceptionResponse(BaseModel):
    success: bool
    result: UploadAnalysis | None = None
    error: str | None = None
    metadata: ResponseMetadata


class InventoryResponse(BaseModel):
    success: bool
    plan: Plan | None = None
    execution: Execution | None = None
    critique: Critique | None = None
    error: str | None = None
    metadata: ResponseMetadata


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class AgentOrchestrator:
    def __init__(
        self,
        store: WardrobeStore | None = None,
        registry: ToolRegistry | None = None,
        perception: PerceptionService | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.store = store or WardrobeStore()
        self.perception_service = perception or PerceptionService(self.store)
        self.registry = registry or ToolRegistry(self.store, self.perception_service)
        self.stylist = StylistAgent(self.registry, config)
        self.inventory = InventoryAgent(self.registry, config)
        self.perception = PerceptionAgent(self.registry, self.perception_service, config)

    async def execute_stylist_request(self, context: StylistContext) -> StylistResponse:
        start = time.perf_counter()
        try:
            suggestions = await self.stylist.generate_outfit_suggestions(context)
        except Exception as exc:
            logger.warning("orchestrator.failed", agent="stylist", user_id=context.user_id, error=str(exc))
            return StylistResponse(
                success=False,
                error=f"Stylist agent failed: {exc}",
                metadata=ResponseMetadata(agent="stylist"),
            )
        return StylistResponse(
            success=True,
            suggestions=suggestions,
            metadata=ResponseMetadata(agent="stylist", execution_time_ms=_elapsed_ms(start)),
        )

    async def execute_perception_request(self, upload: Upload, user_id: str) -> PerceptionResponse:
        start = time.perf_counter()
        try:
            result = await self.perception.process_upload(upload, user_id)
        except Exception as exc:
            logger.warning("orchestrator.failed", agent="perception", user_id=user_id, error=str(exc))
            return PerceptionResponse(
                success=False,
                error=f"Perception agent failed: {exc}",
                metadata=ResponseMetadata(agent="perception"),
            )
        return PerceptionResponse(
            success=True,
            result=result,
            metadata=ResponseMetadata(agent="perception", execution_time_ms=_elapsed_ms(start)),
        )

    async def execute_inventory_request(
        self,
        user_id: str,
        goal: str,
        constraints: dict[str, Any] | None = None,
    ) -> InventoryResponse:
        start = time.perf_counter()
        try:
            plan = self.inventory.plan(goal, constraints or {}, {"user_id": user_id})
            execution = await self.inventory.execute(plan)
            critique = self.inventory.critique(execution) if self.inventory.config.enable_critique else None
        except Exception as exc:
            logger.warning("orchestrator.failed", agent="inventory", user_id=user_id, error=str(exc))
            return InventoryResponse(
                success=False,
                error=f"Inventory agent failed: {exc}",
                metadata=ResponseMetadata(agent="inventory"),
            )
        return InventoryResponse(
            success=True,
            plan=plan,
            execution=execution,
            critique=critique,
            metadata=ResponseMetadata(agent="inventory", execution_time_ms=_elapsed_ms(start)),
        )

    def get_all_executions(self) -> list[Execution]:
        return [
            *self.stylist.get_all_executions(),
            *self.inventory.get_all_executions(),
            *self.perception.get_all_executions(),
        ]

    def get_agent_status(self) -> dict[str, Any]:
        return {
            "stylist": {"status": "healthy", **self.stylist.status()},
            "inventory": {"status": "healthy", **self.inventory.status()},
            "perception": {
                "status": "healthy",
                **self.perception.status(),
                "capabilities": self.perception_service.get_client_capabilities().model_dump(),
            },
        }


__all__ = [
    "AgentOrchestrator",
    "InventoryResponse",
    "PerceptionResponse",
    "ResponseMetadata",
    "StylistResponse",
]
