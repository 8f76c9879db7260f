"""Perception agent: analyse a photo, look for duplicates, enrich the stored item."""
from __future__ import annotations

from typing import Any

from ..perception.service import PerceptionService, Upload, UploadAnalysis
from ..tools.registry import ToolRegistry
from ..tools.types import AnalyzeImageParams, DetectDuplicatesParams, EnrichItemParams, ToolResult
from .base import BaseAgent, CritiquePolicy, PlanBuilder
from .scheduler import retry_with_backoff
from .types import AgentConfig, Plan, PlanStep

RETRYABLE_TOOLS = frozenset({"analyzeImage"})


class PerceptionAgent(BaseAgent):
    name = "perception"
    critique_policy = CritiquePolicy(
        completed_score=0.9,
        failed_score=0.1,
        suggestion_threshold=0.8,
        suggestions=("Check image quality and format", "Verify perception service availability"),
        feedback_prefix="Perception step",
    )
    propagations = {
        ("analyzeImage", "detectDuplicates"): lambda params, result: params.model_copy(update={"analysis": result}),
        ("analyzeImage", "enrichItem"): lambda params, result: params.model_copy(update={"analysis": result}),
    }

    def __init__(self, registry: ToolRegistry, service: PerceptionService, config: AgentConfig | None = None) -> None:
        super().__init__(registry, config)
        self.service = service

    def plan(self, goal: str, constraints: dict[str, Any], context: Any = None) -> Plan:
        context = context or {}
        user_id = context["user_id"]
        builder = PlanBuilder()
        builder.add(AnalyzeImageParams(image_url=context["image_url"], user_id=user_id), "Image analysis results")
        builder.add(
            DetectDuplicatesParams(user_id=user_id),
            "Duplicate detection results",
            depends_on=["analyzeImage"],
        )
        builder.add(
            EnrichItemParams(item_id=context.get("item_id"), user_id=user_id),
            "Enriched item data",
            depends_on=["analyzeImage", "detectDuplicates"],
        )
        return builder.build(goal, constraints)

    async def dispatch(self, step: PlanStep) -> ToolResult:
        if step.tool_name not in RETRYABLE_TOOLS:
            return await super().dispatch(step)
        return await retry_with_backoff(
            lambda: self.registry.execute_tool(step.tool_name, step.parameters),
            self.config.max_retries,
            self.config.retry_base_delay_s,
        )

    async def process_upload(self, upload: Upload, user_id: str) -> UploadAnalysis:
        return await self.service.process_upload(upload, user_id)


__all__ = ["PerceptionAgent"]
