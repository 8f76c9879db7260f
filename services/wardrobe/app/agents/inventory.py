"""Inventory agent: wear analysis, capsule gaps and optimisation suggestions."""
from __future__ import annotations

from typing import Any

from ..tools.types import AnalyzeWearFrequencyParams, DetectGapsParams, SuggestOptimizationsParams
from .base import BaseAgent, CritiquePolicy, PlanBuilder
from .types import Plan

DEFAULT_WINDOW_DAYS = 30
DEFAULT_CAPSULE_GOAL = "versatile"


class InventoryAgent(BaseAgent):
    name = "inventory"
    critique_policy = CritiquePolicy(
        completed_score=0.85,
        failed_score=0.15,
        suggestion_threshold=0.7,
        suggestions=("Check database connectivity", "Verify user data availability"),
        feedback_prefix="Inventory step",
    )
    propagations = {
        ("analyzeWearFrequency", "suggestOptimizations"): lambda params, result: params.model_copy(
            update={"wear_data": result}
        ),
        ("detectGaps", "suggestOptimizations"): lambda params, result: params.model_copy(update={"gaps": result}),
    }

    def plan(self, goal: str, constraints: dict[str, Any], context: Any = None) -> Plan:
        user_id = (context or {}).get("user_id") or constraints.get("user_id")
        if not user_id:
            raise ValueError("Inventory planning requires a user_id")
        builder = PlanBuilder()
        builder.add(
            AnalyzeWearFrequencyParams(user_id=user_id, days=constraints.get("days") or DEFAULT_WINDOW_DAYS),
            "Wear frequency analysis",
        )
        builder.add(
            DetectGapsParams(user_id=user_id, capsule_goal=constraints.get("capsule_goal") or DEFAULT_CAPSULE_GOAL),
            "Wardrobe gap analysis",
        )
        builder.add(
            SuggestOptimizationsParams(user_id=user_id),
            "Optimization suggestions",
            depends_on=["analyzeWearFrequency", "detectGaps"],
        )
        return builder.build(goal, constraints)


__all__ = ["InventoryAgent"]
