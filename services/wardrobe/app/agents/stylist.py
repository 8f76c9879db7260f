"""Stylist agent: weather-aware outfit suggestions."""
from __future__ import annotations

from typing import Any

import structlog

from ..config import get_settings
from ..tools.types import (
    GetLaundryStatusParams,
    GetWeatherParams,
    OutfitScore,
    ScoreOutfitParams,
    SearchWardrobeParams,
    WardrobeFilters,
    WardrobeItemSummary,
    utcnow,
)
from .base import BaseAgent, CritiquePolicy, PlanBuilder
from .errors import AgentError
from .types import Execution, ExecutionStatus, OutfitItem, OutfitSuggestion, Plan, StylistContext

logger = structlog.get_logger(__name__)

MAX_WEAR_COUNT = 10
MAX_COMBINATIONS = 3
SUGGESTION_CONFIDENCE = 0.8
DEFAULT_SCORE = 0.7
DEFAULT_RATIONALE = "Generated outfit suggestion"
ALTERNATIVES = [
    "Try a different color combination",
    "Consider adding an accessory",
    "Switch to a different style",
]


class StylistAgent(BaseAgent):
    name = "stylist"
    critique_policy = CritiquePolicy(
        completed_score=0.8,
        failed_score=0.2,
        suggestion_threshold=0.7,
        suggestions=(
            "Consider retrying with different parameters",
            "Check if all required tools are available",
        ),
    )
    propagations = {
        ("searchWardrobe", "getLaundryStatus"): lambda params, result: params.model_copy(
            update={"item_ids": [item.id for item in result.items]}
        ),
        ("getWeather", "scoreOutfit"): lambda params, result: params.model_copy(update={"weather": result}),
        ("searchWardrobe", "scoreOutfit"): lambda params, result: params.model_copy(update={"items": result.items}),
    }

    def plan(self, goal: str, constraints: dict[str, Any], context: StylistContext | None = None) -> Plan:
        context = context or StylistContext(user_id="anonymous", goal=goal)
        weather = context.constraints.weather or {}
        builder = PlanBuilder()
        builder.add(
            GetWeatherParams(
                city=weather.get("city") or get_settings().weather.default_city,
                date=weather.get("date") or utcnow().isoformat(),
            ),
            "Weather data for outfit planning",
        )
        builder.add(
            SearchWardrobeParams(user_id=context.user_id, filters=self._wardrobe_filters(constraints, context)),
            "Available wardrobe items",
        )
        builder.add(
            GetLaundryStatusParams(user_id=context.user_id),
            "Laundry status of items",
            depends_on=["searchWardrobe"],
        )
        builder.add(
            ScoreOutfitParams(goal=goal, constraints=constraints),
            "Outfit score and rationale",
            depends_on=["getWeather", "searchWardrobe", "getLaundryStatus"],
        )
        logger.info("stylist.planned", user_id=context.user_id, goal=goal)
        return builder.build(goal, constraints)

    async def generate_outfit_suggestions(self, context: StylistContext) -> list[OutfitSuggestion]:
        constraints = context.constraints.model_dump(exclude_none=True)
        plan = self.plan(context.goal, constraints, context)
        execution = await self.execute(plan)

        if execution.status is not ExecutionStatus.completed:
            critique = self.critique(execution)
            if not critique.should_retry:
                raise AgentError("Failed to generate outfit suggestions")
            logger.info("stylist.retrying", plan_id=plan.id, overall_score=critique.overall_score)
            execution = await self.execute(plan)

        return extract_outfit_suggestions(execution)

    @staticmethod
    def _wardrobe_filters(constraints: dict[str, Any], context: StylistContext) -> WardrobeFilters:
        return WardrobeFilters(
            category=constraints.get("category"),
            colors=constraints.get("colors"),
            seasons=constraints.get("seasons"),
            formality=constraints.get("formality") or context.constraints.formality,
            is_clean=True,
            max_wear_count=MAX_WEAR_COUNT,
        )


def outfit_combinations(items: list[WardrobeItemSummary]) -> list[list[WardrobeItemSummary]]:
    """Pair the first shirts and pants, topping each pair with a jacket and shoes when owned."""
    shirts = [item for item in items if item.category == "shirt"]
    pants = [item for item in items if item.category == "pants"]
    jackets = [item for item in items if item.category == "jacket"]
    shoes = [item for item in items if item.category == "shoes"]

    combinations: list[list[WardrobeItemSummary]] = []
    for shirt in shirts[:MAX_COMBINATIONS]:
        for trousers in pants[:MAX_COMBINATIONS]:
            index = len(combinations)
            combination = [shirt, trousers]
            if jackets:
                combination.append(jackets[index % len(jackets)])
            if shoes:
                combination.append(shoes[index % len(shoes)])
            combinations.append(combination)
            if len(combinations) >= MAX_COMBINATIONS:
                return combinations
    return combinations


def extract_outfit_suggestions(execution: Execution) -> list[OutfitSuggestion]:
    search = execution.completed_step("searchWardrobe")
    if search is None or search.result is None:
        return []
    scored = execution.completed_step("scoreOutfit")
    score: OutfitScore | None = scored.result if scored is not None else None

    return [
        OutfitSuggestion(
            items=[
                OutfitItem(
                    id=item.id,
                    title=item.title,
                    category=item.category,
                    image_url=item.image_url,
                    colors=item.colors,
                    formality=item.formality,
                )
                for item in combination
            ],
            rationale=score.rationale if score else DEFAULT_RATIONALE,
            score=score.score if score else DEFAULT_SCORE,
            confidence=SUGGESTION_CONFIDENCE,
            alternatives=list(ALTERNATIVES),
        )
        for combination in outfit_combinations(search.result.items)
    ]


__all__ = ["StylistAgent", "extract_outfit_suggestions", "outfit_combinations"]
