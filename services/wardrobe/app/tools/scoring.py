"""Heuristic outfit scoring."""
from __future__ import annotations

import time
from typing import Any, Sequence

from .types import OutfitScore, ScoreBreakdown, ToolResult, WardrobeItemSummary, WeatherData

FORMALITY_LEVELS = {
    "casual": 0.2,
    "business": 0.6,
    "formal": 0.9,
    "sport": 0.1,
    "party": 0.8,
    "outdoor": 0.3,
}
NEUTRAL_COLORS = {"black", "white", "gray", "brown", "beige", "navy"}

_GOAL_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("formal", ("formal", "dress", "suit")),
    ("business", ("business", "office", "work")),
    ("casual", ("casual", "relaxed", "comfortable")),
    ("sport", ("sport", "gym", "workout")),
    ("party", ("party", "night", "celebration")),
    ("outdoor", ("outdoor", "hiking", "camping")),
]


def formality_from_goal(goal: str) -> str | None:
    lowered = goal.lower()
    for formality, keywords in _GOAL_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return formality
    return None


def season_from_temperature(temperature: float) -> str:
    if temperature < 5:
        return "Winter"
    if temperature < 15:
        return "Fall"
    if temperature < 25:
        return "Spring"
    return "Summer"


def score_weather(items: Sequence[WardrobeItemSummary], weather: WeatherData) -> float:
    score = 0.5
    for item in items:
        if item.category == "jacket" and weather.temperature < 15:
            score += 0.1
        if item.category == "shirt" and weather.temperature > 20:
            score += 0.1
        if item.fabric == "wool" and weather.temperature < 10:
            score += 0.1
        if item.fabric == "cotton" and weather.temperature > 25:
            score += 0.1
    if weather.precipitation > 0 and any(item.fabric == "leather" or item.category == "jacket" for item in items):
        score += 0.2
    return min(1.0, max(0.0, score))


def score_formality(items: Sequence[WardrobeItemSummary], goal: str, constraints: dict[str, Any]) -> float:
    if not items:
        return 0.5
    target_name = formality_from_goal(goal) or constraints.get("formality") or "casual"
    target = FORMALITY_LEVELS.get(target_name, 0.5)
    average = sum(FORMALITY_LEVELS.get(item.formality, 0.5) for item in items) / len(items)
    return max(0.0, 1 - abs(target - average) * 2)


def score_color_harmony(items: Sequence[WardrobeItemSummary]) -> float:
    if len(items) < 2:
        return 0.5
    colors = [color for item in items for color in item.colors]
    neutrals = [color for color in colors if color in NEUTRAL_COLORS]
    brights = [color for color in colors if color not in NEUTRAL_COLORS]
    return 0.8 if neutrals and len(brights) <= 2 else 0.4


def score_seasonality(items: Sequence[WardrobeItemSummary], weather: WeatherData) -> float:
    season = season_from_temperature(weather.temperature)
    score = 0.5 + 0.1 * sum(1 for item in items if season in item.seasons)
    return min(1.0, score)


def score_wear_frequency(items: Sequence[WardrobeItemSummary]) -> float:
    if not items:
        return 0.8
    average = sum(item.wear_count for item in items) / len(items)
    if average < 3:
        return 0.8
    if average < 7:
        return 0.6
    return 0.3


def _suggestions(breakdown: ScoreBreakdown) -> list[str]:
    suggestions: list[str] = []
    if breakdown.weather < 0.6:
        suggestions.append("Consider adding a jacket or adjusting layers for the weather")
    if breakdown.formality < 0.6:
        suggestions.append("Try adding more formal pieces or adjusting the formality level")
    if breakdown.color_harmony < 0.6:
        suggestions.append("Consider adding neutral colors to balance the outfit")
    if breakdown.wear_frequency < 0.5:
        suggestions.append("Try incorporating some less-worn items to refresh your look")
    return suggestions


def _rationale(breakdown: ScoreBreakdown, overall: float, goal: str, weather: WeatherData) -> str:
    components = breakdown.model_dump()
    strengths = [name for name, value in components.items() if value > 0.7]
    weaknesses = [name for name, value in components.items() if value < 0.5]
    parts = [f"This outfit scores {round(overall * 100)}% for your {goal} goal."]
    if strengths:
        parts.append(f"Strengths include {', '.join(strengths)}.")
    if weaknesses:
        parts.append(f"Areas for improvement: {', '.join(weaknesses)}.")
    parts.append(f"Weather conditions: {weather.temperature:g}°C, {weather.condition}.")
    return " ".join(parts)


class ScoringTool:
    async def score_outfit(
        self,
        goal: str,
        constraints: dict[str, Any],
        weather: WeatherData | None,
        items: Sequence[WardrobeItemSummary] | None,
    ) -> ToolResult:
        start = time.perf_counter()
        if weather is None or items is None:
            return ToolResult.fail("outfit-scoring", "Outfit scoring failed: weather and items are required")

        breakdown = ScoreBreakdown(
            weather=score_weather(items, weather),
            formality=score_formality(items, goal, constraints),
            color_harmony=score_color_harmony(items),
            seasonality=score_seasonality(items, weather),
            wear_frequency=score_wear_frequency(items),
        )
        values = list(breakdown.model_dump().values())
        overall = sum(values) / len(values)
        score = OutfitScore(
            score=round(overall, 2),
            rationale=_rationale(breakdown, overall, goal, weather),
            breakdown=breakdown,
            suggestions=_suggestions(breakdown),
        )
        return ToolResult.ok("outfit-scoring", score, (time.perf_counter() - start) * 1000)


__all__ = [
    "ScoringTool",
    "formality_from_goal",
    "season_from_temperature",
    "score_color_harmony",
    "score_formality",
    "score_seasonality",
    "score_wear_frequency",
    "score_weather",
]
