"""Wear analytics, gap detection and optimisation suggestions."""
from __future__ import annotations

import time
from typing import Iterable

from ..persistence.store import ItemFilters, WardrobeStore
from .types import (
    ColorCount,
    GapAnalysis,
    GapReport,
    GapSummary,
    OptimizationReport,
    OptimizationSuggestion,
    OptimizationSummary,
    SuggestedSpecs,
    ToolResult,
    WearAnalysis,
    WearEntry,
    WearFrequencyReport,
)

GAP_CATEGORIES = ("shirt", "pants", "jacket", "dress", "shoes", "accessory")
OVERWORN_THRESHOLD = 10
ALL_SEASONS = ["Spring", "Summer", "Fall", "Winter"]


def default_specs(category: str, capsule_goal: str) -> SuggestedSpecs:
    # capsule_goal is accepted for future palettes; every goal shares one today.
    specs = SuggestedSpecs(colors=["black", "white", "navy"], formality="casual", seasons=list(ALL_SEASONS))
    if category == "shirt":
        specs.colors = ["white", "blue", "gray"]
    elif category == "pants":
        specs.colors = ["black", "navy", "khaki"]
    elif category == "jacket":
        specs.colors = ["black", "navy"]
        specs.fabric = "wool"
    return specs


def analyze_wardrobe_gaps(categories: Iterable[str], capsule_goal: str = "versatile") -> list[GapAnalysis]:
    """Gaps for the fixed capsule categories given the categories of every owned item."""
    owned = list(categories)
    gaps: list[GapAnalysis] = []
    for category in GAP_CATEGORIES:
        count = owned.count(category)
        if count == 0:
            gaps.append(
                GapAnalysis(
                    category=category,
                    priority="high",
                    description=f"No {category} items found",
                    suggested_specs=default_specs(category, capsule_goal),
                    reasoning=f"Essential {category} needed for a complete wardrobe",
                )
            )
        elif count < 2:
            gaps.append(
                GapAnalysis(
                    category=category,
                    priority="medium",
                    description=f"Limited {category} options",
                    suggested_specs=default_specs(category, capsule_goal),
                    reasoning=f"More variety in {category} would increase outfit combinations",
                )
            )
    return gaps


def build_gap_report(gaps: list[GapAnalysis]) -> GapReport:
    return GapReport(
        gaps=gaps,
        summary=GapSummary(
            total_gaps=len(gaps),
            high_priority_gaps=sum(1 for gap in gaps if gap.priority == "high"),
            medium_priority_gaps=sum(1 for gap in gaps if gap.priority == "medium"),
        ),
    )


def suggest_optimizations(wear_data: WearFrequencyReport | None, gaps: GapReport | None) -> OptimizationReport:
    suggestions: list[OptimizationSuggestion] = []

    most_worn = wear_data.analysis.most_worn_item if wear_data else None
    if most_worn is not None and most_worn.count > OVERWORN_THRESHOLD:
        suggestions.append(
            OptimizationSuggestion(
                type="remove",
                item_id=most_worn.item_id,
                reason="Item has been worn too frequently and may need replacement",
                priority="medium",
            )
        )

    for gap in gaps.gaps if gaps else []:
        if gap.priority == "high":
            suggestions.append(
                OptimizationSuggestion(
                    type="add",
                    category=gap.category,
                    reason=gap.reasoning,
                    priority="high",
                    specs=gap.suggested_specs,
                )
            )

    return OptimizationReport(
        suggestions=suggestions,
        summary=OptimizationSummary(
            total_suggestions=len(suggestions),
            add_suggestions=sum(1 for s in suggestions if s.type == "add"),
            remove_suggestions=sum(1 for s in suggestions if s.type == "remove"),
        ),
    )


class InventoryTool:
    def __init__(self, store: WardrobeStore) -> None:
        self._store = store

    async def analyze_wear_frequency(self, user_id: str, days: int = 30) -> ToolResult:
        start = time.perf_counter()
        frequency = [WearEntry(item_id=e.item_id, count=e.count) for e in await self._store.get_wear_frequency(user_id, days)]
        colors = [ColorCount(color=c.color, count=c.count) for c in await self._store.get_most_used_colors(user_id)]
        analysis = WearAnalysis(
            total_items=len(frequency),
            avg_wear_count=sum(e.count for e in frequency) / len(frequency) if frequency else 0.0,
            most_worn_item=frequency[0] if frequency else None,
            least_worn_item=frequency[-1] if frequency else None,
        )
        report = WearFrequencyReport(wear_frequency=frequency, most_used_colors=colors, analysis=analysis)
        return ToolResult.ok("wear-frequency", report, (time.perf_counter() - start) * 1000)

    async def detect_gaps(self, user_id: str, capsule_goal: str = "versatile") -> ToolResult:
        start = time.perf_counter()
        items = await self._store.search_items(ItemFilters(user_id=user_id))
        report = build_gap_report(analyze_wardrobe_gaps((item.category for item in items), capsule_goal))
        return ToolResult.ok("gap-analysis", report, (time.perf_counter() - start) * 1000)

    async def suggest_optimizations(
        self,
        user_id: str,
        wear_data: WearFrequencyReport | None,
        gaps: GapReport | None,
    ) -> ToolResult:
        start = time.perf_counter()
        report = suggest_optimizations(wear_data, gaps)
        return ToolResult.ok("inventory-optimizations", report, (time.perf_counter() - start) * 1000)


__all__ = [
    "GAP_CATEGORIES",
    "InventoryTool",
    "analyze_wardrobe_gaps",
    "build_gap_report",
    "default_specs",
    "suggest_optimizations",
]
