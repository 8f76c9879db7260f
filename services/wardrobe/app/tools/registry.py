"""Name-keyed dispatch over every agent tool."""
from __future__ import annotations

import time
from typing import Any, Awaitable, Callable

import structlog
from pydantic import BaseModel, ValidationError

from ..observability.otel import tool_metrics
from ..perception.service import PerceptionService
from ..persistence.store import WardrobeStore
from .inventory import InventoryTool
from .scoring import ScoringTool
from .types import (
    AnalyzeImageParams,
    AnalyzeWearFrequencyParams,
    DetectDuplicatesParams,
    DetectGapsParams,
    EnrichItemParams,
    EnrichmentResult,
    GetLaundryStatusParams,
    GetWeatherParams,
    MarkCleanParams,
    MarkWornParams,
    ScoreOutfitParams,
    SearchWardrobeParams,
    SuggestOptimizationsParams,
    ToolParams,
    ToolResult,
    parse_tool_params,
)
from .wardrobe import WardrobeTool
from .weather import WeatherTool

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Awaitable[ToolResult]]


class ToolRegistry:
    """Stateless dispatcher shared by every agent.

    ``execute_tool`` never raises: unknown tools, malformed parameters and
    exceptions from a tool all come back as failed ``ToolResult`` values.
    """

    def __init__(
        self,
        store: WardrobeStore,
        perception: PerceptionService,
        weather: WeatherTool | None = None,
    ) -> None:
        self._weather = weather or WeatherTool()
        self._wardrobe = WardrobeTool(store)
        self._scoring = ScoringTool()
        self._inventory = InventoryTool(store)
        self._perception = perception
        self._handlers: dict[str, Handler] = {
            "getWeather": self._get_weather,
            "searchWardrobe": self._search_wardrobe,
            "getLaundryStatus": self._get_laundry_status,
            "markWorn": self._mark_worn,
            "markClean": self._mark_clean,
            "scoreOutfit": self._score_outfit,
            "analyzeWearFrequency": self._analyze_wear_frequency,
            "detectGaps": self._detect_gaps,
            "suggestOptimizations": self._suggest_optimizations,
            "analyzeImage": self._analyze_image,
            "detectDuplicates": self._detect_duplicates,
            "enrichItem": self._enrich_item,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    async def execute_tool(self, tool_name: str, params: ToolParams | dict[str, Any]) -> ToolResult:
        start = time.perf_counter()
        handler = self._handlers.get(tool_name)
        if handler is None:
            logger.warning("tool.unknown", tool=tool_name)
            return ToolResult.fail(tool_name, f"Unknown tool: {tool_name}")

        try:
            if isinstance(params, BaseModel):
                params = parse_tool_params(tool_name, params.model_dump(exclude={"tool"}))
            else:
                params = parse_tool_params(tool_name, params)
        except ValidationError as exc:
            logger.warning("tool.invalid_params", tool=tool_name, errors=exc.error_count())
            return ToolResult.fail(tool_name, f"Invalid parameters for {tool_name}: {exc}", _elapsed_ms(start))

        try:
            result = await handler(params)
        except Exception as exc:
            logger.warning("tool.failed", tool=tool_name, error=str(exc))
            tool_metrics().record(tool_name, False, _elapsed_ms(start))
            return ToolResult.fail(tool_name, f"Tool execution failed: {exc}", _elapsed_ms(start))

        latency_ms = _elapsed_ms(start)
        tool_metrics().record(tool_name, result.success, latency_ms)
        logger.info("tool.call", tool=tool_name, success=result.success, latency_ms=int(latency_ms))
        return result

    async def _get_weather(self, params: GetWeatherParams) -> ToolResult:
        return await self._weather.get_weather(params.city, params.date)

    async def _search_wardrobe(self, params: SearchWardrobeParams) -> ToolResult:
        return await self._wardrobe.search_wardrobe(params.user_id, params.filters, params.embedding_query)

    async def _get_laundry_status(self, params: GetLaundryStatusParams) -> ToolResult:
        return await self._wardrobe.get_laundry_status(params.user_id, params.item_ids)

    async def _mark_worn(self, params: MarkWornParams) -> ToolResult:
        return await self._wardrobe.mark_worn(params.user_id, params.item_id)

    async def _mark_clean(self, params: MarkCleanParams) -> ToolResult:
        return await self._wardrobe.mark_clean(params.user_id, params.item_id)

    async def _score_outfit(self, params: ScoreOutfitParams) -> ToolResult:
        return await self._scoring.score_outfit(params.goal, params.constraints, params.weather, params.items)

    async def _analyze_wear_frequency(self, params: AnalyzeWearFrequencyParams) -> ToolResult:
        return await self._inventory.analyze_wear_frequency(params.user_id, params.days)

    async def _detect_gaps(self, params: DetectGapsParams) -> ToolResult:
        return await self._inventory.detect_gaps(params.user_id, params.capsule_goal)

    async def _suggest_optimizations(self, params: SuggestOptimizationsParams) -> ToolResult:
        return await self._inventory.suggest_optimizations(params.user_id, params.wear_data, params.gaps)

    async def _analyze_image(self, params: AnalyzeImageParams) -> ToolResult:
        start = time.perf_counter()
        analysis = await self._perception.analyze_image(params.image_url)
        return ToolResult.ok("image-analysis", analysis, _elapsed_ms(start))

    async def _detect_duplicates(self, params: DetectDuplicatesParams) -> ToolResult:
        start = time.perf_counter()
        if params.analysis is None:
            return ToolResult.fail("duplicate-detection", "Duplicate detection requires an image analysis")
        detection = await self._perception.detect_duplicates(params.analysis, params.user_id)
        return ToolResult.ok("duplicate-detection", detection, _elapsed_ms(start))

    async def _enrich_item(self, params: EnrichItemParams) -> ToolResult:
        start = time.perf_counter()
        if params.item_id is None:
            result = EnrichmentResult(item_id="", enriched=False, message="No stored item to enrich")
        else:
            result = await self._perception.enrich_item(params.item_id, params.user_id, params.analysis)
        return ToolResult.ok("item-enrichment", result, _elapsed_ms(start))


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


__all__ = ["ToolRegistry"]
