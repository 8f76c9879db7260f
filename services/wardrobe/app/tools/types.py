"""Tool parameter, payload and result types.

Every tool the registry knows has its own parameter model tagged by ``tool``;
``ToolParams`` is the discriminated union over all of them, so a step's
parameters always carry the tool name they were built for.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

Priority = Literal["high", "medium", "low"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Payloads


class WeatherData(BaseModel):
    temperature: float
    condition: str
    humidity: float
    wind_speed: float
    precipitation: float
    timestamp: datetime = Field(default_factory=utcnow)


class WardrobeFilters(BaseModel):
    category: str | None = None
    colors: list[str] | None = None
    seasons: list[str] | None = None
    formality: str | None = None
    is_clean: bool | None = None
    max_wear_count: int | None = None


class WardrobeItemSummary(BaseModel):
    id: str
    title: str
    category: str
    colors: list[str] = Field(default_factory=list)
    formality: str = "casual"
    is_clean: bool = True
    wear_count: int = 0
    fabric: str = "unknown"
    seasons: list[str] = Field(default_factory=list)
    image_url: str = ""
    similarity: float | None = None


class WardrobeSearchResult(BaseModel):
    items: list[WardrobeItemSummary]
    total_count: int
    filters: WardrobeFilters


class LaundryStatus(BaseModel):
    item_id: str
    is_clean: bool
    last_worn: datetime | None = None
    wear_count: int


class ScoreBreakdown(BaseModel):
    weather: float
    formality: float
    color_harmony: float
    seasonality: float
    wear_frequency: float


class OutfitScore(BaseModel):
    score: float
    rationale: str
    breakdown: ScoreBreakdown
    suggestions: list[str] = Field(default_factory=list)


class WearEntry(BaseModel):
    item_id: str
    count: int


class ColorCount(BaseModel):
    color: str
    count: int


class WearAnalysis(BaseModel):
    total_items: int
    avg_wear_count: float
    most_worn_item: WearEntry | None = None
    least_worn_item: WearEntry | None = None


class WearFrequencyReport(BaseModel):
    wear_frequency: list[WearEntry]
    most_used_colors: list[ColorCount]
    analysis: WearAnalysis


class SuggestedSpecs(BaseModel):
    colors: list[str]
    formality: str
    seasons: list[str]
    fabric: str | None = None


class GapAnalysis(BaseModel):
    category: str
    priority: Priority
    description: str
    suggested_specs: SuggestedSpecs
    reasoning: str


class GapSummary(BaseModel):
    total_gaps: int
    high_priority_gaps: int
    medium_priority_gaps: int


class GapReport(BaseModel):
    gaps: list[GapAnalysis]
    summary: GapSummary


class OptimizationSuggestion(BaseModel):
    type: Literal["add", "remove"]
    priority: Priority
    reason: str
    item_id: str | None = None
    category: str | None = None
    specs: SuggestedSpecs | None = None


class OptimizationSummary(BaseModel):
    total_suggestions: int
    add_suggestions: int
    remove_suggestions: int


class OptimizationReport(BaseModel):
    suggestions: list[OptimizationSuggestion]
    summary: OptimizationSummary


class ImageAnalysis(BaseModel):
    colors: list[str]
    patterns: list[str]
    fabric: str
    category: str
    formality: str
    confidence: float
    embedding: list[float] = Field(default_factory=list)
    perceptual_hash: str = ""


class SimilarItem(BaseModel):
    id: str
    similarity: float
    perceptual_hash: str


class DuplicateDetection(BaseModel):
    is_duplicate: bool
    similar_items: list[SimilarItem] = Field(default_factory=list)
    confidence: float = 0.0


class EnrichmentResult(BaseModel):
    item_id: str
    enriched: bool
    message: str


class ItemUpdate(BaseModel):
    item_id: str
    is_clean: bool
    wear_count: int


# Parameters


class ToolParamsBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GetWeatherParams(ToolParamsBase):
    tool: Literal["getWeather"] = "getWeather"
    city: str
    date: str


class SearchWardrobeParams(ToolParamsBase):
    tool: Literal["searchWardrobe"] = "searchWardrobe"
    user_id: str
    filters: WardrobeFilters = Field(default_factory=WardrobeFilters)
    embedding_query: list[float] | None = None


class GetLaundryStatusParams(ToolParamsBase):
    tool: Literal["getLaundryStatus"] = "getLaundryStatus"
    user_id: str
    item_ids: list[str] = Field(default_factory=list)


class MarkWornParams(ToolParamsBase):
    tool: Literal["markWorn"] = "markWorn"
    user_id: str
    item_id: str


class MarkCleanParams(ToolParamsBase):
    tool: Literal["markClean"] = "markClean"
    user_id: str
    item_id: str


class ScoreOutfitParams(ToolParamsBase):
    tool: Literal["scoreOutfit"] = "scoreOutfit"
    goal: str
    constraints: dict[str, Any] = Field(default_factory=dict)
    weather: WeatherData | None = None
    items: list[WardrobeItemSummary] | None = None


class AnalyzeWearFrequencyParams(ToolParamsBase):
    tool: Literal["analyzeWearFrequency"] = "analyzeWearFrequency"
    user_id: str
    days: int = 30


class DetectGapsParams(ToolParamsBase):
    tool: Literal["detectGaps"] = "detectGaps"
    user_id: str
    capsule_goal: str = "versatile"


class SuggestOptimizationsParams(ToolParamsBase):
    tool: Literal["suggestOptimizations"] = "suggestOptimizations"
    user_id: str
    wear_data: WearFrequencyReport | None = None
    gaps: GapReport | None = None


class AnalyzeImageParams(ToolParamsBase):
    tool: Literal["analyzeImage"] = "analyzeImage"
    image_url: str
    user_id: str


class DetectDuplicatesParams(ToolParamsBase):
    tool: Literal["detectDuplicates"] = "detectDuplicates"
    user_id: str
    analysis: ImageAnalysis | None = None


class EnrichItemParams(ToolParamsBase):
    tool: Literal["enrichItem"] = "enrichItem"
    item_id: str | None = None
    user_id: str
    analysis: ImageAnalysis | None = None


ToolParams = Annotated[
    Union[
        GetWeatherParams,
        SearchWardrobeParams,
        GetLaundryStatusParams,
        MarkWornParams,
        MarkCleanParams,
        ScoreOutfitParams,
        AnalyzeWearFrequencyParams,
        DetectGapsParams,
        SuggestOptimizationsParams,
        AnalyzeImageParams,
        DetectDuplicatesParams,
        EnrichItemParams,
    ],
    Field(discriminator="tool"),
]

_params_adapter: TypeAdapter[Any] = TypeAdapter(ToolParams)


def parse_tool_params(tool_name: str, raw: dict[str, Any]) -> ToolParams:
    """Validate a raw parameter mapping against the model registered for ``tool_name``."""
    return _params_adapter.validate_python({**raw, "tool": tool_name})


# Result envelope


class ToolMetadata(BaseModel):
    execution_time_ms: float
    tool_name: str
    timestamp: datetime = Field(default_factory=utcnow)


class ToolResult(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None
    metadata: ToolMetadata

    @classmethod
    def ok(cls, tool_name: str, data: Any = None, execution_time_ms: float = 0.0) -> "ToolResult":
        return cls(success=True, data=data, metadata=ToolMetadata(execution_time_ms=execution_time_ms, tool_name=tool_name))

    @classmethod
    def fail(cls, tool_name: str, error: str, execution_time_ms: float = 0.0) -> "ToolResult":
        return cls(success=False, error=error, metadata=ToolMetadata(execution_time_ms=execution_time_ms, tool_name=tool_name))


__all__ = [
    "AnalyzeImageParams",
    "AnalyzeWearFrequencyParams",
    "ColorCount",
    "DetectDuplicatesParams",
    "DetectGapsParams",
    "DuplicateDetection",
    "EnrichItemParams",
    "EnrichmentResult",
    "GapAnalysis",
    "GapReport",
    "GapSummary",
    "GetLaundryStatusParams",
    "GetWeatherParams",
    "ImageAnalysis",
    "ItemUpdate",
    "LaundryStatus",
    "MarkCleanParams",
    "MarkWornParams",
    "OptimizationReport",
    "OptimizationSuggestion",
    "OptimizationSummary",
    "OutfitScore",
    "Priority",
    "ScoreBreakdown",
    "ScoreOutfitParams",
    "SearchWardrobeParams",
    "SimilarItem",
    "SuggestOptimizationsParams",
    "SuggestedSpecs",
    "ToolMetadata",
    "ToolParams",
    "ToolResult",
    "WardrobeFilters",
    "WardrobeItemSummary",
    "WardrobeSearchResult",
    "WearAnalysis",
    "WearEntry",
    "WearFrequencyReport",
    "WeatherData",
    "parse_tool_params",
    "utcnow",
]
