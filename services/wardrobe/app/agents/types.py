"""Plan, execution and critique records shared by every agent."""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..config import AgentSettings, get_settings
from ..tools.types import ToolParams, utcnow

LogLevel = Literal["debug", "info", "warn", "error"]

LOG_LEVEL_ORDER: dict[str, int] = {"debug": 0, "info": 1, "warn": 2, "error": 3}


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class StepStatus(str, enum.Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class ExecutionStatus(str, enum.Enum):
    running = "running"
    completed = "completed"
    failed = "failed"


class PlanStep(BaseModel):
    id: str
    tool_name: str
    parameters: ToolParams
    expected_output: str = ""
    dependencies: list[str] = Field(default_factory=list)
    status: StepStatus = StepStatus.pending
    result: Any = None
    error: str | None = None


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("plan"))
    goal: str
    constraints: dict[str, Any] = Field(default_factory=dict)
    steps: list[PlanStep]
    estimated_time_ms: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class ExecutionLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    level: LogLevel
    message: str
    data: dict[str, Any] | None = None
    step_id: str | None = None


class Execution(BaseModel):
    id: str = Field(default_factory=lambda: new_id("exec"))
    plan_id: str
    steps: list[PlanStep]
    current_step: int = 0
    status: ExecutionStatus = ExecutionStatus.running
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    logs: list[ExecutionLogEntry] = Field(default_factory=list)

    def step(self, step_id: str) -> PlanStep | None:
        return next((step for step in self.steps if step.id == step_id), None)

    def completed_step(self, tool_name: str) -> PlanStep | None:
        return next(
            (step for step in self.steps if step.tool_name == tool_name and step.status is StepStatus.completed),
            None,
        )


class StepScore(BaseModel):
    step_id: str
    score: float
    feedback: str


class Critique(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("critique"))
    execution_id: str
    overall_score: float
    step_scores: list[StepScore]
    suggestions: list[str] = Field(default_factory=list)
    should_retry: bool = False


@dataclass(frozen=True)
class AgentConfig:
    max_retries: int = 3
    timeout_ms: int = 30_000
    enable_critique: bool = True
    enable_learning: bool = True
    log_level: LogLevel = "info"
    parallel_steps: bool = False
    retry_base_delay_s: float = 1.0
    max_executions: int = 500

    @classmethod
    def from_settings(cls, settings: AgentSettings | None = None, **overrides: Any) -> "AgentConfig":
        settings = settings or get_settings().agent
        return cls(**{**settings.model_dump(), **overrides})


class StylistConstraints(BaseModel):
    occasion: str | None = None
    weather: dict[str, Any] | None = None
    formality: str | None = None
    colors: list[str] | None = None
    avoid_colors: list[str] | None = None
    comfort: list[str] | None = None


class StylistContext(BaseModel):
    user_id: str
    goal: str
    constraints: StylistConstraints = Field(default_factory=StylistConstraints)
    preferences: dict[str, Any] = Field(default_factory=dict)
    feedback_history: list[dict[str, Any]] = Field(default_factory=list)


class OutfitItem(BaseModel):
    id: str
    title: str
    category: str
    image_url: str = ""
    colors: list[str] = Field(default_factory=list)
    formality: str = "casual"


class OutfitSuggestion(BaseModel):
    id: str = Field(default_factory=lambda: new_id("outfit"))
    items: list[OutfitItem]
    rationale: str
    score: float
    confidence: float
    alternatives: list[str] = Field(default_factory=list)


__all__ = [
    "AgentConfig",
    "Critique",
    "Execution",
    "ExecutionLogEntry",
    "ExecutionStatus",
    "LOG_LEVEL_ORDER",
    "LogLevel",
    "OutfitItem",
    "OutfitSuggestion",
    "Plan",
    "PlanStep",
    "StepScore",
    "StepStatus",
    "StylistConstraints",
    "StylistContext",
    "new_id",
]
