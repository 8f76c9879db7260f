"""Base agent: planning helpers, execution store, logging and critique."""
from __future__ import annotations

import abc
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, ClassVar, Sequence

import structlog

from ..tools.registry import ToolRegistry
from ..tools.types import ToolParams, ToolResult, utcnow
from .errors import InvalidPlanError
from .scheduler import PropagationTable, run_steps, validate_plan
from .types import (
    LOG_LEVEL_ORDER,
    AgentConfig,
    Critique,
    Execution,
    ExecutionLogEntry,
    ExecutionStatus,
    LogLevel,
    Plan,
    PlanStep,
    StepScore,
    StepStatus,
)

logger = structlog.get_logger(__name__)

ESTIMATED_STEP_TIME_MS = 2000
RETRY_SCORE_THRESHOLD = 0.5


@dataclass(frozen=True)
class CritiquePolicy:
    completed_score: float
    failed_score: float
    suggestion_threshold: float
    suggestions: tuple[str, ...]
    feedback_prefix: str = "Step"


class PlanBuilder:
    """Accumulates steps, resolving dependencies declared by tool name to fresh step ids."""

    def __init__(self) -> None:
        self._steps: list[PlanStep] = []
        self._ids: dict[str, str] = {}

    def add(self, params: ToolParams, expected_output: str = "", depends_on: Sequence[str] = ()) -> str:
        missing = [key for key in depends_on if key not in self._ids]
        if missing:
            raise InvalidPlanError(f"{params.tool} depends on undeclared steps: {', '.join(missing)}")
        step_id = f"{params.tool}-{uuid.uuid4().hex[:8]}"
        self._steps.append(
            PlanStep(
                id=step_id,
                tool_name=params.tool,
                parameters=params,
                expected_output=expected_output,
                dependencies=[self._ids[key] for key in depends_on],
            )
        )
        self._ids[params.tool] = step_id
        return step_id

    def build(self, goal: str, constraints: dict[str, Any]) -> Plan:
        return Plan(
            goal=goal,
            constraints=constraints,
            steps=list(self._steps),
            estimated_time_ms=len(self._steps) * ESTIMATED_STEP_TIME_MS,
        )


class BaseAgent(abc.ABC):
    name: ClassVar[str] = "agent"
    critique_policy: ClassVar[CritiquePolicy]
    propagations: ClassVar[PropagationTable] = {}

    def __init__(self, registry: ToolRegistry, config: AgentConfig | None = None) -> None:
        self.registry = registry
        self.config = config or AgentConfig.from_settings()
        self._executions: OrderedDict[str, Execution] = OrderedDict()
        self._lock = threading.Lock()

    @abc.abstractmethod
    def plan(self, goal: str, constraints: dict[str, Any], context: Any = None) -> Plan:
        """Build a fresh plan; performs no I/O."""

    async def execute(self, plan: Plan) -> Execution:
        validate_plan(plan)
        execution = Execution(plan_id=plan.id, steps=[step.model_copy(deep=True) for step in plan.steps])
        self._remember(execution)
        self.log(execution, "info", f"Starting execution of plan {plan.id}", {"goal": plan.goal, "steps": len(plan.steps)})
        try:
            await run_steps(
                execution,
                self.dispatch,
                self.propagations,
                self.log,
                parallel=self.config.parallel_steps,
                timeout_s=self.config.timeout_ms / 1000 if self.config.timeout_ms else None,
            )
        except Exception as exc:
            execution.status = ExecutionStatus.failed
            execution.end_time = utcnow()
            logger.error("agent.execution_defect", agent=self.name, execution_id=execution.id, exc_info=True)
            self.log(execution, "error", f"Execution failed: {exc}")
            return execution

        self.log(execution, "info", f"Execution {execution.status.value}", {"plan_id": plan.id})
        return execution

    async def dispatch(self, step: PlanStep) -> ToolResult:
        return await self.registry.execute_tool(step.tool_name, step.parameters)

    def critique(self, execution: Execution) -> Critique:
        policy = self.critique_policy
        step_scores = [
            StepScore(
                step_id=step.id,
                score=policy.completed_score if step.status is StepStatus.completed else policy.failed_score,
                feedback=(
                    f"{policy.feedback_prefix} executed successfully"
                    if step.status is StepStatus.completed
                    else f"{policy.feedback_prefix} failed: {step.error or 'Unknown error'}"
                ),
            )
            for step in execution.steps
        ]
        overall = sum(score.score for score in step_scores) / len(step_scores) if step_scores else 0.0
        return Critique(
            execution_id=execution.id,
            overall_score=overall,
            step_scores=step_scores,
            suggestions=list(policy.suggestions) if overall < policy.suggestion_threshold else [],
            should_retry=overall < RETRY_SCORE_THRESHOLD and execution.status is ExecutionStatus.failed,
        )

    def log(
        self,
        execution: Execution,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None = None,
        step_id: str | None = None,
    ) -> None:
        execution.logs.append(ExecutionLogEntry(level=level, message=message, data=data, step_id=step_id))
        if LOG_LEVEL_ORDER[level] < LOG_LEVEL_ORDER[self.config.log_level]:
            return
        emit = getattr(logger, "warning" if level == "warn" else level)
        emit(message, agent=self.name, execution_id=execution.id, step_id=step_id, data=data)

    # Execution store

    def _remember(self, execution: Execution) -> None:
        with self._lock:
            self._executions[execution.id] = execution
            while len(self._executions) > self.config.max_executions:
                self._executions.popitem(last=False)

    def get_execution(self, execution_id: str) -> Execution | None:
        with self._lock:
            return self._executions.get(execution_id)

    def get_all_executions(self) -> list[Execution]:
        with self._lock:
            return list(self._executions.values())

    def status(self) -> dict[str, Any]:
        with self._lock:
            last = next(reversed(self._executions.values()), None)
            count = len(self._executions)
        return {
            "agent": self.name,
            "executions": count,
            "last_execution": (
                {"id": last.id, "status": last.status.value, "end_time": last.end_time} if last is not None else None
            ),
        }


__all__ = ["BaseAgent", "CritiquePolicy", "PlanBuilder"]
