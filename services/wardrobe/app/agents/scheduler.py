"""Dependency-ordered step scheduler shared by every agent.

A plan is a DAG of tool steps. ``run_steps`` makes repeated passes over an
execution's steps, firing every pending step whose dependencies have all
completed, until either every step has completed or a pass completes
nothing new. Outputs flow between steps through an explicit propagation
table keyed on ``(producer_tool, consumer_tool)``.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

import structlog

from ..observability.otel import get_tracer
from ..tools.types import ToolParams, ToolResult, utcnow
from .errors import InvalidPlanError
from .types import Execution, ExecutionStatus, LogLevel, Plan, PlanStep, StepStatus

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

T = TypeVar("T")

Dispatch = Callable[[PlanStep], Awaitable[ToolResult]]
Projection = Callable[[Any, Any], ToolParams]
PropagationTable = Mapping[tuple[str, str], Projection]
StepLogger = Callable[[Execution, LogLevel, str, Optional[dict[str, Any]], Optional[str]], None]


def validate_plan(plan: Plan) -> None:
    """Reject plans with duplicate ids, unknown dependencies or cycles."""
    by_id: dict[str, PlanStep] = {}
    for step in plan.steps:
        if step.id in by_id:
            raise InvalidPlanError(f"Duplicate step id {step.id}", [step.id])
        by_id[step.id] = step

    for step in plan.steps:
        unknown = [dep for dep in step.dependencies if dep not in by_id]
        if unknown:
            raise InvalidPlanError(f"Step {step.id} depends on unknown steps: {', '.join(unknown)}", [step.id])

    visiting: set[str] = set()
    visited: set[str] = set()

    def visit(step_id: str, path: list[str]) -> None:
        if step_id in visiting:
            cycle = path[path.index(step_id):] + [step_id]
            raise InvalidPlanError(f"Plan contains a dependency cycle: {' -> '.join(cycle)}", cycle)
        if step_id in visited:
            return
        visiting.add(step_id)
        for dep in by_id[step_id].dependencies:
            visit(dep, path + [step_id])
        visiting.discard(step_id)
        visited.add(step_id)

    for step in plan.steps:
        visit(step.id, [])


def propagate(step: PlanStep, execution: Execution, propagations: PropagationTable) -> None:
    """Fold the results of ``step``'s completed dependencies into its parameters."""
    for dep_id in step.dependencies:
        producer = execution.step(dep_id)
        if producer is None or producer.status is not StepStatus.completed or producer.result is None:
            continue
        projection = propagations.get((producer.tool_name, step.tool_name))
        if projection is not None:
            step.parameters = projection(step.parameters, producer.result)


async def run_steps(
    execution: Execution,
    dispatch: Dispatch,
    propagations: PropagationTable,
    log: StepLogger,
    parallel: bool = False,
    timeout_s: float | None = None,
) -> Execution:
    completed: set[str] = set()
    total = len(execution.steps)

    while len(completed) < total:
        progress = False
        if parallel:
            eligible = [step for step in execution.steps if _is_ready(step, completed)]
            await asyncio.gather(
                *(_run_step(execution, step, dispatch, propagations, log, timeout_s) for step in eligible)
            )
            for step in eligible:
                if step.status is StepStatus.completed:
                    completed.add(step.id)
                    progress = True
        else:
            for step in execution.steps:
                if not _is_ready(step, completed):
                    continue
                await _run_step(execution, step, dispatch, propagations, log, timeout_s)
                if step.status is StepStatus.completed:
                    completed.add(step.id)
                    progress = True
        if not progress:
            break

    execution.status = ExecutionStatus.completed if len(completed) == total else ExecutionStatus.failed
    execution.end_time = utcnow()
    if execution.status is ExecutionStatus.failed:
        blocked = [step.id for step in execution.steps if step.status is StepStatus.pending]
        log(execution, "error", "Execution stopped without completing every step", {"blocked_steps": blocked}, None)
    return execution


def _is_ready(step: PlanStep, completed: set[str]) -> bool:
    return step.status is StepStatus.pending and all(dep in completed for dep in step.dependencies)


async def _run_step(
    execution: Execution,
    step: PlanStep,
    dispatch: Dispatch,
    propagations: PropagationTable,
    log: StepLogger,
    timeout_s: float | None,
) -> None:
    propagate(step, execution, propagations)
    step.status = StepStatus.running
    execution.current_step = execution.steps.index(step)
    log(execution, "info", f"Executing step: {step.tool_name}", None, step.id)

    with tracer.start_as_current_span("agent.step") as span:
        span.set_attribute("agent.step.tool", step.tool_name)
        span.set_attribute("agent.execution_id", execution.id)
        try:
            if timeout_s:
                result = await asyncio.wait_for(dispatch(step), timeout_s)
            else:
                result = await dispatch(step)
        except asyncio.TimeoutError:
            result = ToolResult.fail(step.tool_name, f"Step timed out after {timeout_s:g}s")
        except Exception as exc:
            result = ToolResult.fail(step.tool_name, str(exc) or exc.__class__.__name__)

        if result.success:
            step.status = StepStatus.completed
            step.result = result.data
            log(
                execution,
                "info",
                f"Step completed: {step.tool_name}",
                {"execution_time_ms": result.metadata.execution_time_ms},
                step.id,
            )
        else:
            step.status = StepStatus.failed
            step.error = result.error or "Unknown error"
            log(execution, "error", f"Step failed: {step.tool_name}", {"error": step.error}, step.id)
        span.set_attribute("agent.step.status", step.status.value)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int,
    base_delay: float = 1.0,
) -> T:
    """Run ``operation`` up to ``max_retries + 1`` times.

    Attempt ``k`` (counting from zero) waits ``base_delay * 2**k`` seconds
    first. Exceptions and unsuccessful ``ToolResult`` values are retried;
    once attempts run out the last exception is re-raised, or the last
    failed result returned.
    """
    last_error: Exception | None = None
    last_result: Any = None
    for attempt in range(max_retries + 1):
        if attempt:
            await asyncio.sleep(base_delay * 2**attempt)
        try:
            result = await operation()
        except Exception as exc:
            last_error, last_result = exc, None
            logger.warning("agent.retry", attempt=attempt, max_retries=max_retries, error=str(exc))
            continue
        if isinstance(result, ToolResult) and not result.success:
            last_error, last_result = None, result
            logger.warning("agent.retry", attempt=attempt, max_retries=max_retries, error=result.error)
            continue
        return result

    if last_error is not None:
        raise last_error
    return last_result


__all__ = [
    "Dispatch",
    "Projection",
    "PropagationTable",
    "StepLogger",
    "propagate",
    "retry_with_backoff",
    "run_steps",
    "validate_plan",
]
