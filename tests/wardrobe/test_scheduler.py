import asyncio
from typing import Any

import pytest

from services.wardrobe.app.agents import scheduler
from services.wardrobe.app.agents.base import BaseAgent, CritiquePolicy, PlanBuilder
from services.wardrobe.app.agents.errors import InvalidPlanError
from services.wardrobe.app.agents.scheduler import retry_with_backoff, run_steps, validate_plan
from services.wardrobe.app.agents.types import (
    AgentConfig,
    Execution,
    ExecutionStatus,
    Plan,
    PlanStep,
    StepStatus,
)
from services.wardrobe.app.tools.types import DetectGapsParams, ToolResult
from wardrobe_stubs import StubRegistry


def _step(step_id: str, *deps: str) -> PlanStep:
    return PlanStep(
        id=step_id,
        tool_name="detectGaps",
        parameters=DetectGapsParams(user_id="u1"),
        dependencies=list(deps),
    )


def _plan(*steps: PlanStep) -> Plan:
    return Plan(goal="test", steps=list(steps))


class EchoAgent(BaseAgent):
    name = "echo"
    critique_policy = CritiquePolicy(
        completed_score=1.0, failed_score=0.0, suggestion_threshold=0.5, suggestions=("retry",)
    )

    def plan(self, goal: str, constraints: dict[str, Any], context: Any = None) -> Plan:
        builder = PlanBuilder()
        builder.add(DetectGapsParams(user_id="u1"))
        return builder.build(goal, constraints)


def _collect_logs(execution: Execution, level, message, data, step_id) -> None:
    execution.logs.append({"level": level, "message": message, "step_id": step_id})


def test_validate_plan_rejects_two_step_cycle():
    plan = _plan(_step("a", "b"), _step("b", "a"))

    with pytest.raises(InvalidPlanError) as excinfo:
        validate_plan(plan)

    assert "cycle" in str(excinfo.value)
    assert set(excinfo.value.step_ids) >= {"a", "b"}


def test_validate_plan_rejects_unknown_dependency():
    with pytest.raises(InvalidPlanError):
        validate_plan(_plan(_step("a", "missing")))


def test_validate_plan_accepts_diamond():
    validate_plan(_plan(_step("a"), _step("b", "a"), _step("c", "a"), _step("d", "b", "c")))


@pytest.mark.asyncio
async def test_cyclic_plan_is_rejected_before_any_step_runs(agent_config):
    registry = StubRegistry({"detectGaps": lambda params: ToolResult.ok("gap-analysis", {})})
    agent = EchoAgent(registry, agent_config)

    with pytest.raises(InvalidPlanError):
        await agent.execute(_plan(_step("a", "b"), _step("b", "a")))

    assert registry.calls == []
    assert agent.get_all_executions() == []


@pytest.mark.asyncio
async def test_steps_never_start_before_their_dependencies_complete():
    plan = _plan(_step("d", "b", "c"), _step("c", "a"), _step("b", "a"), _step("a"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])
    started: list[str] = []

    async def dispatch(step: PlanStep) -> ToolResult:
        for dep in step.dependencies:
            assert execution.step(dep).status is StepStatus.completed
        started.append(step.id)
        return ToolResult.ok(step.tool_name, step.id)

    await run_steps(execution, dispatch, {}, _collect_logs)

    assert execution.status is ExecutionStatus.completed
    assert started.index("a") < started.index("b") < started.index("d")
    assert started.index("c") < started.index("d")
    assert all(step.result == step.id for step in execution.steps)


@pytest.mark.asyncio
async def test_failed_dependency_starves_dependents_and_loop_terminates():
    plan = _plan(_step("a"), _step("b", "a"), _step("c", "b"), _step("x"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])
    dispatched: list[str] = []

    async def dispatch(step: PlanStep) -> ToolResult:
        dispatched.append(step.id)
        if step.id == "a":
            return ToolResult.fail(step.tool_name, "boom")
        return ToolResult.ok(step.tool_name, None)

    await asyncio.wait_for(run_steps(execution, dispatch, {}, _collect_logs), timeout=1)

    assert execution.status is ExecutionStatus.failed
    assert execution.step("a").status is StepStatus.failed
    assert execution.step("a").error == "boom"
    assert execution.step("b").status is StepStatus.pending
    assert execution.step("c").status is StepStatus.pending
    assert execution.step("x").status is StepStatus.completed
    assert sorted(dispatched) == ["a", "x"]
    assert execution.end_time is not None


@pytest.mark.asyncio
async def test_dispatch_exception_becomes_failed_step():
    plan = _plan(_step("a"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])

    async def dispatch(step: PlanStep) -> ToolResult:
        raise RuntimeError("tool exploded")

    await run_steps(execution, dispatch, {}, _collect_logs)

    assert execution.status is ExecutionStatus.failed
    assert execution.step("a").error == "tool exploded"


@pytest.mark.asyncio
async def test_step_deadline_fails_slow_step():
    plan = _plan(_step("a"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])

    async def dispatch(step: PlanStep) -> ToolResult:
        await asyncio.sleep(1)
        return ToolResult.ok(step.tool_name, None)

    await run_steps(execution, dispatch, {}, _collect_logs, timeout_s=0.01)

    assert execution.step("a").status is StepStatus.failed
    assert "timed out" in execution.step("a").error


@pytest.mark.asyncio
async def test_parallel_mode_runs_eligible_steps_concurrently():
    plan = _plan(_step("a"), _step("b"), _step("c", "a", "b"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])
    b_started = asyncio.Event()

    async def dispatch(step: PlanStep) -> ToolResult:
        if step.id == "a":
            # Only completes if "b" is in flight at the same time.
            await b_started.wait()
        if step.id == "b":
            b_started.set()
        return ToolResult.ok(step.tool_name, step.id)

    await asyncio.wait_for(run_steps(execution, dispatch, {}, _collect_logs, parallel=True), timeout=1)

    assert execution.status is ExecutionStatus.completed


@pytest.mark.asyncio
async def test_propagation_table_feeds_dependency_results_forward():
    plan = _plan(_step("a"), _step("b", "a"))
    execution = Execution(plan_id=plan.id, steps=[s.model_copy(deep=True) for s in plan.steps])
    table = {("detectGaps", "detectGaps"): lambda params, result: params.model_copy(update={"capsule_goal": result})}
    seen: dict[str, str] = {}

    async def dispatch(step: PlanStep) -> ToolResult:
        seen[step.id] = step.parameters.capsule_goal
        return ToolResult.ok(step.tool_name, f"after-{step.id}")

    await run_steps(execution, dispatch, table, _collect_logs)

    assert seen == {"a": "versatile", "b": "after-a"}
    assert plan.steps[1].parameters.capsule_goal == "versatile"


@pytest.mark.asyncio
async def test_logs_are_retained_below_emission_level():
    registry = StubRegistry({"detectGaps": lambda params: ToolResult.ok("gap-analysis", {})})
    agent = EchoAgent(registry, AgentConfig(log_level="error"))

    execution = await agent.execute(agent.plan("quiet", {}))

    assert execution.status is ExecutionStatus.completed
    assert any(entry.level == "info" for entry in execution.logs)
    assert all(entry.step_id == execution.steps[0].id for entry in execution.logs if entry.step_id)


@pytest.mark.asyncio
async def test_execution_store_is_bounded():
    registry = StubRegistry({"detectGaps": lambda params: ToolResult.ok("gap-analysis", {})})
    agent = EchoAgent(registry, AgentConfig(max_executions=2))

    ids = [(await agent.execute(agent.plan("g", {}))).id for _ in range(3)]

    assert [execution.id for execution in agent.get_all_executions()] == ids[1:]
    assert agent.get_execution(ids[0]) is None


@pytest.mark.asyncio
async def test_retry_with_backoff_succeeds_after_failures(monkeypatch):
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(scheduler.asyncio, "sleep", fake_sleep)
    attempts = {"count": 0}

    async def operation() -> ToolResult:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ConnectionError("flaky")
        return ToolResult.ok("image-analysis", "ok")

    result = await retry_with_backoff(operation, max_retries=3, base_delay=0.5)

    assert result.data == "ok"
    assert attempts["count"] == 3
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_with_backoff_reraises_last_exception():
    attempts = {"count": 0}

    async def operation() -> ToolResult:
        attempts["count"] += 1
        raise ValueError(f"attempt {attempts['count']}")

    with pytest.raises(ValueError, match="attempt 3"):
        await retry_with_backoff(operation, max_retries=2, base_delay=0)

    assert attempts["count"] == 3


@pytest.mark.asyncio
async def test_retry_with_backoff_returns_last_failed_result():
    attempts = {"count": 0}

    async def operation() -> ToolResult:
        attempts["count"] += 1
        return ToolResult.fail("image-analysis", f"failure {attempts['count']}")

    result = await retry_with_backoff(operation, max_retries=1, base_delay=0)

    assert not result.success
    assert result.error == "failure 2"
    assert attempts["count"] == 2
