import pytest

from services.wardrobe.app.agents.errors import AgentError
from services.wardrobe.app.agents.stylist import StylistAgent, extract_outfit_suggestions, outfit_combinations
from services.wardrobe.app.agents.types import (
    Execution,
    ExecutionStatus,
    PlanStep,
    StepStatus,
    StylistConstraints,
    StylistContext,
)
from services.wardrobe.app.tools.types import (
    SearchWardrobeParams,
    ToolResult,
    WardrobeFilters,
    WardrobeItemSummary,
    WardrobeSearchResult,
)
from wardrobe_stubs import SAMPLE_WEATHER, StubRegistry, sample_items, stylist_handlers


def _context(**constraints) -> StylistContext:
    return StylistContext(user_id="u1", goal="casual friday", constraints=StylistConstraints(**constraints))


def test_plan_declares_four_steps_with_resolved_dependencies(agent_config, stub_registry):
    agent = StylistAgent(stub_registry, agent_config)

    plan = agent.plan("casual friday", {}, _context(formality="business"))

    tools = [step.tool_name for step in plan.steps]
    assert tools == ["getWeather", "searchWardrobe", "getLaundryStatus", "scoreOutfit"]
    ids = {step.tool_name: step.id for step in plan.steps}
    assert plan.steps[2].dependencies == [ids["searchWardrobe"]]
    assert plan.steps[3].dependencies == [ids["getWeather"], ids["searchWardrobe"], ids["getLaundryStatus"]]
    assert all(step.status is StepStatus.pending for step in plan.steps)
    assert plan.estimated_time_ms == 8000

    weather, search = plan.steps[0].parameters, plan.steps[1].parameters
    assert weather.city == "New York"
    assert search.filters.is_clean is True
    assert search.filters.max_wear_count == 10
    assert search.filters.formality == "business"


def test_plan_uses_requested_city_and_fresh_ids(agent_config, stub_registry):
    agent = StylistAgent(stub_registry, agent_config)

    first = agent.plan("g", {}, _context(weather={"city": "Oslo"}))
    second = agent.plan("g", {}, _context(weather={"city": "Oslo"}))

    assert first.steps[0].parameters.city == "Oslo"
    assert {s.id for s in first.steps}.isdisjoint({s.id for s in second.steps})


@pytest.mark.asyncio
async def test_all_steps_succeed_and_score_receives_upstream_data(agent_config, stub_registry):
    agent = StylistAgent(stub_registry, agent_config)
    plan = agent.plan("casual friday", {}, _context())

    execution = await agent.execute(plan)

    assert execution.status is ExecutionStatus.completed
    laundry = execution.completed_step("getLaundryStatus")
    assert laundry.parameters.item_ids == [item.id for item in sample_items()]
    score = execution.completed_step("scoreOutfit")
    assert score.parameters.weather == SAMPLE_WEATHER
    assert [item.id for item in score.parameters.items] == [item.id for item in sample_items()]
    assert score.result.rationale == "5 items at 12C"
    assert plan.steps[3].parameters.weather is None


@pytest.mark.asyncio
async def test_failed_search_leaves_dependents_pending(agent_config):
    handlers = stylist_handlers()
    handlers["searchWardrobe"] = lambda params: ToolResult.fail("wardrobe-search", "database offline")
    registry = StubRegistry(handlers)
    agent = StylistAgent(registry, agent_config)

    execution = await agent.execute(agent.plan("casual friday", {}, _context()))

    assert execution.status is ExecutionStatus.failed
    statuses = {step.tool_name: step.status for step in execution.steps}
    assert statuses["searchWardrobe"] is StepStatus.failed
    assert statuses["getLaundryStatus"] is StepStatus.pending
    assert statuses["scoreOutfit"] is StepStatus.pending
    assert registry.called("getLaundryStatus") == []
    assert registry.called("scoreOutfit") == []


@pytest.mark.asyncio
async def test_critique_of_completed_execution(agent_config, stub_registry):
    agent = StylistAgent(stub_registry, agent_config)
    execution = await agent.execute(agent.plan("casual friday", {}, _context()))

    critique = agent.critique(execution)

    assert critique.overall_score == pytest.approx(0.8)
    assert critique.should_retry is False
    assert critique.suggestions == []
    assert {score.feedback for score in critique.step_scores} == {"Step executed successfully"}
    assert agent.critique(execution).overall_score == critique.overall_score


@pytest.mark.asyncio
async def test_reexecuting_a_plan_yields_equal_results(agent_config, stub_registry):
    agent = StylistAgent(stub_registry, agent_config)
    plan = agent.plan("casual friday", {}, _context())

    first = await agent.execute(plan)
    second = await agent.execute(plan)

    assert first.id != second.id
    assert [step.result for step in first.steps] == [step.result for step in second.steps]


@pytest.mark.asyncio
async def test_generate_suggestions_retries_identical_plan_once(agent_config):
    handlers = stylist_handlers()
    succeed = handlers["searchWardrobe"]
    calls = {"count": 0}

    def flaky_search(params):
        calls["count"] += 1
        if calls["count"] == 1:
            return ToolResult.fail("wardrobe-search", "timeout")
        return succeed(params)

    handlers["searchWardrobe"] = flaky_search
    agent = StylistAgent(StubRegistry(handlers), agent_config)

    suggestions = await agent.generate_outfit_suggestions(_context())

    executions = agent.get_all_executions()
    assert len(executions) == 2
    assert executions[0].plan_id == executions[1].plan_id
    assert len(suggestions) == 2
    assert all(s.score == 0.9 and s.confidence == 0.8 for s in suggestions)


@pytest.mark.asyncio
async def test_generate_suggestions_raises_when_retry_not_recommended(agent_config):
    handlers = stylist_handlers()
    handlers["getWeather"] = lambda params: ToolResult.fail("weather", "no forecast")
    agent = StylistAgent(StubRegistry(handlers), agent_config)

    with pytest.raises(AgentError, match="Failed to generate outfit suggestions"):
        await agent.generate_outfit_suggestions(_context())

    assert len(agent.get_all_executions()) == 1


def test_combinations_pair_shirts_and_pants_with_layers():
    combos = outfit_combinations(sample_items())

    assert len(combos) == 2
    assert [[item.id for item in combo] for combo in combos] == [
        ["shirt-1", "pants-1", "jacket-1", "shoes-1"],
        ["shirt-2", "pants-1", "jacket-1", "shoes-1"],
    ]


def test_combinations_are_capped_at_three():
    items = [
        WardrobeItemSummary(id=f"{category}-{n}", title=f"{category} {n}", category=category)
        for category in ("shirt", "pants")
        for n in range(4)
    ]

    combos = outfit_combinations(items)

    assert len(combos) == 3
    assert all(len(combo) == 2 for combo in combos)


def test_extraction_defaults_when_scoring_did_not_complete():
    items = sample_items()
    execution = Execution(
        plan_id="plan_x",
        steps=[
            PlanStep(
                id="search",
                tool_name="searchWardrobe",
                parameters=SearchWardrobeParams(user_id="u1"),
                status=StepStatus.completed,
                result=WardrobeSearchResult(items=items, total_count=len(items), filters=WardrobeFilters()),
            )
        ],
    )

    suggestions = extract_outfit_suggestions(execution)

    assert [s.score for s in suggestions] == [0.7, 0.7]
    assert suggestions[0].rationale == "Generated outfit suggestion"
    assert len(suggestions[0].alternatives) == 3
