import pytest

from services.wardrobe.app.agents.inventory import InventoryAgent
from services.wardrobe.app.agents.types import ExecutionStatus, StepStatus
from services.wardrobe.app.tools.inventory import (
    analyze_wardrobe_gaps,
    build_gap_report,
    default_specs,
    suggest_optimizations,
)
from services.wardrobe.app.tools.types import WearAnalysis, WearEntry, WearFrequencyReport
from wardrobe_stubs import StubRegistry


def _gap_for(gaps, category):
    return [gap for gap in gaps if gap.category == category]


@pytest.mark.parametrize(
    ("count", "expected"),
    [(0, ["high"]), (1, ["medium"]), (2, []), (5, [])],
)
def test_gap_boundary_for_shoes(count, expected):
    gaps = analyze_wardrobe_gaps(["shoes"] * count)

    assert [gap.priority for gap in _gap_for(gaps, "shoes")] == expected


def test_gap_descriptions_and_specs():
    gaps = analyze_wardrobe_gaps(["pants"])

    shirt = _gap_for(gaps, "shirt")[0]
    assert shirt.description == "No shirt items found"
    assert shirt.reasoning == "Essential shirt needed for a complete wardrobe"
    assert shirt.suggested_specs.colors == ["white", "blue", "gray"]
    pants = _gap_for(gaps, "pants")[0]
    assert pants.description == "Limited pants options"
    assert pants.reasoning == "More variety in pants would increase outfit combinations"


def test_default_specs_overrides():
    jacket = default_specs("jacket", "versatile")
    dress = default_specs("dress", "versatile")

    assert jacket.colors == ["black", "navy"]
    assert jacket.fabric == "wool"
    assert dress.colors == ["black", "white", "navy"]
    assert dress.formality == "casual"
    assert dress.seasons == ["Spring", "Summer", "Fall", "Winter"]
    assert dress.fabric is None


def test_optimizations_flag_overworn_item_and_high_gaps():
    wear = WearFrequencyReport(
        wear_frequency=[WearEntry(item_id="i1", count=14)],
        most_used_colors=[],
        analysis=WearAnalysis(
            total_items=1,
            avg_wear_count=14,
            most_worn_item=WearEntry(item_id="i1", count=14),
            least_worn_item=WearEntry(item_id="i1", count=14),
        ),
    )
    gaps = build_gap_report(analyze_wardrobe_gaps(["shirt", "pants", "pants", "jacket", "jacket"]))

    report = suggest_optimizations(wear, gaps)

    kinds = [(s.type, s.priority, s.item_id or s.category) for s in report.suggestions]
    assert kinds == [
        ("remove", "medium", "i1"),
        ("add", "high", "dress"),
        ("add", "high", "shoes"),
        ("add", "high", "accessory"),
    ]
    assert report.summary.add_suggestions == 3
    assert report.summary.remove_suggestions == 1


def test_optimizations_ignore_item_worn_exactly_ten_times():
    wear = WearFrequencyReport(
        wear_frequency=[WearEntry(item_id="i1", count=10)],
        most_used_colors=[],
        analysis=WearAnalysis(total_items=1, avg_wear_count=10, most_worn_item=WearEntry(item_id="i1", count=10)),
    )

    report = suggest_optimizations(wear, None)

    assert report.suggestions == []


@pytest.mark.asyncio
async def test_inventory_run_detects_scenario_gaps(store, registry, agent_config):
    await store.create_item("u1", "Chinos", "pants")
    for n in range(3):
        await store.create_item("u1", f"Jacket {n}", "jacket", wear_count=12 if n == 0 else 1)
    await store.create_item("someone-else", "Shirt", "shirt")
    agent = InventoryAgent(registry, agent_config)

    execution = await agent.execute(agent.plan("analyze_wardrobe_gaps", {}, {"user_id": "u1"}))

    assert execution.status is ExecutionStatus.completed
    gaps = execution.completed_step("detectGaps").result.gaps
    assert [gap.priority for gap in _gap_for(gaps, "shirt")] == ["high"]
    assert [gap.priority for gap in _gap_for(gaps, "pants")] == ["medium"]
    assert _gap_for(gaps, "jacket") == []

    optimizations = execution.completed_step("suggestOptimizations").result
    assert optimizations.suggestions[0].type == "remove"
    assert {s.category for s in optimizations.suggestions if s.type == "add"} == {"shirt", "dress", "shoes", "accessory"}

    wear = execution.completed_step("analyzeWearFrequency").result
    assert wear.analysis.total_items == 4
    assert wear.analysis.most_worn_item.count == 12


@pytest.mark.asyncio
async def test_inventory_plan_defaults_and_overrides(agent_config):
    agent = InventoryAgent(StubRegistry(), agent_config)

    plan = agent.plan("g", {"days": 7, "capsule_goal": "travel"}, {"user_id": "u1"})

    wear, gaps, optimize = plan.steps
    assert wear.parameters.days == 7
    assert gaps.parameters.capsule_goal == "travel"
    assert optimize.dependencies == [wear.id, gaps.id]


@pytest.mark.asyncio
async def test_inventory_critique_when_registry_is_down(agent_config):
    agent = InventoryAgent(StubRegistry(), agent_config)

    execution = await agent.execute(agent.plan("g", {}, {"user_id": "u1"}))
    critique = agent.critique(execution)

    assert execution.status is ExecutionStatus.failed
    assert execution.steps[2].status is StepStatus.pending
    assert critique.overall_score == pytest.approx(0.15)
    assert critique.should_retry is True
    assert critique.suggestions == ["Check database connectivity", "Verify user data availability"]
    assert critique.step_scores[0].feedback.startswith("Inventory step failed: Unknown tool")
