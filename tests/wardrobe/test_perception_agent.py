import pytest

from services.wardrobe.app.agents.perception import PerceptionAgent
from services.wardrobe.app.agents.types import AgentConfig, ExecutionStatus, StepStatus
from services.wardrobe.app.config import PerceptionSettings
from services.wardrobe.app.perception.embedding import EmbeddingService, category_from_filename
from services.wardrobe.app.perception.service import PerceptionError, PerceptionService, Upload
from services.wardrobe.app.tools.types import ToolResult
from wardrobe_stubs import StubRegistry

PHOTO = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4


@pytest.mark.asyncio
async def test_analysis_is_stable_for_identical_bytes(perception_service):
    first = await perception_service.embedding.analyze_bytes(PHOTO, "navy-blazer.png")
    second = await perception_service.embedding.analyze_bytes(PHOTO, "navy-blazer.png")

    assert first == second
    assert first.category == "jacket"
    assert len(first.embedding) == 16
    assert len(first.perceptual_hash) == 16


def test_category_keywords():
    assert category_from_filename("IMG_0042_Tee.jpg") == "shirt"
    assert category_from_filename("black-jeans.png") == "pants"
    assert category_from_filename("running-sneakers.webp") == "shoes"
    assert category_from_filename("photo.jpg") == "unknown"


@pytest.mark.asyncio
async def test_upload_detects_duplicate_of_existing_item(store, perception_service):
    upload = Upload(filename="shirt.png", content_type="image/png", data=PHOTO)

    fresh = await perception_service.process_upload(upload, "u1")
    await store.create_item("u1", "Shirt", "shirt", embedding=fresh.analysis.embedding)
    repeat = await perception_service.process_upload(upload, "u1")
    other_user = await perception_service.process_upload(upload, "u2")

    assert fresh.duplicate_detection.is_duplicate is False
    assert repeat.duplicate_detection.is_duplicate is True
    assert repeat.duplicate_detection.confidence == pytest.approx(1.0)
    assert repeat.should_upload is True
    assert other_user.duplicate_detection.is_duplicate is False


@pytest.mark.asyncio
async def test_local_first_mode_skips_duplicate_uploads(store, image_storage):
    settings = PerceptionSettings(embedding_dimension=16, enable_client_side=True)
    service = PerceptionService(store, settings, EmbeddingService(settings, storage=image_storage))
    upload = Upload(filename="shirt.png", content_type="image/png", data=PHOTO)

    fresh = await service.process_upload(upload, "u1")
    await store.create_item("u1", "Shirt", "shirt", embedding=fresh.analysis.embedding)
    repeat = await service.process_upload(upload, "u1")

    assert fresh.should_upload is True
    assert repeat.should_upload is False
    assert service.get_client_capabilities().has_local_storage is True


@pytest.mark.asyncio
async def test_oversized_upload_is_rejected(perception_service):
    upload = Upload(filename="big.png", content_type="image/png", data=b"x" * (10 * 1024 * 1024 + 1))

    with pytest.raises(PerceptionError, match="File too large"):
        await perception_service.process_upload(upload, "u1")


@pytest.mark.asyncio
async def test_plan_analyses_stored_photo_and_enriches_item(store, registry, perception_service, image_storage, agent_config):
    image_url = await image_storage.put_image(PHOTO, "image/png")
    item = await store.create_item("u1", "Mystery", "shirt", image_url=image_url)
    agent = PerceptionAgent(registry, perception_service, agent_config)

    plan = agent.plan("enrich", {}, {"user_id": "u1", "image_url": image_url, "item_id": item.id})
    execution = await agent.execute(plan)

    assert execution.status is ExecutionStatus.completed
    analysis = execution.completed_step("analyzeImage").result
    assert execution.completed_step("detectDuplicates").parameters.analysis == analysis
    assert execution.completed_step("enrichItem").result.enriched is True
    enriched = await store.get_item(item.id)
    assert enriched.embedding == analysis.embedding
    assert enriched.fabric == analysis.fabric
    assert agent.critique(execution).overall_score == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_analyze_image_is_retried_before_failing(perception_service):
    registry = StubRegistry({"analyzeImage": lambda params: ToolResult.fail("image-analysis", "unreachable")})
    agent = PerceptionAgent(registry, perception_service, AgentConfig(max_retries=2, retry_base_delay_s=0.0))

    execution = await agent.execute(agent.plan("enrich", {}, {"user_id": "u1", "image_url": "file:///nope.png"}))
    critique = agent.critique(execution)

    assert len(registry.called("analyzeImage")) == 3
    assert execution.status is ExecutionStatus.failed
    assert [step.status for step in execution.steps] == [StepStatus.failed, StepStatus.pending, StepStatus.pending]
    assert critique.overall_score == pytest.approx(0.1)
    assert critique.suggestions == ["Check image quality and format", "Verify perception service availability"]
    assert critique.step_scores[0].feedback == "Perception step failed: unreachable"


@pytest.mark.asyncio
async def test_missing_photo_fails_analysis_step(registry, perception_service):
    agent = PerceptionAgent(registry, perception_service, AgentConfig(max_retries=0))

    execution = await agent.execute(agent.plan("enrich", {}, {"user_id": "u1", "image_url": "file:///no/such/photo.png"}))

    assert execution.steps[0].status is StepStatus.failed
    assert execution.steps[0].error.startswith("Tool execution failed")


@pytest.mark.asyncio
async def test_process_upload_passes_through_to_service(perception_service, agent_config):
    agent = PerceptionAgent(StubRegistry(), perception_service, agent_config)

    outcome = await agent.process_upload(Upload("tee.jpg", "image/jpeg", PHOTO), "u1")

    assert outcome.analysis.category == "shirt"
    assert agent.get_all_executions() == []
