import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

os.environ.setdefault("WARDROBE_STORAGE__DATABASE_URL", "sqlite+aiosqlite:///./test_wardrobe.db")

from services.wardrobe.app.agents.types import AgentConfig  # noqa: E402
from services.wardrobe.app.config import PerceptionSettings  # noqa: E402
from services.wardrobe.app.perception.embedding import EmbeddingService  # noqa: E402
from services.wardrobe.app.perception.service import PerceptionService  # noqa: E402
from services.wardrobe.app.persistence.db import init_db  # noqa: E402
from services.wardrobe.app.persistence.storage import ImageStorage  # noqa: E402
from services.wardrobe.app.persistence.store import WardrobeStore  # noqa: E402
from services.wardrobe.app.tools.registry import ToolRegistry  # noqa: E402
from wardrobe_stubs import StubRegistry, stylist_handlers  # noqa: E402


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(retry_base_delay_s=0.0, timeout_ms=5_000)


@pytest.fixture
def stub_registry() -> StubRegistry:
    return StubRegistry(stylist_handlers())


@pytest_asyncio.fixture
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wardrobe.db'}")
    await init_db(engine)
    yield WardrobeStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


@pytest.fixture
def perception_settings() -> PerceptionSettings:
    return PerceptionSettings(embedding_dimension=16)


@pytest.fixture
def image_storage(tmp_path) -> ImageStorage:
    return ImageStorage(local_root=str(tmp_path / "artifacts"))


@pytest.fixture
def perception_service(store, perception_settings, image_storage) -> PerceptionService:
    embedding = EmbeddingService(perception_settings, storage=image_storage)
    return PerceptionService(store, perception_settings, embedding)


@pytest.fixture
def registry(store, perception_service) -> ToolRegistry:
    return ToolRegistry(store, perception_service)
