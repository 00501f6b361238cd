"""Shared test fixtures and configuration."""
import copy
import inspect
import os
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest
import yaml
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing the app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from brewchat.main import app
from brewchat.core.config import Settings
from brewchat.core.dependencies import (
    get_catalog_repository,
    get_language_model,
    get_session_locks,
)
from brewchat.db.database import get_db
from brewchat.db.models import Base
from brewchat.services.agent.model import LanguageModel
from brewchat.services.agent.orchestrator import AgentOrchestrator
from brewchat.services.agent.registry import ToolExecutor
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.catalog.yaml_catalog import YamlCatalogProvider
from brewchat.services.ordering.finalization import OrderFinalizer
from brewchat.services.ordering.tools import OrderTools
from brewchat.services.ordering.validator import LineItemValidator
from brewchat.services.persistence.orders import SubmittedOrderStore
from brewchat.services.recommendation.tools import RecommendationTools
from brewchat.services.session.locks import SessionLockRegistry
from brewchat.services.session.store import SessionStore


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_CATALOG_PATH = Path(__file__).parent / "fixtures" / "test_catalog.yaml"

with open(TEST_CATALOG_PATH, "r") as f:
    ORIGINAL_CATALOG: Dict[str, Any] = yaml.safe_load(f)


def write_catalog(data: Dict[str, Any]) -> None:
    with open(TEST_CATALOG_PATH, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


class ScriptedLanguageModel(LanguageModel):
    """Language model fake that replays scripted responses.

    Each entry is a TextReply, a ToolCall, an exception to raise, or an async
    callable taking the history. Once the script runs out ``default`` is
    returned, or the test fails if there is none.
    """

    def __init__(self):
        self.responses: List[Any] = []
        self.default = None
        self.calls: List[Dict[str, Any]] = []

    def script(self, *responses, default=None) -> "ScriptedLanguageModel":
        self.responses = list(responses)
        self.default = default
        return self

    async def complete(self, system_prompt, history, tools):
        self.calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "tools": [tool["function"]["name"] for tool in tools],
        })
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            raise AssertionError("ScriptedLanguageModel ran out of responses")

        if isinstance(response, Exception):
            raise response
        if inspect.iscoroutinefunction(response):
            return await response(history)
        return response


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(
        openai_api_key="test-key",
        database_url=TEST_DATABASE_URL,
        shop_name="Test Coffee",
        tax_rate=0.0,
        max_line_quantity=10,
        max_tool_iterations=4,
        infra_retry_attempts=2,
        infra_retry_backoff_seconds=0.0,
        session_lock_wait_seconds=0.0,
        turn_timeout_seconds=5.0,
    )


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def test_catalog_path():
    """Return path to test catalog YAML file."""
    return TEST_CATALOG_PATH


@pytest.fixture
def catalog_repository(test_catalog_path):
    """Create catalog repository with test data."""
    return CatalogRepository(YamlCatalogProvider(catalog_file=str(test_catalog_path)))


@pytest.fixture
def edit_catalog(catalog_repository):
    """Rewrite the test catalog; the original is restored after the test."""

    def _edit(change):
        data = copy.deepcopy(ORIGINAL_CATALOG)
        change(data)
        write_catalog(data)
        catalog_repository.invalidate()

    return _edit


@pytest.fixture
def validator(catalog_repository, test_settings):
    return LineItemValidator(catalog_repository, max_quantity=test_settings.max_line_quantity)


@pytest.fixture
def order_tools(validator, test_settings):
    return OrderTools(validator, tax_rate=test_settings.tax_rate)


@pytest.fixture
def session_store(test_db):
    return SessionStore(test_db)


@pytest.fixture
def order_store(test_db):
    return SubmittedOrderStore(test_db)


@pytest.fixture
def recommendation_tools(catalog_repository, order_store, validator):
    return RecommendationTools(catalog_repository, order_store=order_store, validator=validator)


@pytest.fixture
def tool_executor(order_tools, recommendation_tools):
    return ToolExecutor(order_tools, recommendation_tools)


@pytest.fixture
def session_locks():
    return SessionLockRegistry()


@pytest.fixture
def scripted_model():
    return ScriptedLanguageModel()


@pytest.fixture
def orchestrator(session_store, catalog_repository, tool_executor, scripted_model, session_locks, test_settings):
    """Orchestrator wired to the test database, catalog and scripted model."""
    return AgentOrchestrator(
        store=session_store,
        catalog=catalog_repository,
        executor=tool_executor,
        model=scripted_model,
        locks=session_locks,
        settings=test_settings,
    )


@pytest.fixture
def finalizer(session_store, order_store, validator, session_locks, test_settings):
    return OrderFinalizer(
        store=session_store,
        order_store=order_store,
        validator=validator,
        locks=session_locks,
        tax_rate=test_settings.tax_rate,
    )


@pytest.fixture
def test_client(catalog_repository, scripted_model, session_locks, test_settings, monkeypatch):
    """Create FastAPI test client with overrides.

    The engine is created here but only connects inside the client's event
    loop; tables are created on the first request.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    state = {"tables_ready": False}

    async def _override_get_db():
        if not state["tables_ready"]:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            state["tables_ready"] = True
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_catalog_repository] = lambda: catalog_repository
    app.dependency_overrides[get_language_model] = lambda: scripted_model
    app.dependency_overrides[get_session_locks] = lambda: session_locks

    # Override settings in modules that use it
    monkeypatch.setattr("brewchat.core.dependencies.settings", test_settings)
    monkeypatch.setattr("brewchat.api.chat.settings", test_settings)

    with TestClient(app) as client:
        yield client
        client.portal.call(engine.dispose)

    app.dependency_overrides.clear()


@pytest.fixture
def principal_headers(test_settings):
    """Headers carrying the verified caller identity."""
    return {test_settings.principal_header: "customer-1"}


@pytest.fixture
def mock_openai():
    """Mock OpenAI API client."""
    mock_client = Mock()
    mock_client.chat.completions.create = AsyncMock()
    return mock_client


@pytest.fixture(autouse=True)
def reset_catalog(test_catalog_path):
    """Restore the original test catalog between tests."""
    write_catalog(ORIGINAL_CATALOG)
    yield
    write_catalog(ORIGINAL_CATALOG)
