"""FastAPI dependencies."""
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brewchat.core.config import settings
from brewchat.core.errors import Unauthorized
from brewchat.db.database import get_db
from brewchat.services.agent.model import LanguageModel, OpenAIChatModel
from brewchat.services.agent.orchestrator import AgentOrchestrator
from brewchat.services.agent.registry import ToolExecutor
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.catalog.yaml_catalog import YamlCatalogProvider
from brewchat.services.ordering.finalization import OrderFinalizer
from brewchat.services.ordering.tools import OrderTools
from brewchat.services.ordering.validator import LineItemValidator
from brewchat.services.persistence.orders import SubmittedOrderStore
from brewchat.services.recommendation.tools import RecommendationTools
from brewchat.services.session.locks import SessionLockRegistry, session_locks
from brewchat.services.session.store import SessionStore


@lru_cache
def get_catalog_repository() -> CatalogRepository:
    """Get the process-wide catalog repository (the provider caches the file)."""
    return CatalogRepository(provider=YamlCatalogProvider(settings.catalog_file))


@lru_cache
def get_language_model() -> LanguageModel:
    """Get the OpenAI-backed language model."""
    return OpenAIChatModel(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        temperature=settings.openai_temperature,
    )


def get_session_locks() -> SessionLockRegistry:
    return session_locks


def get_principal(request: Request) -> str:
    """Verified caller identity, set by the upstream auth layer."""
    principal = request.headers.get(settings.principal_header)
    if not principal or not principal.strip():
        raise Unauthorized(f"Missing {settings.principal_header} header")
    return principal.strip()


def get_validator(
    catalog: CatalogRepository = Depends(get_catalog_repository),
) -> LineItemValidator:
    return LineItemValidator(catalog, max_quantity=settings.max_line_quantity)


def get_session_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_order_store(db: AsyncSession = Depends(get_db)) -> SubmittedOrderStore:
    return SubmittedOrderStore(db)


def get_orchestrator(
    store: SessionStore = Depends(get_session_store),
    order_store: SubmittedOrderStore = Depends(get_order_store),
    catalog: CatalogRepository = Depends(get_catalog_repository),
    validator: LineItemValidator = Depends(get_validator),
    model: LanguageModel = Depends(get_language_model),
    locks: SessionLockRegistry = Depends(get_session_locks),
) -> AgentOrchestrator:
    """Wire up the orchestrator for one request."""
    executor = ToolExecutor(
        OrderTools(validator, tax_rate=settings.tax_rate),
        RecommendationTools(catalog, order_store=order_store, validator=validator),
    )
    return AgentOrchestrator(
        store=store,
        catalog=catalog,
        executor=executor,
        model=model,
        locks=locks,
        settings=settings,
    )


def get_finalizer(
    store: SessionStore = Depends(get_session_store),
    order_store: SubmittedOrderStore = Depends(get_order_store),
    validator: LineItemValidator = Depends(get_validator),
    locks: SessionLockRegistry = Depends(get_session_locks),
) -> OrderFinalizer:
    return OrderFinalizer(
        store=store,
        order_store=order_store,
        validator=validator,
        locks=locks,
        tax_rate=settings.tax_rate,
        lock_wait=settings.session_lock_wait_seconds,
    )
