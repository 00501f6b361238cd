"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from brewchat.api import catalog, chat, health, orders
from brewchat.api.errors import register_error_handlers
from brewchat.core.config import settings
from brewchat.core.logging import setup_logging
from brewchat.db.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    await init_db()
    yield


app = FastAPI(
    title="BrewChat",
    description=f"Conversational beverage ordering for {settings.shop_name}",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(chat.router, tags=["chat"])
app.include_router(orders.router, tags=["orders"])
app.include_router(catalog.router, tags=["catalog"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("brewchat.main:app", host=settings.host, port=settings.port)
