from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from linklog.app.composition import create_app_dependencies
from linklog.app.core import SERVICE_NAME
from linklog.app.routers.health import health_router
from linklog.app.routers.webhook import webhook_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.bind(service_name=SERVICE_NAME, event="webhook_starting").info("")
    dependencies = create_app_dependencies()
    try:
        await dependencies.connect()
    except Exception as e:
        logger.exception("dependency wiring failed: {}", e)
        raise

    app.state.settings = dependencies.settings
    app.state.ingestion_service = dependencies.ingestion_service
    app.state.retry_queue = dependencies.retry_queue
    app.state.reply_sender = dependencies.reply_sender
    try:
        yield
    finally:
        logger.bind(service_name=SERVICE_NAME, event="webhook_stopping").info("")
        await dependencies.close()


app = FastAPI(
    title="Linklog Bookmark Webhook",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(webhook_router)
