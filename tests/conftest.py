from __future__ import annotations

from dataclasses import dataclass

import pytest
from fastapi import FastAPI

from linklog.app.infrastructure.queue.inmemory.in_memory_retry_queue import InMemoryRetryQueue
from linklog.app.routers.health import health_router
from linklog.app.routers.webhook import webhook_router
from tests.factories import CapturingReplySender, FakeIngestion

WEBHOOK_SECRET = "test-secret"


@dataclass
class FakeSettings:
    """The settings attributes routers read from app.state.settings."""

    webhook_secret: str = WEBHOOK_SECRET
    reply_timeout_seconds: float = 1.0
    readiness_ping_timeout_seconds: float = 1.0


class UnreachableRetryQueue(InMemoryRetryQueue):
    async def ping(self) -> bool:
        return False


@pytest.fixture()
def test_app() -> FastAPI:
    app = FastAPI()
    app.state.settings = FakeSettings()
    app.state.ingestion_service = FakeIngestion()
    app.state.retry_queue = InMemoryRetryQueue()
    app.state.reply_sender = CapturingReplySender()
    app.include_router(health_router)
    app.include_router(webhook_router)
    return app
