import asyncio

from typing import Any
from fastapi import APIRouter, Request, Response
from loguru import logger

from linklog.app.core import SERVICE_NAME

READINESS_PING_TIMEOUT_DEFAULT = 5.0

health_router = APIRouter(tags=["Health"])


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _readiness_ping_timeout_seconds(request: Request) -> float:
    settings = getattr(request.app.state, "settings", None)
    if settings is not None:
        return getattr(settings, "readiness_ping_timeout_seconds", READINESS_PING_TIMEOUT_DEFAULT)
    return READINESS_PING_TIMEOUT_DEFAULT


@health_router.get(
    "/health/live",
    summary="Liveness probe",
    description="Returns 200 if the process is running.",
    responses={200: {"description": "Service is alive."}},
)
async def live() -> dict:
    return {"status": "ok"}


@health_router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Returns 200 only when the ingestion service is wired and the retry queue answers a ping.",
    responses={
        200: {"description": "Ready to accept webhook updates."},
        503: {"description": "Ingestion not wired or retry queue unreachable."},
    },
)
async def ready(request: Request) -> Response:
    ingestion = getattr(request.app.state, "ingestion_service", None)
    retry_queue = getattr(request.app.state, "retry_queue", None)
    if ingestion is None or retry_queue is None:
        _log("components_not_initialized")
        return Response(status_code=503, content="Not ready")

    timeout_s = _readiness_ping_timeout_seconds(request)
    try:
        ping_ok = await asyncio.wait_for(retry_queue.ping(), timeout=timeout_s)
    except asyncio.TimeoutError:
        _log("retry_queue_ping_timeout")
        return Response(status_code=503, content="Retry queue not ready")
    if not ping_ok:
        _log("retry_queue_not_ready")
        return Response(status_code=503, content="Retry queue not ready")
    return Response(status_code=200, content="OK")
