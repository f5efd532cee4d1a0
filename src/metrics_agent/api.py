"""HTTP API for the metrics agent.

All routes except ``/api/health`` require ``Authorization: Bearer <token>``.
Errors are returned as ``{"error": message}``.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from metrics_agent import __version__
from metrics_agent.core.schemas import (
    AllStats,
    ContainerHistory,
    ContainerOverview,
    ContainerStats,
    RequestStats,
    ResourceLimits,
)
from metrics_agent.engine import MetricsEngine
from metrics_agent.exceptions import ContainerNotFoundError, LimitsUpdateError, MetricsAgentError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "METRICS_AGENT_CONFIG"


def get_engine(request: Request) -> MetricsEngine:
    return request.app.state.engine


def require_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """Check the bearer token against the configured one.

    Raises:
        HTTPException 401: If the header is missing or the token does not match
    """
    if not authorization:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="missing authorization header")

    expected: str | None = request.app.state.engine.config.auth_token
    token = authorization.removeprefix("Bearer ")
    if expected is None or not secrets.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="invalid token")


router = APIRouter(prefix="/api", dependencies=[Depends(require_token)])


@router.get("/containers")
def list_containers(
    name_filter: str | None = Query(
        default=None, alias="filter", description="Substring of the container name"
    ),
    engine: MetricsEngine = Depends(get_engine),
) -> dict[str, Any]:
    return {"containers": engine.list_containers(name_filter)}


@router.get("/containers/{container_id}/stats", response_model=ContainerStats)
def container_stats(
    container_id: str, engine: MetricsEngine = Depends(get_engine)
) -> ContainerStats:
    return engine.current_stats(container_id)


@router.get("/containers/{container_id}/history", response_model=ContainerHistory)
def container_history(
    container_id: str, engine: MetricsEngine = Depends(get_engine)
) -> ContainerHistory:
    return engine.history(container_id)


@router.get(
    "/containers/{container_id}/all",
    response_model=ContainerOverview,
    response_model_exclude_none=True,
)
def container_all(
    container_id: str,
    domain: str | None = Query(default=None, description="Domain for request counts"),
    engine: MetricsEngine = Depends(get_engine),
) -> ContainerOverview:
    return engine.container_overview(container_id, domain)


@router.post("/containers/{container_id}/limits")
def set_limits(
    container_id: str,
    limits: ResourceLimits,
    engine: MetricsEngine = Depends(get_engine),
) -> dict[str, Any]:
    engine.set_limits(container_id, limits)
    return {"success": True, "container_id": container_id, "limits": limits}


@router.get("/stats", response_model=AllStats)
def all_stats(
    name_filter: str | None = Query(
        default=None, alias="filter", description="Substring of the container name"
    ),
    engine: MetricsEngine = Depends(get_engine),
) -> AllStats:
    return engine.all_stats(name_filter)


@router.get("/requests", response_model=RequestStats)
def request_stats(
    domain: str | None = Query(default=None),
    engine: MetricsEngine = Depends(get_engine),
) -> RequestStats:
    if not domain:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="domain parameter required")
    return engine.request_stats(domain)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(engine: MetricsEngine, manage_collector: bool = True) -> FastAPI:
    """Build the FastAPI application around an engine.

    Args:
        engine: Engine answering all queries
        manage_collector: Start the collector on startup and stop it on shutdown

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"Starting metrics-agent v{__version__}")
        if manage_collector:
            engine.start()
        try:
            yield
        finally:
            if manage_collector:
                engine.stop()
            logger.info("metrics-agent stopped")

    app = FastAPI(title="metrics-agent", version=__version__, lifespan=lifespan)
    app.state.engine = engine
    app.state.started = time.monotonic()

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        uptime = timedelta(seconds=round(time.monotonic() - app.state.started))
        last_tick = engine.collector.last_tick
        return {
            "status": "ok",
            "version": __version__,
            "uptime": str(uptime),
            "collector": {
                "running": engine.collector.is_running,
                "last_tick": last_tick.started_at if last_tick else None,
            },
        }

    app.include_router(router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc.errors()))

    @app.exception_handler(ContainerNotFoundError)
    async def not_found(request: Request, exc: ContainerNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(LimitsUpdateError)
    async def limits_rejected(request: Request, exc: LimitsUpdateError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(MetricsAgentError)
    async def agent_error(request: Request, exc: MetricsAgentError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    return app


def app_from_env() -> FastAPI:
    """Application factory for the ASGI server (``metrics_agent.api:app_from_env``).

    Reads the optional config file named by ``METRICS_AGENT_CONFIG`` and
    overlays the environment on top of it.
    """
    from metrics_agent.core.config import config_from_env, load_config
    from metrics_agent.runtime.docker_runtime import DockerRuntime
    from metrics_agent.utils.logging import setup_logging

    setup_logging(level=os.environ.get("METRICS_AGENT_LOG_LEVEL", "INFO"))

    config_path = os.environ.get(CONFIG_PATH_ENV)
    base = load_config(config_path) if config_path else None
    config = config_from_env(base)
    runtime = DockerRuntime.connect(config.docker_host, timeout=config.call_timeout_seconds)
    return create_app(MetricsEngine(runtime, config))
