"""
FastAPI server for the state graph viewer.

Wires one viewer session per application: an engine, the StepRepository
over it, a StatusPoller and the NavigationController that owns the current
path. The lifespan starts polling on startup and tears everything down on
shutdown.

Usage:
    # Run standalone against a model checker
    python -m explorer.api.server --engine-url http://127.0.0.1:3000

    # Explore the bundled ping-pong model in-process
    python -m explorer.api.server --demo ping-pong

    # Or via factory
    from explorer.api import create_app
    app = create_app()
    uvicorn.run(app, port=3001)
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from explorer import __version__
from explorer.config.runtime_config import ExplorerConfig, get_config
from explorer.runtime.engines import ExplorerEngine, get_engine
from explorer.runtime.engines.factory import DEMO_MODELS
from explorer.runtime.navigation import NavigationController
from explorer.runtime.status_poller import StatusPoller
from explorer.runtime.step_repository import StepRepository

from .routes import events_router, steps_router

# Configure logging
logging.basicConfig(level=os.environ.get("EXPLORER_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


class RepositoryHealthInfo(BaseModel):
    cached_steps: int = 0
    hits: int = 0
    misses: int = 0
    joins: int = 0
    engine_queries: int = 0
    failures: int = 0


class PollerHealthInfo(BaseModel):
    running: bool = False
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    last_poll_at: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    timestamp: str
    version: str
    engine: str
    phase: str
    repository: RepositoryHealthInfo
    poller: PollerHealthInfo


def create_app(
    config: Optional[ExplorerConfig] = None,
    engine: Optional[ExplorerEngine] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Resolved configuration. Defaults to get_config() at startup.
        engine: Engine to use instead of building one from config. The
            caller keeps ownership of an engine passed in.
        enable_cors: Whether to enable CORS middleware.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        On startup:
        - Build the engine (unless one was supplied), repository and poller
        - Start the navigation controller, which starts polling

        On shutdown:
        - Close the controller (stops polling, abandons in-flight results)
        - Close the engine if the app created it
        """
        resolved = config or get_config()
        owns_engine = engine is None
        active_engine = engine if engine is not None else get_engine(resolved)

        repository = StepRepository(active_engine, request_timeout_s=resolved.request_timeout_s)
        poller = StatusPoller(
            active_engine,
            interval_s=resolved.poll_interval_s,
            timeout_s=resolved.request_timeout_s,
            max_backoff_s=resolved.max_backoff_s,
        )
        controller = NavigationController(repository, poller)

        app.state.config = resolved
        app.state.engine = active_engine
        app.state.repository = repository
        app.state.poller = poller
        app.state.controller = controller

        logger.info("Explorer viewer starting (engine=%s)", active_engine.engine_id)
        await controller.start()
        try:
            yield
        finally:
            logger.info("Explorer viewer shutting down")
            await controller.close()
            if owns_engine:
                await active_engine.aclose()

    app = FastAPI(
        title="State Explorer",
        description="Path-addressable viewer for model checker state graphs",
        version=__version__,
        lifespan=lifespan,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.include_router(steps_router, prefix="/api")
    app.include_router(events_router, prefix="/api")

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request):
        """Health check with repository and poller counters."""
        repository: StepRepository = request.app.state.repository
        poller: StatusPoller = request.app.state.poller
        controller: NavigationController = request.app.state.controller
        stats = repository.stats

        return HealthResponse(
            status="healthy" if poller.consecutive_failures == 0 else "degraded",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
            engine=request.app.state.engine.engine_id,
            phase=controller.phase.name,
            repository=RepositoryHealthInfo(
                cached_steps=len(repository),
                hits=stats.hits,
                misses=stats.misses,
                joins=stats.joins,
                engine_queries=stats.engine_queries,
                failures=stats.failures,
            ),
            poller=PollerHealthInfo(
                running=poller.running,
                consecutive_failures=poller.consecutive_failures,
                last_error=poller.last_error,
                last_poll_at=poller.last_poll_at,
            ),
        )

    return app


# Create default app instance for uvicorn
app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================


def main():
    """Run the API server."""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="State Explorer viewer")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=3001, help="Port to bind to")
    parser.add_argument("--engine-url", help="Base URL of the model checker to view")
    parser.add_argument(
        "--demo",
        nargs="?",
        const="ping-pong",
        choices=sorted(DEMO_MODELS),
        help="Explore a bundled model in-process instead (default: ping-pong)",
    )
    parser.add_argument("--poll-interval", type=float, help="Status poll interval in seconds")
    parser.add_argument("--no-cors", action="store_true", help="Disable CORS")
    args = parser.parse_args()

    config = get_config()
    if args.engine_url:
        config = replace(config, engine_kind="http", engine_url=args.engine_url, source="cli")
    if args.demo:
        config = replace(config, engine_kind="demo", demo_model=args.demo, source="cli")
    if args.poll_interval:
        config = replace(config, poll_interval_s=args.poll_interval, source="cli")

    global app
    app = create_app(config=config, enable_cors=not args.no_cors)

    target = config.engine_url if config.engine_kind == "http" else f"demo:{config.demo_model}"
    print(f"Starting State Explorer at http://{args.host}:{args.port} (engine {target})")
    print("  GET    /api/health               - Health check")
    print("  GET    /api/status               - Latest engine status")
    print("  GET    /api/status/events        - SSE status stream")
    print("  GET    /api/steps/{route}        - Resolve a step")
    print("  GET    /api/view/{route}         - Navigate and render")
    print("  POST   /api/view/retry           - Retry the current path")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
