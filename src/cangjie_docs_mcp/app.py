"""Application entry point.

Startup order:
    Settings -> logging/telemetry -> corpus checkout (git, optional)
      -> first snapshot (fatal when the corpus root is unreadable)
      -> serve over stdio (default) or streamable HTTP

HTTP layout:
    Starlette App
      ├── /health  -> corpus readiness and snapshot stats
      ├── /metrics -> Prometheus exposition
      └── /mcp     -> FastMCP streamable HTTP endpoint

Usage:
    cangjie-docs-mcp
    MCP_TRANSPORT=http MCP_PORT=15005 python -m cangjie_docs_mcp.app
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import sys

from fastmcp import FastMCP
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from cangjie_docs_mcp.config import Settings
from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG
from cangjie_docs_mcp.observability import (
    TraceContextMiddleware,
    configure_logging,
    configure_metrics_exporter,
    configure_trace_exporter,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    init_tracing,
    trace_request,
)
from cangjie_docs_mcp.server import create_server
from cangjie_docs_mcp.service_layer.corpus import CorpusAccessError, CorpusLoader, CorpusRuntime
from cangjie_docs_mcp.services.refresh_scheduler import CorpusRefreshScheduler
from cangjie_docs_mcp.utils.git_sync import CorpusRepoSyncer, GitSourceConfig, GitSyncError
from cangjie_docs_mcp.utils.models import HealthResponse


logger = logging.getLogger(__name__)


def prepare_corpus(settings: Settings) -> CorpusRepoSyncer | None:
    """Make sure the corpus checkout exists, cloning or updating it as configured.

    Returns the syncer so scheduled refreshes can reuse it, or None when git
    sync is disabled.

    Raises:
        GitSyncError: Cloning failed and there is no existing corpus to fall back on
    """
    if not settings.docs_sync_enabled:
        logger.info("Corpus git sync disabled; using %s as is", settings.docs_root_dir)
        return None

    syncer = CorpusRepoSyncer(
        GitSourceConfig(repo_url=settings.docs_repo_url, branch=settings.docs_repo_branch),
        settings.docs_root_dir,
    )
    try:
        result = asyncio.run(syncer.ensure(auto_update=settings.docs_auto_update))
    except GitSyncError as exc:
        if settings.docs_root_dir.is_dir():
            logger.warning("Corpus sync failed, serving existing documents: %s", exc)
            return syncer
        raise
    for warning in result.warnings:
        logger.warning("Corpus sync warning: %s", warning)
    return syncer


def build_runtime(settings: Settings) -> CorpusRuntime:
    """Create the runtime and load the first snapshot.

    Raises:
        CorpusAccessError: The corpus root is missing or unreadable
    """
    runtime = CorpusRuntime(lambda: CorpusLoader.from_settings(settings, DEFAULT_CATALOG))
    runtime.load_initial()
    return runtime


def create_http_app(
    runtime: CorpusRuntime,
    mcp: FastMCP,
    scheduler: CorpusRefreshScheduler | None = None,
    *,
    debug: bool = False,
) -> Starlette:
    """Wrap the MCP server in a Starlette app with health and metrics routes."""
    # path="/" keeps the MCP endpoint at /mcp/ instead of /mcp/mcp/
    mcp_http_app = mcp.http_app(path="/")

    async def health_check(_: Request) -> JSONResponse:
        if not runtime.is_ready:
            payload = HealthResponse(
                status="loading",
                documents=0,
                derived_documents=0,
                terms=0,
                built_at=None,
                last_rebuild_error=runtime.last_error,
            )
        else:
            snapshot = runtime.snapshot
            payload = HealthResponse(
                status="ok",
                documents=snapshot.stats.documents,
                derived_documents=snapshot.stats.derived_documents,
                terms=snapshot.stats.terms,
                built_at=snapshot.built_at,
                last_rebuild_error=runtime.last_error,
            )
        body = payload.model_dump(mode="json")
        if scheduler is not None:
            body["refresh"] = scheduler.stats
        # Always 200, check "status" for readiness
        return JSONResponse(body, status_code=200)

    async def metrics_endpoint(_: Request) -> Response:
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with mcp_http_app.lifespan(app):
            if scheduler is not None:
                await scheduler.start()
            try:
                yield
            finally:
                if scheduler is not None:
                    await scheduler.stop()

    app = Starlette(
        debug=debug,
        routes=[
            Route("/health", endpoint=health_check, methods=["GET"]),
            Route("/metrics", endpoint=metrics_endpoint, methods=["GET"]),
            Mount("/mcp", app=mcp_http_app),
        ],
        middleware=[
            Middleware(TraceContextMiddleware),
            Middleware(BaseHTTPMiddleware, dispatch=trace_request),
        ],
        lifespan=lifespan,
    )
    return app


async def serve_stdio(mcp: FastMCP, scheduler: CorpusRefreshScheduler | None = None) -> None:
    """Serve MCP over stdin/stdout, running the refresh scheduler alongside."""
    if scheduler is not None:
        await scheduler.start()
    try:
        await mcp.run_async(transport="stdio")
    finally:
        if scheduler is not None:
            await scheduler.stop()


def main() -> None:
    """Main entry point for the Cangjie documentation server."""
    try:
        settings = Settings()
    except ValidationError as exc:
        # Logging is not configured yet; stderr keeps stdio frames clean
        print(f"Configuration is invalid: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=settings.log_level, json_output=settings.log_json, stream=sys.stderr)
    configure_metrics_exporter(settings)
    init_metrics()
    configure_trace_exporter(settings, init_tracing())

    logger.info("Starting Cangjie docs MCP server (transport=%s)", settings.mcp_transport)
    logger.info("Corpus root: %s", settings.docs_root_dir)

    try:
        syncer = prepare_corpus(settings)
    except GitSyncError as exc:
        logger.error("Cannot obtain the documentation corpus: %s", exc)
        sys.exit(1)

    try:
        runtime = build_runtime(settings)
    except CorpusAccessError as exc:
        logger.error("Cannot read the documentation corpus: %s", exc)
        sys.exit(1)

    mcp = create_server(runtime, settings)
    scheduler = None
    if settings.refresh_schedule:
        scheduler = CorpusRefreshScheduler(runtime, syncer, refresh_schedule=settings.refresh_schedule)

    if settings.mcp_transport == "stdio":
        asyncio.run(serve_stdio(mcp, scheduler))
        return

    import uvicorn

    app = create_http_app(runtime, mcp, scheduler, debug=settings.log_level == "debug")
    logger.info("Starting server on %s:%d", settings.mcp_host, settings.mcp_port)
    logger.info("Health check: http://%s:%d/health", settings.mcp_host, settings.mcp_port)
    uvicorn.run(
        app,
        host=settings.mcp_host,
        port=settings.mcp_port,
        log_level=settings.log_level,
        log_config=None,  # Don't let uvicorn override our logging config
    )


if __name__ == "__main__":
    main()
