"""LibreChat Admin API: FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from admin_api.auth.routes import router as auth_router
from admin_api.cluster.client import OrchestrationClient
from admin_api.cluster.routes import router as cluster_router
from admin_api.config.cors import SecurityHeadersMiddleware, configure_cors
from admin_api.config.settings import Settings, get_settings
from admin_api.db.client import CollectionStore, connect_store
from admin_api.middleware.error_handler import register_error_handlers
from admin_api.middleware.request_id import RequestIDMiddleware
from admin_api.resources.routes import resource_routers
from admin_api.stats.routes import router as stats_router

logger = logging.getLogger(__name__)


def _load_cluster() -> OrchestrationClient | None:
    try:
        return OrchestrationClient.from_kubeconfig()
    except Exception as exc:
        logger.warning("Kubernetes client unavailable, cluster endpoints disabled: %s", exc)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    owns_store = app.state.store is None
    if owns_store:
        try:
            app.state.store = await asyncio.to_thread(
                connect_store, settings.MONGODB_URI, settings.DB_NAME, settings.MONGODB_TIMEOUT_MS
            )
        except Exception:
            logger.critical("MongoDB connection failed for %s", settings.MONGODB_URI, exc_info=True)
            raise
    if app.state.cluster is None:
        app.state.cluster = await asyncio.to_thread(_load_cluster)

    yield

    if owns_store and app.state.store is not None:
        app.state.store.close()


def create_app(
    settings: Settings | None = None,
    store: CollectionStore | None = None,
    cluster: OrchestrationClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="LibreChat Admin API",
        description=(
            "Administration API for a LibreChat deployment.\n\n"
            "## Features\n"
            "- CRUD for users, roles, conversations, messages, agents, files, sessions, tokens, "
            "transactions and projects\n"
            "- Append-only audit log of every administrative change\n"
            "- Pod and deployment inspection, log access and rolling restarts\n"
            "- Read-only kubectl-style command console\n"
            "- Service health rollup and monthly token cost statistics\n\n"
            "## Authentication\n"
            "Requests arrive through an authenticating proxy which injects "
            "`X-Forwarded-Email` / `X-Forwarded-User` headers."
        ),
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Health check endpoints"},
            {"name": "Auth", "description": "Identity of the current caller"},
            {"name": "Stats", "description": "Dashboard counters and cost statistics"},
            {"name": "Cluster", "description": "Pods, deployments, commands and system status"},
        ],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.cluster = cluster

    # --- Middleware (order matters: outermost first) ---
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    configure_cors(app, settings)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- Routes ---
    app.include_router(auth_router)
    app.include_router(stats_router)
    app.include_router(cluster_router)
    for router in resource_routers():
        app.include_router(router)

    @app.get("/health", tags=["Health"], summary="Health check", description="Returns OK while the process is serving.")
    async def health_check(request: Request):
        connected = getattr(request.app.state, "store", None) is not None
        return {"status": "ok", "mongodb": "connected" if connected else "disconnected"}

    return app


app = create_app()
