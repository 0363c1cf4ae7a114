import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dao_backend.config import DatabaseConfig, Settings
from dao_backend.exceptions import GovernanceError
from dao_backend.governance.context import GovernanceContext
from dao_backend.routers import router as api_router
from dao_backend.routers.errors import register_exception_handlers
from dao_backend.services.archive import ProposalArchive
from dao_backend.services.connection_pool import DatabaseConnectionPool
from dao_backend.services.rewards import RewardDispatcher
from dao_backend.services.store import PostgresStore
from dao_backend.utils.logger import logger


def build_governance(settings: Settings) -> GovernanceContext:
    """Wire the store and the optional collaborators from configuration."""
    pool = DatabaseConnectionPool(DatabaseConfig())
    store = PostgresStore(pool)

    rewards = None
    if settings.rewards is not None:
        rewards = RewardDispatcher(settings.rewards)
        logger.info("Merit distribution enabled via %s", settings.rewards.base_url)
    else:
        logger.info("Merit distribution disabled (BLOCKSCOUT_MERITS_BASE_URL or BLOCKSCOUT_API_KEY not set)")

    archive = None
    if settings.archive is not None:
        archive = ProposalArchive(settings.archive)
        archive.ensure_bucket()
        logger.info("Proposal archive enabled in bucket '%s'", settings.archive.bucket)
    else:
        logger.info("Proposal archive disabled (AKAVE_* variables not set)")

    return GovernanceContext(store=store, rewards=rewards, archive=archive)


def create_app(settings: Optional[Settings] = None, context: Optional[GovernanceContext] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Process configuration; read from the environment when omitted
        context: Pre-built governance context; built from ``settings`` at startup when omitted
    """
    settings = settings or Settings.from_env()
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("DAO governance backend starting up (%s)...", settings.environment)
        if getattr(app.state, "governance", None) is None:
            app.state.governance = build_governance(settings)
        yield
        logger.info("Shutting down DAO governance backend...")
        app.state.governance.close()

    app = FastAPI(title="DAO Governance Backend", version="0.1.0", lifespan=lifespan)
    app.state.governance = context

    # Credentials cannot be combined with a wildcard origin
    wildcard = "*" in settings.allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    logger.info("Allowed origins: %s", settings.allowed_origins)

    register_exception_handlers(app)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"success": False, "message": "Not Found"})
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.detail})

    @app.get("/healthcheck")
    def healthcheck(request: Request) -> dict:
        """Liveness plus database and pool status."""
        health = {
            "success": True,
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - started,
        }
        governance: Optional[GovernanceContext] = request.app.state.governance
        if governance is None:
            health["database"] = "not initialized"
            health["status"] = "degraded"
            return health

        pool_stats = governance.store.get_stats()
        if pool_stats.get("in_backoff"):
            health["database"] = "backoff mode"
            health["status"] = "degraded"
        else:
            try:
                governance.store.ping()
                health["database"] = "connected"
            except GovernanceError as e:
                health["database"] = f"error: {e.message[:100]}"
                health["status"] = "degraded"

        health["pool_stats"] = {
            "failure_count": pool_stats.get("failure_count", 0),
            "pool_exists": pool_stats.get("pool_exists", False),
        }
        return health

    app.include_router(api_router)
    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
