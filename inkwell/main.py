from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from sqlalchemy import text

from inkwell.core.config import Settings, app_logger, settings
from inkwell.core.db import AsyncSessionLocal, async_engine, dispose_db, init_db
from inkwell.core.exceptions.handlers import register_exception_handlers
from inkwell.core.exceptions.types import AppException
from inkwell.core.routers import account_router, auth_router
from inkwell.core.services.kv import KVStore, MemoryKVStore, RedisKVStore
from inkwell.core.services.redis_service import RedisService
from inkwell.core.services.template import Renderer
from inkwell.core.services.users import SQLUserDirectory


async def init_kv_store(config: Settings) -> KVStore:
    if config.KV_BACKEND == "redis":
        app_logger.info("Initializing Redis service...")
        await RedisService.init(config.REDIS_URL)
        app_logger.info("Redis service initialized successfully.")
        return RedisKVStore(RedisService.get_client())

    app_logger.info("Using in-memory key-value store.")
    return MemoryKVStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting application...")
    config: Settings = app.state.settings

    app.state.kv = await init_kv_store(config)

    if config.DB_CREATE_TABLES:
        app_logger.info("Creating database tables...")
        await init_db()
    app.state.users = SQLUserDirectory(AsyncSessionLocal)

    app_logger.info("Opening shared HTTP client...")
    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0))

    app_logger.info("Initializing template renderer...")
    Renderer.initialize()
    app_logger.info("Template renderer initialized successfully.")

    # Yield control back to the application
    yield

    # Cleanup on shutdown
    app_logger.info("Shutting down application...")

    await app.state.http_client.aclose()
    app_logger.info("HTTP client closed successfully.")

    if config.KV_BACKEND == "redis":
        await RedisService.aclose()
        app_logger.info("Redis service closed successfully.")

    await dispose_db(async_engine)


def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Long-lived clients are opened by the lifespan and stored on ``app.state``.
    Tests skip the lifespan and set ``kv``, ``users`` (and optionally
    ``http_client``, ``send_code``, ``validate_email``, ``clock``) directly.
    """
    app = FastAPI(
        lifespan=lifespan,
        title=config.APP_NAME,
        version=config.APP_VERSION,
        debug=config.DEBUG,
    )
    app.state.settings = config

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(account_router, tags=["Account"])

    @app.get("/", include_in_schema=False)
    async def root(request: Request):
        base_url = str(request.base_url).rstrip("/")
        return {
            "message": f"Welcome to {config.APP_NAME}",
            "documentations": {
                "swagger": f"{base_url}/docs",
                "redoc": f"{base_url}/redoc",
            },
            "version": config.APP_VERSION,
        }

    @app.head("/health", include_in_schema=False)
    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint to verify if the service is running.

        Checks:
            - Database connectivity
            - Key-value store connectivity
        """
        health_status = {
            "status": "ok",
            "message": f"{config.APP_NAME} is running.",
            "checks": {
                "database": "ok",
                "kv": "ok",
            },
        }

        try:
            async with AsyncSessionLocal() as session:
                result = await session.execute(text("SELECT 1"))
                if result.scalar() != 1:
                    health_status["checks"]["database"] = "unhealthy"
                    health_status["status"] = "degraded"
        except Exception as e:
            app_logger.error(f"Database health check failed: {e}")
            health_status["checks"]["database"] = "unhealthy"
            health_status["status"] = "degraded"

        if config.KV_BACKEND == "redis":
            kv_ok = await RedisService.ping()
        else:
            try:
                await request.app.state.kv.get("health")
                kv_ok = True
            except Exception as e:
                app_logger.error(f"Key-value store health check failed: {e}")
                kv_ok = False
        if not kv_ok:
            health_status["checks"]["kv"] = "unhealthy"
            health_status["status"] = "degraded"

        if health_status["status"] != "ok":
            raise AppException(
                "One or more health checks failed.",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                details=health_status,
            )

        return health_status

    return app


app = create_app()
