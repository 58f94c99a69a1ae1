import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from combined_dashboard.application import DashboardService, NotConfigured, configure_dashboard_service
from combined_dashboard.core.settings import Settings, load_registry
from combined_dashboard.domain import DashboardRegistry
from combined_dashboard.infrastructure import MetabaseClient, MetabaseError
from combined_dashboard.routes import combined, listings, metabase, workspace

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(
    settings: Settings | None = None,
    *,
    registry: DashboardRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    registry = registry if registry is not None else load_registry(settings.registry_path)

    client = MetabaseClient.from_settings(settings, card_parameters=registry.card_parameters, http_client=http_client)
    service = DashboardService(client, settings, registry)
    configure_dashboard_service(service)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await client.aclose()

    app = FastAPI(title="Combined Dashboard API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotConfigured)
    async def not_configured_handler(_: Request, exc: NotConfigured) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Database parameter required"})

    @app.exception_handler(MetabaseError)
    async def metabase_error_handler(request: Request, exc: MetabaseError) -> JSONResponse:
        logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(metabase.router, prefix="/api")
    app.include_router(combined.router, prefix="/api")
    app.include_router(listings.router, prefix="/api")
    app.include_router(workspace.router, prefix="/api")

    @app.get("/health", include_in_schema=False)
    async def liveness() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Index of the API entry points."""
        return JSONResponse(
            {
                "message": "Combined Dashboard API",
                "docs": "/docs",
                "health": "/api/health",
                "dashboards": settings.dashboard_ids,
            }
        )

    return app


load_dotenv()
settings = Settings.from_env()
configure_logging(settings.log_level)
app = create_app(settings)


def main() -> None:
    import uvicorn

    logger.info(
        "Combined dashboard server on port %s, Metabase %s, dashboards %s",
        settings.port,
        settings.metabase_url,
        ", ".join(settings.dashboard_ids),
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
