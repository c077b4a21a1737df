import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from marketplace.api.addons import router as addons_router
from marketplace.core.config import get_settings
from marketplace.core.dependencies import MarketplaceServices, build_services

_settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def _background_refresh(services: MarketplaceServices) -> None:
    """
    Initial refresh (if enabled) followed by the periodic loop (if enabled).
    """
    settings = services.settings
    if settings.refresh_on_startup:
        try:
            await services.orchestrator.refresh_all(services.fetcher)
        except Exception as e:
            logger.error(f"Initial refresh failed: {e}")
    if settings.refresh_interval_seconds > 0:
        await services.orchestrator.run_periodic_refresh(services.fetcher, settings.refresh_interval_seconds)


def create_app(services: Optional[MarketplaceServices] = None) -> FastAPI:
    app = FastAPI(
        title="Addon Marketplace",
        version="0.1.0",
        description="Aggregates addon manifests from multiple sources and resolves brXM compatibility.",
    )
    app.state.services = services or build_services(_settings)
    app.state.refresh_task = None

    @app.on_event("startup")
    async def startup_event() -> None:
        """
        Start the background refresh job.
        """
        settings = app.state.services.settings
        if settings.refresh_on_startup or settings.refresh_interval_seconds > 0:
            app.state.refresh_task = asyncio.create_task(_background_refresh(app.state.services))

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        task = app.state.refresh_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    @app.get("/health")
    async def health() -> dict:
        """
        Lightweight health check endpoint.
        """
        return {"status": "ok", "addons": app.state.services.registry.size()}

    app.include_router(addons_router, tags=["addons"])
    return app


app = create_app()


if __name__ == "__main__":
    """
    Allow running `python -m marketplace.main` to start the Uvicorn development server.
    """
    import uvicorn

    uvicorn.run(
        "marketplace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
