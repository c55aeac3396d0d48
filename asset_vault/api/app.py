from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from asset_vault.api.routers import health
from asset_vault.core.settings import Settings
from asset_vault.db.runtime import bootstrap

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting asset vault...")
        app.state.settings = settings

        # Provisioning and sync must finish before any request is served;
        # an error here aborts startup.
        app.state.database = bootstrap(settings)
        try:
            yield
        finally:
            app.state.database.shutdown()
            logger.info("Asset vault shutdown complete.")

    app = FastAPI(title="Asset Vault", lifespan=lifespan)
    app.include_router(health.router, prefix="/api")
    return app
