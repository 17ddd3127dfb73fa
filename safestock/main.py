import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from safestock.api.v1.router import api_router
from safestock.core.config import get_settings
from safestock.core.runtime import ClientRuntime, build_runtime


def create_app(runtime: Optional[ClientRuntime] = None) -> FastAPI:
    """
    Build the client API. A prepared runtime can be passed in (tests, or
    several replicas in one process); otherwise one is built from settings
    when the app starts.
    """
    settings = runtime.settings if runtime is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        if getattr(app.state, "runtime", None) is None:
            app.state.runtime = build_runtime(settings)
        app.state.runtime.startup()
        try:
            yield
        finally:
            app.state.runtime.shutdown()

    app = FastAPI(
        title="SafeStock Inventory Client",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    @app.get("/health", tags=["health"])
    async def root_health() -> dict:
        """
        Global health check endpoint.
        """
        return {"status": "ok"}

    # Mount versioned API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)
    return app


app = create_app()
