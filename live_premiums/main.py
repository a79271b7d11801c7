# live_premiums/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from live_premiums.core.config import Settings, settings
from live_premiums.routers import option_chain, premiums
from live_premiums.services.chain_cache import ChainCache, ChainRefresher
from live_premiums.services.nse import NseService

load_dotenv()

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def create_app(
    chain_cache: Optional[ChainCache] = None,
    config: Optional[Settings] = None,
    background_refresh: Optional[bool] = None,
) -> FastAPI:
    config = config or settings
    if chain_cache is None:
        chain_cache = ChainCache(NseService(config), ttl=config.cache_ttl_seconds)
    if background_refresh is None:
        background_refresh = config.background_refresh

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        refresher = None
        if background_refresh:
            refresher = ChainRefresher(app.state.chain_cache, interval=config.refresh_interval_seconds)
            refresher.start()
        app.state.chain_refresher = refresher
        try:
            yield
        finally:
            if refresher is not None:
                refresher.stop(timeout=config.request_timeout_seconds)
            app.state.chain_cache.clear()

    app = FastAPI(
        title="Live Option Premiums API",
        version="1.0.0",
        description="API for looking up last traded option premiums from a cached NSE option chain.",
        lifespan=lifespan,
    )
    app.state.chain_cache = chain_cache
    app.state.chain_refresher = None

    # Include routers
    app.include_router(premiums.router)
    app.include_router(option_chain.router, prefix="/api/v1")

    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    logger.info(f"Created app for {config.nse_symbol} ({config.environment}), cache ttl {chain_cache.ttl}s")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("live_premiums.main:app", host=settings.api_host, port=settings.port)
