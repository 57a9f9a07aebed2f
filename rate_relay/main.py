import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.dal import RateStore
from .routers import quotes
from .services.rates.base import RateSource
from .services.rates.providers import HTTPRateSource
from .services.relay import RateSink, RelayService

logger = logging.getLogger("rate_relay")


def create_app(
    settings_override: Settings | None = None,
    *,
    source: Optional[RateSource] = None,
    store: Optional[RateSink] = None,
    fetch_budget: Optional[float] = None,
    persist_budget: Optional[float] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    source / store: replace the upstream source or persistence sink (tests).
    fetch_budget / persist_budget: override the fixed stage budgets (tests).
    """
    settings = settings_override or get_settings()
    if settings.db_path is None:
        settings.init_post_load()
    init_logging(debug=settings.debug)

    http_client: Optional[httpx.AsyncClient] = None
    if source is None:
        http_client = httpx.AsyncClient()
        source = HTTPRateSource(http_client, settings.upstream_url)
    if store is None:
        rate_store = RateStore(settings.db_path)  # type: ignore[arg-type]
        # Failing to init the store is fatal at startup.
        try:
            rate_store.ensure_schema()
        except errors.StoreError:
            logger.exception("failed to initialise rate store on startup")
            raise
        store = rate_store

    budgets = {}
    if fetch_budget is not None:
        budgets["fetch_budget"] = fetch_budget
    if persist_budget is not None:
        budgets["persist_budget"] = persist_budget
    relay = RelayService(source, store, **budgets)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await relay.drain()
        if http_client is not None:
            await http_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(errors.RelayError, errors.relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(quotes.router)

    return app
