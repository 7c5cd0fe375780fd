"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.nb_account.api.router import router as account_router
from src.nb_admin.api.router import router as admin_router
from src.nb_betting.api.router import router as bet_router
from src.nb_common.database import engine
from src.nb_common.errors import AppError
from src.nb_common.redis_client import close_redis, get_redis, redis_available
from src.nb_common.response import error_response
from src.nb_events.emitter import event_emitter
from src.nb_events.redis_sink import RedisEventSink
from src.nb_gateway.middleware.request_log import RequestLogMiddleware
from src.nb_market.api.router import option_router
from src.nb_market.api.router import router as market_router
from src.nb_wallet.api.router import router as wallet_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, wire the Redis event sink. Shutdown: flush and dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    sink: RedisEventSink | None = None
    if settings.EVENTS_REDIS_ENABLED and await redis_available():
        sink = RedisEventSink(await get_redis(), settings.EVENTS_CHANNEL)
        sink.attach(event_emitter)
        logger.info("Domain events forwarded to redis channel %s", settings.EVENTS_CHANNEL)
    yield
    await event_emitter.drain(timeout=5.0)
    if sink is not None:
        sink.detach(event_emitter)
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(account_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(option_router, prefix="/api/v1")
app.include_router(bet_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
