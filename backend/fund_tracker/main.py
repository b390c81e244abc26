"""FastAPI application entry point.

Run with ``uvicorn fund_tracker.main:app`` from the ``backend`` directory.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fund_tracker.config import APP_VERSION, CORS_ORIGINS
from fund_tracker.logging_config import setup_logging
from fund_tracker.models.database import close_db, init_db
from fund_tracker.services.trading_time import is_trading_time
from fund_tracker.api.announcements import router as announcements_router
from fund_tracker.api.chart import router as chart_router
from fund_tracker.api.fund import router as fund_router
from fund_tracker.api.holdings_routes import router as holdings_router
from fund_tracker.api.market import router as market_router
from fund_tracker.api.transactions import router as transactions_router
from fund_tracker.api.watchlist_routes import router as watchlist_router
from fund_tracker.tasks.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()
    start_scheduler()
    logger.info(f"Fund tracker {APP_VERSION} started")
    yield
    stop_scheduler()
    await close_db()


app = FastAPI(title="Fund Tracker", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    fund_router,
    chart_router,
    market_router,
    watchlist_router,
    holdings_router,
    transactions_router,
    announcements_router,
):
    app.include_router(router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": APP_VERSION, "trading": is_trading_time()}
